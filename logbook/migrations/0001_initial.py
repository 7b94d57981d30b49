from django.conf import settings
import django.core.serializers.json
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("placements", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Week",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("week_number", models.PositiveSmallIntegerField()),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("monday_activity", models.TextField(blank=True)),
                ("tuesday_activity", models.TextField(blank=True)),
                ("wednesday_activity", models.TextField(blank=True)),
                ("thursday_activity", models.TextField(blank=True)),
                ("friday_activity", models.TextField(blank=True)),
                ("saturday_activity", models.TextField(blank=True)),
                ("comments", models.TextField(blank=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("draft", "Draft"),
                            ("submitted", "Submitted"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                        ],
                        default="draft",
                        max_length=12,
                    ),
                ),
                ("submitted_at", models.DateTimeField(blank=True, null=True)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("forwarded_to_school", models.BooleanField(default=False)),
                ("score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("school_supervisor_comments", models.TextField(blank=True)),
                ("rejection_reason", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "school_supervisor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="reviewed_weeks",
                        to="placements.supervisor",
                    ),
                ),
                (
                    "student",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="weeks",
                        to="placements.student",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["student", "status"], name="week_student_status_idx")],
                "constraints": [
                    models.UniqueConstraint(fields=("student", "week_number"), name="uq_week_student_number"),
                    models.CheckConstraint(
                        condition=models.Q(("week_number__gte", 1), ("week_number__lte", 24)),
                        name="ck_week_number_1_24",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("score__isnull", True), ("score__lte", 100), _connector="OR"),
                        name="ck_week_score_0_100",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="SupervisorGrade",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("attendance_score", models.DecimalField(decimal_places=2, max_digits=5)),
                ("weekly_reports_score", models.DecimalField(decimal_places=2, max_digits=5)),
                ("supervisor_approval_score", models.DecimalField(decimal_places=2, max_digits=5)),
                ("total_score", models.DecimalField(decimal_places=2, max_digits=5)),
                (
                    "grade",
                    models.CharField(
                        choices=[("A", "A"), ("B", "B"), ("C", "C"), ("D", "D"), ("F", "F")],
                        max_length=1,
                    ),
                ),
                ("auto_calculated", models.BooleanField(default=True)),
                ("remarks", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "graded_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "student",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="supervisor_grade",
                        to="placements.student",
                    ),
                ),
                (
                    "supervisor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="placements.supervisor",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="AuditLogEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("actor_type", models.CharField(blank=True, max_length=24)),
                ("actor_email", models.CharField(blank=True, max_length=254)),
                (
                    "action_type",
                    models.CharField(
                        choices=[
                            ("CREATE", "Create"),
                            ("UPDATE", "Update"),
                            ("DELETE", "Delete"),
                            ("STATUS_CHANGE", "Status change"),
                            ("LOCK", "Lock"),
                            ("UNLOCK", "Unlock"),
                            ("GRADE", "Grade"),
                            ("READ", "Read"),
                        ],
                        max_length=16,
                    ),
                ),
                ("table_name", models.CharField(max_length=64)),
                ("record_id", models.CharField(blank=True, max_length=64)),
                (
                    "old_value",
                    models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True),
                ),
                (
                    "new_value",
                    models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True),
                ),
                ("description", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["table_name", "created_at"], name="audit_table_created_idx")],
            },
        ),
        migrations.CreateModel(
            name="NotificationOutbox",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "status",
                    models.CharField(
                        choices=[("PENDING", "Pending"), ("DELIVERED", "Delivered"), ("FAILED", "Failed")],
                        default="PENDING",
                        max_length=12,
                    ),
                ),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                (
                    "audit_entry",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="outbox",
                        to="logbook.auditlogentry",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["status", "created_at"], name="outbox_status_created_idx")],
            },
        ),
        migrations.CreateModel(
            name="AdminNotification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("notification_type", models.CharField(default="other", max_length=32)),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                ("related_table", models.CharField(blank=True, max_length=64)),
                ("related_record_id", models.CharField(blank=True, max_length=64)),
                ("is_read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "admin",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="placements.administrator",
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["admin", "is_read"], name="notification_admin_read_idx")],
            },
        ),
    ]
