from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models

from placements.models import Administrator, Student, Supervisor


class Week(models.Model):
    STATUS_DRAFT = "draft"
    STATUS_SUBMITTED = "submitted"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_CHOICES = [
        (STATUS_DRAFT, "Draft"),
        (STATUS_SUBMITTED, "Submitted"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]
    DAY_FIELDS = (
        "monday_activity",
        "tuesday_activity",
        "wednesday_activity",
        "thursday_activity",
        "friday_activity",
        "saturday_activity",
    )

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="weeks")
    week_number = models.PositiveSmallIntegerField()
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    monday_activity = models.TextField(blank=True)
    tuesday_activity = models.TextField(blank=True)
    wednesday_activity = models.TextField(blank=True)
    thursday_activity = models.TextField(blank=True)
    friday_activity = models.TextField(blank=True)
    saturday_activity = models.TextField(blank=True)
    comments = models.TextField(blank=True)

    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_DRAFT)
    submitted_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)
    forwarded_to_school = models.BooleanField(default=False)

    score = models.PositiveSmallIntegerField(null=True, blank=True)  # per-week grade, 0-100
    school_supervisor = models.ForeignKey(
        Supervisor, null=True, blank=True, on_delete=models.SET_NULL, related_name="reviewed_weeks"
    )
    school_supervisor_comments = models.TextField(blank=True)
    rejection_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "week_number"], name="uq_week_student_number"),
            models.CheckConstraint(
                condition=models.Q(week_number__gte=1) & models.Q(week_number__lte=24),
                name="ck_week_number_1_24",
            ),
            models.CheckConstraint(
                condition=models.Q(score__isnull=True) | models.Q(score__lte=100),
                name="ck_week_score_0_100",
            ),
        ]
        indexes = [
            models.Index(fields=["student", "status"], name="week_student_status_idx"),
        ]

    def __str__(self):
        return f"{self.student} - week {self.week_number} ({self.status})"


class SupervisorGrade(models.Model):
    GRADE_CHOICES = [("A", "A"), ("B", "B"), ("C", "C"), ("D", "D"), ("F", "F")]

    student = models.OneToOneField(Student, on_delete=models.CASCADE, related_name="supervisor_grade")
    supervisor = models.ForeignKey(Supervisor, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")
    graded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    attendance_score = models.DecimalField(max_digits=5, decimal_places=2)
    weekly_reports_score = models.DecimalField(max_digits=5, decimal_places=2)
    supervisor_approval_score = models.DecimalField(max_digits=5, decimal_places=2)
    total_score = models.DecimalField(max_digits=5, decimal_places=2)
    grade = models.CharField(max_length=1, choices=GRADE_CHOICES)
    auto_calculated = models.BooleanField(default=True)
    remarks = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.student} - {self.total_score}/30 ({self.grade})"


class AuditLogEntry(models.Model):
    ACTION_CHOICES = [
        ("CREATE", "Create"),
        ("UPDATE", "Update"),
        ("DELETE", "Delete"),
        ("STATUS_CHANGE", "Status change"),
        ("LOCK", "Lock"),
        ("UNLOCK", "Unlock"),
        ("GRADE", "Grade"),
        ("READ", "Read"),
    ]

    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )
    actor_type = models.CharField(max_length=24, blank=True)
    actor_email = models.CharField(max_length=254, blank=True)
    action_type = models.CharField(max_length=16, choices=ACTION_CHOICES)
    table_name = models.CharField(max_length=64)
    record_id = models.CharField(max_length=64, blank=True)
    old_value = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    new_value = models.JSONField(null=True, blank=True, encoder=DjangoJSONEncoder)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["table_name", "created_at"], name="audit_table_created_idx"),
        ]

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError("Audit log entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("Audit log entries are append-only")

    def __str__(self):
        return f"{self.action_type} on {self.table_name} ({self.record_id})"


class NotificationOutbox(models.Model):
    STATUS_CHOICES = [
        ("PENDING", "Pending"),
        ("DELIVERED", "Delivered"),
        ("FAILED", "Failed"),
    ]

    audit_entry = models.OneToOneField(AuditLogEntry, on_delete=models.CASCADE, related_name="outbox")
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default="PENDING")
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "created_at"], name="outbox_status_created_idx"),
        ]

    def __str__(self):
        return f"Outbox {self.audit_entry_id} ({self.status})"


class AdminNotification(models.Model):
    admin = models.ForeignKey(Administrator, on_delete=models.CASCADE, related_name="notifications")
    notification_type = models.CharField(max_length=32, default="other")
    title = models.CharField(max_length=255)
    message = models.TextField()
    related_table = models.CharField(max_length=64, blank=True)
    related_record_id = models.CharField(max_length=64, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=["admin", "is_read"], name="notification_admin_read_idx"),
        ]

    def __str__(self):
        return f"{self.title} -> {self.admin}"
