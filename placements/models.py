from django.conf import settings
from django.db import models


class AcademicSession(models.Model):
    name = models.CharField(max_length=32, unique=True)  # e.g. "2024/2025"
    is_current = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Supervisor(models.Model):
    TYPE_CHOICES = [
        ("school_supervisor", "School supervisor"),
        ("industry_supervisor", "Industry supervisor"),
    ]

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.CASCADE, related_name="supervisor"
    )
    name = models.CharField(max_length=128)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=32, blank=True)
    supervisor_type = models.CharField(max_length=24, choices=TYPE_CHOICES)

    def __str__(self):
        return f"{self.name} ({self.get_supervisor_type_display()})"


class Administrator(models.Model):
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="administrator")
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)

    def __str__(self):
        return self.email or self.user.get_username()


class Student(models.Model):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="student"
    )
    full_name = models.CharField(max_length=128)
    matric_no = models.CharField(max_length=32, unique=True)
    department = models.CharField(max_length=128, blank=True)
    faculty = models.CharField(max_length=128, blank=True)

    organisation_name = models.CharField(max_length=255, blank=True)
    organisation_address = models.TextField(blank=True)
    industry_supervisor_name = models.CharField(max_length=128, blank=True)
    industry_supervisor_phone = models.CharField(max_length=32, blank=True)
    industry_supervisor_email = models.EmailField(blank=True)
    start_date = models.DateField(null=True, blank=True)

    school_supervisor = models.ForeignKey(
        Supervisor, null=True, blank=True, on_delete=models.SET_NULL, related_name="school_students"
    )
    industry_supervisor = models.ForeignKey(
        Supervisor, null=True, blank=True, on_delete=models.SET_NULL, related_name="industry_students"
    )

    is_active = models.BooleanField(default=True)
    siwes_locked = models.BooleanField(default=False)
    siwes_locked_at = models.DateTimeField(null=True, blank=True)
    graded = models.BooleanField(default=False)
    graded_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.full_name} ({self.matric_no})"


class PreRegistration(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_REJECTED = "rejected"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_REJECTED, "Rejected"),
    ]

    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="pre_registrations")
    session = models.ForeignKey(AcademicSession, on_delete=models.CASCADE, related_name="pre_registrations")
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_PENDING)
    remark = models.TextField(blank=True)

    organisation_name = models.CharField(max_length=255)
    organisation_address = models.TextField()
    industry_supervisor_name = models.CharField(max_length=128, blank=True)
    industry_supervisor_phone = models.CharField(max_length=32, blank=True)
    industry_supervisor_email = models.EmailField(blank=True)
    start_date = models.DateField(null=True, blank=True)

    submitted_at = models.DateTimeField(auto_now_add=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="+"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "session"], name="uq_preregistration_student_session"),
        ]

    def __str__(self):
        return f"{self.student} - {self.session} ({self.status})"


class Attendance(models.Model):
    student = models.ForeignKey(Student, on_delete=models.CASCADE, related_name="attendance")
    date = models.DateField()
    check_in_time = models.TimeField(null=True, blank=True)
    check_out_time = models.TimeField(null=True, blank=True)
    verified = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["student", "date"], name="uq_attendance_student_date"),
        ]

    def __str__(self):
        return f"{self.student} - {self.date}"
