from django.contrib import admin

from .models import AcademicSession, Administrator, Attendance, PreRegistration, Student, Supervisor


@admin.register(AcademicSession)
class AcademicSessionAdmin(admin.ModelAdmin):
    list_display = ("name", "is_current", "created_at")
    list_filter = ("is_current",)


@admin.register(Supervisor)
class SupervisorAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "supervisor_type")
    list_filter = ("supervisor_type",)
    search_fields = ("name", "email")


@admin.register(Administrator)
class AdministratorAdmin(admin.ModelAdmin):
    list_display = ("email", "user", "is_active")
    list_filter = ("is_active",)


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("matric_no", "full_name", "department", "school_supervisor", "siwes_locked", "graded")
    list_filter = ("siwes_locked", "graded", "is_active", "department")
    search_fields = ("matric_no", "full_name", "organisation_name")


@admin.register(PreRegistration)
class PreRegistrationAdmin(admin.ModelAdmin):
    list_display = ("student", "session", "status", "organisation_name", "submitted_at")
    list_filter = ("status", "session")
    search_fields = ("student__matric_no", "student__full_name", "organisation_name")


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ("student", "date", "check_in_time", "check_out_time", "verified")
    list_filter = ("verified", "date")
    search_fields = ("student__matric_no", "student__full_name")
