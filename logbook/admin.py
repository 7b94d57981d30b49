from django.contrib import admin

from .models import AdminNotification, AuditLogEntry, NotificationOutbox, SupervisorGrade, Week


@admin.register(Week)
class WeekAdmin(admin.ModelAdmin):
    list_display = ("id", "student", "week_number", "status", "score", "submitted_at", "approved_at")
    list_filter = ("status", "forwarded_to_school")
    search_fields = ("student__matric_no", "student__full_name")


@admin.register(SupervisorGrade)
class SupervisorGradeAdmin(admin.ModelAdmin):
    list_display = ("student", "total_score", "grade", "auto_calculated", "updated_at")
    list_filter = ("grade", "auto_calculated")
    search_fields = ("student__matric_no", "student__full_name")


@admin.register(AuditLogEntry)
class AuditLogEntryAdmin(admin.ModelAdmin):
    list_display = ("created_at", "actor_email", "actor_type", "action_type", "table_name", "record_id")
    list_filter = ("action_type", "table_name")
    search_fields = ("actor_email", "record_id", "description")

    # append-only
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(NotificationOutbox)
class NotificationOutboxAdmin(admin.ModelAdmin):
    list_display = ("id", "audit_entry", "status", "attempts", "created_at", "delivered_at")
    list_filter = ("status",)


@admin.register(AdminNotification)
class AdminNotificationAdmin(admin.ModelAdmin):
    list_display = ("admin", "notification_type", "title", "is_read", "created_at")
    list_filter = ("notification_type", "is_read")
