from django.contrib import admin
from django.urls import path

from logbook.api import (
    AdminAttendanceView,
    AdminNotificationsView,
    AdminStudentStatusView,
    AdminStudentSupervisorsView,
    AdminStudentView,
    AdminWeekStatusView,
    AdminWeekView,
    ApprovePreRegistrationView,
    ApproveWeekView,
    AssignedStudentsView,
    AttendanceHistoryView,
    AuditLogView,
    CheckInView,
    CheckOutView,
    GradeCommitView,
    GradePreviewView,
    GradeView,
    LockStudentView,
    MarkNotificationReadView,
    MyWeeksView,
    OpenWeekView,
    PreRegistrationView,
    RejectPreRegistrationView,
    RejectWeekView,
    ReopenWeekView,
    ResubmitPreRegistrationView,
    SaveDraftView,
    StudentAttendanceView,
    StudentWeeksView,
    SubmitWeekView,
    SupervisorAttendanceSummaryView,
    TodayAttendanceView,
    UnlockStudentView,
)


urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/weeks/", MyWeeksView.as_view(), name="my-weeks"),
    path("api/weeks/open/", OpenWeekView.as_view(), name="open-week"),
    path("api/weeks/<int:pk>/draft/", SaveDraftView.as_view(), name="save-draft"),
    path("api/weeks/<int:pk>/submit/", SubmitWeekView.as_view(), name="submit-week"),
    path("api/weeks/<int:pk>/reopen/", ReopenWeekView.as_view(), name="reopen-week"),
    path("api/weeks/<int:pk>/approve/", ApproveWeekView.as_view(), name="approve-week"),
    path("api/weeks/<int:pk>/reject/", RejectWeekView.as_view(), name="reject-week"),
    path("api/students/<int:pk>/weeks/", StudentWeeksView.as_view(), name="student-weeks"),
    path("api/students/<int:pk>/attendance/", StudentAttendanceView.as_view(), name="student-attendance"),
    path("api/supervisor/students/", AssignedStudentsView.as_view(), name="assigned-students"),
    path("api/students/<int:pk>/lock/", LockStudentView.as_view(), name="lock-student"),
    path("api/students/<int:pk>/unlock/", UnlockStudentView.as_view(), name="unlock-student"),
    path("api/pre-registration/", PreRegistrationView.as_view(), name="pre-registration"),
    path("api/pre-registration/<int:pk>/resubmit/", ResubmitPreRegistrationView.as_view(), name="resubmit-pre-registration"),
    path("api/pre-registration/<int:pk>/approve/", ApprovePreRegistrationView.as_view(), name="approve-pre-registration"),
    path("api/pre-registration/<int:pk>/reject/", RejectPreRegistrationView.as_view(), name="reject-pre-registration"),
    path("api/attendance/check-in/", CheckInView.as_view(), name="check-in"),
    path("api/attendance/check-out/", CheckOutView.as_view(), name="check-out"),
    path("api/attendance/today/", TodayAttendanceView.as_view(), name="attendance-today"),
    path("api/attendance/history/", AttendanceHistoryView.as_view(), name="attendance-history"),
    path("api/attendance/supervisor/summary/", SupervisorAttendanceSummaryView.as_view(), name="attendance-supervisor-summary"),
    path("api/grading/<int:student_id>/", GradeView.as_view(), name="grade"),
    path("api/grading/<int:student_id>/preview/", GradePreviewView.as_view(), name="grade-preview"),
    path("api/grading/<int:student_id>/commit/", GradeCommitView.as_view(), name="grade-commit"),
    path("api/admin/weeks/<int:pk>/", AdminWeekView.as_view(), name="admin-week"),
    path("api/admin/weeks/<int:pk>/status/", AdminWeekStatusView.as_view(), name="admin-week-status"),
    path("api/admin/students/<int:pk>/", AdminStudentView.as_view(), name="admin-student"),
    path("api/admin/students/<int:pk>/supervisors/", AdminStudentSupervisorsView.as_view(), name="admin-student-supervisors"),
    path("api/admin/students/<int:pk>/status/", AdminStudentStatusView.as_view(), name="admin-student-status"),
    path("api/admin/attendance/<int:pk>/", AdminAttendanceView.as_view(), name="admin-attendance"),
    path("api/admin/audit/", AuditLogView.as_view(), name="admin-audit"),
    path("api/admin/notifications/", AdminNotificationsView.as_view(), name="admin-notifications"),
    path("api/admin/notifications/<int:pk>/read/", MarkNotificationReadView.as_view(), name="admin-notification-read"),
]
