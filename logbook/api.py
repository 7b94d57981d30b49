import logging

from django.db import DatabaseError
from django.shortcuts import get_object_or_404
from rest_framework import serializers, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView, exception_handler

from placements.models import Attendance, PreRegistration, Student
from logbook.models import AdminNotification, AuditLogEntry, Week
from logbook.services import actors, attendance, grading, registration, students, workflow
from logbook.services.errors import (
    Forbidden,
    Locked,
    NotFound,
    PreconditionFailed,
    SiwesError,
    Unauthorized,
    Unexpected,
    ValidationError,
)

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    Unauthorized: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    Locked: status.HTTP_423_LOCKED,
    PreconditionFailed: status.HTTP_409_CONFLICT,
    Unexpected: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

AUDIT_PAGE_SIZE = 100


def siwes_exception_handler(exc, context):
    """Maps service errors to {"detail", "code"} responses; everything else goes to DRF."""
    if isinstance(exc, SiwesError):
        code = next((ERROR_STATUS[cls] for cls in type(exc).__mro__ if cls in ERROR_STATUS), 500)
        if code >= 500:
            logger.error("Unexpected service error: %s", exc.message, extra=exc.context)
        return Response({"detail": exc.message or exc.code, "code": exc.code}, status=code)
    if isinstance(exc, DatabaseError):
        logger.exception("Database error in %s", context.get("view").__class__.__name__)
        return Response(
            {"detail": "Unexpected server error", "code": Unexpected.code},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
    return exception_handler(exc, context)


# ============================
# Serializers
# ============================


class WeekSerializer(serializers.ModelSerializer):
    class Meta:
        model = Week
        fields = [
            "id",
            "student",
            "week_number",
            "start_date",
            "end_date",
            *Week.DAY_FIELDS,
            "comments",
            "status",
            "submitted_at",
            "approved_at",
            "forwarded_to_school",
            "score",
            "school_supervisor",
            "school_supervisor_comments",
            "rejection_reason",
            "created_at",
            "updated_at",
        ]


class PreRegistrationSerializer(serializers.ModelSerializer):
    class Meta:
        model = PreRegistration
        fields = [
            "id",
            "student",
            "session",
            "status",
            "remark",
            *registration.PLACEMENT_FIELDS,
            "submitted_at",
            "reviewed_at",
        ]


class AttendanceSerializer(serializers.ModelSerializer):
    class Meta:
        model = Attendance
        fields = ["id", "student", "date", "check_in_time", "check_out_time", "verified", "created_at"]


class StudentSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Student
        fields = [
            "id",
            "full_name",
            "matric_no",
            "department",
            "faculty",
            "organisation_name",
            "school_supervisor",
            "industry_supervisor",
            "siwes_locked",
            "graded",
        ]


class AuditLogEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = AuditLogEntry
        fields = [
            "id",
            "actor",
            "actor_type",
            "actor_email",
            "action_type",
            "table_name",
            "record_id",
            "old_value",
            "new_value",
            "description",
            "created_at",
        ]


class AdminNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdminNotification
        fields = [
            "id",
            "notification_type",
            "title",
            "message",
            "related_table",
            "related_record_id",
            "is_read",
            "created_at",
        ]


class OpenWeekSerializer(serializers.Serializer):
    week_number = serializers.IntegerField()


class DraftSerializer(serializers.Serializer):
    activities = serializers.DictField(
        child=serializers.CharField(allow_blank=True, allow_null=True), required=False, default=dict
    )
    comments = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ApproveWeekSerializer(serializers.Serializer):
    score = serializers.IntegerField(required=False, allow_null=True)
    comments = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class ReasonSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class RemarkSerializer(serializers.Serializer):
    remark = serializers.CharField(required=False, allow_blank=True, default="")


class PlacementSerializer(serializers.Serializer):
    organisation_name = serializers.CharField(required=False, allow_blank=True)
    organisation_address = serializers.CharField(required=False, allow_blank=True)
    industry_supervisor_name = serializers.CharField(required=False, allow_blank=True)
    industry_supervisor_phone = serializers.CharField(required=False, allow_blank=True)
    industry_supervisor_email = serializers.EmailField(required=False, allow_blank=True)
    start_date = serializers.DateField(required=False, allow_null=True)


class GradeCommitSerializer(serializers.Serializer):
    weekly_reports_override = serializers.JSONField(required=False, allow_null=True)
    remarks = serializers.CharField(required=False, allow_blank=True, default="")


class WeekStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c[0] for c in Week.STATUS_CHOICES])
    comments = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    rejection_reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    forwarded_to_school = serializers.BooleanField(required=False, allow_null=True)


class SupervisorAssignmentSerializer(serializers.Serializer):
    school_supervisor = serializers.IntegerField(required=False, allow_null=True)
    industry_supervisor = serializers.IntegerField(required=False, allow_null=True)


class StudentStatusSerializer(serializers.Serializer):
    is_active = serializers.BooleanField()


class AttendanceUpdateSerializer(serializers.Serializer):
    check_in_time = serializers.TimeField(required=False, allow_null=True)
    check_out_time = serializers.TimeField(required=False, allow_null=True)
    verified = serializers.BooleanField(required=False)


def _week(pk):
    return get_object_or_404(Week.objects.select_related("student"), pk=pk)


# ============================
# Weekly reports
# ============================


class MyWeeksView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        student = actors.require_student(request.user)
        weeks = workflow.weeks_for(request.user, student)
        return Response(WeekSerializer(weeks, many=True).data)


class OpenWeekView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = OpenWeekSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        student = actors.require_student(request.user)
        week = workflow.open_week(request.user, student, serializer.validated_data["week_number"])
        return Response(WeekSerializer(week).data)


class SaveDraftView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = DraftSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        week = workflow.save_draft(
            request.user,
            _week(pk),
            serializer.validated_data["activities"],
            serializer.validated_data.get("comments"),
        )
        return Response(WeekSerializer(week).data)


class SubmitWeekView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        week = workflow.submit(request.user, _week(pk))
        return Response(WeekSerializer(week).data)


class ReopenWeekView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        week = workflow.reopen(request.user, _week(pk))
        return Response(WeekSerializer(week).data)


class ApproveWeekView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = ApproveWeekSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        week = workflow.approve(
            request.user,
            _week(pk),
            score=serializer.validated_data.get("score"),
            comments=serializer.validated_data.get("comments"),
        )
        return Response(WeekSerializer(week).data)


class RejectWeekView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = ReasonSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        week = workflow.reject(request.user, _week(pk), serializer.validated_data["reason"])
        return Response(WeekSerializer(week).data)


class StudentWeeksView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        student = get_object_or_404(Student, pk=pk)
        weeks = workflow.weeks_for(request.user, student)
        return Response(
            {
                "student": {"id": student.id, "matric_no": student.matric_no, "full_name": student.full_name},
                "siwes_locked": student.siwes_locked,
                "weeks": WeekSerializer(weeks, many=True).data,
            }
        )


# ============================
# Pre-registration
# ============================


class PreRegistrationView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        serializer = PlacementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        student = actors.require_student(request.user)
        reg = registration.submit_pre_registration(request.user, student, serializer.validated_data)
        return Response(PreRegistrationSerializer(reg).data, status=status.HTTP_201_CREATED)


class ResubmitPreRegistrationView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = PlacementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reg = get_object_or_404(PreRegistration.objects.select_related("student"), pk=pk)
        reg = registration.resubmit(request.user, reg, serializer.validated_data)
        return Response(PreRegistrationSerializer(reg).data)


class ApprovePreRegistrationView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = RemarkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reg = get_object_or_404(PreRegistration.objects.select_related("student"), pk=pk)
        reg = registration.approve_pre_registration(request.user, reg, serializer.validated_data["remark"])
        return Response(PreRegistrationSerializer(reg).data)


class RejectPreRegistrationView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = RemarkSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reg = get_object_or_404(PreRegistration.objects.select_related("student"), pk=pk)
        reg = registration.reject_pre_registration(request.user, reg, serializer.validated_data["remark"])
        return Response(PreRegistrationSerializer(reg).data)


# ============================
# Attendance
# ============================


class CheckInView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        record = attendance.check_in(request.user)
        return Response(AttendanceSerializer(record).data, status=status.HTTP_201_CREATED)


class CheckOutView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        record = attendance.check_out(request.user)
        return Response(AttendanceSerializer(record).data)


class TodayAttendanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        student = actors.require_student(request.user)
        today = attendance.today_status(student)
        record = today["attendance"]
        today["attendance"] = AttendanceSerializer(record).data if record else None
        return Response(today)


class AttendanceHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        student = actors.require_student(request.user)
        data = attendance.history(student)
        return Response(
            {"attendance": AttendanceSerializer(data["attendance"], many=True).data, "stats": data["stats"]}
        )


class StudentAttendanceView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        student = get_object_or_404(Student, pk=pk)
        data = attendance.student_attendance(request.user, student)
        return Response(
            {"attendance": AttendanceSerializer(data["attendance"], many=True).data, "stats": data["stats"]}
        )


class SupervisorAttendanceSummaryView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(attendance.supervisor_summary(request.user))


class AssignedStudentsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(StudentSummarySerializer(students.assigned_students(request.user), many=True).data)


# ============================
# Grading
# ============================


class GradeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, student_id):
        student = get_object_or_404(Student, pk=student_id)
        grade = grading.get_grade(request.user, student)
        if grade is None:
            raise NotFound("Student has not been graded yet")
        return Response(grade)


class GradePreviewView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, student_id):
        student = get_object_or_404(Student, pk=student_id)
        return Response(grading.preview(request.user, student))


class GradeCommitView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, student_id):
        serializer = GradeCommitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        student = get_object_or_404(Student, pk=student_id)
        payload = grading.commit(
            request.user,
            student,
            weekly_reports_override=serializer.validated_data.get("weekly_reports_override"),
            remarks=serializer.validated_data["remarks"],
        )
        return Response(payload, status=status.HTTP_201_CREATED)


# ============================
# Admin
# ============================


class LockStudentView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        student = get_object_or_404(Student, pk=pk)
        changed = workflow.lock(request.user, student)
        return Response({"id": student.id, "siwes_locked": student.siwes_locked, "changed": changed})


class UnlockStudentView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        student = get_object_or_404(Student, pk=pk)
        changed = workflow.unlock(request.user, student)
        return Response({"id": student.id, "siwes_locked": student.siwes_locked, "changed": changed})


class AdminWeekStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = WeekStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        week = workflow.set_week_status(
            request.user,
            _week(pk),
            data["status"],
            comments=data.get("comments"),
            rejection_reason=data.get("rejection_reason"),
            forwarded_to_school=data.get("forwarded_to_school"),
        )
        return Response(WeekSerializer(week).data)


class AdminWeekView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, pk):
        workflow.delete_week(request.user, _week(pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminStudentSupervisorsView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = SupervisorAssignmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        student = get_object_or_404(Student, pk=pk)
        student = students.assign_supervisors(request.user, student, **serializer.validated_data)
        return Response(
            {
                "id": student.id,
                "school_supervisor": student.school_supervisor_id,
                "industry_supervisor": student.industry_supervisor_id,
            }
        )


class AdminStudentStatusView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        serializer = StudentStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        student = get_object_or_404(Student, pk=pk)
        student = students.set_student_status(request.user, student, serializer.validated_data["is_active"])
        return Response({"id": student.id, "is_active": student.is_active})


class AdminStudentView(APIView):
    permission_classes = [IsAuthenticated]

    def delete(self, request, pk):
        students.delete_student(request.user, get_object_or_404(Student, pk=pk))
        return Response(status=status.HTTP_204_NO_CONTENT)


class AdminAttendanceView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request, pk):
        serializer = AttendanceUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        record = get_object_or_404(Attendance.objects.select_related("student"), pk=pk)
        record = attendance.update_attendance(request.user, record, serializer.validated_data)
        return Response(AttendanceSerializer(record).data)

    def delete(self, request, pk):
        record = get_object_or_404(Attendance.objects.select_related("student"), pk=pk)
        attendance.delete_attendance(request.user, record)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AuditLogView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actors.require_admin(request.user)
        entries = AuditLogEntry.objects.order_by("-created_at", "-id")
        table = request.query_params.get("table")
        if table:
            entries = entries.filter(table_name=table)
        action = request.query_params.get("action")
        if action:
            entries = entries.filter(action_type=action.upper())
        try:
            limit = min(int(request.query_params.get("limit", AUDIT_PAGE_SIZE)), 500)
        except ValueError:
            raise ValidationError("limit must be an integer")
        return Response(AuditLogEntrySerializer(entries[: max(limit, 1)], many=True).data)


class AdminNotificationsView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        admin = actors.require_admin(request.user)
        notifications = admin.notifications.order_by("-created_at", "-id")
        if request.query_params.get("unread") in ("1", "true"):
            notifications = notifications.filter(is_read=False)
        return Response(
            {
                "unread": admin.notifications.filter(is_read=False).count(),
                "notifications": AdminNotificationSerializer(notifications[:AUDIT_PAGE_SIZE], many=True).data,
            }
        )


class MarkNotificationReadView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        admin = actors.require_admin(request.user)
        notification = get_object_or_404(AdminNotification, pk=pk, admin=admin)
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read"])
        return Response(AdminNotificationSerializer(notification).data)
