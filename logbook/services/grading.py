import logging

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from placements.models import Student
from logbook.models import SupervisorGrade, Week
from logbook.services import actors
from logbook.services.attendance import checked_in_days
from logbook.services.audit import record_action, snapshot
from logbook.services.errors import Forbidden, Locked
from logbook.services.scoring import GradeBreakdown, GradingStats, calculate, grading_config
from logbook.services.workflow import lock_student

logger = logging.getLogger(__name__)

GRADE_AUDIT_FIELDS = [
    "attendance_score",
    "weekly_reports_score",
    "supervisor_approval_score",
    "total_score",
    "grade",
    "auto_calculated",
    "remarks",
]


def gather_stats(student: Student) -> GradingStats:
    weeks = Week.objects.filter(student=student).aggregate(
        submitted=Count("id", filter=Q(status__in=[Week.STATUS_SUBMITTED, Week.STATUS_APPROVED])),
        approved=Count("id", filter=Q(status=Week.STATUS_APPROVED)),
    )
    return GradingStats(
        attendance_days=checked_in_days(student),
        submitted_weeks=weeks["submitted"] or 0,
        approved_weeks=weeks["approved"] or 0,
    )


def _score(value):
    return float(value)


def build_payload(student: Student, stats: GradingStats, breakdown: GradeBreakdown, config=None) -> dict:
    config = config or grading_config()
    return {
        "student": {
            "id": student.id,
            "matricNo": student.matric_no,
            "fullName": student.full_name,
        },
        "stats": {
            "attendanceDays": stats.attendance_days,
            "maxAttendanceDays": config["MAX_EXPECTED_ATTENDANCE_DAYS"],
            "submittedWeeks": stats.submitted_weeks,
            "approvedWeeks": stats.approved_weeks,
            "totalWeeks": config["TOTAL_WEEKS"],
        },
        "breakdown": {
            "attendance": {"score": _score(breakdown.attendance), "max": config["MAX_ATTENDANCE_SCORE"]},
            "weeklyReports": {"score": _score(breakdown.weekly_reports), "max": config["MAX_WEEKLY_REPORTS_SCORE"]},
            "supervisorApproval": {
                "score": _score(breakdown.supervisor_approval),
                "max": config["MAX_SUPERVISOR_APPROVAL_SCORE"],
            },
            "total": {"score": _score(breakdown.total), "max": config["MAX_TOTAL_SCORE"]},
        },
        "grade": breakdown.grade,
    }


def preview(actor, student: Student) -> dict:
    """Grade as it would be committed now. Read-only."""
    actors.require_reviewer(actor, student)
    config = grading_config()
    stats = gather_stats(student)
    return build_payload(student, stats, calculate(stats, config=config), config)


def commit(actor, student: Student, weekly_reports_override=None, remarks=None) -> dict:
    """
    Persists the SupervisorGrade and locks the student in one transaction.
    A locked student must be unlocked by an admin before being graded again.
    """
    supervisor = actors.require_reviewer(actor, student)
    config = grading_config()

    with transaction.atomic():
        student = Student.objects.select_for_update().get(pk=student.pk)
        if student.siwes_locked:
            raise Locked("Student has already been graded and locked", student_id=student.id)

        stats = gather_stats(student)
        breakdown = calculate(stats, weekly_reports_override, config)
        existing = SupervisorGrade.objects.filter(student=student).first()
        before = snapshot(existing, fields=GRADE_AUDIT_FIELDS)

        grade, _ = SupervisorGrade.objects.update_or_create(
            student=student,
            defaults={
                "supervisor": supervisor,
                "graded_by": actor,
                "attendance_score": breakdown.attendance,
                "weekly_reports_score": breakdown.weekly_reports,
                "supervisor_approval_score": breakdown.supervisor_approval,
                "total_score": breakdown.total,
                "grade": breakdown.grade,
                "auto_calculated": not breakdown.overridden,
                "remarks": (remarks or "").strip(),
            },
        )
        now = timezone.now()
        Student.objects.filter(pk=student.pk).update(graded=True, graded_at=now)
        lock_student(student)

        record_action(
            actor,
            "GRADE",
            "supervisor_grades",
            grade.pk,
            before,
            snapshot(grade, fields=GRADE_AUDIT_FIELDS),
        )
        record_action(actor, "LOCK", "students", student.pk, {"siwes_locked": False}, {"siwes_locked": True})

    logger.info(
        "Grade committed",
        extra={"student_id": student.id, "total": str(breakdown.total), "grade": breakdown.grade},
    )
    payload = build_payload(student, stats, breakdown, config)
    payload.update(
        {
            "remarks": grade.remarks,
            "autoCalculated": grade.auto_calculated,
            "gradedAt": now,
        }
    )
    return payload


def _can_read_grade(actor, student: Student) -> bool:
    if actor is None or not getattr(actor, "is_authenticated", False):
        return False
    if student.user_id == actor.pk or actors.admin_for(actor):
        return True
    supervisor = actors.supervisor_for(actor, "school_supervisor")
    return supervisor is not None and supervisor.id == student.school_supervisor_id


def get_grade(actor, student: Student):
    if not _can_read_grade(actor, student):
        raise Forbidden("You are not allowed to view this grade")
    grade = SupervisorGrade.objects.filter(student=student).first()
    if grade is None:
        return None
    config = grading_config()
    return {
        "grade": grade.grade,
        "remarks": grade.remarks,
        "autoCalculated": grade.auto_calculated,
        "gradedAt": grade.updated_at,
        "breakdown": {
            "attendance": {"score": _score(grade.attendance_score), "max": config["MAX_ATTENDANCE_SCORE"]},
            "weeklyReports": {"score": _score(grade.weekly_reports_score), "max": config["MAX_WEEKLY_REPORTS_SCORE"]},
            "supervisorApproval": {
                "score": _score(grade.supervisor_approval_score),
                "max": config["MAX_SUPERVISOR_APPROVAL_SCORE"],
            },
            "total": {"score": _score(grade.total_score), "max": config["MAX_TOTAL_SCORE"]},
        },
    }
