import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from placements.models import Attendance, Student
from logbook.services import actors
from logbook.services.audit import record_action, snapshot
from logbook.services.errors import Locked, PreconditionFailed, ValidationError
from logbook.services.students import assigned_students

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("check_in_time", "check_out_time", "verified")


def _now():
    """Server-side local date and time; client clocks are never trusted."""
    now = timezone.localtime()
    return now.date(), now.time().replace(microsecond=0)


def _ensure_unlocked(student: Student, action: str):
    if student.siwes_locked:
        raise Locked(f"Your SIWES has been completed and graded. No more {action}s allowed.")


def check_in(actor) -> Attendance:
    student = actors.require_student(actor)
    _ensure_unlocked(student, "check-in")
    today, now = _now()
    try:
        with transaction.atomic():
            record = Attendance.objects.create(student=student, date=today, check_in_time=now, verified=True)
    except IntegrityError:
        raise PreconditionFailed("You have already checked in today")
    logger.info("Check-in", extra={"student_id": student.id, "date": str(today)})
    return record


def check_out(actor) -> Attendance:
    student = actors.require_student(actor)
    _ensure_unlocked(student, "check-out")
    today, now = _now()
    record = Attendance.objects.filter(student=student, date=today).first()
    if record is None or record.check_in_time is None:
        raise PreconditionFailed("You must check in first before checking out")
    updated = Attendance.objects.filter(pk=record.pk, check_out_time__isnull=True).update(check_out_time=now)
    if not updated:
        raise PreconditionFailed("You have already checked out today")
    record.refresh_from_db()
    logger.info("Check-out", extra={"student_id": student.id, "date": str(today)})
    return record


def today_status(student: Student) -> dict:
    today, _ = _now()
    record = Attendance.objects.filter(student=student, date=today).first()
    return {
        "date": today,
        "has_checked_in": bool(record and record.check_in_time),
        "has_checked_out": bool(record and record.check_out_time),
        "attendance": record,
        "siwes_locked": student.siwes_locked,
    }


def history(student: Student) -> dict:
    records = list(Attendance.objects.filter(student=student).order_by("-date"))
    return {
        "attendance": records,
        "stats": {
            "total_days": len(records),
            "days_with_check_out": sum(1 for r in records if r.check_in_time and r.check_out_time),
            "verified_days": sum(1 for r in records if r.verified),
        },
    }


def student_attendance(actor, student: Student) -> dict:
    """history() for the student, their supervisors or an admin."""
    actors.require_viewer(actor, student)
    return history(student)


def supervisor_summary(actor) -> dict:
    """Per assigned student: day counts and today's check-in state."""
    students = list(assigned_students(actor))
    today, _ = _now()
    records = {}
    for record in Attendance.objects.filter(student__in=students):
        records.setdefault(record.student_id, []).append(record)

    summaries = []
    for student in students:
        rows = records.get(student.id, [])
        todays = next((r for r in rows if r.date == today), None)
        today_state = None
        if todays is not None:
            today_state = {
                "checked_in": bool(todays.check_in_time),
                "checked_out": bool(todays.check_out_time),
                "check_in_time": todays.check_in_time,
                "check_out_time": todays.check_out_time,
            }
        summaries.append(
            {
                "student_id": student.id,
                "full_name": student.full_name,
                "matric_no": student.matric_no,
                "department": student.department,
                "total_days": len(rows),
                "days_with_check_out": sum(1 for r in rows if r.check_in_time and r.check_out_time),
                "today": today_state,
            }
        )
    return {"date": today, "students": summaries}


def checked_in_days(student: Student) -> int:
    return Attendance.objects.filter(student=student, check_in_time__isnull=False).count()


def update_attendance(actor, record: Attendance, changes: dict) -> Attendance:
    actors.require_admin(actor)
    _ensure_unlocked(record.student, "attendance change")
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown attendance fields: {', '.join(unknown)}", fields=unknown)

    check_in_time = changes.get("check_in_time", record.check_in_time)
    check_out_time = changes.get("check_out_time", record.check_out_time)
    if check_out_time and not check_in_time:
        raise ValidationError("Check-out time requires a check-in time")
    if check_in_time and check_out_time and check_out_time < check_in_time:
        raise ValidationError("Check-out time must be later than check-in time")

    before = snapshot(record, fields=list(EDITABLE_FIELDS))
    for field, value in changes.items():
        setattr(record, field, value)
    record.save(update_fields=list(changes))
    record_action(actor, "UPDATE", "attendance", record.pk, before, snapshot(record, fields=list(EDITABLE_FIELDS)))
    return record


def delete_attendance(actor, record: Attendance):
    actors.require_admin(actor)
    _ensure_unlocked(record.student, "attendance change")
    before = snapshot(record)
    record_id = record.pk
    with transaction.atomic():
        record.delete()
        record_action(actor, "DELETE", "attendance", record_id, old_value=before)
