"""
Weekly report lifecycle.

    draft --submit--> submitted --approve--> approved
      ^                    |
      |                  reject
    reopen                 v
      +--------------- rejected --submit--> submitted

Student.siwes_locked overrides every status: once a student is locked no
transition is accepted for any of their weeks. Each transition is written as a
single conditional UPDATE (status and lock flag in the WHERE clause), so of two
concurrent reviews of the same week only one can succeed.
"""

import logging
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from placements.models import Student
from logbook.models import Week
from logbook.services import actors
from logbook.services.audit import record_action, snapshot
from logbook.services.errors import Forbidden, Locked, NotFound, PreconditionFailed, ValidationError
from logbook.services.registration import can_enter_report_workflow

logger = logging.getLogger(__name__)

MIN_WEEK = 1
MAX_WEEK = 24

TRANSITIONS = {
    "save_draft": ((Week.STATUS_DRAFT,), Week.STATUS_DRAFT),
    "reopen": ((Week.STATUS_REJECTED,), Week.STATUS_DRAFT),
    "submit": ((Week.STATUS_DRAFT, Week.STATUS_REJECTED), Week.STATUS_SUBMITTED),
    "approve": ((Week.STATUS_SUBMITTED,), Week.STATUS_APPROVED),
    "reject": ((Week.STATUS_SUBMITTED,), Week.STATUS_REJECTED),
}

WEEK_AUDIT_FIELDS = ["status", "score", "school_supervisor_comments", "rejection_reason", "forwarded_to_school"]


def next_status(current: str, event: str) -> str:
    """Target status of `event` from `current`, or PreconditionFailed when the move is illegal."""
    sources, target = TRANSITIONS[event]
    if current not in sources:
        raise PreconditionFailed(
            f"Cannot {event.replace('_', ' ')} a week that is {current}",
            status=current,
            event=event,
        )
    return target


def _ensure_unlocked(student: Student):
    if student.siwes_locked:
        raise Locked("SIWES has been graded and locked; no further changes are allowed", student_id=student.id)


def _apply(week: Week, event: str, **changes) -> Week:
    sources, target = TRANSITIONS[event]
    updated = Week.objects.filter(pk=week.pk, status__in=sources, student__siwes_locked=False).update(
        status=target, updated_at=timezone.now(), **changes
    )
    if not updated:
        fresh = Week.objects.select_related("student").filter(pk=week.pk).first()
        if fresh is None:
            raise NotFound("Week not found")
        _ensure_unlocked(fresh.student)
        next_status(fresh.status, event)
        raise PreconditionFailed("Week was modified concurrently, reload and retry")
    week.refresh_from_db()
    logger.info("Week transition", extra={"week_id": week.pk, "event": event, "status": week.status})
    return week


def week_dates(student: Student, week_number: int):
    if not student.start_date:
        return None, None
    start = student.start_date + timedelta(days=(week_number - 1) * 7)
    return start, start + timedelta(days=5)


def open_week(actor, student: Student, week_number) -> Week:
    """Returns the student's week, creating it as a draft on first visit."""
    actors.require_owner(actor, student)
    try:
        week_number = int(week_number)
    except (TypeError, ValueError):
        raise ValidationError("Week number must be an integer")
    if not MIN_WEEK <= week_number <= MAX_WEEK:
        raise ValidationError(f"Week number must be between {MIN_WEEK} and {MAX_WEEK}")

    existing = Week.objects.filter(student=student, week_number=week_number).first()
    if existing:
        return existing

    _ensure_unlocked(student)
    if not can_enter_report_workflow(student):
        raise PreconditionFailed("Pre-registration must be approved before filling the logbook")

    start, end = week_dates(student, week_number)
    week, created = Week.objects.get_or_create(
        student=student, week_number=week_number, defaults={"start_date": start, "end_date": end}
    )
    if created:
        logger.info("Week opened", extra={"student_id": student.id, "week_number": week_number})
    return week


def save_draft(actor, week: Week, activities: dict, comments=None) -> Week:
    actors.require_owner(actor, week.student)
    _ensure_unlocked(week.student)
    unknown = sorted(set(activities or {}) - set(Week.DAY_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown activity fields: {', '.join(unknown)}", fields=unknown)

    changes = {field: (value or "") for field, value in (activities or {}).items()}
    if comments is not None:
        changes["comments"] = comments
    next_status(week.status, "save_draft")
    return _apply(week, "save_draft", **changes)


def reopen(actor, week: Week) -> Week:
    """rejected -> draft so the student can revise; the rejection reason stays as history."""
    actors.require_owner(actor, week.student)
    _ensure_unlocked(week.student)
    next_status(week.status, "reopen")
    return _apply(week, "reopen")


def submit(actor, week: Week) -> Week:
    actors.require_owner(actor, week.student)
    _ensure_unlocked(week.student)
    next_status(week.status, "submit")
    if not can_enter_report_workflow(week.student):
        raise PreconditionFailed("Pre-registration must be approved before submitting weekly reports")
    return _apply(week, "submit", submitted_at=timezone.now(), forwarded_to_school=True)


def _validate_score(score):
    if score is None or score == "":
        return None
    if isinstance(score, bool):
        raise ValidationError("Score must be a whole number between 0 and 100")
    try:
        value = Decimal(str(score).strip())
    except InvalidOperation:
        raise ValidationError("Score must be a whole number between 0 and 100")
    if not value.is_finite() or value != value.to_integral_value():
        raise ValidationError("Score must be a whole number between 0 and 100", score=str(score))
    value = int(value)
    if not 0 <= value <= 100:
        raise ValidationError("Score must be between 0 and 100", score=value)
    return value


def approve(actor, week: Week, score=None, comments=None) -> Week:
    supervisor = actors.require_reviewer(actor, week.student)
    _ensure_unlocked(week.student)
    score = _validate_score(score)
    next_status(week.status, "approve")

    before = snapshot(week, fields=WEEK_AUDIT_FIELDS)
    changes = {"approved_at": timezone.now()}
    if supervisor is not None:
        changes["school_supervisor"] = supervisor
    if score is not None:
        changes["score"] = score
    if comments is not None:
        changes["school_supervisor_comments"] = comments
    week = _apply(week, "approve", **changes)
    record_action(actor, "STATUS_CHANGE", "weeks", week.pk, before, snapshot(week, fields=WEEK_AUDIT_FIELDS))
    return week


def reject(actor, week: Week, reason) -> Week:
    supervisor = actors.require_reviewer(actor, week.student)
    _ensure_unlocked(week.student)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("A rejection reason is required")
    next_status(week.status, "reject")

    before = snapshot(week, fields=WEEK_AUDIT_FIELDS)
    changes = {"rejection_reason": reason}
    if supervisor is not None:
        changes["school_supervisor"] = supervisor
    week = _apply(week, "reject", **changes)
    record_action(actor, "STATUS_CHANGE", "weeks", week.pk, before, snapshot(week, fields=WEEK_AUDIT_FIELDS))
    return week


def lock_student(student: Student) -> bool:
    """Sets siwes_locked. Returns False when the student was already locked."""
    now = timezone.now()
    changed = Student.objects.filter(pk=student.pk, siwes_locked=False).update(siwes_locked=True, siwes_locked_at=now)
    student.refresh_from_db(fields=["siwes_locked", "siwes_locked_at"])
    return bool(changed)


def lock(actor, student: Student) -> bool:
    actors.require_admin(actor)
    changed = lock_student(student)
    if changed:
        record_action(actor, "LOCK", "students", student.pk, {"siwes_locked": False}, {"siwes_locked": True})
    return changed


def unlock(actor, student: Student) -> bool:
    actors.require_admin(actor)
    changed = Student.objects.filter(pk=student.pk, siwes_locked=True).update(siwes_locked=False, siwes_locked_at=None)
    student.refresh_from_db(fields=["siwes_locked", "siwes_locked_at"])
    if changed:
        record_action(actor, "UNLOCK", "students", student.pk, {"siwes_locked": True}, {"siwes_locked": False})
    return bool(changed)


def set_week_status(actor, week: Week, status, comments=None, rejection_reason=None, forwarded_to_school=None) -> Week:
    """Admin override: forces any status, still refused on a locked student."""
    actors.require_admin(actor)
    _ensure_unlocked(week.student)
    if status not in dict(Week.STATUS_CHOICES):
        raise ValidationError(f"Unknown week status: {status}")

    before = snapshot(week, fields=WEEK_AUDIT_FIELDS)
    now = timezone.now()
    changes = {"status": status, "updated_at": now}
    if comments is not None:
        changes["school_supervisor_comments"] = comments
    if rejection_reason is not None:
        changes["rejection_reason"] = rejection_reason
    if forwarded_to_school is not None:
        changes["forwarded_to_school"] = bool(forwarded_to_school)
    if status == Week.STATUS_APPROVED:
        changes["approved_at"] = now
    if status == Week.STATUS_SUBMITTED and week.submitted_at is None:
        changes["submitted_at"] = now

    if not Week.objects.filter(pk=week.pk, student__siwes_locked=False).update(**changes):
        week.student.refresh_from_db(fields=["siwes_locked"])
        _ensure_unlocked(week.student)
        raise NotFound("Week not found")
    week.refresh_from_db()
    record_action(actor, "STATUS_CHANGE", "weeks", week.pk, before, snapshot(week, fields=WEEK_AUDIT_FIELDS))
    return week


def delete_week(actor, week: Week):
    actors.require_admin(actor)
    _ensure_unlocked(week.student)
    before = snapshot(week)
    week_id = week.pk
    with transaction.atomic():
        week.delete()
        record_action(actor, "DELETE", "weeks", week_id, old_value=before)


def weeks_for(actor, student: Student):
    if not actors.can_view_student(actor, student):
        raise Forbidden("You are not allowed to view this logbook")
    return Week.objects.filter(student=student).order_by("week_number")
