import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from placements.models import AcademicSession, PreRegistration, Student
from logbook.services import actors
from logbook.services.audit import record_action, snapshot
from logbook.services.errors import NotFound, PreconditionFailed, ValidationError

logger = logging.getLogger(__name__)

PLACEMENT_FIELDS = (
    "organisation_name",
    "organisation_address",
    "industry_supervisor_name",
    "industry_supervisor_phone",
    "industry_supervisor_email",
    "start_date",
)
REQUIRED_FIELDS = ("organisation_name", "organisation_address")


def current_session():
    return AcademicSession.objects.filter(is_current=True).order_by("-created_at", "-id").first()


def registration_for(student: Student, session=None):
    session = session or current_session()
    if session is None:
        return None
    return PreRegistration.objects.filter(student=student, session=session).first()


def can_enter_report_workflow(student: Student, session=None) -> bool:
    registration = registration_for(student, session)
    return registration is not None and registration.status == PreRegistration.STATUS_APPROVED


def _clean_placement(data: dict, require=True) -> dict:
    cleaned = {}
    for field in PLACEMENT_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if isinstance(value, str):
            value = value.strip()
        if field == "start_date":
            value = value or None
        elif value is None:
            value = ""
        cleaned[field] = value
    if require:
        missing = [f for f in REQUIRED_FIELDS if not cleaned.get(f)]
        if missing:
            raise ValidationError(f"Missing required registration fields: {', '.join(missing)}", fields=missing)
    return cleaned


def _copy_to_student(student: Student, placement: dict):
    for field, value in placement.items():
        setattr(student, field, value)
    student.save(update_fields=list(placement))


def submit_pre_registration(actor, student: Student, placement: dict, session=None) -> PreRegistration:
    actors.require_owner(actor, student)
    session = session or current_session()
    if session is None:
        raise NotFound("No current academic session")
    placement = _clean_placement(placement)

    try:
        with transaction.atomic():
            registration = PreRegistration.objects.create(student=student, session=session, **placement)
            _copy_to_student(student, placement)
    except IntegrityError:
        raise PreconditionFailed("Pre-registration already submitted for this session")

    logger.info(
        "Pre-registration submitted",
        extra={"student_id": student.id, "session_id": session.id, "registration_id": registration.id},
    )
    return registration


def resubmit(actor, registration: PreRegistration, placement=None) -> PreRegistration:
    """rejected -> pending; the previous remark is cleared."""
    actors.require_owner(actor, registration.student)
    placement = _clean_placement(placement or {}, require=False)
    for field in REQUIRED_FIELDS:
        if field in placement and not placement[field]:
            raise ValidationError(f"{field} cannot be blank", fields=[field])

    with transaction.atomic():
        updated = PreRegistration.objects.filter(
            pk=registration.pk, status=PreRegistration.STATUS_REJECTED
        ).update(status=PreRegistration.STATUS_PENDING, remark="", reviewed_at=None, reviewed_by=None, **placement)
        if not updated:
            registration.refresh_from_db(fields=["status"])
            raise PreconditionFailed(
                f"Only rejected pre-registrations can be resubmitted (current: {registration.status})"
            )
        if placement:
            _copy_to_student(registration.student, placement)

    registration.refresh_from_db()
    return registration


def _review(actor, registration: PreRegistration, status: str, remark: str) -> PreRegistration:
    actors.require_reviewer(actor, registration.student)
    before = snapshot(registration, fields=["status", "remark"])
    now = timezone.now()
    updated = PreRegistration.objects.filter(pk=registration.pk, status=PreRegistration.STATUS_PENDING).update(
        status=status, remark=remark, reviewed_at=now, reviewed_by=actor
    )
    if not updated:
        registration.refresh_from_db(fields=["status"])
        raise PreconditionFailed(f"Pre-registration is {registration.status}, not pending")

    registration.refresh_from_db()
    record_action(
        actor,
        "STATUS_CHANGE",
        "pre_registration",
        registration.id,
        old_value=before,
        new_value=snapshot(registration, fields=["status", "remark"]),
    )
    return registration


def approve_pre_registration(actor, registration: PreRegistration, remark=None) -> PreRegistration:
    return _review(actor, registration, PreRegistration.STATUS_APPROVED, (remark or "").strip())


def reject_pre_registration(actor, registration: PreRegistration, remark) -> PreRegistration:
    remark = (remark or "").strip()
    if not remark:
        raise ValidationError("A remark is required to reject a pre-registration")
    return _review(actor, registration, PreRegistration.STATUS_REJECTED, remark)
