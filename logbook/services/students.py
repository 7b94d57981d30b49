import logging

from django.db import transaction
from django.db.models import Q

from placements.models import Student, Supervisor
from logbook.services import actors
from logbook.services.audit import record_action, snapshot
from logbook.services.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

ASSIGNMENT_FIELDS = ["school_supervisor", "industry_supervisor"]


def _supervisor(supervisor_id, supervisor_type):
    if supervisor_id in (None, ""):
        return None
    supervisor = Supervisor.objects.filter(pk=supervisor_id).first()
    if supervisor is None:
        raise NotFound(f"Supervisor {supervisor_id} not found")
    if supervisor.supervisor_type != supervisor_type:
        raise ValidationError(f"Supervisor {supervisor_id} is not a {supervisor_type.replace('_', ' ')}")
    return supervisor


def assign_supervisors(actor, student: Student, **assignments) -> Student:
    """Admin: (re)assigns school_supervisor and/or industry_supervisor. Passing None clears one."""
    actors.require_admin(actor)
    unknown = sorted(set(assignments) - set(ASSIGNMENT_FIELDS))
    if unknown:
        raise ValidationError(f"Unknown assignment fields: {', '.join(unknown)}", fields=unknown)
    if not assignments:
        raise ValidationError("Nothing to assign")

    before = snapshot(student, fields=ASSIGNMENT_FIELDS)
    for field, supervisor_id in assignments.items():
        setattr(student, field, _supervisor(supervisor_id, field))
    student.save(update_fields=list(assignments))
    record_action(actor, "UPDATE", "students", student.pk, before, snapshot(student, fields=ASSIGNMENT_FIELDS))
    return student


def set_student_status(actor, student: Student, is_active) -> Student:
    actors.require_admin(actor)
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be true or false")
    if student.is_active == is_active:
        return student
    before = {"is_active": student.is_active}
    student.is_active = is_active
    student.save(update_fields=["is_active"])
    record_action(actor, "STATUS_CHANGE", "students", student.pk, before, {"is_active": is_active})
    return student


def delete_student(actor, student: Student):
    """Removes the student with their weeks, attendance, registrations and grade."""
    actors.require_admin(actor)
    before = snapshot(student, fields=["full_name", "matric_no", "department", "faculty", "siwes_locked", "graded"])
    student_id = student.pk
    with transaction.atomic():
        student.delete()
        record_action(actor, "DELETE", "students", student_id, old_value=before)
    logger.info("Student deleted", extra={"student_id": student_id})


def assigned_students(actor):
    """Students supervised by the actor, as school or industry supervisor."""
    supervisor = actors.require_supervisor(actor)
    return (
        Student.objects.filter(Q(school_supervisor=supervisor) | Q(industry_supervisor=supervisor))
        .order_by("matric_no")
    )
