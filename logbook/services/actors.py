import logging

from placements.models import Administrator, Student, Supervisor
from logbook.services.errors import Forbidden, NotFound, Unauthorized

logger = logging.getLogger(__name__)


def _authenticated(user):
    if user is None or not getattr(user, "is_authenticated", False):
        raise Unauthorized("Authentication required")
    return user


def admin_for(user):
    """Active Administrator profile of the user, or None."""
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    return Administrator.objects.filter(user=user, is_active=True).first()


def supervisor_for(user, supervisor_type=None):
    if user is None or not getattr(user, "is_authenticated", False):
        return None
    qs = Supervisor.objects.filter(user=user)
    if supervisor_type:
        qs = qs.filter(supervisor_type=supervisor_type)
    return qs.first()


def actor_type(user) -> str:
    if user is None or not getattr(user, "is_authenticated", False):
        return "anonymous"
    if admin_for(user):
        return "admin"
    supervisor = supervisor_for(user)
    if supervisor:
        return supervisor.supervisor_type
    if Student.objects.filter(user=user).exists():
        return "student"
    return "unknown"


def require_admin(user):
    _authenticated(user)
    admin = admin_for(user)
    if admin is None:
        raise Forbidden("Only administrators can perform this action")
    return admin


def require_student(user) -> Student:
    """The Student record owned by the user."""
    _authenticated(user)
    student = Student.objects.filter(user=user).first()
    if student is None:
        raise NotFound("Student record not found")
    return student


def require_owner(user, student: Student):
    _authenticated(user)
    if student.user_id is None or student.user_id != user.pk:
        raise Forbidden("You can only act on your own records")


def require_reviewer(user, student: Student):
    """
    Assigned school supervisor of the student, or an active admin.
    Returns the Supervisor (None for admins).
    """
    _authenticated(user)
    if admin_for(user):
        return None
    supervisor = supervisor_for(user, "school_supervisor")
    if supervisor is None:
        raise Forbidden("Only school supervisors can review students")
    if student.school_supervisor_id != supervisor.id:
        logger.warning(
            "Supervisor not assigned to student",
            extra={"supervisor_id": supervisor.id, "student_id": student.id},
        )
        raise Forbidden("You are not assigned to this student")
    return supervisor


def can_view_student(user, student: Student) -> bool:
    if user is None or not getattr(user, "is_authenticated", False):
        return False
    if student.user_id == user.pk or admin_for(user):
        return True
    supervisor = supervisor_for(user)
    return supervisor is not None and supervisor.id in (student.school_supervisor_id, student.industry_supervisor_id)


def require_supervisor(user):
    _authenticated(user)
    supervisor = supervisor_for(user)
    if supervisor is None:
        raise Forbidden("Only supervisors can perform this action")
    return supervisor


def require_viewer(user, student: Student):
    """The student, one of their supervisors or an active admin."""
    _authenticated(user)
    if not can_view_student(user, student):
        raise Forbidden("You are not allowed to view this student's records")
