from datetime import date

from django.contrib.auth import get_user_model

from placements.models import AcademicSession, Administrator, PreRegistration, Student, Supervisor
from logbook.models import Week


def make_user(username, **extra):
    return get_user_model().objects.create_user(
        username=username, password="p", email=extra.pop("email", f"{username}@siwes.test"), **extra
    )


def make_admin(username="admin", is_active=True):
    user = make_user(username)
    Administrator.objects.create(user=user, email=user.email, is_active=is_active)
    return user


def make_supervisor(username="sup", supervisor_type="school_supervisor"):
    user = make_user(username)
    supervisor = Supervisor.objects.create(user=user, name=username.title(), email=user.email, supervisor_type=supervisor_type)
    return user, supervisor


def make_student(username="stud", matric_no="CSC/2024/001", school_supervisor=None, approved=True, **extra):
    user = make_user(username)
    student = Student.objects.create(
        user=user,
        full_name=extra.pop("full_name", "Ada Okonkwo"),
        matric_no=matric_no,
        start_date=extra.pop("start_date", date(2025, 1, 6)),
        school_supervisor=school_supervisor,
        **extra,
    )
    if approved is not None:
        session = current_session()
        PreRegistration.objects.create(
            student=student,
            session=session,
            status=PreRegistration.STATUS_APPROVED if approved else PreRegistration.STATUS_PENDING,
            organisation_name="Demo Tech Ltd",
            organisation_address="12 Marina Road, Lagos",
        )
    return user, student


def current_session():
    session, _ = AcademicSession.objects.get_or_create(name="2024/2025", defaults={"is_current": True})
    return session


def make_week(student, week_number=1, status=Week.STATUS_DRAFT, **extra):
    return Week.objects.create(student=student, week_number=week_number, status=status, **extra)
