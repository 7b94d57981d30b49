import random
from datetime import date, time, timedelta

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from placements.models import AcademicSession, Administrator, Attendance, PreRegistration, Student, Supervisor
from logbook.models import Week


class Command(BaseCommand):
    help = "Create demo data (session, admin, supervisors, students with approved placements, weeks, attendance)."

    def add_arguments(self, parser):
        parser.add_argument("--students", type=int, default=5, help="Number of students to create (default: 5)")
        parser.add_argument("--weeks", type=int, default=6, help="Weekly reports per student (default: 6)")
        parser.add_argument("--session", type=str, default="2024/2025", help="Academic session name")
        parser.add_argument("--password", type=str, default="demo1234", help="Password for every demo user")

    def _user(self, username, email, password):
        User = get_user_model()
        user, created = User.objects.get_or_create(username=username, defaults={"email": email})
        if created:
            user.set_password(password)
            user.save(update_fields=["password"])
        return user

    def handle(self, *args, **options):
        target_students = options["students"]
        weeks_per_student = min(max(options["weeks"], 0), 24)
        password = options["password"]

        with transaction.atomic():
            AcademicSession.objects.exclude(name=options["session"]).update(is_current=False)
            session, _ = AcademicSession.objects.update_or_create(name=options["session"], defaults={"is_current": True})

            admin_user = self._user("admin", "admin@siwes.test", password)
            Administrator.objects.get_or_create(user=admin_user, defaults={"email": admin_user.email})

            school_user = self._user("supervisor", "supervisor@siwes.test", password)
            school_supervisor, _ = Supervisor.objects.get_or_create(
                user=school_user,
                defaults={"name": "Dr. Adebayo Okafor", "email": school_user.email, "supervisor_type": "school_supervisor"},
            )
            industry_supervisor, _ = Supervisor.objects.get_or_create(
                email="industry@siwes.test",
                supervisor_type="industry_supervisor",
                defaults={"name": "Engr. Chioma Nwosu", "phone": "08030000000"},
            )

            first_names = ["Ada", "Tunde", "Ngozi", "Emeka", "Fatima", "Yusuf", "Bisi", "Ifeanyi"]
            last_names = ["Okonkwo", "Bello", "Adeyemi", "Eze", "Abubakar", "Olawale"]
            start = date.today() - timedelta(weeks=weeks_per_student)

            created = 0
            for i in range(target_students):
                full_name = f"{first_names[i % len(first_names)]} {last_names[(i // len(first_names)) % len(last_names)]}"
                matric_no = f"CSC/{session.name[:4]}/{i + 1:03d}"
                user = self._user(f"student{i + 1}", f"student{i + 1}@siwes.test", password)
                student, was_created = Student.objects.get_or_create(
                    matric_no=matric_no,
                    defaults={
                        "user": user,
                        "full_name": full_name,
                        "department": "Computer Science",
                        "faculty": "Science",
                        "organisation_name": "Demo Tech Ltd",
                        "organisation_address": "12 Marina Road, Lagos",
                        "industry_supervisor_name": industry_supervisor.name,
                        "industry_supervisor_phone": industry_supervisor.phone,
                        "start_date": start,
                        "school_supervisor": school_supervisor,
                        "industry_supervisor": industry_supervisor,
                    },
                )
                created += 1 if was_created else 0

                PreRegistration.objects.get_or_create(
                    student=student,
                    session=session,
                    defaults={
                        "status": PreRegistration.STATUS_APPROVED,
                        "organisation_name": student.organisation_name,
                        "organisation_address": student.organisation_address,
                        "start_date": start,
                    },
                )

                for number in range(1, weeks_per_student + 1):
                    week_start = start + timedelta(weeks=number - 1)
                    Week.objects.get_or_create(
                        student=student,
                        week_number=number,
                        defaults={
                            "start_date": week_start,
                            "end_date": week_start + timedelta(days=5),
                            **{field: f"Demo activity, week {number}" for field in Week.DAY_FIELDS},
                            "status": random.choice([Week.STATUS_SUBMITTED, Week.STATUS_APPROVED, Week.STATUS_DRAFT]),
                        },
                    )
                    for offset in range(6):
                        if random.random() < 0.85:
                            Attendance.objects.get_or_create(
                                student=student,
                                date=week_start + timedelta(days=offset),
                                defaults={"check_in_time": time(8, 0), "check_out_time": time(16, 0), "verified": True},
                            )

        self.stdout.write(
            self.style.SUCCESS(
                f"Demo data ready: session {session.name}, {created} new student(s), password '{password}' for every user."
            )
        )
