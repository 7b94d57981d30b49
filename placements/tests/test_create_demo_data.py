from io import StringIO

from django.core.management import call_command
from django.test import TestCase

from placements.models import AcademicSession, Administrator, PreRegistration, Student, Supervisor
from logbook.models import Week
from logbook.services.registration import can_enter_report_workflow


class CreateDemoDataTests(TestCase):
    def test_creates_ready_to_grade_students(self):
        out = StringIO()
        call_command("create_demo_data", "--students", "2", "--weeks", "3", stdout=out)

        self.assertEqual(AcademicSession.objects.get(is_current=True).name, "2024/2025")
        self.assertEqual(Administrator.objects.count(), 1)
        self.assertEqual(Supervisor.objects.filter(supervisor_type="school_supervisor").count(), 1)
        self.assertEqual(Student.objects.count(), 2)
        self.assertEqual(Week.objects.count(), 6)
        for student in Student.objects.all():
            self.assertTrue(can_enter_report_workflow(student))
            self.assertIsNotNone(student.school_supervisor)
        self.assertIn("2 new student(s)", out.getvalue())

    def test_is_idempotent(self):
        call_command("create_demo_data", "--students", "2", "--weeks", "2", stdout=StringIO())
        call_command("create_demo_data", "--students", "2", "--weeks", "2", stdout=StringIO())
        self.assertEqual(Student.objects.count(), 2)
        self.assertEqual(PreRegistration.objects.count(), 2)
        self.assertEqual(Week.objects.count(), 4)
