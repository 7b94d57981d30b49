from datetime import date, datetime, time
from unittest.mock import patch
from zoneinfo import ZoneInfo

from django.db import DatabaseError
from django.test import TestCase
from rest_framework.test import APIClient

from placements.models import Attendance, PreRegistration, Student
from logbook.models import AdminNotification, AuditLogEntry, SupervisorGrade, Week
from logbook.tests.helpers import make_admin, make_student, make_supervisor, make_week


class ApiTestCase(TestCase):
    def setUp(self):
        self.sup_user, self.supervisor = make_supervisor()
        self.user, self.student = make_student(school_supervisor=self.supervisor)
        self.admin = make_admin()
        self.client = APIClient()

    def as_user(self, user):
        self.client.force_authenticate(user=user)
        return self.client


class WeekApiTests(ApiTestCase):
    def test_requires_authentication(self):
        resp = self.client.get("/api/weeks/")
        self.assertEqual(resp.status_code, 401)

    def test_student_lifecycle(self):
        client = self.as_user(self.user)
        resp = client.post("/api/weeks/open/", {"week_number": 1}, format="json")
        self.assertEqual(resp.status_code, 200)
        week_id = resp.data["id"]
        self.assertEqual(resp.data["status"], "draft")

        resp = client.post(
            f"/api/weeks/{week_id}/draft/",
            {"activities": {"monday_activity": "Site survey"}, "comments": "first week"},
            format="json",
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["monday_activity"], "Site survey")

        resp = client.post(f"/api/weeks/{week_id}/submit/", format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["status"], "submitted")

        resp = client.get("/api/weeks/")
        self.assertEqual([w["id"] for w in resp.data], [week_id])

        resp = self.as_user(self.sup_user).post(f"/api/weeks/{week_id}/approve/", {"score": 75}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["status"], "approved")
        self.assertEqual(resp.data["score"], 75)

    def test_illegal_transition_is_conflict(self):
        week = make_week(self.student, status=Week.STATUS_APPROVED)
        resp = self.as_user(self.user).post(f"/api/weeks/{week.id}/submit/", format="json")
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.data["code"], "precondition_failed")

    def test_locked_student_is_423(self):
        week = make_week(self.student, status=Week.STATUS_SUBMITTED)
        Student.objects.filter(pk=self.student.pk).update(siwes_locked=True)
        resp = self.as_user(self.sup_user).post(f"/api/weeks/{week.id}/reject/", {"reason": "late"}, format="json")
        self.assertEqual(resp.status_code, 423)
        self.assertEqual(resp.data["code"], "locked")

    def test_validation_errors_are_400(self):
        client = self.as_user(self.user)
        resp = client.post("/api/weeks/open/", {"week_number": 30}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "validation_error")
        resp = client.post("/api/weeks/open/", {}, format="json")
        self.assertEqual(resp.status_code, 400)

    def test_forbidden_and_not_found(self):
        week = make_week(self.student, status=Week.STATUS_SUBMITTED)
        stranger, _ = make_supervisor(username="stranger")
        resp = self.as_user(stranger).post(f"/api/weeks/{week.id}/approve/", {}, format="json")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "forbidden")
        resp = self.as_user(self.sup_user).post("/api/weeks/999999/approve/", {}, format="json")
        self.assertEqual(resp.status_code, 404)

    def test_supervisor_logbook_view(self):
        make_week(self.student, week_number=2)
        resp = self.as_user(self.sup_user).get(f"/api/students/{self.student.id}/weeks/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["student"]["matric_no"], "CSC/2024/001")
        self.assertEqual(len(resp.data["weeks"]), 1)

    @patch("logbook.api.workflow.submit", side_effect=DatabaseError("connection lost"))
    def test_database_error_is_500(self, mock_submit):
        week = make_week(self.student)
        with self.assertLogs("logbook.api", level="ERROR"):
            resp = self.as_user(self.user).post(f"/api/weeks/{week.id}/submit/", format="json")
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.data, {"detail": "Unexpected server error", "code": "unexpected"})


class PreRegistrationApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        PreRegistration.objects.all().delete()

    def test_submit_and_review(self):
        resp = self.as_user(self.user).post(
            "/api/pre-registration/",
            {"organisation_name": "Lagos Power Ltd", "organisation_address": "4 Broad Street"},
            format="json",
        )
        self.assertEqual(resp.status_code, 201)
        reg_id = resp.data["id"]

        resp = self.as_user(self.sup_user).post(f"/api/pre-registration/{reg_id}/reject/", {"remark": "Wrong address"}, format="json")
        self.assertEqual(resp.data["status"], "rejected")

        resp = self.as_user(self.user).post(
            f"/api/pre-registration/{reg_id}/resubmit/", {"organisation_address": "6 Broad Street"}, format="json"
        )
        self.assertEqual(resp.data["status"], "pending")

        resp = self.as_user(self.sup_user).post(f"/api/pre-registration/{reg_id}/approve/", {}, format="json")
        self.assertEqual(resp.data["status"], "approved")

    def test_missing_fields(self):
        resp = self.as_user(self.user).post("/api/pre-registration/", {"organisation_name": "X"}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.data["code"], "validation_error")


@patch("logbook.services.attendance.timezone.localtime")
class AttendanceApiTests(ApiTestCase):
    def test_check_in_and_out(self, mock_now):
        mock_now.return_value = datetime(2025, 3, 3, 8, 0, tzinfo=ZoneInfo("Africa/Lagos"))
        client = self.as_user(self.user)
        self.assertEqual(client.post("/api/attendance/check-in/").status_code, 201)
        self.assertEqual(client.post("/api/attendance/check-in/").status_code, 409)

        resp = client.get("/api/attendance/today/")
        self.assertTrue(resp.data["has_checked_in"])
        self.assertFalse(resp.data["has_checked_out"])

        self.assertEqual(client.post("/api/attendance/check-out/").status_code, 200)
        resp = client.get("/api/attendance/history/")
        self.assertEqual(resp.data["stats"]["days_with_check_out"], 1)

    def test_assigned_supervisor_reads_attendance(self, mock_now):
        mock_now.return_value = datetime(2025, 3, 3, 12, 0, tzinfo=ZoneInfo("Africa/Lagos"))
        Attendance.objects.create(student=self.student, date=date(2025, 3, 3), check_in_time=time(8))
        client = self.as_user(self.sup_user)

        resp = client.get(f"/api/students/{self.student.id}/attendance/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.data["attendance"]), 1)
        self.assertEqual(resp.data["stats"]["total_days"], 1)

        resp = client.get("/api/attendance/supervisor/summary/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["students"][0]["student_id"], self.student.id)
        self.assertTrue(resp.data["students"][0]["today"]["checked_in"])

        resp = client.get("/api/supervisor/students/")
        self.assertEqual([s["matric_no"] for s in resp.data], ["CSC/2024/001"])

    def test_unassigned_supervisor_cannot_read_attendance(self, mock_now):
        mock_now.return_value = datetime(2025, 3, 3, 12, 0, tzinfo=ZoneInfo("Africa/Lagos"))
        other_user, _ = make_supervisor("sup2")
        client = self.as_user(other_user)
        resp = client.get(f"/api/students/{self.student.id}/attendance/")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.data["code"], "forbidden")
        self.assertEqual(client.get("/api/supervisor/students/").data, [])

        resp = self.as_user(self.user).get("/api/attendance/supervisor/summary/")
        self.assertEqual(resp.status_code, 403)


@patch("logbook.tasks.deliver_admin_notifications.delay")
class GradingApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        for number in range(1, 13):
            make_week(self.student, week_number=number, status=Week.STATUS_APPROVED)

    def test_preview_then_commit(self, mock_delay):
        client = self.as_user(self.sup_user)
        resp = client.get(f"/api/grading/{self.student.id}/preview/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["breakdown"]["weeklyReports"], {"score": 7.5, "max": 15})
        self.assertEqual(resp.data["breakdown"]["supervisorApproval"], {"score": 5.0, "max": 5})

        resp = client.post(
            f"/api/grading/{self.student.id}/commit/", {"weekly_reports_override": 12, "remarks": "Good"}, format="json"
        )
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.data["breakdown"]["weeklyReports"]["score"], 12.0)
        self.assertFalse(resp.data["autoCalculated"])
        self.assertTrue(SupervisorGrade.objects.filter(student=self.student).exists())

        resp = client.post(f"/api/grading/{self.student.id}/commit/", {}, format="json")
        self.assertEqual(resp.status_code, 423)

        resp = self.as_user(self.user).get(f"/api/grading/{self.student.id}/")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["grade"], "C")

    def test_invalid_override(self, mock_delay):
        resp = self.as_user(self.sup_user).post(
            f"/api/grading/{self.student.id}/commit/", {"weekly_reports_override": "lots"}, format="json"
        )
        self.assertEqual(resp.status_code, 400)

    def test_grade_not_found_before_commit(self, mock_delay):
        resp = self.as_user(self.user).get(f"/api/grading/{self.student.id}/")
        self.assertEqual(resp.status_code, 404)


class AdminApiTests(ApiTestCase):
    def test_lock_unlock(self):
        client = self.as_user(self.admin)
        resp = client.post(f"/api/students/{self.student.id}/lock/")
        self.assertEqual(resp.data, {"id": self.student.id, "siwes_locked": True, "changed": True})
        resp = client.post(f"/api/students/{self.student.id}/lock/")
        self.assertFalse(resp.data["changed"])
        resp = client.post(f"/api/students/{self.student.id}/unlock/")
        self.assertFalse(resp.data["siwes_locked"])
        resp = self.as_user(self.sup_user).post(f"/api/students/{self.student.id}/lock/")
        self.assertEqual(resp.status_code, 403)

    def test_week_override_and_delete(self):
        week = make_week(self.student)
        client = self.as_user(self.admin)
        resp = client.post(f"/api/admin/weeks/{week.id}/status/", {"status": "approved"}, format="json")
        self.assertEqual(resp.data["status"], "approved")
        resp = client.post(f"/api/admin/weeks/{week.id}/status/", {"status": "archived"}, format="json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(client.delete(f"/api/admin/weeks/{week.id}/").status_code, 204)
        self.assertFalse(Week.objects.filter(pk=week.id).exists())

    def test_student_admin(self):
        other_sup_user, other_sup = make_supervisor(username="sup2")
        client = self.as_user(self.admin)
        resp = client.post(
            f"/api/admin/students/{self.student.id}/supervisors/", {"school_supervisor": other_sup.id}, format="json"
        )
        self.assertEqual(resp.data["school_supervisor"], other_sup.id)
        resp = client.post(
            f"/api/admin/students/{self.student.id}/supervisors/", {"industry_supervisor": other_sup.id}, format="json"
        )
        self.assertEqual(resp.status_code, 400)

        resp = client.post(f"/api/admin/students/{self.student.id}/status/", {"is_active": False}, format="json")
        self.assertFalse(resp.data["is_active"])

        self.assertEqual(client.delete(f"/api/admin/students/{self.student.id}/").status_code, 204)
        self.assertFalse(Student.objects.filter(pk=self.student.id).exists())
        self.assertTrue(AuditLogEntry.objects.filter(table_name="students", action_type="DELETE").exists())

    def test_attendance_admin(self):
        record = Attendance.objects.create(student=self.student, date=date(2025, 3, 3), check_in_time=time(8))
        client = self.as_user(self.admin)
        resp = client.patch(f"/api/admin/attendance/{record.id}/", {"check_out_time": "16:00:00"}, format="json")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data["check_out_time"], "16:00:00")
        self.assertEqual(client.delete(f"/api/admin/attendance/{record.id}/").status_code, 204)

    def test_audit_and_notifications(self):
        other_admin = make_admin("admin2")
        client = self.as_user(self.admin)
        client.post(f"/api/students/{self.student.id}/lock/")
        resp = client.get("/api/admin/audit/", {"table": "students"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.data[0]["action_type"], "LOCK")
        self.assertEqual(resp.data[0]["actor_email"], "admin@siwes.test")

        notification = AdminNotification.objects.create(
            admin=other_admin.administrator, title="LOCK on students", message="locked"
        )
        client = self.as_user(other_admin)
        resp = client.get("/api/admin/notifications/")
        self.assertEqual(resp.data["unread"], 1)
        resp = client.post(f"/api/admin/notifications/{notification.id}/read/")
        self.assertTrue(resp.data["is_read"])
        self.assertEqual(client.get("/api/admin/notifications/", {"unread": "1"}).data["notifications"], [])

        resp = self.as_user(self.admin).post(f"/api/admin/notifications/{notification.id}/read/")
        self.assertEqual(resp.status_code, 404)

    def test_audit_requires_admin(self):
        resp = self.as_user(self.sup_user).get("/api/admin/audit/")
        self.assertEqual(resp.status_code, 403)


class CorsTests(TestCase):
    def test_preflight_echoes_origin(self):
        resp = APIClient().options("/api/weeks/", HTTP_ORIGIN="http://portal.test")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp["Access-Control-Allow-Origin"], "http://portal.test")
