from datetime import timedelta
from unittest.mock import patch

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from placements.models import Administrator
from logbook.models import AdminNotification, AuditLogEntry, NotificationOutbox
from logbook.services import metrics, workflow
from logbook.services.audit import enqueue_delivery, fan_out, record_action
from logbook.tasks import deliver_admin_notifications, redeliver_pending
from logbook.tests.helpers import make_admin, make_student


class RecordActionTests(TestCase):
    def setUp(self):
        self.admin = make_admin()
        self.other_admin = make_admin("admin2")
        self.user, self.student = make_student()

    @patch("logbook.services.audit.mark_enqueued")
    @patch("logbook.tasks.deliver_admin_notifications.delay")
    def test_delivery_enqueued_after_commit(self, mock_delay, mock_mark):
        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            entry = record_action(self.admin, "LOCK", "students", self.student.pk, {"a": 1}, {"a": 2})
        mock_delay.assert_not_called()
        self.assertEqual(len(callbacks), 1)

        outbox = NotificationOutbox.objects.get(audit_entry=entry)
        self.assertEqual(outbox.status, "PENDING")
        self.assertEqual(entry.actor_type, "admin")
        self.assertEqual(entry.actor_email, "admin@siwes.test")
        self.assertEqual(entry.record_id, str(self.student.pk))
        self.assertEqual(entry.description, f"LOCK on students (ID: {self.student.pk})")

        callbacks[0]()
        mock_delay.assert_called_once_with(outbox.id)
        mock_mark.assert_called_once_with(outbox.id)

    @patch("logbook.tasks.deliver_admin_notifications.delay")
    def test_read_actions_are_not_fanned_out(self, mock_delay):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            entry = record_action(self.admin, "READ", "students", self.student.pk)
        self.assertIsNotNone(entry)
        self.assertEqual(callbacks, [])
        self.assertFalse(NotificationOutbox.objects.exists())
        mock_delay.assert_not_called()

    @patch("logbook.services.audit.mark_enqueued")
    @patch("logbook.tasks.deliver_admin_notifications.delay", side_effect=ConnectionError("broker down"))
    def test_broker_outage_does_not_undo_mutation(self, mock_delay, mock_mark):
        with self.captureOnCommitCallbacks(execute=True):
            self.assertTrue(workflow.lock(self.admin, self.student))
        self.student.refresh_from_db()
        self.assertTrue(self.student.siwes_locked)
        self.assertEqual(NotificationOutbox.objects.get().status, "PENDING")
        mock_mark.assert_not_called()

    def test_audit_write_failure_does_not_undo_mutation(self):
        with patch.object(AuditLogEntry.objects, "create", side_effect=DatabaseError("disk full")):
            with self.assertLogs("logbook.services.audit", level="ERROR"):
                self.assertTrue(workflow.lock(self.admin, self.student))
        self.student.refresh_from_db()
        self.assertTrue(self.student.siwes_locked)
        self.assertFalse(AuditLogEntry.objects.exists())

    def test_entries_are_append_only(self):
        entry = record_action(self.admin, "UPDATE", "students", self.student.pk)
        entry.description = "rewritten"
        with self.assertRaises(RuntimeError):
            entry.save()
        with self.assertRaises(RuntimeError):
            entry.delete()
        self.assertEqual(AuditLogEntry.objects.get().description, f"UPDATE on students (ID: {self.student.pk})")

    def test_enqueue_delivery_reports_failure(self):
        with patch("logbook.tasks.deliver_admin_notifications.delay", side_effect=OSError("refused")):
            self.assertFalse(enqueue_delivery(42))


class FanOutTests(TestCase):
    def setUp(self):
        self.actor = make_admin()
        self.other = make_admin("admin2")
        self.inactive = make_admin("admin3", is_active=False)
        self.user, self.student = make_student()

    def test_fan_out_skips_actor_and_inactive_admins(self):
        entry = record_action(self.actor, "LOCK", "students", self.student.pk)
        self.assertEqual(fan_out(entry), 1)
        notification = AdminNotification.objects.get()
        self.assertEqual(notification.admin, Administrator.objects.get(user=self.other))
        self.assertEqual(notification.notification_type, "lock")
        self.assertEqual(notification.title, "LOCK on students")
        self.assertEqual(notification.related_record_id, str(self.student.pk))
        self.assertIn("admin@siwes.test", notification.message)

    def test_supervisor_actions_reach_every_active_admin(self):
        entry = record_action(self.user, "STATUS_CHANGE", "pre_registration", 7)
        self.assertEqual(fan_out(entry), 2)


@patch("logbook.tasks.mark_delivered")
@patch("logbook.tasks.mark_failed")
class DeliveryTaskTests(TestCase):
    def setUp(self):
        self.actor = make_admin()
        make_admin("admin2")
        make_admin("admin3")
        self.entry = record_action(self.actor, "DELETE", "weeks", 3)
        self.outbox = self.entry.outbox

    def test_delivers_once(self, mock_failed, mock_delivered):
        result = deliver_admin_notifications.apply(args=[self.outbox.id])
        self.assertEqual(result.get(), 2)
        self.outbox.refresh_from_db()
        self.assertEqual(self.outbox.status, "DELIVERED")
        self.assertEqual(self.outbox.attempts, 1)
        self.assertIsNotNone(self.outbox.delivered_at)
        mock_delivered.assert_called_once()

        # a duplicate delivery is a no-op
        self.assertEqual(deliver_admin_notifications.apply(args=[self.outbox.id]).get(), 0)
        self.assertEqual(AdminNotification.objects.count(), 2)
        mock_failed.assert_not_called()

    def test_missing_outbox_is_ignored(self, mock_failed, mock_delivered):
        self.assertEqual(deliver_admin_notifications.apply(args=[999999]).get(), 0)
        mock_delivered.assert_not_called()

    def test_failure_after_retries_marks_failed(self, mock_failed, mock_delivered):
        with patch("logbook.tasks.fan_out", side_effect=DatabaseError("deadlock")):
            result = deliver_admin_notifications.apply(args=[self.outbox.id])
        self.assertTrue(result.failed())
        self.outbox.refresh_from_db()
        self.assertEqual(self.outbox.status, "FAILED")
        self.assertEqual(self.outbox.attempts, deliver_admin_notifications.max_retries + 1)
        self.assertIn("deadlock", self.outbox.last_error)
        mock_failed.assert_called_once_with(self.outbox.id)
        mock_delivered.assert_not_called()
        self.assertFalse(AdminNotification.objects.exists())


class RedeliverTests(TestCase):
    def setUp(self):
        self.actor = make_admin()
        self.stale = record_action(self.actor, "UPDATE", "weeks", 1).outbox
        self.fresh = record_action(self.actor, "UPDATE", "weeks", 2).outbox
        self.failed = record_action(self.actor, "UPDATE", "weeks", 3).outbox
        self.delivered = record_action(self.actor, "UPDATE", "weeks", 4).outbox
        old = timezone.now() - timedelta(minutes=30)
        NotificationOutbox.objects.filter(pk__in=[self.stale.pk, self.delivered.pk]).update(created_at=old)
        NotificationOutbox.objects.filter(pk=self.failed.pk).update(status="FAILED")
        NotificationOutbox.objects.filter(pk=self.delivered.pk).update(status="DELIVERED")

    @patch("logbook.tasks.enqueue_delivery", return_value=True)
    def test_requeues_stale_and_failed(self, mock_enqueue):
        self.assertEqual(redeliver_pending(10), 2)
        self.assertEqual([c.args[0] for c in mock_enqueue.call_args_list], [self.stale.pk, self.failed.pk])

    @patch("logbook.tasks.enqueue_delivery", return_value=False)
    def test_counts_only_successful_enqueues(self, mock_enqueue):
        self.assertEqual(redeliver_pending(10), 0)
        self.assertEqual(mock_enqueue.call_count, 2)


class SortedSetRedis:
    """In-memory stand-in for the few Redis commands the outbox counters use."""

    def __init__(self):
        self.values = {}
        self.zsets = {}
        self.hashes = {}

    def pipeline(self):
        return self

    def execute(self):
        return []

    def exists(self, key):
        return key in self.values

    def set(self, key, value):
        self.values[key] = value

    def get(self, key):
        value = self.values.get(key)
        return None if value is None else str(value).encode()

    def incr(self, key):
        self.values[key] = int(self.values.get(key, 0)) + 1

    def zadd(self, key, mapping, nx=False):
        zset = self.zsets.setdefault(key, {})
        for member, score in mapping.items():
            if not (nx and str(member) in zset):
                zset[str(member)] = score

    def zrem(self, key, member):
        self.zsets.get(key, {}).pop(str(member), None)

    def zcard(self, key):
        return len(self.zsets.get(key, {}))

    def zcount(self, key, low, high):
        return sum(1 for score in self.zsets.get(key, {}).values() if low <= score <= high)

    def hincrby(self, key, field, amount):
        hash_ = self.hashes.setdefault(key, {})
        hash_[field] = hash_.get(field, 0) + amount

    hincrbyfloat = hincrby

    def hgetall(self, key):
        return {field.encode(): str(value).encode() for field, value in self.hashes.get(key, {}).items()}


@patch("logbook.tasks.deliver_admin_notifications.delay")
@patch("logbook.services.metrics._client")
class OutboxMetricsTests(TestCase):
    def setUp(self):
        self.redis = SortedSetRedis()
        self.actor = make_admin()
        make_admin("admin2")

    def test_redelivered_row_is_pending_once(self, mock_client, mock_delay):
        mock_client.return_value = self.redis
        with self.captureOnCommitCallbacks(execute=True):
            outbox = record_action(self.actor, "UPDATE", "weeks", 1).outbox
        self.assertEqual(metrics.get_metrics()["pending"], 1)

        NotificationOutbox.objects.filter(pk=outbox.pk).update(created_at=timezone.now() - timedelta(minutes=30))
        self.assertEqual(redeliver_pending(10), 1)
        self.assertEqual(mock_delay.call_count, 2)
        self.assertEqual(metrics.get_metrics()["pending"], 1)

        self.assertEqual(deliver_admin_notifications.apply(args=[outbox.id]).get(), 1)
        self.assertEqual(deliver_admin_notifications.apply(args=[outbox.id]).get(), 0)
        counters = metrics.get_metrics()
        self.assertEqual(counters["pending"], 0)
        self.assertEqual(counters["delivered"], 1)
        self.assertEqual(counters["notifications"], 1)

    def test_failed_row_is_pending_again_after_redelivery(self, mock_client, mock_delay):
        mock_client.return_value = self.redis
        with self.captureOnCommitCallbacks(execute=True):
            outbox = record_action(self.actor, "UPDATE", "weeks", 2).outbox
        with patch("logbook.tasks.fan_out", side_effect=DatabaseError("deadlock")):
            deliver_admin_notifications.apply(args=[outbox.id])
        counters = metrics.get_metrics()
        self.assertEqual((counters["pending"], counters["failed"]), (0, 1))

        self.assertEqual(redeliver_pending(10), 1)
        self.assertEqual(metrics.get_metrics()["pending"], 1)
        deliver_admin_notifications.apply(args=[outbox.id])
        self.assertEqual(metrics.get_metrics()["pending"], 0)
