import logging
from datetime import timedelta

from celery import shared_task
from django.db import DatabaseError, transaction
from django.db.models import F, Q
from django.utils import timezone

from logbook.models import NotificationOutbox
from logbook.services.audit import enqueue_delivery, fan_out
from logbook.services.metrics import mark_delivered, mark_failed

logger = logging.getLogger(__name__)


@shared_task(bind=True, autoretry_for=(DatabaseError,), retry_backoff=5, max_retries=3)
def deliver_admin_notifications(self, outbox_id: int):
    logger.info("Start deliver_admin_notifications", extra={"outbox_id": outbox_id, "retry": self.request.retries})
    try:
        with transaction.atomic():
            outbox = (
                NotificationOutbox.objects.select_for_update()
                .select_related("audit_entry")
                .filter(id=outbox_id)
                .first()
            )
            if outbox is None or outbox.status == "DELIVERED":
                return 0
            count = fan_out(outbox.audit_entry)
            outbox.status = "DELIVERED"
            outbox.attempts += 1
            outbox.last_error = ""
            outbox.delivered_at = timezone.now()
            outbox.save(update_fields=["status", "attempts", "last_error", "delivered_at"])
    except DatabaseError as exc:
        final = self.request.retries >= self.max_retries
        NotificationOutbox.objects.filter(id=outbox_id).update(
            attempts=F("attempts") + 1,
            last_error=str(exc),
            status="FAILED" if final else "PENDING",
        )
        if final:
            mark_failed(outbox_id)
            logger.error("Admin notifications failed", extra={"outbox_id": outbox_id, "error": str(exc)})
        raise

    duration = (outbox.delivered_at - outbox.created_at).total_seconds() if outbox.created_at else 0
    mark_delivered(outbox_id, duration, count)
    logger.info("Admin notifications delivered", extra={"outbox_id": outbox_id, "notifications": count})
    return count


@shared_task
def redeliver_pending(minutes: int = 10):
    """Re-enqueues outbox rows still PENDING after `minutes`, and every FAILED row."""
    cutoff = timezone.now() - timedelta(minutes=minutes)
    ids = list(
        NotificationOutbox.objects.filter(Q(status="PENDING", created_at__lt=cutoff) | Q(status="FAILED"))
        .order_by("id")
        .values_list("id", flat=True)
    )
    enqueued = sum(1 for outbox_id in ids if enqueue_delivery(outbox_id))
    logger.info("redeliver_pending done", extra={"minutes": minutes, "found": len(ids), "enqueued": enqueued})
    return enqueued
