"""
Audit trail for administrative mutations.

record_action() appends an AuditLogEntry and, unless the action is a READ, a
NotificationOutbox row inside a savepoint of the caller's transaction. Once that
transaction commits, the Celery task logbook.tasks.deliver_admin_notifications
fans the entry out to the other active admins. Any failure here is logged and
never undoes the mutation being audited; undelivered outbox rows are picked up
again by the redeliver_pending task.
"""

import logging
from functools import partial

from django.db import DatabaseError, transaction
from django.forms.models import model_to_dict

from placements.models import Administrator
from logbook.models import AdminNotification, AuditLogEntry, NotificationOutbox
from logbook.services.actors import actor_type
from logbook.services.metrics import mark_enqueued

logger = logging.getLogger(__name__)


def snapshot(instance, fields=None):
    if instance is None:
        return None
    return model_to_dict(instance, fields=fields)


def describe(action_type, table_name, record_id):
    return f"{action_type} on {table_name}" + (f" (ID: {record_id})" if record_id else "")


def record_action(actor, action_type, table_name, record_id=None, old_value=None, new_value=None, description=None):
    record_id = "" if record_id is None else str(record_id)
    try:
        with transaction.atomic():
            entry = AuditLogEntry.objects.create(
                actor=actor if getattr(actor, "is_authenticated", False) else None,
                actor_type=actor_type(actor) if actor is not None else "system",
                actor_email=getattr(actor, "email", "") or "",
                action_type=action_type,
                table_name=table_name,
                record_id=record_id,
                old_value=old_value,
                new_value=new_value,
                description=description or describe(action_type, table_name, record_id),
            )
            outbox = None
            if action_type != "READ":
                outbox = NotificationOutbox.objects.create(audit_entry=entry)
    except DatabaseError:
        logger.exception(
            "Failed to write audit log entry",
            extra={"action_type": action_type, "table_name": table_name, "record_id": record_id},
        )
        return None

    if outbox is not None:
        transaction.on_commit(partial(enqueue_delivery, outbox.id))
    return entry


def enqueue_delivery(outbox_id: int):
    from logbook.tasks import deliver_admin_notifications  # lazy import, tasks imports this module

    try:
        deliver_admin_notifications.delay(outbox_id)
    except Exception as exc:
        logger.warning("Could not enqueue admin notifications for outbox %s: %s", outbox_id, exc)
        return False
    mark_enqueued(outbox_id)
    return True


def fan_out(entry: AuditLogEntry) -> int:
    """Creates one AdminNotification per active admin other than the actor."""
    admins = Administrator.objects.filter(is_active=True)
    if entry.actor_id:
        admins = admins.exclude(user_id=entry.actor_id)

    actor_label = entry.actor_email or entry.actor_type or "system"
    title = f"{entry.action_type} on {entry.table_name}"
    message = f"{actor_label} performed {entry.action_type.lower()} on {entry.table_name}" + (
        f" (ID: {entry.record_id})" if entry.record_id else ""
    )
    notifications = [
        AdminNotification(
            admin=admin,
            notification_type=entry.action_type.lower(),
            title=title,
            message=message,
            related_table=entry.table_name,
            related_record_id=entry.record_id,
        )
        for admin in admins
    ]
    AdminNotification.objects.bulk_create(notifications)
    return len(notifications)
