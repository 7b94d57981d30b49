import logging
import time
from typing import Optional

import redis
from django.conf import settings

logger = logging.getLogger(__name__)

KEYS = ("metrics:outbox:delivered", "metrics:outbox:failed", "metrics:outbox:pending_z", "metrics:outbox:timing")


def _client():
    """
    Redis client for the outbox counters. METRICS_REDIS_URL wins, otherwise the Celery broker URL.
    """
    url = getattr(settings, "METRICS_REDIS_URL", None) or getattr(settings, "CELERY_BROKER_URL", "redis://localhost:6379/0")
    return redis.Redis.from_url(url)


def _safe_int(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _run(pipeline_ops, outbox_id):
    # Counters only observe the outbox; a Redis outage must not fail the delivery itself.
    try:
        cli = _client()
        if not cli.exists("metrics:start"):
            cli.set("metrics:start", time.time())
        pipe = cli.pipeline()
        pipeline_ops(pipe)
        pipe.execute()
    except redis.RedisError as exc:
        logger.warning("Outbox metrics unavailable: %s", exc, extra={"outbox_id": outbox_id})


def reset_metrics():
    cli = _client()
    pipe = cli.pipeline()
    pipe.delete(*KEYS)
    pipe.set("metrics:start", time.time())
    pipe.execute()


def mark_enqueued(outbox_id: int):
    """
    Adds the row to the pending set. Re-enqueueing a row already in the set is a
    no-op and keeps its first enqueue time, so pending is the set's cardinality.
    """
    now = time.time()

    def ops(pipe):
        pipe.zadd("metrics:outbox:pending_z", {outbox_id: now}, nx=True)

    _run(ops, outbox_id)


def mark_delivered(outbox_id: int, duration_seconds: float, notifications: int):
    def ops(pipe):
        pipe.incr("metrics:outbox:delivered")
        pipe.zrem("metrics:outbox:pending_z", outbox_id)
        pipe.hincrbyfloat("metrics:outbox:timing", "sum", max(duration_seconds, 0))
        pipe.hincrby("metrics:outbox:timing", "count", 1)
        pipe.hincrby("metrics:outbox:timing", "notifications", notifications)

    _run(ops, outbox_id)


def mark_failed(outbox_id: int):
    def ops(pipe):
        pipe.incr("metrics:outbox:failed")
        pipe.zrem("metrics:outbox:pending_z", outbox_id)

    _run(ops, outbox_id)


def get_metrics(stale_seconds: int = 600) -> Optional[dict]:
    """
    Outbox counters and delivery timing from Redis. Returns None when Redis is unreachable.
    """
    try:
        cli = _client()
        now = time.time()
        timing = cli.hgetall("metrics:outbox:timing")
        total = float(timing.get(b"sum", 0) or 0)
        count = _safe_int(timing.get(b"count", 0))
        return {
            "pending": cli.zcard("metrics:outbox:pending_z"),
            "delivered": _safe_int(cli.get("metrics:outbox:delivered")),
            "failed": _safe_int(cli.get("metrics:outbox:failed")),
            "stale_pending": cli.zcount("metrics:outbox:pending_z", 0, now - stale_seconds),
            "notifications": _safe_int(timing.get(b"notifications", 0)),
            "avg_delivery_seconds": round(total / count, 2) if count else None,
        }
    except redis.RedisError:
        return None
