import asyncio
import contextlib

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer
from django.conf import settings

from logbook.services.actors import admin_for
from logbook.services.metrics import get_metrics


class AdminFeedConsumer(AsyncJsonWebsocketConsumer):
    """
    Pushes the admin's unread notification count and the outbox delivery
    counters every ADMIN_FEED_INTERVAL_SECONDS. Non-admin connections are closed.
    """

    async def connect(self):
        self.admin = await database_sync_to_async(admin_for)(self.scope.get("user"))
        if self.admin is None:
            await self.close(code=4403)
            return
        await self.accept()
        self._running = True
        await self.send_feed()
        self._task = asyncio.create_task(self._loop())

    async def disconnect(self, close_code):
        self._running = False
        if hasattr(self, "_task"):
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task

    async def _loop(self):
        interval = getattr(settings, "ADMIN_FEED_INTERVAL_SECONDS", 30)
        while self._running:
            await asyncio.sleep(interval)
            await self.send_feed()

    async def receive_json(self, content, **kwargs):
        if content.get("type") == "refresh":
            await self.send_feed()

    @database_sync_to_async
    def _unread(self):
        return self.admin.notifications.filter(is_read=False).count()

    async def send_feed(self):
        unread = await self._unread()
        metrics = await database_sync_to_async(get_metrics)()
        if metrics is None:
            metrics = {"pending": "-", "delivered": "-", "failed": "-", "stale_pending": "-", "avg_delivery_seconds": None}
        await self.send_json({"type": "feed", "unread": unread, "outbox": metrics})
