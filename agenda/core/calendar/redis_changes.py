# agenda/core/calendar/redis_changes.py

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from agenda.config import settings

from .changes import BaseChangeChannel, ChangeCallback, Subscription, _invoke

log = logging.getLogger(__name__)


class RedisChangeChannel(BaseChangeChannel):
    """
    Канал изменений через Redis pub/sub.

    Имя канала: ``<prefix>:<table>:<user_id>``, сообщение - JSON
    ``{"user_id", "table", "action"}``. Каждая подписка держит свой
    ``PubSub`` и фоновую задачу чтения.
    """

    name = "redis"

    def __init__(self, url: str | None = None) -> None:
        self._redis = aioredis.Redis.from_url(url or settings.REDIS_URL, socket_connect_timeout=2)

    @staticmethod
    def channel_name(user_id: str, table: str) -> str:
        return f"{settings.CHANGE_CHANNEL_PREFIX}:{table}:{user_id}"

    async def publish(self, user_id: str, table: str, action: str) -> None:
        channel = self.channel_name(user_id, table)
        try:
            receivers = await self._redis.publish(channel, json.dumps(self.payload(user_id, table, action)))
            log.debug("Published %s to %s (%s receivers)", action, channel, receivers)
        except RedisError:
            # Запись уже применена; потерянное уведомление лечится следующим перечитыванием
            log.exception("Failed to publish change to %s", channel)

    async def subscribe(self, user_id: str, table: str, callback: ChangeCallback) -> Subscription:
        channel = self.channel_name(user_id, table)
        pubsub = self._redis.pubsub(ignore_subscribe_messages=True)
        await pubsub.subscribe(channel)
        task = asyncio.create_task(self._listen(pubsub, callback), name=f"changes-{channel}")
        log.debug("Subscribed to %s", channel)

        async def _close() -> None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()
            log.debug("Unsubscribed from %s", channel)

        return Subscription(_close)

    async def _listen(self, pubsub, callback: ChangeCallback) -> None:
        async for message in pubsub.listen():
            if message.get("type") != "message":
                continue
            try:
                payload: Dict[str, Any] = json.loads(message["data"])
            except (TypeError, ValueError):
                log.warning("Ignoring malformed change message: %r", message.get("data"))
                continue
            await _invoke(callback, payload)

    async def ping(self) -> bool:
        return bool(await self._redis.ping())


__all__ = ["RedisChangeChannel"]
