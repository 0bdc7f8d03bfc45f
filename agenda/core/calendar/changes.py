# agenda/core/calendar/changes.py
"""
Канал уведомлений об изменениях строк (аналог realtime-подписки).

Ядро не делает диффов: любое уведомление для ``(user_id, table)``
означает «перечитать текущее окно».

• ``InMemoryChangeChannel`` – в пределах одного процесса (по умолчанию).
• ``RedisChangeChannel``    – pub/sub через Redis, между процессами.
• ``get_change_channel()``  – фабрика по имени или ``settings.CHANGE_CHANNEL``.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, Dict, List, Optional, Tuple, Type, Union

from agenda.config import settings

log = logging.getLogger(__name__)

ChangeCallback = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class Subscription:
    """Handle returned by ``subscribe``; ``close()`` is idempotent."""

    def __init__(self, on_close: Callable[[], Union[None, Awaitable[None]]]) -> None:
        self._on_close = on_close
        self.closed = False

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        result = self._on_close()
        if inspect.isawaitable(result):
            await result


async def _invoke(callback: ChangeCallback, payload: Dict[str, Any]) -> None:
    # Ошибка подписчика не должна ломать публикацию
    try:
        result = callback(payload)
        if inspect.isawaitable(result):
            await result
    except Exception:
        log.exception("Change callback failed for %s", payload)


class BaseChangeChannel(ABC):
    name: str

    @abstractmethod
    async def publish(self, user_id: str, table: str, action: str) -> None:
        ...

    @abstractmethod
    async def subscribe(self, user_id: str, table: str, callback: ChangeCallback) -> Subscription:
        ...

    async def ping(self) -> bool:
        return True

    @staticmethod
    def payload(user_id: str, table: str, action: str) -> Dict[str, Any]:
        return {"user_id": user_id, "table": table, "action": action}


class InMemoryChangeChannel(BaseChangeChannel):
    """Подписчики в памяти процесса, вызываются последовательно."""

    name = "memory"

    def __init__(self) -> None:
        self._subscribers: DefaultDict[Tuple[str, str], List[ChangeCallback]] = defaultdict(list)

    async def publish(self, user_id: str, table: str, action: str) -> None:
        callbacks = list(self._subscribers.get((user_id, table), ()))
        log.debug("Publishing %s on %s for user %s to %d subscriber(s)", action, table, user_id, len(callbacks))
        payload = self.payload(user_id, table, action)
        for callback in callbacks:
            await _invoke(callback, payload)

    async def subscribe(self, user_id: str, table: str, callback: ChangeCallback) -> Subscription:
        key = (user_id, table)
        self._subscribers[key].append(callback)
        log.debug("Subscribed to %s changes of user %s", table, user_id)

        def _remove() -> None:
            if callback in self._subscribers.get(key, []):
                self._subscribers[key].remove(callback)
            if not self._subscribers.get(key):
                self._subscribers.pop(key, None)

        return Subscription(_remove)


# --------------------------------------------------------------------------- #
#                       registry: name → channel-class                        #
# --------------------------------------------------------------------------- #
def _lazy_import(module_name: str, class_name: str) -> Type[BaseChangeChannel]:
    module = importlib.import_module(module_name)
    return getattr(module, class_name)


_CHANNEL_LOADERS: Dict[str, Callable[[], Type[BaseChangeChannel]]] = {
    "memory": lambda: InMemoryChangeChannel,
    "redis": lambda: _lazy_import("agenda.core.calendar.redis_changes", "RedisChangeChannel"),
}

_channel_instance: Optional[BaseChangeChannel] = None


def get_change_channel(name: str | None = None) -> BaseChangeChannel:
    """
    Вернуть ЕДИНСТВЕННЫЙ экземпляр канала изменений.

    • ``name`` – явное имя (case-insensitive), создаёт новый экземпляр.
    • Если не передано, берём из ``settings.CHANGE_CHANNEL`` и кэшируем.
    """
    global _channel_instance
    if name is None and _channel_instance is not None:
        return _channel_instance

    key = (name or settings.CHANGE_CHANNEL).lower()
    loader = _CHANNEL_LOADERS.get(key)
    if loader is None:
        raise ValueError(f"Unknown change channel: {key}")
    channel = loader()()
    log.info("Initialized change channel: %s", channel.name)
    if name is None:
        _channel_instance = channel
    return channel


def reset_change_channel() -> None:
    global _channel_instance
    _channel_instance = None


__all__ = [
    "ChangeCallback", "Subscription", "BaseChangeChannel", "InMemoryChangeChannel",
    "get_change_channel", "reset_change_channel",
]
