# agenda/core/calendar/session.py
"""
Состояние одного вида календаря: текущее окно и список вхождений.

Каждый запрос окна получает номер поколения. Ответ, пришедший после
более нового запроса, отбрасывается, поэтому при быстрой навигации
устаревшее окно не перетирает актуальное.
"""

from __future__ import annotations

import inspect
import logging
from collections import deque
from typing import Awaitable, Callable, Deque, List, Optional, Union

from .base import EventStoreError
from .changes import BaseChangeChannel, Subscription
from .schemas import Event, EventIn, MutationResult, Notice, Window
from .service import EVENTS_TABLE, CalendarService

log = logging.getLogger(__name__)

# Сколько последних уведомлений хранит сессия
MAX_NOTICES = 50

NoticeCallback = Callable[[Notice], Union[None, Awaitable[None]]]


class CalendarSession:
    """
    Владелец списка вхождений для пользователя.

    Пользователь и окно передаются явно; сессия не знает про UI.
    """

    def __init__(
        self,
        service: CalendarService,
        user_id: str,
        on_notice: Optional[NoticeCallback] = None,
    ) -> None:
        self.service = service
        self.user_id = user_id
        self.on_notice = on_notice
        self.window: Optional[Window] = None
        self.occurrences: List[Event] = []
        self.notices: Deque[Notice] = deque(maxlen=MAX_NOTICES)
        self.loading = False
        self._generation = 0
        self._subscription: Optional[Subscription] = None

    @property
    def generation(self) -> int:
        return self._generation

    async def show(self, window: Window) -> bool:
        """
        Загрузить окно.

        Returns:
            bool: True, если результат применён; False, если запрос
            устарел или хранилище вернуло ошибку (список не меняется).
        """
        self._generation += 1
        generation = self._generation
        self.window = window
        self.loading = True
        try:
            occurrences = await self.service.load_window(self.user_id, window)
        except EventStoreError as exc:
            if generation != self._generation:
                log.debug("Dropping failed stale fetch #%d for user %s", generation, self.user_id)
                return False
            self.loading = False
            log.warning("Fetch of window %s..%s failed for user %s: %s", window.start, window.end, self.user_id, exc)
            await self._notify(Notice(level="error", message="Could not load events"))
            return False

        if generation != self._generation:
            log.debug(
                "Discarding stale window result #%d (latest #%d) for user %s",
                generation, self._generation, self.user_id,
            )
            return False
        self.occurrences = occurrences
        self.loading = False
        return True

    async def refresh(self) -> bool:
        """Перечитать текущее окно (реакция на любое уведомление)."""
        if self.window is None:
            return False
        return await self.show(self.window)

    async def save(self, data: EventIn, existing_id: Optional[str] = None) -> MutationResult:
        result = await self.service.save_event(self.user_id, data, existing_id)
        return await self._after_mutation(result)

    async def delete(self, event_id: str) -> MutationResult:
        result = await self.service.delete_event(self.user_id, event_id)
        return await self._after_mutation(result)

    async def attach(self, channel: BaseChangeChannel) -> None:
        """Подписаться на изменения таблицы событий пользователя."""
        await self.close()

        async def _on_change(_payload) -> None:
            await self.refresh()

        self._subscription = await channel.subscribe(self.user_id, EVENTS_TABLE, _on_change)

    async def close(self) -> None:
        if self._subscription is not None:
            await self._subscription.close()
            self._subscription = None

    async def _after_mutation(self, result: MutationResult) -> MutationResult:
        await self._notify(result.notice)
        # При ошибке ничего не применено: локальный список не трогаем
        if result.ok:
            await self.refresh()
        return result

    async def _notify(self, notice: Notice) -> None:
        self.notices.append(notice)
        if self.on_notice is None:
            return
        outcome = self.on_notice(notice)
        if inspect.isawaitable(outcome):
            await outcome


__all__ = ["MAX_NOTICES", "CalendarSession", "NoticeCallback"]
