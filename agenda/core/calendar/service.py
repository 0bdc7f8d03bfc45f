# agenda/core/calendar/service.py

"""Service-layer for the calendar: window loading and mutations."""

from __future__ import annotations

import logging
from typing import List, Optional

from .base import BaseEventStore, EventStoreError
from .changes import BaseChangeChannel
from .occurrence_id import OccurrenceRef, parse_event_ref
from .recurrence import MAX_RECURRENCE_STEPS, expand_recurring_events
from .schemas import Event, EventIn, MutationResult, Notice, Window

log = logging.getLogger(__name__)

EVENTS_TABLE = "events"

# Поиск по заголовку: короче двух символов не ищем
SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 5


class CalendarService:
    """
    Асинхронный сервис календаря.

    Все операции получают ``user_id`` и окно явно: сервис не читает
    «текущего пользователя» из контекста. Кэша нет, после успешной
    записи в канал изменений уходит уведомление, а владелец вида
    перечитывает окно целиком.
    """

    def __init__(
        self,
        store: BaseEventStore,
        changes: Optional[BaseChangeChannel] = None,
        max_steps: int = MAX_RECURRENCE_STEPS,
    ) -> None:
        """
        Args:
            store (BaseEventStore): Хранилище базовых записей.
            changes (BaseChangeChannel | None): Канал уведомлений об изменениях.
            max_steps (int): Предел шагов раскрытия серии.
        """
        self.store = store
        self.changes = changes
        self.max_steps = max_steps

    # ------------------------------------------------------------------ #
    #                              Reads                                 #
    # ------------------------------------------------------------------ #

    async def load_window(self, user_id: str, window: Window) -> List[Event]:
        """
        Базовые записи окна + сгенерированные вхождения.

        Raises:
            EventStoreError: Если хранилище не ответило; решение о показе
                ошибки остаётся за вызывающим.
        """
        log.debug("Loading window %s..%s for user %s", window.start, window.end, user_id)
        base_events = await self.store.list_events(user_id, window.start, window.end)
        return expand_recurring_events(base_events, window.start, window.end, max_steps=self.max_steps)

    async def search(self, user_id: str, query: str, limit: int = SEARCH_LIMIT) -> List[Event]:
        """Базовые записи, чей заголовок содержит ``query``; ошибки хранилища пробрасываются."""
        text = query.strip()
        if len(text) < SEARCH_MIN_LENGTH:
            return []
        return await self.store.search_events(user_id, text, limit)

    # ------------------------------------------------------------------ #
    #                             Mutations                              #
    # ------------------------------------------------------------------ #

    async def create_event(self, user_id: str, data: EventIn) -> MutationResult:
        try:
            event = await self.store.add_event(user_id, data)
        except EventStoreError as exc:
            log.warning("Create rejected for user %s: %s", user_id, exc)
            return _failed("Could not create event")
        await self._publish(user_id, "INSERT")
        return MutationResult(ok=True, notice=Notice(level="success", message="Event created!"), event=event)

    async def update_event(self, user_id: str, event_id: str, data: EventIn) -> MutationResult:
        """
        Правка вхождения = правка всей серии: id разворачивается в id
        базовой записи, и её поля перезаписываются целиком.
        """
        ref = parse_event_ref(event_id)
        target = ref.real_id
        if isinstance(ref, OccurrenceRef):
            log.info("Update of occurrence %s redirected to series %s", event_id, target)
        try:
            event = await self.store.update_event(user_id, target, data)
        except EventStoreError as exc:
            log.warning("Update of %s rejected for user %s: %s", target, user_id, exc)
            return _failed("Could not update event")
        if event is None:
            return _failed("Event not found", not_found=True)
        await self._publish(user_id, "UPDATE")
        return MutationResult(ok=True, notice=Notice(level="success", message="Event updated!"), event=event)

    async def delete_event(self, user_id: str, event_id: str) -> MutationResult:
        """Удаление любого вхождения удаляет всю серию."""
        ref = parse_event_ref(event_id)
        target = ref.real_id
        if isinstance(ref, OccurrenceRef):
            log.info("Delete of occurrence %s redirected to series %s", event_id, target)
        try:
            deleted = await self.store.delete_event(user_id, target)
        except EventStoreError as exc:
            log.warning("Delete of %s rejected for user %s: %s", target, user_id, exc)
            return _failed("Could not delete event")
        if not deleted:
            return _failed("Event not found", not_found=True)
        await self._publish(user_id, "DELETE")
        return MutationResult(ok=True, notice=Notice(level="success", message="Event deleted!"))

    async def save_event(self, user_id: str, data: EventIn, existing_id: Optional[str] = None) -> MutationResult:
        """Создать или обновить - как форма события с необязательным id."""
        if existing_id:
            return await self.update_event(user_id, existing_id, data)
        return await self.create_event(user_id, data)

    async def _publish(self, user_id: str, action: str) -> None:
        if self.changes is None:
            return
        await self.changes.publish(user_id, EVENTS_TABLE, action)


def _failed(message: str, not_found: bool = False) -> MutationResult:
    return MutationResult(ok=False, notice=Notice(level="error", message=message), not_found=not_found)


__all__ = ["EVENTS_TABLE", "SEARCH_MIN_LENGTH", "SEARCH_LIMIT", "CalendarService"]
