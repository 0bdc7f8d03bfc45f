# agenda/core/calendar/memory.py

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from agenda.config import settings

from .base import BaseEventStore
from .dates import ensure_utc
from .schemas import Event, EventIn

log = logging.getLogger(__name__)


class InMemoryEventStore(BaseEventStore):
    """
    Хранилище событий в оперативной памяти (dev / тесты).
    Имитирует асинхронное поведение.
    """

    name: str = "memory"

    def __init__(self) -> None:
        self._events: Dict[str, Event] = {}
        log.info("Initialized InMemoryEventStore")

    async def list_events(self, user_id: str, start_dt: datetime, end_dt: datetime) -> List[Event]:
        start_dt, end_dt = ensure_utc(start_dt), ensure_utc(end_dt)
        log.debug("Memory: Listing events for user %s between %s and %s", user_id, start_dt, end_dt)
        found = [
            ev for ev in self._events.values()
            if ev.user_id == user_id and start_dt <= ev.start_time <= end_dt
        ]
        found.sort(key=lambda ev: (ev.start_time, ev.id))
        log.debug("Memory: Found %d events for user %s", len(found), user_id)
        return [ev.model_copy() for ev in found]

    async def get_event(self, user_id: str, event_id: str) -> Optional[Event]:
        ev = self._events.get(event_id)
        if ev is None or ev.user_id != user_id:
            return None
        return ev.model_copy()

    async def search_events(self, user_id: str, query: str, limit: int = 5) -> List[Event]:
        needle = query.casefold()
        found = [
            ev for ev in self._events.values()
            if ev.user_id == user_id and needle in ev.title.casefold()
        ]
        found.sort(key=lambda ev: (ev.start_time, ev.id))
        log.debug("Memory: Search %r for user %s matched %d events", query, user_id, len(found))
        return [ev.model_copy() for ev in found[:limit]]

    async def add_event(self, user_id: str, data: EventIn) -> Event:
        log.info("Memory: Adding event for user %s: '%s'", user_id, data.title)
        now = datetime.now(timezone.utc)
        new_event = Event(
            id=str(uuid.uuid4()),
            user_id=user_id,
            created_at=now,
            updated_at=now,
            **_fields(data),
        )
        self._events[new_event.id] = new_event
        log.info("Memory: Event added with id %s", new_event.id)
        return new_event.model_copy()

    async def update_event(self, user_id: str, event_id: str, data: EventIn) -> Optional[Event]:
        current = self._events.get(event_id)
        if current is None or current.user_id != user_id:
            log.warning("Memory: Event id %s not found for update", event_id)
            return None
        updated = current.model_copy(update={**_fields(data), "updated_at": datetime.now(timezone.utc)})
        self._events[event_id] = updated
        log.info("Memory: Event id %s updated", event_id)
        return updated.model_copy()

    async def delete_event(self, user_id: str, event_id: str) -> bool:
        log.info("Memory: Deleting event id %s for user %s", event_id, user_id)
        current = self._events.get(event_id)
        if current is None or current.user_id != user_id:
            log.warning("Memory: Event id %s not found for deletion", event_id)
            return False
        del self._events[event_id]
        return True


def _fields(data: EventIn) -> dict:
    values = data.model_dump()
    values["color"] = data.color or settings.DEFAULT_EVENT_COLOR
    values["recurrence"] = data.recurrence.value if data.recurrence else None
    return values


__all__ = ["InMemoryEventStore"]
