"""
Calendar subsystem package.

• ``Event`` / ``EventIn`` – Pydantic-модели события (см. schemas.py).
• ``BaseEventStore`` – абстрактный интерфейс хранилища.
• ``expand_recurring_events()`` – раскрытие серий в окне.
• ``CalendarService`` – чтение окна и мутации через id базовой записи.
• ``CalendarSession`` – состояние одного вида календаря.
• ``get_event_store()`` – фабрика, возвращающая хранилище по имени
  или из ``settings.EVENT_STORE``.
"""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from agenda.config import settings
from .base import BaseEventStore, EventStoreError  # noqa: F401 (экспорт в __all__)
from .memory import InMemoryEventStore
from .occurrence_id import is_synthetic, make_occurrence_id, parse_event_ref, real_id  # noqa: F401
from .recurrence import expand_recurring_events  # noqa: F401
from .schemas import Event, EventIn, MutationResult, Notice, Recurrence, Window  # noqa: F401
from .service import CalendarService  # noqa: F401
from .session import CalendarSession, NoticeCallback  # noqa: F401
from .sql import SqlEventStore

log = logging.getLogger(__name__)

# Один in-memory store на процесс, иначе данные терялись бы между запросами
_memory_store: Optional[InMemoryEventStore] = None


def get_event_store(db_session: AsyncSession | None = None, name: str | None = None) -> BaseEventStore:
    """
    Вернуть хранилище событий.

    • ``name`` – явное имя (case-insensitive).
    • Если не передано, берём из ``settings.EVENT_STORE``.
    • Для ``sql`` нужна активная ``db_session``.
    """
    global _memory_store
    store_key = (name or settings.EVENT_STORE).lower()
    if store_key == "memory":
        if _memory_store is None:
            _memory_store = InMemoryEventStore()
        return _memory_store
    if store_key == "sql":
        if db_session is None:
            raise ValueError("SQL event store requires a database session")
        return SqlEventStore(db_session)
    raise ValueError(f"Unknown event store: {store_key}")


__all__: list[str] = [
    "Event", "EventIn", "MutationResult", "Notice", "Recurrence", "Window",
    "BaseEventStore", "EventStoreError", "InMemoryEventStore", "SqlEventStore",
    "CalendarService", "CalendarSession", "NoticeCallback", "expand_recurring_events",
    "is_synthetic", "make_occurrence_id", "parse_event_ref", "real_id",
    "get_event_store",
]
