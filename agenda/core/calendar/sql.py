# agenda/core/calendar/sql.py

"""Event store on top of SQLAlchemy (AsyncSession)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.config import settings

from .base import BaseEventStore, EventStoreError
from .dates import ensure_utc
from .models import CalendarEventRow
from .schemas import Event, EventIn

log = logging.getLogger(__name__)


class SqlEventStore(BaseEventStore):
    """
    Асинхронное хранилище событий в реляционной БД.
    Использует внедрение зависимостей (DI) для получения AsyncSession.
    Каждая запись коммитится сразу: уведомление об изменении уходит
    только после того, как данные видны другим сессиям.
    """

    name: str = "sql"

    def __init__(self, db_session: AsyncSession) -> None:
        self.db: AsyncSession = db_session

    async def list_events(self, user_id: str, start_dt: datetime, end_dt: datetime) -> List[Event]:
        start_dt, end_dt = ensure_utc(start_dt), ensure_utc(end_dt)
        log.debug("Listing events for user %s between %s and %s", user_id, start_dt, end_dt)
        stmt = (
            select(CalendarEventRow)
            .where(CalendarEventRow.user_id == user_id)
            .where(CalendarEventRow.start_time >= start_dt)
            .where(CalendarEventRow.start_time <= end_dt)
            .order_by(CalendarEventRow.start_time, CalendarEventRow.id)
            # долгоживущая сессия не должна отдавать устаревшие объекты из identity map
            .execution_options(populate_existing=True)
        )
        try:
            rows = (await self.db.scalars(stmt)).all()
        except SQLAlchemyError as exc:
            log.exception("Failed to list events for user %s", user_id)
            raise EventStoreError("Could not load events") from exc
        log.debug("Found %d events for user %s", len(rows), user_id)
        return [Event.model_validate(row) for row in rows]

    async def get_event(self, user_id: str, event_id: str) -> Optional[Event]:
        try:
            row = await self._get_row(user_id, event_id)
        except SQLAlchemyError as exc:
            log.exception("Failed to get event id=%s", event_id)
            raise EventStoreError("Could not load event") from exc
        return Event.model_validate(row) if row else None

    async def search_events(self, user_id: str, query: str, limit: int = 5) -> List[Event]:
        # % и _ в запросе - обычные символы, а не шаблоны LIKE
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        stmt = (
            select(CalendarEventRow)
            .where(CalendarEventRow.user_id == user_id)
            .where(CalendarEventRow.title.ilike(f"%{escaped}%", escape="\\"))
            .order_by(CalendarEventRow.start_time, CalendarEventRow.id)
            .limit(limit)
        )
        try:
            rows = (await self.db.scalars(stmt)).all()
        except SQLAlchemyError as exc:
            log.exception("Failed to search events for user %s", user_id)
            raise EventStoreError("Could not search events") from exc
        log.debug("Search %r for user %s matched %d events", query, user_id, len(rows))
        return [Event.model_validate(row) for row in rows]

    async def add_event(self, user_id: str, data: EventIn) -> Event:
        log.info("Creating event for user %s: title='%s', start=%s", user_id, data.title, data.start_time.isoformat())
        row = CalendarEventRow(user_id=user_id)
        _apply(row, data)
        try:
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as exc:
            log.exception("Failed to create event for user %s", user_id)
            await self.db.rollback()
            raise EventStoreError("Could not create event") from exc
        log.info("Created event id=%s", row.id)
        return Event.model_validate(row)

    async def update_event(self, user_id: str, event_id: str, data: EventIn) -> Optional[Event]:
        try:
            row = await self._get_row(user_id, event_id)
            if row is None:
                log.warning("Event id=%s not found for user %s to update.", event_id, user_id)
                return None
            _apply(row, data)
            self.db.add(row)
            await self.db.commit()
            await self.db.refresh(row)
        except SQLAlchemyError as exc:
            log.exception("Failed to update event id=%s", event_id)
            await self.db.rollback()
            raise EventStoreError("Could not update event") from exc
        log.info("Updated event id=%s", event_id)
        return Event.model_validate(row)

    async def delete_event(self, user_id: str, event_id: str) -> bool:
        stmt = (
            delete(CalendarEventRow)
            .where(CalendarEventRow.id == event_id)
            .where(CalendarEventRow.user_id == user_id)
        )
        try:
            result = await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as exc:
            log.exception("Failed to delete event id=%s", event_id)
            await self.db.rollback()
            raise EventStoreError("Could not delete event") from exc
        if result.rowcount:
            log.info("Deleted event id=%s", event_id)
            return True
        log.warning("Event id=%s not found for deletion.", event_id)
        return False

    async def _get_row(self, user_id: str, event_id: str) -> Optional[CalendarEventRow]:
        stmt = (
            select(CalendarEventRow)
            .where(CalendarEventRow.id == event_id)
            .where(CalendarEventRow.user_id == user_id)
        )
        return (await self.db.scalars(stmt)).one_or_none()


def _apply(row: CalendarEventRow, data: EventIn) -> None:
    # Полная перезапись: правка любого вхождения меняет всю серию
    row.title = data.title
    row.description = data.description
    row.start_time = data.start_time
    row.end_time = data.end_time
    row.color = data.color or settings.DEFAULT_EVENT_COLOR
    row.all_day = data.all_day
    row.event_type = data.event_type
    row.client_id = data.client_id
    row.recurrence = data.recurrence.value if data.recurrence else None
    row.recurrence_end = data.recurrence_end


__all__ = ["SqlEventStore"]
