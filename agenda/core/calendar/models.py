# agenda/core/calendar/models.py

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from agenda.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CalendarEventRow(Base):
    """
    ORM модель события календаря (таблица ``events``).

    Правило повторения и его конец хранятся только здесь, на базовой
    записи; сгенерированные вхождения в БД не попадают никогда.
    """
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(
        String(64), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # Владелец. Изоляция данных по пользователю обеспечивается фильтром в каждом запросе.
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    color: Mapped[str] = mapped_column(String(16), nullable=False, default="#6366f1")
    all_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # 'event' | 'meeting' | 'deadline'
    event_type: Mapped[Optional[str]] = mapped_column(String(16), nullable=True, default="event")
    client_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    # 'daily' | 'weekly' | 'monthly' | NULL. Не валидируется на уровне БД.
    recurrence: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    recurrence_end: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_events_user_start", "user_id", "start_time"),
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<CalendarEventRow id={self.id!r} user_id={self.user_id!r} "
            f"start='{self.start_time.isoformat()}' recurrence={self.recurrence!r}>"
        )


__all__ = ["CalendarEventRow"]
