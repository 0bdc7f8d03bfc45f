# agenda/core/calendar/schemas.py
"""
Pydantic-схемы календарных событий.

Используются в:
    * agenda/api/v1/calendar.py          ― публичный REST-эндпоинт
    * core.calendar.recurrence           ― раскрытие повторяющихся событий
    * core.calendar.<store>.py           ― маппинг строк хранилища → Event
"""

from __future__ import annotations

import enum
from datetime import date, datetime, time, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .dates import end_of_day, ensure_utc, start_of_day, window_bound
from .occurrence_id import is_synthetic

EventType = Literal["event", "meeting", "deadline"]


class Recurrence(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: object) -> Optional["Recurrence"]:
        """Мягкий разбор: всё, что не является известным правилом, → None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class EventIn(BaseModel):
    """Событие, приходящее от пользователя (ещё без ID)."""

    title: str = Field(..., min_length=1, max_length=255, description="Заголовок события")
    description: Optional[str] = Field(None, description="Описание")
    start_time: datetime = Field(..., description="Дата/время начала события (UTC)")
    end_time: datetime = Field(..., description="Дата/время окончания события (UTC)")
    color: Optional[str] = Field(None, max_length=16, description="Color tag, e.g. #6366f1")
    all_day: bool = False
    event_type: EventType = "event"
    client_id: Optional[str] = Field(None, description="Linked client reference")
    recurrence: Optional[Recurrence] = None
    recurrence_end: Optional[datetime] = Field(None, description="Последняя допустимая дата повторения (включительно)")

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("description", "client_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("recurrence", mode="before")
    @classmethod
    def _empty_recurrence(cls, value):
        # Форма присылает "" для «не повторять»
        if value in ("", "none"):
            return None
        return value

    @field_validator("recurrence_end", mode="before")
    @classmethod
    def _recurrence_end(cls, value):
        if value in (None, ""):
            return None
        if isinstance(value, str) and len(value) == 10:
            value = date.fromisoformat(value)
        if isinstance(value, date) and not isinstance(value, datetime):
            return datetime.combine(value, time.min, tzinfo=timezone.utc)
        return value

    @field_validator("recurrence_end")
    @classmethod
    def _recurrence_end_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @model_validator(mode="after")
    def _normalize(self) -> "EventIn":
        if self.all_day:
            self.start_time = start_of_day(self.start_time).replace(microsecond=0)
            self.end_time = end_of_day(self.end_time).replace(microsecond=0)
        if self.end_time < self.start_time:
            raise ValueError("end_time must not be earlier than start_time")
        return self


class Event(BaseModel):
    """
    Событие, сохранённое в хранилище, или его вхождение в окне.

    Прочитанные строки повторно не валидируются: кривое правило
    повторения или нулевая длительность должны дожить до раскрытия.
    """

    id: str = Field(..., description="Идентификатор записи или синтетический id вхождения")
    user_id: str
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    color: str = "#6366f1"
    all_day: bool = False
    event_type: Optional[str] = "event"
    client_id: Optional[str] = None
    recurrence: Optional[str] = None
    recurrence_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}

    @field_validator("start_time", "end_time")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @field_validator("recurrence_end", "created_at", "updated_at")
    @classmethod
    def _optional_to_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @property
    def is_generated(self) -> bool:
        return is_synthetic(self.id)


class Window(BaseModel):
    """Включительный интервал [start, end], который запрашивает вид календаря."""

    start: datetime
    end: datetime

    @field_validator("start", mode="before")
    @classmethod
    def _start(cls, value):
        return window_bound(_maybe_date(value), upper=False)

    @field_validator("end", mode="before")
    @classmethod
    def _end(cls, value):
        return window_bound(_maybe_date(value), upper=True)

    @model_validator(mode="after")
    def _ordered(self) -> "Window":
        if self.end < self.start:
            raise ValueError("window end must not be earlier than window start")
        return self

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_utc(instant) <= self.end


def _maybe_date(value):
    if isinstance(value, str) and len(value) == 10:
        return date.fromisoformat(value)
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value


class Notice(BaseModel):
    """Уведомление для пользовательского слоя (аналог toast)."""

    level: Literal["success", "error"]
    message: str


class MutationResult(BaseModel):
    ok: bool
    notice: Notice
    event: Optional[Event] = None
    not_found: bool = False


__all__: list[str] = [
    "EventType", "Recurrence", "EventIn", "Event", "Window", "Notice", "MutationResult",
]
