# agenda/core/calendar/occurrence_id.py
"""
Идентичность вхождений повторяющихся событий.

Сгенерированное вхождение показывается под синтетическим id
``<base_id>#<YYYY-MM-DDTHH:MM:SS.mmmZ>``. Внутри кода работаем с
типизированными ссылками (``BaseRef`` / ``OccurrenceRef``), строка
собирается и разбирается только на границе с UI / API.

Разделитель ``#`` не входит ни в алфавит ISO-8601 (``[0-9TZ:.-]``),
ни в алфавит uuid, поэтому разбор по первому вхождению однозначен.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from .dates import ensure_utc

SEPARATOR = "#"


@dataclass(frozen=True)
class BaseRef:
    """Ссылка на саму сохранённую запись."""

    id: str

    @property
    def real_id(self) -> str:
        return self.id

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class OccurrenceRef:
    """Ссылка на сгенерированное вхождение серии."""

    base_id: str
    # None, если хвост id не разобрался как ISO-время (id пришёл снаружи)
    instant: Optional[datetime]
    raw_suffix: str = ""

    @property
    def real_id(self) -> str:
        return self.base_id

    def __str__(self) -> str:
        if self.instant is None:
            return f"{self.base_id}{SEPARATOR}{self.raw_suffix}"
        return make_occurrence_id(self.base_id, self.instant)


EventRef = Union[BaseRef, OccurrenceRef]


def format_instant(instant: datetime) -> str:
    """
    ISO-строка в стиле ``Date.toISOString()``: UTC, миллисекунды, суффикс Z.

    2026-02-15 09:00 UTC -> ``2026-02-15T09:00:00.000Z``
    """
    utc = ensure_utc(instant)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_instant(text: str) -> Optional[datetime]:
    try:
        return ensure_utc(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        return None


def make_occurrence_id(base_id: str, instant: datetime) -> str:
    if SEPARATOR in base_id:
        raise ValueError(f"Base event id must not contain {SEPARATOR!r}: {base_id!r}")
    return f"{base_id}{SEPARATOR}{format_instant(instant)}"


def parse_event_ref(event_id: str) -> EventRef:
    """Разобрать display-id в типизированную ссылку (по ПЕРВОМУ разделителю)."""
    base_id, sep, suffix = event_id.partition(SEPARATOR)
    if not sep:
        return BaseRef(event_id)
    return OccurrenceRef(base_id=base_id, instant=parse_instant(suffix), raw_suffix=suffix)


def is_synthetic(event_id: str) -> bool:
    return SEPARATOR in event_id


def real_id(event_id: str) -> str:
    """
    Вернуть id базовой записи.

    Args:
        event_id (str): id записи или синтетический id вхождения.

    Returns:
        str: подстрока до первого ``#``, либо сам id без изменений.
    """
    return parse_event_ref(event_id).real_id


__all__ = [
    "SEPARATOR", "BaseRef", "OccurrenceRef", "EventRef",
    "format_instant", "parse_instant", "make_occurrence_id",
    "parse_event_ref", "is_synthetic", "real_id",
]
