# agenda/core/calendar/dates.py
"""
Мелкие помощники для работы с датами календаря.

Все мгновенные значения внутри пакета - aware ``datetime`` в UTC.
Наивные значения (SQLite возвращает именно такие) считаются UTC.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone

END_OF_DAY = time(23, 59, 59, 999999)


def ensure_utc(value: datetime) -> datetime:
    """Naive -> UTC, aware -> converted to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(day: date | datetime) -> datetime:
    if isinstance(day, datetime):
        day = ensure_utc(day).date()
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date | datetime) -> datetime:
    if isinstance(day, datetime):
        day = ensure_utc(day).date()
    return datetime.combine(day, END_OF_DAY, tzinfo=timezone.utc)


def window_bound(value: date | datetime, *, upper: bool) -> datetime:
    """
    Граница окна: ``datetime`` нормализуется к UTC, голая ``date``
    раскрывается в начало (нижняя граница) или конец (верхняя) дня.
    """
    if isinstance(value, datetime):
        return ensure_utc(value)
    return end_of_day(value) if upper else start_of_day(value)


__all__ = ["END_OF_DAY", "ensure_utc", "start_of_day", "end_of_day", "window_bound"]
