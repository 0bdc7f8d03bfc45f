# agenda/core/calendar/view.py
"""
Раскладка вхождений по видам календаря (месяц / неделя / день).

Чистые преобразования: «сегодня» приходит параметром, часы читает
только API-слой.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel

from .dates import ensure_utc
from .schemas import Event, Window

MONDAY = 0
SUNDAY = 6

# Сетка дневного вида
START_HOUR = 6
END_HOUR = 22
HOUR_HEIGHT = 72
MIN_BLOCK_HEIGHT = 30
# Недельный вид плотнее
WEEK_HOUR_HEIGHT = 60
WEEK_MIN_BLOCK_HEIGHT = 24


def _as_date(day: date | datetime) -> date:
    if isinstance(day, datetime):
        return ensure_utc(day).date()
    return day


def week_start_date(day: date | datetime, week_start: int = SUNDAY) -> date:
    d = _as_date(day)
    return d - timedelta(days=(d.weekday() - week_start) % 7)


def month_window(day: date | datetime, week_start: int = SUNDAY) -> Window:
    """Месяц, дополненный до целых отображаемых недель."""
    first = _as_date(day).replace(day=1)
    last = first + relativedelta(months=1) - timedelta(days=1)
    start = week_start_date(first, week_start)
    end = week_start_date(last, week_start) + timedelta(days=6)
    return Window(start=start, end=end)


def week_window(day: date | datetime, week_start: int = SUNDAY) -> Window:
    start = week_start_date(day, week_start)
    return Window(start=start, end=start + timedelta(days=6))


def day_window(day: date | datetime) -> Window:
    d = _as_date(day)
    return Window(start=d, end=d)


def events_on_day(occurrences: Iterable[Event], day: date | datetime) -> List[Event]:
    d = _as_date(day)
    return [ev for ev in occurrences if ensure_utc(ev.start_time).date() == d]


def split_all_day(occurrences: Iterable[Event]) -> Tuple[List[Event], List[Event]]:
    """-> (all_day, timed), порядок внутри групп сохраняется."""
    all_day: List[Event] = []
    timed: List[Event] = []
    for ev in occurrences:
        (all_day if ev.all_day else timed).append(ev)
    return all_day, timed


class DayCell(BaseModel):
    day: date
    in_month: bool
    is_today: bool
    events: List[Event]
    # сколько событий не поместилось в ячейку («+N ещё»)
    overflow: int = 0


def month_grid(
    occurrences: Iterable[Event],
    day: date | datetime,
    today: Optional[date] = None,
    week_start: int = SUNDAY,
    max_per_cell: int = 3,
) -> List[List[DayCell]]:
    """
    Сетка месяца: список недель по 7 ячеек.

    Args:
        occurrences (Iterable[Event]): Вхождения окна ``month_window(day)``.
        day (date | datetime): Любой день отображаемого месяца.
        today (date | None): Для подсветки текущего дня.
        week_start (int): Первый день недели (0 = понедельник, 6 = воскресенье).
        max_per_cell (int): Сколько событий показывать в ячейке.

    Returns:
        List[List[DayCell]]: Недели сетки.
    """
    anchor = _as_date(day)
    window = month_window(anchor, week_start)
    by_day: dict[date, List[Event]] = {}
    for ev in occurrences:
        by_day.setdefault(ensure_utc(ev.start_time).date(), []).append(ev)

    weeks: List[List[DayCell]] = []
    current = window.start.date()
    last = window.end.date()
    while current <= last:
        week: List[DayCell] = []
        for _ in range(7):
            day_events = by_day.get(current, [])
            week.append(
                DayCell(
                    day=current,
                    in_month=(current.year, current.month) == (anchor.year, anchor.month),
                    is_today=current == today,
                    events=day_events[:max_per_cell],
                    overflow=max(len(day_events) - max_per_cell, 0),
                )
            )
            current += timedelta(days=1)
        weeks.append(week)
    return weeks


class TimelineBlock(BaseModel):
    event: Event
    top: float
    height: float


def timeline(
    occurrences: Iterable[Event],
    start_hour: int = START_HOUR,
    end_hour: int = END_HOUR,
    hour_height: float = HOUR_HEIGHT,
    min_height: float = MIN_BLOCK_HEIGHT,
) -> List[TimelineBlock]:
    """Позиции (в пикселях) событий с временем на сетке дня; all-day пропускаются."""
    per_minute = hour_height / 60
    blocks: List[TimelineBlock] = []
    for ev in occurrences:
        if ev.all_day:
            continue
        start = ensure_utc(ev.start_time)
        start_min = start.hour * 60 + start.minute
        duration_min = (ev.end_time - ev.start_time).total_seconds() / 60
        end_min = min(start_min + duration_min, end_hour * 60)
        blocks.append(
            TimelineBlock(
                event=ev,
                top=(start_min - start_hour * 60) * per_minute,
                height=max((end_min - start_min) * per_minute, min_height),
            )
        )
    return blocks


__all__ = [
    "MONDAY", "SUNDAY", "START_HOUR", "END_HOUR", "HOUR_HEIGHT", "MIN_BLOCK_HEIGHT",
    "WEEK_HOUR_HEIGHT", "WEEK_MIN_BLOCK_HEIGHT", "week_start_date", "month_window", "week_window", "day_window",
    "events_on_day", "split_all_day", "DayCell", "month_grid", "TimelineBlock", "timeline",
]
