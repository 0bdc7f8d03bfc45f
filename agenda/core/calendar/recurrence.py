# agenda/core/calendar/recurrence.py
"""
Раскрытие повторяющихся событий в окне календаря.

Чистая функция: никаких обращений к часам, БД или настройкам. Границы
окна и предел шагов приходят параметрами, поэтому одинаковый вход
всегда даёт одинаковый упорядоченный список.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Dict, Iterable, Iterator, List, Optional

from dateutil.relativedelta import relativedelta

from .dates import ensure_utc, window_bound
from .occurrence_id import SEPARATOR, OccurrenceRef
from .schemas import Event, Recurrence

log = logging.getLogger(__name__)

# Предохранитель от бесконечных серий. Поднимать можно, убирать нельзя.
MAX_RECURRENCE_STEPS = 500

# Курсор сдвигается на один шаг от ПРЕДЫДУЩЕГО значения: ежемесячное
# событие 31-го числа даёт 28 февраля, а дальше 28-е число каждого месяца.
_STEPS: Dict[Recurrence, relativedelta] = {
    Recurrence.DAILY: relativedelta(days=1),
    Recurrence.WEEKLY: relativedelta(weeks=1),
    Recurrence.MONTHLY: relativedelta(months=1),
}


def iter_generated(
    event: Event,
    window_start: datetime,
    window_end: datetime,
    max_steps: int = MAX_RECURRENCE_STEPS,
) -> Iterator[Event]:
    """
    Сгенерированные вхождения одного события (без исходного).

    Args:
        event (Event): Базовая запись.
        window_start (datetime): Начало окна (UTC, включительно).
        window_end (datetime): Конец окна (UTC, включительно).
        max_steps (int): Максимум шагов курсора, включая пропущенные до начала окна.

    Yields:
        Event: Копия события с синтетическим id и сдвинутыми временами.
    """
    rule = Recurrence.parse(event.recurrence)
    if rule is None:
        if event.recurrence:
            log.debug("Event %s: unknown recurrence %r treated as none", event.id, event.recurrence)
        return
    if SEPARATOR in event.id:
        log.warning("Event %s: id contains %r, recurrence not expanded", event.id, SEPARATOR)
        return

    origin = ensure_utc(event.start_time)
    # Длительность фиксируется один раз, даже нулевая или отрицательная
    duration = ensure_utc(event.end_time) - origin
    limit = window_end
    if event.recurrence_end is not None:
        limit = min(limit, ensure_utc(event.recurrence_end))

    step = _STEPS[rule]
    cursor = origin
    for _ in range(max_steps):
        cursor = cursor + step
        if cursor > limit:
            return
        if cursor < window_start:
            continue
        yield event.model_copy(
            update={
                "id": str(OccurrenceRef(base_id=event.id, instant=cursor)),
                "start_time": cursor,
                "end_time": cursor + duration,
            }
        )
    log.debug("Event %s: recurrence stopped at the %d-step cap", event.id, max_steps)


def expand_recurring_events(
    events: Iterable[Event],
    window_start: date | datetime,
    window_end: date | datetime,
    max_steps: Optional[int] = None,
) -> List[Event]:
    """
    Развернуть события в список вхождений окна ``[window_start, window_end]``.

    Каждое событие попадает в результат один раз без изменений (даже если
    его начало вне окна), следом идут его сгенерированные вхождения.
    Голые даты раскрываются в начало / конец дня.
    """
    cap = MAX_RECURRENCE_STEPS if max_steps is None else max_steps
    if cap <= 0:
        raise ValueError("max_steps must be a positive integer")
    start = window_bound(window_start, upper=False)
    end = window_bound(window_end, upper=True)

    expanded: List[Event] = []
    for event in events:
        expanded.append(event)
        expanded.extend(iter_generated(event, start, end, cap))
    log.debug("Expanded occurrences for window %s..%s: %d", start.isoformat(), end.isoformat(), len(expanded))
    return expanded


__all__ = ["MAX_RECURRENCE_STEPS", "iter_generated", "expand_recurring_events"]
