# agenda/core/calendar/export.py
"""
Выгрузка вхождений окна в CSV (таблица «как на экране»).

Строки строятся из уже раскрытых вхождений, поэтому повторяющееся
событие попадает в файл столько раз, сколько оно видно в окне.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable, List

from .constants import event_type_label
from .dates import ensure_utc
from .schemas import Event

EXPORT_HEADER = ["Title", "Date", "Start", "End", "Type", "Description"]


def export_row(event: Event) -> List[str]:
    start = ensure_utc(event.start_time)
    end = ensure_utc(event.end_time)
    return [
        event.title,
        start.strftime("%Y-%m-%d"),
        "All day" if event.all_day else start.strftime("%H:%M"),
        "-" if event.all_day else end.strftime("%H:%M"),
        event_type_label(event.event_type),
        event.description or "",
    ]


def export_csv(occurrences: Iterable[Event]) -> str:
    # BOM, чтобы Excel открыл UTF-8 без вопросов
    output = io.StringIO()
    output.write("\ufeff")
    writer = csv.writer(output, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    for event in occurrences:
        writer.writerow(export_row(event))
    return output.getvalue()


__all__ = ["EXPORT_HEADER", "export_row", "export_csv"]
