# agenda/core/calendar/constants.py

"""Display labels for event categories and recurrence rules."""

from __future__ import annotations

from typing import Dict

EVENT_TYPE_LABELS: Dict[str, str] = {
    "event": "Event",
    "meeting": "Meeting",
    "deadline": "Deadline",
}

RECURRENCE_LABELS: Dict[str, str] = {
    "daily": "Daily",
    "weekly": "Weekly",
    "monthly": "Monthly",
}


def event_type_label(event_type: str | None) -> str:
    return EVENT_TYPE_LABELS.get(event_type or "event", EVENT_TYPE_LABELS["event"])


def recurrence_label(recurrence: str | None) -> str | None:
    if not recurrence:
        return None
    return RECURRENCE_LABELS.get(recurrence)


__all__ = [
    "EVENT_TYPE_LABELS", "RECURRENCE_LABELS",
    "event_type_label", "recurrence_label",
]
