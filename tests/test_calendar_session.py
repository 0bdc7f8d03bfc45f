import asyncio
from datetime import date, datetime, timedelta, timezone
from typing import List

import pytest

from agenda.core.calendar.base import EventStoreError
from agenda.core.calendar.changes import InMemoryChangeChannel
from agenda.core.calendar.memory import InMemoryEventStore
from agenda.core.calendar.schemas import EventIn, Window
from agenda.core.calendar.service import EVENTS_TABLE, CalendarService
from agenda.core.calendar import CalendarSession
from agenda.core.calendar.session import MAX_NOTICES

UTC = timezone.utc
JANUARY = Window(start=date(2026, 1, 1), end=date(2026, 1, 31))
FEBRUARY = Window(start=date(2026, 2, 1), end=date(2026, 2, 28))


def _payload(title: str, start: datetime) -> EventIn:
    return EventIn(title=title, start_time=start, end_time=start + timedelta(hours=1))


class GatedStore(InMemoryEventStore):
    """Каждый запрос окна ждёт, пока тест не откроет его «ворота»."""

    def __init__(self) -> None:
        super().__init__()
        self.gates: List[asyncio.Event] = []

    async def list_events(self, user_id, start_dt, end_dt):
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return await super().list_events(user_id, start_dt, end_dt)


class FlakyStore(InMemoryEventStore):
    def __init__(self) -> None:
        super().__init__()
        self.fail_reads = False

    async def list_events(self, user_id, start_dt, end_dt):
        if self.fail_reads:
            raise EventStoreError("store offline")
        return await super().list_events(user_id, start_dt, end_dt)


@pytest.mark.asyncio
async def test_show_loads_window():
    store = InMemoryEventStore()
    await store.add_event("u1", _payload("Jan", datetime(2026, 1, 10, 9, tzinfo=UTC)))
    session = CalendarSession(CalendarService(store), "u1")

    assert await session.show(JANUARY) is True
    assert [ev.title for ev in session.occurrences] == ["Jan"]
    assert session.loading is False


@pytest.mark.asyncio
async def test_stale_response_is_discarded():
    store = GatedStore()
    await store.add_event("u1", _payload("Jan", datetime(2026, 1, 10, 9, tzinfo=UTC)))
    await store.add_event("u1", _payload("Feb", datetime(2026, 2, 10, 9, tzinfo=UTC)))
    session = CalendarSession(CalendarService(store), "u1")

    first = asyncio.create_task(session.show(JANUARY))
    await asyncio.sleep(0)
    second = asyncio.create_task(session.show(FEBRUARY))
    await asyncio.sleep(0)
    assert session.generation == 2

    store.gates[1].set()
    assert await second is True
    store.gates[0].set()
    assert await first is False

    assert session.window == FEBRUARY
    assert [ev.title for ev in session.occurrences] == ["Feb"]


@pytest.mark.asyncio
async def test_failed_fetch_keeps_previous_list_and_notifies():
    store = FlakyStore()
    await store.add_event("u1", _payload("Jan", datetime(2026, 1, 10, 9, tzinfo=UTC)))
    received = []
    session = CalendarSession(CalendarService(store), "u1", on_notice=received.append)
    await session.show(JANUARY)

    store.fail_reads = True
    assert await session.refresh() is False

    assert [ev.title for ev in session.occurrences] == ["Jan"]
    assert received[-1].level == "error"
    assert received[-1].message == "Could not load events"
    assert session.loading is False


@pytest.mark.asyncio
async def test_mutations_notify_and_refetch():
    store = InMemoryEventStore()
    session = CalendarSession(CalendarService(store), "u1")
    await session.show(JANUARY)

    created = await session.save(_payload("Planning", datetime(2026, 1, 20, 9, tzinfo=UTC)))
    assert [ev.title for ev in session.occurrences] == ["Planning"]

    await session.delete(created.event.id)
    assert session.occurrences == []
    assert [n.message for n in session.notices] == ["Event created!", "Event deleted!"]


@pytest.mark.asyncio
async def test_failed_mutation_leaves_list_untouched():
    store = InMemoryEventStore()
    await store.add_event("u1", _payload("Jan", datetime(2026, 1, 10, 9, tzinfo=UTC)))
    session = CalendarSession(CalendarService(store), "u1")
    await session.show(JANUARY)
    before = session.generation

    result = await session.delete("missing-id")

    assert not result.ok
    assert session.generation == before
    assert [ev.title for ev in session.occurrences] == ["Jan"]


@pytest.mark.asyncio
async def test_change_notification_triggers_refetch():
    store = InMemoryEventStore()
    channel = InMemoryChangeChannel()
    session = CalendarSession(CalendarService(store), "u1")
    await session.show(JANUARY)
    await session.attach(channel)

    # Запись из «другого клиента» мимо сессии
    await store.add_event("u1", _payload("Remote", datetime(2026, 1, 5, 9, tzinfo=UTC)))
    await channel.publish("u1", EVENTS_TABLE, "INSERT")
    assert [ev.title for ev in session.occurrences] == ["Remote"]

    await session.close()
    await store.add_event("u1", _payload("Later", datetime(2026, 1, 6, 9, tzinfo=UTC)))
    await channel.publish("u1", EVENTS_TABLE, "INSERT")
    assert [ev.title for ev in session.occurrences] == ["Remote"]


@pytest.mark.asyncio
async def test_refresh_without_window_is_noop():
    session = CalendarSession(CalendarService(InMemoryEventStore()), "u1")
    assert await session.refresh() is False
    assert session.generation == 0


@pytest.mark.asyncio
async def test_notice_history_is_bounded():
    session = CalendarSession(CalendarService(InMemoryEventStore()), "u1")

    for _ in range(MAX_NOTICES + 5):
        await session.delete("missing-id")

    assert len(session.notices) == MAX_NOTICES
    assert session.notices[-1].message == "Event not found"
