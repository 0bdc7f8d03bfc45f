from datetime import date, datetime, timedelta, timezone
from typing import List, Optional

import pytest

from agenda.core.calendar.base import BaseEventStore, EventStoreError
from agenda.core.calendar.changes import InMemoryChangeChannel
from agenda.core.calendar.memory import InMemoryEventStore
from agenda.core.calendar.schemas import Event, EventIn, Window
from agenda.core.calendar.service import EVENTS_TABLE, CalendarService

UTC = timezone.utc


def _payload(**extra) -> EventIn:
    start = extra.pop("start", datetime(2026, 1, 15, 9, tzinfo=UTC))
    title = extra.pop("title", "Review")
    return EventIn(title=title, start_time=start, end_time=start + timedelta(hours=1), **extra)


class RecordingStore(InMemoryEventStore):
    """Запоминает id, с которыми вызывались правка и удаление."""

    def __init__(self) -> None:
        super().__init__()
        self.updated: List[str] = []
        self.deleted: List[str] = []

    async def update_event(self, user_id: str, event_id: str, data: EventIn) -> Optional[Event]:
        self.updated.append(event_id)
        return await super().update_event(user_id, event_id, data)

    async def delete_event(self, user_id: str, event_id: str) -> bool:
        self.deleted.append(event_id)
        return await super().delete_event(user_id, event_id)


class BrokenStore(BaseEventStore):
    name = "broken"

    async def list_events(self, user_id, start_dt, end_dt):
        raise EventStoreError("boom")

    async def get_event(self, user_id, event_id):
        raise EventStoreError("boom")

    async def search_events(self, user_id, query, limit=5):
        raise EventStoreError("boom")

    async def add_event(self, user_id, data):
        raise EventStoreError("boom")

    async def update_event(self, user_id, event_id, data):
        raise EventStoreError("boom")

    async def delete_event(self, user_id, event_id):
        raise EventStoreError("boom")


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def changes() -> InMemoryChangeChannel:
    return InMemoryChangeChannel()


@pytest.fixture
def service(store, changes) -> CalendarService:
    return CalendarService(store, changes=changes)


@pytest.mark.asyncio
async def test_create_and_load_window_with_occurrences(service: CalendarService):
    result = await service.create_event("u1", _payload(recurrence="weekly"))

    assert result.ok and result.notice.level == "success"
    assert result.notice.message == "Event created!"
    assert result.event.color == "#6366f1"

    occurrences = await service.load_window("u1", Window(start=date(2026, 1, 1), end=date(2026, 1, 31)))
    assert [ev.start_time.day for ev in occurrences] == [15, 22, 29]
    assert not occurrences[0].is_generated and occurrences[1].is_generated


@pytest.mark.asyncio
async def test_windows_are_isolated_per_user(service: CalendarService):
    await service.create_event("u1", _payload())

    occurrences = await service.load_window("u2", Window(start=date(2026, 1, 1), end=date(2026, 1, 31)))

    assert occurrences == []


@pytest.mark.asyncio
async def test_delete_of_generated_occurrence_targets_base_record(service, store):
    created = (await service.create_event("u1", _payload(recurrence="monthly"))).event
    synthetic = f"{created.id}#2026-02-15T09:00:00.000Z"

    result = await service.delete_event("u1", synthetic)

    assert result.ok and result.notice.message == "Event deleted!"
    assert store.deleted == [created.id]
    assert await store.get_event("u1", created.id) is None


@pytest.mark.asyncio
async def test_update_of_generated_occurrence_rewrites_series(service, store):
    created = (await service.create_event("u1", _payload(recurrence="daily"))).event
    synthetic = f"{created.id}#2026-01-17T09:00:00.000Z"

    result = await service.update_event("u1", synthetic, _payload(title="Renamed", recurrence="daily"))

    assert result.ok and result.notice.message == "Event updated!"
    assert store.updated == [created.id]
    assert result.event.id == created.id
    # Начало серии не сдвигается к правленому вхождению
    assert result.event.start_time == created.start_time
    assert result.event.title == "Renamed"


@pytest.mark.asyncio
async def test_save_event_dispatches_on_existing_id(service):
    created = await service.save_event("u1", _payload())
    updated = await service.save_event("u1", _payload(title="Again"), existing_id=created.event.id)

    assert created.notice.message == "Event created!"
    assert updated.notice.message == "Event updated!"


@pytest.mark.asyncio
async def test_missing_event_reports_not_found(service):
    result = await service.delete_event("u1", "nope")

    assert not result.ok and result.not_found
    assert result.notice.level == "error"


@pytest.mark.asyncio
async def test_other_users_event_is_not_found(service):
    created = (await service.create_event("u1", _payload())).event

    result = await service.update_event("u2", created.id, _payload())

    assert result.not_found


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "call, message",
    [
        (lambda svc: svc.create_event("u1", _payload()), "Could not create event"),
        (lambda svc: svc.update_event("u1", "abc123", _payload()), "Could not update event"),
        (lambda svc: svc.delete_event("u1", "abc123#2026-02-15T09:00:00.000Z"), "Could not delete event"),
    ],
)
async def test_store_rejection_becomes_error_notice(call, message, changes):
    seen = []
    await changes.subscribe("u1", EVENTS_TABLE, seen.append)
    service = CalendarService(BrokenStore(), changes=changes)

    result = await call(service)

    assert not result.ok and not result.not_found
    assert result.notice.level == "error" and result.notice.message == message
    assert seen == []


@pytest.mark.asyncio
async def test_load_window_propagates_store_failure():
    service = CalendarService(BrokenStore())

    with pytest.raises(EventStoreError):
        await service.load_window("u1", Window(start=date(2026, 1, 1), end=date(2026, 1, 31)))


@pytest.mark.asyncio
async def test_successful_mutations_publish_changes(service, changes):
    seen = []
    await changes.subscribe("u1", EVENTS_TABLE, seen.append)

    created = (await service.create_event("u1", _payload())).event
    await service.update_event("u1", created.id, _payload(title="Moved"))
    await service.delete_event("u1", created.id)

    assert [p["action"] for p in seen] == ["INSERT", "UPDATE", "DELETE"]
    assert all(p["user_id"] == "u1" and p["table"] == "events" for p in seen)


@pytest.mark.asyncio
async def test_occurrence_id_with_unparseable_suffix_still_targets_base(service, store):
    created = (await service.create_event("u1", _payload(recurrence="weekly"))).event

    result = await service.delete_event("u1", f"{created.id}#not-a-timestamp")

    assert result.ok
    assert store.deleted == [created.id]


@pytest.mark.asyncio
async def test_search_matches_title_case_insensitively(service):
    await service.create_event("u1", _payload(title="Quarterly Review"))
    await service.create_event("u1", _payload(title="Lunch"))
    await service.create_event("u2", _payload(title="review of others"))

    found = await service.search("u1", "  REVIEW ")

    assert [ev.title for ev in found] == ["Quarterly Review"]


@pytest.mark.asyncio
async def test_search_ignores_short_queries_and_limits_results(service):
    for day in range(1, 8):
        await service.create_event("u1", _payload(title=f"Sync {day}", start=datetime(2026, 1, day, 9, tzinfo=UTC)))

    assert await service.search("u1", "s") == []
    found = await service.search("u1", "sync")
    assert [ev.title for ev in found] == [f"Sync {day}" for day in range(1, 6)]


@pytest.mark.asyncio
async def test_search_propagates_store_failure():
    with pytest.raises(EventStoreError):
        await CalendarService(BrokenStore()).search("u1", "review")
