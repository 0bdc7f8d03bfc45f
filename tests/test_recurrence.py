from datetime import date, datetime, timedelta, timezone

import pytest

from agenda.core.calendar.occurrence_id import real_id
from agenda.core.calendar.recurrence import MAX_RECURRENCE_STEPS, expand_recurring_events
from agenda.core.calendar.schemas import Event

UTC = timezone.utc


def _event(event_id="abc123", start=datetime(2026, 1, 15, 9, tzinfo=UTC), hours=1, **extra) -> Event:
    return Event(
        id=event_id,
        user_id="u1",
        title="Standup",
        start_time=start,
        end_time=start + timedelta(hours=hours),
        **extra,
    )


def test_monthly_series_stops_at_window_end():
    base = _event(recurrence="monthly", recurrence_end=datetime(2026, 4, 1, tzinfo=UTC))

    result = expand_recurring_events([base], date(2026, 1, 1), date(2026, 3, 31))

    assert [ev.start_time for ev in result] == [
        datetime(2026, 1, 15, 9, tzinfo=UTC),
        datetime(2026, 2, 15, 9, tzinfo=UTC),
        datetime(2026, 3, 15, 9, tzinfo=UTC),
    ]
    assert all(ev.end_time - ev.start_time == timedelta(hours=1) for ev in result)
    assert result[0] is base
    assert result[1].id == "abc123#2026-02-15T09:00:00.000Z"
    assert all(real_id(ev.id) == "abc123" for ev in result)


def test_event_without_recurrence_is_returned_once():
    base = _event()
    assert expand_recurring_events([base], date(2026, 1, 1), date(2026, 12, 31)) == [base]


def test_original_is_kept_even_outside_window():
    base = _event(start=datetime(2025, 12, 1, 9, tzinfo=UTC))
    result = expand_recurring_events([base], date(2026, 1, 1), date(2026, 1, 31))
    assert result == [base]


def test_weekly_occurrences_keep_weekday_and_duration():
    base = _event(start=datetime(2026, 3, 2, 14, 30, tzinfo=UTC), hours=2, recurrence="weekly")

    result = expand_recurring_events([base], date(2026, 3, 1), date(2026, 3, 31))

    assert len(result) == 5  # 2, 9, 16, 23, 30 марта
    assert {ev.start_time.weekday() for ev in result} == {base.start_time.weekday()}
    assert all(ev.end_time - ev.start_time == timedelta(hours=2) for ev in result)
    assert all(ev.title == base.title and ev.user_id == "u1" for ev in result)


def test_daily_series_with_distant_end_yields_only_window_days():
    base = _event(
        start=datetime(2026, 5, 1, 8, tzinfo=UTC),
        recurrence="daily",
        recurrence_end=datetime(2036, 5, 1, tzinfo=UTC),
    )

    result = expand_recurring_events([base], date(2026, 5, 1), date(2026, 5, 14))

    assert len(result) == 14
    assert result[-1].start_time == datetime(2026, 5, 14, 8, tzinfo=UTC)


def test_recurrence_end_is_inclusive():
    base = _event(
        start=datetime(2026, 1, 1, 0, tzinfo=UTC),
        recurrence="daily",
        recurrence_end=datetime(2026, 1, 3, tzinfo=UTC),
    )

    result = expand_recurring_events([base], date(2026, 1, 1), date(2026, 1, 31))

    assert [ev.start_time.day for ev in result] == [1, 2, 3]


def test_occurrence_on_window_end_instant_is_included():
    base = _event(start=datetime(2026, 1, 1, 9, tzinfo=UTC), recurrence="daily")
    end = datetime(2026, 1, 3, 9, tzinfo=UTC)

    result = expand_recurring_events([base], datetime(2026, 1, 1, tzinfo=UTC), end)

    assert result[-1].start_time == end


def test_steps_before_window_are_skipped_but_counted():
    base = _event(start=datetime(2025, 1, 1, 9, tzinfo=UTC), recurrence="daily")

    in_reach = expand_recurring_events([base], date(2025, 6, 1), date(2025, 6, 3), max_steps=200)
    out_of_reach = expand_recurring_events([base], date(2025, 6, 1), date(2025, 6, 3), max_steps=100)

    assert [ev.start_time.day for ev in in_reach[1:]] == [1, 2, 3]
    assert out_of_reach == [base]


def test_cap_bounds_open_ended_series():
    base = _event(start=datetime(2026, 1, 1, tzinfo=UTC), recurrence="daily")

    result = expand_recurring_events([base], date(2026, 1, 1), date(2030, 12, 31))

    assert len(result) == 1 + MAX_RECURRENCE_STEPS


def test_monthly_from_month_end_keeps_clamped_day():
    base = _event(start=datetime(2026, 1, 31, 9, tzinfo=UTC), recurrence="monthly")

    result = expand_recurring_events([base], date(2026, 1, 1), date(2026, 4, 30))

    # Каждый шаг от предыдущего вхождения: после 28 февраля серия остаётся на 28-м
    assert [ev.start_time.date() for ev in result] == [
        date(2026, 1, 31), date(2026, 2, 28), date(2026, 3, 28), date(2026, 4, 28),
    ]


def test_recurrence_end_at_window_start_generates_nothing():
    window_start = datetime(2026, 1, 1, tzinfo=UTC)
    base = _event(start=window_start, recurrence="daily", recurrence_end=window_start)

    result = expand_recurring_events([base], window_start, date(2026, 1, 31))

    assert result == [base]



@pytest.mark.parametrize("rule", ["yearly", "", "WEEKLY!", None])
def test_unknown_rule_means_no_recurrence(rule):
    base = _event(recurrence=rule)
    assert expand_recurring_events([base], date(2026, 1, 1), date(2026, 12, 31)) == [base]


def test_degenerate_duration_is_propagated():
    base = _event(hours=-1, recurrence="daily")

    result = expand_recurring_events([base], date(2026, 1, 15), date(2026, 1, 17))

    assert len(result) == 3
    assert all(ev.end_time - ev.start_time == timedelta(hours=-1) for ev in result)


def test_expansion_is_deterministic_and_keeps_input_order():
    events = [
        _event("b", start=datetime(2026, 1, 10, tzinfo=UTC), recurrence="weekly"),
        _event("a", start=datetime(2026, 1, 5, tzinfo=UTC)),
    ]

    first = expand_recurring_events(events, date(2026, 1, 1), date(2026, 1, 31))
    second = expand_recurring_events(events, date(2026, 1, 1), date(2026, 1, 31))

    assert [ev.id for ev in first] == [ev.id for ev in second]
    assert [real_id(ev.id) for ev in first] == ["b"] * 4 + ["a"]


def test_non_positive_cap_is_rejected():
    with pytest.raises(ValueError):
        expand_recurring_events([_event()], date(2026, 1, 1), date(2026, 1, 2), max_steps=0)
