from __future__ import annotations

from datetime import date, datetime, timezone

from reps_tracker.days import CalendarContext
from reps_tracker.ledger import CompletionLedger, InMemoryCompletionStore
from reps_tracker.models import Completion

TASK_ID = "task-1"


def _completion(day: date, *, hour: int = 8, task_id: str = TASK_ID) -> Completion:
    return Completion(task_id=task_id, completed_at=datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc))


def test_toggle_today_twice_restores_previous_state(calendar: CalendarContext) -> None:
    store = InMemoryCompletionStore()
    ledger = CompletionLedger(TASK_ID, [], calendar=calendar, store=store)

    assert ledger.toggle() is True
    assert ledger.is_completed_on(calendar.today())
    assert len(store.completions) == 1
    assert store.for_task(TASK_ID)[0].completed_at == calendar.now()

    assert ledger.toggle() is False
    assert not ledger.is_completed_on(calendar.today())
    assert store.completions == {}


def test_toggle_past_day_stamps_local_noon(calendar: CalendarContext) -> None:
    store = InMemoryCompletionStore()
    ledger = CompletionLedger(TASK_ID, [], calendar=calendar, store=store)
    past = date(2026, 1, 12)

    assert ledger.toggle(past) is True

    (stored,) = store.for_task(TASK_ID)
    assert stored.completed_at == datetime(2026, 1, 12, 12, 0, tzinfo=timezone.utc)
    assert ledger.occurrence_days() == {past}


def test_toggle_removes_every_record_of_the_day(calendar: CalendarContext) -> None:
    day = date(2026, 1, 20)
    duplicates = [_completion(day, hour=7), _completion(day, hour=19)]
    store = InMemoryCompletionStore(duplicates)
    ledger = CompletionLedger(TASK_ID, duplicates, calendar=calendar, store=store)

    assert len(ledger.completions_on(day)) == 2
    assert ledger.toggle(day) is False
    assert ledger.completions_on(day) == []
    assert store.completions == {}


def test_ledger_ignores_other_tasks(calendar: CalendarContext) -> None:
    own = _completion(date(2026, 1, 5))
    foreign = _completion(date(2026, 1, 6), task_id="other")
    ledger = CompletionLedger(TASK_ID, [own, foreign], calendar=calendar)

    assert len(ledger) == 1
    assert ledger.occurrence_days() == {date(2026, 1, 5)}


def test_occurrence_day_follows_calendar_time_zone() -> None:
    from zoneinfo import ZoneInfo

    late = Completion(task_id=TASK_ID, completed_at=datetime(2026, 1, 5, 23, 30, tzinfo=timezone.utc))
    berlin = CalendarContext.fixed(date(2026, 1, 31), tz=ZoneInfo("Europe/Berlin"))

    assert CompletionLedger(TASK_ID, [late], calendar=berlin).occurrence_days() == {date(2026, 1, 6)}


def test_first_completion_and_clear(calendar: CalendarContext) -> None:
    later = _completion(date(2026, 1, 9))
    earlier = _completion(date(2026, 1, 3))
    store = InMemoryCompletionStore([later, earlier])
    ledger = CompletionLedger(TASK_ID, [later, earlier], calendar=calendar, store=store)

    assert ledger.has_ever_been_completed()
    assert ledger.first_completion() == earlier
    assert ledger.clear() == 2
    assert not ledger.has_ever_been_completed()
    assert ledger.first_completion() is None
    assert store.completions == {}


def test_toggle_without_store_only_changes_the_ledger(calendar: CalendarContext) -> None:
    ledger = CompletionLedger(TASK_ID, [], calendar=calendar)

    assert ledger.toggle(date(2026, 1, 2)) is True
    assert len(ledger) == 1
