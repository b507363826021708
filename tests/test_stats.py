from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Iterable

import pytest

from reps_tracker.days import CalendarContext, Weekday
from reps_tracker.ledger import InMemoryCompletionStore
from reps_tracker.models import Completion, Task
from reps_tracker.recurrence import AnyRule, DailyRule, OneTimeRule, WeeklyRule
from reps_tracker.stats import EMPTY_ROLLUP, StatisticsEngine, as_percentage

CREATED = date(2026, 1, 1)
MON_WED_FRI = WeeklyRule(weekdays={int(Weekday.MONDAY), int(Weekday.WEDNESDAY), int(Weekday.FRIDAY)})


def _task(rule: AnyRule, **overrides: object) -> Task:
    data: dict[str, object] = {"title": "Stretch", "recurrence": rule, "created_at": CREATED}
    data.update(overrides)
    return Task(**data)  # type: ignore[arg-type]


def _completions(task: Task, days: Iterable[date]) -> list[Completion]:
    return [
        Completion(task_id=task.id, completed_at=datetime(day.year, day.month, day.day, 8, tzinfo=timezone.utc))
        for day in days
    ]


@pytest.fixture()
def engine(calendar: CalendarContext) -> StatisticsEngine:
    return StatisticsEngine(calendar)


def test_weekly_january_example(engine: StatisticsEngine) -> None:
    task = _task(MON_WED_FRI)
    records = _completions(task, [date(2026, 1, 3), date(2026, 1, 5), date(2026, 1, 8), date(2026, 1, 10)])

    stats = engine.task_stats(task, records)

    assert stats.completion_rate == 30
    assert stats.current_streak == 0
    assert stats.best_streak == 1
    assert stats.total_completions == 4
    assert stats.first_completion_day == date(2026, 1, 3)


def test_every_scheduled_monday_completed_is_full_rate() -> None:
    calendar = CalendarContext.fixed(date(2026, 2, 23))
    engine = StatisticsEngine(calendar)
    task = _task(WeeklyRule(weekdays={int(Weekday.MONDAY)}), created_at=date(2026, 1, 5))
    mondays = [date(2026, 1, 5) + timedelta(weeks=week) for week in range(8)]

    assert engine.completion_rate(task, _completions(task, mondays)) == 100


def test_rate_is_capped_at_one_hundred(engine: StatisticsEngine) -> None:
    task = _task(WeeklyRule(weekdays={int(Weekday.MONDAY)}), created_at=date(2026, 1, 26))
    records = _completions(task, [date(2026, 1, 26), date(2026, 1, 27), date(2026, 1, 28)])

    assert engine.completion_rate(task, records) == 100


def test_rate_not_applicable_for_one_time_tasks(engine: StatisticsEngine) -> None:
    task = _task(OneTimeRule())

    assert engine.completion_rate(task, _completions(task, [CREATED])) is None


def test_daily_rate_uses_start_date(engine: StatisticsEngine) -> None:
    task = _task(DailyRule(), start_date=date(2026, 1, 22))
    records = _completions(task, [date(2026, 1, 10)] + [date(2026, 1, 22) + timedelta(days=offset) for offset in range(5)])

    assert engine.completion_rate(task, records) == 50


def test_rate_is_rounded_down() -> None:
    assert as_percentage(4, 13) == 30
    assert as_percentage(1, 8) == 12
    assert as_percentage(1, 3) == 33
    assert as_percentage(2, 3) == 66
    assert as_percentage(13, 13) == 100
    assert as_percentage(0, 0) == 0


def test_one_time_task_is_due_until_completed(engine: StatisticsEngine) -> None:
    task = _task(OneTimeRule())

    assert engine.is_due_today(task, [])
    assert not engine.is_due_today(task, _completions(task, [date(2026, 1, 2)]))


def test_one_time_task_waits_for_start_date(calendar: CalendarContext) -> None:
    engine = StatisticsEngine(calendar)
    task = _task(OneTimeRule(), start_date=date(2026, 2, 3))

    assert not engine.is_due_today(task, [])
    assert engine.is_due_on(task, [], date(2026, 2, 3))


def test_inactive_tasks_are_never_due(engine: StatisticsEngine) -> None:
    task = _task(DailyRule(), active=False)

    assert not engine.is_due_today(task, [])


def test_current_streak_forgives_open_today(engine: StatisticsEngine) -> None:
    task = _task(DailyRule())
    records = _completions(task, [date(2026, 1, 28), date(2026, 1, 29), date(2026, 1, 30)])

    assert engine.current_streak(task, records) == 3
    assert not engine.is_completed_today(task, records)
    assert engine.best_streak(task, records) == 3


def test_toggle_completion_goes_through_store(engine: StatisticsEngine) -> None:
    task = _task(DailyRule())
    store = InMemoryCompletionStore()

    assert engine.toggle_completion(task, [], store) is True
    assert engine.is_completed_today(task, store.for_task(task.id))
    assert engine.current_streak(task, store.for_task(task.id)) == 1

    assert engine.toggle_completion(task, store.for_task(task.id), store) is False
    assert store.completions == {}


def test_today_tasks_filters_and_sorts(engine: StatisticsEngine) -> None:
    daily = _task(DailyRule(), title="Daily", sort_order=3)
    done_today = _task(DailyRule(), title="Done", sort_order=1)
    saturday_only = _task(WeeklyRule(weekdays={int(Weekday.SATURDAY)}), title="Saturday", sort_order=2)
    monday_only = _task(WeeklyRule(weekdays={int(Weekday.MONDAY)}), title="Monday", sort_order=0)
    finished_once = _task(OneTimeRule(), title="Once", sort_order=4)
    completions = _completions(done_today, [date(2026, 1, 31)]) + _completions(finished_once, [date(2026, 1, 2)])

    visible = engine.today_tasks([daily, done_today, saturday_only, monday_only, finished_once], completions)

    assert [task.title for task in visible] == ["Saturday", "Daily"]


def test_rollup_unions_days_and_blends_rates(engine: StatisticsEngine) -> None:
    first = _task(DailyRule(), created_at=date(2026, 1, 22))
    second = _task(DailyRule(), created_at=date(2026, 1, 22))
    one_time = _task(OneTimeRule())
    completions = (
        _completions(first, [date(2026, 1, 29), date(2026, 1, 30)])
        + _completions(second, [date(2026, 1, 30), date(2026, 1, 31)])
        + _completions(one_time, [date(2026, 1, 10)])
    )

    rollup = engine.rollup([first, second, one_time], completions)

    assert rollup.task_count == 3
    assert rollup.total_completions == 5
    assert rollup.active_days == 4
    assert rollup.current_streak == 3
    assert rollup.best_streak == 3
    assert rollup.completed_days == 4
    assert rollup.scheduled_days == 20
    assert rollup.completion_rate == 20


def test_rollup_skips_orphaned_completions(engine: StatisticsEngine, caplog: pytest.LogCaptureFixture) -> None:
    task = _task(DailyRule(), created_at=date(2026, 1, 30))
    orphan = Completion(task_id="deleted", completed_at=datetime(2026, 1, 31, 8, tzinfo=timezone.utc))

    with caplog.at_level(logging.DEBUG, logger="reps_tracker.stats"):
        rollup = engine.rollup([task], [orphan])

    assert rollup.total_completions == 0
    assert rollup.active_days == 0
    assert "deleted" in caplog.text


def test_rollup_of_one_time_tasks_has_no_rate(engine: StatisticsEngine) -> None:
    rollup = engine.rollup([_task(OneTimeRule())], [])

    assert rollup.completion_rate is None
    assert engine.rollup([], []) == EMPTY_ROLLUP


def test_category_rollups_group_by_category(engine: StatisticsEngine) -> None:
    health = _task(DailyRule(), category="Health", created_at=date(2026, 1, 30))
    work = _task(DailyRule(), category="Work", created_at=date(2026, 1, 30))
    loose = _task(DailyRule(), created_at=date(2026, 1, 30))
    completions = _completions(health, [date(2026, 1, 30), date(2026, 1, 31)]) + _completions(work, [date(2026, 1, 31)])

    rollups = engine.category_rollups([health, work, loose], completions)

    assert set(rollups) == {"Health", "Work", None}
    assert rollups["Health"].completion_rate == 100
    assert rollups["Work"].completion_rate == 50
    assert rollups[None].completion_rate == 0
