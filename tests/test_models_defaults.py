from __future__ import annotations

from datetime import date

import pytest
from pydantic import ValidationError

from reps_tracker.models import Completion, CustomCategory, Task
from reps_tracker.recurrence import MonthlyRule, OneTimeRule, RecurrenceKind, WeeklyRule


def test_task_defaults() -> None:
    task = Task(title="Test")

    assert task.recurrence == OneTimeRule()
    assert task.recurrence_kind is RecurrenceKind.NONE
    assert task.category is None
    assert task.start_date is None
    assert task.active is True
    assert task.sort_order == 0
    assert task.id


def test_task_title_is_stripped_and_required() -> None:
    assert Task(title="  Read  ").title == "Read"
    with pytest.raises(ValidationError):
        Task(title="   ")


def test_blank_category_becomes_none() -> None:
    assert Task(title="Read", category="  ").category is None
    assert Task(title="Read", category=" Health ").category == "Health"


def test_weekly_and_monthly_tasks_drop_start_date() -> None:
    weekly = Task(title="Gym", recurrence=WeeklyRule(weekdays={2}), start_date=date(2026, 2, 1))
    monthly = Task(title="Rent", recurrence={"kind": "monthly", "month_days": [1]}, start_date=date(2026, 2, 1))

    assert weekly.start_date is None
    assert monthly.start_date is None
    assert monthly.recurrence == MonthlyRule(month_days={1})


def test_unknown_recurrence_kind_is_rejected() -> None:
    with pytest.raises(ValidationError):
        Task(title="Read", recurrence={"kind": "yearly"})


def test_completion_defaults_to_aware_timestamp() -> None:
    completion = Completion(task_id="t")

    assert completion.completed_at.tzinfo is not None


def test_custom_category_color_validation() -> None:
    assert CustomCategory(name="Health").color_hex == "1C9C82"
    assert CustomCategory(name="Health", color_hex="#a1b2c3").color_hex == "a1b2c3"
    with pytest.raises(ValidationError):
        CustomCategory(name="Health", color_hex="purple")
