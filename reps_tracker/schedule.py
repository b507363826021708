"""Counting scheduled occurrences, the denominator of completion rates.

A task due only on Mondays is measured against Mondays, not against every
elapsed calendar day.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Iterator, Optional

from reps_tracker.days import days_between, iter_days
from reps_tracker.recurrence import AnyRule, DailyRule, OneTimeRule, effective_start, is_due, supports_start_date


def schedule_start(rule: AnyRule, created_at: date, start_date: Optional[date] = None) -> date:
    """First day the rule may produce an occurrence."""

    if supports_start_date(rule):
        return effective_start(created_at, start_date)
    return created_at


def iter_scheduled_days(
    rule: AnyRule,
    start: date,
    through: date,
    *,
    start_date: Optional[date] = None,
) -> Iterator[date]:
    """Yield every day in ``start..through`` (inclusive) on which ``rule`` is due.

    ``start`` doubles as the task's creation day.
    """

    first_day = schedule_start(rule, start, start_date)
    for day in iter_days(first_day, through):
        if is_due(rule, day, start, start_date):
            yield day


def scheduled_day_count(
    rule: AnyRule,
    start: date,
    through: date,
    *,
    start_date: Optional[date] = None,
) -> int:
    """Number of scheduled occurrences in ``start..through``, never less than 1."""

    if isinstance(rule, (OneTimeRule, DailyRule)):
        first_day = schedule_start(rule, start, start_date)
        count = days_between(first_day, through) + 1
    else:
        count = sum(1 for _ in iter_scheduled_days(rule, start, through, start_date=start_date))
    return max(1, count)


def count_completed_in_schedule(days: Iterable[date], start: date, through: date) -> int:
    """Distinct completion days inside ``start..through``."""

    return len({day for day in days if start <= day <= through})


__all__ = [
    "count_completed_in_schedule",
    "iter_scheduled_days",
    "schedule_start",
    "scheduled_day_count",
]
