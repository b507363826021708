from __future__ import annotations

from enum import Enum
from typing import Annotated, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from reps_tracker.days import Day, Weekday, weekday_of

MONTH_DAY_RANGE = range(1, 32)


class RecurrenceKind(str, Enum):
    """Repeating schedule of a task."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def label(self) -> str:
        if self is RecurrenceKind.NONE:
            return "One Time"
        if self is RecurrenceKind.DAILY:
            return "Daily"
        if self is RecurrenceKind.WEEKLY:
            return "Weekly"
        return "Monthly"

    @property
    def subtitle(self) -> str:
        if self is RecurrenceKind.NONE:
            return "Task disappears after completion"
        if self is RecurrenceKind.DAILY:
            return "Task reappears every day"
        if self is RecurrenceKind.WEEKLY:
            return "Task reappears on selected days"
        return "Task reappears on selected dates"


class _Rule(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str

    @property
    def recurrence_kind(self) -> RecurrenceKind:
        return RecurrenceKind(self.kind)


class OneTimeRule(_Rule):
    kind: Literal["none"] = "none"


class DailyRule(_Rule):
    kind: Literal["daily"] = "daily"


class WeeklyRule(_Rule):
    """Due on every listed weekday (1 = Sunday ... 7 = Saturday)."""

    kind: Literal["weekly"] = "weekly"
    weekdays: frozenset[int] = frozenset()

    @field_validator("weekdays", mode="before")
    @classmethod
    def _keep_valid_weekdays(cls, value: object) -> frozenset[int]:
        return frozenset(number for number in _coerce_numbers(value) if 1 <= number <= 7)


class MonthlyRule(_Rule):
    """Due on every listed day of the month; missing days (e.g. the 31st in April) are skipped."""

    kind: Literal["monthly"] = "monthly"
    month_days: frozenset[int] = frozenset()

    @field_validator("month_days", mode="before")
    @classmethod
    def _keep_valid_month_days(cls, value: object) -> frozenset[int]:
        return frozenset(number for number in _coerce_numbers(value) if number in MONTH_DAY_RANGE)


AnyRule = Union[OneTimeRule, DailyRule, WeeklyRule, MonthlyRule]
RecurrenceRule = Annotated[AnyRule, Field(discriminator="kind")]


def _coerce_numbers(value: object) -> list[int]:
    if value is None:
        return []
    if isinstance(value, str):
        parts: Iterable[object] = value.split(",")
    elif isinstance(value, Iterable):
        parts = value
    else:
        parts = [value]

    numbers: list[int] = []
    for part in parts:
        try:
            numbers.append(int(part))  # type: ignore[arg-type]
        except (TypeError, ValueError):
            continue
    return numbers


def ensure_recurrence_kind(value: RecurrenceKind | str) -> RecurrenceKind:
    if isinstance(value, RecurrenceKind):
        return value

    normalized = value.strip().lower()
    for kind in RecurrenceKind:
        if normalized in (kind.value, kind.label.lower()):
            return kind
    if normalized in ("once", "one-time", "onetime"):
        return RecurrenceKind.NONE
    raise ValueError(f"Unknown recurrence kind: {value!r}")


def build_rule(
    kind: RecurrenceKind | str,
    *,
    weekdays: Iterable[int] = (),
    month_days: Iterable[int] = (),
) -> AnyRule:
    match ensure_recurrence_kind(kind):
        case RecurrenceKind.DAILY:
            return DailyRule()
        case RecurrenceKind.WEEKLY:
            return WeeklyRule(weekdays=frozenset(int(day) for day in weekdays))
        case RecurrenceKind.MONTHLY:
            return MonthlyRule(month_days=frozenset(int(day) for day in month_days))
        case _:
            return OneTimeRule()


def effective_start(created_at: Day, start_date: Optional[Day]) -> Day:
    """Earliest day an occurrence may exist; a start date before creation is ignored."""

    if start_date is None:
        return created_at
    return max(created_at, start_date)


def is_due(rule: AnyRule, day: Day, created_at: Day, start_date: Optional[Day] = None) -> bool:
    """Decide whether ``rule`` schedules an occurrence on ``day``.

    For one-time rules this is only the necessary condition; whether the task
    was already completed is up to the caller, which owns the completions.
    Weekly and monthly rules ignore ``start_date``.
    """

    match rule:
        case OneTimeRule() | DailyRule():
            return day >= effective_start(created_at, start_date)
        case WeeklyRule(weekdays=weekdays):
            return day >= created_at and int(weekday_of(day)) in weekdays
        case MonthlyRule(month_days=month_days):
            return day >= created_at and day.day in month_days
        case _:
            return False


def is_recurring(rule: AnyRule) -> bool:
    return rule.recurrence_kind is not RecurrenceKind.NONE


def supports_start_date(rule: AnyRule) -> bool:
    return rule.recurrence_kind in (RecurrenceKind.NONE, RecurrenceKind.DAILY)


def is_schedulable(rule: AnyRule) -> bool:
    match rule:
        case WeeklyRule(weekdays=weekdays):
            return bool(weekdays)
        case MonthlyRule(month_days=month_days):
            return bool(month_days)
        case _:
            return True


def validate_rule(rule: AnyRule) -> AnyRule:
    if is_schedulable(rule):
        return rule
    if rule.recurrence_kind is RecurrenceKind.WEEKLY:
        raise ValueError("Weekly tasks need at least one weekday")
    raise ValueError("Monthly tasks need at least one day of the month")


def ordinal(number: int) -> str:
    if (number // 10) % 10 == 1:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def describe_rule(rule: AnyRule) -> str:
    """Short badge text, e.g. ``"MON, WED, FRI"`` or ``"1ST, 15TH"``."""

    match rule:
        case DailyRule():
            return "DAILY"
        case WeeklyRule(weekdays=weekdays):
            if not weekdays:
                return "WEEKLY"
            return ", ".join(Weekday(day).short_label for day in sorted(weekdays)).upper()
        case MonthlyRule(month_days=month_days):
            if not month_days:
                return "MONTHLY"
            return ", ".join(ordinal(day) for day in sorted(month_days)).upper()
        case _:
            return ""


__all__ = [
    "AnyRule",
    "DailyRule",
    "MonthlyRule",
    "OneTimeRule",
    "RecurrenceKind",
    "RecurrenceRule",
    "Weekday",
    "WeeklyRule",
    "build_rule",
    "describe_rule",
    "effective_start",
    "ensure_recurrence_kind",
    "is_due",
    "is_recurring",
    "is_schedulable",
    "ordinal",
    "supports_start_date",
    "validate_rule",
    "weekday_of",
]
