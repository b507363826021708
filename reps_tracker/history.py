from __future__ import annotations

from calendar import monthrange
from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence, TypedDict

from reps_tracker.days import CalendarContext, Weekday, weekday_of
from reps_tracker.models import Completion
from reps_tracker.streaks import longest_streak


class PixelEntry(TypedDict):
    date: str
    completions: int
    is_today: bool
    is_future: bool


class RhythmEntry(TypedDict):
    weekday: int
    label: str
    completions: int


@dataclass
class YearInPixels:
    year: int
    months: list[list[PixelEntry]]
    total_completions: int
    active_days: int
    best_day: int
    longest_streak: int


@dataclass
class MonthlyTrend:
    this_month: int
    last_month: int
    change_percent: Optional[int]

    @property
    def is_positive(self) -> bool:
        return self.this_month >= self.last_month


def completions_by_day(
    completions: Iterable[Completion], calendar: CalendarContext
) -> dict[date, list[Completion]]:
    """Group completions by occurrence day, newest day first and newest record first within a day."""

    grouped: defaultdict[date, list[Completion]] = defaultdict(list)
    for completion in sorted(completions, key=lambda item: item.completed_at, reverse=True):
        grouped[calendar.day_of(completion.completed_at)].append(completion)
    return {day: grouped[day] for day in sorted(grouped, reverse=True)}


def completion_dates(completions: Iterable[Completion], calendar: CalendarContext) -> list[date]:
    return sorted({calendar.day_of(completion.completed_at) for completion in completions}, reverse=True)


def daily_counts(completions: Iterable[Completion], calendar: CalendarContext) -> Counter[date]:
    return Counter(calendar.day_of(completion.completed_at) for completion in completions)


def year_in_pixels(completions: Iterable[Completion], year: int, calendar: CalendarContext) -> YearInPixels:
    """One entry per day of ``year``, grouped by month, with yearly totals."""

    counts = Counter(
        {day: count for day, count in daily_counts(completions, calendar).items() if day.year == year}
    )
    today = calendar.today()

    months: list[list[PixelEntry]] = []
    for month in range(1, 13):
        _, days_in_month = monthrange(year, month)
        row: list[PixelEntry] = []
        for day_number in range(1, days_in_month + 1):
            day = date(year, month, day_number)
            row.append(
                PixelEntry(
                    date=day.isoformat(),
                    completions=counts.get(day, 0),
                    is_today=day == today,
                    is_future=day > today,
                )
            )
        months.append(row)

    return YearInPixels(
        year=year,
        months=months,
        total_completions=sum(counts.values()),
        active_days=sum(1 for count in counts.values() if count > 0),
        best_day=max(counts.values(), default=0),
        longest_streak=longest_streak(counts),
    )


def weekly_rhythm(completions: Iterable[Completion], calendar: CalendarContext) -> list[RhythmEntry]:
    """Completions per weekday, starting at the calendar's first weekday."""

    counts = Counter(weekday_of(calendar.day_of(completion.completed_at)) for completion in completions)
    return [
        RhythmEntry(weekday=int(weekday), label=weekday.short_label, completions=counts.get(weekday, 0))
        for weekday in calendar.weekday_order()
    ]


def _month_start(day: date) -> date:
    return day.replace(day=1)


def _previous_month_start(day: date) -> date:
    return _month_start(_month_start(day) - timedelta(days=1))


def month_completion_count(days: Iterable[date], year: int, month: int) -> int:
    return sum(1 for day in days if day.year == year and day.month == month)


def monthly_trend(completions: Iterable[Completion], calendar: CalendarContext) -> MonthlyTrend:
    """Compare completions this month with last month; no percentage when last month was empty."""

    completion_days = [calendar.day_of(completion.completed_at) for completion in completions]
    this_start = _month_start(calendar.today())
    last_start = _previous_month_start(this_start)

    this_month = month_completion_count(completion_days, this_start.year, this_start.month)
    last_month = month_completion_count(completion_days, last_start.year, last_start.month)
    change: Optional[int] = None
    if last_month > 0:
        change = round((this_month - last_month) / last_month * 100)
    return MonthlyTrend(this_month=this_month, last_month=last_month, change_percent=change)


def month_grid(year: int, month: int, first_weekday: Weekday = Weekday.MONDAY) -> list[list[Optional[int]]]:
    """Week rows of day numbers for a month view; ``None`` pads the first and last week."""

    _, days_in_month = monthrange(year, month)
    leading = (int(weekday_of(date(year, month, 1))) - int(first_weekday)) % 7

    weeks: list[list[Optional[int]]] = []
    current_week: list[Optional[int]] = [None] * leading
    for day_number in range(1, days_in_month + 1):
        current_week.append(day_number)
        if len(current_week) == 7:
            weeks.append(current_week)
            current_week = []

    if current_week:
        current_week.extend([None] * (7 - len(current_week)))
        weeks.append(current_week)

    return weeks


def completion_heatmap(
    days: Sequence[date] | set[date], *, window: int = 30, today: date
) -> list[dict[str, object]]:
    """Completed flag per day for the trailing ``window`` days, oldest first."""

    lookup = set(days)
    window_days = [today - timedelta(days=offset) for offset in range(window - 1, -1, -1)]
    return [{"date": day.isoformat(), "completed": day in lookup} for day in window_days]


__all__ = [
    "MonthlyTrend",
    "PixelEntry",
    "RhythmEntry",
    "YearInPixels",
    "completion_dates",
    "completion_heatmap",
    "completions_by_day",
    "daily_counts",
    "month_completion_count",
    "month_grid",
    "monthly_trend",
    "weekly_rhythm",
    "year_in_pixels",
]
