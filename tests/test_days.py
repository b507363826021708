from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from reps_tracker.days import (
    CalendarContext,
    Weekday,
    day_of,
    days_between,
    ensure_weekday,
    iter_days,
    parse_day,
    resolve_timezone,
    weekday_of,
)


def test_weekday_numbering_starts_on_sunday() -> None:
    assert weekday_of(date(2026, 1, 4)) is Weekday.SUNDAY
    assert weekday_of(date(2026, 1, 5)) is Weekday.MONDAY
    assert weekday_of(date(2026, 1, 1)) is Weekday.THURSDAY
    assert weekday_of(date(2026, 1, 10)) is Weekday.SATURDAY


@pytest.mark.parametrize("raw", [2, "2", "monday", "Mon", Weekday.MONDAY])
def test_ensure_weekday_accepts_common_inputs(raw: object) -> None:
    assert ensure_weekday(raw) is Weekday.MONDAY  # type: ignore[arg-type]


def test_ensure_weekday_rejects_unknown_names() -> None:
    with pytest.raises(ValueError):
        ensure_weekday("someday")


def test_day_of_uses_the_given_time_zone() -> None:
    late_utc = datetime(2026, 3, 1, 23, 30, tzinfo=timezone.utc)

    assert day_of(late_utc, timezone.utc) == date(2026, 3, 1)
    assert day_of(late_utc, ZoneInfo("Europe/Berlin")) == date(2026, 3, 2)
    assert day_of(late_utc, ZoneInfo("America/New_York")) == date(2026, 3, 1)


def test_day_of_ignores_time_of_day() -> None:
    morning = datetime(2026, 5, 4, 0, 1, tzinfo=timezone.utc)
    evening = datetime(2026, 5, 4, 23, 59, tzinfo=timezone.utc)

    assert day_of(morning, timezone.utc) == day_of(evening, timezone.utc)


def test_parse_day_handles_iso_strings() -> None:
    assert parse_day("2026-02-03") == date(2026, 2, 3)
    assert parse_day("2026-02-03T22:00:00Z", ZoneInfo("Asia/Tokyo")) == date(2026, 2, 4)
    assert parse_day("") is None
    assert parse_day("not a day") is None
    assert parse_day(42) is None


def test_days_between_and_iter_days() -> None:
    start = date(2026, 2, 27)
    end = date(2026, 3, 2)

    assert days_between(start, end) == 3
    assert days_between(end, start) == -3
    assert list(iter_days(start, end)) == [start + timedelta(days=offset) for offset in range(4)]
    assert list(iter_days(end, start)) == []


def test_resolve_timezone() -> None:
    assert resolve_timezone(None) is None
    assert resolve_timezone("Europe/Berlin") == ZoneInfo("Europe/Berlin")
    with pytest.raises(ValueError):
        resolve_timezone("Mars/Olympus_Mons")


def test_calendar_from_env_reads_overrides() -> None:
    calendar = CalendarContext.from_env({"REPS_TIMEZONE": "Europe/Berlin", "REPS_FIRST_WEEKDAY": "sunday"})

    assert calendar.tz == ZoneInfo("Europe/Berlin")
    assert calendar.first_weekday is Weekday.SUNDAY


def test_fixed_calendar_reports_today_and_local_noon() -> None:
    calendar = CalendarContext.fixed(date(2026, 1, 31), at=time(7, 15))

    assert calendar.today() == date(2026, 1, 31)
    assert calendar.now() == datetime(2026, 1, 31, 7, 15, tzinfo=timezone.utc)
    assert calendar.local_noon(date(2026, 1, 20)) == datetime(2026, 1, 20, 12, 0, tzinfo=timezone.utc)


def test_weekday_order_follows_first_weekday() -> None:
    monday_first = CalendarContext.fixed(date(2026, 1, 31))
    sunday_first = CalendarContext.fixed(date(2026, 1, 31), first_weekday=Weekday.SUNDAY)

    assert monday_first.weekday_order()[0] is Weekday.MONDAY
    assert monday_first.weekday_order()[-1] is Weekday.SUNDAY
    assert sunday_first.weekday_order() == list(Weekday)
