"""Calendar-day normalization shared by scheduling, ledger and statistics."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from enum import IntEnum
from typing import Any, Callable, Iterator, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

Day = date


class Weekday(IntEnum):
    """Weekday numbering used for stored weekly rules (1 = Sunday ... 7 = Saturday)."""

    SUNDAY = 1
    MONDAY = 2
    TUESDAY = 3
    WEDNESDAY = 4
    THURSDAY = 5
    FRIDAY = 6
    SATURDAY = 7

    @property
    def short_label(self) -> str:
        return self.name[:3].title()

    @property
    def initial(self) -> str:
        return self.name[0]


def weekday_of(day: Day) -> Weekday:
    return Weekday(day.isoweekday() % 7 + 1)


def ensure_weekday(value: Weekday | int | str) -> Weekday:
    if isinstance(value, Weekday):
        return value

    if isinstance(value, int):
        return Weekday(value)

    normalized = value.strip().upper()
    if normalized.isdigit():
        return Weekday(int(normalized))
    for weekday in Weekday:
        if normalized in (weekday.name, weekday.name[:3]):
            return weekday
    raise ValueError(f"Unknown weekday value: {value!r}")


def _system_now() -> datetime:
    return datetime.now(timezone.utc)


def _localize(timestamp: datetime, tz: Optional[tzinfo]) -> datetime:
    if timestamp.tzinfo is None:
        return timestamp
    if tz is None:
        return timestamp.astimezone()
    return timestamp.astimezone(tz)


def day_of(value: datetime | date, tz: Optional[tzinfo] = None) -> Day:
    """Return the local calendar day of a timestamp.

    Aware datetimes are converted into ``tz`` (the host zone when ``None``)
    before the time of day is dropped. Naive datetimes are taken to be local
    already, and plain dates are returned unchanged.
    """

    if isinstance(value, datetime):
        return _localize(value, tz).date()
    return value


def parse_day(raw: Any, tz: Optional[tzinfo] = None) -> Optional[Day]:
    """Lenient variant of :func:`day_of` that also accepts ISO 8601 strings."""

    if isinstance(raw, (datetime, date)):
        return day_of(raw, tz)

    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None

        normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
        try:
            return day_of(datetime.fromisoformat(normalized), tz)
        except ValueError:
            try:
                return date.fromisoformat(text)
            except ValueError:
                return None

    return None


def add_days(day: Day, count: int) -> Day:
    return day + timedelta(days=count)


def days_between(start: Day, end: Day) -> int:
    """Signed number of calendar days from ``start`` to ``end``."""

    return (end - start).days


def iter_days(start: Day, through: Day) -> Iterator[Day]:
    current = start
    while current <= through:
        yield current
        current += timedelta(days=1)


def resolve_timezone(name: Optional[str]) -> Optional[tzinfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown time zone: {name!r}") from exc


@dataclass(frozen=True)
class CalendarContext:
    """Injected calendar collaborator: what "now" is and how weeks are laid out."""

    tz: Optional[tzinfo] = None
    first_weekday: Weekday = Weekday.MONDAY
    clock: Callable[[], datetime] = field(default=_system_now, compare=False)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> CalendarContext:
        env_map = env if env is not None else os.environ
        tz = resolve_timezone(env_map.get("REPS_TIMEZONE"))
        raw_first = env_map.get("REPS_FIRST_WEEKDAY")
        first_weekday = ensure_weekday(raw_first) if raw_first else Weekday.MONDAY
        return cls(tz=tz, first_weekday=first_weekday)

    @classmethod
    def fixed(
        cls,
        today: Day,
        *,
        tz: Optional[tzinfo] = timezone.utc,
        first_weekday: Weekday = Weekday.MONDAY,
        at: time = time(9, 0),
    ) -> CalendarContext:
        """Context frozen at ``today`` (``at`` o'clock local time); used by tests and scripts."""

        moment = datetime.combine(today, at, tzinfo=tz)
        return cls(tz=tz, first_weekday=first_weekday, clock=lambda: moment)

    def now(self) -> datetime:
        return _localize(self.clock(), self.tz)

    def today(self) -> Day:
        return self.now().date()

    def day_of(self, value: datetime | date) -> Day:
        return day_of(value, self.tz)

    def local_noon(self, day: Day) -> datetime:
        zone = self.tz or datetime.now().astimezone().tzinfo
        return datetime.combine(day, time(12, 0), tzinfo=zone)

    def weekday_order(self) -> list[Weekday]:
        """All weekdays starting at the configured first day of the week."""

        start = int(self.first_weekday)
        return [Weekday((start - 1 + offset) % 7 + 1) for offset in range(7)]


__all__ = [
    "CalendarContext",
    "Day",
    "Weekday",
    "add_days",
    "day_of",
    "days_between",
    "ensure_weekday",
    "iter_days",
    "parse_day",
    "resolve_timezone",
    "weekday_of",
]
