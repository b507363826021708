from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable


@dataclass(frozen=True)
class StreakSummary:
    current: int
    best: int


def current_streak(days: Iterable[date], today: date) -> int:
    """Count consecutive completed days ending today.

    An open today does not break the streak: when ``today`` has no completion
    the count starts at yesterday instead, and only a fully skipped day ends it.
    """

    day_lookup = set(days)
    pointer = today
    if pointer not in day_lookup:
        pointer -= timedelta(days=1)

    streak = 0
    while pointer in day_lookup:
        streak += 1
        pointer -= timedelta(days=1)
    return streak


def longest_streak(days: Iterable[date]) -> int:
    ordered = sorted(set(days))
    if not ordered:
        return 0

    best = 1
    run = 1
    for previous, current in zip(ordered, ordered[1:]):
        if current == previous + timedelta(days=1):
            run += 1
            best = max(best, run)
        else:
            run = 1
    return best


def summarize_streaks(days: Iterable[date], today: date) -> StreakSummary:
    day_set = set(days)
    return StreakSummary(current=current_streak(day_set, today), best=longest_streak(day_set))


__all__ = ["StreakSummary", "current_streak", "longest_streak", "summarize_streaks"]
