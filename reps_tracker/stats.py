from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from functools import wraps
from typing import Callable, Iterable, Optional, Sequence, TypeVar

from reps_tracker.days import CalendarContext
from reps_tracker.ledger import CompletionLedger, CompletionStore
from reps_tracker.models import Completion, Task
from reps_tracker.recurrence import is_due, is_recurring
from reps_tracker.schedule import count_completed_in_schedule, schedule_start, scheduled_day_count
from reps_tracker.streaks import current_streak, longest_streak

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class TaskStats:
    task_id: str
    total_completions: int
    current_streak: int
    best_streak: int
    completion_rate: Optional[int]
    completed_today: bool
    due_today: bool
    first_completion_day: Optional[date]


@dataclass(frozen=True)
class RollupStats:
    task_count: int
    total_completions: int
    active_days: int
    current_streak: int
    best_streak: int
    completed_days: int
    scheduled_days: int
    completion_rate: Optional[int]


EMPTY_ROLLUP = RollupStats(
    task_count=0,
    total_completions=0,
    active_days=0,
    current_streak=0,
    best_streak=0,
    completed_days=0,
    scheduled_days=0,
    completion_rate=None,
)


def _safe(default: T) -> Callable[[Callable[..., T]], Callable[..., T]]:
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: object, **kwargs: object) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as exc:  # pragma: no cover - defensive logging
                LOGGER.warning("%s failed, falling back to %r: %s", func.__name__, default, exc)
                return default

        return wrapper

    return decorator


def as_percentage(completed: int, scheduled: int) -> int:
    """Percentage rounded down, capped at 100."""

    if scheduled <= 0:
        return 0
    return min(100, 100 * completed // scheduled)


class StatisticsEngine:
    """Answers the due/completed/streak/rate questions for tasks and task groups.

    Completions are passed as flat sequences; each query picks the records of
    the task it is asked about. Nothing is cached, every answer is derived
    from the records given.
    """

    def __init__(self, calendar: Optional[CalendarContext] = None) -> None:
        self.calendar = calendar or CalendarContext()

    def today(self) -> date:
        return self.calendar.today()

    def ledger_for(
        self,
        task: Task,
        completions: Iterable[Completion],
        store: Optional[CompletionStore] = None,
    ) -> CompletionLedger:
        return CompletionLedger(task.id, completions, calendar=self.calendar, store=store)

    @_safe(False)
    def is_due_on(self, task: Task, completions: Iterable[Completion], day: date) -> bool:
        if not task.active:
            return False
        if not is_due(task.recurrence, day, task.created_at, task.start_date):
            return False
        if is_recurring(task.recurrence):
            return True
        return not self.ledger_for(task, completions).has_ever_been_completed()

    def is_due_today(self, task: Task, completions: Iterable[Completion]) -> bool:
        return self.is_due_on(task, completions, self.today())

    @_safe(False)
    def is_completed_today(self, task: Task, completions: Iterable[Completion]) -> bool:
        return self.ledger_for(task, completions).is_completed_on(self.today())

    @_safe(0)
    def current_streak(self, task: Task, completions: Iterable[Completion]) -> int:
        return current_streak(self.ledger_for(task, completions).occurrence_days(), self.today())

    @_safe(0)
    def best_streak(self, task: Task, completions: Iterable[Completion]) -> int:
        return longest_streak(self.ledger_for(task, completions).occurrence_days())

    def _rate_inputs(self, task: Task, completions: Iterable[Completion]) -> tuple[int, int]:
        today = self.today()
        first_day = schedule_start(task.recurrence, task.created_at, task.start_date)
        days = self.ledger_for(task, completions).occurrence_days()
        completed = count_completed_in_schedule(days, first_day, today)
        scheduled = scheduled_day_count(task.recurrence, task.created_at, today, start_date=task.start_date)
        return completed, scheduled

    @_safe(None)
    def completion_rate(self, task: Task, completions: Iterable[Completion]) -> Optional[int]:
        """Completed share of scheduled occurrences in percent, ``None`` for one-time tasks."""

        if not is_recurring(task.recurrence):
            return None
        completed, scheduled = self._rate_inputs(task, completions)
        return as_percentage(completed, scheduled)

    def toggle_completion(
        self,
        task: Task,
        completions: Iterable[Completion],
        store: CompletionStore,
        day: Optional[date] = None,
    ) -> bool:
        """Complete or un-complete ``day`` (today by default); returns the new state."""

        return self.ledger_for(task, completions, store=store).toggle(day)

    def task_stats(self, task: Task, completions: Iterable[Completion]) -> TaskStats:
        records = list(completions)
        ledger = self.ledger_for(task, records)
        first = ledger.first_completion()
        return TaskStats(
            task_id=task.id,
            total_completions=len(ledger),
            current_streak=self.current_streak(task, records),
            best_streak=self.best_streak(task, records),
            completion_rate=self.completion_rate(task, records),
            completed_today=self.is_completed_today(task, records),
            due_today=self.is_due_today(task, records),
            first_completion_day=self.calendar.day_of(first.completed_at) if first is not None else None,
        )

    def today_tasks(self, tasks: Sequence[Task], completions: Sequence[Completion]) -> list[Task]:
        """Active tasks due today that are not yet completed today, in list order."""

        grouped = self._group_completions(tasks, completions)
        visible = [
            task
            for task in tasks
            if self.is_due_today(task, grouped[task.id]) and not self.is_completed_today(task, grouped[task.id])
        ]
        return sorted(visible, key=lambda task: task.sort_order)

    def _group_completions(
        self, tasks: Sequence[Task], completions: Iterable[Completion]
    ) -> defaultdict[str, list[Completion]]:
        known_ids = {task.id for task in tasks}
        grouped: defaultdict[str, list[Completion]] = defaultdict(list)
        for completion in completions:
            if completion.task_id not in known_ids:
                LOGGER.debug("Skipping completion %s without task %s", completion.id, completion.task_id)
                continue
            grouped[completion.task_id].append(completion)
        return grouped

    @_safe(EMPTY_ROLLUP)
    def rollup(self, tasks: Sequence[Task], completions: Iterable[Completion]) -> RollupStats:
        """Combined statistics of a task group.

        Streaks run over the union of completion days (a day counts once if any
        member was done); the rate divides summed completed days by summed
        scheduled days of the recurring members.
        """

        grouped = self._group_completions(tasks, completions)
        union_days: set[date] = set()
        total_completions = 0
        completed_days = 0
        scheduled_days = 0
        has_recurring = False

        for task in tasks:
            records = grouped[task.id]
            ledger = self.ledger_for(task, records)
            total_completions += len(ledger)
            union_days |= ledger.occurrence_days()
            if not is_recurring(task.recurrence):
                continue
            has_recurring = True
            completed, scheduled = self._rate_inputs(task, records)
            completed_days += completed
            scheduled_days += scheduled

        return RollupStats(
            task_count=len(tasks),
            total_completions=total_completions,
            active_days=len(union_days),
            current_streak=current_streak(union_days, self.today()),
            best_streak=longest_streak(union_days),
            completed_days=completed_days,
            scheduled_days=scheduled_days,
            completion_rate=as_percentage(completed_days, scheduled_days) if has_recurring else None,
        )

    def category_rollups(
        self, tasks: Sequence[Task], completions: Iterable[Completion]
    ) -> dict[Optional[str], RollupStats]:
        records = list(completions)
        by_category: defaultdict[Optional[str], list[Task]] = defaultdict(list)
        for task in tasks:
            by_category[task.category].append(task)
        return {category: self.rollup(members, records) for category, members in by_category.items()}


__all__ = [
    "EMPTY_ROLLUP",
    "RollupStats",
    "StatisticsEngine",
    "TaskStats",
    "as_percentage",
]
