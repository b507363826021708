from __future__ import annotations

import logging
from typing import Iterable, Optional, Protocol

from reps_tracker.days import CalendarContext, Day
from reps_tracker.models import Completion

LOGGER = logging.getLogger(__name__)


class CompletionStore(Protocol):
    """Storage collaborator that persists completion records."""

    def insert_completion(self, completion: Completion) -> None:
        """Persist a newly created completion."""

    def delete_completion(self, completion_id: str) -> None:
        """Remove a completion by id."""


class InMemoryCompletionStore:
    """Dictionary-backed store for scripts and tests."""

    def __init__(self, completions: Iterable[Completion] = ()) -> None:
        self.completions: dict[str, Completion] = {completion.id: completion for completion in completions}

    def insert_completion(self, completion: Completion) -> None:
        self.completions[completion.id] = completion

    def delete_completion(self, completion_id: str) -> None:
        self.completions.pop(completion_id, None)

    def for_task(self, task_id: str) -> list[Completion]:
        return [completion for completion in self.completions.values() if completion.task_id == task_id]


class CompletionLedger:
    """Completion records of a single task, keyed by occurrence day.

    ``toggle`` is the only mutation. It keeps at most one record per day and
    forwards inserts and deletes to the optional store; committing them is the
    store's job.
    """

    def __init__(
        self,
        task_id: str,
        completions: Iterable[Completion],
        *,
        calendar: CalendarContext,
        store: Optional[CompletionStore] = None,
    ) -> None:
        self.task_id = task_id
        self.calendar = calendar
        self.store = store
        self._completions: list[Completion] = []
        for completion in completions:
            if completion.task_id != task_id:
                LOGGER.debug("Ignoring completion %s of task %s", completion.id, completion.task_id)
                continue
            self._completions.append(completion)

    @property
    def completions(self) -> list[Completion]:
        return list(self._completions)

    def __len__(self) -> int:
        return len(self._completions)

    def occurrence_days(self) -> set[Day]:
        return {self.calendar.day_of(completion.completed_at) for completion in self._completions}

    def completions_on(self, day: Day) -> list[Completion]:
        return [completion for completion in self._completions if self.calendar.day_of(completion.completed_at) == day]

    def is_completed_on(self, day: Day) -> bool:
        return any(self.calendar.day_of(completion.completed_at) == day for completion in self._completions)

    def has_ever_been_completed(self) -> bool:
        return bool(self._completions)

    def first_completion(self) -> Optional[Completion]:
        if not self._completions:
            return None
        return min(self._completions, key=lambda completion: completion.completed_at)

    def toggle(self, day: Optional[Day] = None) -> bool:
        """Flip the completion state of ``day`` (today by default) and return the new state."""

        target_day = day or self.calendar.today()
        existing = self.completions_on(target_day)
        if existing:
            for completion in existing:
                self._remove(completion)
            return False

        if target_day == self.calendar.today():
            completed_at = self.calendar.now()
        else:
            completed_at = self.calendar.local_noon(target_day)

        completion = Completion(task_id=self.task_id, completed_at=completed_at)
        self._completions.append(completion)
        if self.store is not None:
            self.store.insert_completion(completion)
        return True

    def clear(self) -> int:
        """Remove every completion of the task and return how many were removed."""

        removed = list(self._completions)
        for completion in removed:
            self._remove(completion)
        return len(removed)

    def _remove(self, completion: Completion) -> None:
        self._completions = [item for item in self._completions if item.id != completion.id]
        if self.store is not None:
            self.store.delete_completion(completion.id)


__all__ = ["CompletionLedger", "CompletionStore", "InMemoryCompletionStore"]
