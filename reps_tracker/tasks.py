from __future__ import annotations

import logging
from datetime import date
from typing import Final, Iterable, Optional, Sequence

from reps_tracker.days import CalendarContext
from reps_tracker.models import CustomCategory, Task
from reps_tracker.recurrence import (
    AnyRule,
    RecurrenceKind,
    build_rule,
    is_recurring,
    supports_start_date,
    validate_rule,
)
from reps_tracker.state import (
    SessionCompletionStore,
    get_calendar,
    get_categories,
    get_completions,
    get_tasks,
    save_categories,
    save_completions,
    save_tasks,
)
from reps_tracker.stats import StatisticsEngine, TaskStats

LOGGER = logging.getLogger(__name__)

_UNSET: Final = object()


def _engine(calendar: Optional[CalendarContext]) -> StatisticsEngine:
    return StatisticsEngine(calendar or get_calendar())


def _resolve_rule(
    recurrence: AnyRule | RecurrenceKind | str | None,
    weekdays: Iterable[int],
    month_days: Iterable[int],
) -> AnyRule:
    if recurrence is None:
        rule = build_rule(RecurrenceKind.NONE)
    elif isinstance(recurrence, (RecurrenceKind, str)):
        rule = build_rule(recurrence, weekdays=weekdays, month_days=month_days)
    else:
        rule = recurrence
    return validate_rule(rule)


def _normalize_start_date(rule: AnyRule, created_at: date, start_date: Optional[date]) -> Optional[date]:
    """Keep a start date only when the rule honors it and it lies after the creation day."""

    if start_date is None or not supports_start_date(rule):
        return None
    if start_date <= created_at:
        return None
    return start_date


def _clean_title(title: str) -> str:
    cleaned = title.strip()
    if not cleaned:
        raise ValueError("Task title must not be empty")
    return cleaned


def get_task(task_id: str) -> Optional[Task]:
    for task in get_tasks():
        if task.id == task_id:
            return task
    return None


def add_task(
    title: str,
    *,
    category: Optional[str] = None,
    recurrence: AnyRule | RecurrenceKind | str | None = None,
    weekdays: Iterable[int] = (),
    month_days: Iterable[int] = (),
    start_date: Optional[date] = None,
    calendar: Optional[CalendarContext] = None,
) -> Task:
    """Create a task at the end of the list; raises ``ValueError`` for invalid input."""

    rule = _resolve_rule(recurrence, weekdays, month_days)
    created_at = (calendar or get_calendar()).today()
    tasks = get_tasks()
    max_sort_order = max((task.sort_order for task in tasks if task.active), default=0)

    task = Task(
        title=_clean_title(title),
        category=category,
        recurrence=rule,
        created_at=created_at,
        start_date=_normalize_start_date(rule, created_at, start_date),
        sort_order=max_sort_order + 1,
    )
    tasks.append(task)
    save_tasks(tasks)
    return task


def update_task(
    task_id: str,
    *,
    title: Optional[str] = None,
    category: Optional[str] | object = _UNSET,
    recurrence: AnyRule | RecurrenceKind | str | None = None,
    weekdays: Iterable[int] = (),
    month_days: Iterable[int] = (),
    start_date: Optional[date] | object = _UNSET,
    reactivate: bool = False,
) -> Optional[Task]:
    """Edit a task in place.

    Switching to a weekly or monthly rule drops the start date. Existing
    completions are kept, except when ``reactivate`` is set for a one-time
    task without start date: its history is cleared so it shows up again.
    """

    tasks = get_tasks()
    for index, task in enumerate(tasks):
        if task.id != task_id:
            continue

        updates: dict[str, object] = {}
        if title is not None:
            updates["title"] = _clean_title(title)
        if category is not _UNSET:
            assert category is None or isinstance(category, str)
            updates["category"] = category
        rule = task.recurrence if recurrence is None else _resolve_rule(recurrence, weekdays, month_days)
        updates["recurrence"] = rule

        requested_start = task.start_date if start_date is _UNSET else start_date
        assert requested_start is None or isinstance(requested_start, date)
        updates["start_date"] = _normalize_start_date(rule, task.created_at, requested_start)

        updated = Task.model_validate({**task.model_dump(), **updates})
        tasks[index] = updated
        save_tasks(tasks)

        if reactivate and not is_recurring(rule) and updated.start_date is None:
            _clear_completions(task_id)
        return updated

    return None


def _clear_completions(task_id: str) -> int:
    completions = get_completions()
    remaining = [completion for completion in completions if completion.task_id != task_id]
    removed = len(completions) - len(remaining)
    if removed:
        save_completions(remaining)
        LOGGER.info("Cleared %s completions of task %s", removed, task_id)
    return removed


def toggle_completion(
    task_id: str,
    day: Optional[date] = None,
    *,
    calendar: Optional[CalendarContext] = None,
) -> Optional[bool]:
    """Complete or un-complete a task for ``day`` (today by default).

    This is the one entry point for marking tasks done, used by the app and by
    out-of-process triggers alike. Returns the new state, or ``None`` when the
    task does not exist.
    """

    task = get_task(task_id)
    if task is None:
        LOGGER.info("Toggle ignored for unknown task %s", task_id)
        return None

    return _engine(calendar).toggle_completion(
        task, get_completions(task_id), SessionCompletionStore(), day
    )


def delete_task(task_id: str) -> bool:
    """Delete a task together with all of its completions."""

    tasks = get_tasks()
    remaining = [task for task in tasks if task.id != task_id]
    if len(remaining) == len(tasks):
        return False

    save_tasks(remaining)
    _clear_completions(task_id)
    return True


def deactivate_task(task_id: str) -> Optional[Task]:
    """Hide a task from the active list while keeping its history."""

    tasks = get_tasks()
    for index, task in enumerate(tasks):
        if task.id != task_id:
            continue
        tasks[index] = task.model_copy(update={"active": False})
        save_tasks(tasks)
        return tasks[index]
    return None


def reorder_tasks(task_ids: Sequence[str]) -> list[Task]:
    """Assign sort orders following ``task_ids``; tasks not listed keep their relative order after them."""

    tasks = get_tasks()
    position = {task_id: index for index, task_id in enumerate(task_ids)}
    ordered = sorted(tasks, key=lambda task: (position.get(task.id, len(position)), task.sort_order))
    reordered = [task.model_copy(update={"sort_order": index}) for index, task in enumerate(ordered)]
    save_tasks(reordered)
    return reordered


def get_active_tasks() -> list[Task]:
    return sorted((task for task in get_tasks() if task.active), key=lambda task: task.sort_order)


def get_today_tasks(*, calendar: Optional[CalendarContext] = None) -> list[Task]:
    return _engine(calendar).today_tasks(get_tasks(), get_completions())


def get_task_stats(task_id: str, *, calendar: Optional[CalendarContext] = None) -> Optional[TaskStats]:
    task = get_task(task_id)
    if task is None:
        return None
    return _engine(calendar).task_stats(task, get_completions(task_id))


def add_category(name: str, *, icon_name: str = "star.fill", color_hex: str = "1C9C82") -> CustomCategory:
    categories = get_categories()
    cleaned = name.strip()
    if any(category.name.casefold() == cleaned.casefold() for category in categories):
        raise ValueError(f"Category already exists: {cleaned!r}")

    max_sort_order = max((category.sort_order for category in categories), default=0)
    category = CustomCategory(name=cleaned, icon_name=icon_name, color_hex=color_hex, sort_order=max_sort_order + 1)
    save_categories([*categories, category])
    return category


def delete_category(name: str) -> bool:
    """Remove a category; its tasks become uncategorized."""

    categories = get_categories()
    remaining = [category for category in categories if category.name != name]
    if len(remaining) == len(categories):
        return False

    save_categories(remaining)
    tasks = get_tasks()
    save_tasks([task.model_copy(update={"category": None}) if task.category == name else task for task in tasks])
    return True


__all__ = [
    "add_category",
    "add_task",
    "deactivate_task",
    "delete_category",
    "delete_task",
    "get_active_tasks",
    "get_task",
    "get_task_stats",
    "get_today_tasks",
    "reorder_tasks",
    "toggle_completion",
    "update_task",
]
