from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, List, Optional, Sequence

import streamlit as st
from pydantic import BaseModel, ValidationError

from reps_tracker.constants import (
    SETTINGS_FIRST_WEEKDAY_KEY,
    SETTINGS_TIMEZONE_KEY,
    SS_CATEGORIES,
    SS_COMPLETIONS,
    SS_SETTINGS,
    SS_TASKS,
)
from reps_tracker.days import CalendarContext, Weekday, ensure_weekday, resolve_timezone
from reps_tracker.models import Completion, CustomCategory, Task
from reps_tracker.recurrence import MonthlyRule, RecurrenceKind, WeeklyRule, build_rule, ensure_recurrence_kind
from reps_tracker.state_persistence import (
    configure_storage,
    load_persisted_state,
    persist_state,
)

LOGGER = logging.getLogger(__name__)

__all__ = [
    "SessionCompletionStore",
    "configure_storage",
    "get_calendar",
    "get_categories",
    "get_completions",
    "get_settings",
    "get_tasks",
    "init_state",
    "load_persisted_state",
    "persist_state",
    "reset_state",
    "save_categories",
    "save_completions",
    "save_tasks",
    "update_settings",
]


def _default_settings() -> dict[str, Any]:
    defaults = CalendarContext.from_env()
    return {
        SETTINGS_FIRST_WEEKDAY_KEY: int(defaults.first_weekday),
        SETTINGS_TIMEZONE_KEY: getattr(defaults.tz, "key", None),
    }


def _normalize_timestamp(value: Any, default: datetime | None = None) -> datetime | None:
    """Convert legacy timestamp inputs to timezone-aware datetimes."""

    if value is None:
        return default

    try:
        candidate: datetime
        if isinstance(value, datetime):
            candidate = value
        elif isinstance(value, date):
            candidate = datetime.combine(value, time.min)
        elif isinstance(value, str):
            text = value.strip()
            candidate = datetime.fromisoformat(text[:-1] + "+00:00" if text.endswith("Z") else text)
        else:
            return default

        if candidate.tzinfo is None:
            return candidate.replace(tzinfo=timezone.utc)
        return candidate
    except ValueError:
        return default


def _normalize_day(value: Any, default: date | None = None) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        timestamp = _normalize_timestamp(value)
        if timestamp is not None:
            return timestamp.date()
    return default


def _migrate_recurrence(raw: dict[str, Any]) -> dict[str, Any]:
    recurrence = raw.get("recurrence")
    if isinstance(recurrence, dict):
        return recurrence
    if isinstance(recurrence, BaseModel):
        return recurrence.model_dump()

    raw_kind = raw.pop("recurrence_type", None) or (recurrence if isinstance(recurrence, str) else None)
    if raw_kind:
        try:
            kind = ensure_recurrence_kind(str(raw_kind))
        except ValueError:
            LOGGER.warning("Unknown recurrence %r on task %s, treating it as one-time", raw_kind, raw.get("id"))
            kind = RecurrenceKind.NONE
    else:
        kind = RecurrenceKind.DAILY if raw.get("is_recurring") else RecurrenceKind.NONE

    if kind is RecurrenceKind.WEEKLY:
        return WeeklyRule.model_validate({"weekdays": raw.get("selected_weekdays")}).model_dump()
    if kind is RecurrenceKind.MONTHLY:
        return MonthlyRule.model_validate({"month_days": raw.get("selected_month_days")}).model_dump()
    return build_rule(kind).model_dump()


def _coerce_task(raw: Any) -> Task:
    if isinstance(raw, Task):
        return raw

    if isinstance(raw, dict):
        migrated = dict(raw)
        migrated["recurrence"] = _migrate_recurrence(migrated)
        migrated.pop("is_recurring", None)
        migrated.pop("selected_weekdays", None)
        migrated.pop("selected_month_days", None)
        if "is_active" in migrated:
            migrated.setdefault("active", migrated.pop("is_active"))
        migrated.setdefault("category", None)
        migrated.setdefault("sort_order", 0)
        migrated["created_at"] = _normalize_day(migrated.get("created_at"), default=get_calendar().today())
        migrated["start_date"] = _normalize_day(migrated.get("start_date"))
        return Task.model_validate(migrated)

    return Task.model_validate(raw)


def _coerce_completion(raw: Any) -> Completion:
    if isinstance(raw, Completion):
        return raw

    if isinstance(raw, dict):
        migrated = dict(raw)
        if "task" in migrated and "task_id" not in migrated:
            migrated["task_id"] = migrated.pop("task")
        migrated["completed_at"] = _normalize_timestamp(migrated.get("completed_at"))
        return Completion.model_validate(migrated)

    return Completion.model_validate(raw)


def _coerce_records(raw_records: Iterable[Any], coerce: Any) -> tuple[list[Any], bool]:
    records: list[Any] = []
    mutated = False
    for raw in raw_records:
        try:
            records.append(coerce(raw))
        except (ValidationError, TypeError, ValueError) as exc:
            LOGGER.warning("Skipping unreadable record %r: %s", raw, exc)
            mutated = True
            continue
        if isinstance(raw, dict):
            mutated = True
    return records, mutated


def init_state() -> None:
    """Initialize all required session state keys if they are missing."""

    if SS_TASKS not in st.session_state:
        st.session_state[SS_TASKS] = []
    else:
        tasks, _ = _coerce_records(st.session_state.get(SS_TASKS, []), _coerce_task)
        st.session_state[SS_TASKS] = [task.model_dump() for task in tasks]

    if SS_COMPLETIONS not in st.session_state:
        st.session_state[SS_COMPLETIONS] = []
    else:
        completions, _ = _coerce_records(st.session_state.get(SS_COMPLETIONS, []), _coerce_completion)
        st.session_state[SS_COMPLETIONS] = [completion.model_dump() for completion in completions]

    st.session_state.setdefault(SS_CATEGORIES, [])

    if SS_SETTINGS not in st.session_state:
        st.session_state[SS_SETTINGS] = _default_settings()

    persist_state()


def get_tasks() -> List[Task]:
    """Return tasks from session state as Task models."""

    tasks, mutated = _coerce_records(st.session_state.get(SS_TASKS, []), _coerce_task)
    if mutated:
        save_tasks(tasks)
    return tasks


def save_tasks(tasks: Sequence[Task]) -> None:
    st.session_state[SS_TASKS] = [task.model_dump() for task in tasks]
    persist_state()


def get_completions(task_id: Optional[str] = None) -> List[Completion]:
    """Return completion records, optionally only those of one task."""

    completions, mutated = _coerce_records(st.session_state.get(SS_COMPLETIONS, []), _coerce_completion)
    if mutated:
        save_completions(completions)
    if task_id is None:
        return completions
    return [completion for completion in completions if completion.task_id == task_id]


def save_completions(completions: Sequence[Completion]) -> None:
    st.session_state[SS_COMPLETIONS] = [completion.model_dump() for completion in completions]
    persist_state()


def get_categories() -> List[CustomCategory]:
    categories, mutated = _coerce_records(st.session_state.get(SS_CATEGORIES, []), CustomCategory.model_validate)
    if mutated:
        save_categories(categories)
    return sorted(categories, key=lambda category: category.sort_order)


def save_categories(categories: Sequence[CustomCategory]) -> None:
    st.session_state[SS_CATEGORIES] = [category.model_dump() for category in categories]
    persist_state()


def get_settings() -> dict[str, Any]:
    settings = st.session_state.get(SS_SETTINGS)
    if not isinstance(settings, dict):
        settings = _default_settings()
        st.session_state[SS_SETTINGS] = settings
    return settings


def update_settings(**updates: Any) -> dict[str, Any]:
    settings = {**get_settings(), **updates}
    st.session_state[SS_SETTINGS] = settings
    persist_state()
    return settings


def get_calendar() -> CalendarContext:
    """Calendar context built from the stored settings, falling back to the environment."""

    settings = get_settings()
    defaults = CalendarContext.from_env()
    first_weekday: Weekday = defaults.first_weekday
    raw_first = settings.get(SETTINGS_FIRST_WEEKDAY_KEY)
    if raw_first:
        try:
            first_weekday = ensure_weekday(raw_first)
        except ValueError:
            LOGGER.warning("Ignoring invalid first weekday setting %r", raw_first)

    tz = defaults.tz
    raw_tz = settings.get(SETTINGS_TIMEZONE_KEY)
    if raw_tz:
        try:
            tz = resolve_timezone(str(raw_tz))
        except ValueError:
            LOGGER.warning("Ignoring invalid time zone setting %r", raw_tz)
    return CalendarContext(tz=tz, first_weekday=first_weekday)


class SessionCompletionStore:
    """Completion store writing straight through to session state."""

    def insert_completion(self, completion: Completion) -> None:
        save_completions([*get_completions(), completion])

    def delete_completion(self, completion_id: str) -> None:
        save_completions([completion for completion in get_completions() if completion.id != completion_id])


def reset_state() -> None:
    """Clear managed keys and restore defaults."""

    for key in (SS_TASKS, SS_COMPLETIONS, SS_CATEGORIES, SS_SETTINGS):
        if key in st.session_state:
            del st.session_state[key]
    init_state()
