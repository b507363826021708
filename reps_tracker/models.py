from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from reps_tracker.recurrence import OneTimeRule, RecurrenceKind, RecurrenceRule, supports_start_date


def _today() -> date:
    return datetime.now().astimezone().date()


class Task(BaseModel):
    """A schedulable task; its completions are stored separately."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    title: str = Field(min_length=1)
    category: Optional[str] = None
    recurrence: RecurrenceRule = Field(default_factory=OneTimeRule)
    created_at: date = Field(default_factory=_today)
    start_date: Optional[date] = None
    active: bool = True
    sort_order: int = 0

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("category", mode="before")
    @classmethod
    def _blank_category_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _drop_start_date_for_calendar_rules(self) -> "Task":
        if self.start_date is not None and not supports_start_date(self.recurrence):
            self.start_date = None
        return self

    @property
    def recurrence_kind(self) -> RecurrenceKind:
        return self.recurrence.recurrence_kind


class Completion(BaseModel):
    """One completed occurrence; its local calendar day is the occurrence day."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    task_id: str
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CustomCategory(BaseModel):
    """User-defined category with icon and color; ``name`` is the key stored on tasks."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(min_length=1)
    icon_name: str = "star.fill"
    color_hex: str = Field(default="1C9C82", pattern=r"^[0-9A-Fa-f]{6}$")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    sort_order: int = 0

    @field_validator("color_hex", mode="before")
    @classmethod
    def _strip_hash(cls, value: object) -> object:
        return value.strip().lstrip("#") if isinstance(value, str) else value


__all__ = ["Completion", "CustomCategory", "Task"]
