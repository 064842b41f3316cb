# src/studyflow/scheduling/models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

TASKS = "tasks"
SESSIONS = "sessions"

SUBJECT_SUGGESTIONS: tuple[str, ...] = (
    "Mathematics",
    "Physics",
    "Chemistry",
    "Biology",
    "History",
    "Literature",
    "Computer Science",
    "Economics",
    "General",
)
DEFAULT_SUBJECT = "General"


class TaskStatus(StrEnum):
    """
    Task status.

    No transition graph is enforced: any value can be set by an explicit update.
    The completion toggle only moves between PENDING and COMPLETED.
    """

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.PENDING
        try:
            return cls(raw)
        except ValueError:
            return cls.PENDING


class TaskPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_db(cls, raw: str | None) -> TaskPriority:
        if not raw:
            return cls.MEDIUM
        try:
            return cls(raw)
        except ValueError:
            return cls.MEDIUM


class SessionStatus(StrEnum):
    """Well-known session statuses. Stored as free text; other values are kept as-is."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class Task:
    id: str
    owner_id: str
    title: str
    status: TaskStatus
    priority: TaskPriority
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    due_date: datetime | None = None
    subject: str | None = None


@dataclass(slots=True)
class Session:
    id: str
    owner_id: str
    title: str
    start_time: datetime
    end_time: datetime
    status: str
    created_at: datetime
    updated_at: datetime

    description: str | None = None
    subject: str | None = None
    # Weak reference: never validated, never cascaded, may dangle.
    related_task_id: str | None = None

    @property
    def duration_hours(self) -> float:
        return (self.end_time - self.start_time).total_seconds() / 3600.0


@dataclass(slots=True, frozen=True)
class SessionProposal:
    """Session-shaped record proposed by the generator, not yet persisted."""

    title: str
    start_time: datetime
    end_time: datetime
    description: str | None = None
    subject: str | None = None
    related_task_id: str | None = None
