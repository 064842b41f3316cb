# src/studyflow/scheduling/dashboard.py

from __future__ import annotations

from collections import Counter, defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from .models import DEFAULT_SUBJECT, Session, SessionStatus, Task, TaskStatus
from .timeutil import ensure_aware, now_local


def percentage(part: float, whole: float) -> float:
    """part/whole in percent; an empty denominator is 0%."""
    if not whole:
        return 0.0
    return round(100.0 * part / whole, 1)


@dataclass(slots=True, frozen=True)
class DashboardSummary:
    total_tasks: int
    tasks_by_status: dict[str, int]
    completed_tasks: int
    task_completion_pct: float
    overdue_tasks: int

    total_sessions: int
    completed_sessions: int
    session_completion_pct: float
    scheduled_hours: float
    completed_hours: float
    study_hours_pct: float
    hours_by_subject: dict[str, float] = field(default_factory=dict)


def summarize(
    tasks: Sequence[Task],
    sessions: Sequence[Session],
    *,
    now: datetime | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
) -> DashboardSummary:
    """
    Read-only rollups for the progress card.

    since/until restrict sessions by start time (e.g. the current week); tasks are
    always counted in full. Cancelled sessions do not count towards planned hours.
    """
    now = ensure_aware(now) if now is not None else now_local()

    by_status = Counter(t.status.value for t in tasks)
    completed_tasks = by_status.get(TaskStatus.COMPLETED.value, 0)
    overdue = sum(
        1 for t in tasks if t.due_date is not None and t.status != TaskStatus.COMPLETED and t.due_date < now
    )

    window = [
        s
        for s in sessions
        if (since is None or s.start_time >= ensure_aware(since))
        and (until is None or s.start_time < ensure_aware(until))
    ]
    active = [s for s in window if s.status != SessionStatus.CANCELLED]
    done = [s for s in active if s.status == SessionStatus.COMPLETED]

    scheduled_hours = sum(s.duration_hours for s in active)
    completed_hours = sum(s.duration_hours for s in done)

    hours_by_subject: dict[str, float] = defaultdict(float)
    for s in active:
        hours_by_subject[s.subject or DEFAULT_SUBJECT] += s.duration_hours

    return DashboardSummary(
        total_tasks=len(tasks),
        tasks_by_status={st.value: by_status.get(st.value, 0) for st in TaskStatus},
        completed_tasks=completed_tasks,
        task_completion_pct=percentage(completed_tasks, len(tasks)),
        overdue_tasks=overdue,
        total_sessions=len(active),
        completed_sessions=len(done),
        session_completion_pct=percentage(len(done), len(active)),
        scheduled_hours=round(scheduled_hours, 2),
        completed_hours=round(completed_hours, 2),
        study_hours_pct=percentage(completed_hours, scheduled_hours),
        hours_by_subject={k: round(v, 2) for k, v in sorted(hours_by_subject.items())},
    )
