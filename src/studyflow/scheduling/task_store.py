# src/studyflow/scheduling/task_store.py

from __future__ import annotations

import logging
from datetime import datetime

from ..core.notify import success
from ..core.ports import Row
from ..core.results import Ok, Result
from .models import TASKS, Task, TaskPriority, TaskStatus
from .snapshot import SnapshotStore
from .timeutil import now_local, parse_ts, to_iso

logger = logging.getLogger(__name__)


class TaskStore(SnapshotStore[Task]):
    """
    Owner's tasks, ordered by due date (tasks without a due date last).

    All operations are async and return Ok/Fail; the `tasks` snapshot only changes
    through a successful re-list after a write.
    """

    collection = TASKS
    order_by = "due_date"
    label = "task"

    @property
    def tasks(self) -> tuple[Task, ...]:
        return self.items

    def _from_row(self, row: Row) -> Task:
        created_at = parse_ts(row.get("created_at")) or now_local()
        return Task(
            id=str(row["id"]),
            owner_id=str(row.get("owner_id") or self.owner_id),
            title=str(row.get("title") or ""),
            status=TaskStatus.from_db(row.get("status")),
            priority=TaskPriority.from_db(row.get("priority")),
            created_at=created_at,
            updated_at=parse_ts(row.get("updated_at")) or created_at,
            description=row.get("description") or None,
            due_date=parse_ts(row.get("due_date")),
            subject=row.get("subject") or None,
        )

    async def create(
        self,
        title: str,
        *,
        description: str | None = None,
        due_date: datetime | None = None,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        subject: str | None = None,
        status: TaskStatus | str = TaskStatus.PENDING,
    ) -> Result[Task]:
        if not title or not title.strip():
            raise ValueError("title is required")

        row: Row = {
            "title": title.strip(),
            "description": (description or "").strip() or None,
            "due_date": to_iso(due_date),
            "priority": TaskPriority(priority).value,
            "subject": (subject or "").strip() or None,
            "status": TaskStatus(status).value,
        }
        res = await self._insert([row], notice="Failed to add task.")
        if not res.ok:
            return res
        if not res.value:
            return self._io_fail("insert", RuntimeError("store returned no row"), notice="Failed to add task.")

        task = res.value[0]
        logger.debug("Task added id=%s priority=%s due=%s", task.id, task.priority.value, task.due_date)
        self._emit(success("Task added successfully"))
        return Ok(task)

    async def update(
        self,
        task_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        due_date: datetime | None = None,
        priority: TaskPriority | str | None = None,
        subject: str | None = None,
        status: TaskStatus | str | None = None,
        quiet: bool = False,
    ) -> Result[Task]:
        """Partial update; None means "unchanged". Always stamps updated_at."""
        changes: Row = {}

        if title is not None:
            if not title.strip():
                raise ValueError("title must not be empty")
            changes["title"] = title.strip()

        if description is not None:
            changes["description"] = description.strip() or None

        if due_date is not None:
            changes["due_date"] = to_iso(due_date)

        if priority is not None:
            changes["priority"] = TaskPriority(priority).value

        if subject is not None:
            changes["subject"] = subject.strip() or None

        if status is not None:
            changes["status"] = TaskStatus(status).value

        res = await self._update(task_id, changes, notice="Failed to update task.")
        if res.ok and not quiet:
            self._emit(success("Task updated successfully"))
        return res

    async def delete(self, task_id: str) -> Result[None]:
        # Sessions pointing at this task keep their related_task_id (weak reference).
        res = await self._delete(task_id, notice="Failed to delete task.")
        if res.ok:
            self._emit(success("Task deleted successfully"))
        return res

    async def toggle_completion(self, task: Task) -> Result[Task]:
        """
        completed -> pending, anything else -> completed.

        An in-progress task therefore goes to completed, and back to pending (never
        back to in-progress).
        """
        new_status = TaskStatus.PENDING if task.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
        res = await self.update(task.id, status=new_status, quiet=True)
        if res.ok:
            logger.info("Task %s -> %s", task.id, new_status.value)
        return res
