# src/studyflow/scheduling/session_store.py

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from ..core.notify import Notification, Severity, success
from ..core.ports import Row
from ..core.results import Fail, Ok, Result
from .models import SESSIONS, Session, SessionProposal, SessionStatus
from .snapshot import SnapshotStore
from .timeutil import now_local, parse_ts, to_iso
from .validator import validate_range

logger = logging.getLogger(__name__)


class SessionStore(SnapshotStore[Session]):
    """
    Owner's study sessions, ordered by start time.

    create/update validate the time range first: an invalid range is reported as
    Fail(INVALID_RANGE) and never reaches the backend.
    """

    collection = SESSIONS
    order_by = "start_time"
    label = "study session"

    @property
    def sessions(self) -> tuple[Session, ...]:
        return self.items

    def _from_row(self, row: Row) -> Session:
        start = parse_ts(row.get("start_time"))
        end = parse_ts(row.get("end_time"))
        if start is None or end is None:
            raise ValueError(f"session row {row.get('id')} has no start/end time")
        created_at = parse_ts(row.get("created_at")) or now_local()
        return Session(
            id=str(row["id"]),
            owner_id=str(row.get("owner_id") or self.owner_id),
            title=str(row.get("title") or ""),
            start_time=start,
            end_time=end,
            status=str(row.get("status") or SessionStatus.SCHEDULED.value),
            created_at=created_at,
            updated_at=parse_ts(row.get("updated_at")) or created_at,
            description=row.get("description") or None,
            subject=row.get("subject") or None,
            related_task_id=row.get("related_task_id") or None,
        )

    def _invalid_range(self, res: Fail) -> Fail:
        logger.info("Rejected session time range owner=%s", self.owner_id)
        self._emit(Notification("Invalid time range", res.message, Severity.ERROR))
        return res

    async def create(
        self,
        title: str,
        *,
        start_time: datetime,
        end_time: datetime,
        description: str | None = None,
        subject: str | None = None,
        status: str = SessionStatus.SCHEDULED,
        related_task_id: str | None = None,
    ) -> Result[Session]:
        if not title or not title.strip():
            raise ValueError("title is required")

        check = validate_range(start_time, end_time)
        if not check.ok:
            return self._invalid_range(check)

        row: Row = {
            "title": title.strip(),
            "description": (description or "").strip() or None,
            "start_time": to_iso(start_time),
            "end_time": to_iso(end_time),
            "subject": (subject or "").strip() or None,
            "status": str(status or SessionStatus.SCHEDULED),
            "related_task_id": related_task_id or None,
        }
        res = await self._insert([row], notice="Failed to add study session.")
        if not res.ok:
            return res
        if not res.value:
            return self._io_fail("insert", RuntimeError("store returned no row"), notice="Failed to add study session.")

        self._emit(success("Study session added successfully"))
        return Ok(res.value[0])

    async def create_many(self, proposals: Sequence[SessionProposal]) -> Result[list[Session]]:
        """
        Bulk insert of already-validated proposals as scheduled sessions (single backend call).

        Emits no notification of its own; the caller reports the outcome.
        """
        rows: list[Row] = [
            {
                "title": p.title,
                "description": p.description,
                "start_time": to_iso(p.start_time),
                "end_time": to_iso(p.end_time),
                "subject": p.subject,
                "status": SessionStatus.SCHEDULED.value,
                "related_task_id": p.related_task_id,
            }
            for p in proposals
        ]
        if not rows:
            return Ok([])
        return await self._insert(rows, notice=None)

    async def update(
        self,
        session_id: str,
        *,
        title: str | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        description: str | None = None,
        subject: str | None = None,
        status: str | None = None,
        related_task_id: str | None = None,
    ) -> Result[Session]:
        """
        Partial update; None means "unchanged". Always stamps updated_at.

        If only one bound changes, the other comes from the current snapshot.
        """
        changes: Row = {}

        if start_time is not None or end_time is not None:
            current = self.get(session_id)
            if (start_time is None or end_time is None) and current is None:
                return self._not_found(session_id, notice="The study session no longer exists.")
            start = start_time if start_time is not None else current.start_time  # type: ignore[union-attr]
            end = end_time if end_time is not None else current.end_time  # type: ignore[union-attr]
            check = validate_range(start, end)
            if not check.ok:
                return self._invalid_range(check)
            if start_time is not None:
                changes["start_time"] = to_iso(start_time)
            if end_time is not None:
                changes["end_time"] = to_iso(end_time)

        if title is not None:
            if not title.strip():
                raise ValueError("title must not be empty")
            changes["title"] = title.strip()

        if description is not None:
            changes["description"] = description.strip() or None

        if subject is not None:
            changes["subject"] = subject.strip() or None

        if status is not None:
            changes["status"] = str(status)

        if related_task_id is not None:
            changes["related_task_id"] = related_task_id or None

        res = await self._update(session_id, changes, notice="Failed to update study session.")
        if res.ok:
            self._emit(success("Study session updated successfully"))
        return res

    async def delete(self, session_id: str) -> Result[None]:
        res = await self._delete(session_id, notice="Failed to delete study session.")
        if res.ok:
            self._emit(success("Study session deleted successfully"))
        return res
