# src/studyflow/scheduling/calendar_index.py

"""
Calendar views over the session collection.

Two pure views (linear scan, recomputed on demand):
- days_with_sessions(sessions): local calendar days holding at least one session start
- sessions_on_day(sessions, day): sessions starting on that local day, by start time

CalendarIndex keeps the same answers in a day -> ordered sessions map that is
updated incrementally from SessionStore snapshots, so rendering a month does not
rescan every session per cell.

Days are compared as local (year, month, day), never as 24h offsets: 23:50 and
00:10 the next day land in different buckets.
"""

from __future__ import annotations

import bisect
import calendar
import logging
from collections.abc import Iterable, Sequence
from datetime import date, datetime

from .models import Session, Task
from .timeutil import DayKey, day_key

logger = logging.getLogger(__name__)

UNKNOWN_TASK_LABEL = "unknown task"


def _start_key(s: Session) -> datetime:
    return s.start_time


def days_with_sessions(sessions: Iterable[Session]) -> set[DayKey]:
    return {day_key(s.start_time) for s in sessions}


def sessions_on_day(sessions: Iterable[Session], day: date | datetime) -> list[Session]:
    target = day_key(day)
    return sorted((s for s in sessions if day_key(s.start_time) == target), key=_start_key)


def related_task_label(session: Session, tasks: Sequence[Task]) -> str | None:
    """Title of the related task; a dangling reference reads as "unknown task"."""
    if not session.related_task_id:
        return None
    for t in tasks:
        if t.id == session.related_task_id:
            return t.title
    return UNKNOWN_TASK_LABEL


class CalendarIndex:
    """Bucketed map: local day -> sessions ordered by start time."""

    def __init__(self, sessions: Iterable[Session] = ()) -> None:
        self._buckets: dict[DayKey, list[Session]] = {}
        self._by_id: dict[str, Session] = {}
        self.sync(tuple(sessions))

    def __len__(self) -> int:
        return len(self._by_id)

    def _add(self, s: Session) -> None:
        bucket = self._buckets.setdefault(day_key(s.start_time), [])
        bisect.insort_right(bucket, s, key=_start_key)
        self._by_id[s.id] = s

    def _remove(self, s: Session) -> None:
        key = day_key(s.start_time)
        bucket = self._buckets.get(key)
        if bucket is not None:
            for i, item in enumerate(bucket):
                if item.id == s.id:
                    del bucket[i]
                    break
            if not bucket:
                del self._buckets[key]
        self._by_id.pop(s.id, None)

    def sync(self, snapshot: Sequence[Session]) -> None:
        """Bring the index in line with a new snapshot, touching only changed sessions."""
        incoming = {s.id: s for s in snapshot}

        removed = [s for sid, s in self._by_id.items() if sid not in incoming]
        changed = [
            (self._by_id[sid], s)
            for sid, s in incoming.items()
            if sid in self._by_id and self._by_id[sid] != s
        ]
        added = [s for sid, s in incoming.items() if sid not in self._by_id]

        for s in removed:
            self._remove(s)
        for old, new in changed:
            self._remove(old)
            self._add(new)
        for s in added:
            self._add(s)

        if removed or changed or added:
            logger.debug(
                "Calendar index synced: +%d ~%d -%d (days=%d)",
                len(added),
                len(changed),
                len(removed),
                len(self._buckets),
            )

    def days(self) -> set[DayKey]:
        return set(self._buckets)

    def has_sessions(self, day: date | datetime) -> bool:
        return day_key(day) in self._buckets

    def on_day(self, day: date | datetime) -> list[Session]:
        return list(self._buckets.get(day_key(day), ()))

    def days_in_month(self, year: int, month: int) -> list[DayKey]:
        """Days of the given month that hold sessions (for decorating calendar cells)."""
        last = calendar.monthrange(year, month)[1]
        first_day, last_day = date(year, month, 1), date(year, month, last)
        return sorted(d for d in self._buckets if first_day <= d <= last_day)
