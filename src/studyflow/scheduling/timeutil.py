# src/studyflow/scheduling/timeutil.py

"""
Timestamp helpers.

Model fields are timezone-aware datetimes. Naive values are read as local wall time.
Rows carry UTC ISO-8601 strings with millisecond precision, so string order == time order.
A calendar day is the local (year, month, day) of a timestamp, as a datetime.date.
"""

from __future__ import annotations

from datetime import UTC, date, datetime

DayKey = date


def ensure_aware(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.astimezone()
    return ts


def now_local() -> datetime:
    return datetime.now().astimezone()


def to_iso(ts: datetime | None) -> str | None:
    if ts is None:
        return None
    return ensure_aware(ts).astimezone(UTC).isoformat(timespec="milliseconds")


def parse_ts(raw: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string (a trailing 'Z' is accepted). Raises ValueError if malformed."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return ensure_aware(raw)
    s = str(raw).strip()
    if not s:
        return None
    if s.endswith(("Z", "z")):
        s = s[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(s))


def day_key(ts: datetime | date) -> DayKey:
    if isinstance(ts, datetime):
        return ensure_aware(ts).astimezone().date()
    return ts
