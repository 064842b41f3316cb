# src/studyflow/scheduling/validator.py

from __future__ import annotations

from datetime import datetime

from ..core.results import ErrorKind, Fail, Ok, Result
from .timeutil import ensure_aware

INVALID_RANGE_MESSAGE = "End time must be after start time"


def validate_range(start: datetime, end: datetime) -> Result[None]:
    """Check a session time range: end must be strictly after start. Pure."""
    if ensure_aware(end) <= ensure_aware(start):
        return Fail(ErrorKind.INVALID_RANGE, INVALID_RANGE_MESSAGE)
    return Ok(None)
