# tests/test_validator.py

from __future__ import annotations

from datetime import timedelta

from studyflow.core.results import ErrorKind
from studyflow.scheduling.validator import INVALID_RANGE_MESSAGE, validate_range

from .conftest import local


def test_end_after_start_is_ok() -> None:
    start = local(2026, 10, 20, 9, 0)
    assert validate_range(start, start + timedelta(minutes=1)).ok


def test_equal_or_reversed_range_is_invalid() -> None:
    start = local(2026, 10, 20, 9, 0)
    for end in (start, start - timedelta(hours=1)):
        res = validate_range(start, end)
        assert not res.ok
        assert res.kind == ErrorKind.INVALID_RANGE
        assert res.message == INVALID_RANGE_MESSAGE


def test_naive_input_is_read_as_local_time() -> None:
    aware = local(2026, 10, 20, 9, 0)
    naive_end = aware.replace(tzinfo=None) + timedelta(minutes=30)
    assert validate_range(aware, naive_end).ok
