# src/studyflow/core/results.py

"""
Result types returned by the stores.

Expected failures (bad time range, store fault, missing id) are values, not
exceptions: every store operation returns either Ok(value) or Fail(kind, message).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(StrEnum):
    INVALID_RANGE = "invalid_range"
    IO_ERROR = "io_error"
    NOT_FOUND = "not_found"


@dataclass(slots=True, frozen=True)
class Ok(Generic[T]):
    value: T

    ok: ClassVar[bool] = True


@dataclass(slots=True, frozen=True)
class Fail:
    kind: ErrorKind
    message: str = ""

    ok: ClassVar[bool] = False


Result = Ok[T] | Fail
