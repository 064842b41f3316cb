# src/studyflow/core/errors.py

from __future__ import annotations


class StoreError(RuntimeError):
    """Raised by KeyedStore backends when a persistence call fails (I/O, driver, schema)."""
