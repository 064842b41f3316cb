# tests/conftest.py

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from studyflow.cli.bootstrap import create_initial_state
from studyflow.core.state import AppState
from studyflow.scheduling.calendar_index import CalendarIndex
from studyflow.scheduling.session_store import SessionStore
from studyflow.scheduling.task_store import TaskStore

from .fakes import CollectingNotifier, FakeKeyedStore, FakeLLMClient

OWNER = "owner-1"


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Aware datetime for a local wall-clock time."""
    return datetime(year, month, day, hour, minute).astimezone()


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and core modules.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="studyflow-test",
        owner_id=OWNER,
        data_dir=tmp_path,
        db_path=tmp_path / "studyflow.sqlite3",
        llm_models=["fake/model"],
        generation_horizon_days=7,
    )


@pytest.fixture()
def backend() -> FakeKeyedStore:
    return FakeKeyedStore()


@pytest.fixture()
def notifier() -> CollectingNotifier:
    return CollectingNotifier()


@pytest.fixture()
def tasks(backend: FakeKeyedStore, notifier: CollectingNotifier) -> TaskStore:
    return TaskStore(backend, OWNER, notifier=notifier)


@pytest.fixture()
def sessions(backend: FakeKeyedStore, notifier: CollectingNotifier) -> SessionStore:
    return SessionStore(backend, OWNER, notifier=notifier)


@pytest.fixture()
def calendar_index(sessions: SessionStore) -> CalendarIndex:
    index = CalendarIndex()
    sessions.add_listener(index.sync)
    return index


@pytest.fixture()
def state(settings: SimpleNamespace, backend: FakeKeyedStore, notifier: CollectingNotifier) -> AppState:
    """
    AppState wired with deterministic fakes (in-memory backend, canned LLM reply).
    """
    return create_initial_state(
        settings=settings,
        backend=backend,
        llm=FakeLLMClient(),
        notifier=notifier,
    )
