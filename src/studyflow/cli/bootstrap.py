# src/studyflow/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (SQLite backend, LLM, stores, merger).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.notify import LoggingNotifier
from ..core.ports import KeyedStore, LLMClient, Notifier
from ..core.state import AppState
from ..llm.client import OpenAIChatClient
from ..llm.offline import OfflineLLMClient
from ..scheduling.calendar_index import CalendarIndex
from ..scheduling.generation import GenerationMerger
from ..scheduling.proposer import LLMSessionProposer
from ..scheduling.session_store import SessionStore
from ..scheduling.task_store import TaskStore
from ..storage.sqlite_store import SQLiteKeyedStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)


def build_llm_client(settings) -> LLMClient:
    try:
        return OpenAIChatClient(settings)
    except RuntimeError as e:
        # Fallback for local runs without external services.
        logger.info("LLM disabled (%s); using offline client.", e)
        return OfflineLLMClient()


def create_initial_state(
    *,
    settings=None,
    backend: KeyedStore | None = None,
    llm: LLMClient | None = None,
    notifier: Notifier | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and collaborators injectable makes the app easier to test and
    avoids hidden global config reads. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    if backend is None:
        _ensure_local_dirs(settings)
        backend = SQLiteKeyedStore(settings.db_path)
    if llm is None:
        llm = build_llm_client(settings)
    if notifier is None:
        notifier = LoggingNotifier()

    owner_id = settings.owner_id
    tasks = TaskStore(backend, owner_id, notifier=notifier)
    sessions = SessionStore(backend, owner_id, notifier=notifier)

    calendar_index = CalendarIndex()
    sessions.add_listener(calendar_index.sync)

    proposer = LLMSessionProposer(llm, horizon_days=settings.generation_horizon_days)
    merger = GenerationMerger(tasks, sessions, proposer, notifier=notifier)

    logger.info("State ready owner=%s llm=%s", owner_id, llm.__class__.__name__)
    return AppState(
        settings=settings,
        backend=backend,
        llm=llm,
        notifier=notifier,
        tasks=tasks,
        sessions=sessions,
        calendar=calendar_index,
        merger=merger,
    )


async def load_snapshots(state: AppState) -> None:
    """Initial fetch of both collections (failures are already notified by the stores)."""
    await state.tasks.refresh()
    await state.sessions.refresh()
