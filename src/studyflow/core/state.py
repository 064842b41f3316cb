# src/studyflow/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..scheduling.calendar_index import CalendarIndex
from ..scheduling.generation import GenerationMerger
from ..scheduling.session_store import SessionStore
from ..scheduling.task_store import TaskStore
from ..scheduling.timeutil import now_local
from .ports import KeyedStore, LLMClient, Notifier


@dataclass(slots=True)
class AppState:
    """
    Everything one interactive session needs, wired once in the composition root.

    The stores are the only writers of the task/session snapshots; the calendar index
    follows the session store through a snapshot listener.
    """

    settings: Any

    backend: KeyedStore
    llm: LLMClient
    notifier: Notifier

    tasks: TaskStore
    sessions: SessionStore
    calendar: CalendarIndex
    merger: GenerationMerger

    selected_day: date = field(default_factory=lambda: now_local().date())
