# src/studyflow/scheduling/generation.py

from __future__ import annotations

"""
Session generation.

One "generate" action:
1. fetch the owner's tasks           -> NO_TASKS if there are none
2. ask the proposer for sessions     -> GENERATION_FAILED on error / empty result
3. validate, tag and bulk-insert     -> PERSIST_FAILED on store error, else COMMITTED

Proposals are trusted verbatim apart from the time-range check: no dedup and no
overlap check against the existing schedule. The merger emits exactly one
notification per outcome and none of the failure outcomes writes anything.

A per-owner asyncio.Lock, shared by every merger in the process, guards the whole
flow: a second generate for the same owner while one is running returns
IN_PROGRESS without touching the stores.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import StrEnum

from ..core.notify import LoggingNotifier, Notification, error, info, success
from ..core.ports import Notifier, SessionProposer
from .models import Session, SessionProposal
from .session_store import SessionStore
from .task_store import TaskStore
from .validator import validate_range

logger = logging.getLogger(__name__)

# owner_id -> generation lock, shared across merger instances.
_OWNER_LOCKS: dict[str, asyncio.Lock] = {}


def _owner_lock(owner_id: str) -> asyncio.Lock:
    return _OWNER_LOCKS.setdefault(owner_id, asyncio.Lock())


class GenerationOutcome(StrEnum):
    COMMITTED = "committed"
    NO_TASKS = "no_tasks"
    GENERATION_FAILED = "generation_failed"
    PERSIST_FAILED = "persist_failed"
    IN_PROGRESS = "in_progress"


@dataclass(slots=True, frozen=True)
class GenerationResult:
    outcome: GenerationOutcome
    sessions: list[Session] = field(default_factory=list)
    dropped: int = 0

    @property
    def committed(self) -> bool:
        return self.outcome == GenerationOutcome.COMMITTED


class GenerationMerger:
    def __init__(
        self,
        tasks: TaskStore,
        sessions: SessionStore,
        proposer: SessionProposer,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        if tasks.owner_id != sessions.owner_id:
            raise ValueError("task and session stores must belong to the same owner")
        self._tasks = tasks
        self._sessions = sessions
        self._proposer = proposer
        self._notifier: Notifier = notifier or LoggingNotifier()

    @property
    def owner_id(self) -> str:
        return self._tasks.owner_id

    def is_running(self) -> bool:
        return _owner_lock(self.owner_id).locked()

    def _emit(self, notification: Notification) -> None:
        try:
            self._notifier.notify(notification)
        except Exception:
            logger.exception("Notifier failed title=%s", notification.title)

    async def generate(self) -> GenerationResult:
        owner = self.owner_id
        lock = _owner_lock(owner)
        if lock.locked():
            logger.info("Generation already running owner=%s", owner)
            self._emit(info("Generation in progress", "Study sessions are already being generated."))
            return GenerationResult(GenerationOutcome.IN_PROGRESS)

        async with lock:
            return await self._generate_locked(owner)

    async def _generate_locked(self, owner: str) -> GenerationResult:
        fetched = await self._tasks.refresh(quiet=True)
        if not fetched.ok:
            logger.warning("Generation aborted: tasks could not be loaded owner=%s", owner)
            return self._generation_failed()

        tasks = fetched.value
        if not tasks:
            logger.info("Generation skipped: no tasks owner=%s", owner)
            self._emit(info("No tasks found", "Please add some tasks first to generate study sessions."))
            return GenerationResult(GenerationOutcome.NO_TASKS)

        logger.info("Generating study sessions owner=%s tasks=%d", owner, len(tasks))
        try:
            proposals = list(await self._proposer.propose_sessions(tasks))
        except Exception:
            logger.exception("Session proposer failed owner=%s", owner)
            return self._generation_failed()

        accepted: list[SessionProposal] = []
        for p in proposals:
            if validate_range(p.start_time, p.end_time).ok:
                accepted.append(p)
            else:
                logger.info("Dropping proposal with invalid range title=%r", p.title)
        dropped = len(proposals) - len(accepted)

        if not accepted:
            logger.info("Generation produced no usable proposals owner=%s (dropped=%d)", owner, dropped)
            return self._generation_failed(dropped=dropped)

        committed = await self._sessions.create_many(accepted)
        if not committed.ok:
            logger.warning("Generated sessions could not be saved owner=%s: %s", owner, committed.message)
            self._emit(error("Failed to save generated study sessions."))
            return GenerationResult(GenerationOutcome.PERSIST_FAILED, dropped=dropped)

        created = committed.value
        logger.info("Generated sessions committed owner=%s count=%d dropped=%d", owner, len(created), dropped)
        self._emit(success(f"Generated {len(created)} study sessions for your tasks."))
        return GenerationResult(GenerationOutcome.COMMITTED, sessions=created, dropped=dropped)

    def _generation_failed(self, *, dropped: int = 0) -> GenerationResult:
        self._emit(error("Could not generate study sessions. Please try again.", title="Generation failed"))
        return GenerationResult(GenerationOutcome.GENERATION_FAILED, dropped=dropped)
