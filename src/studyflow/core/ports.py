# src/studyflow/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/LLM providers/UI swappable and makes testing easier.
"""

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from ..scheduling.models import SessionProposal, Task
    from .notify import Notification

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.

Row = dict[str, Any]
# One stored record. Timestamps travel as ISO-8601 strings.


class KeyedStore(Protocol):
    """
    Generic keyed CRUD over named collections ("tasks", "sessions").

    Rows are keyed by owner_id + id: update/delete never touch another owner's row.
    The backend assigns id and created_at on insert.
    Transport/driver failures raise StoreError.
    """

    async def select(
            self,
            collection: str,
            *,
            owner_id: str,
            order_by: str,
            nulls_last: bool = True,
    ) -> list[Row]: ...

    async def insert(self, collection: str, rows: Sequence[Row]) -> list[Row]: ...

    async def update(self, collection: str, row_id: str, changes: Row, *, owner_id: str) -> Row | None:
        """Return the updated row, or None if the owner has no row with this id."""
        ...

    async def delete(self, collection: str, row_id: str, *, owner_id: str) -> bool:
        """Return False if the owner has no row with this id."""
        ...


class SessionProposer(Protocol):
    """External generation capability: tasks in, session proposals out (may be empty)."""

    async def propose_sessions(self, tasks: Sequence[Task]) -> list[SessionProposal]: ...


class Notifier(Protocol):
    def notify(self, notification: Notification) -> None: ...


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...
