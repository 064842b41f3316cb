# src/studyflow/scheduling/snapshot.py

"""
Owner-bound snapshot store.

Holds the latest committed list of one collection for one owner and funnels every
write through the KeyedStore backend:
- a successful write re-lists the collection (the only way the snapshot changes),
  quietly: if that re-list fails it is only logged and the write still reports Ok,
- a failed write leaves the snapshot untouched and returns Fail(IO_ERROR|NOT_FOUND).

Readers get an immutable tuple; listeners are called with each new snapshot.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import ClassVar, Generic, TypeVar

from ..core.notify import LoggingNotifier, Notification, error
from ..core.ports import KeyedStore, Notifier, Row
from ..core.results import ErrorKind, Fail, Ok, Result
from .timeutil import now_local, to_iso

logger = logging.getLogger(__name__)

E = TypeVar("E")

SnapshotListener = Callable[[tuple], None]


class SnapshotStore(Generic[E]):
    collection: ClassVar[str]
    order_by: ClassVar[str]
    label: ClassVar[str]

    def __init__(self, backend: KeyedStore, owner_id: str, *, notifier: Notifier | None = None) -> None:
        if not owner_id or not owner_id.strip():
            raise ValueError("owner_id is required")
        self._backend = backend
        self._owner_id = owner_id.strip()
        self._notifier: Notifier = notifier or LoggingNotifier()
        self._items: tuple[E, ...] = ()
        self._listeners: list[SnapshotListener] = []

    @property
    def owner_id(self) -> str:
        return self._owner_id

    @property
    def items(self) -> tuple[E, ...]:
        return self._items

    def get(self, item_id: str) -> E | None:
        for item in self._items:
            if getattr(item, "id") == item_id:
                return item
        return None

    def add_listener(self, listener: SnapshotListener) -> None:
        self._listeners.append(listener)
        listener(self._items)

    def _from_row(self, row: Row) -> E:
        raise NotImplementedError

    def _emit(self, notification: Notification) -> None:
        try:
            self._notifier.notify(notification)
        except Exception:
            logger.exception("Notifier failed title=%s", notification.title)

    def _io_fail(self, action: str, exc: Exception, *, notice: str | None) -> Fail:
        logger.error("%s %s failed owner=%s", self.label, action, self._owner_id, exc_info=exc)
        if notice:
            self._emit(error(notice))
        return Fail(ErrorKind.IO_ERROR, str(exc) or exc.__class__.__name__)

    def _not_found(self, item_id: str, *, notice: str | None) -> Fail:
        logger.info("%s id=%s not found owner=%s", self.label, item_id, self._owner_id)
        if notice:
            self._emit(error(notice, title="Not found"))
        return Fail(ErrorKind.NOT_FOUND, f"{self.label} {item_id} not found")

    # ---- reads ----

    async def refresh(self, *, quiet: bool = False) -> Result[list[E]]:
        """Re-list the owner's collection and replace the snapshot on success."""
        try:
            rows = await self._backend.select(
                self.collection,
                owner_id=self._owner_id,
                order_by=self.order_by,
                nulls_last=True,
            )
            items = [self._from_row(r) for r in rows]
        except Exception as e:
            return self._io_fail("load", e, notice=None if quiet else f"Failed to load {self.label}s.")

        self._items = tuple(items)
        logger.debug("%s snapshot refreshed owner=%s count=%d", self.label, self._owner_id, len(items))
        for listener in list(self._listeners):
            try:
                listener(self._items)
            except Exception:
                logger.exception("%s snapshot listener failed", self.label)
        return Ok(items)

    # ---- writes ----

    async def _relist(self) -> None:
        # The write already landed: a failed re-list only leaves the snapshot stale.
        res = await self.refresh(quiet=True)
        if not res.ok:
            logger.warning("%s snapshot is stale after a write owner=%s", self.label, self._owner_id)

    async def _insert(self, rows: Sequence[Row], *, notice: str | None) -> Result[list[E]]:
        # Provisional client-side timestamps; the backend owns the final values.
        now = to_iso(now_local())
        payload = [{**r, "owner_id": self._owner_id, "created_at": now, "updated_at": now} for r in rows]
        try:
            stored = await self._backend.insert(self.collection, payload)
            created = [self._from_row(r) for r in stored]
        except Exception as e:
            return self._io_fail("insert", e, notice=notice)

        if len(created) != len(payload):
            logger.warning(
                "%s insert returned %d rows for %d sent owner=%s",
                self.label,
                len(created),
                len(payload),
                self._owner_id,
            )
        await self._relist()
        return Ok(created)

    async def _update(self, item_id: str, changes: Row, *, notice: str | None) -> Result[E]:
        changes = {**changes, "updated_at": to_iso(now_local())}
        try:
            row = await self._backend.update(self.collection, item_id, changes, owner_id=self._owner_id)
            updated = self._from_row(row) if row is not None else None
        except Exception as e:
            return self._io_fail("update", e, notice=notice)

        if updated is None:
            return self._not_found(item_id, notice=f"The {self.label} no longer exists.")

        await self._relist()
        return Ok(updated)

    async def _delete(self, item_id: str, *, notice: str | None) -> Result[None]:
        try:
            deleted = await self._backend.delete(self.collection, item_id, owner_id=self._owner_id)
        except Exception as e:
            return self._io_fail("delete", e, notice=notice)

        if not deleted:
            return self._not_found(item_id, notice=f"The {self.label} no longer exists.")

        await self._relist()
        return Ok(None)
