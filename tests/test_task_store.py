# tests/test_task_store.py

from __future__ import annotations

import pytest

from studyflow.core.notify import Severity
from studyflow.core.results import ErrorKind
from studyflow.scheduling.models import TaskPriority, TaskStatus
from studyflow.scheduling.task_store import TaskStore

from .conftest import OWNER, local
from .fakes import CollectingNotifier, FakeKeyedStore


@pytest.mark.asyncio
async def test_create_lists_by_due_date_nulls_last(tasks: TaskStore, notifier: CollectingNotifier) -> None:
    await tasks.create("No deadline")
    await tasks.create("Later", due_date=local(2026, 11, 2, 12))
    await tasks.create("Sooner", due_date=local(2026, 10, 25, 12), priority="high", subject="Physics")

    assert [t.title for t in tasks.tasks] == ["Sooner", "Later", "No deadline"]
    sooner = tasks.tasks[0]
    assert sooner.priority == TaskPriority.HIGH
    assert sooner.status == TaskStatus.PENDING
    assert sooner.subject == "Physics"
    assert sooner.owner_id == OWNER
    assert notifier.titles == ["Success"] * 3
    assert notifier.items[0].description == "Task added successfully"


@pytest.mark.asyncio
async def test_create_rejects_blank_title(tasks: TaskStore, backend: FakeKeyedStore) -> None:
    with pytest.raises(ValueError):
        await tasks.create("   ")
    assert backend.writes == 0


@pytest.mark.asyncio
async def test_store_failure_keeps_snapshot_and_notifies(
    tasks: TaskStore, backend: FakeKeyedStore, notifier: CollectingNotifier
) -> None:
    await tasks.create("Read chapter 3")
    before = tasks.tasks
    notifier.clear()

    backend.fail.add("insert")
    res = await tasks.create("Will not land")

    assert not res.ok
    assert res.kind == ErrorKind.IO_ERROR
    assert tasks.tasks == before
    assert [n.description for n in notifier.errors()] == ["Failed to add task."]


@pytest.mark.asyncio
async def test_toggle_completion_cycles_pending_and_completed(tasks: TaskStore) -> None:
    created = (await tasks.create("Lab report")).value

    done = await tasks.toggle_completion(created)
    assert done.ok and done.value.status == TaskStatus.COMPLETED

    back = await tasks.toggle_completion(done.value)
    assert back.ok and back.value.status == TaskStatus.PENDING


@pytest.mark.asyncio
async def test_toggle_from_in_progress_completes_then_returns_to_pending(tasks: TaskStore) -> None:
    created = (await tasks.create("Essay", status="in-progress")).value
    assert created.status == TaskStatus.IN_PROGRESS

    done = (await tasks.toggle_completion(created)).value
    assert done.status == TaskStatus.COMPLETED
    again = (await tasks.toggle_completion(done)).value
    assert again.status == TaskStatus.PENDING


@pytest.mark.asyncio
async def test_toggle_is_quiet(tasks: TaskStore, notifier: CollectingNotifier) -> None:
    created = (await tasks.create("Quiz prep")).value
    notifier.clear()
    await tasks.toggle_completion(created)
    assert notifier.items == []


@pytest.mark.asyncio
async def test_update_touches_only_given_fields(tasks: TaskStore) -> None:
    created = (await tasks.create("Problem set", subject="Mathematics", priority="low")).value

    res = await tasks.update(created.id, title="Problem set 4", priority=TaskPriority.HIGH)
    assert res.ok
    updated = tasks.get(created.id)
    assert updated.title == "Problem set 4"
    assert updated.priority == TaskPriority.HIGH
    assert updated.subject == "Mathematics"
    assert updated.updated_at >= created.updated_at


@pytest.mark.asyncio
async def test_update_and_delete_missing_id_is_not_found(tasks: TaskStore, notifier: CollectingNotifier) -> None:
    res = await tasks.update("nope", title="x")
    assert not res.ok and res.kind == ErrorKind.NOT_FOUND

    res = await tasks.delete("nope")
    assert not res.ok and res.kind == ErrorKind.NOT_FOUND
    assert all(n.severity == Severity.ERROR for n in notifier.items)


@pytest.mark.asyncio
async def test_delete_leaves_related_sessions_alone(tasks: TaskStore, sessions, backend: FakeKeyedStore) -> None:
    task = (await tasks.create("Finish essay", subject="Literature")).value
    await sessions.create(
        "Outline",
        start_time=local(2026, 10, 21, 10),
        end_time=local(2026, 10, 21, 11),
        related_task_id=task.id,
    )

    assert (await tasks.delete(task.id)).ok
    assert tasks.tasks == ()

    await sessions.refresh()
    assert [s.related_task_id for s in sessions.sessions] == [task.id]


@pytest.mark.asyncio
async def test_refresh_only_sees_own_rows(backend: FakeKeyedStore, tasks: TaskStore) -> None:
    other = TaskStore(backend, "someone-else")
    await other.create("Not mine")
    await tasks.create("Mine")

    res = await tasks.refresh()
    assert [t.title for t in res.value] == ["Mine"]


def test_owner_is_required(backend: FakeKeyedStore) -> None:
    with pytest.raises(ValueError):
        TaskStore(backend, "  ")


@pytest.mark.asyncio
async def test_other_owner_cannot_change_or_delete_tasks(backend: FakeKeyedStore, tasks: TaskStore) -> None:
    mine = (await tasks.create("Finish essay")).value
    other = TaskStore(backend, "someone-else")

    renamed = await other.update(mine.id, title="hijacked")
    removed = await other.delete(mine.id)

    assert not renamed.ok and renamed.kind == ErrorKind.NOT_FOUND
    assert not removed.ok and removed.kind == ErrorKind.NOT_FOUND
    await tasks.refresh()
    assert [t.title for t in tasks.tasks] == ["Finish essay"]


@pytest.mark.asyncio
async def test_failed_relist_after_write_only_reports_the_write(
    tasks: TaskStore, backend: FakeKeyedStore, notifier: CollectingNotifier
) -> None:
    backend.fail.add("select")
    res = await tasks.create("Lands anyway")

    assert res.ok
    assert [n.description for n in notifier.items] == ["Task added successfully"]
    assert tasks.tasks == ()
