# tests/test_generation.py

from __future__ import annotations

import asyncio
from datetime import datetime, time, timedelta

import pytest

from studyflow.core.notify import Severity
from studyflow.scheduling.calendar_index import CalendarIndex, sessions_on_day
from studyflow.scheduling.generation import GenerationMerger, GenerationOutcome
from studyflow.scheduling.models import SessionProposal, SessionStatus
from studyflow.scheduling.session_store import SessionStore
from studyflow.scheduling.task_store import TaskStore
from studyflow.scheduling.timeutil import now_local

from .conftest import local
from .fakes import CollectingNotifier, FakeKeyedStore, FakeProposer


def _merger(tasks, sessions, proposer, notifier) -> GenerationMerger:
    return GenerationMerger(tasks, sessions, proposer, notifier=notifier)


async def _seed_task(tasks: TaskStore, notifier: CollectingNotifier, title: str = "Finish essay", **kw):
    task = (await tasks.create(title, **kw)).value
    notifier.clear()
    return task


@pytest.mark.asyncio
async def test_no_tasks_short_circuits(
    tasks: TaskStore, sessions: SessionStore, backend: FakeKeyedStore, notifier: CollectingNotifier
) -> None:
    proposer = FakeProposer()
    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.outcome == GenerationOutcome.NO_TASKS
    assert proposer.calls == []
    assert backend.writes == 0
    assert notifier.titles == ["No tasks found"]
    assert notifier.items[0].description == "Please add some tasks first to generate study sessions."


@pytest.mark.asyncio
async def test_commits_proposals_and_notifies_count(
    tasks: TaskStore, sessions: SessionStore, notifier: CollectingNotifier
) -> None:
    task = await _seed_task(tasks, notifier, due_date=local(2026, 10, 24, 23, 59), subject="Literature")
    proposer = FakeProposer(
        [
            SessionProposal(
                "Essay outline",
                local(2026, 10, 20, 9),
                local(2026, 10, 20, 11),
                subject="Literature",
                related_task_id=task.id,
            ),
            SessionProposal(
                "Essay draft",
                local(2026, 10, 21, 14),
                local(2026, 10, 21, 16),
                subject="Literature",
                related_task_id=task.id,
            ),
        ]
    )

    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.committed
    assert len(result.sessions) == 2
    assert [t.id for t in proposer.calls[0]] == [task.id]
    assert [s.title for s in sessions.sessions] == ["Essay outline", "Essay draft"]
    assert all(s.status == SessionStatus.SCHEDULED for s in sessions.sessions)
    assert all(s.related_task_id == task.id for s in sessions.sessions)
    assert len(notifier.items) == 1
    assert notifier.items[0].severity == Severity.SUCCESS
    assert notifier.items[0].description == "Generated 2 study sessions for your tasks."


@pytest.mark.asyncio
@pytest.mark.parametrize("proposer", [FakeProposer([]), FakeProposer(error=RuntimeError("model down"))])
async def test_empty_or_failing_proposer_writes_nothing(
    proposer: FakeProposer,
    tasks: TaskStore,
    sessions: SessionStore,
    backend: FakeKeyedStore,
    notifier: CollectingNotifier,
) -> None:
    await _seed_task(tasks, notifier)
    writes_before = backend.writes

    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.outcome == GenerationOutcome.GENERATION_FAILED
    assert backend.writes == writes_before
    assert sessions.sessions == ()
    assert notifier.titles == ["Generation failed"]


@pytest.mark.asyncio
async def test_invalid_proposals_are_dropped(
    tasks: TaskStore, sessions: SessionStore, notifier: CollectingNotifier
) -> None:
    await _seed_task(tasks, notifier)
    proposer = FakeProposer(
        [
            SessionProposal("Backwards", local(2026, 10, 20, 11), local(2026, 10, 20, 10)),
            SessionProposal("Fine", local(2026, 10, 20, 12), local(2026, 10, 20, 13)),
        ]
    )

    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.committed
    assert result.dropped == 1
    assert [s.title for s in sessions.sessions] == ["Fine"]
    assert notifier.items[0].description == "Generated 1 study sessions for your tasks."


@pytest.mark.asyncio
async def test_only_invalid_proposals_is_generation_failure(
    tasks: TaskStore, sessions: SessionStore, backend: FakeKeyedStore, notifier: CollectingNotifier
) -> None:
    await _seed_task(tasks, notifier)
    writes_before = backend.writes
    proposer = FakeProposer([SessionProposal("Zero", local(2026, 10, 20, 9), local(2026, 10, 20, 9))])

    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.outcome == GenerationOutcome.GENERATION_FAILED
    assert result.dropped == 1
    assert backend.writes == writes_before


@pytest.mark.asyncio
async def test_persist_failure_keeps_existing_sessions(
    tasks: TaskStore, sessions: SessionStore, backend: FakeKeyedStore, notifier: CollectingNotifier
) -> None:
    await _seed_task(tasks, notifier)
    await sessions.create("Existing", start_time=local(2026, 10, 19, 9), end_time=local(2026, 10, 19, 10))
    before = sessions.sessions
    notifier.clear()

    backend.fail.add("insert")
    proposer = FakeProposer([SessionProposal("New", local(2026, 10, 20, 9), local(2026, 10, 20, 10))])
    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.outcome == GenerationOutcome.PERSIST_FAILED
    assert sessions.sessions == before
    assert [n.description for n in notifier.items] == ["Failed to save generated study sessions."]


@pytest.mark.asyncio
async def test_task_fetch_failure_is_one_generation_failure(
    tasks: TaskStore, sessions: SessionStore, backend: FakeKeyedStore, notifier: CollectingNotifier
) -> None:
    await _seed_task(tasks, notifier)
    backend.fail.add("select")
    proposer = FakeProposer([SessionProposal("New", local(2026, 10, 20, 9), local(2026, 10, 20, 10))])

    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.outcome == GenerationOutcome.GENERATION_FAILED
    assert proposer.calls == []
    assert notifier.titles == ["Generation failed"]


@pytest.mark.asyncio
async def test_second_generate_while_running_is_rejected(
    tasks: TaskStore, sessions: SessionStore, notifier: CollectingNotifier
) -> None:
    await _seed_task(tasks, notifier)
    gate = asyncio.Event()
    proposer = FakeProposer([SessionProposal("Once", local(2026, 10, 20, 9), local(2026, 10, 20, 10))], gate=gate)
    merger = _merger(tasks, sessions, proposer, notifier)

    first = asyncio.create_task(merger.generate())
    while not proposer.calls:
        await asyncio.sleep(0)
    assert merger.is_running()

    second = await merger.generate()
    assert second.outcome == GenerationOutcome.IN_PROGRESS

    gate.set()
    done = await first
    assert done.committed
    assert not merger.is_running()
    assert [s.title for s in sessions.sessions] == ["Once"]
    assert len(proposer.calls) == 1


@pytest.mark.asyncio
async def test_generation_does_not_dedupe_against_existing(
    tasks: TaskStore, sessions: SessionStore, notifier: CollectingNotifier
) -> None:
    await _seed_task(tasks, notifier)
    proposal = SessionProposal("Same slot", local(2026, 10, 20, 9), local(2026, 10, 20, 10))
    merger = _merger(tasks, sessions, FakeProposer([proposal]), notifier)

    await merger.generate()
    await merger.generate()

    assert [s.title for s in sessions.sessions] == ["Same slot", "Same slot"]


def test_stores_must_share_owner(backend: FakeKeyedStore, tasks: TaskStore) -> None:
    with pytest.raises(ValueError):
        GenerationMerger(tasks, SessionStore(backend, "other"), FakeProposer())


@pytest.mark.asyncio
async def test_essay_plan_lands_on_tomorrow(
    tasks: TaskStore, sessions: SessionStore, calendar_index: CalendarIndex, notifier: CollectingNotifier
) -> None:
    tomorrow = now_local().date() + timedelta(days=1)
    start = datetime.combine(tomorrow, time(10, 0)).astimezone()
    task = await _seed_task(
        tasks, notifier, due_date=datetime.combine(tomorrow + timedelta(days=2), time(23, 59)).astimezone()
    )
    proposer = FakeProposer(
        [SessionProposal("Essay outline", start, start + timedelta(hours=2), subject="Literature", related_task_id=task.id)]
    )

    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.committed
    (planned,) = sessions_on_day(sessions.sessions, tomorrow)
    assert planned.title == "Essay outline"
    assert planned.related_task_id == task.id
    assert [s.id for s in calendar_index.on_day(tomorrow)] == [planned.id]
    assert notifier.titles == ["Success"]


@pytest.mark.asyncio
async def test_mergers_for_one_owner_share_the_lock(
    tasks: TaskStore, sessions: SessionStore, notifier: CollectingNotifier
) -> None:
    await _seed_task(tasks, notifier)
    gate = asyncio.Event()
    slot = SessionProposal("Once", local(2026, 10, 20, 9), local(2026, 10, 20, 10))
    first_proposer = FakeProposer([slot], gate=gate)
    second_proposer = FakeProposer([slot], gate=gate)
    first = _merger(tasks, sessions, first_proposer, notifier)
    second = _merger(tasks, sessions, second_proposer, notifier)

    running = asyncio.create_task(first.generate())
    while not first_proposer.calls:
        await asyncio.sleep(0)

    assert second.is_running()
    rejected = await second.generate()
    gate.set()
    done = await running

    assert rejected.outcome == GenerationOutcome.IN_PROGRESS
    assert done.committed
    assert second_proposer.calls == []
    assert [s.title for s in sessions.sessions] == ["Once"]


@pytest.mark.asyncio
async def test_commit_with_failed_relist_is_one_notification(
    tasks: TaskStore, sessions: SessionStore, backend: FakeKeyedStore, notifier: CollectingNotifier
) -> None:
    await _seed_task(tasks, notifier)
    backend.fail.add("select:sessions")
    proposer = FakeProposer([SessionProposal("Saved", local(2026, 10, 20, 9), local(2026, 10, 20, 10))])

    result = await _merger(tasks, sessions, proposer, notifier).generate()

    assert result.committed
    assert [n.description for n in notifier.items] == ["Generated 1 study sessions for your tasks."]
