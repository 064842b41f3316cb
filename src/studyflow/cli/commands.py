# src/studyflow/cli/commands.py

from __future__ import annotations

import calendar
import shlex
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, datetime, time, timedelta
from typing import TypeVar

from ..core.results import ErrorKind, Fail, Result
from ..core.state import AppState
from ..scheduling.calendar_index import related_task_label
from ..scheduling.dashboard import summarize
from ..scheduling.generation import GenerationOutcome
from ..scheduling.models import Session, Task, TaskStatus
from ..scheduling.timeutil import ensure_aware, now_local

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

T = TypeVar("T")


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        return await handler(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing helpers ----


def split_fields(args: Sequence[str]) -> tuple[list[str], dict[str, str]]:
    """Split ["Finish", "essay", "due=2026-10-22"] into words and key=value fields."""
    words: list[str] = []
    fields: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key and key.isidentifier():
            fields[key.lower()] = value
        else:
            words.append(a)
    return words, fields


def parse_day(raw: str, *, today: date | None = None) -> date:
    today = today or now_local().date()
    s = raw.strip().lower()
    if s == "today":
        return today
    if s == "tomorrow":
        return today + timedelta(days=1)
    if s == "yesterday":
        return today - timedelta(days=1)
    return date.fromisoformat(s)


def parse_when(raw: str, *, base_day: date) -> datetime:
    """
    Accepts "HH:MM" (on base_day), "YYYY-MM-DD" (midnight), "YYYY-MM-DDTHH:MM",
    "YYYY-MM-DD HH:MM", or "today/tomorrow[THH:MM]". Naive values are local time.
    """
    s = raw.strip()
    if len(s) <= 5 and ":" in s:
        return ensure_aware(datetime.combine(base_day, time.fromisoformat(s)))

    day_part, _, time_part = s.replace(" ", "T").partition("T")
    day = parse_day(day_part)
    if not time_part:
        return ensure_aware(datetime.combine(day, time(0, 0)))
    return ensure_aware(datetime.combine(day, time.fromisoformat(time_part)))


def resolve(items: Sequence[T], ref: str) -> T | str:
    """Find an item by full id, unique id prefix, or 1-based list position."""
    ref = ref.strip()
    if ref.isdigit() and len(ref) <= 4:
        idx = int(ref)
        if 1 <= idx <= len(items):
            return items[idx - 1]
    matches = [it for it in items if getattr(it, "id", "").startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        return f"No item matches '{ref}'."
    return f"'{ref}' is ambiguous ({len(matches)} matches)."


def describe_fail(res: Result) -> str:
    if isinstance(res, Fail):
        if res.kind == ErrorKind.INVALID_RANGE:
            return f"Invalid time range: {res.message}."
        if res.kind == ErrorKind.NOT_FOUND:
            return "Not found (it may have been deleted)."
        return f"Store error: {res.message}"
    return ""


def _short(item_id: str) -> str:
    return item_id[:8]


def format_task(i: int, t: Task) -> str:
    mark = {"completed": "[x]", "in-progress": "[~]"}.get(t.status.value, "[ ]")
    due = f" due {t.due_date.astimezone():%Y-%m-%d %H:%M}" if t.due_date else ""
    subj = f" ({t.subject})" if t.subject else ""
    return f"{i:>2}. {mark} {t.title}{subj} [{t.priority.value}]{due}  #{_short(t.id)}"


def format_session(i: int, s: Session, tasks: Sequence[Task], *, with_date: bool = False) -> str:
    start = s.start_time.astimezone()
    end = s.end_time.astimezone()
    subj = f" ({s.subject})" if s.subject else ""
    related = related_task_label(s, tasks)
    rel = f" -> {related}" if related else ""
    when = f"{start:%Y-%m-%d} " if with_date else ""
    return f"{i:>2}. {when}{start:%H:%M}-{end:%H:%M} {s.title}{subj} [{s.status}]{rel}  #{_short(s.id)}"


# ---- commands ----


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_status(state: AppState, args: list[str]) -> str:
    settings = state.settings
    models = ", ".join(list(getattr(settings, "llm_models", []) or []))
    return (
        "Status:\n"
        f"  Owner: {state.tasks.owner_id}\n"
        f"  Database: {getattr(settings, 'db_path', '?')}\n"
        f"  LLM: {state.llm.__class__.__name__} (models: {models})\n"
        f"  Tasks: {len(state.tasks.tasks)}  Sessions: {len(state.sessions.sessions)}\n"
        f"  Selected day: {state.selected_day.isoformat()}"
    )


async def cmd_tasks(state: AppState, args: list[str]) -> str:
    res = await state.tasks.refresh()
    if not res.ok:
        return describe_fail(res)
    if not res.value:
        return "No tasks yet. Add one with /task add <title> [due=YYYY-MM-DD] [priority=high] [subject=...]."
    return "Tasks:\n" + "\n".join(format_task(i, t) for i, t in enumerate(res.value, start=1))


TASK_USAGE = (
    "Usage:\n"
    "  /task add <title> [due=YYYY-MM-DD[THH:MM]] [priority=high|medium|low] [subject=...] [desc=...]\n"
    "  /task done <id|#>            - toggle completed/pending\n"
    "  /task status <id|#> <pending|in-progress|completed>\n"
    "  /task edit <id|#> [title=...] [due=...] [priority=...] [subject=...] [desc=...]\n"
    "  /task rm <id|#>"
)


async def cmd_task(state: AppState, args: list[str]) -> str:
    if not args:
        return TASK_USAGE

    sub, rest = args[0].lower(), args[1:]
    store = state.tasks

    if sub == "add":
        words, fields = split_fields(rest)
        title = " ".join(words).strip() or fields.get("title", "").strip()
        if not title:
            return "Task title is required."
        try:
            due = parse_when(fields["due"], base_day=state.selected_day) if fields.get("due") else None
            res = await store.create(
                title,
                description=fields.get("desc") or fields.get("description"),
                due_date=due,
                priority=fields.get("priority", "medium").lower(),
                subject=fields.get("subject"),
            )
        except ValueError as e:
            return f"Invalid value: {e}"
        if not res.ok:
            return describe_fail(res)
        return "Added:\n" + format_task(1, res.value)

    if not rest:
        return TASK_USAGE

    target = resolve(store.tasks, rest[0])
    if isinstance(target, str):
        return target

    if sub in ("done", "toggle"):
        res = await store.toggle_completion(target)
        if not res.ok:
            return describe_fail(res)
        return f"Task '{res.value.title}' is now {res.value.status.value}."

    if sub == "status":
        if len(rest) < 2:
            return TASK_USAGE
        try:
            status = TaskStatus(rest[1].lower())
        except ValueError:
            return "Status must be one of: " + ", ".join(s.value for s in TaskStatus)
        res = await store.update(target.id, status=status)
        return describe_fail(res) or f"Task '{target.title}' is now {status.value}."

    if sub == "edit":
        _, fields = split_fields(rest[1:])
        try:
            due = parse_when(fields["due"], base_day=state.selected_day) if fields.get("due") else None
            res = await store.update(
                target.id,
                title=fields.get("title"),
                description=fields.get("desc") or fields.get("description"),
                due_date=due,
                priority=fields["priority"].lower() if fields.get("priority") else None,
                subject=fields.get("subject"),
                status=fields["status"].lower() if fields.get("status") else None,
            )
        except ValueError as e:
            return f"Invalid value: {e}"
        if not res.ok:
            return describe_fail(res)
        return "Updated:\n" + format_task(1, res.value)

    if sub in ("rm", "delete", "del"):
        res = await store.delete(target.id)
        return describe_fail(res) or f"Deleted task '{target.title}'."

    return TASK_USAGE


async def cmd_sessions(state: AppState, args: list[str]) -> str:
    if args:
        try:
            state.selected_day = parse_day(args[0])
        except ValueError:
            return "Usage: /sessions [YYYY-MM-DD|today|tomorrow]"

    res = await state.sessions.refresh()
    if not res.ok:
        return describe_fail(res)

    day = state.selected_day
    on_day = state.calendar.on_day(day)
    header = f"Sessions on {day:%A, %Y-%m-%d}:"
    if not on_day:
        return f"{header}\n  No study sessions scheduled for this day."
    tasks = state.tasks.tasks
    return header + "\n" + "\n".join(format_session(i, s, tasks) for i, s in enumerate(on_day, start=1))


SESSION_USAGE = (
    "Usage:\n"
    "  /session add <title> start=<HH:MM|YYYY-MM-DDTHH:MM> end=<...> [subject=...] [desc=...] [task=<id|#>]\n"
    "  /session edit <id|#> [title=...] [start=...] [end=...] [subject=...] [desc=...]\n"
    "  /session status <id|#> <scheduled|completed|cancelled>\n"
    "  /session rm <id|#>\n"
    "Times without a date use the selected day (/sessions <day>)."
)


async def cmd_session(state: AppState, args: list[str]) -> str:
    if not args:
        return SESSION_USAGE

    sub, rest = args[0].lower(), args[1:]
    store = state.sessions

    if sub == "add":
        words, fields = split_fields(rest)
        title = " ".join(words).strip() or fields.get("title", "").strip()
        if not title or not fields.get("start") or not fields.get("end"):
            return SESSION_USAGE
        related_id = None
        if fields.get("task"):
            task = resolve(state.tasks.tasks, fields["task"])
            if isinstance(task, str):
                return task
            related_id = task.id
        try:
            start = parse_when(fields["start"], base_day=state.selected_day)
            end = parse_when(fields["end"], base_day=start.date())
        except ValueError as e:
            return f"Invalid time: {e}"
        res = await store.create(
            title,
            start_time=start,
            end_time=end,
            description=fields.get("desc") or fields.get("description"),
            subject=fields.get("subject"),
            related_task_id=related_id,
        )
        if not res.ok:
            return describe_fail(res)
        return "Added:\n" + format_session(1, res.value, state.tasks.tasks)

    if not rest:
        return SESSION_USAGE

    # Positions refer to the selected day's list, as printed by /sessions.
    pool: Sequence[Session] = state.calendar.on_day(state.selected_day)
    if not rest[0].isdigit() or len(rest[0]) > 4:
        pool = state.sessions.sessions
    target = resolve(pool, rest[0])
    if isinstance(target, str):
        return target

    if sub == "status":
        if len(rest) < 2:
            return SESSION_USAGE
        res = await store.update(target.id, status=rest[1].lower())
        return describe_fail(res) or f"Session '{target.title}' is now {rest[1].lower()}."

    if sub == "edit":
        _, fields = split_fields(rest[1:])
        base = target.start_time.astimezone().date()
        try:
            start = parse_when(fields["start"], base_day=base) if fields.get("start") else None
            end = parse_when(fields["end"], base_day=(start or target.start_time).astimezone().date()) if fields.get("end") else None
            res = await store.update(
                target.id,
                title=fields.get("title"),
                start_time=start,
                end_time=end,
                description=fields.get("desc") or fields.get("description"),
                subject=fields.get("subject"),
            )
        except ValueError as e:
            return f"Invalid value: {e}"
        if not res.ok:
            return describe_fail(res)
        return "Updated:\n" + format_session(1, res.value, state.tasks.tasks)

    if sub in ("rm", "delete", "del"):
        res = await store.delete(target.id)
        return describe_fail(res) or f"Deleted session '{target.title}'."

    return SESSION_USAGE


async def cmd_calendar(state: AppState, args: list[str]) -> str:
    """Month grid; days with sessions are marked with '*'."""
    anchor = state.selected_day
    if args:
        try:
            year_s, month_s = args[0].split("-", 1)
            anchor = date(int(year_s), int(month_s), 1)
        except ValueError:
            return "Usage: /calendar [YYYY-MM]"

    busy = set(state.calendar.days_in_month(anchor.year, anchor.month))
    lines = [f"{calendar.month_name[anchor.month]} {anchor.year}", " Mo  Tu  We  Th  Fr  Sa  Su"]
    for week in calendar.Calendar().monthdatescalendar(anchor.year, anchor.month):
        cells = []
        for d in week:
            if d.month != anchor.month:
                cells.append("    ")
                continue
            mark = "*" if d in busy else " "
            cells.append(f"{d.day:>3}{mark}")
        lines.append("".join(cells).rstrip())
    lines.append(f"{len(busy)} day(s) with study sessions.")
    return "\n".join(lines)


async def cmd_generate(state: AppState, args: list[str]) -> str:
    result = await state.merger.generate()
    if result.outcome == GenerationOutcome.COMMITTED:
        tasks = state.tasks.tasks
        lines = [f"Committed {len(result.sessions)} session(s):"]
        for i, s in enumerate(result.sessions, start=1):
            lines.append(format_session(i, s, tasks, with_date=True))
        if result.dropped:
            lines.append(f"({result.dropped} proposal(s) with an invalid time range were skipped.)")
        return "\n".join(lines)
    return f"Generation finished: {result.outcome.value}."


async def cmd_stats(state: AppState, args: list[str]) -> str:
    """/stats [week] - progress over all sessions, or the current week only."""
    since = until = None
    if args and args[0].lower() == "week":
        today = now_local().date()
        monday = today - timedelta(days=today.weekday())
        since = ensure_aware(datetime.combine(monday, time(0, 0)))
        until = since + timedelta(days=7)

    s = summarize(state.tasks.tasks, state.sessions.sessions, since=since, until=until)
    lines = [
        "Progress" + (" (this week)" if since else "") + ":",
        f"  Tasks completed: {s.completed_tasks}/{s.total_tasks} ({s.task_completion_pct:.0f}%)",
        "  Tasks by status: " + ", ".join(f"{k}={v}" for k, v in s.tasks_by_status.items()),
        f"  Overdue tasks: {s.overdue_tasks}",
        f"  Sessions completed: {s.completed_sessions}/{s.total_sessions} ({s.session_completion_pct:.0f}%)",
        f"  Study hours: {s.completed_hours:g}/{s.scheduled_hours:g} hours ({s.study_hours_pct:.0f}%)",
    ]
    if s.hours_by_subject:
        lines.append("  Hours by subject: " + ", ".join(f"{k} {v:g}h" for k, v in s.hours_by_subject.items()))
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show owner, database and LLM settings.")
registry.register("tasks", cmd_tasks, help_text="List tasks (by due date).")
registry.register("task", cmd_task, help_text="Manage tasks: /task add | done | status | edit | rm.")
registry.register("sessions", cmd_sessions, help_text="Sessions on a day: /sessions [YYYY-MM-DD|today|tomorrow].")
registry.register(
    "session", cmd_session, help_text="Manage sessions: /session add | edit | status | rm."
)
registry.register("calendar", cmd_calendar, help_text="Month view with busy days: /calendar [YYYY-MM].", aliases=["cal"])
registry.register("generate", cmd_generate, help_text="Generate study sessions from your tasks (LLM).", aliases=["gen"])
registry.register("stats", cmd_stats, help_text="Progress summary: /stats [week].")

