# src/studyflow/scheduling/proposer.py

"""
LLM-backed session proposer.

Sends the owner's tasks to an OpenAI-compatible chat model and turns the reply into
SessionProposal objects. The model is asked for a bare JSON array; replies wrapped
in ```json fences (or with chatter around the array) are tolerated.

An unparsable payload is treated exactly like an empty result.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from ..core.ports import ChatMessage, LLMClient
from .models import SessionProposal, Task
from .timeutil import now_local, parse_ts

logger = logging.getLogger(__name__)

SESSION_PLANNER_SYSTEM_PROMPT = """
You are a study session planner.

You do NOT chat with the user.

Input: a list of study tasks (title, ID, optional description, due date, priority,
subject, status) and the current date.

Task:
- Create a study schedule for the next {horizon_days} days.
- Create appropriate study sessions for each task with sensible time allocation.
- Leave breaks between intense sessions.
- Prioritize tasks with upcoming due dates and high priority.

Output: a JSON array of study sessions. Each session has:
- "title" (string)
- "description" (string, optional)
- "start_time" (ISO-8601 date-time with offset)
- "end_time" (ISO-8601 date-time with offset, after start_time)
- "subject" (string, optional)
- "related_task_id" (string, optional - the ID of the related task)

Return STRICT JSON only. No extra text. No Markdown.
""".strip()


def _format_task(task: Task) -> str:
    lines = [f"Title: {task.title}", f"ID: {task.id}"]
    if task.description:
        lines.append(f"Description: {task.description}")
    if task.due_date:
        lines.append(f"Due Date: {task.due_date.isoformat()}")
    lines.append(f"Priority: {task.priority.value}")
    if task.subject:
        lines.append(f"Subject: {task.subject}")
    lines.append(f"Status: {task.status.value}")
    return "\n".join(lines)


def build_messages(tasks: Sequence[Task], now: datetime) -> list[ChatMessage]:
    body = "\n\n".join(_format_task(t) for t in tasks)
    return [
        {
            "role": "user",
            "content": f"Tasks:\n\n{body}\n\nCurrent date: {now.isoformat(timespec='seconds')}",
        }
    ]


def extract_json_payload(raw: str) -> str:
    """Pull the JSON text out of a model reply (fenced block or outermost array/object)."""
    text = (raw or "").strip()
    if "```json" in text:
        text = text.split("```json", 1)[1].split("```", 1)[0].strip()
    elif "```" in text:
        parts = text.split("```")
        if len(parts) >= 3:
            text = parts[1].strip()

    if text.startswith(("[", "{")):
        return text

    first = text.find("[")
    last = text.rfind("]")
    if first != -1 and last > first:
        return text[first : last + 1]
    return text


def _opt_str(v: Any) -> str | None:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def parse_proposals(raw: str) -> list[SessionProposal]:
    """Parse a model reply. Malformed payload -> []. Malformed items are skipped."""
    payload = extract_json_payload(raw)
    try:
        data = json.loads(payload)
    except (TypeError, ValueError):
        logger.warning("Session planner returned unparsable payload (len=%d)", len(raw or ""))
        logger.debug("Raw planner reply: %s", raw)
        return []

    # Some models wrap the array: {"sessions": [...]}
    if isinstance(data, dict):
        data = data.get("sessions", [])
    if not isinstance(data, list):
        return []

    out: list[SessionProposal] = []
    for item in data:
        if not isinstance(item, dict):
            continue
        title = _opt_str(item.get("title"))
        if not title:
            continue
        try:
            start = parse_ts(item.get("start_time"))
            end = parse_ts(item.get("end_time"))
        except (TypeError, ValueError):
            logger.debug("Skipping proposal with bad timestamps: %r", item)
            continue
        if start is None or end is None:
            continue
        out.append(
            SessionProposal(
                title=title,
                start_time=start,
                end_time=end,
                description=_opt_str(item.get("description")),
                subject=_opt_str(item.get("subject")),
                related_task_id=_opt_str(item.get("related_task_id")),
            )
        )
    return out


class LLMSessionProposer:
    """SessionProposer port on top of a streaming LLMClient."""

    def __init__(
        self,
        llm: LLMClient,
        *,
        horizon_days: int = 7,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self._llm = llm
        self._horizon_days = max(1, int(horizon_days))
        self._clock = clock

    def _complete(self, messages: list[ChatMessage], system_prompt: str) -> str:
        return "".join(piece for piece in self._llm.stream_chat(messages, system_prompt) if piece)

    async def propose_sessions(self, tasks: Sequence[Task]) -> list[SessionProposal]:
        if not tasks:
            return []

        system_prompt = SESSION_PLANNER_SYSTEM_PROMPT.format(horizon_days=self._horizon_days)
        messages = build_messages(tasks, self._clock())

        # The streaming client is blocking; keep the event loop free.
        raw = await asyncio.to_thread(self._complete, messages, system_prompt)
        proposals = parse_proposals(raw)
        logger.info("Session planner proposed %d sessions for %d tasks", len(proposals), len(tasks))
        return proposals
