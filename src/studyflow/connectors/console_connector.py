# src/studyflow/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.bootstrap import load_snapshots
from ..cli.commands import registry as command_registry
from ..core.notify import Notification, Severity
from ..core.state import AppState

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("/exit", "/quit")

_SEVERITY_TAGS = {Severity.ERROR: "!!", Severity.SUCCESS: "ok", Severity.INFO: "--"}


def _stamp(text: str) -> str:
    return f"[{datetime.now().astimezone():%Y-%m-%d %H:%M:%S}] {text}"


class ConsoleNotifier:
    """Prints notifications inline with the REPL output."""

    def notify(self, notification: Notification) -> None:
        tag = _SEVERITY_TAGS.get(notification.severity, "--")
        print(_stamp(f"[{tag}] {notification.title}: {notification.description}"), flush=True)


def _read_line() -> str | None:
    """Next non-empty input line, or None when the user closed the console."""
    while True:
        try:
            line = input(">>> ").strip()
        except EOFError:
            logger.info("Console: EOF.")
            return None
        except KeyboardInterrupt:
            print()
            logger.info("Console: interrupted.")
            return None
        if line:
            return line


def run_console_loop(state: AppState) -> None:
    """
    Blocking REPL. Every command coroutine runs on the same event loop, one at a time,
    so the per-owner generation lock and the snapshots stay on one loop.
    """
    app_name = getattr(state.settings, "app_name", "studyflow")
    print(_stamp(f"[{app_name}] Type /help for commands, /exit to quit."), flush=True)

    with asyncio.Runner() as runner:
        runner.run(load_snapshots(state))
        print(
            _stamp(f"Loaded {len(state.tasks.tasks)} task(s) and {len(state.sessions.sessions)} session(s)."),
            flush=True,
        )
        logger.info("Console ready owner=%s", state.tasks.owner_id)

        while (line := _read_line()) is not None:
            if line.lower() in EXIT_COMMANDS:
                break

            try:
                reply = runner.run(command_registry.handle(state, line))
            except Exception:
                logger.exception("Console: command failed line=%r", line)
                reply = "Internal error while handling a command."

            if reply is None:
                reply = "Commands start with '/'. Use /help to list available commands."
            print(_stamp(reply) + "\n", flush=True)

    logger.info("Console closed.")
