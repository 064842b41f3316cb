# src/studyflow/cli/main.py

"""
`studyflow` console script.

Logging first, then the composition root, then the blocking REPL on the main thread.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..connectors.console_connector import ConsoleNotifier, run_console_loop
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    console_level = logging.getLevelName(str(settings.log_level).upper())
    if not isinstance(console_level, int):
        console_level = logging.INFO
    log_file = setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("%s starting (owner=%s, log=%s)", settings.app_name, settings.owner_id, log_file)
    state = create_initial_state(settings=settings, notifier=ConsoleNotifier())

    try:
        run_console_loop(state)
    finally:
        try:
            state.backend.close()
        except Exception:
            logger.debug("Backend close failed.", exc_info=True)
        logger.info("%s stopped.", settings.app_name)


if __name__ == "__main__":
    main()
