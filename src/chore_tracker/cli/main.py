# src/chore_tracker/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState (which refreshes the status cache), then:
- runs the console connector, or
- with the console disabled, logs the Due/Upcoming panels once and exits
  (useful as a one-shot cache refresh from cron or a container healthcheck).
"""

from __future__ import annotations

import logging

from ..chores.chore_api import due_and_upcoming
from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(app_name=settings.app_name, log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    state = create_initial_state(settings=settings)

    if settings.console_enabled:
        run_console_loop(state)
    else:
        due, upcoming = due_and_upcoming(state)
        logger.info(
            "Due: %s | Upcoming: %s",
            [v.name for v in due],
            [v.name for v in upcoming],
        )

    logger.info("Bye.")


if __name__ == "__main__":
    main()
