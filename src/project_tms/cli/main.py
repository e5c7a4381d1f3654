# src/project_tms/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then starts:
- the timer ticker in a background thread (optional),
- the console REPL in the main thread.

On exit a running timer is stopped and saved before storage is closed.
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state, shutdown_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..connectors.ticker_runner import start_ticker_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()

    level_name = str(settings.log_level).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)

    ticker = start_ticker_in_background(state)
    try:
        run_console_loop(state)
    finally:
        if ticker is not None:
            ticker.stop()
            ticker.join(timeout=5.0)

        with state.lock:
            shutdown_state(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
