"""
Run the cron scheduler and queue consumer until SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import logging
import signal
import threading

from etl.logging_utils import configure_logging
from etl.runtime import ETLRuntime, QueueDisabledError

logger = logging.getLogger("etl.worker")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the scheduled ETL worker process.")
    parser.add_argument(
        "--trigger",
        action="store_true",
        help="Also enqueue one run immediately after start.",
    )
    args = parser.parse_args()

    configure_logging()
    stop_event = threading.Event()

    def _handle_signal(signum: int, _frame: object) -> None:
        logger.info("Received signal %s, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    runtime = ETLRuntime()
    runtime.start()
    try:
        if args.trigger:
            try:
                runtime.request_run(source="cli")
            except QueueDisabledError as exc:
                logger.warning("Initial trigger skipped: %s", exc)
        while not stop_event.is_set():
            stop_event.wait(1.0)
    finally:
        runtime.shutdown()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
