"""
Container health check for the ETL API host.

Healthy means /health answers 200 with status "ok"; with --require-scheduler
the background scheduler must also be running.
"""

from __future__ import annotations

import argparse
import os

import requests


def main() -> int:
    parser = argparse.ArgumentParser(description="Probe the ETL API health endpoint.")
    parser.add_argument(
        "--require-scheduler",
        action="store_true",
        help="Fail unless the scheduler reports it is running.",
    )
    args = parser.parse_args()

    port = os.getenv("PORT", "8000")
    path = os.getenv("HEALTHCHECK_PATH", "/health")
    url = f"http://127.0.0.1:{port}{path}"

    try:
        response = requests.get(url, timeout=2)
        body = response.json()
    except (requests.RequestException, ValueError):
        return 1

    if response.status_code != 200 or body.get("status") != "ok":
        return 1
    if args.require_scheduler and not body.get("scheduler_running"):
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
