"""
Run one ingestion pass from CLI.
"""

from __future__ import annotations

import argparse
import json

from etl.logging_utils import configure_logging
from etl.scheduler.coordinator import RunCoordinator, TriggerStatus
from etl.services.pipeline import run_pipeline


def main() -> int:
    parser = argparse.ArgumentParser(description="Fetch, normalize and upsert the rural employment dataset once.")
    parser.add_argument(
        "--json",
        dest="as_json",
        action="store_true",
        help="Print the run summary as JSON.",
    )
    args = parser.parse_args()

    configure_logging()
    result = RunCoordinator(run_pipeline).trigger("cli")
    run_result = result.run_result

    payload = {
        "status": result.status,
        "error": result.error,
        "snapshot_written": run_result.snapshot_written if run_result else False,
        "cache_keys_deleted": run_result.invalidation.keys_deleted if run_result else 0,
        "cache_keys_failed": run_result.invalidation.keys_failed if run_result else 0,
        "summary": run_result.summary.as_log_fields() if run_result and run_result.summary else None,
    }
    if args.as_json:
        print(json.dumps(payload, indent=2, default=str))
    else:
        print(f"status={payload['status']} error={payload['error']}")
        if payload["summary"]:
            for key, value in payload["summary"].items():
                print(f"  {key}: {value}")

    return 0 if result.status == TriggerStatus.COMPLETED else 1


if __name__ == "__main__":
    raise SystemExit(main())
