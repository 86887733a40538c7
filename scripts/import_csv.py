"""
Import a CSV export of the dataset from CLI.
"""

from __future__ import annotations

import argparse
import json
import sys

from etl.logging_utils import configure_logging
from etl.repositories.errors import StoreConnectionError
from etl.services.csv_import_service import CSVImportError, get_csv_import_service


def main() -> int:
    parser = argparse.ArgumentParser(description="Bulk import rural employment records from a CSV file.")
    parser.add_argument("path", help="Path to the CSV file.")
    parser.add_argument(
        "--delimiter",
        default=",",
        help="Field delimiter (default: ',').",
    )
    args = parser.parse_args()

    configure_logging()
    try:
        result = get_csv_import_service().import_file(args.path, delimiter=args.delimiter)
    except (CSVImportError, StoreConnectionError, OSError) as exc:
        print(f"CSV import failed: {exc}", file=sys.stderr)
        return 1

    payload = {
        "path": str(result.path),
        "rows_read": result.rows_read,
        "cache_keys_deleted": result.invalidation.keys_deleted,
        "cache_keys_failed": result.invalidation.keys_failed,
        **result.summary.as_log_fields(),
    }
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
