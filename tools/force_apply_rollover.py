#!/usr/bin/env python3
"""Force a rollover re-run for a month (same as the admin merge endpoint)."""
import argparse
import json
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rollover import force_rollover, is_valid_month
from rollover.months import current_month
from utils.db_utils import get_db
from utils.env_utils import configure_logging, load_dotenvs


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--month", default=current_month(), help="Target month YYYY-MM (default: current)")
    parser.add_argument(
        "--recalculate", action="store_true",
        help="Also drop the cached rollover mapping so it is rebuilt from the previous month",
    )
    args = parser.parse_args()

    if not is_valid_month(args.month):
        parser.error("--month must be YYYY-MM")

    load_dotenvs()
    configure_logging()

    print(f"Forcing rollover merge for {args.month}...")
    result = force_rollover(get_db(), args.month, recalculate=args.recalculate)
    print("Result:", json.dumps(result, indent=2, default=str))
    return 0 if result.get("applied") else 1


if __name__ == "__main__":
    sys.exit(main())
