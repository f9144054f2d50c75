#!/usr/bin/env python3
"""Print the rollover ledger, cached mappings and synced agents for a month."""
import argparse
import json
import logging
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from rollover import get_rollover_status, parse_commission_pairs, previous_month
from rollover.config import LEADERBOARD_COLLECTION, ROLLOVER_ITEMS_COLLECTION
from rollover.months import current_month
from utils.db_utils import get_db
from utils.env_utils import configure_logging, load_dotenvs


def summarize(db, month: str) -> dict:
    status = get_rollover_status(db, month)
    mappings = list(db[ROLLOVER_ITEMS_COLLECTION].find({"targetMonth": month}, {"_id": 0, "rolloverItems": 0}))

    agents = []
    for agent in db[LEADERBOARD_COLLECTION].find({"month": month}):
        items = parse_commission_pairs(agent.get("rollover_commission_list"))
        if items:
            agents.append({"agent": agent.get("Agent Name"), "items": len(items)})

    return {
        "month": month,
        "sourceMonth": previous_month(month),
        "status": status,
        "cachedMappings": len(mappings),
        "cachedItems": sum(m.get("itemCount", 0) for m in mappings),
        "agentsWithRollover": agents,
    }


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--month", default=current_month(), help="Target month YYYY-MM (default: current)")
    args = parser.parse_args()

    load_dotenvs()
    configure_logging()

    summary = summarize(get_db(), args.month)
    print(json.dumps(summary, indent=2, default=str))

    total = sum(a["items"] for a in summary["agentsWithRollover"])
    if total == 0:
        print("No rollover items found in any agent record.")
    else:
        print(f"\nTotal rollover items found: {total}")
    logging.info("[Rollover] Check complete for %s", args.month)


if __name__ == "__main__":
    main()
