import logging
from datetime import datetime, timezone

from .config import ROLLOVER_ITEMS_COLLECTION, ROLLOVER_STATUS_COLLECTION

# Status reasons
NO_PREVIOUS_DATA = "no_previous_data"
NO_INCOMPLETE_ITEMS = "no_incomplete_items"
SUCCESS = "success"
SUCCESS_CONTINUOUS_SYNC = "success_continuous_sync"


def mark_rollover_applied(db, month: str, items_merged: int, reason: str, source_month: str | None = None) -> None:
    """Upsert the status ledger entry for `month` (last write wins)."""
    db[ROLLOVER_STATUS_COLLECTION].update_one(
        {"month": month},
        {
            "$set": {
                "applied": True,
                "appliedAt": datetime.now(timezone.utc),
                "itemsMerged": items_merged,
                "reason": reason,
                "sourceMonth": source_month,
            }
        },
        upsert=True,
    )


def get_rollover_status(db, month: str) -> dict | None:
    return db[ROLLOVER_STATUS_COLLECTION].find_one({"month": month}, {"_id": 0})


def clear_rollover_state(db, month: str, include_items: bool = False) -> dict:
    """Delete the ledger entry (and optionally the cached mapping) for a target month."""
    res = db[ROLLOVER_STATUS_COLLECTION].delete_one({"month": month})
    cleared = {"status": res.deleted_count, "items": 0}

    if include_items:
        res = db[ROLLOVER_ITEMS_COLLECTION].delete_many({"targetMonth": month})
        cleared["items"] = res.deleted_count

    logging.info(
        "[Rollover] Cleared rollover state for %s (status=%d, cached mappings=%d)",
        month, cleared["status"], cleared["items"],
    )
    return cleared
