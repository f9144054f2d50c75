"""
Commission rollover: carry unpaid commission items from one month into the next.

Two phases, both safe to run on every dashboard request:

1. ``ensure_rollover_items_calculated`` computes (or loads) the per-agent
   rollover items for the target month and persists them in
   ``rollover_items``.
2. ``apply_rollover_to_missing_records`` writes those items into every
   target-month leaderboard row that does not have rollover data yet.

The database handle is always passed in; nothing here caches connections.
"""
import logging

from .applicator import apply_rollover_to_missing_records, combine_commission_lists, merge_rollover_items
from .calculator import ensure_rollover_items_calculated
from .months import format_month_label, is_valid_month, previous_month
from .normalizer import parse_commission_pairs
from .selector import get_incomplete_commissions
from .status import clear_rollover_state, get_rollover_status, mark_rollover_applied

__all__ = [
    "apply_rollover_to_missing_records",
    "check_and_apply_rollover",
    "clear_rollover_state",
    "combine_commission_lists",
    "ensure_rollover_items_calculated",
    "force_rollover",
    "format_month_label",
    "get_incomplete_commissions",
    "get_rollover_status",
    "is_valid_month",
    "mark_rollover_applied",
    "merge_rollover_items",
    "parse_commission_pairs",
    "previous_month",
]


def check_and_apply_rollover(db, target_month: str) -> dict:
    """
    Calculate-then-apply rollover for `target_month`.

    Never raises: failures come back as ``{"applied": False, "error": ...}``
    so the dashboard can be served without rollover data.
    """
    try:
        prev = previous_month(target_month)
        if not prev:
            return {"applied": False, "itemsMerged": 0, "error": "Could not calculate previous month"}

        logging.info("[Rollover] Checking rollover from %s -> %s", prev, target_month)

        rollover_map = ensure_rollover_items_calculated(db, target_month, prev)
        if not rollover_map:
            return {
                "applied": True,
                "itemsMerged": 0,
                "agentsUpdated": 0,
                "message": "No rollover items to apply.",
            }

        return apply_rollover_to_missing_records(db, target_month, rollover_map, prev)

    except Exception as e:
        logging.exception("[Rollover] Error while applying rollover for %s", target_month)
        return {"applied": False, "itemsMerged": 0, "error": str(e)}


def force_rollover(db, target_month: str, recalculate: bool = False) -> dict:
    """Admin re-run: drop the status entry (and the cached mapping when `recalculate`) and run again."""
    cleared = clear_rollover_state(db, target_month, include_items=recalculate)
    result = check_and_apply_rollover(db, target_month)
    result["cleared"] = cleared
    return result
