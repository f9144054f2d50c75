import json
import logging
from datetime import datetime, timezone

from pymongo.errors import PyMongoError

from .agent_key import resolve_agent_key
from .config import (
    FIELD_AGENT_NAME,
    FIELD_COMPOSITE_ID,
    FIELD_MONTH,
    FIELD_ROLLOVER_LIST,
    FIELD_ROLLOVER_UPDATED,
    LEADERBOARD_COLLECTION,
)
from .normalizer import parse_commission_pairs
from .selector import normalize_code
from .status import SUCCESS_CONTINUOUS_SYNC, mark_rollover_applied

# A record "misses" rollover data when the field was never written or holds an empty list.
MISSING_ROLLOVER_CONDITIONS = [
    {FIELD_ROLLOVER_LIST: {"$exists": False}},
    {FIELD_ROLLOVER_LIST: None},
    {FIELD_ROLLOVER_LIST: ""},
    {FIELD_ROLLOVER_LIST: "[]"},
    {FIELD_ROLLOVER_LIST: {"$size": 0}},
]


def rollover_item_key(item: dict) -> str:
    """Dedup key of a commission line: property code + month it came from."""
    return f"{normalize_code(item.get('propertyCode'))}_{item.get('sourceMonth') or ''}"


def merge_rollover_items(existing, incoming) -> list:
    """Order-preserving union; each (propertyCode, sourceMonth) appears at most once."""
    merged = []
    seen = set()
    for item in list(existing or []) + list(incoming or []):
        if not isinstance(item, dict):
            continue
        key = rollover_item_key(item)
        if key in seen:
            continue
        seen.add(key)
        merged.append(item)
    return merged


def serialize_rollover_items(items) -> str:
    # Compact separators keep the stored text identical to what the JS dashboard writes.
    return json.dumps(items, separators=(",", ":"), ensure_ascii=False, default=str)


def combine_commission_lists(main_raw, rollover_raw) -> list:
    """Current-month pairs followed by rollover items not already represented."""
    combined = list(parse_commission_pairs(main_raw))
    existing_keys = {rollover_item_key(p) for p in combined if isinstance(p, dict)}

    for item in parse_commission_pairs(rollover_raw):
        if not isinstance(item, dict):
            continue
        key = rollover_item_key(item)
        if key not in existing_keys:
            combined.append(item)
            existing_keys.add(key)
    return combined


def apply_rollover_to_missing_records(db, target_month: str, rollover_map: dict, source_month: str | None = None) -> dict:
    """
    Write rollover items into every `target_month` record that has none yet.

    Records that already carry rollover data are never selected nor
    overwritten, so this is safe to call on every dashboard read. Each write
    re-checks the "missing" predicate, which keeps two concurrent callers from
    both counting the same record.
    """
    coll = db[LEADERBOARD_COLLECTION]
    current_data = list(
        coll.find(
            {FIELD_MONTH: target_month, "$or": MISSING_ROLLOVER_CONDITIONS},
            {"_id": 1, FIELD_COMPOSITE_ID: 1, FIELD_AGENT_NAME: 1},
        )
    )

    updated_count = 0
    failed_count = 0
    total_merged = 0

    for agent in current_data:
        key = resolve_agent_key(agent)
        if not key:
            continue

        items = merge_rollover_items([], rollover_map.get(key))
        if not items:
            continue

        try:
            res = coll.update_one(
                {"_id": agent["_id"], "$or": MISSING_ROLLOVER_CONDITIONS},
                {
                    "$set": {
                        FIELD_ROLLOVER_LIST: serialize_rollover_items(items),
                        FIELD_ROLLOVER_UPDATED: datetime.now(timezone.utc),
                    }
                },
            )
        except PyMongoError:
            failed_count += 1
            logging.exception(
                "[Rollover] Failed to write rollover items for agent %s (%s)",
                agent.get(FIELD_AGENT_NAME) or key, target_month,
            )
            continue

        if res.matched_count:
            updated_count += 1
            total_merged += len(items)
            logging.info(
                "[Rollover] Applied %d items to agent: %s", len(items), agent.get(FIELD_AGENT_NAME) or key
            )

    if updated_count > 0:
        logging.info(
            "[Rollover] Applied rollover to %d missing records (%d items total)", updated_count, total_merged
        )
    if failed_count > 0:
        logging.warning(
            "[Rollover] %d records failed to sync for %s; they will be retried on the next request",
            failed_count, target_month,
        )

    mark_rollover_applied(db, target_month, total_merged, SUCCESS_CONTINUOUS_SYNC, source_month)

    return {
        "applied": True,
        "itemsMerged": total_merged,
        "agentsUpdated": updated_count,
        "agentsFailed": failed_count,
        "message": (
            f"Applied rollover to {updated_count} records."
            if updated_count > 0
            else "All records already have rollover data."
        ),
    }
