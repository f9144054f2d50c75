import json
import logging
from datetime import datetime, timezone

from .agent_key import resolve_agent_key
from .applicator import merge_rollover_items, serialize_rollover_items
from .config import (
    FIELD_AGENT_NAME,
    FIELD_COMMISSION_PAIRS,
    FIELD_COMPOSITE_ID,
    FIELD_EARNED_DETAILS,
    FIELD_MONTH,
    LEADERBOARD_COLLECTION,
    ROLLOVER_ITEMS_COLLECTION,
)
from .months import format_month_label, previous_month as _previous_month
from .normalizer import parse_commission_pairs
from .selector import filter_earned_details, get_incomplete_commissions
from .status import NO_INCOMPLETE_ITEMS, NO_PREVIOUS_DATA, mark_rollover_applied


def build_rollover_items(incomplete: list, source_month: str) -> list:
    """Tag unpaid pairs with the month they are carried over from."""
    label = format_month_label(source_month)
    return [
        {**item, "sourceMonth": source_month, "sourceMonthLabel": label, "isRollover": True}
        for item in incomplete
    ]


def load_rollover_mapping(db, target_month: str) -> dict | None:
    """Read the persisted mapping for `target_month`.

    None when no document was ever persisted for the month. When documents
    exist the mapping is returned even if every entry turned out empty or
    unreadable; such a month is not recomputed.
    """
    docs = list(db[ROLLOVER_ITEMS_COLLECTION].find({"targetMonth": target_month}))
    if not docs:
        return None

    rollover_map: dict[str, list] = {}
    for doc in docs:
        items = doc.get("rolloverItems")
        if isinstance(items, str):
            try:
                items = json.loads(items)
            except ValueError:
                logging.warning(
                    "[Rollover] Unreadable cached rollover items for %s/%s", target_month, doc.get("agentKey")
                )
                items = []
        if isinstance(items, list) and items and doc.get("agentKey"):
            rollover_map[doc["agentKey"]] = items
    return rollover_map


def _incomplete_for_agent(agent: dict) -> list:
    pairs = parse_commission_pairs(agent.get(FIELD_COMMISSION_PAIRS))
    earned = filter_earned_details(parse_commission_pairs(agent.get(FIELD_EARNED_DETAILS)))
    return get_incomplete_commissions(pairs, earned)


def ensure_rollover_items_calculated(db, target_month: str, previous_month: str | None = None) -> dict:
    """
    Compute-or-load the rollover mapping (agent key -> rollover items) for `target_month`.

    Once any mapping document exists for the month it is returned as-is and
    nothing is recomputed. Otherwise the previous month's rows are scanned and
    each agent's unpaid items are persisted with an upsert on
    (targetMonth, agentKey), so concurrent calculators converge on the same
    documents.
    """
    previous_month = previous_month or _previous_month(target_month)
    if not previous_month:
        return {}

    cached = load_rollover_mapping(db, target_month)
    if cached is not None:
        logging.info("[Rollover] Loaded %d existing rollover mappings for %s", len(cached), target_month)
        return cached

    logging.info("[Rollover] Calculating rollover items from %s -> %s", previous_month, target_month)
    rollover_map: dict[str, list] = {}

    previous_data = list(
        db[LEADERBOARD_COLLECTION].find(
            {FIELD_MONTH: previous_month},
            {FIELD_AGENT_NAME: 1, FIELD_COMPOSITE_ID: 1, FIELD_COMMISSION_PAIRS: 1, FIELD_EARNED_DETAILS: 1},
        )
    )
    if not previous_data:
        logging.info("[Rollover] No previous month data found for %s", previous_month)
        mark_rollover_applied(db, target_month, 0, NO_PREVIOUS_DATA, previous_month)
        return rollover_map

    for agent in previous_data:
        key = resolve_agent_key(agent)
        if not key:
            continue

        try:
            incomplete = _incomplete_for_agent(agent)
        except Exception as e:
            logging.warning(
                "[Rollover] Failed to parse commissions for agent %s: %s", agent.get(FIELD_AGENT_NAME) or key, e
            )
            continue

        if not incomplete:
            continue

        rollover_map[key] = merge_rollover_items(rollover_map.get(key), build_rollover_items(incomplete, previous_month))

    # Persist only complete per-agent lists; a reader of the cache never sees a half-merged agent.
    for key, items in rollover_map.items():
        db[ROLLOVER_ITEMS_COLLECTION].update_one(
            {"targetMonth": target_month, "agentKey": key},
            {
                "$set": {
                    "targetMonth": target_month,
                    "agentKey": key,
                    "sourceMonth": previous_month,
                    "rolloverItems": serialize_rollover_items(items),
                    "itemCount": len(items),
                    "calculatedAt": datetime.now(timezone.utc),
                }
            },
            upsert=True,
        )

    if not rollover_map:
        mark_rollover_applied(db, target_month, 0, NO_INCOMPLETE_ITEMS, previous_month)

    logging.info("[Rollover] Calculated and persisted %d rollover mappings for %s", len(rollover_map), target_month)
    return rollover_map
