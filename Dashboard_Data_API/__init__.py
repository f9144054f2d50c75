import logging
import math
import azure.functions as func

from rollover import check_and_apply_rollover, combine_commission_lists, is_valid_month
from rollover.config import AGENT_COLLECTION, LEADERBOARD_COLLECTION
from rollover.normalizer import to_number
from utils.db_utils import get_db
from utils.http import get_json_body, options_response, respond

TEAM_SALES_TARGET = 100


def _to_float(value) -> float:
    """Leading-number parse; anything unreadable or non-finite reads as 0."""
    num = to_number(value)
    return num if math.isfinite(num) else 0.0


def _to_int(value) -> int:
    return int(_to_float(value))


def transform_row(item: dict) -> dict:
    """Leaderboard row as served to the dashboard; rollover items are merged into the pair list."""
    return {
        "rank": _to_int(item.get("Rank")),
        "name": str(item.get("Agent Name") or "Unknown"),
        "sales": _to_int(item.get("Sales")),
        "above_10": _to_int(item.get("Above 10")),
        "commission": _to_float(item.get("Commission (£)")),
        "bonus": _to_float(item.get("Bonus (£)")),
        "commissionEarned": _to_float(item.get("Earned (£)")),
        "earnedDetails": item.get("earnedDetails") or [],
        "commission_property_pair": combine_commission_lists(
            item.get("commission_property_pair"), item.get("rollover_commission_list")
        ),
        "propertyCode": item.get("propertyCode"),
        "userIdMonthId": item.get("userIdMonthId"),
    }


def build_team(rows: list[dict]) -> dict:
    return {
        "totalSales": sum(r["sales"] for r in rows),
        "target": TEAM_SALES_TARGET,
        "totalSalesAbove10": len([r for r in rows if r["above_10"] > 0]),
    }


def get_dashboard_data(db, month: str) -> tuple[dict, int]:
    # Rollover is an enhancement: a failure here must not block the dashboard.
    try:
        result = check_and_apply_rollover(db, month)
        if not result.get("applied"):
            logging.warning("[Dashboard] Rollover not applied for %s: %s", month, result.get("error"))
    except Exception:
        logging.exception("[Dashboard] Rollover step failed for %s", month)

    leaderboard = list(db[LEADERBOARD_COLLECTION].find({"month": month}, {"_id": 0}).sort("Rank", 1))
    empty_team = {"totalSales": 0, "target": TEAM_SALES_TARGET, "totalSalesAbove10": 0}

    if not leaderboard:
        return {
            "message": f"No leaderboard data found for the month: {month}",
            "leaderboard": [],
            "team": empty_team,
        }, 404

    active_ids = {
        a["ghl_user_id"].strip()
        for a in db[AGENT_COLLECTION].find({}, {"ghl_user_id": 1, "name": 1})
        if isinstance(a.get("ghl_user_id"), str) and a["ghl_user_id"].strip()
    }

    valid = [
        item for item in leaderboard
        if isinstance(item.get("userIdMonthId"), str) and item["userIdMonthId"].split("_")[0] in active_ids
    ]
    if not valid:
        return {
            "message": f"No active agent data found for the month: {month}",
            "leaderboard": [],
            "team": empty_team,
        }, 200

    rows = [transform_row(item) for item in valid]
    return {"leaderboard": rows, "team": build_team(rows)}, 200


def main(req: func.HttpRequest) -> func.HttpResponse:
    logging.info('Dashboard_Data_API processed a request.')

    if req.method == "OPTIONS":
        return options_response()
    if req.method != "POST":
        return respond({"message": "Method Not Allowed"}, status=405)

    body = get_json_body(req)
    month = (body or {}).get("month")
    if not is_valid_month(month):
        return respond({"message": "Invalid or missing month parameter. Expected format YYYY-MM."}, status=400)

    try:
        payload, status = get_dashboard_data(get_db(), month)
        return respond(payload, status=status)
    except Exception as e:
        logging.error(f"[Dashboard] API Error: {e}", exc_info=True)
        return respond({
            "message": "Failed to retrieve dashboard data.",
            "error": str(e) or "An unknown server error occurred.",
        }, status=500)
