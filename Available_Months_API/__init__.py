import logging
import azure.functions as func

from rollover import format_month_label, is_valid_month
from rollover.config import LEADERBOARD_COLLECTION
from rollover.months import recent_months
from utils.db_utils import get_db
from utils.http import options_response, respond

FALLBACK_MONTHS = 6


def _as_options(months) -> list[dict]:
    return [{"value": m, "label": format_month_label(m)} for m in months]


def main(req: func.HttpRequest) -> func.HttpResponse:
    if req.method == "OPTIONS":
        return options_response()
    if req.method != "GET":
        return respond({"message": "Method not allowed"}, status=405)

    try:
        db = get_db()
        months = [m for m in db[LEADERBOARD_COLLECTION].distinct("month") if is_valid_month(m)]
        # 'YYYY-MM' sorts chronologically as text
        months.sort(reverse=True)
        return respond({"months": _as_options(months)})
    except Exception as e:
        logging.error(f"Error fetching months: {e}")
        return respond({"months": _as_options(recent_months(FALLBACK_MONTHS)), "fallback": True})
