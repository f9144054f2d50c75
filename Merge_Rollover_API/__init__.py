import logging
import azure.functions as func

from rollover import force_rollover, is_valid_month, previous_month
from rollover.months import current_month
from utils import rbac
from utils.db_utils import get_db
from utils.http import get_json_body, options_response, respond


def main(req: func.HttpRequest) -> func.HttpResponse:
    logging.info('Merge_Rollover_API processed a request.')

    if req.method == "OPTIONS":
        return options_response()
    if req.method != "POST":
        return respond({"message": "Method Not Allowed. Use POST."}, status=405)

    # Auth: Admin only
    email = rbac.get_user_email(req)
    if not email:
        return respond({"message": "Unauthorized"}, status=401)

    try:
        db = get_db()
    except Exception as e:
        logging.error(f"[Merge Rollover] DB unavailable: {e}")
        return respond({"message": "Failed to merge rollover data", "error": str(e)}, status=500)

    if not rbac.is_admin(email, db):
        return respond({"message": "Forbidden: Admins only"}, status=403)

    body = get_json_body(req)
    if body is None:
        return respond({"message": "Invalid JSON"}, status=400)

    target_month = body.get("targetMonth") or current_month()
    if not is_valid_month(target_month):
        return respond({"message": "Invalid month format. Use YYYY-MM."}, status=400)

    prev = previous_month(target_month)
    if not prev:
        return respond({"message": "Could not calculate previous month."}, status=400)

    recalculate = bool(body.get("recalculate", False))
    logging.info(
        "[Merge Rollover] Manual run by %s. Target: %s, Source: %s, recalculate=%s",
        email, target_month, prev, recalculate,
    )

    try:
        result = force_rollover(db, target_month, recalculate=recalculate)
    except Exception as e:
        logging.error(f"[Merge Rollover] Error: {e}", exc_info=True)
        return respond({"message": "Failed to merge rollover data", "error": str(e)}, status=500)

    return respond({
        "success": result.get("applied", False),
        "message": result.get("message") or result.get("error") or "Rollover process completed",
        "targetMonth": target_month,
        "previousMonth": prev,
        "itemsMerged": result.get("itemsMerged", 0),
        "details": result,
    })
