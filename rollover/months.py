import logging
import re
from datetime import datetime, timezone

_MONTH_RE = re.compile(r"^\d{4}-\d{2}$")


def is_valid_month(value) -> bool:
    """True for a 'YYYY-MM' string with a month between 01 and 12."""
    if not isinstance(value, str) or not _MONTH_RE.match(value):
        return False
    return 1 <= int(value[5:7]) <= 12


def previous_month(month: str) -> str | None:
    """Return previous month (YYYY-MM) for a given YYYY-MM, or None if malformed."""
    if not is_valid_month(month):
        logging.error("[Rollover] Cannot calculate previous month for %r", month)
        return None
    y, m = map(int, month.split("-"))
    if m == 1:
        if y <= 1:
            logging.error("[Rollover] Cannot calculate previous month for %r", month)
            return None
        return f"{y-1:04d}-12"
    return f"{y:04d}-{m-1:02d}"


def format_month_label(month: str | None) -> str:
    """'2025-12' -> 'December 2025'."""
    if not month:
        return "Unknown"
    try:
        return datetime.strptime(f"{month}-01", "%Y-%m-%d").strftime("%B %Y")
    except (TypeError, ValueError):
        return month


def current_month(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m")


def recent_months(count: int, now: datetime | None = None) -> list[str]:
    """The `count` most recent calendar months, newest first, starting at `now`."""
    month = current_month(now)
    months = [month]
    while len(months) < count:
        month = previous_month(month)
        if month is None:
            break
        months.append(month)
    return months
