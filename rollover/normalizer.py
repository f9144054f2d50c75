"""
Normalization of stored commission lists.

The leaderboard rows have accumulated several encodings for the same list of
``{propertyCode, commissionValue}`` pairs depending on which ingestion path
wrote them:

    * a native array of sub-documents
    * a JSON string of the array
    * a JSON string of a JSON string (double encoded)
    * a string with escaped quotes (``[{\\"propertyCode\\": ...}]``),
      optionally wrapped in one more pair of quotes

``parse_commission_pairs`` absorbs all of them. A record that cannot be read
yields an empty list so that one bad row never blocks the rest of the month.
"""
import json
import logging
import math
import re

_NUMBER_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def parse_commission_pairs(raw) -> list:
    """Return the stored list as a Python list; never raises."""
    if raw is None or raw == "":
        return []

    if isinstance(raw, list):
        return raw

    if not isinstance(raw, str):
        return []

    # 1. Direct parse (possibly double encoded)
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    else:
        if isinstance(parsed, list):
            return parsed
        if isinstance(parsed, str):
            try:
                inner = json.loads(parsed)
                if isinstance(inner, list):
                    return inner
            except ValueError:
                pass
            return parse_commission_pairs(parsed)

    # 2. Legacy cleanup: \" -> " and strip one layer of wrapping quotes
    clean = raw.replace('\\"', '"')
    if len(clean) >= 2 and clean.startswith('"') and clean.endswith('"'):
        clean = clean[1:-1]
    try:
        parsed = json.loads(clean)
    except ValueError as e:
        logging.error("[Rollover] Error parsing commission_property_pair: %s", e)
        return []
    return parsed if isinstance(parsed, list) else []


def to_number(value) -> float:
    """Lenient numeric coercion; NaN when nothing numeric can be read.

    Leading numeric prefixes are accepted ("75abc" -> 75.0), matching how the
    dashboard has always read commission values.
    """
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        return math.nan

    text = value.strip()
    if text.startswith(("Infinity", "+Infinity")):
        return math.inf
    if text.startswith("-Infinity"):
        return -math.inf

    match = _NUMBER_PREFIX_RE.match(text)
    if not match:
        return math.nan
    return float(match.group(0))
