import math

from .normalizer import to_number

_MISSING_VALUES = (None, "", "null")


def normalize_code(code) -> str:
    if code is None:
        return ""
    if not isinstance(code, str):
        code = str(code)
    return code.strip().lower()


def filter_earned_details(details) -> list:
    """Keep well-formed earned rows: a property code and a commission that is present.

    A commission of 0 still counts as present.
    """
    return [
        d for d in (details or [])
        if isinstance(d, dict) and d.get("propertyCode") and d.get("commission") is not None
    ]


def get_incomplete_commissions(commission_pairs, earned_details) -> list:
    """Valid, non-zero commission pairs that have no matching earned row.

    Input order is preserved and no de-duplication happens here.
    """
    earned_codes = {
        code
        for code in (normalize_code(d.get("propertyCode")) for d in (earned_details or []) if isinstance(d, dict))
        if code
    }

    incomplete = []
    for pair in commission_pairs or []:
        if not isinstance(pair, dict):
            continue

        comm_value = pair.get("commissionValue")
        if comm_value in _MISSING_VALUES:
            continue

        num_value = to_number(comm_value)
        if math.isnan(num_value) or num_value == 0:
            continue

        code = normalize_code(pair.get("propertyCode"))
        if code and code not in earned_codes:
            incomplete.append(pair)

    return incomplete
