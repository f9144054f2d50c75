from .config import FIELD_AGENT_NAME, FIELD_COMPOSITE_ID


def resolve_agent_key(record: dict) -> str:
    """Join key shared by the calculator and the applicator.

    '<agentId>_<YYYYMM>' composite ids win; legacy rows fall back to the
    trimmed, lower-cased agent name. An empty string means "cannot join".
    """
    composite = record.get(FIELD_COMPOSITE_ID)
    if isinstance(composite, str) and "_" in composite:
        return composite.split("_", 1)[0]

    name = record.get(FIELD_AGENT_NAME) or ""
    if not isinstance(name, str):
        name = str(name)
    return name.strip().lower()
