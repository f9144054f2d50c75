import os

# ---------- Collections ----------
# Agent/month performance rows written by the ingestion workflow.
LEADERBOARD_COLLECTION = os.getenv("ROLLOVER_LEADERBOARD_COLLECTION", "leader_board")
# Persisted calculation cache: one document per (targetMonth, agentKey).
ROLLOVER_ITEMS_COLLECTION = os.getenv("ROLLOVER_ITEMS_COLLECTION", "rollover_items")
# Status ledger: one document per target month.
ROLLOVER_STATUS_COLLECTION = os.getenv("ROLLOVER_STATUS_COLLECTION", "rollover_status")
# Active agents (dashboard filter).
AGENT_COLLECTION = os.getenv("ROLLOVER_AGENT_COLLECTION", "agent")

# ---------- Leaderboard field names ----------
FIELD_MONTH = "month"
FIELD_COMPOSITE_ID = "userIdMonthId"
FIELD_AGENT_NAME = "Agent Name"
FIELD_COMMISSION_PAIRS = "commission_property_pair"
FIELD_EARNED_DETAILS = "earnedDetails"
FIELD_ROLLOVER_LIST = "rollover_commission_list"
FIELD_ROLLOVER_UPDATED = "last_rollover_update"
