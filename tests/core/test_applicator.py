import json
from unittest.mock import MagicMock

from pymongo.errors import PyMongoError

from rollover.applicator import (
    apply_rollover_to_missing_records,
    combine_commission_lists,
    merge_rollover_items,
    rollover_item_key,
    serialize_rollover_items,
)
from rollover.status import SUCCESS_CONTINUOUS_SYNC, get_rollover_status

ITEM_B = {
    "propertyCode": "B",
    "commissionValue": "75",
    "sourceMonth": "2026-01",
    "sourceMonthLabel": "January 2026",
    "isRollover": True,
}


class TestMergeRules:
    def test_item_key(self):
        assert rollover_item_key({"propertyCode": " AB ", "sourceMonth": "2026-01"}) == "ab_2026-01"
        assert rollover_item_key({"propertyCode": "AB"}) == "ab_"

    def test_merge_keeps_first_occurrence(self):
        first = {**ITEM_B, "commissionValue": "1"}
        second = {**ITEM_B, "propertyCode": "b", "commissionValue": "2"}
        other_month = {**ITEM_B, "sourceMonth": "2025-12"}
        assert merge_rollover_items([first], [second, other_month]) == [first, other_month]

    def test_serialized_form_is_compact(self):
        assert serialize_rollover_items([{"propertyCode": "B", "isRollover": True}]) == '[{"propertyCode":"B","isRollover":true}]'

    def test_combine_appends_missing_rollover_items(self):
        main = json.dumps([{"propertyCode": "B", "commissionValue": "10"}])
        rollover = json.dumps([ITEM_B, ITEM_B, None])
        combined = combine_commission_lists(main, rollover)
        assert combined == [{"propertyCode": "B", "commissionValue": "10"}, ITEM_B]

    def test_combine_skips_item_already_in_main_list(self):
        main = [ITEM_B]
        assert combine_commission_lists(main, [dict(ITEM_B)]) == [ITEM_B]

    def test_combine_with_nothing(self):
        assert combine_commission_lists(None, "") == []


class TestApply:
    def test_fills_missing_record(self, db, seed_month):
        seed_month("2026-02", {"userIdMonthId": "x1_202602", "Agent Name": "Agent X"})

        result = apply_rollover_to_missing_records(db, "2026-02", {"x1": [ITEM_B]}, "2026-01")

        assert result["applied"] is True
        assert result["agentsUpdated"] == 1
        assert result["itemsMerged"] == 1
        doc = db.leader_board.find_one({"month": "2026-02"})
        assert json.loads(doc["rollover_commission_list"]) == [ITEM_B]
        assert doc["last_rollover_update"] is not None

        status = get_rollover_status(db, "2026-02")
        assert status["reason"] == SUCCESS_CONTINUOUS_SYNC
        assert status["itemsMerged"] == 1
        assert status["sourceMonth"] == "2026-01"

    def test_every_empty_representation_is_filled(self, db, seed_month):
        seed_month(
            "2026-02",
            {"Agent Name": "a"},
            {"Agent Name": "b", "rollover_commission_list": None},
            {"Agent Name": "c", "rollover_commission_list": ""},
            {"Agent Name": "d", "rollover_commission_list": "[]"},
            {"Agent Name": "e", "rollover_commission_list": []},
        )
        mapping = {k: [ITEM_B] for k in "abcde"}

        result = apply_rollover_to_missing_records(db, "2026-02", mapping)

        assert result["agentsUpdated"] == 5
        for doc in db.leader_board.find({"month": "2026-02"}):
            assert json.loads(doc["rollover_commission_list"]) == [ITEM_B]

    def test_populated_record_is_never_touched(self, db, seed_month):
        existing = serialize_rollover_items([{**ITEM_B, "propertyCode": "OLD"}])
        seed_month("2026-02", {"userIdMonthId": "x1_202602", "rollover_commission_list": existing})

        result = apply_rollover_to_missing_records(db, "2026-02", {"x1": [ITEM_B]})

        assert result["agentsUpdated"] == 0
        assert result["itemsMerged"] == 0
        assert result["message"] == "All records already have rollover data."
        doc = db.leader_board.find_one({"month": "2026-02"})
        assert doc["rollover_commission_list"] == existing
        assert "last_rollover_update" not in doc

    def test_repeated_apply_is_byte_for_byte_stable(self, db, seed_month):
        seed_month("2026-02", {"userIdMonthId": "x1_202602"})
        mapping = {"x1": [ITEM_B]}

        apply_rollover_to_missing_records(db, "2026-02", mapping)
        before = db.leader_board.find_one({"month": "2026-02"})
        for _ in range(3):
            assert apply_rollover_to_missing_records(db, "2026-02", mapping)["agentsUpdated"] == 0
        after = db.leader_board.find_one({"month": "2026-02"})

        assert after["rollover_commission_list"] == before["rollover_commission_list"]
        assert after["last_rollover_update"] == before["last_rollover_update"]

    def test_duplicate_items_in_mapping_written_once(self, db, seed_month):
        seed_month("2026-02", {"userIdMonthId": "x1_202602"})
        dup = {**ITEM_B, "propertyCode": " b "}

        result = apply_rollover_to_missing_records(db, "2026-02", {"x1": [ITEM_B, dup]})

        assert result["itemsMerged"] == 1
        stored = json.loads(db.leader_board.find_one({})["rollover_commission_list"])
        assert stored == [ITEM_B]

    def test_unmatched_and_keyless_records_are_left_alone(self, db, seed_month):
        seed_month(
            "2026-02",
            {"userIdMonthId": "other_202602"},
            {"Agent Name": "  "},
        )
        seed_month("2026-03", {"userIdMonthId": "x1_202603"})

        result = apply_rollover_to_missing_records(db, "2026-02", {"x1": [ITEM_B], "": [ITEM_B]})

        assert result["agentsUpdated"] == 0
        assert db.leader_board.count_documents({"rollover_commission_list": {"$exists": True}}) == 0
        # zero merged is still a recorded success
        assert get_rollover_status(db, "2026-02")["itemsMerged"] == 0

    def test_one_failed_write_does_not_abort_the_batch(self):
        leaderboard = MagicMock()
        leaderboard.find.return_value = [
            {"_id": 1, "userIdMonthId": "x1_202602", "Agent Name": "X"},
            {"_id": 2, "userIdMonthId": "y2_202602", "Agent Name": "Y"},
        ]
        leaderboard.update_one.side_effect = [PyMongoError("write rejected"), MagicMock(matched_count=1)]
        status = MagicMock()
        db = MagicMock()
        db.__getitem__.side_effect = lambda name: {"leader_board": leaderboard, "rollover_status": status}[name]

        result = apply_rollover_to_missing_records(db, "2026-02", {"x1": [ITEM_B], "y2": [ITEM_B]})

        assert result["agentsFailed"] == 1
        assert result["agentsUpdated"] == 1
        assert result["itemsMerged"] == 1
        assert leaderboard.update_one.call_count == 2
        status.update_one.assert_called_once()

    def test_lost_race_is_not_counted(self):
        leaderboard = MagicMock()
        leaderboard.find.return_value = [{"_id": 1, "userIdMonthId": "x1_202602"}]
        leaderboard.update_one.return_value = MagicMock(matched_count=0)
        db = MagicMock()
        db.__getitem__.side_effect = lambda name: {"leader_board": leaderboard, "rollover_status": MagicMock()}[name]

        result = apply_rollover_to_missing_records(db, "2026-02", {"x1": [ITEM_B]})

        assert result["agentsUpdated"] == 0
        filter_arg = leaderboard.update_one.call_args[0][0]
        assert filter_arg["_id"] == 1
        assert "$or" in filter_arg
