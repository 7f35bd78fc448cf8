"""
Tests for the sleep routine: shape normalization, 12-hour time parsing,
duration across midnight, and completion.
"""
import pytest
from services.sleep_routine import (
    calculate_sleep_routine_progress,
    ensure_sleep_routine_shape,
    normalize_pre_bed_items,
    parse_time_to_minutes,
    sleep_duration_minutes,
)


class TestParseTime:

    @pytest.mark.parametrize("value,expected", [
        ("10:30 PM", 22 * 60 + 30),
        ("6:00 AM", 6 * 60),
        ("6 am", 6 * 60),
        ("12:00 AM", 0),
        ("12:15 PM", 12 * 60 + 15),
        ("11:59pm", 23 * 60 + 59),
    ])
    def test_valid_times(self, value, expected):
        assert parse_time_to_minutes(value) == expected

    @pytest.mark.parametrize("value", [None, "", "22:30", "13:00 PM", "0:30 AM", "7:60 AM", "noon"])
    def test_invalid_times(self, value):
        assert parse_time_to_minutes(value) is None


class TestSleepDuration:

    def test_wraps_past_midnight(self):
        assert sleep_duration_minutes("10:30 PM", "6:30 AM") == 8 * 60

    def test_same_day(self):
        assert sleep_duration_minutes("1:00 AM", "9:00 AM") == 8 * 60

    def test_unparseable(self):
        assert sleep_duration_minutes("late", "6:30 AM") is None


class TestShape:

    def test_fills_missing_parts(self):
        assert ensure_sleep_routine_shape(None) == {
            "night": {"bedtime": None, "pre_bed": []},
            "morning": {"wake_time": None},
        }

    def test_drops_blank_pre_bed_items(self):
        shaped = ensure_sleep_routine_shape({
            "night": {"bedtime": " 10 PM ", "pre_bed": [{"item_name": " Read "}, {"item_name": "  "}, "junk"]},
        })
        assert shaped["night"]["bedtime"] == "10 PM"
        assert [item["item_name"] for item in shaped["night"]["pre_bed"]] == ["Read"]


class TestPreBedItems:

    def test_sorted_by_order_then_name_and_renumbered(self):
        items = normalize_pre_bed_items([
            {"item_name": "Tea", "item_order": 5},
            {"item_name": "Read", "item_order": 2},
            {"item_name": "brush teeth", "item_order": 5},
            {"item_name": "Stretch"},
        ])
        # Stretch falls back to its list position (4)
        assert [(item["item_name"], item["item_order"]) for item in items] == [
            ("Read", 1),
            ("Stretch", 2),
            ("brush teeth", 3),
            ("Tea", 4),
        ]

    def test_invalid_order_uses_list_position(self):
        items = normalize_pre_bed_items([
            {"item_name": "B", "item_order": -3},
            {"item_name": "A", "item_order": "first"},
        ])
        assert [item["item_name"] for item in items] == ["B", "A"]

    def test_invalid_classification_falls_back_to_neutral(self):
        item = normalize_pre_bed_items([{"item_name": "Scroll phone", "habit_classification": "terrible"}])[0]
        assert item["habit_classification"] == "neutral"

    def test_valid_fields_are_kept(self):
        item = normalize_pre_bed_items([{
            "item_name": "Magnesium",
            "item_type": "supplement",
            "habit_classification": "good",
            "serving_size": " 200mg ",
            "is_optional": True,
        }])[0]
        assert item["item_type"] == "supplement"
        assert item["habit_classification"] == "good"
        assert item["serving_size"] == "200mg"
        assert item["is_optional"] is True

    def test_unknown_type_and_bad_amounts_are_cleaned(self):
        item = normalize_pre_bed_items([{
            "item_name": "Stretch",
            "item_type": "yoga",
            "duration_minutes": -5,
            "calories": "lots",
            "reps": 10,
            "notes": "   ",
        }])[0]
        assert item["item_type"] == "activity"
        assert item["duration_minutes"] is None
        assert item["calories"] is None
        assert item["reps"] == 10
        assert item["notes"] is None
        assert item["is_optional"] is False

    def test_not_a_list(self):
        assert normalize_pre_bed_items({"item_name": "Read"}) == []


class TestSleepRoutineProgress:

    def test_complete(self):
        progress = calculate_sleep_routine_progress({
            "night": {"bedtime": "10:30 PM", "pre_bed": [{"item_name": "Read"}]},
            "morning": {"wake_time": "6:30 AM"},
        })
        assert progress.is_complete is True
        assert progress.missing_requirements == []
        assert progress.sleep_duration_minutes == 480
        assert progress.pre_bed_item_count == 1

    def test_nothing_set(self):
        progress = calculate_sleep_routine_progress(None)
        assert progress.is_complete is False
        assert progress.missing_requirements == ["bedtime", "wake time", "pre-bed routine"]
        assert progress.sleep_duration_minutes is None

    def test_needs_a_pre_bed_item(self):
        progress = calculate_sleep_routine_progress({
            "night": {"bedtime": "10:30 PM", "pre_bed": []},
            "morning": {"wake_time": "6:30 AM"},
        })
        assert progress.is_complete is False
        assert progress.missing_requirements == ["pre-bed routine"]
