"""
Tests for routine definition writes: idempotent upsert, validation,
and item deletion by (day, time of day, item name).
"""
import pytest
from uuid import uuid4
from core.exceptions import NotFoundError, ValidationError
from models import RoutineDefinition, RoutineItem
from services.routine_definitions import (
    delete_routine_item,
    list_routine_definitions,
    upsert_routine_definitions,
)
from services.routine_grid import build_grid, get_cell
from services.routine_progress import RegisteredRoutineSource
from services.routine_definitions import definition_to_spec

ALL_DAYS = list(range(7))


def cell_items(db, owner_id, reference_date, day, slot):
    definitions = [definition_to_spec(row) for row in list_routine_definitions(db, owner_id)]
    return [item.name for item in get_cell(build_grid(definitions, reference_date), day, slot).items]


class TestUpsert:

    def test_creates_definitions_with_items(self, db_session, owner_id, make_weekly_definition):
        rows = upsert_routine_definitions(db_session, owner_id, [
            make_weekly_definition([1, 3, 5], "morning", ["Stretch", "Water"]),
        ])
        assert len(rows) == 1
        row = rows[0]
        assert row.schedule_type == "weekly"
        assert row.schedule_config == {"days_of_week": [1, 3, 5]}
        assert [item.item_name for item in row.items] == ["Stretch", "Water"]
        assert [item.item_order for item in row.items] == [0, 1]

    def test_same_payload_twice_is_idempotent(self, db_session, owner_id, make_weekly_definition, reference_date):
        payload = [
            make_weekly_definition(ALL_DAYS, "morning", ["Stretch"]),
            make_weekly_definition(ALL_DAYS, "night", ["Read"]),
        ]
        upsert_routine_definitions(db_session, owner_id, payload)
        once = RegisteredRoutineSource(db_session, owner_id).weekly_progress(reference_date)
        ids_once = sorted(str(row.id) for row in list_routine_definitions(db_session, owner_id))
        item_ids_once = sorted(str(item.id) for item in db_session.query(RoutineItem).all())

        upsert_routine_definitions(db_session, owner_id, payload)
        twice = RegisteredRoutineSource(db_session, owner_id).weekly_progress(reference_date)

        assert twice == once
        assert sorted(str(row.id) for row in list_routine_definitions(db_session, owner_id)) == ids_once
        assert sorted(str(item.id) for item in db_session.query(RoutineItem).all()) == item_ids_once

    def test_identity_ignores_day_order(self, db_session, owner_id, make_weekly_definition):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1, 3], "morning", ["A"])])
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([3, 1], "morning", ["B"])])
        rows = list_routine_definitions(db_session, owner_id)
        assert len(rows) == 1
        assert [item.item_name for item in rows[0].items] == ["A", "B"]

    def test_different_slot_is_a_new_definition(self, db_session, owner_id, make_weekly_definition):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["A"])])
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "night", ["A"])])
        assert len(list_routine_definitions(db_session, owner_id)) == 2

    def test_items_are_added_not_replaced(self, db_session, owner_id, make_weekly_definition):
        rows = upsert_routine_definitions(db_session, owner_id, [
            make_weekly_definition([2], "night", ["Read", "Tea"]),
        ])
        read_id = next(item.id for item in rows[0].items if item.item_name == "Read")

        rows = upsert_routine_definitions(db_session, owner_id, [
            make_weekly_definition([2], "night", ["Floss", "read"]),
        ])
        items = {item.item_name: item for item in rows[0].items}
        assert list(items) == ["Read", "Tea", "Floss"]
        assert items["Read"].id == read_id
        assert [item.item_order for item in rows[0].items] == [0, 1, 2]
        assert db_session.query(RoutineItem).count() == 3

    def test_one_item_per_write_accumulates(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["Stretch"])])
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["Water"])])
        assert cell_items(db_session, owner_id, reference_date, 1, "morning") == ["Stretch", "Water"]

    def test_duplicate_names_in_one_payload_kept_once(self, db_session, owner_id, make_weekly_definition):
        rows = upsert_routine_definitions(db_session, owner_id, [
            make_weekly_definition([4], "midday", ["Walk", "walk"]),
        ])
        assert [item.item_name for item in rows[0].items] == ["Walk"]


    def test_updates_name_and_status(self, db_session, owner_id, make_weekly_definition):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([0], "morning", ["A"])])
        upsert_routine_definitions(db_session, owner_id, [
            make_weekly_definition([0], "morning", ["A"], routine_name="Sunday reset", status="archived"),
        ])
        row = list_routine_definitions(db_session, owner_id)[0]
        assert row.routine_name == "Sunday reset"
        assert row.status == "archived"
        assert list_routine_definitions(db_session, owner_id, status="active") == []

    def test_item_attributes_stored(self, db_session, owner_id):
        rows = upsert_routine_definitions(db_session, owner_id, [{
            "routine_name": "Leg day",
            "schedule_type": "weekly",
            "schedule_config": {"days_of_week": [2]},
            "time_of_day": "workout",
            "items": [{
                "item_name": "Squats",
                "item_type": "exercise",
                "habit_classification": "good",
                "sets": 5,
                "reps": 5,
                "weight_kg": 100.0,
                "is_optional": True,
            }],
        }])
        item = rows[0].items[0]
        assert (item.sets, item.reps, item.weight_kg) == (5, 5, 100.0)
        assert item.habit_classification == "good"
        assert item.is_optional is True

    def test_monthly_and_yearly(self, db_session, owner_id):
        rows = upsert_routine_definitions(db_session, owner_id, [
            {
                "routine_name": "Budget",
                "schedule_type": "monthly",
                "schedule_config": {"days_of_month": [1]},
                "time_of_day": "midday",
                "items": [{"item_name": "Review spending"}],
            },
            {
                "routine_name": "Checkup",
                "schedule_type": "yearly",
                "schedule_config": {"dates_of_year": ["03-15"]},
                "time_of_day": None,
                "items": [{"item_name": "Book physical"}],
            },
        ])
        assert [row.schedule_type for row in rows] == ["monthly", "yearly"]
        assert rows[1].time_of_day is None

    def test_owners_are_isolated(self, db_session, owner_id, make_weekly_definition):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["A"])])
        assert list_routine_definitions(db_session, uuid4()) == []


class TestUpsertCellIdentity:
    """Weekly definitions are matched per (weekday, time of day)"""

    def test_single_day_inside_multi_day_definition(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1, 2], "morning", ["Stretch"])])
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["Stretch"])])

        assert cell_items(db_session, owner_id, reference_date, 1, "morning") == ["Stretch"]
        assert cell_items(db_session, owner_id, reference_date, 2, "morning") == ["Stretch"]
        assert len(list_routine_definitions(db_session, owner_id)) == 1

    def test_renaming_one_day_splits_it_off(self, db_session, owner_id, make_weekly_definition):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1, 2], "morning", ["Stretch"])])
        upsert_routine_definitions(db_session, owner_id, [
            make_weekly_definition([1], "morning", ["Stretch"], routine_name="Monday start"),
        ])
        names = {
            tuple(row.schedule_config["days_of_week"]): row.routine_name
            for row in list_routine_definitions(db_session, owner_id)
        }
        assert names == {(1,): "Monday start", (2,): "morning routine"}

    def test_new_item_for_one_day_splits_that_day_off(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1, 2], "morning", ["Stretch"])])
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["Water"])])

        assert cell_items(db_session, owner_id, reference_date, 1, "morning") == ["Stretch", "Water"]
        assert cell_items(db_session, owner_id, reference_date, 2, "morning") == ["Stretch"]
        configs = sorted(row.schedule_config["days_of_week"] for row in list_routine_definitions(db_session, owner_id))
        assert configs == [[1], [2]]

    def test_multi_day_payload_over_single_day_definitions(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "night", ["Read"])])
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1, 2, 3], "night", ["Tea"])])

        assert cell_items(db_session, owner_id, reference_date, 1, "night") == ["Read", "Tea"]
        assert cell_items(db_session, owner_id, reference_date, 2, "night") == ["Tea"]
        assert cell_items(db_session, owner_id, reference_date, 3, "night") == ["Tea"]
        configs = sorted(row.schedule_config["days_of_week"] for row in list_routine_definitions(db_session, owner_id))
        assert configs == [[1], [2, 3]]

    def test_split_leaves_other_days_on_stored_definition(self, db_session, owner_id, make_weekly_definition):
        stored = upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([0, 6], "night", ["Read"])])[0]
        touched = upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([0], "night", ["Tea"])])

        assert len(touched) == 1
        assert touched[0].id != stored.id
        db_session.refresh(stored)
        assert stored.schedule_config == {"days_of_week": [6]}
        assert [item.item_name for item in stored.items] == ["Read"]

    def test_monthly_matched_by_whole_schedule(self, db_session, owner_id):
        def monthly(days, items):
            return {
                "routine_name": "Bills",
                "schedule_type": "monthly",
                "schedule_config": {"days_of_month": days},
                "time_of_day": "midday",
                "items": [{"item_name": name} for name in items],
            }

        upsert_routine_definitions(db_session, owner_id, [monthly([1, 15], ["Pay rent"])])
        upsert_routine_definitions(db_session, owner_id, [monthly([15, 1], ["Check balance"])])
        rows = list_routine_definitions(db_session, owner_id)
        assert len(rows) == 1
        assert [item.item_name for item in rows[0].items] == ["Pay rent", "Check balance"]

class TestUpsertValidation:
    """Invalid payloads are rejected before anything is written"""

    @pytest.mark.parametrize("override", [
        {"schedule_type": "daily"},
        {"schedule_config": {"days_of_month": [1]}},
        {"schedule_config": {"days_of_week": []}},
        {"time_of_day": "evening"},
        {"status": "deleted"},
        {"routine_name": "   "},
        {"items": [{"item_name": "A", "habit_classification": "great"}]},
        {"items": [{"item_name": ""}]},
    ])
    def test_rejected(self, db_session, owner_id, make_weekly_definition, override):
        good = make_weekly_definition([1], "night", ["Read"])
        bad = {**make_weekly_definition([2], "morning", ["A"]), **override}
        with pytest.raises(ValidationError):
            upsert_routine_definitions(db_session, owner_id, [good, bad])
        assert db_session.query(RoutineDefinition).count() == 0


class TestDeleteRoutineItem:

    def test_removes_item_from_single_day_definition(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["Stretch", "Water"])])
        removed = delete_routine_item(db_session, owner_id, 1, "morning", "stretch", reference_date)
        assert removed == 1
        assert cell_items(db_session, owner_id, reference_date, 1, "morning") == ["Water"]

    def test_multi_day_definition_is_split(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1, 3, 5], "morning", ["Stretch", "Water"])])

        delete_routine_item(db_session, owner_id, 3, "morning", "Stretch", reference_date)

        assert cell_items(db_session, owner_id, reference_date, 3, "morning") == ["Water"]
        assert cell_items(db_session, owner_id, reference_date, 1, "morning") == ["Stretch", "Water"]
        assert cell_items(db_session, owner_id, reference_date, 5, "morning") == ["Stretch", "Water"]

        configs = sorted(row.schedule_config["days_of_week"] for row in list_routine_definitions(db_session, owner_id))
        assert configs == [[1, 5], [3]]

    def test_removing_last_item_leaves_slot_empty(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([0], "night", ["Read"])])
        delete_routine_item(db_session, owner_id, 0, "night", "Read", reference_date)

        progress = RegisteredRoutineSource(db_session, owner_id).weekly_progress(reference_date)
        assert progress.days[0].night.status == "empty"

    def test_removes_from_every_matching_definition(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [
            make_weekly_definition([3, 4], "midday", ["Walk", "Lunch"]),
            {
                "routine_name": "Mid-month",
                "schedule_type": "monthly",
                "schedule_config": {"days_of_month": [10]},
                "time_of_day": "midday",
                "items": [{"item_name": "Walk"}],
            },
        ])
        # 2024-01-10 is both a Wednesday and the 10th
        removed = delete_routine_item(db_session, owner_id, 3, "midday", "Walk", reference_date)
        assert removed == 2
        assert cell_items(db_session, owner_id, reference_date, 3, "midday") == ["Lunch"]
        assert cell_items(db_session, owner_id, reference_date, 4, "midday") == ["Walk", "Lunch"]

    def test_monthly_definition_matched_by_concrete_date(self, db_session, owner_id, reference_date):
        upsert_routine_definitions(db_session, owner_id, [{
            "routine_name": "Mid-month",
            "schedule_type": "monthly",
            "schedule_config": {"days_of_month": [10]},
            "time_of_day": "midday",
            "items": [{"item_name": "Pay rent"}, {"item_name": "Water plants"}],
        }])
        # reference_date (2024-01-10) is the Wednesday of its week
        delete_routine_item(db_session, owner_id, 3, "midday", "Pay rent", reference_date)
        row = list_routine_definitions(db_session, owner_id)[0]
        assert [item.item_name for item in row.items] == ["Water plants"]

    def test_no_match_is_not_found(self, db_session, owner_id, make_weekly_definition, reference_date):
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["Stretch"])])
        with pytest.raises(NotFoundError):
            delete_routine_item(db_session, owner_id, 1, "morning", "Meditate", reference_date)
        with pytest.raises(NotFoundError):
            delete_routine_item(db_session, owner_id, 2, "morning", "Stretch", reference_date)

    def test_invalid_selector(self, db_session, owner_id, reference_date):
        with pytest.raises(ValidationError):
            delete_routine_item(db_session, owner_id, 7, "morning", "Stretch", reference_date)
        with pytest.raises(ValidationError):
            delete_routine_item(db_session, owner_id, 1, "afternoon", "Stretch", reference_date)
