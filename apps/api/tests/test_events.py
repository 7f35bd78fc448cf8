"""
Tests for the in-process event registry and the events routine writes emit.
"""
import pytest
from core.events import (
    emit,
    subscribe,
    unsubscribe,
    EVENT_ROUTINE_DEFINITIONS_UPDATED,
    EVENT_ROUTINE_DOCUMENT_DELETED,
    EVENT_ROUTINE_DOCUMENT_DRAFT_SAVED,
)
from core.exceptions import NotFoundError
from services.guest_sessions import delete_guest_routine_item, set_guest_sleep_routine, upsert_guest_routines
from services.routine_definitions import upsert_routine_definitions
from services.routine_versioning import create_or_replace_draft, delete_routine_document


@pytest.fixture
def recorder():
    """Subscribe a recording handler to an event for one test."""
    subscriptions = []

    def _record(event_name):
        calls = []

        def handler(**kwargs):
            calls.append(kwargs)

        subscribe(event_name, handler)
        subscriptions.append((event_name, handler))
        return calls

    yield _record
    for event_name, handler in subscriptions:
        unsubscribe(event_name, handler)


class TestRegistry:

    def test_failing_handler_does_not_propagate(self, recorder):
        def broken(**kwargs):
            raise RuntimeError("boom")

        subscribe("test.event", broken)
        calls = recorder("test.event")
        try:
            emit("test.event", value=1)
        finally:
            unsubscribe("test.event", broken)
        assert calls == [{"value": 1}]

    def test_unsubscribed_handler_not_called(self):
        calls = []

        def handler(**kwargs):
            calls.append(kwargs)

        subscribe("test.other", handler)
        unsubscribe("test.other", handler)
        emit("test.other", value=1)
        assert calls == []


class TestRoutineEvents:

    def test_draft_saved_and_deleted(self, db_session, owner_id, recorder):
        saved = recorder(EVENT_ROUTINE_DOCUMENT_DRAFT_SAVED)
        deleted = recorder(EVENT_ROUTINE_DOCUMENT_DELETED)

        draft = create_or_replace_draft(db_session, owner_id, "routine")
        delete_routine_document(db_session, owner_id, draft.id)

        assert saved == [{"owner_id": str(owner_id), "document_id": str(draft.id), "version": 1}]
        assert deleted == [{"owner_id": str(owner_id), "document_id": str(draft.id), "version": 1}]

    def test_definitions_updated(self, db_session, owner_id, recorder, make_weekly_definition):
        updated = recorder(EVENT_ROUTINE_DEFINITIONS_UPDATED)
        upsert_routine_definitions(db_session, owner_id, [make_weekly_definition([1], "morning", ["A"])])
        assert updated == [{"owner_id": str(owner_id)}]

    def test_guest_writes_carry_session_scope(self, db_session, recorder):
        updated = recorder(EVENT_ROUTINE_DEFINITIONS_UPDATED)

        upsert_guest_routines(db_session, "sess-1", [{
            "routine_name": "Morning",
            "day_of_week": 1,
            "time_of_day": "morning",
            "items": [{"item_name": "Stretch"}, {"item_name": "Water"}],
        }])
        delete_guest_routine_item(db_session, "sess-1", 1, "morning", "Water")
        set_guest_sleep_routine(db_session, "sess-1", {"night": {"bedtime": "10 PM"}})

        assert updated == [{"session_id": "sess-1"}] * 3

    def test_failed_guest_write_emits_nothing(self, db_session, recorder):
        updated = recorder(EVENT_ROUTINE_DEFINITIONS_UPDATED)
        with pytest.raises(NotFoundError):
            delete_guest_routine_item(db_session, "missing", 1, "morning", "Water")
        assert updated == []
