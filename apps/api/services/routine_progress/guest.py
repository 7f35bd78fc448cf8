"""
Routine definitions embedded in a guest onboarding session.

A guest routine is always one weekday and one slot:

    {
        "temp_routine_id": "tmp-1",
        "routine_name": "Morning Routine",
        "day_of_week": 1,
        "time_of_day": "morning",
        "items": [{"item_name": "Stretch", "item_order": 0}, ...]
    }

so each maps to an active weekly definition on that single day. Guest
routines have no pending or archived state.
"""

from typing import Any, Dict, List

from sqlalchemy.orm import Session

from models import GuestOnboardingSession
from services.recurrence import WeeklySchedule
from services.routine_types import HabitClassification, RoutineDefinitionSpec, RoutineItemSpec, RoutineStatus

from .base import RoutineDefinitionSource


def guest_routine_key(entry: Dict[str, Any]) -> str:
    return f"guest-{entry.get('day_of_week')}-{entry.get('time_of_day')}"


def guest_item_to_spec(item: Dict[str, Any], index: int) -> RoutineItemSpec:
    order = item.get("item_order")
    return RoutineItemSpec(
        name=item.get("item_name") or "",
        item_type=item.get("item_type") or "habit",
        classification=item.get("habit_classification") or HabitClassification.NEUTRAL.value,
        order=order if isinstance(order, int) else index,
        is_optional=bool(item.get("is_optional", False)),
        duration_minutes=item.get("duration_minutes"),
        sets=item.get("sets"),
        reps=item.get("reps"),
        weight_kg=item.get("weight_kg"),
        distance_km=item.get("distance_km"),
        calories=item.get("calories"),
    )


def guest_routine_to_spec(session_id: str, entry: Dict[str, Any]) -> RoutineDefinitionSpec:
    day = entry.get("day_of_week")
    valid_day = isinstance(day, int) and not isinstance(day, bool) and 0 <= day <= 6
    return RoutineDefinitionSpec(
        id=entry.get("temp_routine_id") or guest_routine_key(entry),
        owner_id=session_id,
        routine_name=entry.get("routine_name") or "",
        schedule=WeeklySchedule(days_of_week=frozenset({day})) if valid_day else None,
        time_of_day=entry.get("time_of_day"),
        status=RoutineStatus.ACTIVE.value,
        items=[
            guest_item_to_spec(item, index)
            for index, item in enumerate(entry.get("items") or [])
            if isinstance(item, dict)
        ],
    )


class GuestRoutineSource(RoutineDefinitionSource):

    def __init__(self, db: Session, session_id: str):
        self.db = db
        self.session_id = session_id

    @property
    def source_name(self) -> str:
        return "guest"

    def load_definitions(self) -> List[RoutineDefinitionSpec]:
        session = self.db.query(GuestOnboardingSession).filter(
            GuestOnboardingSession.session_id == self.session_id
        ).first()
        if session is None:
            return []
        return [
            guest_routine_to_spec(self.session_id, entry)
            for entry in (session.routines or [])
            if isinstance(entry, dict)
        ]
