"""
Guest Onboarding Sessions

Guests build routines before they have an account. Their routines live on a
guest_onboarding_session row as a JSON array, one entry per
(day_of_week, time_of_day), plus an optional sleep routine. When the guest
registers, migrate_guest_session moves the routines into normalized
definitions for the new owner.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from core.events import emit, EVENT_ROUTINE_DEFINITIONS_UPDATED
from core.exceptions import ConflictError, NotFoundError, ValidationError
from models import GuestOnboardingSession
from services.recurrence import WeeklySchedule
from services.routine_definitions import (
    item_name_key,
    merge_routine_definitions,
    validate_day_of_week,
    validate_item,
    validate_time_of_day,
)
from services.routine_types import DAY_NAMES, RoutineStatus
from services.sleep_routine import ensure_sleep_routine_shape

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    session_id: str
    owner_id: UUID
    routines_migrated: int
    items_migrated: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_guest_session(db: Session, session_id: str) -> Optional[GuestOnboardingSession]:
    return db.query(GuestOnboardingSession).filter(
        GuestOnboardingSession.session_id == session_id
    ).first()


def _require_session(db: Session, session_id: str) -> GuestOnboardingSession:
    session = get_guest_session(db, session_id)
    if session is None:
        raise NotFoundError("Guest session", session_id)
    return session


def _writable_session(db: Session, session_id: str) -> GuestOnboardingSession:
    session = get_guest_session(db, session_id)
    if session is None:
        if not (session_id or "").strip():
            raise ValidationError("session_id is required", field="session_id")
        session = GuestOnboardingSession(session_id=session_id, routines=[])
        db.add(session)
    elif session.migrated:
        raise ConflictError("Guest session has already been migrated")
    return session


def validate_guest_routine(payload: Dict[str, Any]) -> Dict[str, Any]:
    routine_name = (payload.get("routine_name") or "").strip()
    if not routine_name:
        raise ValidationError("routine_name is required", field="routine_name")

    day = validate_day_of_week(payload.get("day_of_week"))
    time_of_day = validate_time_of_day(payload.get("time_of_day"), allow_none=False)
    return {
        "temp_routine_id": payload.get("temp_routine_id") or f"guest-{day}-{time_of_day}",
        "routine_name": routine_name,
        "description": payload.get("description"),
        "day_of_week": day,
        "time_of_day": time_of_day,
        "items": [validate_item(item, index) for index, item in enumerate(payload.get("items") or [])],
    }


def _merge_guest_items(stored: List[Dict[str, Any]], new_items: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Stored items plus any new item whose name is not already there."""
    combined = list(stored)
    names = {item_name_key(item.get("item_name")) for item in combined}
    orders = [item.get("item_order") for item in combined if isinstance(item.get("item_order"), int)]
    base = max(orders) + 1 if orders else 0
    for item in new_items:
        key = item_name_key(item["item_name"])
        if key not in names:
            combined.append({**item, "item_order": base + item["item_order"]})
            names.add(key)
    return combined


def upsert_guest_routines(db: Session, session_id: str, routines: Sequence[Dict[str, Any]]) -> GuestOnboardingSession:
    """
    Save guest routines, creating the session on first write.

    An entry for a (day_of_week, time_of_day) that is already stored adds
    its items to the stored entry, skipping names already present; other
    stored entries are left alone.
    """
    validated = [validate_guest_routine(payload) for payload in routines]
    session = _writable_session(db, session_id)

    merged = {}
    for entry in session.routines or []:
        merged[(entry.get("day_of_week"), entry.get("time_of_day"))] = entry
    for entry in validated:
        key = (entry["day_of_week"], entry["time_of_day"])
        stored = merged.get(key, {**entry, "items": []})
        merged[key] = {**stored, "items": _merge_guest_items(stored.get("items") or [], entry["items"])}

    # Assign a new list so the JSON column is flagged dirty
    session.routines = list(merged.values())
    session.updated_at = _utcnow()
    db.commit()

    logger.info(f"Guest session {session_id} saved {len(validated)} routine(s)")
    emit(EVENT_ROUTINE_DEFINITIONS_UPDATED, session_id=session_id)
    return session


def set_guest_sleep_routine(db: Session, session_id: str, sleep_routine: Dict[str, Any]) -> GuestOnboardingSession:
    session = _writable_session(db, session_id)
    session.sleep_routine = ensure_sleep_routine_shape(sleep_routine)
    session.updated_at = _utcnow()
    db.commit()
    emit(EVENT_ROUTINE_DEFINITIONS_UPDATED, session_id=session_id)
    return session


def delete_guest_routine_item(db: Session, session_id: str, day_of_week: int, time_of_day: str, item_name: str) -> int:
    """Drop items named `item_name` from one guest cell. Returns the number removed."""
    validate_day_of_week(day_of_week)
    validate_time_of_day(time_of_day, allow_none=False)
    session = _require_session(db, session_id)
    if session.migrated:
        raise ConflictError("Guest session has already been migrated")

    name_key = item_name_key(item_name)
    removed = 0
    routines = []
    for entry in session.routines or []:
        if entry.get("day_of_week") == day_of_week and entry.get("time_of_day") == time_of_day:
            items = entry.get("items") or []
            kept = [item for item in items if item_name_key(item.get("item_name")) != name_key]
            removed += len(items) - len(kept)
            entry = {**entry, "items": kept}
        routines.append(entry)

    if not removed:
        raise NotFoundError("Routine item", f"{DAY_NAMES[day_of_week]} {time_of_day}: {item_name}")

    session.routines = routines
    session.updated_at = _utcnow()
    db.commit()
    emit(EVENT_ROUTINE_DEFINITIONS_UPDATED, session_id=session_id)
    return removed


def guest_routine_to_definition(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Definition payload for one guest routine: weekly on its single day."""
    return {
        "routine_name": entry.get("routine_name"),
        "description": entry.get("description"),
        "schedule_type": WeeklySchedule.schedule_type,
        "schedule_config": {"days_of_week": [entry.get("day_of_week")]},
        "time_of_day": entry.get("time_of_day"),
        "status": RoutineStatus.ACTIVE.value,
        "items": list(entry.get("items") or []),
    }


def migrate_guest_session(db: Session, session_id: str, owner_id: UUID) -> MigrationResult:
    """
    Move a guest's routines to a registered owner.

    The session is claimed with a conditional update so two concurrent
    migrations cannot both succeed; the claim and the new definitions
    commit together. Re-running against an already migrated session
    raises ConflictError.
    """
    session = _require_session(db, session_id)
    routines = [entry for entry in (session.routines or []) if isinstance(entry, dict)]
    definitions = [guest_routine_to_definition(entry) for entry in routines]

    claimed = db.query(GuestOnboardingSession).filter(
        GuestOnboardingSession.id == session.id,
        GuestOnboardingSession.migrated.is_(False),
    ).update(
        {
            GuestOnboardingSession.migrated: True,
            GuestOnboardingSession.migrated_to_owner_id: owner_id,
            GuestOnboardingSession.updated_at: _utcnow(),
        },
        synchronize_session=False,
    )
    if claimed != 1:
        db.rollback()
        raise ConflictError("Guest session has already been migrated")

    try:
        rows = merge_routine_definitions(db, owner_id, definitions)
        db.commit()
    except Exception:
        db.rollback()
        raise
    # The claim was a bulk update; reload on next access
    db.expire(session)

    result = MigrationResult(
        session_id=session_id,
        owner_id=owner_id,
        routines_migrated=len(rows),
        items_migrated=sum(len(definition["items"]) for definition in definitions),
    )
    logger.info(
        f"Migrated guest session {session_id} to owner {owner_id}: "
        f"{result.routines_migrated} routines, {result.items_migrated} items",
        extra={"extra_fields": {"session_id": session_id, "owner_id": str(owner_id)}},
    )
    emit(EVENT_ROUTINE_DEFINITIONS_UPDATED, owner_id=str(owner_id))
    return result
