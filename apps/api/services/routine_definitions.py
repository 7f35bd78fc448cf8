"""
Routine Definitions Service

Writes for registered owners' recurring routine definitions:
- idempotent, additive merge of definitions keyed by (weekday, time_of_day)
- item deletion by (day, time_of_day, item_name)
- mapping rows to the canonical in-memory types used by the grid
"""
from datetime import date, datetime, timezone
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Tuple
from uuid import UUID
import logging

from sqlalchemy.orm import Session, selectinload

from core.events import emit, EVENT_ROUTINE_DEFINITIONS_UPDATED
from core.exceptions import NotFoundError, ValidationError
from models import RoutineDefinition, RoutineItem
from services.recurrence import Schedule, WeeklySchedule, build_schedule, matches, schedule_or_none, week_dates
from services.routine_types import (
    DAY_NAMES,
    TIME_SLOTS,
    HabitClassification,
    RoutineDefinitionSpec,
    RoutineItemSpec,
    RoutineStatus,
)

logger = logging.getLogger(__name__)

ROUTINE_STATUSES = {status.value for status in RoutineStatus}
CLASSIFICATIONS = {classification.value for classification in HabitClassification}

ITEM_ATTRIBUTES = (
    "duration_minutes",
    "sets",
    "reps",
    "weight_kg",
    "distance_km",
    "calories",
    "serving_size",
    "notes",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def item_name_key(name: str) -> str:
    return (name or "").strip().casefold()


def validate_time_of_day(time_of_day: Optional[str], allow_none: bool = True) -> Optional[str]:
    if time_of_day is None and allow_none:
        return None
    if time_of_day not in TIME_SLOTS:
        raise ValidationError(f"time_of_day must be one of: {', '.join(TIME_SLOTS)}", field="time_of_day")
    return time_of_day


def validate_day_of_week(day: Any) -> int:
    if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
        raise ValidationError("day_of_week must be between 0 (Sunday) and 6 (Saturday)", field="day_of_week")
    return day


def validate_item(payload: Dict[str, Any], index: int) -> Dict[str, Any]:
    """Normalize one item payload (column-named keys) or raise ValidationError."""
    name = (payload.get("item_name") or "").strip()
    if not name:
        raise ValidationError("item_name is required", field="item_name")

    classification = payload.get("habit_classification") or HabitClassification.NEUTRAL.value
    if classification not in CLASSIFICATIONS:
        raise ValidationError(
            f"habit_classification must be one of: {', '.join(sorted(CLASSIFICATIONS))}",
            field="habit_classification",
        )

    order = payload.get("item_order")
    cleaned = {
        "item_name": name,
        "item_type": (payload.get("item_type") or "habit").strip() or "habit",
        "habit_classification": classification,
        "item_order": order if order is not None else index,
        "is_optional": bool(payload.get("is_optional", False)),
    }
    for attribute in ITEM_ATTRIBUTES:
        cleaned[attribute] = payload.get(attribute)
    return cleaned


def validate_definition(payload: Dict[str, Any]) -> Tuple[Dict[str, Any], Schedule]:
    routine_name = (payload.get("routine_name") or "").strip()
    if not routine_name:
        raise ValidationError("routine_name is required", field="routine_name")

    status = payload.get("status") or RoutineStatus.ACTIVE.value
    if status not in ROUTINE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(ROUTINE_STATUSES))}", field="status")

    schedule = build_schedule(payload.get("schedule_type"), payload.get("schedule_config"))
    cleaned = {
        "routine_name": routine_name,
        "description": payload.get("description"),
        "status": status,
        "time_of_day": validate_time_of_day(payload.get("time_of_day")),
        "items": [validate_item(item, index) for index, item in enumerate(payload.get("items") or [])],
    }
    return cleaned, schedule


def item_to_spec(item: RoutineItem) -> RoutineItemSpec:
    return RoutineItemSpec(
        id=str(item.id),
        name=item.item_name,
        item_type=item.item_type,
        classification=item.habit_classification,
        order=item.item_order,
        is_optional=item.is_optional,
        duration_minutes=item.duration_minutes,
        sets=item.sets,
        reps=item.reps,
        weight_kg=item.weight_kg,
        distance_km=item.distance_km,
        calories=item.calories,
    )


def definition_to_spec(row: RoutineDefinition) -> RoutineDefinitionSpec:
    return RoutineDefinitionSpec(
        id=str(row.id),
        owner_id=str(row.owner_id),
        routine_name=row.routine_name,
        schedule=schedule_or_none(row.schedule_type, row.schedule_config),
        time_of_day=row.time_of_day,
        status=row.status,
        items=[item_to_spec(item) for item in row.items],
    )


def list_routine_definitions(db: Session, owner_id: UUID, status: Optional[str] = None) -> List[RoutineDefinition]:
    """Owner's definitions in creation order, items eager-loaded."""
    query = db.query(RoutineDefinition).options(selectinload(RoutineDefinition.items)).filter(
        RoutineDefinition.owner_id == owner_id
    )
    if status is not None:
        if status not in ROUTINE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(ROUTINE_STATUSES))}", field="status")
        query = query.filter(RoutineDefinition.status == status)
    return query.order_by(RoutineDefinition.created_at, RoutineDefinition.id).all()


def _merge_items(row: RoutineDefinition, items: Sequence[Dict[str, Any]]) -> None:
    """
    Add payload items to row.items.

    Stored items are kept as they are; a payload item is appended only when
    no item with the same name (case-insensitive) exists, so re-sending a
    payload changes nothing. Removal goes through delete_routine_item.
    """
    existing = {item_name_key(item.item_name) for item in row.items}
    orders = [item.item_order for item in row.items if item.item_order is not None]
    base = max(orders) + 1 if orders else 0

    for payload in items:
        key = item_name_key(payload["item_name"])
        if key in existing:
            continue
        item = RoutineItem(**payload)
        item.item_order = base + payload["item_order"]
        row.items.append(item)
        existing.add(key)


def _changes_row(row: RoutineDefinition, cleaned: Dict[str, Any]) -> bool:
    """Whether merging `cleaned` into row would alter it."""
    names = {item_name_key(item.item_name) for item in row.items}
    return (
        any(item_name_key(payload["item_name"]) not in names for payload in cleaned["items"])
        or row.routine_name != cleaned["routine_name"]
        or row.status != cleaned["status"]
        or (cleaned["description"] is not None and row.description != cleaned["description"])
    )


def _weekly_schedule(row: RoutineDefinition) -> Optional[WeeklySchedule]:
    schedule = schedule_or_none(row.schedule_type, row.schedule_config)
    return schedule if isinstance(schedule, WeeklySchedule) else None


def _weekly_targets(
    db: Session,
    owner_id: UUID,
    rows: List[RoutineDefinition],
    schedule: WeeklySchedule,
    cleaned: Dict[str, Any],
    now: datetime,
) -> List[RoutineDefinition]:
    """
    Rows that hold exactly the (weekday, time_of_day) cells of a weekly payload.

    Each payload day goes to the first stored weekly row already covering it.
    A row that also covers days outside the payload has the shared days
    split off into their own row, unless the payload would not change it;
    days nobody covers get a new row.
    """
    time_of_day = cleaned["time_of_day"]
    holders: Dict[int, RoutineDefinition] = {}
    for day in sorted(schedule.days_of_week):
        for row in rows:
            current = _weekly_schedule(row)
            if row.time_of_day == time_of_day and current is not None and day in current.days_of_week:
                holders[day] = row
                break

    targets = []
    for row in dict.fromkeys(holders.values()):
        current = _weekly_schedule(row)
        days = frozenset(day for day, holder in holders.items() if holder is row)
        if current.days_of_week - days and _changes_row(row, cleaned):
            row = _split_days_off(db, row, current, days, list(row.items))
            rows.append(row)
        targets.append(row)

    uncovered = schedule.days_of_week - set(holders)
    if uncovered:
        row = RoutineDefinition(
            owner_id=owner_id,
            schedule_type=WeeklySchedule.schedule_type,
            schedule_config=WeeklySchedule(days_of_week=frozenset(uncovered)).to_config(),
            time_of_day=time_of_day,
            created_at=now,
        )
        db.add(row)
        rows.append(row)
        targets.append(row)
    return targets


def _exact_target(
    db: Session,
    owner_id: UUID,
    rows: List[RoutineDefinition],
    schedule: Schedule,
    time_of_day: Optional[str],
    now: datetime,
) -> RoutineDefinition:
    for row in rows:
        if row.time_of_day == time_of_day and schedule_or_none(row.schedule_type, row.schedule_config) == schedule:
            return row
    row = RoutineDefinition(
        owner_id=owner_id,
        schedule_type=schedule.schedule_type,
        schedule_config=schedule.to_config(),
        time_of_day=time_of_day,
        created_at=now,
    )
    db.add(row)
    rows.append(row)
    return row


def merge_routine_definitions(db: Session, owner_id: UUID, definitions: Sequence[Dict[str, Any]]) -> List[RoutineDefinition]:
    """
    Merge definitions into the owner's set without committing.

    Weekly definitions are identified per (weekday, time_of_day) cell: a
    payload for a day an existing weekly definition already covers merges
    into that definition (split off first when it spans other days too).
    Monthly and yearly definitions are identified by schedule plus
    time_of_day. Matched rows take the payload's name and status; items are
    merged additively by name. Everything is validated before the first
    write, so a bad payload leaves the store untouched.
    """
    validated = [validate_definition(payload) for payload in definitions]
    rows = list_routine_definitions(db, owner_id)

    now = _utcnow()
    results: List[RoutineDefinition] = []
    for cleaned, schedule in validated:
        if isinstance(schedule, WeeklySchedule):
            targets = _weekly_targets(db, owner_id, rows, schedule, cleaned, now)
        else:
            targets = [_exact_target(db, owner_id, rows, schedule, cleaned["time_of_day"], now)]

        for row in targets:
            row.routine_name = cleaned["routine_name"]
            if cleaned["description"] is not None:
                row.description = cleaned["description"]
            row.status = cleaned["status"]
            row.updated_at = now
            _merge_items(row, cleaned["items"])
            if row not in results:
                results.append(row)

    db.flush()
    return results


def upsert_routine_definitions(db: Session, owner_id: UUID, definitions: Sequence[Dict[str, Any]]) -> List[RoutineDefinition]:
    """Idempotent merge of definitions for an owner; commits."""
    rows = merge_routine_definitions(db, owner_id, definitions)
    db.commit()

    logger.info(
        f"Upserted {len(rows)} routine definitions for owner {owner_id}",
        extra={"extra_fields": {"owner_id": str(owner_id), "count": len(rows)}},
    )
    emit(EVENT_ROUTINE_DEFINITIONS_UPDATED, owner_id=str(owner_id))
    return rows


def _copy_item(item: RoutineItem) -> RoutineItem:
    copy = RoutineItem(
        item_name=item.item_name,
        item_type=item.item_type,
        habit_classification=item.habit_classification,
        item_order=item.item_order,
        is_optional=item.is_optional,
    )
    for attribute in ITEM_ATTRIBUTES:
        setattr(copy, attribute, getattr(item, attribute))
    return copy


def _split_days_off(
    db: Session,
    row: RoutineDefinition,
    schedule: WeeklySchedule,
    days: FrozenSet[int],
    kept_items: List[RoutineItem],
) -> RoutineDefinition:
    """Move some weekdays of a weekly definition into a definition of their own."""
    now = _utcnow()
    row.schedule_config = WeeklySchedule(days_of_week=schedule.days_of_week - days).to_config()
    row.updated_at = now

    split = RoutineDefinition(
        owner_id=row.owner_id,
        routine_name=row.routine_name,
        description=row.description,
        schedule_type=WeeklySchedule.schedule_type,
        schedule_config=WeeklySchedule(days_of_week=days).to_config(),
        time_of_day=row.time_of_day,
        status=row.status,
        created_at=now,
        updated_at=now,
        items=[_copy_item(item) for item in kept_items],
    )
    db.add(split)
    return split


def delete_routine_item(
    db: Session,
    owner_id: UUID,
    day_of_week: int,
    time_of_day: str,
    item_name: str,
    reference_date: Optional[date] = None,
) -> int:
    """
    Remove an item from the (day, time_of_day) cell of the reference week.

    Every active definition contributing to that cell loses items with that
    name (case-insensitive). A weekly definition that also covers other days
    is split so only this day changes. Returns the number of items removed;
    raises NotFoundError when nothing matched.
    """
    validate_day_of_week(day_of_week)
    validate_time_of_day(time_of_day, allow_none=False)
    target = week_dates(reference_date or date.today())[day_of_week]
    name_key = item_name_key(item_name)

    rows = [
        row for row in list_routine_definitions(db, owner_id, status=RoutineStatus.ACTIVE.value)
        if row.time_of_day == time_of_day
    ]

    removed = 0
    for row in rows:
        schedule = schedule_or_none(row.schedule_type, row.schedule_config)
        if not matches(schedule, target):
            continue
        doomed = [item for item in row.items if item_name_key(item.item_name) == name_key]
        if not doomed:
            continue

        if isinstance(schedule, WeeklySchedule) and len(schedule.days_of_week) > 1:
            kept = [item for item in row.items if item not in doomed]
            _split_days_off(db, row, schedule, frozenset({day_of_week}), kept)
        else:
            row.items = [item for item in row.items if item not in doomed]
            row.updated_at = _utcnow()
        removed += len(doomed)

    if not removed:
        raise NotFoundError("Routine item", f"{DAY_NAMES[day_of_week]} {time_of_day}: {item_name}")

    db.commit()
    logger.info(
        f"Removed {removed} '{item_name}' item(s) from {DAY_NAMES[day_of_week]} {time_of_day} for owner {owner_id}"
    )
    emit(EVENT_ROUTINE_DEFINITIONS_UPDATED, owner_id=str(owner_id))
    return removed
