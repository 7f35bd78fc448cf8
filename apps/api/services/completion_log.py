"""
Routine Completion Log

Records that an owner did a routine item on a given date. This is the
day-to-day tracking log; it does not feed the weekly progress grid, which
only cares whether items are defined.
"""
from datetime import date
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from core.exceptions import NotFoundError, ValidationError
from models import RoutineCompletion, RoutineDefinition, RoutineItem

logger = logging.getLogger(__name__)


def log_completion(
    db: Session,
    owner_id: UUID,
    routine_item_id: UUID,
    completion_date: Optional[date] = None,
) -> RoutineCompletion:
    """Log a completion for an item the owner owns. Defaults to today."""
    item = (
        db.query(RoutineItem)
        .join(RoutineDefinition, RoutineItem.routine_id == RoutineDefinition.id)
        .filter(RoutineItem.id == routine_item_id, RoutineDefinition.owner_id == owner_id)
        .first()
    )
    if item is None:
        raise NotFoundError("Routine item", str(routine_item_id))

    completion = RoutineCompletion(
        routine_item_id=item.id,
        owner_id=owner_id,
        completion_date=completion_date or date.today(),
    )
    db.add(completion)
    db.commit()

    logger.info(
        f"Completion logged for item {item.id} on {completion.completion_date}",
        extra={"extra_fields": {"owner_id": str(owner_id), "routine_item_id": str(item.id)}},
    )
    return completion


def list_completions(
    db: Session,
    owner_id: UUID,
    on_date: Optional[date] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> List[RoutineCompletion]:
    """
    Completions for an owner, newest first.

    Filter by a single `on_date` or by an inclusive `start_date`..`end_date`
    range (both bounds required together).
    """
    if on_date is not None and (start_date is not None or end_date is not None):
        raise ValidationError("Use either date or start_date/end_date, not both", field="date")
    if (start_date is None) != (end_date is None):
        raise ValidationError("start_date and end_date must be given together", field="start_date")
    if start_date is not None and start_date > end_date:
        raise ValidationError("start_date must be on or before end_date", field="start_date")

    query = db.query(RoutineCompletion).filter(RoutineCompletion.owner_id == owner_id)
    if on_date is not None:
        query = query.filter(RoutineCompletion.completion_date == on_date)
    elif start_date is not None:
        query = query.filter(
            RoutineCompletion.completion_date >= start_date,
            RoutineCompletion.completion_date <= end_date,
        )
    return query.order_by(RoutineCompletion.completed_at.desc(), RoutineCompletion.id).all()
