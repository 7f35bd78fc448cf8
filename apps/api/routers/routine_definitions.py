"""
Routine Definitions API Router

Recurring routine definitions for a registered owner, the weekly progress
derived from them, and the item completion log.
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional
from datetime import date
from core.database import get_db
from schemas import (
    RoutineCompletionCreate,
    RoutineCompletionListResponse,
    RoutineCompletionResponse,
    RoutineDefinitionListResponse,
    RoutineDefinitionsUpsert,
    RoutineItemDeleteResponse,
    WeeklyProgressResponse,
)
from services.completion_log import list_completions, log_completion
from services.routine_definitions import (
    delete_routine_item,
    list_routine_definitions,
    upsert_routine_definitions,
)
from services.routine_progress import RegisteredRoutineSource

router = APIRouter(prefix="/v1/routines/{owner_id}", tags=["routine-definitions"])


@router.get("/definitions", response_model=RoutineDefinitionListResponse)
def get_definitions(
    owner_id: UUID,
    status: Optional[str] = Query(None, description="pending, active or archived"),
    db: Session = Depends(get_db)
):
    return {"definitions": list_routine_definitions(db, owner_id, status)}


@router.put("/definitions", response_model=RoutineDefinitionListResponse)
def put_definitions(
    owner_id: UUID,
    body: RoutineDefinitionsUpsert,
    db: Session = Depends(get_db)
):
    """
    Upsert routine definitions.

    Definitions are matched by schedule and time of day; sending the same
    payload twice leaves the owner's routines unchanged.
    """
    upsert_routine_definitions(db, owner_id, [definition.model_dump() for definition in body.definitions])
    return {"definitions": list_routine_definitions(db, owner_id)}


@router.delete("/items", response_model=RoutineItemDeleteResponse)
def delete_item(
    owner_id: UUID,
    day_of_week: int = Query(..., ge=0, le=6),
    time_of_day: str = Query(...),
    item_name: str = Query(..., min_length=1),
    week_of: Optional[date] = Query(None, description="Any date in the target week; defaults to today"),
    db: Session = Depends(get_db)
):
    removed = delete_routine_item(db, owner_id, day_of_week, time_of_day, item_name, reference_date=week_of)
    return {"removed": removed}


@router.get("/progress", response_model=WeeklyProgressResponse)
def get_weekly_progress(
    owner_id: UUID,
    week_of: Optional[date] = Query(None, description="Any date in the target week; defaults to today"),
    db: Session = Depends(get_db)
):
    """
    Weekly onboarding progress.

    Every (day, slot) is complete, empty or missing; the week is complete
    when all seven mornings and nights are complete.
    """
    return asdict(RegisteredRoutineSource(db, owner_id).weekly_progress(week_of))


@router.post("/completions", response_model=RoutineCompletionResponse, status_code=201)
def create_completion(
    owner_id: UUID,
    body: RoutineCompletionCreate,
    db: Session = Depends(get_db)
):
    return log_completion(db, owner_id, body.routine_item_id, body.completion_date)


@router.get("/completions", response_model=RoutineCompletionListResponse)
def get_completions(
    owner_id: UUID,
    on_date: Optional[date] = Query(None, alias="date"),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    return {"completions": list_completions(db, owner_id, on_date, start_date, end_date)}
