"""
Guest Sessions API Router

Onboarding for visitors without an account. Routines and the sleep routine
are stored on the guest session and scored with the same progress rules as
registered owners.
"""
from dataclasses import asdict
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional
from datetime import date
from core.database import get_db
from schemas import (
    GuestMigrationRequest,
    GuestMigrationResponse,
    GuestProgressResponse,
    GuestRoutinesResponse,
    GuestRoutinesUpsert,
    RoutineItemDeleteResponse,
    SleepRoutineResponse,
    SleepRoutineUpdate,
)
from services.guest_sessions import (
    delete_guest_routine_item,
    get_guest_session,
    migrate_guest_session,
    set_guest_sleep_routine,
    upsert_guest_routines,
)
from services.routine_progress import GuestRoutineSource
from services.sleep_routine import calculate_sleep_routine_progress

router = APIRouter(prefix="/v1/guest/sessions/{session_id}", tags=["guest-sessions"])


@router.put("/routines", response_model=GuestRoutinesResponse)
def put_guest_routines(
    session_id: str,
    body: GuestRoutinesUpsert,
    db: Session = Depends(get_db)
):
    """Save routines by (day_of_week, time_of_day); the session is created on first write."""
    session = upsert_guest_routines(db, session_id, [routine.model_dump() for routine in body.routines])
    return {"session_id": session.session_id, "routines": session.routines}


@router.put("/sleep-routine", response_model=SleepRoutineResponse)
def put_sleep_routine(
    session_id: str,
    body: SleepRoutineUpdate,
    db: Session = Depends(get_db)
):
    session = set_guest_sleep_routine(db, session_id, body.model_dump())
    return {
        "session_id": session.session_id,
        "sleep_routine": session.sleep_routine,
        "progress": asdict(calculate_sleep_routine_progress(session.sleep_routine)),
    }


@router.delete("/items", response_model=RoutineItemDeleteResponse)
def delete_guest_item(
    session_id: str,
    day_of_week: int = Query(..., ge=0, le=6),
    time_of_day: str = Query(...),
    item_name: str = Query(..., min_length=1),
    db: Session = Depends(get_db)
):
    return {"removed": delete_guest_routine_item(db, session_id, day_of_week, time_of_day, item_name)}


@router.get("/progress", response_model=GuestProgressResponse)
def get_guest_progress(
    session_id: str,
    week_of: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """
    Weekly and sleep routine progress for a guest.

    An unknown session has simply not started: every slot is missing.
    """
    weekly = GuestRoutineSource(db, session_id).weekly_progress(week_of)
    session = get_guest_session(db, session_id)
    sleep = calculate_sleep_routine_progress(session.sleep_routine if session else None)
    return {
        "session_id": session_id,
        "weekly": asdict(weekly),
        "sleep": asdict(sleep),
        "is_complete": weekly.is_complete,
    }


@router.post("/migrate", response_model=GuestMigrationResponse)
def migrate_session(
    session_id: str,
    body: GuestMigrationRequest,
    db: Session = Depends(get_db)
):
    """Move the guest's routines to a registered owner. 409 if already migrated."""
    return asdict(migrate_guest_session(db, session_id, body.owner_id))
