"""
Routine Document API Router

Versioned free-text routine for an owner: one editable draft, one active
version, and the history of past versions.
"""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from uuid import UUID
from typing import Optional
from core.database import get_db
from schemas import (
    ActiveRoutineResponse,
    DraftRoutineResponse,
    RoutineDocumentUpdate,
    RoutineHistoryResponse,
)
from services.routine_versioning import (
    activate_draft,
    create_or_replace_draft,
    delete_routine_document,
    get_active_routine_document,
    get_draft_routine_document,
    get_routine_history,
)

router = APIRouter(prefix="/v1/routines/{owner_id}/document", tags=["routine-documents"])


@router.get("/active", response_model=ActiveRoutineResponse)
def get_active_routine(owner_id: UUID, db: Session = Depends(get_db)):
    """Current active routine, or null when the owner has never activated one."""
    return {"routine": get_active_routine_document(db, owner_id)}


@router.get("/draft", response_model=DraftRoutineResponse)
def get_draft_routine(owner_id: UUID, db: Session = Depends(get_db)):
    return {"draft": get_draft_routine_document(db, owner_id)}


@router.put("/draft", response_model=DraftRoutineResponse)
def save_draft_routine(
    owner_id: UUID,
    body: RoutineDocumentUpdate,
    db: Session = Depends(get_db)
):
    """
    Create or replace the owner's draft.

    Editing an existing draft keeps its version; a new draft takes the next
    version number.
    """
    return {"draft": create_or_replace_draft(db, owner_id, body.content)}


@router.post("/activate", response_model=ActiveRoutineResponse)
def activate_routine(owner_id: UUID, db: Session = Depends(get_db)):
    """
    Promote the draft to active.

    404 when there is no draft, 409 when another activation won the race.
    """
    return {"routine": activate_draft(db, owner_id)}


@router.get("/history", response_model=RoutineHistoryResponse)
def get_history(
    owner_id: UUID,
    limit: Optional[int] = Query(None),
    db: Session = Depends(get_db)
):
    return {"routines": get_routine_history(db, owner_id, limit)}


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_routine(owner_id: UUID, document_id: UUID, db: Session = Depends(get_db)):
    delete_routine_document(db, owner_id, document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
