"""
Routine Document Versioning Service

Owns the draft -> active -> past lifecycle of an owner's routine document.

Rules (per owner, over non-deleted rows):
- at most one draft and at most one active document
- versions are never reused: the next version is max(version) + 1 over the
  owner's full history, soft-deleted rows included
- a new draft takes the next version; editing a draft keeps its version
- activation is the only transition that advances the version: the draft
  is promoted with a fresh version and the previous active row becomes
  past, in one transaction

Concurrent activations are serialized with compare-and-swap updates: the
previous active row is retired only if it is still active, and the draft
is promoted only if it is still a draft. The partial unique indexes on
routine_document back this up at the database. The loser gets a
ConflictError and nothing it wrote is kept.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.config import settings
from core.events import (
    emit,
    EVENT_ROUTINE_DOCUMENT_ACTIVATED,
    EVENT_ROUTINE_DOCUMENT_DELETED,
    EVENT_ROUTINE_DOCUMENT_DRAFT_SAVED,
)
from core.exceptions import ConflictError, NotFoundError, ValidationError
from models import RoutineDocument
from services.routine_types import DocumentStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivationPlan:
    """Snapshot read before activating; applied with compare-and-swap."""
    owner_id: UUID
    draft_id: UUID
    previous_active_id: Optional[UUID]
    next_version: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _live_documents(db: Session, owner_id: UUID):
    return db.query(RoutineDocument).filter(
        RoutineDocument.owner_id == owner_id,
        RoutineDocument.deleted_at.is_(None),
    )


def _conflict(db: Session, owner_id: UUID, detail: str) -> ConflictError:
    db.rollback()
    logger.warning(
        f"Routine document conflict for owner {owner_id}: {detail}",
        extra={"extra_fields": {"owner_id": str(owner_id)}},
    )
    return ConflictError(detail)


def get_active_routine_document(db: Session, owner_id: UUID) -> Optional[RoutineDocument]:
    return _live_documents(db, owner_id).filter(
        RoutineDocument.status == DocumentStatus.ACTIVE.value
    ).first()


def get_draft_routine_document(db: Session, owner_id: UUID) -> Optional[RoutineDocument]:
    return _live_documents(db, owner_id).filter(
        RoutineDocument.status == DocumentStatus.DRAFT.value
    ).first()


def get_max_version(db: Session, owner_id: UUID) -> int:
    """Highest version ever assigned to this owner, deleted rows included (0 if none)."""
    value = db.query(func.max(RoutineDocument.version)).filter(
        RoutineDocument.owner_id == owner_id
    ).scalar()
    return value or 0


def get_routine_history(db: Session, owner_id: UUID, limit: Optional[int] = None) -> List[RoutineDocument]:
    """Non-deleted documents, newest version first."""
    if limit is None:
        limit = settings.ROUTINE_HISTORY_DEFAULT_LIMIT
    if not 1 <= limit <= settings.ROUTINE_HISTORY_MAX_LIMIT:
        raise ValidationError(
            f"limit must be between 1 and {settings.ROUTINE_HISTORY_MAX_LIMIT}",
            field="limit",
        )
    return (
        _live_documents(db, owner_id)
        .order_by(RoutineDocument.version.desc())
        .limit(limit)
        .all()
    )


def create_or_replace_draft(db: Session, owner_id: UUID, content: str) -> RoutineDocument:
    """
    Save the owner's draft.

    Replaces the content of an existing draft in place (version untouched),
    or creates a new draft at the next version.
    """
    content = (content or "").strip()
    if not content:
        raise ValidationError("Content is required and cannot be empty", field="content")

    now = _utcnow()
    draft = get_draft_routine_document(db, owner_id)
    created = draft is None
    if created:
        draft = RoutineDocument(
            owner_id=owner_id,
            content=content,
            version=get_max_version(db, owner_id) + 1,
            status=DocumentStatus.DRAFT.value,
            created_at=now,
            updated_at=now,
        )
        db.add(draft)
    else:
        draft.content = content
        draft.updated_at = now

    try:
        db.commit()
    except IntegrityError:
        raise _conflict(db, owner_id, "Another draft was saved concurrently; reload and retry.")

    logger.info(
        f"Routine draft {'created' if created else 'updated'} for owner {owner_id} (version {draft.version})",
        extra={"extra_fields": {"owner_id": str(owner_id), "version": draft.version}},
    )
    emit(
        EVENT_ROUTINE_DOCUMENT_DRAFT_SAVED,
        owner_id=str(owner_id),
        document_id=str(draft.id),
        version=draft.version,
    )
    return draft


def plan_activation(db: Session, owner_id: UUID) -> ActivationPlan:
    """Read the state activation depends on. Raises NotFoundError without a draft."""
    draft = get_draft_routine_document(db, owner_id)
    if draft is None:
        raise NotFoundError("Draft routine", str(owner_id))

    active = get_active_routine_document(db, owner_id)
    return ActivationPlan(
        owner_id=owner_id,
        draft_id=draft.id,
        previous_active_id=active.id if active else None,
        next_version=get_max_version(db, owner_id) + 1,
    )


def apply_activation(db: Session, plan: ActivationPlan) -> RoutineDocument:
    """
    Retire the previous active document and promote the draft, atomically.

    Each update only touches its row if the row is still in the state the
    plan observed. If either matches nothing, or a unique index rejects the
    write, another activation got there first: roll back and raise
    ConflictError.
    """
    now = _utcnow()
    stale = "Routine changed while activating; reload and retry."

    try:
        if plan.previous_active_id is not None:
            retired = db.query(RoutineDocument).filter(
                RoutineDocument.id == plan.previous_active_id,
                RoutineDocument.owner_id == plan.owner_id,
                RoutineDocument.status == DocumentStatus.ACTIVE.value,
                RoutineDocument.deleted_at.is_(None),
            ).update(
                {RoutineDocument.status: DocumentStatus.PAST.value, RoutineDocument.updated_at: now},
                synchronize_session=False,
            )
            if retired != 1:
                raise _conflict(db, plan.owner_id, stale)

        promoted = db.query(RoutineDocument).filter(
            RoutineDocument.id == plan.draft_id,
            RoutineDocument.owner_id == plan.owner_id,
            RoutineDocument.status == DocumentStatus.DRAFT.value,
            RoutineDocument.deleted_at.is_(None),
        ).update(
            {
                RoutineDocument.status: DocumentStatus.ACTIVE.value,
                RoutineDocument.version: plan.next_version,
                RoutineDocument.updated_at: now,
            },
            synchronize_session=False,
        )
        if promoted != 1:
            raise _conflict(db, plan.owner_id, stale)

        db.commit()
    except IntegrityError:
        raise _conflict(db, plan.owner_id, stale)

    # Bulk updates bypass the identity map
    db.expire_all()
    document = db.get(RoutineDocument, plan.draft_id)

    logger.info(
        f"Routine activated for owner {plan.owner_id} at version {document.version}",
        extra={
            "extra_fields": {
                "owner_id": str(plan.owner_id),
                "version": document.version,
                "previous_active_id": str(plan.previous_active_id) if plan.previous_active_id else None,
            }
        },
    )
    emit(
        EVENT_ROUTINE_DOCUMENT_ACTIVATED,
        owner_id=str(plan.owner_id),
        document_id=str(document.id),
        version=document.version,
    )
    return document


def activate_draft(db: Session, owner_id: UUID) -> RoutineDocument:
    """Promote the owner's draft to active. NotFoundError without a draft, ConflictError on a lost race."""
    return apply_activation(db, plan_activation(db, owner_id))


def publish_routine_document(db: Session, owner_id: UUID, content: str) -> RoutineDocument:
    """Save content as the draft and activate it in one call."""
    create_or_replace_draft(db, owner_id, content)
    return activate_draft(db, owner_id)


def delete_routine_document(db: Session, owner_id: UUID, document_id: UUID) -> RoutineDocument:
    """Soft delete. The row keeps its version so the number is never handed out again."""
    document = _live_documents(db, owner_id).filter(RoutineDocument.id == document_id).first()
    if document is None:
        raise NotFoundError("Routine document", str(document_id))

    now = _utcnow()
    document.deleted_at = now
    document.updated_at = now
    db.commit()

    logger.info(f"Routine document {document_id} deleted for owner {owner_id}")
    emit(
        EVENT_ROUTINE_DOCUMENT_DELETED,
        owner_id=str(owner_id),
        document_id=str(document_id),
        version=document.version,
    )
    return document
