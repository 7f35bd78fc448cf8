"""Routine definitions stored as rows for a registered owner."""

from typing import List
from uuid import UUID

from sqlalchemy.orm import Session

from services.routine_definitions import definition_to_spec, list_routine_definitions
from services.routine_types import RoutineDefinitionSpec

from .base import RoutineDefinitionSource


class RegisteredRoutineSource(RoutineDefinitionSource):

    def __init__(self, db: Session, owner_id: UUID):
        self.db = db
        self.owner_id = owner_id

    @property
    def source_name(self) -> str:
        return "registered"

    def load_definitions(self) -> List[RoutineDefinitionSpec]:
        return [definition_to_spec(row) for row in list_routine_definitions(self.db, self.owner_id)]
