"""
Base class for routine definition sources.

Registered owners keep definitions as normalized rows; guests keep them as a
JSON array on their onboarding session. Each source maps its own storage
into RoutineDefinitionSpec so weekly progress is computed by exactly one
code path, whoever owns the routines.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional
import logging

from services.routine_completion import WeeklyProgress, compute_weekly_progress
from services.routine_types import RoutineDefinitionSpec

logger = logging.getLogger(__name__)


class RoutineDefinitionSource(ABC):
    """
    Supplies an owner's routine definitions in canonical form.

    Implementations must return definitions in a stable order; cells list
    items in definition order.
    """

    @property
    @abstractmethod
    def source_name(self) -> str:
        """Short identifier for logs ('registered', 'guest')."""
        pass

    @abstractmethod
    def load_definitions(self) -> List[RoutineDefinitionSpec]:
        """Return every definition for this owner. Unknown owners yield []."""
        pass

    def weekly_progress(self, reference_date: Optional[date] = None) -> WeeklyProgress:
        reference_date = reference_date or date.today()
        definitions = self.load_definitions()
        progress = compute_weekly_progress(definitions, reference_date)
        logger.debug(
            f"Weekly progress from {self.source_name} source: "
            f"{progress.total_slots_filled}/{progress.total_slots_required} slots filled",
            extra={"extra_fields": {
                "source": self.source_name,
                "week_start": progress.week_start.isoformat(),
                "definitions": len(definitions),
            }},
        )
        return progress
