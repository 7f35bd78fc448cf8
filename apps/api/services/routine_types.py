"""
Canonical in-memory routine types.

Both storage shapes (normalized rows for registered owners, the embedded
JSON array of a guest session) are mapped into these before the grid and
completion logic sees them.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from services.recurrence import Schedule


class TimeOfDay(str, Enum):
    """Grid slots, in display order."""
    MORNING = "morning"
    MIDDAY = "midday"
    NIGHT = "night"
    WORKOUT = "workout"


class RoutineStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    ARCHIVED = "archived"


class HabitClassification(str, Enum):
    GOOD = "good"
    BAD = "bad"
    NEUTRAL = "neutral"


class DocumentStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    PAST = "past"


# Sunday-first, matching day_of_week 0..6
DAY_NAMES = ['Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday']

TIME_SLOTS = [slot.value for slot in TimeOfDay]

# Slots that gate a day; midday and workout never count
REQUIRED_SLOTS = [TimeOfDay.MORNING.value, TimeOfDay.NIGHT.value]


@dataclass
class RoutineItemSpec:
    name: str
    item_type: str = "habit"
    classification: str = HabitClassification.NEUTRAL.value
    order: int = 0
    is_optional: bool = False
    duration_minutes: Optional[int] = None
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight_kg: Optional[float] = None
    distance_km: Optional[float] = None
    calories: Optional[int] = None
    id: Optional[str] = None


@dataclass
class RoutineDefinitionSpec:
    """
    One recurring commitment, storage-agnostic.

    `schedule` is None when the stored config could not be interpreted; such
    a definition never matches any day.
    """
    id: str
    owner_id: str
    routine_name: str
    schedule: Optional[Schedule]
    time_of_day: Optional[str]
    status: str = RoutineStatus.ACTIVE.value
    items: List[RoutineItemSpec] = field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == RoutineStatus.ACTIVE.value

    def ordered_items(self) -> List[RoutineItemSpec]:
        # sorted() is stable, so ties keep their authored order
        return sorted(self.items, key=lambda item: item.order)
