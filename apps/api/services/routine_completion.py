"""
Routine Completion Calculator

Classifies every grid cell and rolls the result up into day and week
completion plus the onboarding gate.

Cell states:
- complete: a definition matches and contributes at least one item
- empty:    a definition matches but contributes no items
- missing:  no definition matches

Only morning and night are required. A day is complete when both are
complete; the week is complete when all seven days are.

Everything here is pure: the same definitions and reference week always
produce the same WeeklyProgress.
"""
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Iterable, List, Sequence

from services.routine_grid import Grid, GridCell, build_grid
from services.routine_types import DAY_NAMES, REQUIRED_SLOTS, TIME_SLOTS, RoutineDefinitionSpec


class SlotState(str, Enum):
    COMPLETE = "complete"
    EMPTY = "empty"
    MISSING = "missing"


@dataclass(frozen=True)
class Requirement:
    """One required field: a label and whether it is present."""
    label: str
    satisfied: bool


@dataclass
class RequirementReport:
    is_complete: bool
    missing: List[str] = field(default_factory=list)


def evaluate_requirements(requirements: Iterable[Requirement]) -> RequirementReport:
    """
    Required-field-presence check shared by the weekly grid and the sleep routine.

    Missing labels keep the order the requirements were given in.
    """
    missing = [requirement.label for requirement in requirements if not requirement.satisfied]
    return RequirementReport(is_complete=not missing, missing=missing)


@dataclass
class SlotStatus:
    time_of_day: str
    status: str
    is_required: bool
    item_count: int
    items: List[str] = field(default_factory=list)


@dataclass
class DaySlotStatus:
    day_of_week: int
    day_name: str
    date: date
    morning: SlotStatus
    midday: SlotStatus
    night: SlotStatus
    workout: SlotStatus
    is_complete: bool

    def slot(self, time_of_day: str) -> SlotStatus:
        return getattr(self, time_of_day)


@dataclass
class WeeklyProgress:
    week_start: date
    days: List[DaySlotStatus]
    total_slots_filled: int
    total_slots_required: int
    complete_days: int
    is_complete: bool
    missing_requirements: List[str]


def classify(cell: GridCell) -> SlotState:
    if not cell.has_match:
        return SlotState.MISSING
    if not cell.items:
        return SlotState.EMPTY
    return SlotState.COMPLETE


def requirement_label(day_of_week: int, time_of_day: str) -> str:
    return f"{DAY_NAMES[day_of_week]} {time_of_day} routine"


def _slot_status(cell: GridCell) -> SlotStatus:
    return SlotStatus(
        time_of_day=cell.time_of_day,
        status=classify(cell).value,
        is_required=cell.time_of_day in REQUIRED_SLOTS,
        item_count=len(cell.items),
        items=[item.name for item in cell.items],
    )


def calculate_weekly_progress(grid: Grid) -> WeeklyProgress:
    """Classify each cell of a built grid and aggregate day/week completion."""
    days: List[DaySlotStatus] = []
    requirements: List[Requirement] = []
    total_slots_filled = 0

    for day_index, row in enumerate(grid):
        slots = {cell.time_of_day: _slot_status(cell) for cell in row}
        total_slots_filled += sum(1 for slot in slots.values() if slot.status == SlotState.COMPLETE.value)

        day_requirements = [
            Requirement(
                label=requirement_label(day_index, slot_name),
                satisfied=slots[slot_name].status == SlotState.COMPLETE.value,
            )
            for slot_name in REQUIRED_SLOTS
        ]
        requirements.extend(day_requirements)

        days.append(DaySlotStatus(
            day_of_week=day_index,
            day_name=DAY_NAMES[day_index],
            date=row[0].date,
            is_complete=evaluate_requirements(day_requirements).is_complete,
            **{slot_name: slots[slot_name] for slot_name in TIME_SLOTS},
        ))

    report = evaluate_requirements(requirements)
    return WeeklyProgress(
        week_start=grid[0][0].date,
        days=days,
        total_slots_filled=total_slots_filled,
        total_slots_required=len(requirements),
        complete_days=sum(1 for day in days if day.is_complete),
        is_complete=report.is_complete,
        missing_requirements=report.missing,
    )


def compute_weekly_progress(definitions: Sequence[RoutineDefinitionSpec], reference_date: date) -> WeeklyProgress:
    """Build the grid for the reference week and calculate its progress."""
    return calculate_weekly_progress(build_grid(definitions, reference_date))
