"""
Routine Slot Grid

Builds the 7 × 4 grid (Sunday..Saturday × morning/midday/night/workout)
of effective routine items for one reference week.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Sequence

from services.recurrence import matches, week_dates
from services.routine_types import RoutineDefinitionSpec, RoutineItemSpec, TIME_SLOTS


@dataclass
class GridCell:
    """
    Effective items for one (day, slot).

    `routine_ids` records every definition that matched, so a cell with a
    matching definition but no items is distinguishable from a cell that
    nothing matched.
    """
    day_of_week: int
    date: date
    time_of_day: str
    routine_ids: List[str] = field(default_factory=list)
    items: List[RoutineItemSpec] = field(default_factory=list)

    @property
    def has_match(self) -> bool:
        return bool(self.routine_ids)


# grid[day_of_week][slot_index]
Grid = List[List[GridCell]]


def build_grid(definitions: Sequence[RoutineDefinitionSpec], reference_date: date) -> Grid:
    """
    Assemble the grid for the week containing `reference_date`.

    Only active definitions count. A definition lands in a cell when its
    time_of_day is that slot and its schedule matches the concrete date of
    that weekday. Items of all matching definitions are concatenated in
    definition order, each definition's items sorted by their own order.
    """
    grid: Grid = []
    for day_index, day in enumerate(week_dates(reference_date)):
        row = []
        for slot in TIME_SLOTS:
            cell = GridCell(day_of_week=day_index, date=day, time_of_day=slot)
            for definition in definitions:
                if not definition.is_active or definition.time_of_day != slot:
                    continue
                if not matches(definition.schedule, day):
                    continue
                cell.routine_ids.append(definition.id)
                cell.items.extend(definition.ordered_items())
            row.append(cell)
        grid.append(row)
    return grid


def get_cell(grid: Grid, day_of_week: int, time_of_day: str) -> GridCell:
    """Look up a single cell by day index and slot name."""
    return grid[day_of_week][TIME_SLOTS.index(time_of_day)]
