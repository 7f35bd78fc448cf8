"""
Recurrence matching for routine schedules.

A schedule is one of three variants, selected by `schedule_type`:

    weekly   {"days_of_week": [0..6]}       0=Sunday ... 6=Saturday
    monthly  {"days_of_month": [1..31]}
    yearly   {"dates_of_year": ["MM-DD"]}

`build_schedule` is the strict parser used on writes (raises
ValidationError). `schedule_or_none` is the read-side parser: a stored
config it cannot interpret yields None, and `matches(None, day)` is False,
so malformed rows fail closed instead of erroring the whole grid.

Dates are local calendar dates; callers resolve the user's intended day
before asking.
"""
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional, Union
import logging

from core.exceptions import ValidationError

logger = logging.getLogger(__name__)

CONFIG_KEYS = {
    "weekly": "days_of_week",
    "monthly": "days_of_month",
    "yearly": "dates_of_year",
}


def day_of_week(day: date) -> int:
    """Sunday-first day index (0=Sunday ... 6=Saturday)."""
    return (day.weekday() + 1) % 7


def week_dates(reference: date) -> List[date]:
    """The seven dates, Sunday through Saturday, of the week containing `reference`."""
    sunday = reference - timedelta(days=day_of_week(reference))
    return [sunday + timedelta(days=offset) for offset in range(7)]


@dataclass(frozen=True)
class WeeklySchedule:
    days_of_week: FrozenSet[int]
    schedule_type: ClassVar[str] = "weekly"

    def matches(self, day: date) -> bool:
        return day_of_week(day) in self.days_of_week

    def to_config(self) -> Dict[str, Any]:
        return {"days_of_week": sorted(self.days_of_week)}


@dataclass(frozen=True)
class MonthlySchedule:
    days_of_month: FrozenSet[int]
    schedule_type: ClassVar[str] = "monthly"

    def matches(self, day: date) -> bool:
        return day.day in self.days_of_month

    def to_config(self) -> Dict[str, Any]:
        return {"days_of_month": sorted(self.days_of_month)}


@dataclass(frozen=True)
class YearlySchedule:
    dates_of_year: FrozenSet[str]
    schedule_type: ClassVar[str] = "yearly"

    def matches(self, day: date) -> bool:
        return day.strftime("%m-%d") in self.dates_of_year

    def to_config(self) -> Dict[str, Any]:
        return {"dates_of_year": sorted(self.dates_of_year)}


Schedule = Union[WeeklySchedule, MonthlySchedule, YearlySchedule]


def _int_values(values: List[Any], low: int, high: int, key: str) -> FrozenSet[int]:
    parsed = set()
    for value in values:
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{key} must contain integers, got {value!r}", field=key)
        if not low <= value <= high:
            raise ValidationError(f"{key} values must be between {low} and {high}, got {value}", field=key)
        parsed.add(value)
    return frozenset(parsed)


def _month_day_values(values: List[Any]) -> FrozenSet[str]:
    parsed = set()
    for value in values:
        if not isinstance(value, str) or len(value) != 5 or value[2] != "-":
            raise ValidationError(f"dates_of_year entries must be 'MM-DD', got {value!r}", field="dates_of_year")
        try:
            # 2000 is a leap year, so 02-29 is accepted
            datetime.strptime(f"2000-{value}", "%Y-%m-%d")
        except ValueError:
            raise ValidationError(f"dates_of_year entry is not a calendar date: {value}", field="dates_of_year")
        parsed.add(value)
    return frozenset(parsed)


def build_schedule(schedule_type: str, schedule_config: Optional[Dict[str, Any]]) -> Schedule:
    """
    Parse and validate a schedule.

    Raises ValidationError when the type is unknown, when the key matching
    the type is missing or empty, when another variant's key is populated,
    or when a value is out of range.
    """
    if schedule_type not in CONFIG_KEYS:
        raise ValidationError(
            f"schedule_type must be one of: {', '.join(CONFIG_KEYS)}",
            field="schedule_type",
        )
    if not isinstance(schedule_config, dict):
        raise ValidationError("schedule_config must be an object", field="schedule_config")

    expected_key = CONFIG_KEYS[schedule_type]
    populated = [key for key in CONFIG_KEYS.values() if schedule_config.get(key)]
    stray = [key for key in populated if key != expected_key]
    if stray:
        raise ValidationError(
            f"{schedule_type} schedules only use {expected_key}; unexpected: {', '.join(stray)}",
            field="schedule_config",
        )

    values = schedule_config.get(expected_key)
    if not values or not isinstance(values, (list, tuple, set, frozenset)):
        raise ValidationError(
            f"{schedule_type} schedules require a non-empty {expected_key} list",
            field="schedule_config",
        )
    values = list(values)

    if schedule_type == "weekly":
        return WeeklySchedule(days_of_week=_int_values(values, 0, 6, expected_key))
    if schedule_type == "monthly":
        return MonthlySchedule(days_of_month=_int_values(values, 1, 31, expected_key))
    return YearlySchedule(dates_of_year=_month_day_values(values))


def schedule_or_none(schedule_type: Optional[str], schedule_config: Any) -> Optional[Schedule]:
    """Read-side parser: an uninterpretable stored schedule becomes None (never matches)."""
    try:
        return build_schedule(schedule_type, schedule_config)
    except ValidationError as e:
        logger.warning(f"Ignoring unusable schedule ({schedule_type}): {e.detail}")
        return None


def matches(rule: Optional[Schedule], day: date) -> bool:
    """True when `rule` applies on the calendar date `day`."""
    if rule is None:
        return False
    return rule.matches(day)
