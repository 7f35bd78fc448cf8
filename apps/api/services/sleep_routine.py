"""
Sleep Routine Progress

The two-field sleep routine (bedtime + wake time, plus an ordered list of
pre-bed items) is a one-slot case of the weekly grid: it is complete when
every required field is present, evaluated with the same requirement check.

Shape:
    {
        "night": {"bedtime": "10:30 PM", "pre_bed": [{"item_name": "Read"}]},
        "morning": {"wake_time": "6:30 AM"},
    }
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import math
import re

from services.routine_completion import Requirement, evaluate_requirements
from services.routine_types import HabitClassification

_TIME_PATTERN = re.compile(r"^(\d{1,2})(?::(\d{2}))?\s*(AM|PM)$")

MINUTES_PER_DAY = 24 * 60

SLEEP_ITEM_TYPES = ("exercise", "food", "supplement", "activity", "rest", "other")
DEFAULT_SLEEP_ITEM_TYPE = "activity"
CLASSIFICATIONS = {classification.value for classification in HabitClassification}
AMOUNT_ATTRIBUTES = ("duration_minutes", "sets", "reps", "weight_kg", "distance_km", "calories")


@dataclass
class SleepRoutineProgress:
    has_bedtime: bool
    has_wake_time: bool
    pre_bed_item_count: int
    sleep_duration_minutes: Optional[int]
    is_complete: bool
    missing_requirements: List[str] = field(default_factory=list)


def _clean_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _clean_amount(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


def _clean_order(value: Any, fallback: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if not math.isfinite(value) or value <= 0:
        return fallback
    return int(value)


def _clean_item(raw: Any, fallback_order: int) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    name = _clean_string(raw.get("item_name"))
    if name is None:
        return None

    item_type = raw.get("item_type")
    classification = raw.get("habit_classification")
    item = {
        "item_name": name,
        "item_type": item_type if isinstance(item_type, str) and item_type in SLEEP_ITEM_TYPES else DEFAULT_SLEEP_ITEM_TYPE,
        "habit_classification": (
            classification if isinstance(classification, str) and classification in CLASSIFICATIONS
            else HabitClassification.NEUTRAL.value
        ),
        "item_order": _clean_order(raw.get("item_order"), fallback_order),
        "is_optional": raw.get("is_optional") if isinstance(raw.get("is_optional"), bool) else False,
        "serving_size": _clean_string(raw.get("serving_size")),
        "notes": _clean_string(raw.get("notes")),
    }
    for attribute in AMOUNT_ATTRIBUTES:
        item[attribute] = _clean_amount(raw.get(attribute))
    return item


def normalize_pre_bed_items(raw_items: Any) -> List[Dict[str, Any]]:
    """
    Sanitize pre-bed items and number them 1..n.

    Items without a name are dropped. Unknown item types fall back to
    'activity' and unknown classifications to 'neutral'; negative or
    non-numeric amounts are cleared. Items are ordered by item_order (list
    position when missing), then name.
    """
    if not isinstance(raw_items, list):
        return []

    cleaned = []
    for position, raw in enumerate(raw_items, start=1):
        item = _clean_item(raw, position)
        if item is not None:
            cleaned.append(item)

    cleaned.sort(key=lambda item: (item["item_order"], item["item_name"].casefold()))
    for order, item in enumerate(cleaned, start=1):
        item["item_order"] = order
    return cleaned


def ensure_sleep_routine_shape(raw: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Fill in any missing parts so callers can rely on the full shape."""
    raw = raw if isinstance(raw, dict) else {}
    night = raw.get("night") if isinstance(raw.get("night"), dict) else {}
    morning = raw.get("morning") if isinstance(raw.get("morning"), dict) else {}

    return {
        "night": {
            "bedtime": _clean_string(night.get("bedtime")),
            "pre_bed": normalize_pre_bed_items(night.get("pre_bed")),
        },
        "morning": {"wake_time": _clean_string(morning.get("wake_time"))},
    }


def parse_time_to_minutes(value: Optional[str]) -> Optional[int]:
    """
    Minutes after midnight for a 12-hour clock time ("10:30 PM", "6 am").

    Returns None for anything that does not parse.
    """
    if not value:
        return None
    match = _TIME_PATTERN.match(value.strip().upper())
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2) or 0)
    if not 1 <= hours <= 12 or minutes >= 60:
        return None

    if hours == 12:
        hours = 0 if match.group(3) == "AM" else 12
    elif match.group(3) == "PM":
        hours += 12
    return hours * 60 + minutes


def sleep_duration_minutes(bedtime: Optional[str], wake_time: Optional[str]) -> Optional[int]:
    """Time asleep, wrapping past midnight. None when either time is unusable."""
    bed = parse_time_to_minutes(bedtime)
    wake = parse_time_to_minutes(wake_time)
    if bed is None or wake is None:
        return None
    diff = wake - bed
    return diff if diff >= 0 else diff + MINUTES_PER_DAY


def calculate_sleep_routine_progress(sleep_routine: Optional[Dict[str, Any]]) -> SleepRoutineProgress:
    routine = ensure_sleep_routine_shape(sleep_routine)
    bedtime = routine["night"]["bedtime"]
    wake_time = routine["morning"]["wake_time"]
    pre_bed = routine["night"]["pre_bed"]

    report = evaluate_requirements([
        Requirement(label="bedtime", satisfied=bedtime is not None),
        Requirement(label="wake time", satisfied=wake_time is not None),
        Requirement(label="pre-bed routine", satisfied=len(pre_bed) >= 1),
    ])

    return SleepRoutineProgress(
        has_bedtime=bedtime is not None,
        has_wake_time=wake_time is not None,
        pre_bed_item_count=len(pre_bed),
        sleep_duration_minutes=sleep_duration_minutes(bedtime, wake_time),
        is_complete=report.is_complete,
        missing_requirements=report.missing,
    )
