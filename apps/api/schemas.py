from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Dict, Any


# Routine documents (versioned free-text routine)

class RoutineDocumentUpdate(BaseModel):
    content: str


class RoutineDocumentResponse(BaseModel):
    id: UUID
    owner_id: UUID
    content: str
    version: int
    status: str  # 'draft', 'active', 'past'
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ActiveRoutineResponse(BaseModel):
    routine: Optional[RoutineDocumentResponse] = None


class DraftRoutineResponse(BaseModel):
    draft: Optional[RoutineDocumentResponse] = None


class RoutineHistoryResponse(BaseModel):
    routines: List[RoutineDocumentResponse]


# Routine definitions

class RoutineItemBase(BaseModel):
    item_name: str
    item_type: str = "habit"
    habit_classification: str = "neutral"  # 'good', 'bad', 'neutral'
    duration_minutes: Optional[int] = None
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight_kg: Optional[float] = None
    distance_km: Optional[float] = None
    calories: Optional[int] = None
    serving_size: Optional[str] = None
    notes: Optional[str] = None
    is_optional: bool = False


class RoutineItemCreate(RoutineItemBase):
    item_order: Optional[int] = None  # defaults to position in the list


class RoutineItemResponse(RoutineItemBase):
    id: UUID
    routine_id: UUID
    item_order: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoutineDefinitionCreate(BaseModel):
    routine_name: str
    description: Optional[str] = None
    schedule_type: str  # 'weekly', 'monthly', 'yearly'
    schedule_config: Dict[str, Any]
    time_of_day: Optional[str] = None  # 'morning', 'midday', 'night', 'workout'
    status: str = "active"  # 'pending', 'active', 'archived'
    items: List[RoutineItemCreate] = []


class RoutineDefinitionsUpsert(BaseModel):
    definitions: List[RoutineDefinitionCreate]


class RoutineDefinitionResponse(BaseModel):
    id: UUID
    owner_id: UUID
    routine_name: str
    description: Optional[str] = None
    schedule_type: str
    schedule_config: Dict[str, Any]
    time_of_day: Optional[str] = None
    status: str
    created_at: datetime
    updated_at: datetime
    items: List[RoutineItemResponse] = []

    model_config = ConfigDict(from_attributes=True)


class RoutineDefinitionListResponse(BaseModel):
    definitions: List[RoutineDefinitionResponse]


class RoutineItemDeleteResponse(BaseModel):
    removed: int


# Weekly progress

class SlotStatusResponse(BaseModel):
    time_of_day: str
    status: str  # 'complete', 'empty', 'missing'
    is_required: bool
    item_count: int
    items: List[str]


class DaySlotStatusResponse(BaseModel):
    day_of_week: int
    day_name: str
    date: date
    morning: SlotStatusResponse
    midday: SlotStatusResponse
    night: SlotStatusResponse
    workout: SlotStatusResponse
    is_complete: bool


class WeeklyProgressResponse(BaseModel):
    week_start: date
    days: List[DaySlotStatusResponse]
    total_slots_filled: int
    total_slots_required: int  # 7 days x required slots
    complete_days: int
    is_complete: bool
    missing_requirements: List[str]


class SleepRoutineProgressResponse(BaseModel):
    has_bedtime: bool
    has_wake_time: bool
    pre_bed_item_count: int
    sleep_duration_minutes: Optional[int] = None
    is_complete: bool
    missing_requirements: List[str]


# Completions

class RoutineCompletionCreate(BaseModel):
    routine_item_id: UUID
    completion_date: Optional[date] = None  # defaults to today


class RoutineCompletionResponse(BaseModel):
    id: UUID
    routine_item_id: UUID
    owner_id: UUID
    completion_date: date
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RoutineCompletionListResponse(BaseModel):
    completions: List[RoutineCompletionResponse]


# Guest onboarding

class GuestRoutineCreate(BaseModel):
    temp_routine_id: Optional[str] = None
    routine_name: str
    description: Optional[str] = None
    day_of_week: int = Field(..., ge=0, le=6)  # 0=Sunday, 6=Saturday
    time_of_day: str
    items: List[RoutineItemCreate] = []


class GuestRoutinesUpsert(BaseModel):
    routines: List[GuestRoutineCreate]


class GuestRoutinesResponse(BaseModel):
    session_id: str
    routines: List[Dict[str, Any]]


class SleepRoutineItem(BaseModel):
    item_name: str
    item_type: Optional[str] = None  # exercise, food, supplement, activity, rest, other
    habit_classification: Optional[str] = None  # 'good', 'bad', 'neutral'
    duration_minutes: Optional[int] = None
    sets: Optional[int] = None
    reps: Optional[int] = None
    weight_kg: Optional[float] = None
    distance_km: Optional[float] = None
    calories: Optional[int] = None
    serving_size: Optional[str] = None
    notes: Optional[str] = None
    item_order: Optional[int] = None  # sorted, then renumbered 1..n
    is_optional: bool = False


class SleepRoutineNight(BaseModel):
    bedtime: Optional[str] = None  # "10:30 PM"
    pre_bed: List[SleepRoutineItem] = []


class SleepRoutineMorning(BaseModel):
    wake_time: Optional[str] = None  # "6:30 AM"


class SleepRoutineUpdate(BaseModel):
    night: SleepRoutineNight = SleepRoutineNight()
    morning: SleepRoutineMorning = SleepRoutineMorning()


class SleepRoutineResponse(BaseModel):
    session_id: str
    sleep_routine: Dict[str, Any]
    progress: SleepRoutineProgressResponse


class GuestProgressResponse(BaseModel):
    session_id: str
    weekly: WeeklyProgressResponse
    sleep: SleepRoutineProgressResponse
    is_complete: bool  # weekly gate


class GuestMigrationRequest(BaseModel):
    owner_id: UUID


class GuestMigrationResponse(BaseModel):
    session_id: str
    owner_id: UUID
    routines_migrated: int
    items_migrated: int
