from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Dict, Literal
import re


Priority = Literal["Low", "Medium", "High"]
RecurringFrequency = Literal["daily", "weekly", "biweekly", "monthly", "yearly", "custom"]
AppointmentStatus = Literal["scheduled", "confirmed", "cancelled", "completed", "no_show"]
SharePermission = Literal["view", "edit", "full"]
ShareType = Literal["full", "selective"]

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserResponse(BaseModel):
    id: UUID
    username: str
    email: Optional[str] = None
    role: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------

class ChecklistItem(BaseModel):
    id: Optional[str] = None
    text: str = Field(min_length=1, max_length=500)
    completed: bool = False


class TaskBase(BaseModel):
    category: Optional[str] = Field(default=None, max_length=50)
    priority: Optional[Priority] = None
    timer: Optional[int] = Field(default=None, ge=0, le=24 * 60)
    youtube_url: Optional[str] = None
    notes: Optional[str] = None
    checklist_items: Optional[List[ChecklistItem]] = None

    scheduled_date: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    duration_min: Optional[int] = Field(default=None, ge=0)
    buffer_before: Optional[int] = Field(default=None, ge=0)
    buffer_after: Optional[int] = Field(default=None, ge=0)
    is_fixed: Optional[bool] = None
    start_date: Optional[datetime] = None
    project_end_date: Optional[datetime] = None

    is_recurring: Optional[bool] = None
    recurring_frequency: Optional[RecurringFrequency] = None
    recurring_interval: Optional[int] = Field(default=None, ge=1, le=365)
    end_date: Optional[datetime] = None
    days_of_week: Optional[List[int]] = None
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    month_of_year: Optional[int] = Field(default=None, ge=0, le=11)

    @field_validator("days_of_week")
    @classmethod
    def _valid_weekdays(cls, value):
        if value is not None and any(d < 0 or d > 6 for d in value):
            raise ValueError("days_of_week entries must be 0 (Sunday) to 6 (Saturday)")
        return value


class TaskCreate(TaskBase):
    title: str = Field(min_length=1, max_length=500)


class TaskUpdate(TaskBase):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    completed: Optional[bool] = None
    display_order: Optional[int] = None


class AppointmentSummary(BaseModel):
    id: UUID
    attendee_name: str
    attendee_email: str
    start_time: datetime
    end_time: datetime
    status: str

    model_config = ConfigDict(from_attributes=True)


class TaskResponse(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    category: str
    priority: str
    completed: bool
    completed_at: Optional[datetime] = None
    timer: Optional[int] = None
    youtube_url: Optional[str] = None
    notes: Optional[str] = None
    display_order: int
    created_via: str
    checklist_items: List[Dict] = []
    created_at: datetime

    scheduled_date: Optional[datetime] = None
    scheduled_end: Optional[datetime] = None
    duration_min: Optional[int] = None
    buffer_before: int
    buffer_after: int
    is_fixed: bool
    start_date: Optional[datetime] = None
    project_end_date: Optional[datetime] = None

    is_recurring: bool
    recurring_frequency: Optional[str] = None
    recurring_interval: int
    next_due_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    days_of_week: Optional[List[int]] = None
    day_of_month: Optional[int] = None
    month_of_year: Optional[int] = None
    parent_task_id: Optional[UUID] = None

    archived: bool
    archived_at: Optional[datetime] = None

    appointment: Optional[AppointmentSummary] = None

    model_config = ConfigDict(from_attributes=True)


class ReorderRequest(BaseModel):
    task_ids: List[UUID] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

class TimeWindow(BaseModel):
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _hhmm(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError("time must be HH:MM (24h)")
        return value


class DayAvailability(BaseModel):
    enabled: bool = False
    slots: List[TimeWindow] = []


class BlockedTimeSlot(BaseModel):
    date: date
    slots: List[TimeWindow]


class SchedulingSettingsResponse(BaseModel):
    slug: str
    is_enabled: bool
    booking_window_days: int
    min_notice_minutes: int
    slot_duration: int
    availability: Dict[str, DayAvailability]
    meeting_title: str
    meeting_description: Optional[str] = None
    timezone: str
    notification_email: Optional[str] = None
    blocked_dates: List[str] = []
    blocked_time_slots: List[BlockedTimeSlot] = []
    show_branding: bool
    business_name: Optional[str] = None
    public_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SchedulingSettingsUpdate(BaseModel):
    slug: Optional[str] = Field(default=None, min_length=3, max_length=60)
    is_enabled: Optional[bool] = None
    booking_window_days: Optional[int] = Field(default=None, ge=1, le=365)
    min_notice_minutes: Optional[int] = Field(default=None, ge=0, le=60 * 24 * 14)
    slot_duration: Optional[int] = Field(default=None, ge=5, le=480)
    availability: Optional[Dict[str, DayAvailability]] = None
    meeting_title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    meeting_description: Optional[str] = None
    timezone: Optional[str] = None
    notification_email: Optional[EmailStr] = None
    blocked_dates: Optional[List[date]] = None
    blocked_time_slots: Optional[List[BlockedTimeSlot]] = None
    show_branding: Optional[bool] = None
    business_name: Optional[str] = None


class SlotResponse(BaseModel):
    date: date
    time: str  # HH:MM in the host timezone
    start: datetime  # host-local, timezone aware
    end: datetime


class BookingRequest(BaseModel):
    date: date
    time: str
    attendee_name: str = Field(min_length=1, max_length=200)
    attendee_email: EmailStr
    attendee_notes: Optional[str] = Field(default=None, max_length=2000)

    @field_validator("time")
    @classmethod
    def _hhmm(cls, value: str) -> str:
        if not _HHMM.match(value):
            raise ValueError("time must be HH:MM (24h)")
        return value


class AppointmentResponse(BaseModel):
    id: UUID
    user_id: UUID
    task_id: Optional[UUID] = None
    attendee_name: str
    attendee_email: str
    attendee_notes: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    created_at: datetime
    cancelled_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


# ---------------------------------------------------------------------------
# Schedule shares
# ---------------------------------------------------------------------------

class ShareCreate(BaseModel):
    recipient_identifier: str = Field(min_length=1)
    permission: SharePermission = "view"
    share_type: ShareType = "full"
    selected_task_ids: List[UUID] = []
    message: Optional[str] = Field(default=None, max_length=1000)


class ShareUpdate(BaseModel):
    permission: Optional[SharePermission] = None
    share_type: Optional[ShareType] = None
    selected_task_ids: Optional[List[UUID]] = None
    message: Optional[str] = Field(default=None, max_length=1000)


class ShareResponse(BaseModel):
    id: UUID
    owner_user_id: UUID
    shared_with_user_id: UUID
    permission: str
    share_type: str
    selected_task_ids: List[str] = []
    is_active: bool
    accepted_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    message: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    owner_username: Optional[str] = None
    shared_with_username: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SharedEvent(TaskResponse):
    is_shared: bool = True
    share_owner_username: str
    share_owner_id: UUID
    share_permission: str
    share_id: UUID


# ---------------------------------------------------------------------------
# Timer analytics
# ---------------------------------------------------------------------------

class TimerSessionCreate(BaseModel):
    task_id: Optional[UUID] = None
    timer_type: Literal["focus", "task"] = "task"
    planned_duration: int = Field(gt=0, description="seconds")
    actual_duration: int = Field(ge=0, description="seconds")
    started_at: Optional[datetime] = None


class TimerSessionResponse(BaseModel):
    id: UUID
    task_id: Optional[UUID] = None
    timer_type: str
    planned_duration: int
    actual_duration: int
    completed_early: bool
    early_completion_percentage: Optional[float] = None
    started_at: datetime
    completed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProductivityStats(BaseModel):
    total_sessions: int
    early_completions: int
    early_completion_rate: float
    average_early_percentage: float
    trend: Literal["improving", "declining", "stable"]


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

class NotificationResponse(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    task_id: Optional[UUID] = None
    is_read: bool
    scheduled_for: Optional[datetime] = None
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
