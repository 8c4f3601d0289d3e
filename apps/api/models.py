from sqlalchemy import Column, Integer, Boolean, Float, Date, DateTime, ForeignKey, Text, Index, UniqueConstraint, Uuid, JSON
from core.database import Base
from core.clock import utcnow
import uuid


TASK_CATEGORIES = ("Work", "Personal", "Shopping", "Health", "Business", "Other")
TASK_PRIORITIES = ("Low", "Medium", "High")
RECURRING_FREQUENCIES = ("daily", "weekly", "biweekly", "monthly", "yearly", "custom")
APPOINTMENT_STATUSES = ("scheduled", "confirmed", "cancelled", "completed", "no_show")
SHARE_PERMISSIONS = ("view", "edit", "full")
SHARE_TYPES = ("full", "selective")
USER_ROLES = ("user", "admin", "owner")

AUTO_ARCHIVE_HOUR_OPTIONS = (12, 24, 48, 72)
MIN_RETENTION_DAYS = 7
MAX_RETENTION_DAYS = 365


def default_availability() -> dict:
    """Mon-Fri 09:00-17:00, weekends off."""
    availability = {}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday"):
        availability[day] = {"enabled": True, "slots": [{"start": "09:00", "end": "17:00"}]}
    for day in ("saturday", "sunday"):
        availability[day] = {"enabled": False, "slots": []}
    return availability


class User(Base):
    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    username = Column(Text, unique=True, nullable=False)
    email = Column(Text, unique=True, nullable=True)
    password_hash = Column(Text, nullable=True)
    role = Column(Text, default="user", nullable=False)  # 'user', 'admin', 'owner'
    is_blocked = Column(Boolean, default=False, nullable=False)
    last_login_at = Column(DateTime, nullable=True)

    # --- PREFERENCES ---
    timer_sound = Column(Text, default="Gentle Bell", nullable=False)
    alarm_sound = Column(Text, default="Gentle Bell", nullable=False)
    timer_enabled = Column(Boolean, default=True, nullable=False)
    alarm_enabled = Column(Boolean, default=True, nullable=False)
    timezone = Column(Text, default="America/New_York", nullable=False)
    language = Column(Text, default="en", nullable=False)
    email_notifications = Column(Boolean, default=True, nullable=False)
    marketing_emails = Column(Boolean, default=False, nullable=False)
    achievements_enabled = Column(Boolean, default=True, nullable=False)
    data_collection_consent = Column(Boolean, default=False, nullable=False)
    voice_enabled = Column(Boolean, default=True, nullable=False)

    # --- ARCHIVE SETTINGS ---
    auto_archive_enabled = Column(Boolean, default=False, nullable=False)
    auto_archive_hours = Column(Integer, default=24, nullable=True)
    # NULL = keep archived tasks forever
    delete_archived_after_days = Column(Integer, nullable=True)


class Task(Base):
    __tablename__ = "task"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    title = Column(Text, nullable=False)
    category = Column(Text, default="Other", nullable=False)
    priority = Column(Text, default="Medium", nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)
    timer = Column(Integer, nullable=True)  # minutes
    youtube_url = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    display_order = Column(Integer, default=0, nullable=False)
    # 'manual' | 'voice' | 'ai' | 'template' | 'booking' | 'recurring'
    created_via = Column(Text, default="manual", nullable=False)
    checklist_items = Column(JSON, default=list, nullable=False)

    # --- SCHEDULING ---
    scheduled_date = Column(DateTime, nullable=True)
    scheduled_end = Column(DateTime, nullable=True)
    duration_min = Column(Integer, nullable=True)
    buffer_before = Column(Integer, default=5, nullable=False)
    buffer_after = Column(Integer, default=5, nullable=False)
    is_fixed = Column(Boolean, default=False, nullable=False)
    start_date = Column(DateTime, nullable=True)
    project_end_date = Column(DateTime, nullable=True)

    # --- RECURRENCE ---
    is_recurring = Column(Boolean, default=False, nullable=False)
    recurring_frequency = Column(Text, nullable=True)
    recurring_interval = Column(Integer, default=1, nullable=False)
    next_due_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    days_of_week = Column(JSON, nullable=True)  # 0=Sunday .. 6=Saturday
    day_of_month = Column(Integer, nullable=True)
    month_of_year = Column(Integer, nullable=True)  # 0=January
    parent_task_id = Column(Uuid, ForeignKey("task.id", ondelete="SET NULL"), nullable=True, index=True)

    # --- ARCHIVE ---
    archived = Column(Boolean, default=False, nullable=False)
    archived_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_task_user_archived", "user_id", "archived"),
    )


class SchedulingSettings(Base):
    """Per-user public booking page configuration."""
    __tablename__ = "scheduling_settings"

    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True)
    slug = Column(Text, unique=True, nullable=False)
    is_enabled = Column(Boolean, default=False, nullable=False)
    booking_window_days = Column(Integer, default=30, nullable=False)
    min_notice_minutes = Column(Integer, default=60, nullable=False)
    slot_duration = Column(Integer, default=30, nullable=False)
    availability = Column(JSON, default=default_availability, nullable=False)
    meeting_title = Column(Text, default="Meeting", nullable=False)
    meeting_description = Column(Text, nullable=True)
    timezone = Column(Text, default="America/New_York", nullable=False)
    notification_email = Column(Text, nullable=True)
    blocked_dates = Column(JSON, default=list, nullable=False)  # ["YYYY-MM-DD", ...]
    # [{"date": "YYYY-MM-DD", "slots": [{"start": "HH:MM", "end": "HH:MM"}]}]
    blocked_time_slots = Column(JSON, default=list, nullable=False)
    show_branding = Column(Boolean, default=True, nullable=False)
    business_name = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Appointment(Base):
    __tablename__ = "appointment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Uuid, ForeignKey("task.id", ondelete="SET NULL"), nullable=True, index=True)
    attendee_name = Column(Text, nullable=False)
    attendee_email = Column(Text, nullable=False)
    attendee_notes = Column(Text, nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    status = Column(Text, default="scheduled", nullable=False)
    cancellation_token = Column(Text, unique=True, nullable=False)
    cancelled_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_appointment_user_start", "user_id", "start_time"),
    )


class ScheduleShare(Base):
    __tablename__ = "schedule_share"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    shared_with_user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    permission = Column(Text, default="view", nullable=False)  # 'view' | 'edit' | 'full'
    share_type = Column(Text, default="full", nullable=False)  # 'full' | 'selective'
    selected_task_ids = Column(JSON, default=list, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    declined_at = Column(DateTime, nullable=True)
    message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class VoiceCommandSession(Base):
    """Voice dialogue state: one row per user."""
    __tablename__ = "voice_command_session"

    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True)
    is_listening = Column(Boolean, default=True, nullable=False)
    # 'add' | 'complete' | 'delete' | 'timer'
    pending_action = Column(Text, nullable=True)
    pending_payload = Column(JSON, nullable=True)
    active_task_id = Column(Uuid, ForeignKey("task.id", ondelete="SET NULL"), nullable=True)
    timer_minutes = Column(Integer, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class TimerSession(Base):
    __tablename__ = "timer_session"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Uuid, ForeignKey("task.id", ondelete="SET NULL"), nullable=True)
    timer_type = Column(Text, default="task", nullable=False)  # 'focus' | 'task'
    planned_duration = Column(Integer, nullable=False)  # seconds
    actual_duration = Column(Integer, nullable=False)  # seconds
    completed_early = Column(Boolean, default=False, nullable=False)
    early_completion_percentage = Column(Float, nullable=True)
    started_at = Column(DateTime, nullable=False)
    completed_at = Column(DateTime, default=utcnow, nullable=False)


class Achievement(Base):
    __tablename__ = "achievement"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    key = Column(Text, unique=True, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=False)
    # 'task_completion' | 'streak' | 'category' | 'timer' | 'voice' | 'sharing' | 'milestone'
    type = Column(Text, nullable=False)
    icon = Column(Text, nullable=False)
    target = Column(Integer, nullable=False)
    category = Column(Text, nullable=True)
    points = Column(Integer, default=10, nullable=False)
    rarity = Column(Text, default="common", nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)


class UserAchievement(Base):
    __tablename__ = "user_achievement"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    achievement_id = Column(Uuid, ForeignKey("achievement.id", ondelete="CASCADE"), nullable=False)
    progress = Column(Integer, default=0, nullable=False)
    is_completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "achievement_id", name="uq_user_achievement"),
    )


class UserStats(Base):
    __tablename__ = "user_stats"

    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), primary_key=True)
    total_tasks = Column(Integer, default=0, nullable=False)
    completed_tasks = Column(Integer, default=0, nullable=False)
    current_streak = Column(Integer, default=0, nullable=False)
    longest_streak = Column(Integer, default=0, nullable=False)
    last_completion_date = Column(Date, nullable=True)
    total_points = Column(Integer, default=0, nullable=False)
    work_tasks = Column(Integer, default=0, nullable=False)
    personal_tasks = Column(Integer, default=0, nullable=False)
    shopping_tasks = Column(Integer, default=0, nullable=False)
    health_tasks = Column(Integer, default=0, nullable=False)
    business_tasks = Column(Integer, default=0, nullable=False)
    other_tasks = Column(Integer, default=0, nullable=False)
    total_timer_minutes = Column(Integer, default=0, nullable=False)
    timer_tasks_completed = Column(Integer, default=0, nullable=False)
    voice_tasks_created = Column(Integer, default=0, nullable=False)
    tasks_shared = Column(Integer, default=0, nullable=False)
    tasks_received = Column(Integer, default=0, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class AnalyticsEvent(Base):
    __tablename__ = "analytics_event"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=True, index=True)
    event_type = Column(Text, nullable=False)
    event_data = Column(JSON, default=dict, nullable=False)
    session_id = Column(Text, nullable=True)
    platform = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)


class Notification(Base):
    __tablename__ = "notification"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Text, nullable=False)  # 'reminder' | 'booking' | 'share' | 'achievement'
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    task_id = Column(Uuid, ForeignKey("task.id", ondelete="SET NULL"), nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    scheduled_for = Column(DateTime, nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class TaskTemplate(Base):
    __tablename__ = "task_template"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Text, default="Other", nullable=False)
    # [{"title": str, "category": str, "priority": str, "timer": int|None}]
    tasks = Column(JSON, default=list, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    created_by_user_id = Column(Uuid, ForeignKey("app_user.id", ondelete="CASCADE"), nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)
    tags = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
