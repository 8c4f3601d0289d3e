"""
Analytics Service

- Timer sessions and the productivity summary derived from them
- Consent-gated product event tracking
- Admin overview metrics (cached in Redis when available)
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from core.cache import get_cache, set_cache, ADMIN_OVERVIEW_KEY
from core.clock import utcnow, to_naive_utc
from core.config import settings
from core.events import (
    subscribe, EVENT_TASK_CREATED, EVENT_TASK_COMPLETED, EVENT_USER_LOGGED_IN, EVENT_APPOINTMENT_BOOKED,
)
from core.exceptions import NotFoundError
from models import TimerSession, AnalyticsEvent, User, Task, Appointment, ScheduleShare

logger = logging.getLogger(__name__)

PRODUCTIVITY_WINDOW_DAYS = 30
TREND_BAND_PERCENT = 10

# Only these metadata keys are persisted with an analytics event.
EVENT_DATA_ALLOWLIST = {"category", "priority", "source", "created_via", "timer", "platform", "feature", "count"}


# ---------------------------------------------------------------------------
# Timer sessions
# ---------------------------------------------------------------------------

def record_timer_session(
    db: Session,
    user: User,
    planned_duration: int,
    actual_duration: int,
    timer_type: str = "task",
    task_id: Optional[UUID] = None,
    started_at: Optional[datetime] = None,
) -> TimerSession:
    """Early completion = stopped before the planned duration elapsed."""
    if task_id is not None:
        owned = db.query(Task.id).filter(Task.id == task_id, Task.user_id == user.id).first()
        if not owned:
            raise NotFoundError("Task", str(task_id))

    completed_early = actual_duration < planned_duration
    early_pct = None
    if completed_early and planned_duration > 0:
        early_pct = round((planned_duration - actual_duration) / planned_duration * 100, 1)

    now = utcnow()
    session = TimerSession(
        user_id=user.id,
        task_id=task_id,
        timer_type=timer_type,
        planned_duration=planned_duration,
        actual_duration=actual_duration,
        completed_early=completed_early,
        early_completion_percentage=early_pct,
        started_at=to_naive_utc(started_at) if started_at else now - timedelta(seconds=actual_duration),
        completed_at=now,
    )
    db.add(session)
    db.flush()
    logger.info(
        "Timer session recorded",
        extra={"extra_fields": {"user_id": str(user.id), "timer_type": timer_type, "completed_early": completed_early}},
    )
    return session


def list_timer_sessions(db: Session, user_id: UUID, days: int = PRODUCTIVITY_WINDOW_DAYS, now: Optional[datetime] = None) -> List[TimerSession]:
    since = (now or utcnow()) - timedelta(days=days)
    return (
        db.query(TimerSession)
        .filter(TimerSession.user_id == user_id, TimerSession.started_at >= since)
        .order_by(TimerSession.completed_at.desc())
        .all()
    )


def _early_rate(sessions: List[TimerSession]) -> float:
    if not sessions:
        return 0.0
    return sum(1 for s in sessions if s.completed_early) / len(sessions) * 100


def productivity_trend(recent_rate: float, previous_rate: float) -> str:
    if recent_rate > previous_rate + TREND_BAND_PERCENT:
        return "improving"
    if recent_rate < previous_rate - TREND_BAND_PERCENT:
        return "declining"
    return "stable"


def productivity_stats(db: Session, user_id: UUID, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Summary of the last 30 days; trend compares the last 7 days with the 7 before."""
    now = now or utcnow()
    sessions = list_timer_sessions(db, user_id, PRODUCTIVITY_WINDOW_DAYS, now=now)

    early = [s for s in sessions if s.completed_early]
    early_pcts = [s.early_completion_percentage for s in early if s.early_completion_percentage]
    average_early = round(sum(early_pcts) / len(early_pcts)) if early_pcts else 0

    week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)
    last_week = [s for s in sessions if s.completed_at >= week_ago]
    previous_week = [s for s in sessions if two_weeks_ago <= s.completed_at < week_ago]

    return {
        "total_sessions": len(sessions),
        "early_completions": len(early),
        "early_completion_rate": round(_early_rate(sessions), 1),
        "average_early_percentage": float(average_early),
        "trend": productivity_trend(_early_rate(last_week), _early_rate(previous_week)),
    }


# ---------------------------------------------------------------------------
# Product events
# ---------------------------------------------------------------------------

def track_event(
    db: Session,
    user: Optional[User],
    event_type: str,
    data: Optional[Dict[str, Any]] = None,
    session_id: Optional[str] = None,
    platform: Optional[str] = None,
) -> Optional[AnalyticsEvent]:
    """Persist an event only for users who consented to data collection."""
    if user is None or not user.data_collection_consent:
        return None
    filtered = {k: v for k, v in (data or {}).items() if k in EVENT_DATA_ALLOWLIST}
    event = AnalyticsEvent(
        user_id=user.id,
        event_type=event_type,
        event_data=filtered,
        session_id=session_id,
        platform=platform,
    )
    db.add(event)
    db.flush()
    return event


def _owner(db: Session, user_id: UUID) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


@subscribe(EVENT_TASK_CREATED)
def on_task_created(db: Session, task: Task, **_):
    track_event(db, _owner(db, task.user_id), "task_created", {
        "category": task.category, "priority": task.priority, "created_via": task.created_via,
    })


@subscribe(EVENT_TASK_COMPLETED)
def on_task_completed(db: Session, task: Task, **_):
    track_event(db, _owner(db, task.user_id), "task_completed", {
        "category": task.category, "timer": task.timer,
    })


@subscribe(EVENT_USER_LOGGED_IN)
def on_user_logged_in(db: Session, user: User, **_):
    track_event(db, user, "login")


@subscribe(EVENT_APPOINTMENT_BOOKED)
def on_appointment_booked(db: Session, appointment: Appointment, **_):
    track_event(db, _owner(db, appointment.user_id), "appointment_booked", {"source": "public_page"})


# ---------------------------------------------------------------------------
# Admin overview
# ---------------------------------------------------------------------------

def _count_by(db: Session, column) -> Dict[str, int]:
    return {str(key): count for key, count in db.query(column, func.count()).group_by(column).all()}


def share_summary(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    week_ago = now - timedelta(days=7)
    base = db.query(ScheduleShare)
    active = base.filter(ScheduleShare.is_active.is_(True))
    return {
        "total": base.count(),
        "active": active.count(),
        "pending": active.filter(ScheduleShare.accepted_at.is_(None)).count(),
        "accepted": active.filter(ScheduleShare.accepted_at.isnot(None)).count(),
        "declined": base.filter(ScheduleShare.declined_at.isnot(None)).count(),
        "by_permission": _count_by(db, ScheduleShare.permission),
        "by_share_type": _count_by(db, ScheduleShare.share_type),
        "created_last_7_days": base.filter(ScheduleShare.created_at >= week_ago).count(),
    }


def build_admin_overview(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    total_tasks = db.query(Task).count()
    completed_tasks = db.query(Task).filter(Task.completed.is_(True)).count()
    active_users = (
        db.query(func.count(func.distinct(Task.user_id)))
        .filter(Task.created_at >= week_ago)
        .scalar()
    ) or 0

    return {
        "generated_at": now.isoformat(),
        "users": {
            "total": db.query(User).count(),
            "new_last_7_days": db.query(User).filter(User.created_at >= week_ago).count(),
            "new_last_30_days": db.query(User).filter(User.created_at >= month_ago).count(),
            "active_last_7_days": active_users,
            "blocked": db.query(User).filter(User.is_blocked.is_(True)).count(),
        },
        "tasks": {
            "total": total_tasks,
            "completed": completed_tasks,
            "completion_rate": round(completed_tasks / total_tasks * 100, 1) if total_tasks else 0.0,
            "archived": db.query(Task).filter(Task.archived.is_(True)).count(),
            "by_category": _count_by(db, Task.category),
            "voice_created": db.query(Task).filter(Task.created_via == "voice").count(),
        },
        "appointments": {
            "total": db.query(Appointment).count(),
            "by_status": _count_by(db, Appointment.status),
        },
        "schedule_shares": share_summary(db, now=now),
    }


def get_admin_overview(db: Session, refresh: bool = False) -> Dict[str, Any]:
    if not refresh:
        cached = get_cache(ADMIN_OVERVIEW_KEY)
        if cached is not None:
            return cached
    overview = build_admin_overview(db)
    set_cache(ADMIN_OVERVIEW_KEY, overview, ttl=settings.CACHE_TTL_ADMIN_OVERVIEW)
    return overview
