"""
Analytics API Router

Timer sessions and the productivity summary derived from them, plus the
client's product events (recorded only with data-collection consent).
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional

from core.database import get_db
from core.auth import get_current_user
from models import User
from schemas import TimerSessionCreate, TimerSessionResponse, ProductivityStats
from services import analytics_service

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


class EventRequest(BaseModel):
    event_type: str = Field(min_length=1, max_length=100)
    data: Dict[str, Any] = {}
    session_id: Optional[str] = Field(default=None, max_length=200)
    platform: Optional[str] = Field(default=None, max_length=50)


@router.post("/timer-sessions", response_model=TimerSessionResponse, status_code=status.HTTP_201_CREATED)
def record_timer_session(
    payload: TimerSessionCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = analytics_service.record_timer_session(
        db,
        current_user,
        planned_duration=payload.planned_duration,
        actual_duration=payload.actual_duration,
        timer_type=payload.timer_type,
        task_id=payload.task_id,
        started_at=payload.started_at,
    )
    db.commit()
    db.refresh(session)
    return session


@router.get("/timer-sessions", response_model=List[TimerSessionResponse])
def list_timer_sessions(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return analytics_service.list_timer_sessions(db, current_user.id, days)


@router.get("/productivity", response_model=ProductivityStats)
def productivity(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Last 30 days; trend compares this week's early-finish rate with last week's."""
    return analytics_service.productivity_stats(db, current_user.id)


@router.post("/events")
def track_event(
    payload: EventRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    event = analytics_service.track_event(
        db, current_user, payload.event_type, payload.data,
        session_id=payload.session_id, platform=payload.platform,
    )
    db.commit()
    return {"recorded": event is not None}
