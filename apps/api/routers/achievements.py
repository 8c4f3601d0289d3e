"""
Achievements and user statistics.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict
from typing import List, Optional
from datetime import date, datetime

from core.database import get_db
from core.auth import get_current_user
from models import User
from services import achievement_service

router = APIRouter(prefix="/v1/achievements", tags=["achievements"])


class AchievementProgress(BaseModel):
    id: str
    key: str
    name: str
    description: str
    type: str
    icon: Optional[str] = None
    target: int
    points: int
    rarity: str
    progress: int
    is_completed: bool
    completed_at: Optional[datetime] = None


class UserStatsResponse(BaseModel):
    total_tasks: int
    completed_tasks: int
    current_streak: int
    longest_streak: int
    last_completion_date: Optional[date] = None
    total_points: int
    work_tasks: int
    personal_tasks: int
    shopping_tasks: int
    health_tasks: int
    business_tasks: int
    other_tasks: int
    total_timer_minutes: int
    timer_tasks_completed: int
    voice_tasks_created: int
    tasks_shared: int
    tasks_received: int

    model_config = ConfigDict(from_attributes=True)


@router.get("", response_model=List[AchievementProgress])
def list_achievements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Full catalogue with the caller's progress."""
    return achievement_service.list_user_achievements(db, current_user.id)


@router.get("/stats", response_model=UserStatsResponse)
def get_stats(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    stats = achievement_service.get_stats(db, current_user.id)
    db.commit()
    return stats
