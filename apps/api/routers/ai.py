"""
AI assistant (AIDOMO) endpoints.

Provider failures never surface here: the service degrades to its
deterministic answers, so these routes always return 200 for valid input.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import List

from core.database import get_db
from core.auth import get_current_user
from models import User
from services import ai_service, task_service

router = APIRouter(prefix="/v1/ai", tags=["ai"])


class ParseTasksRequest(BaseModel):
    transcript: str = Field(min_length=1, max_length=5000)


class ParseTasksResponse(BaseModel):
    tasks: List[str]


class SuggestionsResponse(BaseModel):
    suggestions: List[str]
    insights: List[str]


@router.post("/parse-tasks", response_model=ParseTasksResponse)
def parse_tasks(
    payload: ParseTasksRequest,
    current_user: User = Depends(get_current_user),
):
    """Split a dictated transcript into individual task titles."""
    return {"tasks": ai_service.parse_tasks(payload.transcript)}


@router.get("/suggestions", response_model=SuggestionsResponse)
def task_suggestions(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Five suggested tasks and three insights based on the caller's list."""
    tasks = task_service.list_tasks(db, current_user)
    return ai_service.suggest_tasks([
        {"title": t.title, "category": t.category, "priority": t.priority, "completed": t.completed}
        for t in tasks
    ])
