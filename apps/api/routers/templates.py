"""
Task templates API Router
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, List, Optional
from datetime import datetime
from uuid import UUID

from core.database import get_db
from core.auth import get_current_user
from models import User
from routers.tasks import to_task_responses
from schemas import TaskResponse
from services import template_service

router = APIRouter(prefix="/v1/templates", tags=["templates"])


class TemplateResponse(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    category: str
    tasks: List[Dict]
    is_public: bool
    created_by_user_id: Optional[UUID] = None
    usage_count: int
    tags: List[str] = []
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: str = Field(default="Other", max_length=100)
    titles: List[str] = []
    task_ids: List[UUID] = []
    is_public: bool = False
    tags: List[str] = []


@router.get("", response_model=List[TemplateResponse])
def list_templates(
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Public templates plus the caller's own."""
    return template_service.list_templates(db, current_user, category=category, search=search)


@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template = template_service.create_template(
        db,
        current_user,
        name=payload.name,
        description=payload.description,
        category=payload.category,
        titles=payload.titles,
        task_ids=payload.task_ids,
        is_public=payload.is_public,
        tags=payload.tags,
    )
    db.commit()
    db.refresh(template)
    return template


@router.post("/{template_id}/apply", response_model=List[TaskResponse], status_code=status.HTTP_201_CREATED)
def apply_template(
    template_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create the template's tasks on the caller's list."""
    tasks = template_service.apply_template(db, current_user, template_id)
    db.commit()
    return to_task_responses(db, tasks)


@router.delete("/{template_id}", status_code=204)
def delete_template(
    template_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    template_service.delete_template(db, current_user, template_id)
    db.commit()
