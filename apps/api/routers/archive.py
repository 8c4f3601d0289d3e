"""
Archive API Router
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from core.database import get_db
from core.auth import get_current_user
from models import User
from routers.tasks import to_task_response, to_task_responses
from schemas import TaskResponse
from services import archive_service, task_service

router = APIRouter(prefix="/v1/archive", tags=["archive"])


@router.get("", response_model=List[TaskResponse])
def list_archived(
    category: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Archived tasks, most recently archived first."""
    return to_task_responses(db, archive_service.list_archived(db, current_user.id, category))


@router.post("/completed")
def archive_all_completed(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    archived = archive_service.archive_all_completed(db, current_user.id)
    db.commit()
    return {"success": True, "archived": archived}


@router.post("/tasks/{task_id}", response_model=TaskResponse)
def archive_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, current_user, task_id)
    archive_service.archive_task(db, task)
    db.commit()
    db.refresh(task)
    return to_task_response(db, task)


@router.delete("/tasks/{task_id}", response_model=TaskResponse)
def unarchive_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, current_user, task_id)
    archive_service.unarchive_task(db, task)
    db.commit()
    db.refresh(task)
    return to_task_response(db, task)
