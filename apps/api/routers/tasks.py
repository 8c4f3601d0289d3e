"""
Tasks API Router

CRUD for the caller's checklist, completion toggling, manual ordering and
checklist items. Archived tasks are served by the archive router.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from core.database import get_db
from core.auth import get_current_user
from models import User, Task
from schemas import TaskCreate, TaskUpdate, TaskResponse, ReorderRequest, AppointmentSummary
from services import task_service

router = APIRouter(prefix="/v1/tasks", tags=["tasks"])


def to_task_responses(db: Session, tasks: List[Task]) -> List[TaskResponse]:
    """Attach each task's linked appointment, if any."""
    appointments = task_service.appointments_by_task(db, tasks)
    responses = []
    for task in tasks:
        response = TaskResponse.model_validate(task)
        appointment = appointments.get(task.id)
        if appointment is not None:
            response.appointment = AppointmentSummary.model_validate(appointment)
        responses.append(response)
    return responses


def to_task_response(db: Session, task: Task) -> TaskResponse:
    return to_task_responses(db, [task])[0]


@router.get("", response_model=List[TaskResponse])
def list_tasks(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Non-archived tasks, incomplete first."""
    return to_task_responses(db, task_service.list_tasks(db, current_user))


@router.get("/high-priority", response_model=List[TaskResponse])
def list_high_priority(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return to_task_responses(db, task_service.list_high_priority(db, current_user))


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    payload: TaskCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = task_service.create_task(db, current_user, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(task)
    return to_task_response(db, task)


@router.post("/reorder")
def reorder_tasks(
    payload: ReorderRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updated = task_service.reorder_tasks(db, current_user, payload.task_ids)
    db.commit()
    return {"success": True, "updated": updated}


@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return to_task_response(db, task_service.get_task(db, current_user, task_id))


@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Partial update; a change of ``completed`` applies the completion side effects."""
    task = task_service.get_task(db, current_user, task_id)
    task_service.update_task(db, task, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(task)
    return to_task_response(db, task)


@router.post("/{task_id}/toggle", response_model=TaskResponse)
def toggle_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = task_service.toggle_task(db, current_user, task_id)
    db.commit()
    db.refresh(task)
    return to_task_response(db, task)


@router.post("/{task_id}/checklist/{item_id}/toggle", response_model=TaskResponse)
def toggle_checklist_item(
    task_id: UUID,
    item_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, current_user, task_id)
    task_service.toggle_checklist_item(db, task, item_id)
    db.commit()
    db.refresh(task)
    return to_task_response(db, task)


@router.delete("/{task_id}", status_code=204)
def delete_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task = task_service.get_task(db, current_user, task_id)
    task_service.delete_task(db, task)
    db.commit()
