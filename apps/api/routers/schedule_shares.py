"""
Schedule Sharing API Router

Owners share their scheduled tasks with another user; recipients accept,
view and (with edit/full permission) change the shared tasks.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from core.database import get_db
from core.auth import get_current_user
from models import User
from routers.tasks import to_task_response, to_task_responses
from schemas import ShareCreate, ShareUpdate, ShareResponse, SharedEvent, TaskResponse, Priority
from services import schedule_share_service as shares

router = APIRouter(prefix="/v1/schedule-shares", tags=["schedule-shares"])


class SharedTaskUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    category: Optional[str] = Field(default=None, max_length=50)
    priority: Optional[Priority] = None
    timer: Optional[int] = Field(default=None, ge=0, le=24 * 60)
    scheduled_date: Optional[datetime] = None
    notes: Optional[str] = None
    youtube_url: Optional[str] = None


class UserSearchResult(BaseModel):
    id: UUID
    username: str
    email: Optional[str] = None


class SharedScheduleResponse(BaseModel):
    share: ShareResponse
    tasks: List[TaskResponse]


@router.post("", response_model=ShareResponse, status_code=status.HTTP_201_CREATED)
def create_share(
    payload: ShareCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    share = shares.create_share(
        db,
        current_user,
        payload.recipient_identifier,
        permission=payload.permission,
        share_type=payload.share_type,
        selected_task_ids=payload.selected_task_ids,
        message=payload.message,
    )
    db.commit()
    db.refresh(share)
    return shares.serialize_share(db, share)


@router.get("/mine", response_model=List[ShareResponse])
def my_shares(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return shares.serialize_shares(db, shares.my_shares(db, current_user))


@router.get("/shared-with-me", response_model=List[ShareResponse])
def shared_with_me(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return shares.serialize_shares(db, shares.shared_with_me(db, current_user))


@router.get("/events", response_model=List[SharedEvent])
def shared_events(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Scheduled tasks visible through every accepted share, annotated with the owner."""
    events = []
    for share, owner_username, task in shares.shared_events(db, current_user):
        events.append(SharedEvent(
            **TaskResponse.model_validate(task).model_dump(),
            share_owner_username=owner_username,
            share_owner_id=share.owner_user_id,
            share_permission=share.permission,
            share_id=share.id,
        ))
    return events


@router.get("/search-users", response_model=List[UserSearchResult])
def search_users(
    q: str = Query(..., description="Username or email fragment (2+ characters)"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return shares.search_users(db, current_user, q)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
def update_shared_task(
    task_id: UUID,
    payload: SharedTaskUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Requires an accepted share with edit or full permission covering the task."""
    task = shares.update_shared_task(db, current_user, task_id, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(task)
    return to_task_response(db, task)


@router.delete("/tasks/{task_id}", status_code=204)
def delete_shared_task(
    task_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Requires an accepted share with full permission covering the task."""
    shares.delete_shared_task(db, current_user, task_id)
    db.commit()


@router.get("/{share_id}/schedule", response_model=SharedScheduleResponse)
def shared_schedule(
    share_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    share, tasks = shares.shared_schedule(db, current_user, share_id)
    return {"share": shares.serialize_share(db, share), "tasks": to_task_responses(db, tasks)}


@router.post("/{share_id}/accept", response_model=ShareResponse)
def accept_share(
    share_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    share = shares.accept_share(db, current_user, share_id)
    db.commit()
    db.refresh(share)
    return shares.serialize_share(db, share)


@router.post("/{share_id}/decline", response_model=ShareResponse)
def decline_share(
    share_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    share = shares.decline_share(db, current_user, share_id)
    db.commit()
    db.refresh(share)
    return shares.serialize_share(db, share)


@router.patch("/{share_id}", response_model=ShareResponse)
def update_share(
    share_id: UUID,
    payload: ShareUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    share = shares.update_share(db, current_user, share_id, payload.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(share)
    return shares.serialize_share(db, share)


@router.delete("/{share_id}")
def remove_share(
    share_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    shares.remove_share(db, current_user, share_id)
    db.commit()
    return {"success": True}
