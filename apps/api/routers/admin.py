"""
Admin/Owners Dashboard API Router

Site overview metrics, user management and schedule-share oversight.
Owner/admin role only; role changes are owner only.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from sqlalchemy import or_
from pydantic import BaseModel, Field
from typing import Optional, Literal
from uuid import UUID
import logging

from core.database import get_db
from core.account_security import clear_lockout
from core.auth import require_admin, require_owner
from core.cache import invalidate_admin_overview
from models import User
from services import analytics_service, schedule_share_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class BlockUserRequest(BaseModel):
    blocked: bool
    reason: Optional[str] = Field(default=None, max_length=500)


class RoleChangeRequest(BaseModel):
    role: Literal["user", "admin", "owner"]


def _user_summary(user: User) -> dict:
    return {
        "id": str(user.id),
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "is_blocked": bool(user.is_blocked),
        "created_at": user.created_at.isoformat(),
        "last_login_at": user.last_login_at.isoformat() if user.last_login_at else None,
    }


@router.get("/overview")
def get_overview(
    refresh: bool = Query(False, description="Bypass the cached snapshot"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Users, tasks, appointments and schedule-share metrics.
    Cached in Redis for a short TTL when Redis is available.
    """
    return analytics_service.get_admin_overview(db, refresh=refresh)


@router.get("/users")
def list_users(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
    search: Optional[str] = Query(None, description="Search by username or email"),
    role: Optional[str] = Query(None, description="Filter by role"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    """
    List all users with filtering and pagination.
    Admin/owner only.
    """
    query = db.query(User)

    if search:
        query = query.filter(
            or_(
                User.email.ilike(f"%{search}%"),
                User.username.ilike(f"%{search}%")
            )
        )

    if role:
        query = query.filter(User.role == role)

    total = query.count()
    users = query.order_by(User.created_at.desc()).offset(offset).limit(limit).all()

    return {
        "total": total,
        "users": [_user_summary(user) for user in users],
        "offset": offset,
        "limit": limit,
    }


@router.post("/users/{user_id}/block")
def set_blocked(
    user_id: UUID,
    request: BlockUserRequest,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """
    Block/unblock a user from accessing authenticated endpoints.
    """
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if target.id == current_user.id:
        raise HTTPException(status_code=400, detail="You cannot block yourself")
    if target.role == "owner" and current_user.role != "owner":
        raise HTTPException(status_code=403, detail="Only an owner can block an owner")

    target.is_blocked = bool(request.blocked)
    if not target.is_blocked:
        clear_lockout(target.username)
    db.commit()
    db.refresh(target)
    invalidate_admin_overview()

    logger.info(
        "User block state changed",
        extra={"extra_fields": {
            "actor_id": str(current_user.id),
            "target_id": str(target.id),
            "is_blocked": target.is_blocked,
            "reason": request.reason,
        }},
    )
    return {"success": True, "user_id": str(target.id), "is_blocked": bool(target.is_blocked)}


@router.patch("/users/{user_id}/role")
def change_role(
    user_id: UUID,
    request: RoleChangeRequest,
    current_user: User = Depends(require_owner),
    db: Session = Depends(get_db),
):
    """Owner only."""
    target = db.query(User).filter(User.id == user_id).first()
    if not target:
        raise HTTPException(status_code=404, detail="User not found")
    if target.id == current_user.id and request.role != "owner":
        raise HTTPException(status_code=400, detail="Owners cannot demote themselves")

    previous = target.role
    target.role = request.role
    db.commit()
    logger.info(f"Role changed for {target.id}: {previous} -> {target.role} by {current_user.id}")
    return {"success": True, "user_id": str(target.id), "role": target.role}


@router.get("/schedule-shares/summary")
def schedule_share_summary(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return analytics_service.share_summary(db)


@router.get("/schedule-shares")
def list_schedule_shares(
    status: Optional[Literal["active", "pending", "accepted", "declined", "inactive"]] = Query(None),
    permission: Optional[Literal["view", "edit", "full"]] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return schedule_share_service.admin_list(db, status=status, permission=permission, limit=limit, offset=offset)


@router.get("/schedule-shares/timeline")
def schedule_share_timeline(
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    return {"days": days, "timeline": schedule_share_service.admin_timeline(db, days=days)}
