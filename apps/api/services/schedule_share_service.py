"""
Schedule Share Service

An owner grants a recipient access to the scheduled tasks on their
calendar: the whole calendar (``full``) or a hand-picked set of tasks
(``selective``). The recipient accepts or declines; either party can end
the share. Ended shares are soft-deleted (``is_active = False``).

Permissions:
- view: read the shared schedule
- edit: also update tasks in scope
- full: also delete tasks in scope
"""
import logging
import re
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Any, Tuple
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from core.clock import utcnow, to_naive_utc
from core.events import emit, EVENT_TASK_SHARED
from core.exceptions import NotFoundError, BadRequestError, ForbiddenError
from models import ScheduleShare, User, Task, Notification
from services import task_service

logger = logging.getLogger(__name__)

SEARCH_MIN_CHARS = 2
SEARCH_LIMIT = 5
_EMAIL_MASK = re.compile(r"(.{2})(.*)(@.*)")

# Fields a recipient with edit rights may change on the owner's task.
SHARED_TASK_EDITABLE_FIELDS = ("title", "category", "priority", "timer", "scheduled_date", "notes", "youtube_url")


def mask_email(email: Optional[str]) -> Optional[str]:
    if not email:
        return email
    return _EMAIL_MASK.sub(r"\1***\3", email)


def _find_recipient(db: Session, identifier: str) -> Optional[User]:
    identifier = identifier.strip()
    return (
        db.query(User)
        .filter(or_(func.lower(User.username) == identifier.lower(), func.lower(User.email) == identifier.lower()))
        .first()
    )


def _usernames(db: Session, ids) -> Dict[UUID, str]:
    ids = list({i for i in ids if i})
    if not ids:
        return {}
    return {uid: name for uid, name in db.query(User.id, User.username).filter(User.id.in_(ids)).all()}


def serialize_share(db: Session, share: ScheduleShare, names: Optional[Dict[UUID, str]] = None) -> Dict[str, Any]:
    names = names if names is not None else _usernames(db, [share.owner_user_id, share.shared_with_user_id])
    return {
        "id": share.id,
        "owner_user_id": share.owner_user_id,
        "shared_with_user_id": share.shared_with_user_id,
        "permission": share.permission,
        "share_type": share.share_type,
        "selected_task_ids": list(share.selected_task_ids or []),
        "is_active": share.is_active,
        "accepted_at": share.accepted_at,
        "declined_at": share.declined_at,
        "message": share.message,
        "created_at": share.created_at,
        "updated_at": share.updated_at,
        "owner_username": names.get(share.owner_user_id),
        "shared_with_username": names.get(share.shared_with_user_id),
    }


def serialize_shares(db: Session, shares: List[ScheduleShare]) -> List[Dict[str, Any]]:
    ids = [s.owner_user_id for s in shares] + [s.shared_with_user_id for s in shares]
    names = _usernames(db, ids)
    return [serialize_share(db, s, names) for s in shares]


def _owned_task_ids(db: Session, owner_id: UUID, task_ids: List[UUID]) -> List[str]:
    if not task_ids:
        return []
    owned = {tid for (tid,) in db.query(Task.id).filter(Task.user_id == owner_id, Task.id.in_(task_ids)).all()}
    missing = [str(t) for t in task_ids if t not in owned]
    if missing:
        raise NotFoundError("Task", ", ".join(missing))
    return [str(t) for t in task_ids]


def create_share(
    db: Session,
    owner: User,
    recipient_identifier: str,
    permission: str = "view",
    share_type: str = "full",
    selected_task_ids: Optional[List[UUID]] = None,
    message: Optional[str] = None,
) -> ScheduleShare:
    recipient = _find_recipient(db, recipient_identifier)
    if recipient is None:
        raise NotFoundError("User", recipient_identifier)
    if recipient.id == owner.id:
        raise BadRequestError("You cannot share your schedule with yourself")

    existing = (
        db.query(ScheduleShare)
        .filter(
            ScheduleShare.owner_user_id == owner.id,
            ScheduleShare.shared_with_user_id == recipient.id,
            ScheduleShare.is_active.is_(True),
        )
        .first()
    )
    if existing:
        raise BadRequestError("You already have an active share with this user")

    selected = _owned_task_ids(db, owner.id, selected_task_ids or []) if share_type == "selective" else []
    if share_type == "selective" and not selected:
        raise BadRequestError("Select at least one task for a selective share")

    share = ScheduleShare(
        owner_user_id=owner.id,
        shared_with_user_id=recipient.id,
        permission=permission,
        share_type=share_type,
        selected_task_ids=selected,
        message=message,
        is_active=True,
    )
    db.add(share)
    db.add(Notification(
        user_id=recipient.id,
        type="share",
        title="Schedule shared with you",
        message=f"{owner.username} shared their schedule with you ({permission} access)",
    ))
    db.flush()

    shared_count = len(selected) if share_type == "selective" else len(task_service.scheduled_tasks(db, owner.id))
    emit(EVENT_TASK_SHARED, db=db, owner_id=owner.id, recipient_id=recipient.id, task_count=max(1, shared_count))
    logger.info(
        "Schedule shared",
        extra={"extra_fields": {"share_id": str(share.id), "owner_id": str(owner.id), "recipient_id": str(recipient.id)}},
    )
    return share


def my_shares(db: Session, owner: User) -> List[ScheduleShare]:
    """Active shares plus declined ones; shares removed by hand are hidden."""
    return (
        db.query(ScheduleShare)
        .filter(
            ScheduleShare.owner_user_id == owner.id,
            or_(ScheduleShare.is_active.is_(True), ScheduleShare.declined_at.isnot(None)),
        )
        .order_by(ScheduleShare.created_at.desc())
        .all()
    )


def shared_with_me(db: Session, recipient: User) -> List[ScheduleShare]:
    return (
        db.query(ScheduleShare)
        .filter(ScheduleShare.shared_with_user_id == recipient.id, ScheduleShare.is_active.is_(True))
        .order_by(ScheduleShare.created_at.desc())
        .all()
    )


def _get_share(db: Session, share_id: UUID) -> ScheduleShare:
    share = db.query(ScheduleShare).filter(ScheduleShare.id == share_id).first()
    if share is None:
        raise NotFoundError("Share", str(share_id))
    return share


def _recipient_share(db: Session, user: User, share_id: UUID) -> ScheduleShare:
    share = _get_share(db, share_id)
    if share.shared_with_user_id != user.id or not share.is_active:
        raise NotFoundError("Share", str(share_id))
    return share


def accept_share(db: Session, user: User, share_id: UUID) -> ScheduleShare:
    share = _recipient_share(db, user, share_id)
    if share.accepted_at is None:
        share.accepted_at = utcnow()
        db.flush()
    return share


def decline_share(db: Session, user: User, share_id: UUID) -> ScheduleShare:
    share = _recipient_share(db, user, share_id)
    share.is_active = False
    share.declined_at = utcnow()
    db.flush()
    return share


def update_share(db: Session, owner: User, share_id: UUID, data: Dict[str, Any]) -> ScheduleShare:
    share = _get_share(db, share_id)
    if share.owner_user_id != owner.id or not share.is_active:
        raise NotFoundError("Share", str(share_id))

    if data.get("permission") is not None:
        share.permission = data["permission"]
    if data.get("share_type") is not None:
        share.share_type = data["share_type"]
    if "message" in data:
        share.message = data["message"]
    if data.get("selected_task_ids") is not None:
        share.selected_task_ids = _owned_task_ids(db, owner.id, data["selected_task_ids"])
    if share.share_type == "full":
        share.selected_task_ids = []
    elif not share.selected_task_ids:
        raise BadRequestError("Select at least one task for a selective share")

    db.flush()
    return share


def remove_share(db: Session, user: User, share_id: UUID) -> ScheduleShare:
    share = _get_share(db, share_id)
    if user.id not in (share.owner_user_id, share.shared_with_user_id):
        raise NotFoundError("Share", str(share_id))
    share.is_active = False
    db.flush()
    return share


def tasks_in_scope(db: Session, share: ScheduleShare) -> List[Task]:
    """Scheduled, non-archived owner tasks covered by the share."""
    if share.share_type == "selective":
        ids = [UUID(t) for t in (share.selected_task_ids or [])]
        return task_service.scheduled_tasks(db, share.owner_user_id, ids)
    return task_service.scheduled_tasks(db, share.owner_user_id)


def shared_schedule(db: Session, user: User, share_id: UUID) -> Tuple[ScheduleShare, List[Task]]:
    share = _recipient_share(db, user, share_id)
    return share, tasks_in_scope(db, share)


def shared_events(db: Session, user: User) -> List[Tuple[ScheduleShare, str, Task]]:
    """(share, owner_username, task) for every task visible through accepted shares."""
    shares = (
        db.query(ScheduleShare)
        .filter(
            ScheduleShare.shared_with_user_id == user.id,
            ScheduleShare.is_active.is_(True),
            ScheduleShare.accepted_at.isnot(None),
        )
        .all()
    )
    names = _usernames(db, [s.owner_user_id for s in shares])
    events = []
    for share in shares:
        for task in tasks_in_scope(db, share):
            events.append((share, names.get(share.owner_user_id, ""), task))
    events.sort(key=lambda e: e[2].scheduled_date)
    return events


def _share_granting(db: Session, user: User, task: Task, permissions: Tuple[str, ...]) -> Optional[ScheduleShare]:
    shares = (
        db.query(ScheduleShare)
        .filter(
            ScheduleShare.owner_user_id == task.user_id,
            ScheduleShare.shared_with_user_id == user.id,
            ScheduleShare.is_active.is_(True),
            ScheduleShare.accepted_at.isnot(None),
            ScheduleShare.permission.in_(permissions),
        )
        .all()
    )
    for share in shares:
        if share.share_type == "full" or str(task.id) in (share.selected_task_ids or []):
            return share
    return None


def _shared_task(db: Session, task_id: UUID) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if task is None:
        raise NotFoundError("Task", str(task_id))
    return task


def update_shared_task(db: Session, user: User, task_id: UUID, data: Dict[str, Any]) -> Task:
    task = _shared_task(db, task_id)
    if _share_granting(db, user, task, ("edit", "full")) is None:
        raise ForbiddenError("You do not have permission to edit this task")

    updates = {k: v for k, v in data.items() if k in SHARED_TASK_EDITABLE_FIELDS}
    if not updates:
        raise BadRequestError("No valid updates provided")

    for field, value in updates.items():
        if field == "scheduled_date" and value is not None:
            value = to_naive_utc(value)
        if field in ("title", "category", "priority") and value is None:
            continue
        setattr(task, field, value)
    db.flush()
    logger.info(f"Shared task {task.id} updated by {user.id}: {sorted(updates)}")
    return task


def delete_shared_task(db: Session, user: User, task_id: UUID) -> None:
    task = _shared_task(db, task_id)
    if _share_granting(db, user, task, ("full",)) is None:
        raise ForbiddenError("You do not have permission to delete this task. Full access is required.")
    task_service.delete_task(db, task)


def search_users(db: Session, user: User, query: str) -> List[Dict[str, Any]]:
    query = (query or "").strip()
    if len(query) < SEARCH_MIN_CHARS:
        raise BadRequestError(f"Search query must be at least {SEARCH_MIN_CHARS} characters")
    pattern = f"%{query.lower()}%"
    matches = (
        db.query(User)
        .filter(
            User.id != user.id,
            User.is_blocked.is_(False),
            or_(func.lower(User.username).like(pattern), func.lower(User.email).like(pattern)),
        )
        .order_by(User.username.asc())
        .limit(SEARCH_LIMIT)
        .all()
    )
    return [{"id": u.id, "username": u.username, "email": mask_email(u.email)} for u in matches]


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

def admin_list(
    db: Session,
    status: Optional[str] = None,
    permission: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> Dict[str, Any]:
    query = db.query(ScheduleShare)
    if status == "active":
        query = query.filter(ScheduleShare.is_active.is_(True))
    elif status == "pending":
        query = query.filter(ScheduleShare.is_active.is_(True), ScheduleShare.accepted_at.is_(None))
    elif status == "accepted":
        query = query.filter(ScheduleShare.is_active.is_(True), ScheduleShare.accepted_at.isnot(None))
    elif status == "declined":
        query = query.filter(ScheduleShare.declined_at.isnot(None))
    elif status == "inactive":
        query = query.filter(ScheduleShare.is_active.is_(False))
    if permission:
        query = query.filter(ScheduleShare.permission == permission)

    total = query.count()
    shares = query.order_by(ScheduleShare.created_at.desc()).offset(offset).limit(limit).all()
    return {"total": total, "limit": limit, "offset": offset, "shares": serialize_shares(db, shares)}


def admin_timeline(db: Session, days: int = 30, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Per-day counts of shares created, accepted and ended over the last ``days`` days."""
    now = now or utcnow()
    start = (now - timedelta(days=days)).date()
    timeline = {
        (start + timedelta(days=i)).isoformat(): {"created": 0, "accepted": 0, "declined": 0}
        for i in range((now.date() - start).days + 1)
    }
    since = datetime.combine(start, datetime.min.time())
    shares = (
        db.query(ScheduleShare)
        .filter(or_(
            ScheduleShare.created_at >= since,
            ScheduleShare.accepted_at >= since,
            ScheduleShare.updated_at >= since,
        ))
        .all()
    )
    for share in shares:
        for field, stamp in (
            ("created", share.created_at),
            ("accepted", share.accepted_at),
            ("declined", share.declined_at if share.declined_at else (share.updated_at if not share.is_active else None)),
        ):
            if stamp is not None:
                key = stamp.date().isoformat()
                if key in timeline:
                    timeline[key][field] += 1
    return [{"date": day, **counts} for day, counts in sorted(timeline.items())]
