"""
Archive Service

Archiving hides completed tasks from the main list without deleting
them. Users may opt in to automatic archiving after N hours and to
hard deletion of archived tasks after a retention period.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import utcnow
from core.exceptions import BadRequestError
from models import Task, Appointment, User, MIN_RETENTION_DAYS

logger = logging.getLogger(__name__)

DEFAULT_AUTO_ARCHIVE_HOURS = 24


def archive_task(db: Session, task: Task) -> Task:
    if not task.completed:
        raise BadRequestError("Only completed tasks can be archived")
    if not task.archived:
        task.archived = True
        task.archived_at = utcnow()
        db.flush()
    return task


def unarchive_task(db: Session, task: Task) -> Task:
    task.archived = False
    task.archived_at = None
    db.flush()
    return task


def list_archived(db: Session, user_id: UUID, category: Optional[str] = None) -> List[Task]:
    query = db.query(Task).filter(Task.user_id == user_id, Task.archived.is_(True))
    if category:
        query = query.filter(Task.category == category)
    return query.order_by(Task.archived_at.desc()).all()


def archive_all_completed(db: Session, user_id: UUID) -> int:
    """Archive every completed, unarchived task now."""
    tasks = (
        db.query(Task)
        .filter(Task.user_id == user_id, Task.completed.is_(True), Task.archived.is_(False))
        .all()
    )
    now = utcnow()
    for task in tasks:
        task.archived = True
        task.archived_at = now
    db.flush()
    return len(tasks)


def auto_archive_for_user(db: Session, user: User, now: Optional[datetime] = None) -> Tuple[int, int]:
    """
    Archive completed tasks older than the user's auto-archive window, then
    purge archived tasks older than the retention window.

    Returns:
        (archived_count, deleted_count)
    """
    now = now or utcnow()

    if user.auto_archive_hours is None:
        user.auto_archive_hours = DEFAULT_AUTO_ARCHIVE_HOURS

    archive_cutoff = now - timedelta(hours=user.auto_archive_hours)
    due = (
        db.query(Task)
        .filter(
            Task.user_id == user.id,
            Task.completed.is_(True),
            Task.archived.is_(False),
            Task.completed_at.isnot(None),
            Task.completed_at < archive_cutoff,
        )
        .all()
    )
    for task in due:
        task.archived = True
        # Backdate to completion so retention counts from when the task was done
        task.archived_at = task.completed_at or task.created_at

    db.flush()

    deleted = 0
    retention = user.delete_archived_after_days
    if retention is not None and retention >= MIN_RETENTION_DAYS:
        delete_cutoff = now - timedelta(days=retention)
        expired_ids = [
            task_id for (task_id,) in db.query(Task.id).filter(
                Task.user_id == user.id,
                Task.archived.is_(True),
                Task.archived_at.isnot(None),
                Task.archived_at < delete_cutoff,
            ).all()
        ]
        if expired_ids:
            db.query(Appointment).filter(Appointment.task_id.in_(expired_ids)).delete(synchronize_session=False)
            db.query(Task).filter(Task.parent_task_id.in_(expired_ids)).update(
                {Task.parent_task_id: None}, synchronize_session=False
            )
            deleted = db.query(Task).filter(Task.id.in_(expired_ids)).delete(synchronize_session=False)
            db.flush()

    if due or deleted:
        logger.info(
            "Auto-archive run",
            extra={"extra_fields": {"user_id": str(user.id), "archived": len(due), "deleted": deleted}},
        )
    return len(due), deleted


def run_auto_archive(db: Session, now: Optional[datetime] = None) -> dict:
    """Auto-archive for every opted-in user. Per-user failures are logged and skipped."""
    totals = {"users": 0, "archived": 0, "deleted": 0, "errors": 0}
    users = db.query(User).filter(User.auto_archive_enabled.is_(True)).all()
    for user in users:
        try:
            archived, deleted = auto_archive_for_user(db, user, now=now)
            db.commit()
        except Exception as e:
            db.rollback()
            totals["errors"] += 1
            logger.error(f"Auto-archive failed for user {user.id}: {e}", exc_info=True)
            continue
        totals["users"] += 1
        totals["archived"] += archived
        totals["deleted"] += deleted
    return totals
