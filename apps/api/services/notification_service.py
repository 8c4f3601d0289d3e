"""
In-app notifications: inbox queries plus the daily reminder and cleanup jobs.
"""
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import utcnow
from core.config import settings
from core.exceptions import NotFoundError
from models import Notification, Task

logger = logging.getLogger(__name__)

REMINDER_TYPE = "calendar_reminder"


def list_notifications(db: Session, user_id: UUID, include_read: bool = False, limit: int = 50) -> List[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if not include_read:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc()).limit(limit).all()


def unread_count(db: Session, user_id: UUID) -> int:
    return (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .count()
    )


def mark_read(db: Session, user_id: UUID, notification_id: UUID) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user_id)
        .first()
    )
    if notification is None:
        raise NotFoundError("Notification", str(notification_id))
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.flush()
    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True, Notification.read_at: utcnow()}, synchronize_session=False)
    )
    db.flush()
    return updated


def create_calendar_reminders(db: Session, now: Optional[datetime] = None) -> int:
    """One reminder per incomplete task scheduled for tomorrow (UTC), never twice for a task."""
    now = now or utcnow()
    start = datetime.combine((now + timedelta(days=1)).date(), datetime.min.time())
    end = start + timedelta(days=1)

    due = (
        db.query(Task)
        .filter(
            Task.scheduled_date >= start,
            Task.scheduled_date < end,
            Task.completed.is_(False),
            Task.archived.is_(False),
        )
        .all()
    )
    if not due:
        return 0

    already = {
        task_id for (task_id,) in db.query(Notification.task_id).filter(
            Notification.type == REMINDER_TYPE,
            Notification.task_id.in_([t.id for t in due]),
        ).all()
    }
    created = 0
    for task in due:
        if task.id in already:
            continue
        db.add(Notification(
            user_id=task.user_id,
            type=REMINDER_TYPE,
            title="Upcoming Task Tomorrow",
            message=f'Don\'t forget: "{task.title}" is scheduled for tomorrow!',
            task_id=task.id,
            scheduled_for=now,
        ))
        created += 1
    db.flush()
    logger.info(
        "Calendar reminders created",
        extra={"extra_fields": {"reminders_created": created, "tasks_checked": len(due)}},
    )
    return created


def cleanup_old_notifications(db: Session, now: Optional[datetime] = None, days: Optional[int] = None) -> int:
    """Delete read notifications whose read_at is older than the retention window."""
    days = days if days is not None else settings.NOTIFICATION_RETENTION_DAYS
    cutoff = (now or utcnow()) - timedelta(days=days)
    deleted = (
        db.query(Notification)
        .filter(Notification.is_read.is_(True), Notification.read_at <= cutoff)
        .delete(synchronize_session=False)
    )
    db.flush()
    logger.info(f"Old notifications cleaned up: {deleted}")
    return deleted
