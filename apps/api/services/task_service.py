"""
Task Service

CRUD for checklist tasks plus the side effects of completing one:
completion timestamp, statistics/achievement events and the next
occurrence of a recurring series.
"""
import logging
import uuid
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from core.clock import utcnow, to_naive_utc
from core.events import emit, EVENT_TASK_CREATED, EVENT_TASK_COMPLETED
from core.exceptions import NotFoundError, BadRequestError
from models import Task, Appointment, User
from services import recurrence

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Other"
DEFAULT_PRIORITY = "Medium"

_DATETIME_FIELDS = {"scheduled_date", "scheduled_end", "start_date", "project_end_date", "end_date"}
_UPDATABLE_FIELDS = {
    "title", "category", "priority", "timer", "youtube_url", "notes", "display_order",
    "scheduled_date", "scheduled_end", "duration_min", "buffer_before", "buffer_after", "is_fixed",
    "start_date", "project_end_date",
    "is_recurring", "recurring_frequency", "recurring_interval", "end_date",
    "days_of_week", "day_of_month", "month_of_year",
}
# NOT NULL columns; an explicit null in an update leaves the stored value alone
_REQUIRED_FIELDS = {
    "title", "category", "priority", "display_order",
    "buffer_before", "buffer_after", "is_fixed", "is_recurring", "recurring_interval",
}


def normalize_checklist(items: Optional[Iterable]) -> List[Dict]:
    """Give every checklist item an id and plain-dict shape."""
    normalized = []
    for item in items or []:
        data = item if isinstance(item, dict) else item.model_dump()
        normalized.append({
            "id": data.get("id") or uuid.uuid4().hex,
            "text": data["text"].strip(),
            "completed": bool(data.get("completed", False)),
        })
    return normalized


def _clean(field: str, value):
    if field in _DATETIME_FIELDS and value is not None:
        return to_naive_utc(value)
    if field == "title" and value is not None:
        return value.strip()
    return value


def _active_tasks_query(db: Session, user_id: UUID):
    return db.query(Task).filter(Task.user_id == user_id, Task.archived.is_(False))


def list_tasks(db: Session, user: User) -> List[Task]:
    """Non-archived tasks: incomplete first, then manual order, newest first."""
    return (
        _active_tasks_query(db, user.id)
        .order_by(Task.completed.asc(), Task.display_order.asc(), Task.created_at.desc())
        .all()
    )


def list_high_priority(db: Session, user: User) -> List[Task]:
    return (
        _active_tasks_query(db, user.id)
        .filter(Task.priority == "High", Task.completed.is_(False))
        .order_by(Task.display_order.asc(), Task.created_at.desc())
        .all()
    )


def appointments_by_task(db: Session, tasks: List[Task]) -> Dict[UUID, Appointment]:
    """Linked appointment per task id (booked meetings show on the host's list)."""
    ids = [t.id for t in tasks]
    if not ids:
        return {}
    rows = db.query(Appointment).filter(Appointment.task_id.in_(ids)).all()
    return {a.task_id: a for a in rows}


def get_task(db: Session, user: User, task_id: UUID) -> Task:
    task = db.query(Task).filter(Task.id == task_id, Task.user_id == user.id).first()
    if not task:
        raise NotFoundError("Task", str(task_id))
    return task


def create_task(db: Session, user: User, data: Dict, created_via: str = "manual") -> Task:
    """
    Create a task for ``user`` from validated input. A recurring task also
    gets its first occurrence.
    """
    title = (data.get("title") or "").strip()
    if not title:
        raise BadRequestError("Task title is required")

    task = Task(
        user_id=user.id,
        title=title,
        category=data.get("category") or DEFAULT_CATEGORY,
        priority=data.get("priority") or DEFAULT_PRIORITY,
        created_via=created_via,
        checklist_items=normalize_checklist(data.get("checklist_items")),
    )
    for field in _UPDATABLE_FIELDS - {"title", "category", "priority"}:
        value = data.get(field)
        if value is not None:
            setattr(task, field, _clean(field, value))

    if task.is_recurring and not task.recurring_frequency:
        raise BadRequestError("recurring_frequency is required for recurring tasks")

    db.add(task)
    db.flush()

    if task.is_recurring:
        recurrence.create_next_instance(db, task)

    emit(EVENT_TASK_CREATED, db=db, task=task)
    logger.info(
        "Task created",
        extra={"extra_fields": {"task_id": str(task.id), "user_id": str(user.id), "created_via": created_via}},
    )
    return task


def set_completed(db: Session, task: Task, completed: bool) -> Task:
    """Apply a completion transition; no-op when the flag does not change."""
    if task.completed == completed:
        return task

    task.completed = completed
    if completed:
        task.completed_at = utcnow()
        db.flush()
        emit(EVENT_TASK_COMPLETED, db=db, task=task)
        if task.parent_task_id:
            parent = db.query(Task).filter(Task.id == task.parent_task_id).first()
            if parent and parent.is_recurring:
                recurrence.create_next_instance(db, parent)
    else:
        task.completed_at = None
        db.flush()
    return task


def update_task(db: Session, task: Task, data: Dict) -> Task:
    if "checklist_items" in data and data["checklist_items"] is not None:
        task.checklist_items = normalize_checklist(data["checklist_items"])

    was_recurring = task.is_recurring
    for field in _UPDATABLE_FIELDS:
        if field in data and (data[field] is not None or field not in _REQUIRED_FIELDS):
            setattr(task, field, _clean(field, data[field]))

    if task.is_recurring and not task.recurring_frequency:
        raise BadRequestError("recurring_frequency is required for recurring tasks")

    if task.is_recurring and not was_recurring and task.parent_task_id is None:
        db.flush()
        recurrence.create_next_instance(db, task)

    if data.get("completed") is not None:
        set_completed(db, task, bool(data["completed"]))

    db.flush()
    return task


def toggle_task(db: Session, user: User, task_id: UUID) -> Task:
    task = get_task(db, user, task_id)
    return set_completed(db, task, not task.completed)


def delete_task(db: Session, task: Task) -> None:
    db.delete(task)
    db.flush()
    logger.info(f"Task deleted: {task.id}")


def reorder_tasks(db: Session, user: User, task_ids: List[UUID]) -> int:
    """Rewrite display_order to the position of each id in ``task_ids``."""
    if len(set(task_ids)) != len(task_ids):
        raise BadRequestError("Duplicate task ids in reorder request")

    owned = {
        t.id: t
        for t in db.query(Task).filter(Task.user_id == user.id, Task.id.in_(task_ids)).all()
    }
    missing = [str(tid) for tid in task_ids if tid not in owned]
    if missing:
        raise NotFoundError("Task", ", ".join(missing))

    for position, tid in enumerate(task_ids):
        owned[tid].display_order = position
    db.flush()
    return len(task_ids)


def toggle_checklist_item(db: Session, task: Task, item_id: str) -> Task:
    items = [dict(i) for i in (task.checklist_items or [])]
    for item in items:
        if item.get("id") == item_id:
            item["completed"] = not item.get("completed", False)
            break
    else:
        raise NotFoundError("Checklist item", item_id)
    # Reassign so the JSON column is marked dirty
    task.checklist_items = items
    db.flush()
    return task


def scheduled_tasks(db: Session, user_id: UUID, task_ids: Optional[List[UUID]] = None) -> List[Task]:
    """Non-archived tasks with a scheduled_date, earliest first."""
    query = _active_tasks_query(db, user_id).filter(Task.scheduled_date.isnot(None))
    if task_ids is not None:
        if not task_ids:
            return []
        query = query.filter(Task.id.in_(task_ids))
    return query.order_by(Task.scheduled_date.asc()).all()


def incomplete_tasks(db: Session, user_id: UUID) -> List[Task]:
    return (
        _active_tasks_query(db, user_id)
        .filter(Task.completed.is_(False))
        .order_by(Task.display_order.asc(), Task.created_at.desc())
        .all()
    )


def find_task_by_title(db: Session, user_id: UUID, fragment: str, incomplete_only: bool = True) -> Optional[Task]:
    """First task whose title contains ``fragment`` (case-insensitive), exact matches first."""
    fragment = (fragment or "").strip().lower()
    if not fragment:
        return None
    pool = incomplete_tasks(db, user_id) if incomplete_only else _active_tasks_query(db, user_id).all()
    candidates = [t for t in pool if fragment in t.title.lower()]
    if not candidates:
        return None
    candidates.sort(key=lambda t: (t.title.lower() != fragment, len(t.title)))
    return candidates[0]


def most_recent_incomplete(db: Session, user_id: UUID) -> Optional[Task]:
    return (
        _active_tasks_query(db, user_id)
        .filter(Task.completed.is_(False))
        .order_by(Task.created_at.desc())
        .first()
    )

