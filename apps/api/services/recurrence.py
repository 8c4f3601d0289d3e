"""
Recurring task scheduling.

A recurring task is a template ("parent"). Each occurrence is a plain,
non-recurring child task pointing back through ``parent_task_id`` and
carrying its own ``next_due_date``.

Frequencies:
- daily:    + interval days
- weekly:   next listed weekday (0=Sunday) when days_of_week is set,
            otherwise + 7 * interval days
- biweekly: + 14 * interval days
- monthly:  + interval months, pinned to day_of_month when set
- yearly:   + interval years, pinned to month_of_year/day_of_month when set
- custom:   + interval days

Days past the end of a month are clamped (Jan 31 + 1 month -> Feb 28/29).
"""
import calendar
import logging
from datetime import datetime, timedelta
from typing import Optional, List

from sqlalchemy.orm import Session

from core.clock import utcnow
from models import Task

logger = logging.getLogger(__name__)


def _clamp_day(year: int, month: int, day: int) -> int:
    return min(day, calendar.monthrange(year, month)[1])


def add_months(value: datetime, months: int, day: Optional[int] = None) -> datetime:
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    return value.replace(year=year, month=month, day=_clamp_day(year, month, day or value.day))


def _python_weekday_to_sunday_zero(value: datetime) -> int:
    # datetime.weekday(): Monday=0; stored days_of_week: Sunday=0
    return (value.weekday() + 1) % 7


def next_due_date(task: Task, base: Optional[datetime] = None, now: Optional[datetime] = None) -> Optional[datetime]:
    """Next occurrence after ``base`` (defaults to the task's next_due_date, then now)."""
    frequency = task.recurring_frequency
    if not frequency:
        return None

    now = now or utcnow()
    current = base or task.next_due_date or now
    interval = max(1, task.recurring_interval or 1)

    if frequency in ("daily", "custom"):
        return current + timedelta(days=interval)

    if frequency == "weekly":
        days: List[int] = [d for d in (task.days_of_week or []) if 0 <= d <= 6]
        if days:
            today = _python_weekday_to_sunday_zero(current)
            for offset in range(1, 8):
                if (today + offset) % 7 in days:
                    return current + timedelta(days=offset)
        return current + timedelta(days=7 * interval)

    if frequency == "biweekly":
        return current + timedelta(days=14 * interval)

    if frequency == "monthly":
        day = task.day_of_month if task.day_of_month and 1 <= task.day_of_month <= 31 else None
        candidate = add_months(current, interval, day)
        if day and candidate <= now:
            candidate = add_months(candidate, 1, day)
        return candidate

    if frequency == "yearly":
        month = task.month_of_year
        day = task.day_of_month
        if month is not None and 0 <= month <= 11 and day and 1 <= day <= 31:
            year = current.year + interval
            candidate = current.replace(year=year, month=month + 1, day=_clamp_day(year, month + 1, day))
            if candidate <= now:
                year += 1
                candidate = candidate.replace(year=year, day=_clamp_day(year, month + 1, day))
            return candidate
        year = current.year + interval
        return current.replace(year=year, day=_clamp_day(year, current.month, current.day))

    logger.warning(f"Unknown recurring frequency '{frequency}' on task {task.id}")
    return None


def latest_child(db: Session, parent: Task) -> Optional[Task]:
    return (
        db.query(Task)
        .filter(Task.parent_task_id == parent.id)
        .order_by(Task.next_due_date.desc())
        .first()
    )


def create_next_instance(db: Session, parent: Task, now: Optional[datetime] = None) -> Optional[Task]:
    """
    Create the next occurrence of a recurring parent, or None when the
    series has ended. The caller commits.
    """
    if not parent.is_recurring or not parent.recurring_frequency:
        return None

    previous = latest_child(db, parent)
    base = previous.next_due_date if previous and previous.next_due_date else parent.next_due_date
    due = next_due_date(parent, base=base, now=now)
    if due is None:
        return None

    if parent.end_date and due > parent.end_date:
        logger.info(f"Recurring task {parent.id} reached its end date")
        return None

    child = Task(
        user_id=parent.user_id,
        title=parent.title,
        category=parent.category,
        priority=parent.priority,
        timer=parent.timer,
        notes=parent.notes,
        completed=False,
        is_recurring=False,
        parent_task_id=parent.id,
        next_due_date=due,
        created_via="recurring",
        checklist_items=[dict(item, completed=False) for item in (parent.checklist_items or [])],
    )
    db.add(child)
    parent.next_due_date = due
    db.flush()

    logger.info(
        "Created next instance of recurring task",
        extra={"extra_fields": {"parent_id": str(parent.id), "child_id": str(child.id), "due": due.isoformat()}},
    )
    return child


def process_recurring_tasks(db: Session, now: Optional[datetime] = None) -> int:
    """Top up every active series whose latest occurrence is missing or overdue."""
    now = now or utcnow()
    created = 0
    parents = (
        db.query(Task)
        .filter(Task.is_recurring.is_(True), Task.archived.is_(False))
        .all()
    )
    for parent in parents:
        child = latest_child(db, parent)
        if child is None or (child.next_due_date and child.next_due_date < now):
            if create_next_instance(db, parent, now=now):
                created += 1
    return created
