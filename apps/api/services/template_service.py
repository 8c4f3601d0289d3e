"""
Task templates: reusable task bundles. System templates are public and
have no owner; users can save their own from titles or existing tasks.
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from core.clock import utcnow
from core.exceptions import NotFoundError, BadRequestError, ForbiddenError
from models import TaskTemplate, Task, User
from services import task_service

logger = logging.getLogger(__name__)


def _t(title, category, priority, timer=None, days=None):
    entry = {"title": title, "category": category, "priority": priority}
    if timer:
        entry["timer"] = timer
    if days:
        entry["scheduled_days_from_now"] = days
    return entry


SYSTEM_TEMPLATES = [
    {
        "name": "Weekly Review & Planning",
        "description": "GTD-style weekly review to stay organized without manual setup",
        "category": "Personal Productivity",
        "tags": ["gtd", "weekly", "review", "planning"],
        "tasks": [
            _t("Review completed tasks from last week", "Personal", "Medium"),
            _t("Clear inbox and process loose ends", "Personal", "High"),
            _t("Plan next week's priorities", "Work", "High"),
            _t("Schedule focused work blocks", "Work", "Medium", timer=90),
            _t("Review and update project statuses", "Work", "Medium"),
        ],
    },
    {
        "name": "Deep Work Session",
        "description": "Structured focus blocks to support concentration",
        "category": "Personal Productivity",
        "tags": ["focus", "deep-work", "productivity"],
        "tasks": [
            _t("Clear workspace and close distractions", "Personal", "High"),
            _t("Deep work block - Core project", "Work", "High", timer=120),
            _t("5-minute break and hydration", "Health", "Low"),
            _t("Review and document progress", "Work", "Medium"),
        ],
    },
    {
        "name": "Weekly Meal Planning",
        "description": "Plan the week's meals and shopping in one pass",
        "category": "Personal Productivity",
        "tags": ["meal-prep", "planning", "health"],
        "tasks": [
            _t("Check pantry and fridge inventory", "Personal", "Medium"),
            _t("Plan 7 meals for the week", "Personal", "High"),
            _t("Create shopping list", "Shopping", "High"),
            _t("Shop for groceries", "Shopping", "Medium", days=1),
            _t("Prep ingredients for 3 meals", "Personal", "Medium", days=2),
        ],
    },
    {
        "name": "SMART Goal Tracker",
        "description": "Progress in life and work with visible metrics and accountability",
        "category": "Strategic Planning",
        "tags": ["goals", "smart", "tracking", "metrics"],
        "tasks": [
            _t("Define specific goal outcome", "Personal", "High"),
            _t("Set measurable success criteria", "Personal", "High"),
            _t("Identify 3 key action steps", "Work", "High"),
            _t("Schedule weekly progress check", "Personal", "Medium", days=7),
            _t("Document lessons learned", "Personal", "Low", days=14),
        ],
    },
    {
        "name": "Project Sprint Planning",
        "description": "Team alignment and structured workflows for a sprint",
        "category": "Project Management",
        "tags": ["sprint", "agile", "team", "planning"],
        "tasks": [
            _t("Review previous sprint outcomes", "Work", "High"),
            _t("Define sprint goals and scope", "Work", "High"),
            _t("Break down user stories", "Work", "High"),
            _t("Estimate effort and assign tasks", "Work", "Medium"),
            _t("Set up daily standup schedule", "Work", "Medium"),
            _t("Plan sprint review and retrospective", "Work", "Low", days=14),
        ],
    },
]


def seed_system_templates(db: Session) -> int:
    existing = {
        name for (name,) in db.query(TaskTemplate.name).filter(TaskTemplate.created_by_user_id.is_(None)).all()
    }
    added = 0
    for template in SYSTEM_TEMPLATES:
        if template["name"] in existing:
            continue
        db.add(TaskTemplate(is_public=True, created_by_user_id=None, **template))
        added += 1
    if added:
        db.flush()
        logger.info(f"Seeded {added} system templates")
    return added


def list_templates(db: Session, user: User, category: Optional[str] = None, search: Optional[str] = None) -> List[TaskTemplate]:
    """Public templates plus the caller's own, most used first."""
    query = db.query(TaskTemplate).filter(
        or_(TaskTemplate.is_public.is_(True), TaskTemplate.created_by_user_id == user.id)
    )
    if category:
        query = query.filter(TaskTemplate.category == category)
    if search:
        query = query.filter(TaskTemplate.name.ilike(f"%{search.strip()}%"))
    return query.order_by(TaskTemplate.usage_count.desc(), TaskTemplate.name.asc()).all()


def get_visible_template(db: Session, user: User, template_id: UUID) -> TaskTemplate:
    template = db.query(TaskTemplate).filter(TaskTemplate.id == template_id).first()
    if template is None or not (template.is_public or template.created_by_user_id == user.id):
        raise NotFoundError("Template", str(template_id))
    return template


def create_template(
    db: Session,
    user: User,
    name: str,
    description: Optional[str] = None,
    category: str = "Other",
    titles: Optional[List[str]] = None,
    task_ids: Optional[List[UUID]] = None,
    is_public: bool = False,
    tags: Optional[List[str]] = None,
) -> TaskTemplate:
    entries: List[Dict] = [
        {"title": t.strip(), "category": "Other", "priority": "Medium"} for t in (titles or []) if t and t.strip()
    ]
    if task_ids:
        tasks = db.query(Task).filter(Task.user_id == user.id, Task.id.in_(task_ids)).all()
        if len(tasks) != len(set(task_ids)):
            raise NotFoundError("Task")
        by_id = {t.id: t for t in tasks}
        for tid in task_ids:
            task = by_id[tid]
            entries.append({"title": task.title, "category": task.category, "priority": task.priority, "timer": task.timer})
    if not entries:
        raise BadRequestError("A template needs at least one task")

    template = TaskTemplate(
        name=name.strip(),
        description=description,
        category=category or "Other",
        tasks=entries,
        is_public=is_public,
        created_by_user_id=user.id,
        tags=tags or [],
    )
    db.add(template)
    db.flush()
    return template


def apply_template(db: Session, user: User, template_id: UUID, now: Optional[datetime] = None) -> List[Task]:
    template = get_visible_template(db, user, template_id)
    now = now or utcnow()
    created = []
    for entry in template.tasks or []:
        data = {
            "title": entry["title"],
            "category": entry.get("category"),
            "priority": entry.get("priority"),
            "timer": entry.get("timer"),
        }
        if entry.get("scheduled_days_from_now"):
            data["scheduled_date"] = now + timedelta(days=int(entry["scheduled_days_from_now"]))
        created.append(task_service.create_task(db, user, data, created_via="template"))
    template.usage_count = (template.usage_count or 0) + 1
    db.flush()
    logger.info(
        "Template applied",
        extra={"extra_fields": {"template_id": str(template.id), "user_id": str(user.id), "tasks": len(created)}},
    )
    return created


def delete_template(db: Session, user: User, template_id: UUID) -> None:
    template = db.query(TaskTemplate).filter(TaskTemplate.id == template_id).first()
    if template is None:
        raise NotFoundError("Template", str(template_id))
    if template.created_by_user_id != user.id:
        raise ForbiddenError("You can only delete your own templates")
    db.delete(template)
    db.flush()
