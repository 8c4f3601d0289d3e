"""
Recurring task instantiation.

Creates the next occurrence of every recurring series whose latest
instance is overdue.
"""
from typing import Dict
from celery import Task
from core.database import get_db_sync
from tasks import celery_app
from services import recurrence
# Completion and creation events reach the stats subscribers
from services import achievement_service, analytics_service  # noqa: F401
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.process_recurring_tasks", bind=True)
def process_recurring_tasks_task(self: Task) -> Dict:
    db = get_db_sync()
    try:
        created = recurrence.process_recurring_tasks(db)
        db.commit()
        if created:
            logger.info(f"Created {created} recurring task instances")
        return {"status": "success", "created": created}
    except Exception as e:
        db.rollback()
        logger.error(f"Error in process_recurring_tasks_task: {str(e)}", exc_info=True)
        return {"status": "error", "message": str(e)}
    finally:
        db.close()
