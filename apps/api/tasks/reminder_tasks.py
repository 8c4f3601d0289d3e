"""
Notification jobs: day-before reminders and cleanup of old read notifications.
"""
from typing import Dict
from celery import Task
from core.database import get_db_sync
from tasks import celery_app
from services import notification_service
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.create_calendar_reminders", bind=True)
def create_calendar_reminders_task(self: Task) -> Dict:
    db = get_db_sync()
    try:
        created = notification_service.create_calendar_reminders(db)
        db.commit()
        return {"status": "success", "created": created}
    except Exception as e:
        db.rollback()
        logger.error(f"Error creating calendar reminders: {str(e)}", exc_info=True)
        return {"status": "error", "message": str(e)}
    finally:
        db.close()


@celery_app.task(name="tasks.cleanup_old_notifications", bind=True)
def cleanup_old_notifications_task(self: Task) -> Dict:
    db = get_db_sync()
    try:
        deleted = notification_service.cleanup_old_notifications(db)
        db.commit()
        return {"status": "success", "deleted": deleted}
    except Exception as e:
        db.rollback()
        logger.error(f"Error cleaning up notifications: {str(e)}", exc_info=True)
        return {"status": "error", "message": str(e)}
    finally:
        db.close()
