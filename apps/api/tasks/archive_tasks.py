"""
Auto-archive task.

Runs hourly via Celery Beat for every user with auto-archive enabled.
"""
from typing import Dict
from celery import Task
from core.database import get_db_sync
from tasks import celery_app
from services import archive_service
import logging

logger = logging.getLogger(__name__)


@celery_app.task(name="tasks.run_auto_archive", bind=True)
def run_auto_archive_task(self: Task) -> Dict:
    """Per-user failures are rolled back and counted in ``errors``."""
    db = get_db_sync()
    try:
        totals = archive_service.run_auto_archive(db)
        logger.info("Auto-archive complete", extra={"extra_fields": totals})
        return {"status": "success", **totals}
    except Exception as e:
        db.rollback()
        logger.error(f"Error in run_auto_archive_task: {str(e)}", exc_info=True)
        return {"status": "error", "message": str(e)}
    finally:
        db.close()
