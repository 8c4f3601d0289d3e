"""
Celery worker entry point.

This imports the Celery app and tasks from the API module.
"""
import os
import sys

# The API package is mounted at /api in the worker image
sys.path.insert(0, os.environ.get("API_PATH", "/api"))

from tasks import celery_app  # noqa: E402

celery_app.autodiscover_tasks(['tasks'])


@celery_app.task(name="worker.health_check")
def health_check():
    """Health check task"""
    return {"status": "ok"}
