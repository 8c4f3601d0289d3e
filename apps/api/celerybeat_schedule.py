"""
Celery Beat Schedule Configuration

Defines periodic tasks that run on a schedule.
"""

from celery.schedules import crontab

# Schedule configuration
beat_schedule = {
    # Auto-archive completed tasks and purge expired archives
    'auto-archive-tasks': {
        'task': 'tasks.run_auto_archive',
        'schedule': crontab(minute=0),  # Hourly
    },
    'create-recurring-instances': {
        'task': 'tasks.process_recurring_tasks',
        'schedule': crontab(minute=15),  # Hourly, offset from auto-archive
    },
    # Day-before reminders for scheduled tasks
    'calendar-reminders': {
        'task': 'tasks.create_calendar_reminders',
        'schedule': crontab(hour=8, minute=0),
    },
    'cleanup-notifications': {
        'task': 'tasks.cleanup_old_notifications',
        'schedule': crontab(hour=3, minute=30),
    },
}
