"""
Celery application instance and configuration.
"""

from celery import Celery

from feedboard.core.config import settings

# Create Celery application
celery_app = Celery(
    "feedboard",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# Configure Celery
celery_app.conf.update(
    task_serializer=settings.CELERY_TASK_SERIALIZER,
    result_serializer=settings.CELERY_RESULT_SERIALIZER,
    accept_content=settings.celery_accept_content_list,
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=settings.CELERY_ENABLE_UTC,
    task_track_started=True,
    task_time_limit=5 * 60,  # 5 minutes
    task_soft_time_limit=4 * 60,  # 4 minutes
    result_expires=3600,  # 1 hour
)

# Task routing
celery_app.conf.task_routes = {
    'notifications.*': {'queue': 'notifications'},
}

# Auto-discover tasks from feedboard.tasks
celery_app.autodiscover_tasks(['feedboard.tasks'], related_name='notification_tasks')
