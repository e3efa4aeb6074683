"""
Celery tasks for content lifecycle notifications.

After a content item is created or updated the content service enqueues
``notifications.content_event`` with a plain payload:

    {
        "content_id": 12,
        "content_name": "Lunch menu",
        "action": "create",
        "owner_id": 4,
        "actor_id": 4,
        "moderator_ids": [7, 9],
    }

``moderator_ids`` are the owners of feeds where the content waits for
moderation. Delivery (mail, push, ...) is not handled here: the task works
out who should hear about the event, logs it and returns the result.
"""

from typing import Any

from celery import Task

from feedboard.core.logging import get_logger
from feedboard.workers.celery_app import celery_app

logger = get_logger(__name__)

NOTIFIABLE_ACTIONS = ("create", "update")


class NotificationTask(Task):
    """Base task class with retry logic."""

    autoretry_for = (ConnectionError,)
    retry_kwargs = {'max_retries': 3}
    retry_backoff = True
    retry_backoff_max = 300  # 5 minutes
    retry_jitter = True


def notification_recipients(payload: dict[str, Any]) -> list[int]:
    """
    Users to notify about a content event.

    Moderators of feeds with pending submissions, minus whoever triggered
    the event. The owner is included on updates made by someone else.
    """
    actor_id = payload.get("actor_id")
    recipients: list[int] = []
    for user_id in payload.get("moderator_ids") or []:
        if user_id is not None and user_id != actor_id and user_id not in recipients:
            recipients.append(user_id)

    owner_id = payload.get("owner_id")
    if (
        payload.get("action") == "update"
        and owner_id is not None
        and owner_id != actor_id
        and owner_id not in recipients
    ):
        recipients.append(owner_id)
    return recipients


@celery_app.task(
    base=NotificationTask,
    name='notifications.content_event',
    bind=True,
)
def content_event(self, payload: dict[str, Any]) -> dict:
    """
    Handle a content lifecycle event.

    Args:
        payload: event description (see module docstring)

    Returns:
        Dictionary with task results:
        {
            'content_id': int,
            'action': str,
            'recipients': List[int],
            'success': bool
        }
    """
    action = payload.get("action")
    content_id = payload.get("content_id")

    if action not in NOTIFIABLE_ACTIONS:
        logger.warning("unknown_notification_action", action=action, content_id=content_id)
        return {
            'content_id': content_id,
            'action': action,
            'recipients': [],
            'success': False,
        }

    recipients = notification_recipients(payload)
    logger.info(
        "content_event_notified",
        content_id=content_id,
        action=action,
        recipients=recipients,
    )
    return {
        'content_id': content_id,
        'action': action,
        'recipients': recipients,
        'success': True,
    }
