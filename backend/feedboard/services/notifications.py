"""
Enqueue content lifecycle notifications.

The content service calls ``ContentNotifier.content_changed`` after a
successful commit. Broker failures are logged and swallowed: a lost
notification never fails the request that triggered it.
"""

from typing import Any, Optional

from celery.exceptions import CeleryError
from kombu.exceptions import KombuError

from feedboard.core.logging import get_logger
from feedboard.models.content import Content, ModerationState
from feedboard.models.user import User

logger = get_logger(__name__)


def event_payload(content: Content, action: str, actor: Optional[User]) -> dict[str, Any]:
    """Plain, JSON-serializable description of a content event."""
    moderator_ids: list[int] = []
    for submission in content.submissions:
        if submission.moderation_state != ModerationState.PENDING or submission.feed is None:
            continue
        owner_id = submission.feed.owner_id
        if owner_id is not None and owner_id not in moderator_ids:
            moderator_ids.append(owner_id)

    return {
        "content_id": content.id,
        "content_name": content.name,
        "action": action,
        "owner_id": content.user_id,
        "actor_id": actor.id if actor is not None else None,
        "moderator_ids": moderator_ids,
    }


class ContentNotifier:
    def __init__(self, enabled: bool = True):
        self.enabled = enabled

    def content_changed(self, content: Content, action: str, actor: Optional[User]) -> None:
        if not self.enabled:
            return

        from feedboard.tasks.notification_tasks import content_event

        payload = event_payload(content, action, actor)
        try:
            content_event.delay(payload)
        except (CeleryError, KombuError, OSError) as e:
            logger.warning(
                "notification_enqueue_failed",
                content_id=content.id,
                action=action,
                error=str(e),
            )
