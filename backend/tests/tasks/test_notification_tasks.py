"""
Tests for notification payloads, the notifier and the Celery task.
"""

from unittest.mock import patch

import pytest
from kombu.exceptions import OperationalError
from structlog.testing import capture_logs

from feedboard.content_types import Ticker
from feedboard.models import Feed, Submission, User
from feedboard.services.notifications import ContentNotifier, event_payload
from feedboard.tasks.notification_tasks import content_event, notification_recipients


def _content() -> Ticker:
    lobby = Feed(id=10, name="Lobby", owner_id=7)
    cafeteria = Feed(id=11, name="Cafeteria", owner_id=9)
    own = Feed(id=12, name="Own", owner_id=4)
    return Ticker(
        id=3,
        name="Lunch",
        user_id=4,
        duration=8,
        media=[],
        submissions=[
            Submission(feed=lobby, feed_id=10, duration=8),
            Submission(feed=cafeteria, feed_id=11, duration=8, moderation_flag=False),
            Submission(feed=own, feed_id=12, duration=8, moderation_flag=True),
        ],
    )


AUTHOR = User(id=4, email="author@example.com", name="Author")


class TestEventPayload:
    def test_only_pending_feeds_count(self):
        payload = event_payload(_content(), "create", AUTHOR)

        assert payload == {
            "content_id": 3,
            "content_name": "Lunch",
            "action": "create",
            "owner_id": 4,
            "actor_id": 4,
            "moderator_ids": [7],
        }


class TestRecipients:
    def test_actor_is_never_notified(self):
        payload = {"action": "create", "actor_id": 7, "owner_id": 4, "moderator_ids": [7, 9, 9]}
        assert notification_recipients(payload) == [9]

    def test_owner_hears_about_updates_by_others(self):
        payload = {"action": "update", "actor_id": 1, "owner_id": 4, "moderator_ids": [7]}
        assert notification_recipients(payload) == [7, 4]

    def test_owner_not_told_about_own_update(self):
        payload = {"action": "update", "actor_id": 4, "owner_id": 4, "moderator_ids": []}
        assert notification_recipients(payload) == []


class TestContentEventTask:
    def test_create(self):
        payload = event_payload(_content(), "create", AUTHOR)

        result = content_event.apply(args=(payload,)).get()

        assert result == {"content_id": 3, "action": "create", "recipients": [7], "success": True}

    def test_unknown_action(self):
        result = content_event.apply(args=({"content_id": 3, "action": "explode"},)).get()

        assert result["success"] is False
        assert result["recipients"] == []


class TestContentNotifier:
    def test_disabled_notifier_enqueues_nothing(self):
        with patch.object(content_event, "delay") as delay:
            ContentNotifier(enabled=False).content_changed(_content(), "create", AUTHOR)
        delay.assert_not_called()

    def test_enqueues_payload(self):
        with patch.object(content_event, "delay") as delay:
            ContentNotifier().content_changed(_content(), "update", AUTHOR)

        (payload,) = delay.call_args.args
        assert payload["action"] == "update"
        assert payload["moderator_ids"] == [7]

    @pytest.mark.parametrize("error", [OperationalError("broker down"), ConnectionRefusedError()])
    def test_broker_failure_is_logged(self, error):
        with patch.object(content_event, "delay", side_effect=error), capture_logs() as logs:
            ContentNotifier().content_changed(_content(), "create", AUTHOR)

        assert logs[-1]["event"] == "notification_enqueue_failed"
        assert logs[-1]["log_level"] == "warning"
