"""
Tests for the default capability gate.
"""

import pytest

from feedboard.content_types import Ticker
from feedboard.core.permissions import Operation, default_gate
from feedboard.models import Feed, Submission, User


def _user(user_id: int, **kwargs) -> User:
    kwargs.setdefault("is_active", True)
    kwargs.setdefault("is_admin", False)
    return User(id=user_id, email=f"user{user_id}@example.com", name=f"User {user_id}", **kwargs)


def _feed(owner_id, **kwargs) -> Feed:
    kwargs.setdefault("is_active", True)
    kwargs.setdefault("is_submittable", True)
    return Feed(id=owner_id * 10, name="Feed", owner_id=owner_id, **kwargs)


def _content(owner_id: int, *submissions: Submission) -> Ticker:
    return Ticker(id=1, name="Lunch", user_id=owner_id, duration=8, media=[], submissions=list(submissions))


AUTHOR = _user(1)
MODERATOR = _user(2)
STRANGER = _user(3)
ADMIN = _user(4, is_admin=True)
INACTIVE = _user(5, is_active=False)


class TestFeedRules:
    def test_anyone_reads_feeds(self):
        assert default_gate.allows(None, Operation.READ, _feed(2))

    def test_owner_moderates(self):
        feed = _feed(2)
        assert default_gate.allows(MODERATOR, Operation.UPDATE, feed)
        assert not default_gate.allows(AUTHOR, Operation.UPDATE, feed)
        assert not default_gate.allows(None, Operation.UPDATE, feed)

    def test_submission_to_open_feed(self):
        assert default_gate.allows(AUTHOR, Operation.SUBMIT, _feed(2))
        assert not default_gate.allows(None, Operation.SUBMIT, _feed(2))

    @pytest.mark.parametrize("flags", [{"is_submittable": False}, {"is_active": False}])
    def test_closed_feed_only_takes_moderator(self, flags):
        feed = _feed(2, **flags)
        assert not default_gate.allows(AUTHOR, Operation.SUBMIT, feed)
        assert default_gate.allows(MODERATOR, Operation.SUBMIT, feed)

    def test_nobody_deletes_feeds_but_admins(self):
        assert not default_gate.allows(MODERATOR, Operation.DELETE, _feed(2))
        assert default_gate.allows(ADMIN, Operation.DELETE, _feed(2))


class TestContentRules:
    def test_create_requires_active_user(self):
        content = _content(1)
        assert default_gate.allows(AUTHOR, Operation.CREATE, content)
        assert not default_gate.allows(None, Operation.CREATE, content)
        assert not default_gate.allows(INACTIVE, Operation.CREATE, content)

    @pytest.mark.parametrize("operation", [Operation.UPDATE, Operation.DELETE])
    def test_only_owner_changes_content(self, operation):
        content = _content(1)
        assert default_gate.allows(AUTHOR, operation, content)
        assert not default_gate.allows(STRANGER, operation, content)
        assert default_gate.allows(ADMIN, operation, content)

    def test_pending_content_readers(self):
        feed = _feed(2)
        content = _content(1, Submission(feed=feed, feed_id=feed.id, duration=8))

        assert default_gate.allows(AUTHOR, Operation.READ, content)
        assert default_gate.allows(MODERATOR, Operation.READ, content)
        assert not default_gate.allows(STRANGER, Operation.READ, content)
        assert not default_gate.allows(None, Operation.READ, content)

    def test_approved_content_is_public(self):
        feed = _feed(2)
        content = _content(1, Submission(feed=feed, feed_id=feed.id, duration=8, moderation_flag=True))
        assert default_gate.allows(None, Operation.READ, content)

    def test_rejected_content_stays_private(self):
        feed = _feed(2)
        content = _content(1, Submission(feed=feed, feed_id=feed.id, duration=8, moderation_flag=False))
        assert not default_gate.allows(STRANGER, Operation.READ, content)

    def test_unknown_resources_are_denied(self):
        assert not default_gate.allows(AUTHOR, Operation.READ, object())

    def test_operation_str(self):
        assert str(Operation.SUBMIT) == "submit"
