"""
Capability checks for the content core.

The content service never encodes policy. It asks a CapabilityGate whether an
actor may perform an operation on a resource and short-circuits on "no":

    if not gate.allows(actor, Operation.UPDATE, content):
        raise AuthorizationError(...)

DefaultCapabilityGate is the policy shipped with the application. Anything
with an ``allows`` method of the same shape can be injected instead.
"""

import enum
from typing import Any, Optional, Protocol

from feedboard.models.content import Content, ModerationState
from feedboard.models.feed import Feed
from feedboard.models.user import User


class Operation(str, enum.Enum):
    """Operations the content core checks."""

    READ = "read"
    CREATE = "create"
    UPDATE = "update"  # on a Feed this means "moderate"
    DELETE = "delete"
    SUBMIT = "submit"  # submit content to a Feed

    def __str__(self) -> str:
        return self.value


class CapabilityGate(Protocol):
    """Yes/no authorization answer for an (actor, operation, resource) triple."""

    def allows(self, actor: Optional[User], operation: Operation, resource: Any) -> bool:
        ...


class DefaultCapabilityGate:
    """
    Ownership-based policy.

    Rules:
    ------
    - Admins may do anything.
    - Feeds: anyone reads; the owner moderates (UPDATE); active users submit
      to feeds open for submissions, moderators always may.
    - Content: active users create; the owner updates and deletes; reading is
      allowed to the owner, to moderators of a feed the content is submitted
      to, and to everyone once any submission is approved.
    """

    def allows(self, actor: Optional[User], operation: Operation, resource: Any) -> bool:
        if actor is not None and not actor.is_active:
            return False
        if actor is not None and actor.is_admin:
            return True

        if isinstance(resource, Feed):
            return self._allows_feed(actor, operation, resource)
        if isinstance(resource, Content):
            return self._allows_content(actor, operation, resource)
        return False

    def _allows_feed(self, actor: Optional[User], operation: Operation, feed: Feed) -> bool:
        if operation == Operation.READ:
            return True
        if actor is None:
            return False
        moderates = feed.owner_id == actor.id
        if operation == Operation.UPDATE:
            return moderates
        if operation == Operation.SUBMIT:
            return moderates or (feed.is_active and feed.is_submittable)
        return False

    def _allows_content(
        self, actor: Optional[User], operation: Operation, content: Content
    ) -> bool:
        owns = actor is not None and content.user_id == actor.id

        if operation == Operation.CREATE:
            return actor is not None
        if operation in (Operation.UPDATE, Operation.DELETE):
            return owns
        if operation == Operation.READ:
            if owns:
                return True
            submissions = content.submissions or []
            if any(s.moderation_state == ModerationState.APPROVED for s in submissions):
                return True
            if actor is None:
                return False
            return any(
                s.feed is not None and s.feed.owner_id == actor.id for s in submissions
            )
        return False


default_gate = DefaultCapabilityGate()
