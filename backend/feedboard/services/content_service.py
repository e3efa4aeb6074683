"""
Content service: lifecycle orchestration for the Content/Submission aggregate.

Each public method is one request's unit of work:

    resolve type → authorize → bind fields → validate → persist + reconcile

Collaborators are injected (type registry, capability gate, content
defaults, dispatchers, notifier), so the service reads no global state and
encodes no policy. Authorization always runs before anything is mutated,
and create/update write content attributes and submissions in a single
commit.

Field Binding:
--------------
Every type declares an allow-list of fields (``form_attributes`` on create,
the narrower ``update_attributes`` on update). Keys outside the list are
rejected as field errors, not ignored. Feed membership never goes through
the attribute binder; it is passed separately as ``feed_ids``.
"""

import base64
import binascii
from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any, Optional

from pydantic import TypeAdapter, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from feedboard.content_types.registry import ContentTypeDescriptor, TypeRegistry
from feedboard.core.config import ContentDefaults
from feedboard.core.exceptions import (
    AuthorizationError,
    ContentNotFoundError,
    ContentValidationError,
)
from feedboard.core.logging import get_logger
from feedboard.core.permissions import CapabilityGate, Operation
from feedboard.db.base import utcnow
from feedboard.db.deps import DBTransaction
from feedboard.models.content import Content, Media, Submission
from feedboard.models.feed import Feed
from feedboard.models.user import User
from feedboard.services.actions import ActionDispatcher
from feedboard.services.notifications import ContentNotifier
from feedboard.services.rendering import RenderDispatcher, RenderResult
from feedboard.services.submissions import apply_plan, reconcile_submissions

logger = get_logger(__name__)

CREATED_NOTICE = "Content was successfully created."
CREATED_WITHOUT_FEEDS_NOTICE = "Content created but not submitted to any feeds."
UPDATED_NOTICE = "Content was successfully updated."
DELETED_NOTICE = "Content was successfully deleted."
UNRECOGNIZED_PREVIEW = "Unrecognized content type"

_FIELD_ADAPTERS: dict[str, TypeAdapter] = {
    "name": TypeAdapter(str),
    "duration": TypeAdapter(int),
    "start_time": TypeAdapter(Optional[datetime]),
    "end_time": TypeAdapter(Optional[datetime]),
    "data": TypeAdapter(Optional[str]),
    "config": TypeAdapter(dict[str, Any]),
}

_MEDIA_KEYS = ("key", "file_name", "file_type", "file_size", "file_data")


class ContentService:
    """
    Example:
        >>> service = ContentService(db, registry, default_gate, settings.content_defaults())
        >>> content, notice = await service.create(user, "Ticker", {"name": "Hi", "data": "Hello"}, [3])
        >>> notice
        'Content was successfully created.'
    """

    def __init__(
        self,
        db: AsyncSession,
        registry: TypeRegistry,
        gate: CapabilityGate,
        defaults: ContentDefaults,
        render_dispatcher: Optional[RenderDispatcher] = None,
        action_dispatcher: Optional[ActionDispatcher] = None,
        notifier: Optional[ContentNotifier] = None,
    ):
        self.db = db
        self.registry = registry
        self.gate = gate
        self.defaults = defaults
        self.render_dispatcher = render_dispatcher or RenderDispatcher()
        self.action_dispatcher = action_dispatcher or ActionDispatcher()
        self.notifier = notifier or ContentNotifier(enabled=False)

    # ========================================
    # Helpers
    # ========================================

    def _authorize(self, actor: Optional[User], operation: Operation, resource: Any) -> None:
        if not self.gate.allows(actor, operation, resource):
            logger.info(
                "authorization_denied",
                actor_id=actor.id if actor is not None else None,
                operation=str(operation),
                resource=type(resource).__name__,
                resource_id=getattr(resource, "id", None),
            )
            raise AuthorizationError(str(operation), resource)

    async def _load(self, content_id: int) -> Content:
        result = await self.db.execute(select(Content).where(Content.id == content_id))
        content = result.unique().scalar_one_or_none()
        if content is None:
            raise ContentNotFoundError(content_id)
        return content

    async def submittable_feeds(self, actor: Optional[User]) -> list[Feed]:
        """Feeds ``actor`` may submit content to."""
        result = await self.db.execute(select(Feed).order_by(Feed.name))
        feeds = result.unique().scalars().all()
        return [f for f in feeds if self.gate.allows(actor, Operation.SUBMIT, f)]

    def _bind(
        self,
        content: Content,
        allowed: Sequence[str],
        attributes: Mapping[str, Any],
        errors: dict[str, list[str]],
    ) -> None:
        """Assign allow-listed attributes, collecting errors for the rest."""
        for key, value in attributes.items():
            if key not in allowed:
                errors.setdefault(key, []).append("is not a permitted field")
                continue
            if key == "media":
                self._bind_media(content, value, errors)
                continue
            adapter = _FIELD_ADAPTERS.get(key)
            if adapter is not None:
                try:
                    value = adapter.validate_python(value)
                except ValidationError as e:
                    errors.setdefault(key, []).append(e.errors()[0]["msg"])
                    continue
            setattr(content, key, value)

    def _bind_media(self, content: Content, entries: Any, errors: dict[str, list[str]]) -> None:
        """
        Decode uploaded media entries onto ``content``.

        Entries carry base64 ``file_data``. Placeholder entries (every file
        field empty) are dropped.
        """
        if not isinstance(entries, list):
            errors.setdefault("media", []).append("must be a list")
            return

        for entry in entries:
            if not isinstance(entry, Mapping):
                errors.setdefault("media", []).append("entries must be objects")
                return
            unknown = set(entry) - set(_MEDIA_KEYS)
            if unknown:
                errors.setdefault("media", []).append(
                    f"unknown media fields: {', '.join(sorted(unknown))}"
                )
                return
            if not any(entry.get(k) for k in _MEDIA_KEYS if k != "key"):
                continue

            raw = entry.get("file_data")
            try:
                file_data = base64.b64decode(raw, validate=True) if raw else None
            except (binascii.Error, TypeError, ValueError):
                errors.setdefault("media", []).append("file_data must be base64 encoded")
                return

            content.media.append(
                Media(
                    key=entry.get("key") or "original",
                    file_name=entry.get("file_name") or None,
                    file_type=entry.get("file_type") or None,
                    file_size=entry.get("file_size") or (len(file_data) if file_data else None),
                    file_data=file_data,
                )
            )

    async def _check_feeds(
        self, actor: Optional[User], feed_ids: Sequence[int], errors: dict[str, list[str]]
    ) -> dict[int, Feed]:
        """Load the desired feeds, recording an error for each unusable id."""
        if not feed_ids:
            return {}
        result = await self.db.execute(select(Feed).where(Feed.id.in_(set(feed_ids))))
        feeds = {f.id: f for f in result.unique().scalars().all()}
        for feed_id in dict.fromkeys(feed_ids):
            feed = feeds.get(feed_id)
            if feed is None:
                errors.setdefault("feed_ids", []).append(f"feed {feed_id} does not exist")
            elif not self.gate.allows(actor, Operation.SUBMIT, feed):
                errors.setdefault("feed_ids", []).append(
                    f"you may not submit to feed {feed_id}"
                )
        return feeds

    async def _invalid(
        self, actor: Optional[User], content: Content, errors: dict[str, list[str]]
    ) -> ContentValidationError:
        feeds = await self.submittable_feeds(actor)
        # Detached objects keep the attempted values through the request rollback
        self.db.expunge_all()
        logger.info(
            "content_validation_failed",
            content_id=content.id,
            type_name=content.type_name,
            fields=sorted(errors),
        )
        return ContentValidationError(errors, content=content, feeds=feeds)

    def _reconcile(
        self,
        actor: Optional[User],
        content: Content,
        feed_ids: Sequence[int],
        feeds: Mapping[int, Feed],
    ) -> None:
        plan = reconcile_submissions(
            existing=list(content.submissions),
            desired_feed_ids=feed_ids,
            duration=content.duration,
            actor_id=actor.id if actor is not None else None,
            can_moderate=lambda feed_id: (
                feed_id in feeds and self.gate.allows(actor, Operation.UPDATE, feeds[feed_id])
            ),
            feeds=feeds,
        )
        apply_plan(content, plan)

    # ========================================
    # Read Operations
    # ========================================

    async def list_contents(
        self,
        actor: Optional[User],
        type_name: Optional[str] = None,
        user_id: Optional[int] = None,
        feed_id: Optional[int] = None,
        offset: int = 0,
        limit: int = 50,
    ) -> tuple[list[Content], int]:
        """
        Content visible to ``actor``, newest first.

        Returns:
            (page of content, total visible)

        Raises:
            UnrecognizedContentTypeError: ``type_name`` names no type
        """
        query = select(Content).order_by(Content.id.desc())
        if type_name:
            descriptor = self.registry.require(type_name)
            query = query.where(Content.type_name == descriptor.name)
        if user_id is not None:
            query = query.where(Content.user_id == user_id)
        if feed_id is not None:
            query = query.where(
                Content.id.in_(select(Submission.content_id).where(Submission.feed_id == feed_id))
            )

        result = await self.db.execute(query)
        visible = [
            c for c in result.unique().scalars().all()
            if self.gate.allows(actor, Operation.READ, c)
        ]
        return visible[offset:offset + limit], len(visible)

    async def get(self, actor: Optional[User], content_id: int) -> Content:
        """
        Raises:
            ContentNotFoundError: no such content
            AuthorizationError: ``actor`` may not read it
        """
        content = await self._load(content_id)
        self._authorize(actor, Operation.READ, content)
        return content

    # ========================================
    # Create
    # ========================================

    def _blank(self, descriptor: ContentTypeDescriptor, actor: Optional[User]) -> Content:
        return descriptor.build(
            user_id=actor.id if actor is not None else None,
            duration=self.defaults.default_content_duration,
            media=[],
            submissions=[],
        )

    async def new_content(
        self, actor: Optional[User], type_name: Optional[str]
    ) -> tuple[Content, list[Feed]]:
        """
        Blank content for the "new" form plus the feeds it may go to.

        Raises:
            ContentTypeConfigurationError: unknown type and no default configured
            UnrecognizedContentTypeError: the default type is unknown too
        """
        descriptor = self.registry.resolve_or_default(type_name)
        content = self._blank(descriptor, actor)
        self._authorize(actor, Operation.CREATE, content)
        return content, await self.submittable_feeds(actor)

    async def create(
        self,
        actor: User,
        type_name: Optional[str],
        attributes: Mapping[str, Any],
        feed_ids: Sequence[int] = (),
    ) -> tuple[Content, str]:
        """
        Create content and submit it to ``feed_ids``.

        Submissions to feeds the actor moderates are approved immediately.

        Returns:
            (saved content, notice for the user)

        Raises:
            AuthorizationError: actor may not create content
            ContentValidationError: bad fields, media or feed ids
        """
        descriptor = self.registry.resolve_or_default(type_name)
        content = self._blank(descriptor, actor)
        self._authorize(actor, Operation.CREATE, content)

        errors: dict[str, list[str]] = {}
        self._bind(content, descriptor.accepted_fields, attributes, errors)
        feeds = await self._check_feeds(actor, feed_ids, errors)
        for field_name, messages in content.validate().items():
            errors.setdefault(field_name, []).extend(messages)
        if errors:
            raise await self._invalid(actor, content, errors)

        async with DBTransaction(self.db):
            self.db.add(content)
            await self.db.flush()
            self._reconcile(actor, content, feed_ids, feeds)
        await self.db.refresh(content)

        logger.info(
            "content_created",
            content_id=content.id,
            type_name=content.type_name,
            user_id=actor.id,
            feed_ids=[s.feed_id for s in content.submissions],
        )
        self.notifier.content_changed(content, "create", actor)

        notice = CREATED_NOTICE if feed_ids else CREATED_WITHOUT_FEEDS_NOTICE
        return content, notice

    # ========================================
    # Edit / Update / Delete
    # ========================================

    async def edit(self, actor: Optional[User], content_id: int) -> tuple[Content, list[Feed]]:
        """Content for the edit form plus the feeds it may go to."""
        content = await self._load(content_id)
        self._authorize(actor, Operation.UPDATE, content)
        return content, await self.submittable_feeds(actor)

    async def update(
        self,
        actor: User,
        content_id: int,
        attributes: Mapping[str, Any],
        feed_ids: Sequence[int] = (),
    ) -> Content:
        """
        Update content attributes and move it to exactly ``feed_ids``.

        Every feed the content stays on goes back to pending moderation;
        feeds no longer listed lose their submission.

        Raises:
            ContentNotFoundError: no such content
            AuthorizationError: actor may not update it
            ContentValidationError: bad fields or feed ids
        """
        content = await self._load(content_id)
        self._authorize(actor, Operation.UPDATE, content)

        errors: dict[str, list[str]] = {}
        self._bind(content, content.content_type.accepted_update_fields, attributes, errors)
        current = {s.feed_id for s in content.submissions}
        feeds = await self._check_feeds(
            actor, [feed_id for feed_id in feed_ids if feed_id not in current], errors
        )
        for field_name, messages in content.validate().items():
            errors.setdefault(field_name, []).extend(messages)
        if errors:
            raise await self._invalid(actor, content, errors)

        async with DBTransaction(self.db):
            # Submission-only edits leave the row clean; updated_at backs the freshness token
            content.updated_at = utcnow()
            self._reconcile(actor, content, feed_ids, feeds)
        await self.db.refresh(content)

        logger.info(
            "content_updated",
            content_id=content.id,
            user_id=actor.id,
            feed_ids=[s.feed_id for s in content.submissions],
        )
        self.notifier.content_changed(content, "update", actor)
        return content

    async def delete(self, actor: User, content_id: int) -> None:
        """Delete content together with its media and submissions."""
        content = await self._load(content_id)
        self._authorize(actor, Operation.DELETE, content)

        async with DBTransaction(self.db):
            await self.db.delete(content)

        logger.info("content_deleted", content_id=content_id, user_id=actor.id)

    # ========================================
    # Display / Act / Preview
    # ========================================

    async def display(
        self,
        actor: Optional[User],
        content_id: int,
        params: Mapping[str, Any],
        if_none_match: Optional[str] = None,
        if_modified_since: Optional[datetime] = None,
    ) -> RenderResult:
        """
        Render content for a screen, or NotModified for a fresh client copy.

        Raises:
            ContentNotFoundError, AuthorizationError, RenderingError
        """
        content = await self.get(actor, content_id)
        return await self.render_dispatcher.render(
            content, params, if_none_match=if_none_match, if_modified_since=if_modified_since
        )

    async def act(
        self,
        actor: Optional[User],
        content_id: int,
        action_name: Optional[str],
        params: Mapping[str, Any],
    ) -> Any:
        """
        Run a custom action. Changes the handler makes to the content are saved.

        Raises:
            ContentNotFoundError, AuthorizationError, ActionDispatchError
        """
        content = await self.get(actor, content_id)
        async with DBTransaction(self.db):
            result = await self.action_dispatcher.dispatch(
                content,
                action_name,
                params,
                actor_id=actor.id if actor is not None else None,
            )
        return result

    async def preview(
        self,
        type_name: Optional[str],
        data: Optional[str] = None,
        content_id: Optional[int] = None,
    ) -> str:
        """
        HTML preview of inline ``data``, or of stored content by id.

        Needs no authorization and never fails on an unknown type; the
        fragment says so instead.
        """
        descriptor = self.registry.resolve(type_name)
        if descriptor is None:
            return UNRECOGNIZED_PREVIEW

        if data is None and content_id is not None:
            result = await self.db.execute(select(Content.data).where(Content.id == content_id))
            data = result.scalar_one_or_none()
        return descriptor.preview(data or "")
