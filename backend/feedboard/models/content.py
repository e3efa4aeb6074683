"""
Content Models

This module contains the content aggregate.

Models Included:
----------------
1. Content - Polymorphic base for every content type (single-table inheritance)
2. Media - Binary attachments owned by a content item (uploaded images)
3. Submission - A content item's entry in one feed, carrying moderation state
4. ModerationState (Enum) - pending / approved / rejected

Database Tables:
----------------
- contents: every content item, discriminated by ``type_name``
- media: attachments, deleted with their content
- submissions: content ↔ feed association objects, deleted with their content

Relationships:
--------------
- Content (1) ←→ (Many) Media
- Content (1) ←→ (Many) Submission (Many) ←→ (1) Feed

Content Types:
--------------
Concrete types (Graphic, Ticker, ...) live in ``feedboard.content_types``.
Each is a mapped subclass of Content whose ``polymorphic_identity`` is its
registered type name. A subclass describes its behavior with class
attributes and methods:

- form_attributes / update_attributes: field allow-lists for binding
- render(params) -> RenderedFile
- preview(data) -> HTML fragment (classmethod)
- @content_action("name", reads=(...)) handlers, collected into ``actions``
- validate() -> field errors
"""

import enum
import html
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    LargeBinary,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedboard.db.base import (
    BaseModel,
    JSONType,
    String50,
    String100,
    String255,
    as_utc,
)
from feedboard.models.feed import Feed
from feedboard.models.user import User

if TYPE_CHECKING:
    from feedboard.content_types.registry import ContentTypeDescriptor


# ================================
# Enums
# ================================

class ModerationState(str, enum.Enum):
    """
    Moderation state of a submission.

    Stored as a nullable boolean ``moderation_flag``:

    - NULL  → PENDING (waiting for the feed moderator)
    - True  → APPROVED
    - False → REJECTED
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    def __str__(self) -> str:
        """Return the string value of the enum."""
        return self.value

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "ModerationState":
        if flag is None:
            return cls.PENDING
        return cls.APPROVED if flag else cls.REJECTED


# ================================
# Rendering / Action Value Types
# ================================

@dataclass(frozen=True)
class RenderedFile:
    """Output of a content renderer: bytes plus how to serve them."""

    data: bytes
    file_name: str
    file_type: str


@dataclass(frozen=True)
class ActionRequest:
    """
    Parameter bag handed to a custom action handler.

    ``params`` is untyped on purpose: each handler documents the keys it
    reads through ``@content_action(..., reads=...)``.
    """

    actor_id: Optional[int]
    params: Mapping[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.params.get(key, default)


ActionHandler = Callable[["Content", ActionRequest], Awaitable[Any]]


@dataclass(frozen=True)
class ContentAction:
    """A named custom action declared on a content type."""

    name: str
    handler: ActionHandler
    reads: tuple[str, ...] = ()

    async def invoke(self, content: "Content", request: ActionRequest) -> Any:
        return await self.handler(content, request)


def content_action(name: str, reads: tuple[str, ...] = ()):
    """
    Declare an async method as a custom action of its content type.

    The handler returns its result payload, or None when it cannot act.

    Example:
        class RssFeed(Content):
            @content_action("refresh", reads=("timeout",))
            async def refresh(self, request: ActionRequest) -> dict | None:
                ...
    """

    def decorator(fn: ActionHandler) -> ActionHandler:
        fn.__content_action__ = ContentAction(name=name, handler=fn, reads=tuple(reads))
        return fn

    return decorator


# ================================
# Content Model (Polymorphic Base)
# ================================

class Content(BaseModel):
    """
    A distributable content item.

    Table: contents
    ---------------
    Common columns live here; type-specific values go in ``data`` (the main
    payload, e.g. ticker text) and ``config`` (JSON, e.g. an RSS feed URL).

    Scheduling:
    -----------
    ``start_time`` / ``end_time`` bound when screens may show the item. Both
    are optional; when both are set, start must precede end.

    Freshness:
    ----------
    ``updated_at`` together with the request parameters forms the
    freshness token used by the render dispatcher.
    """

    __tablename__ = "contents"

    # ================================
    # Type Discriminator
    # ================================

    type_name: Mapped[str] = mapped_column(
        String50,
        nullable=False,
        index=True,
        comment="Registered content type name (Graphic, Ticker, ...)"
    )

    # ================================
    # Common Attributes
    # ================================

    name: Mapped[str] = mapped_column(
        String100,
        nullable=False,
        comment="Content name shown to moderators"
    )

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owner of this content"
    )

    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=8,
        comment="Seconds on screen per rotation"
    )

    start_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Do not show before (UTC)"
    )

    end_time: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Do not show after (UTC)"
    )

    data: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Main type-specific payload (text, HTML, ...)"
    )

    config: Mapped[dict | None] = mapped_column(
        JSONType,
        nullable=True,
        comment="Type-specific settings (JSON)"
    )

    # ================================
    # Relationships
    # ================================

    user: Mapped[User] = relationship(User, lazy="joined")

    media: Mapped[list["Media"]] = relationship(
        "Media",
        back_populates="content",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Media.id",
    )

    submissions: Mapped[list["Submission"]] = relationship(
        "Submission",
        back_populates="content",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="Submission.id",
    )
    # delete-orphan: removing a submission from this list deletes its row on
    # the next flush, which is how edits drop feeds.

    __mapper_args__ = {"polymorphic_on": "type_name"}

    __table_args__ = (
        CheckConstraint("duration >= 0", name="duration_non_negative"),
    )

    # ================================
    # Type Behavior (overridden per content type)
    # ================================

    display_name: ClassVar[str] = "Content"
    form_attributes: ClassVar[tuple[str, ...]] = ("name", "duration", "start_time", "end_time")
    update_attributes: ClassVar[tuple[str, ...]] = ("name", "duration", "start_time", "end_time")
    actions: ClassVar[Mapping[str, ContentAction]] = MappingProxyType({})

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table = dict(cls.actions)
        for attr in vars(cls).values():
            declared = getattr(attr, "__content_action__", None)
            if declared is not None:
                table[declared.name] = declared
        cls.actions = MappingProxyType(table)

    @classmethod
    def type_identity(cls) -> Optional[str]:
        """The polymorphic identity this class is stored under."""
        return cls.__mapper__.polymorphic_identity

    def render(self, params: Mapping[str, Any]) -> RenderedFile:
        """Produce the display output for one request."""
        raise NotImplementedError(f"{type(self).__name__} does not render")

    @classmethod
    def preview(cls, data: str) -> str:
        """HTML fragment previewing raw ``data`` before it is saved."""
        return f"<p>{html.escape(data or '')}</p>"

    def validate(self) -> dict[str, list[str]]:
        """
        Check model invariants.

        Returns:
            Mapping of field name to error messages; empty when valid.
            Subclasses extend the result of ``super().validate()``.
        """
        errors: dict[str, list[str]] = {}
        if not (self.name or "").strip():
            errors.setdefault("name", []).append("can't be blank")
        if self.duration is None:
            errors.setdefault("duration", []).append("can't be blank")
        elif self.duration < 0:
            errors.setdefault("duration", []).append("must be greater than or equal to 0")
        if self.start_time and self.end_time:
            if as_utc(self.end_time) <= as_utc(self.start_time):
                errors.setdefault("end_time", []).append("must be after start time")
        return errors

    @property
    def content_type(self) -> "ContentTypeDescriptor":
        """Registry descriptor for this item's type."""
        from feedboard.content_types import registry

        return registry.require(self.type_name)

    def set_config(self, **values: Any) -> None:
        """Merge values into ``config`` (reassigned so the ORM sees the change)."""
        self.config = {**(self.config or {}), **values}

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"{type(self).__name__}(id={self.id}, name='{self.name}')"


# ================================
# Media Model
# ================================

class Media(BaseModel):
    """
    Binary attachment of a content item.

    Forms always post a media slot, even when nothing was uploaded. Such
    placeholders have no file name, type, size or data and are stripped
    before the content is saved (see ``is_placeholder``).
    """

    __tablename__ = "media"

    content_id: Mapped[int] = mapped_column(
        ForeignKey("contents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to contents table"
    )

    key: Mapped[str] = mapped_column(
        String50,
        nullable=False,
        default="original",
        comment="Role of this file for its content (original, thumbnail, ...)"
    )

    file_name: Mapped[str | None] = mapped_column(String255, nullable=True)
    file_type: Mapped[str | None] = mapped_column(String100, nullable=True)
    file_size: Mapped[int | None] = mapped_column(Integer, nullable=True)
    file_data: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    content: Mapped["Content"] = relationship("Content", back_populates="media")

    @property
    def is_placeholder(self) -> bool:
        return (
            self.file_name is None
            and self.file_type is None
            and self.file_size is None
            and self.file_data is None
        )

    def __repr__(self) -> str:
        return f"Media(id={self.id}, key='{self.key}', file_name='{self.file_name}')"


# ================================
# Submission Model (Association Object)
# ================================

class Submission(BaseModel):
    """
    A content item's entry in one feed.

    Table: submissions
    ------------------
    Each record places one content item on one feed, with its own duration
    (copied from the content when the submission is created) and moderation
    state.

    Lifecycle:
    ----------
    - created when a feed is added to the content's feed set; approved on
      the spot when the submitter moderates that feed
    - reset to pending when the content is edited and the feed stays
    - deleted with the content, or when the feed is dropped on edit
    """

    __tablename__ = "submissions"

    content_id: Mapped[int] = mapped_column(
        ForeignKey("contents.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to contents table"
    )

    feed_id: Mapped[int] = mapped_column(
        ForeignKey("feeds.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Foreign key to feeds table"
    )

    duration: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Seconds on screen in this feed"
    )

    moderation_flag: Mapped[bool | None] = mapped_column(
        Boolean,
        nullable=True,
        default=None,
        comment="NULL pending, true approved, false rejected"
    )

    moderator_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        comment="Who approved or rejected this submission"
    )

    content: Mapped["Content"] = relationship("Content", back_populates="submissions")

    feed: Mapped[Feed] = relationship(Feed, lazy="joined")

    __table_args__ = (
        UniqueConstraint("content_id", "feed_id", name="uq_submission_content_feed"),
        # A content item appears in a feed at most once
    )

    @property
    def moderation_state(self) -> ModerationState:
        return ModerationState.from_flag(self.moderation_flag)

    def reset_moderation(self) -> None:
        """Send this submission back to the moderation queue."""
        self.moderation_flag = None
        self.moderator_id = None

    def __repr__(self) -> str:
        return (
            f"Submission(id={self.id}, content_id={self.content_id}, "
            f"feed_id={self.feed_id}, state={self.moderation_state.value})"
        )
