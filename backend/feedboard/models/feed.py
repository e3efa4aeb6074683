"""
Feed Model

A feed is a distribution channel: a set of screens showing whatever content
its moderator approved. Feeds are administered elsewhere; the content core
reads them to decide who may submit and who moderates.
"""

from sqlalchemy import Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from feedboard.db.base import BaseModel, String100, String500
from feedboard.models.user import User


class Feed(BaseModel):
    """
    Distribution channel for content.

    Moderation:
    -----------
    The feed owner moderates it. Submissions made by the owner are approved
    on the spot; everyone else's wait in the pending queue.
    """

    __tablename__ = "feeds"

    name: Mapped[str] = mapped_column(
        String100,
        nullable=False,
        unique=True,
        comment="Feed name shown to submitters"
    )

    description: Mapped[str | None] = mapped_column(
        String500,
        nullable=True,
        comment="What belongs on this feed"
    )

    owner_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
        comment="Moderator of this feed"
    )

    is_submittable: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Whether non-moderators may submit content"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Inactive feeds take no new submissions"
    )

    owner: Mapped[User | None] = relationship(User, lazy="joined")

    def __repr__(self) -> str:
        return f"Feed(id={self.id}, name='{self.name}', owner_id={self.owner_id})"
