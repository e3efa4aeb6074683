"""
User Model

Users own content and moderate the feeds they own. Authentication lives in
feedboard.core.security; the content core only ever needs ``user.id``,
``is_active`` and ``is_admin``.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from feedboard.db.base import BaseModel, String100, String255


class User(BaseModel):
    """
    User account.

    Table: users
    ------------
    - email: unique login identifier (JWT "sub" claim)
    - hashed_password: bcrypt hash, NULL for accounts provisioned elsewhere
    - is_admin: bypasses every capability check
    """

    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String255,
        unique=True,
        index=True,
        nullable=False,
        comment="User's email address (unique login identifier)"
    )

    name: Mapped[str] = mapped_column(
        String100,
        nullable=False,
        comment="User's display name"
    )

    hashed_password: Mapped[str | None] = mapped_column(
        String255,
        nullable=True,
        comment="Bcrypt hash of the user's password"
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        comment="Disabled accounts can neither log in nor act"
    )

    is_admin: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        comment="Administrators pass every capability check"
    )

    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Last successful login (UTC)"
    )

    def __repr__(self) -> str:
        return f"User(id={self.id}, email='{self.email}')"
