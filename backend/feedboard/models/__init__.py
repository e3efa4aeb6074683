"""
Database models.

Import models from here so every mapped class (content types included) is
registered before the first query.
"""

from feedboard.models.content import Content, Media, ModerationState, Submission
from feedboard.models.feed import Feed
from feedboard.models.user import User

# Maps the Content subclasses (Graphic, Ticker, ...)
import feedboard.content_types  # noqa: E402,F401

__all__ = [
    "Content",
    "Feed",
    "Media",
    "ModerationState",
    "Submission",
    "User",
]
