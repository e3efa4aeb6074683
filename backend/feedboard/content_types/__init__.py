"""
Shipped content types and the process-wide type registry.

Importing this package maps every content subclass and registers it, so
anything that loads Content rows must import it first (feedboard.models
does).
"""

from feedboard.content_types.graphic import Graphic
from feedboard.content_types.html_text import HtmlText
from feedboard.content_types.registry import (
    ContentTypeDescriptor,
    TypeRegistry,
    normalize_type_name,
)
from feedboard.content_types.rss_feed import RssFeed
from feedboard.content_types.ticker import Ticker
from feedboard.core.config import settings

CONTENT_TYPES = (Graphic, Ticker, HtmlText, RssFeed)


def build_registry(defaults=None) -> TypeRegistry:
    """Registry holding every shipped content type."""
    registry = TypeRegistry(defaults or settings.content_defaults())
    for content_type in CONTENT_TYPES:
        registry.register(content_type)
    return registry


registry = build_registry()

__all__ = [
    "CONTENT_TYPES",
    "ContentTypeDescriptor",
    "Graphic",
    "HtmlText",
    "RssFeed",
    "Ticker",
    "TypeRegistry",
    "build_registry",
    "normalize_type_name",
    "registry",
]
