"""
Content type registry.

Maps a type name to a ContentTypeDescriptor bundling everything the content
core needs to handle that type: constructor, field allow-lists, renderer,
action table and preview function.

Name Lookup:
------------
Lookups ignore case and separators, so "rss_feed", "rss-feed", "RssFeed"
and "RSSFEED" all find the RssFeed type. ``resolve`` is total: it returns
the descriptor or None and never raises.

Fallback:
---------
``resolve_or_default`` is what "new content" requests use:

1. the requested type, if it resolves
2. otherwise the configured default upload type, if it resolves
3. no default configured → ContentTypeConfigurationError (fatal)
4. default configured but unknown → UnrecognizedContentTypeError (400)
"""

import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

from feedboard.core.config import ContentDefaults
from feedboard.core.exceptions import (
    ContentTypeConfigurationError,
    ContentTypeConformanceError,
    UnrecognizedContentTypeError,
)
from feedboard.core.logging import get_logger
from feedboard.models.content import Content, ContentAction, RenderedFile

logger = get_logger(__name__)

_SEPARATORS = re.compile(r"[^a-z0-9]")


def normalize_type_name(name: str) -> str:
    """Registry key for a type name: lowercase, separators removed."""
    return _SEPARATORS.sub("", name.lower())


@dataclass(frozen=True)
class ContentTypeDescriptor:
    """Everything the content core knows about one content type."""

    name: str
    display_name: str
    constructor: type[Content]
    accepted_fields: tuple[str, ...]
    accepted_update_fields: tuple[str, ...]
    renderer: Callable[[Content, Mapping[str, Any]], RenderedFile]
    actions: Mapping[str, ContentAction]
    preview: Callable[[str], str]

    @classmethod
    def for_model(cls, model: Any) -> "ContentTypeDescriptor":
        """
        Describe a mapped Content subclass.

        Raises:
            ContentTypeConformanceError: if ``model`` is not a concrete
                Content subclass with a polymorphic identity
        """
        if not (isinstance(model, type) and issubclass(model, Content)) or model is Content:
            raise ContentTypeConformanceError(f"{model!r} is not a Content type")

        identity = model.type_identity()
        if not identity:
            raise ContentTypeConformanceError(f"{model.__name__} has no polymorphic identity")

        return cls(
            name=identity,
            display_name=model.display_name,
            constructor=model,
            accepted_fields=tuple(model.form_attributes),
            accepted_update_fields=tuple(model.update_attributes),
            renderer=model.render,
            actions=model.actions,
            preview=model.preview,
        )

    def build(self, **attributes: Any) -> Content:
        """Instantiate a new, unsaved content item of this type."""
        return self.constructor(**attributes)


class TypeRegistry:
    """
    Name → ContentTypeDescriptor mapping, populated at process start.

    Example:
        >>> registry = TypeRegistry(ContentDefaults("Graphic", 8))
        >>> registry.register(Graphic)
        >>> registry.resolve("graphic").name
        'Graphic'
    """

    def __init__(self, defaults: ContentDefaults):
        self.defaults = defaults
        self._types: dict[str, ContentTypeDescriptor] = {}

    def register(
        self, content_type: Union[type[Content], ContentTypeDescriptor]
    ) -> ContentTypeDescriptor:
        """
        Register a content type, failing fast on anything that is not one.

        Raises:
            ContentTypeConformanceError: non-Content constructor
            ValueError: a type with the same normalized name exists
        """
        if isinstance(content_type, ContentTypeDescriptor):
            descriptor = content_type
            constructor = descriptor.constructor
            if not (isinstance(constructor, type) and issubclass(constructor, Content)):
                raise ContentTypeConformanceError(
                    f"{descriptor.name} constructor {constructor!r} is not a Content type"
                )
        else:
            descriptor = ContentTypeDescriptor.for_model(content_type)

        key = normalize_type_name(descriptor.name)
        if key in self._types:
            raise ValueError(f"Content type {descriptor.name!r} is already registered")

        self._types[key] = descriptor
        return descriptor

    def resolve(self, name: Any) -> Optional[ContentTypeDescriptor]:
        """Descriptor for ``name``, or None when it names no registered type."""
        if not isinstance(name, str) or not name.strip():
            return None
        return self._types.get(normalize_type_name(name))

    def require(self, name: Any) -> ContentTypeDescriptor:
        """Like ``resolve`` but raises UnrecognizedContentTypeError."""
        descriptor = self.resolve(name)
        if descriptor is None:
            raise UnrecognizedContentTypeError(name)
        return descriptor

    def resolve_or_default(self, name: Any) -> ContentTypeDescriptor:
        """
        Resolve ``name``, falling back to the default upload type.

        Raises:
            ContentTypeConfigurationError: no default upload type configured
            UnrecognizedContentTypeError: the default itself is not a type
        """
        descriptor = self.resolve(name)
        if descriptor is not None:
            return descriptor

        logger.debug("content_type_not_found_trying_default", requested=name)
        default_name = self.defaults.default_upload_type
        if not default_name:
            logger.critical("missing_default_content_type", requested=name)
            raise ContentTypeConfigurationError("Missing Default Content Type")

        descriptor = self.resolve(default_name)
        if descriptor is None:
            raise UnrecognizedContentTypeError(default_name)
        return descriptor

    def names(self) -> list[str]:
        return sorted(d.name for d in self._types.values())

    def __contains__(self, name: Any) -> bool:
        return self.resolve(name) is not None

    def __iter__(self) -> Iterator[ContentTypeDescriptor]:
        return iter(self._types.values())

    def __len__(self) -> int:
        return len(self._types)
