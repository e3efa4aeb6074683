"""
Render dispatch with freshness checks.

The dispatcher turns (content, request params) into output bytes:

1. Compute the freshness token (an ETag) from the params and the content's
   updated_at.
2. If the client already holds that token (If-None-Match), or its
   If-Modified-Since is not older than updated_at, answer NotModified.
3. Otherwise look in the render cache, then call the content's own
   ``render``. Elapsed time is logged as ``content_rendered``.

Renderer failures are raised as RenderingError, never turned into empty
output.
"""

import hashlib
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from feedboard.core.exceptions import RenderingError
from feedboard.core.logging import get_logger
from feedboard.db.base import as_utc
from feedboard.models.content import Content, RenderedFile
from feedboard.services.render_cache import RenderCache

logger = get_logger(__name__)


@dataclass(frozen=True)
class RenderedOutput:
    """Fresh render result with the validators to send along."""

    data: bytes
    file_name: str
    file_type: str
    etag: str
    last_modified: datetime
    cached: bool = False


@dataclass(frozen=True)
class NotModified:
    """The client's copy is current."""

    etag: str
    last_modified: datetime


RenderResult = Union[RenderedOutput, NotModified]


def freshness_token(content: Content, params: Mapping[str, Any]) -> str:
    """
    Entity tag for rendering ``content`` with ``params``.

    Parameter order does not matter; values are compared as strings.
    """
    digest = hashlib.sha1()
    for key in sorted(params):
        digest.update(f"{key}={params[key]}\x1f".encode("utf-8"))
    digest.update(f"{content.id}\x1f{content.type_name}\x1f".encode("utf-8"))
    digest.update(as_utc(content.updated_at).isoformat().encode("utf-8"))
    return f'"{digest.hexdigest()}"'


def _etag_matches(header: Optional[str], etag: str) -> bool:
    if not header:
        return False
    candidates = {c.strip().removeprefix("W/") for c in header.split(",")}
    return "*" in candidates or etag in candidates


class RenderDispatcher:
    """
    Example:
        >>> dispatcher = RenderDispatcher()
        >>> result = await dispatcher.render(content, {"format": "detailed"}, if_none_match=None)
        >>> isinstance(result, RenderedOutput)
        True
    """

    def __init__(self, cache: Optional[RenderCache] = None):
        self.cache = cache

    async def render(
        self,
        content: Content,
        params: Mapping[str, Any],
        if_none_match: Optional[str] = None,
        if_modified_since: Optional[datetime] = None,
    ) -> RenderResult:
        """
        Render ``content`` unless the caller's copy is fresh.

        Raises:
            RenderingError: the content's renderer failed
        """
        etag = freshness_token(content, params)
        last_modified = as_utc(content.updated_at).replace(microsecond=0)

        if _etag_matches(if_none_match, etag):
            return NotModified(etag=etag, last_modified=last_modified)
        if if_none_match is None and if_modified_since is not None:
            if last_modified <= as_utc(if_modified_since):
                return NotModified(etag=etag, last_modified=last_modified)

        if self.cache is not None:
            hit = await self.cache.get(etag)
            if hit is not None:
                logger.debug("render_cache_hit", content_id=content.id, etag=etag)
                return self._output(hit, etag, last_modified, cached=True)

        started = time.perf_counter()
        try:
            rendered = content.render(params)
        except Exception as e:
            logger.error(
                "content_render_failed",
                content_id=content.id,
                type_name=content.type_name,
                error=str(e),
            )
            raise RenderingError(content.id, content.type_name, str(e)) from e
        duration_ms = round((time.perf_counter() - started) * 1000, 2)

        logger.info(
            "content_rendered",
            content_id=content.id,
            type_name=content.type_name,
            duration_ms=duration_ms,
            size=len(rendered.data),
        )

        if self.cache is not None:
            await self.cache.set(etag, rendered)
        return self._output(rendered, etag, last_modified)

    @staticmethod
    def _output(
        rendered: RenderedFile, etag: str, last_modified: datetime, cached: bool = False
    ) -> RenderedOutput:
        return RenderedOutput(
            data=rendered.data,
            file_name=rendered.file_name,
            file_type=rendered.file_type,
            etag=etag,
            last_modified=last_modified,
            cached=cached,
        )
