"""
RSS feed content.

An RssFeed item points at a remote RSS 2.0 or Atom feed. The ``refresh``
action fetches the feed and caches up to MAX_ITEMS entries in ``config``;
rendering only reads that cache, so screens never wait on the remote host.

Config keys:
------------
- url: feed location (required)
- display_format: "headlines" (plain text, one title per line) or
  "detailed" (HTML list with summaries)
- items: cached entries, each {"title", "link", "summary"}
- refreshed_at: ISO timestamp of the last successful refresh
"""

import html
from collections.abc import Mapping
from typing import Any, Optional

import fastfeedparser
import httpx

from feedboard.core.logging import get_logger
from feedboard.db.base import utcnow
from feedboard.models.content import ActionRequest, Content, RenderedFile, content_action

logger = get_logger(__name__)


def parse_feed(payload: bytes, limit: int) -> list[dict[str, str]]:
    """
    Extract the newest ``limit`` entries from an RSS or Atom document.

    Raises:
        ValueError: if the payload is not a feed (fastfeedparser's error)
    """
    feed = fastfeedparser.parse(payload)

    entries: list[dict[str, str]] = []
    for entry in feed.entries[:limit]:
        entries.append({
            "title": (entry.get("title") or "").strip(),
            "link": (entry.get("link") or "").strip(),
            "summary": (entry.get("description") or entry.get("summary") or "").strip(),
        })
    return entries


class RssFeed(Content):
    __mapper_args__ = {"polymorphic_identity": "RssFeed"}

    display_name = "RSS Feed"
    form_attributes = Content.form_attributes + ("config",)

    DISPLAY_FORMATS = ("headlines", "detailed")
    MAX_ITEMS = 20
    DEFAULT_TIMEOUT = 10.0

    @property
    def url(self) -> Optional[str]:
        return (self.config or {}).get("url")

    @property
    def display_format(self) -> str:
        return (self.config or {}).get("display_format") or "headlines"

    @property
    def items(self) -> list[dict[str, str]]:
        return list((self.config or {}).get("items") or [])

    def validate(self) -> dict[str, list[str]]:
        errors = super().validate()
        url = (self.url or "").strip()
        if not url:
            errors.setdefault("config", []).append("url can't be blank")
        elif not url.startswith(("http://", "https://")):
            errors.setdefault("config", []).append("url must be an http(s) address")
        if self.display_format not in self.DISPLAY_FORMATS:
            errors.setdefault("config", []).append(
                f"display_format must be one of {', '.join(self.DISPLAY_FORMATS)}"
            )
        return errors

    def render(self, params: Mapping[str, Any]) -> RenderedFile:
        display_format = params.get("format") or self.display_format
        items = self.items

        if display_format == "detailed":
            rows = "".join(
                f"<li><strong>{html.escape(i['title'])}</strong>"
                f"<p>{html.escape(i['summary'])}</p></li>"
                for i in items
            )
            return RenderedFile(
                data=f'<ul class="rss-feed">{rows}</ul>'.encode("utf-8"),
                file_name=f"rss-feed-{self.id}.html",
                file_type="text/html; charset=utf-8",
            )

        headlines = "\n".join(i["title"] for i in items if i.get("title"))
        return RenderedFile(
            data=headlines.encode("utf-8"),
            file_name=f"rss-feed-{self.id}.txt",
            file_type="text/plain; charset=utf-8",
        )

    @classmethod
    def preview(cls, data: str) -> str:
        url = html.escape(data or "", quote=True)
        return f'<a href="{url}">{url}</a>'

    # ================================
    # Actions
    # ================================

    @content_action("refresh", reads=("timeout",))
    async def refresh(self, request: ActionRequest) -> Optional[dict[str, Any]]:
        """
        Fetch the remote feed and cache its newest entries.

        Params:
            timeout: seconds to wait for the remote host (default 10)

        Returns None when the feed cannot be fetched or parsed.
        """
        if not self.url:
            return None

        try:
            timeout = float(request.get("timeout", self.DEFAULT_TIMEOUT))
        except (TypeError, ValueError):
            return None

        try:
            async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
                response = await client.get(self.url)
                response.raise_for_status()
            items = parse_feed(response.content, self.MAX_ITEMS)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("rss_refresh_failed", content_id=self.id, url=self.url, error=str(e))
            return None

        refreshed_at = utcnow().isoformat()
        self.set_config(items=items, refreshed_at=refreshed_at)
        logger.info("rss_refreshed", content_id=self.id, item_count=len(items))
        return {"item_count": len(items), "refreshed_at": refreshed_at}

    @content_action("set_format", reads=("display_format",))
    async def set_format(self, request: ActionRequest) -> Optional[dict[str, str]]:
        """Switch between "headlines" and "detailed" output."""
        display_format = request.get("display_format")
        if display_format not in self.DISPLAY_FORMATS:
            return None
        self.set_config(display_format=display_format)
        return {"display_format": display_format}
