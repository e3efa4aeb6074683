"""
Dependencies wiring the content service for routes.

Tests override ``get_registry``, ``get_gate`` or ``get_content_service``
through ``app.dependency_overrides``.
"""

from typing import Annotated, Optional

from fastapi import Depends
from redis.exceptions import RedisError

from feedboard.content_types import registry
from feedboard.content_types.registry import TypeRegistry
from feedboard.core.config import settings
from feedboard.core.logging import get_logger
from feedboard.core.permissions import CapabilityGate, default_gate
from feedboard.db.deps import DBSession
from feedboard.db.redis import get_redis
from feedboard.services.actions import ActionDispatcher
from feedboard.services.content_service import ContentService
from feedboard.services.notifications import ContentNotifier
from feedboard.services.render_cache import RenderCache
from feedboard.services.rendering import RenderDispatcher

logger = get_logger(__name__)


def get_registry() -> TypeRegistry:
    return registry


def get_gate() -> CapabilityGate:
    return default_gate


async def get_render_cache() -> Optional[RenderCache]:
    """Redis render cache when enabled; rendering goes on without it if Redis is down."""
    if not settings.RENDER_CACHE_ENABLED:
        return None
    try:
        redis = await get_redis()
    except RedisError as e:
        logger.warning("render_cache_unavailable", error=str(e))
        return None
    return RenderCache(redis, ttl_seconds=settings.RENDER_CACHE_TTL_SECONDS)


def get_notifier() -> ContentNotifier:
    return ContentNotifier(enabled=settings.ENABLE_NOTIFICATIONS)


def get_content_service(
    db: DBSession,
    registry: TypeRegistry = Depends(get_registry),
    gate: CapabilityGate = Depends(get_gate),
    cache: Optional[RenderCache] = Depends(get_render_cache),
    notifier: ContentNotifier = Depends(get_notifier),
) -> ContentService:
    return ContentService(
        db=db,
        registry=registry,
        gate=gate,
        defaults=registry.defaults,
        render_dispatcher=RenderDispatcher(cache=cache),
        action_dispatcher=ActionDispatcher(),
        notifier=notifier,
    )


ContentServiceDep = Annotated[ContentService, Depends(get_content_service)]
