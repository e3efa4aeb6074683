"""
Redis-backed cache of rendered content.

Entries are keyed by freshness token, so a content update (new updated_at)
or different request parameters simply miss; nothing is invalidated
explicitly. Each entry is a hash {data, file_name, file_type} with a TTL.

Cache failures never fail a render: Redis errors are logged and treated as
a miss.
"""

from typing import Optional

from redis.asyncio import Redis
from redis.exceptions import RedisError

from feedboard.core.logging import get_logger
from feedboard.models.content import RenderedFile

logger = get_logger(__name__)


class RenderCache:
    KEY_PREFIX = "feedboard:render:"

    def __init__(self, redis: Redis, ttl_seconds: int = 3600):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    async def get(self, token: str) -> Optional[RenderedFile]:
        try:
            entry = await self.redis.hgetall(self._key(token))
        except RedisError as e:
            logger.warning("render_cache_read_failed", token=token, error=str(e))
            return None

        if not entry or b"data" not in entry:
            return None
        return RenderedFile(
            data=entry[b"data"],
            file_name=entry.get(b"file_name", b"").decode("utf-8"),
            file_type=entry.get(b"file_type", b"application/octet-stream").decode("utf-8"),
        )

    async def set(self, token: str, rendered: RenderedFile) -> None:
        key = self._key(token)
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                pipe.hset(
                    key,
                    mapping={
                        "data": rendered.data,
                        "file_name": rendered.file_name,
                        "file_type": rendered.file_type,
                    },
                )
                pipe.expire(key, self.ttl_seconds)
                await pipe.execute()
        except RedisError as e:
            logger.warning("render_cache_write_failed", token=token, error=str(e))
