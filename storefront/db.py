"""
Database Module - Upstash Redis client

Provides a lazily created async Upstash Redis client for the Redis cart
backend, plus the key layout shared by everything stored there.
"""
from typing import Optional

from upstash_redis.asyncio import Redis as AsyncRedis

from storefront.config import Settings, get_settings
from storefront.errors import ConfigurationError

_redis_client: Optional[AsyncRedis] = None


def get_redis(settings: Optional[Settings] = None) -> AsyncRedis:
    """
    Get async Upstash Redis client (singleton).

    Uses the standard Upstash env var names:
    - UPSTASH_REDIS_REST_URL
    - UPSTASH_REDIS_REST_TOKEN
    """
    global _redis_client

    if _redis_client is None:
        settings = settings or get_settings()
        if not settings.redis_url or not settings.redis_token:
            raise ConfigurationError("UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set")
        _redis_client = AsyncRedis(url=settings.redis_url, token=settings.redis_token)

    return _redis_client


class RedisKeys:
    """Redis key layout for cart storage."""

    # Line item id sequence (INCR)
    CART_SEQUENCE = "cart:seq"

    # Line item hash: cart:item:{line_item_id}
    CART_ITEM = "cart:item:"

    # Session index hash, product_id -> line_item_id: cart:session:{session_id}
    CART_SESSION = "cart:session:"

    @staticmethod
    def item_key(line_item_id: int | str) -> str:
        return f"{RedisKeys.CART_ITEM}{line_item_id}"

    @staticmethod
    def session_key(session_id: str) -> str:
        return f"{RedisKeys.CART_SESSION}{session_id}"
