from __future__ import annotations

import json
from typing import Any, Optional

import redis
from ..core.config import get_settings

settings = get_settings()

# Bump to invalidate every cached vendor lookup after a parser change.
CACHE_NAMESPACE = "offmarket:v1"


def _get_sync_redis() -> redis.Redis:
    """
    Fresh sync client per call; Celery workers and request threads each run
    their own short-lived event loops.
    """
    return redis.from_url(
        str(settings.REDIS_URL),
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
    )


def vendor_cache_key(vendor: str, **lookup: Any) -> str:
    """
    Stable key for one vendor lookup, e.g.

        vendor_cache_key("hunter", domain="acme.com")
        -> "offmarket:v1:hunter:domain=acme.com"
    """
    parts = ",".join(f"{k}={str(v).strip().lower()}" for k, v in sorted(lookup.items()))
    return f"{CACHE_NAMESPACE}:{vendor}:{parts}"


async def cached_get(
    key: str,
    set_value: Any | None = None,
    ttl: Optional[int] = None,
) -> Any:
    """
    Async TTL cache for raw vendor lookups.

        data = await cached_get(key)                              # read
        await cached_get(key, set_value=data)                     # write, default TTL
        await cached_get(key, set_value=data, ttl=60)             # write, explicit TTL

    A miss and an unreachable Redis look the same to callers (None); vendor
    data is never worth failing an enrichment over.
    """
    client = _get_sync_redis()
    try:
        if set_value is None:
            raw = client.get(key)
            return json.loads(raw) if raw is not None else None

        client.set(
            key,
            json.dumps(set_value),
            ex=ttl if ttl is not None else settings.VENDOR_CACHE_TTL_SECONDS,
        )
        return set_value
    except (redis.RedisError, ValueError):
        return None
    finally:
        try:
            client.close()
        except redis.RedisError:
            pass
