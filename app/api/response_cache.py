"""Response caching for read-heavy GET endpoints."""
from typing import Any, Awaitable, Callable, Optional
import logging

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder

from app.config import settings
from app.services.cache_service import CacheService

logger = logging.getLogger(__name__)

CACHE_HEADER = "X-Cache"


def response_cache_key(prefix: str, request: Request, scope: Optional[str] = None) -> str:
    params = dict(request.query_params)
    if scope:
        params["_scope"] = scope
    return f"{prefix}:{request.url.path}:{CacheService.hash_params(params)}"


async def cached_response(
    request: Request,
    response: Response,
    cache: CacheService,
    prefix: str,
    factory: Callable[[], Awaitable[Any]],
    ttl: Optional[int] = None,
    scope: Optional[str] = None,
) -> Any:
    """
    Serve the JSON body from the cache, or build it with ``factory`` and store it.

    Sets ``X-Cache: HIT`` or ``X-Cache: MISS`` on the response. ``scope``
    separates entries whose content depends on the caller.
    """
    if not settings.CACHE_ENABLED:
        return await factory()

    key = response_cache_key(prefix, request, scope)
    cached = await cache.get(key)
    if cached is not None:
        response.headers[CACHE_HEADER] = "HIT"
        return cached

    body = jsonable_encoder(await factory())
    await cache.set(key, body, ttl=ttl or settings.CACHE_DEFAULT_TTL)
    response.headers[CACHE_HEADER] = "MISS"
    return body


async def invalidate(cache: CacheService, prefix: str) -> int:
    removed = await cache.clear_pattern(f"{prefix}:*")
    if removed:
        logger.debug(f"Invalidated {removed} cached '{prefix}' responses")
    return removed
