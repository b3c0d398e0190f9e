"""
Fixed-window rate limiting for the ``/api`` surface.

Counters live in the application cache under
``ratelimit:{scope}:{identity}:{window}`` and expire with the window, so a
shared Redis limits across processes. Two tiers:

- every API request, keyed by client IP plus the caller's user id
- failed ``POST /auth/*`` attempts, keyed by client IP; successful logins
  and registrations are not counted
"""
import logging
import time
from typing import Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse

from app.api.deps import get_client_ip
from app.config import settings
from app.core.exceptions import TooManyRequestsError
from app.middleware.activity import user_id_from_request

logger = logging.getLogger(__name__)

AUTH_PATH_PREFIX = "/api/v1/auth/"
AUTH_LIMIT_MESSAGE = "Too many authentication attempts, please try again later"


def current_window(window_seconds: int, now: Optional[float] = None) -> Tuple[int, int]:
    """Index of the window containing ``now`` and the seconds until it resets."""
    now = time.time() if now is None else now
    index = int(now // window_seconds)
    reset_in = max(1, int((index + 1) * window_seconds - now))
    return index, reset_in


def rate_limit_key(scope: str, identity: str, window: int) -> str:
    return f"ratelimit:{scope}:{identity}:{window}"


def _limited(message: str, limit: int, reset_in: int) -> JSONResponse:
    error = TooManyRequestsError(message)
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_dict(),
        headers={
            "Retry-After": str(reset_in),
            "RateLimit-Limit": str(limit),
            "RateLimit-Remaining": "0",
            "RateLimit-Reset": str(reset_in),
        },
    )


async def rate_limit_middleware(request: Request, call_next):
    cache = getattr(request.app.state, "cache", None)
    if not settings.RATE_LIMIT_ENABLED or cache is None or not request.url.path.startswith("/api"):
        return await call_next(request)

    window_seconds = settings.RATE_LIMIT_WINDOW_SECONDS
    window, reset_in = current_window(window_seconds)
    ip = get_client_ip(request) or "unknown"
    user_id = user_id_from_request(request)

    limit = settings.RATE_LIMIT_MAX_REQUESTS
    count = await cache.incr(rate_limit_key("api", f"{ip}:{user_id or 'anonymous'}", window), ttl=window_seconds)
    if count > limit:
        logger.warning(f"Rate limit exceeded for {ip} on {request.method} {request.url.path}")
        return _limited(TooManyRequestsError.default_message, limit, reset_in)

    auth_key = None
    if request.method == "POST" and request.url.path.startswith(AUTH_PATH_PREFIX):
        auth_key = rate_limit_key("auth", ip, window)
        failures = await cache.get(auth_key) or 0
        if failures >= settings.AUTH_RATE_LIMIT_MAX_FAILURES:
            logger.warning(f"Auth rate limit exceeded for {ip} on {request.url.path}")
            return _limited(AUTH_LIMIT_MESSAGE, settings.AUTH_RATE_LIMIT_MAX_FAILURES, reset_in)

    response = await call_next(request)

    if auth_key is not None and response.status_code >= 400:
        await cache.incr(auth_key, ttl=window_seconds)

    response.headers["RateLimit-Limit"] = str(limit)
    response.headers["RateLimit-Remaining"] = str(max(0, limit - count))
    response.headers["RateLimit-Reset"] = str(reset_in)
    return response
