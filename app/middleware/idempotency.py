"""
Idempotency middleware.

A mutating request carrying ``Idempotency-Key`` (or ``X-Idempotency-Key``)
is executed at most once per ``(method, path, key)`` within the TTL. The
first response is stored as ``{statusCode, body, contentType}`` and replayed
verbatim, with ``Idempotent-Replay: true``, for every repeat.

The key is reserved with an atomic set-if-absent before the handler runs, so
a concurrent duplicate gets 409 instead of executing twice. 5xx responses
release the reservation so the client can retry.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from app.config import settings
from app.core.exceptions import error_envelope

logger = logging.getLogger(__name__)

IDEMPOTENCY_HEADERS = ("idempotency-key", "x-idempotency-key")
REPLAY_HEADER = "Idempotent-Replay"
SAFE_METHODS = ("GET", "HEAD", "OPTIONS")
PROCESSING = "processing"


def idempotency_cache_key(method: str, path: str, key: str) -> str:
    return f"idemp:{method.upper()}:{path}:{key}"


def _replay(record: dict) -> Response:
    return Response(
        content=record.get("body", ""),
        status_code=record["statusCode"],
        media_type=record.get("contentType") or "application/json",
        headers={REPLAY_HEADER: "true"},
    )


async def idempotency_middleware(request: Request, call_next):
    if request.method in SAFE_METHODS or not request.url.path.startswith("/api"):
        return await call_next(request)

    key = next((request.headers[h] for h in IDEMPOTENCY_HEADERS if request.headers.get(h)), None)
    cache = getattr(request.app.state, "cache", None)
    if not key or cache is None:
        return await call_next(request)

    cache_key = idempotency_cache_key(request.method, request.url.path, key)
    ttl = settings.IDEMPOTENCY_TTL_SECONDS

    if not await cache.set_if_absent(cache_key, {"status": PROCESSING}, ttl=ttl):
        record = await cache.get(cache_key)
        if record and "statusCode" in record:
            logger.info(f"Idempotent replay for {request.method} {request.url.path} key={key}")
            return _replay(record)
        if record:
            return JSONResponse(
                status_code=409,
                content=error_envelope(409, "A request with this idempotency key is still in progress"),
            )
        # Reservation expired between the two calls; take it again
        await cache.set(cache_key, {"status": PROCESSING}, ttl=ttl)

    try:
        response = await call_next(request)
    except Exception:
        await cache.delete(cache_key)
        raise

    if response.status_code >= 500:
        await cache.delete(cache_key)
        return response

    body = b"".join([chunk async for chunk in response.body_iterator])
    await cache.set(
        cache_key,
        {
            "statusCode": response.status_code,
            "body": body.decode("utf-8"),
            "contentType": response.headers.get("content-type"),
        },
        ttl=ttl,
    )
    return Response(
        content=body,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type,
        background=response.background,
    )
