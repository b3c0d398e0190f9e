"""Per-request activity logging for the ``/api`` surface."""
import json
import logging
import time
import uuid
from typing import Any, Optional

from fastapi import Request

from app.core.security import verify_access_token
from app.database import async_session_factory
from app.services.activity_log_service import ActivityLogService

logger = logging.getLogger(__name__)

BODY_METHODS = ("POST", "PUT", "PATCH", "DELETE")


def user_id_from_request(request: Request) -> Optional[uuid.UUID]:
    auth = request.headers.get("authorization", "")
    if not auth.lower().startswith("bearer "):
        return None
    subject = verify_access_token(auth[7:].strip())
    if not subject:
        return None
    try:
        return uuid.UUID(subject)
    except ValueError:
        return None


async def _read_body(request: Request) -> Optional[Any]:
    if request.method not in BODY_METHODS:
        return None
    raw = await request.body()
    if not raw:
        return None
    try:
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return raw.decode("utf-8", errors="replace")


async def activity_log_middleware(request: Request, call_next):
    """Record method, path, status and timing for every API request after it completes."""
    if not request.url.path.startswith("/api"):
        return await call_next(request)

    started = time.perf_counter()
    body = await _read_body(request)
    response = await call_next(request)
    duration_ms = int((time.perf_counter() - started) * 1000)

    try:
        async with async_session_factory() as session:
            await ActivityLogService(session).log(
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=duration_ms,
                user_id=user_id_from_request(request),
                ip=request.client.host if request.client else None,
                user_agent=request.headers.get("user-agent"),
                query=dict(request.query_params) or None,
                params=dict(request.path_params) or None,
                body=body,
            )
    except Exception as e:
        logger.error(f"Activity log skipped for {request.method} {request.url.path}: {e}")

    return response
