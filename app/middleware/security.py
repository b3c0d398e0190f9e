"""Request timeout and response security headers."""
import asyncio
import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.core.exceptions import RequestTimeoutError

logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


async def security_headers_middleware(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


async def timeout_middleware(request: Request, call_next):
    """Abort handlers that exceed REQUEST_TIMEOUT_SECONDS with a 408 envelope."""
    try:
        return await asyncio.wait_for(call_next(request), timeout=settings.REQUEST_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning(f"Request timed out: {request.method} {request.url.path}")
        error = RequestTimeoutError()
        return JSONResponse(status_code=error.status_code, content=error.to_dict())
