from app.middleware.activity import activity_log_middleware
from app.middleware.idempotency import idempotency_middleware
from app.middleware.rate_limit import rate_limit_middleware
from app.middleware.security import security_headers_middleware, timeout_middleware

__all__ = [
    "activity_log_middleware",
    "idempotency_middleware",
    "rate_limit_middleware",
    "security_headers_middleware",
    "timeout_middleware",
]
