import logging
from typing import Any, Iterable

REDACTED = "[REDACTED]"

# Lower-cased field names whose values never reach a log line or activity record
SENSITIVE_KEYS = frozenset({
    "password",
    "token",
    "accesstoken",
    "refreshtoken",
    "authorization",
    "secret",
    "apikey",
})


def redact(payload: Any, keys: Iterable[str] = SENSITIVE_KEYS) -> Any:
    """Return a copy of ``payload`` with sensitive values replaced.

    Dicts and lists are walked recursively; key matching is case-insensitive
    and ignores underscores, so ``refresh_token`` and ``refreshToken`` are
    both caught.
    """
    keys = frozenset(k.replace("_", "").lower() for k in keys)
    if isinstance(payload, dict):
        cleaned = {}
        for key, value in payload.items():
            normalized = str(key).replace("_", "").lower()
            cleaned[key] = REDACTED if normalized in keys else redact(value, keys)
        return cleaned
    if isinstance(payload, (list, tuple)):
        return [redact(item, keys) for item in payload]
    return payload


def truncate(value: Any, limit: int = 500) -> Any:
    """Shorten long strings inside a payload, leaving other values alone."""
    if isinstance(value, str) and len(value) > limit:
        return value[:limit] + "...[truncated]"
    if isinstance(value, dict):
        return {k: truncate(v, limit) for k, v in value.items()}
    if isinstance(value, list):
        return [truncate(v, limit) for v in value]
    return value


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    root = logging.getLogger()
    if any(getattr(h, "_logistics_handler", False) for h in root.handlers):
        root.setLevel(level.upper())
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    handler._logistics_handler = True
    root.addHandler(handler)
    root.setLevel(level.upper())
