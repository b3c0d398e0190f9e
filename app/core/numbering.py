import secrets
import string
import time

_BASE36 = string.digits + string.ascii_uppercase


def generate_reference_number(prefix: str) -> str:
    """
    ``{prefix}-{epochMillis}-{9 random base36 chars}``, e.g. ``ORD-1718000000000-4K2J9QZ1A``.

    Not retried on collision; the unique column rejects duplicates.
    """
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{prefix}-{int(time.time() * 1000)}-{suffix}"
