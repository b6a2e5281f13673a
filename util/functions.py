import time


def now_ms() -> int:
    """Wall-clock epoch milliseconds, the unit stored under request:<address>."""
    return int(time.time() * 1000)


def bearer_token(header: str | None) -> str | None:
    """
    - Return the token from an `Authorization: Bearer <token>` header value.
    - Anything else (missing header, other scheme, no token) gives None.
    """
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]
