"""HMAC tokens for stream URLs.

A token is the hex SHA-256 HMAC of ``"<file>:<expires>"`` where ``expires``
is a unix timestamp in seconds. Validation only happens when a signing secret
is configured.
"""

from __future__ import annotations

import hashlib
import hmac
import time

from .errors import InvalidToken


def sign(file_name: str, expires: int, secret: str) -> str:
    message = f"{file_name}:{expires}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def signed_query(
    file_name: str, secret: str, ttl: int = 3600, now: float | None = None
) -> dict[str, str]:
    """Build the ``file``/``token``/``expires`` query parameters for a URL."""
    expires = int((time.time() if now is None else now) + ttl)
    return {
        "file": file_name,
        "token": sign(file_name, expires, secret),
        "expires": str(expires),
    }


def verify(
    file_name: str,
    token: str | None,
    expires: str | None,
    secret: str,
    now: float | None = None,
) -> None:
    """Raise :class:`InvalidToken` unless ``token`` is valid and unexpired."""
    if not token or not expires:
        raise InvalidToken
    try:
        expires_at = int(expires)
    except ValueError:
        raise InvalidToken from None
    if expires_at < (time.time() if now is None else now):
        raise InvalidToken("Token expired")
    expected = sign(file_name, expires_at, secret)
    if not hmac.compare_digest(expected.encode(), token.encode()):
        raise InvalidToken
