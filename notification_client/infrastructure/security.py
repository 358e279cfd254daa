"""Best-effort inspection of access tokens.

The client never verifies token signatures: it only reads the ``exp`` claim
to avoid connection attempts that are bound to be rejected. This is a hint,
not a security boundary; authorization is enforced by the server.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from jose import JWTError, jwt

from notification_client.utils import utc_now

EXPIRY_LEEWAY_SECONDS = 0.0


def read_unverified_claims(token: str) -> dict[str, Any] | None:
    """Return the token claims without verifying the signature."""

    if not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError:
        return None
    if not isinstance(claims, dict):
        return None
    return claims


def get_token_expiry(token: str) -> datetime | None:
    """Return the ``exp`` claim of ``token`` as an aware datetime, if any."""

    claims = read_unverified_claims(token)
    if not claims:
        return None

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    try:
        return datetime.fromtimestamp(exp, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def is_token_expired(
    token: str | None,
    *,
    now: Callable[[], datetime] = utc_now,
    leeway: float = EXPIRY_LEEWAY_SECONDS,
) -> bool:
    """Return ``True`` when ``token`` carries an ``exp`` claim in the past.

    Opaque tokens and tokens without ``exp`` are treated as not expired; the
    server is the one that decides.
    """

    if not token:
        return False
    expiry = get_token_expiry(token)
    if expiry is None:
        return False
    return expiry.timestamp() <= now().timestamp() + leeway


__all__ = ["get_token_expiry", "is_token_expired", "read_unverified_claims"]
