"""Read the expiry of an access token.

Access tokens are JWTs.  The client only needs the ``exp`` claim to decide
when to refresh, so the payload segment is base64url-decoded and parsed
without verifying the signature; verification is the issuing server's job.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from typing import Any


def decode_claims(token: str) -> dict[str, Any]:
    """Return the claims of *token* without verifying its signature.

    Raises
    ------
    ValueError
        If *token* is not three dot-separated segments or its payload is not
        a base64url-encoded JSON object.
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise ValueError(f"expected 3 token segments, got {len(parts)}")
    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        claims = json.loads(raw)
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise ValueError(f"token payload is not valid base64url JSON: {exc}") from exc
    if not isinstance(claims, dict):
        raise ValueError("token payload is not a JSON object")
    return claims


def token_expiry(token: str) -> float | None:
    """Return the ``exp`` claim as Unix seconds, or ``None`` if unreadable."""
    try:
        exp = decode_claims(token).get("exp")
    except ValueError:
        return None
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return None
    return float(exp)


def is_expired(token: str | None, now: float | None = None) -> bool:
    """Return ``True`` if *token* must be refreshed before use.

    A token is stale when it is missing, has no readable ``exp`` claim, or
    ``now >= exp``.
    """
    if not token:
        return True
    exp = token_expiry(token)
    if exp is None:
        return True
    if now is None:
        now = time.time()
    return now >= exp
