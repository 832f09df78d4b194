"""Scrub credentials and bulky payloads out of dicts bound for logs.

Debug dumps and structured log fields go through :func:`redact` first:

* **Authorization headers** and keys that look sensitive are replaced with
  a masked placeholder that shows only the last four characters.
* **Signed URLs** keep scheme, host and path; their query string (which
  carries the signature) is replaced with ``?<redacted>``.
* **Binary values** (``bytes`` or non-text strings that are unreasonably
  long) are replaced with ``<binary:N_bytes>``.
* The API key and access token are **never present** in the output.
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterable
from typing import Any

_SENSITIVE_KEY_PATTERNS: frozenset[str] = frozenset({
    "token",
    "secret",
    "password",
    "authorization",
    "api_key",
    "apikey",
    "api-key",
    "signature",
})

_URL_QUERY_RE = re.compile(r"(https?://[^\s?#\"']+)\?[^\s#\"']+")

_BINARY_MIN_LENGTH = 256
_BINARY_SAMPLE = 512
_TEXT_CONTROLS = frozenset("\n\r\t")


def _mask_secret(value: str, secrets: Iterable[str]) -> str:
    """Replace every known secret and bearer credential in *value*."""
    for secret in secrets:
        if not secret or secret not in value:
            continue
        suffix = secret[-4:] if len(secret) >= 8 else "****"
        placeholder = f"<redacted:...{suffix}>"
        if secret in placeholder:
            placeholder = "<redacted>"
        value = value.replace(secret, placeholder)
    return re.sub(
        r"(Bearer\s+)(?!<redacted)\S+",
        lambda m: f"{m.group(1)}<redacted>",
        value,
    )


def _looks_binary(value: str) -> bool:
    """Return True for long strings whose leading sample is over 10% control bytes."""
    if len(value) < _BINARY_MIN_LENGTH:
        return False
    sample = value[:_BINARY_SAMPLE]
    controls = [ch for ch in sample if not ch.isprintable() and ch not in _TEXT_CONTROLS]
    return len(controls) * 10 > len(sample)


def _redact_value(value: Any, secrets: tuple[str, ...]) -> Any:
    if isinstance(value, dict):
        return _redact_dict(value, secrets)
    if isinstance(value, list):
        return [_redact_value(item, secrets) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return f"<binary:{len(value)}_bytes>"
    if isinstance(value, str):
        if _looks_binary(value):
            return f"<binary:{len(value.encode('utf-8'))}_bytes>"
        value = _URL_QUERY_RE.sub(lambda m: f"{m.group(1)}?<redacted>", value)
        return _mask_secret(value, secrets)
    return value


def _redact_dict(d: dict, secrets: tuple[str, ...]) -> dict:
    result: dict = {}
    for key, value in d.items():
        key_lower = key.lower() if isinstance(key, str) else ""
        if any(pat in key_lower for pat in _SENSITIVE_KEY_PATTERNS):
            if isinstance(value, str):
                masked = _mask_secret(value, secrets)
                result[key] = masked if masked != value else "<redacted>"
            else:
                result[key] = "<redacted>"
        else:
            result[key] = _redact_value(value, secrets)
    return result


def redact(payload: dict, secrets: Iterable[str | None] = ()) -> dict:
    """Return a deep copy of *payload* with sensitive data redacted.

    Parameters
    ----------
    payload:
        The dictionary to sanitise (a request body, headers, or a debug
        dump combining both).
    secrets:
        Exact strings to scrub wherever they appear, typically the API key
        and the current access token.  ``None`` entries are ignored.

    Returns
    -------
    dict
        A new dictionary with all sensitive data removed.  *payload* is
        never mutated.

    Examples
    --------
    >>> redact({"Authorization": "Bearer sk_live_abc123"})
    {'Authorization': 'Bearer <redacted>'}
    """
    safe = copy.deepcopy(payload)
    return _redact_dict(safe, tuple(s for s in secrets if s))
