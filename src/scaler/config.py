"""SDK configuration for scaler.

:class:`ScalerConfig` is a dataclass that captures every tuneable knob
exposed by the SDK.  Instances are built by both :class:`ScalerClient` and
:class:`AsyncScalerClient` from the keyword arguments they receive.

Two module-level constants hold the default endpoint URLs:

* :data:`DEFAULT_REFRESH_URL`: exchanges the API key for an access token.
* :data:`DEFAULT_SIGN_URL`: issues one-time transform URLs.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any

DEFAULT_REFRESH_URL: str = "https://api.scaler.pics/auth/api-key-token"
"""Endpoint that trades an API key for a short-lived access token."""

DEFAULT_SIGN_URL: str = "https://sign.scaler.pics/sign"
"""Endpoint that signs a transform request and returns a one-time URL."""

_LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


# ---------------------------------------------------------------------------
# Configuration dataclass
# ---------------------------------------------------------------------------

@dataclass
class ScalerConfig:
    """Complete configuration for a scaler client.

    Every parameter has a sensible default so that the only *required*
    value is ``api_key``.

    Parameters
    ----------
    api_key:
        Scaler API key.  **Required.**  Never logged.
    token_file_path:
        File holding the cached access token, shared between processes.
        ``None`` keeps the token in memory only.
    refresh_url:
        Token refresh endpoint.  Override for proxy or testing environments.
    sign_url:
        Sign endpoint.  Override for proxy or testing environments.
    timeout_seconds:
        HTTP request timeout in seconds, applied to every call.
    http_proxy:
        Optional HTTP/HTTPS proxy URL.
    download_max_concurrent:
        Maximum number of parallel output downloads (async client only).
    metrics:
        Optional :class:`~scaler.observability.MetricsHook` backend.
    debug_dump_payload:
        Write the (redacted) request/response of every call to *stderr*.
    """

    # ── Core ────────────────────────────────────────────────────────────
    api_key: str = ""

    token_file_path: str | None = None

    # ── Endpoints ───────────────────────────────────────────────────────
    refresh_url: str = DEFAULT_REFRESH_URL

    sign_url: str = DEFAULT_SIGN_URL

    # ── HTTP ────────────────────────────────────────────────────────────
    timeout_seconds: float = 30.0

    http_proxy: str | None = None

    # ── Downloads ───────────────────────────────────────────────────────
    download_max_concurrent: int = 4

    # ── Observability ──────────────────────────────────────────────────
    metrics: Any | None = None

    # ── Debug ───────────────────────────────────────────────────────────
    debug_dump_payload: bool = False

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        from urllib.parse import urlparse

        if not self.api_key:
            raise ValueError("api_key is required")

        for name in ("refresh_url", "sign_url"):
            parsed = urlparse(getattr(self, name))
            if parsed.scheme not in ("http", "https"):
                raise ValueError(f"{name} must be an http(s) URL, got {getattr(self, name)!r}")
            if parsed.scheme == "http" and parsed.hostname not in _LOCAL_HOSTS:
                raise ValueError(
                    f"{name} uses insecure HTTP for non-local host '{parsed.hostname}'. "
                    "Use HTTPS to protect your API key, or target localhost for testing."
                )

        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")
        if self.download_max_concurrent < 1:
            raise ValueError(
                f"download_max_concurrent must be >= 1, got {self.download_max_concurrent}"
            )

    def __repr__(self) -> str:
        """Mask the API key to prevent accidental credential leakage."""
        parts: list[str] = []
        for f in dataclasses.fields(self):
            val = getattr(self, f.name)
            if f.name == "api_key":
                masked = f"...{val[-4:]}" if len(val) >= 8 else "****"
                parts.append(f"api_key='{masked}'")
            else:
                parts.append(f"{f.name}={val!r}")
        return f"ScalerConfig({', '.join(parts)})"
