"""scaler - Python SDK for the Scaler image transformation service.

Public re-exports
-----------------

* **Clients:** :class:`ScalerClient`, :class:`AsyncScalerClient`
* **Configuration:** :class:`ScalerConfig`
* **Errors:** Every :class:`ScalerError` subclass and :class:`ErrorCode`
* **Models:** Request and result dataclasses and their enums

Usage::

    from scaler import ScalerClient

    client = ScalerClient(api_key="sk_xxx")
    result = client.transform({
        "input": {"remoteUrl": "https://example.com/photo.jpg"},
        "output": {"type": "jpeg", "fit": {"width": 512, "height": 512}},
    })
"""

from __future__ import annotations

from scaler.async_client import AsyncScalerClient

# ── Clients ────────────────────────────────────────────────────────────
from scaler.client import ScalerClient

# ── Configuration ───────────────────────────────────────────────────────
from scaler.config import DEFAULT_REFRESH_URL, DEFAULT_SIGN_URL, ScalerConfig

# ── Errors ──────────────────────────────────────────────────────────────
from scaler.errors import (
    ErrorCode,
    ScalerAuthError,
    ScalerDownloadError,
    ScalerError,
    ScalerNetworkError,
    ScalerPartialDownloadError,
    ScalerSignError,
    ScalerUploadError,
    ScalerValidationError,
)

# ── Models ──────────────────────────────────────────────────────────────
from scaler.models import (
    UPLOADED,
    DeliveryMode,
    ImageDelivery,
    InputKind,
    InputSource,
    OutputImage,
    OutputSpec,
    TimeStats,
    TransformRequest,
    TransformResult,
)

# ── Public surface ──────────────────────────────────────────────────────

__all__ = [
    # Clients
    "ScalerClient",
    "AsyncScalerClient",
    # Configuration
    "ScalerConfig",
    "DEFAULT_REFRESH_URL",
    "DEFAULT_SIGN_URL",
    # Error base + code enum
    "ScalerError",
    "ErrorCode",
    # Pipeline errors
    "ScalerValidationError",
    "ScalerAuthError",
    "ScalerSignError",
    "ScalerUploadError",
    "ScalerDownloadError",
    "ScalerNetworkError",
    "ScalerPartialDownloadError",
    # Models: request types
    "TransformRequest",
    "InputSource",
    "OutputSpec",
    "ImageDelivery",
    # Models: result types
    "TransformResult",
    "OutputImage",
    "TimeStats",
    "UPLOADED",
    # Models: enums
    "InputKind",
    "DeliveryMode",
]
