"""scaler.scaler_api -- Scaler API transport and endpoint wrappers.

This sub-package provides:

* :mod:`.transport` -- HTTP transports with timeouts, metrics and typed errors.
* :mod:`.auth` -- Token refresh wrapper.
* :mod:`.sign` -- Sign endpoint wrapper.
* :mod:`.images` -- Image send / download / delete wrappers.
"""

from __future__ import annotations

from .auth import AsyncAuthAPI, AuthAPI
from .images import AsyncImageAPI, ImageAPI
from .sign import AsyncSignAPI, SignAPI
from .transport import AsyncScalerTransport, ScalerTransport

__all__ = [
    "AsyncAuthAPI",
    "AsyncImageAPI",
    "AsyncScalerTransport",
    "AsyncSignAPI",
    "AuthAPI",
    "ImageAPI",
    "ScalerTransport",
    "SignAPI",
]
