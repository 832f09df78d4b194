"""Metrics hook protocol and its no-op default.

Pass any object with ``increment`` / ``timing`` / ``gauge`` methods as
``ScalerConfig.metrics`` to receive the SDK's data points.  Without one, a
:class:`NoopMetricsHook` discards them.

Data points
-----------

============================== ======= ==================================
name                           kind    tags
============================== ======= ==================================
``scaler.requests_total``      counter ``op``, ``method``, ``status``
``scaler.request_duration_ms`` timing  ``op``, ``method``, ``status``
``scaler.token_refresh_total`` counter
``scaler.token_ttl_seconds``   gauge   lifetime of a newly refreshed token
``scaler.transform_total``     counter ``status``, ``code`` on failure
``scaler.transform_duration_ms`` timing
``scaler.download_failure_total`` counter
``scaler.cleanup_failure_total`` counter
============================== ======= ==================================

``op`` is one of ``refresh``, ``sign``, ``upload``, ``download`` or
``cleanup``; ``status`` is the HTTP status or ``"error"`` for network
failures.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsHook(Protocol):
    """Structural type for a metrics backend.  Tag keys and values are strings."""

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        ...

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        ...

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        ...


class NoopMetricsHook:
    """Backend used when no hook is configured."""

    __slots__ = ()

    def increment(self, name: str, value: int = 1, tags: dict[str, str] | None = None) -> None:
        pass

    def timing(self, name: str, ms: float, tags: dict[str, str] | None = None) -> None:
        pass

    def gauge(self, name: str, value: float, tags: dict[str, str] | None = None) -> None:
        pass
