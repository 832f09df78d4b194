"""Shared test fixtures for the scaler test suite."""

from __future__ import annotations

import base64
import json
import time
from typing import Any

import pytest

from scaler.config import ScalerConfig


def make_jwt(exp: float | None, **claims: Any) -> str:
    """Build an unsigned JWT whose payload carries *exp* and *claims*."""

    def _segment(data: dict[str, Any]) -> str:
        raw = json.dumps(data).encode()
        return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()

    payload = dict(claims)
    if exp is not None:
        payload["exp"] = exp
    return f"{_segment({'alg': 'HS256', 'typ': 'JWT'})}.{_segment(payload)}.sig"


class RecordingMetricsHook:
    """A metrics backend that records all calls for assertion."""

    def __init__(self) -> None:
        self.increments: list[dict[str, Any]] = []
        self.timings: list[dict[str, Any]] = []
        self.gauges: list[dict[str, Any]] = []

    def increment(
        self,
        name: str,
        value: int = 1,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.increments.append({"name": name, "value": value, "tags": tags})

    def timing(
        self,
        name: str,
        ms: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.timings.append({"name": name, "ms": ms, "tags": tags})

    def gauge(
        self,
        name: str,
        value: float,
        tags: dict[str, str] | None = None,
    ) -> None:
        self.gauges.append({"name": name, "value": value, "tags": tags})

    def count(self, name: str) -> int:
        return sum(i["value"] for i in self.increments if i["name"] == name)


@pytest.fixture
def config() -> ScalerConfig:
    """Default test configuration with a dummy API key."""
    return ScalerConfig(api_key="test_api_key_1234")


@pytest.fixture
def fresh_token() -> str:
    """An access token that expires in one hour."""
    return make_jwt(time.time() + 3600)


@pytest.fixture
def stale_token() -> str:
    """An access token that expired one hour ago."""
    return make_jwt(time.time() - 3600)


@pytest.fixture
def metrics() -> RecordingMetricsHook:
    return RecordingMetricsHook()
