"""Sync and async HTTP transports for the Scaler API.

Every Scaler endpoint lives at an absolute URL (the sign service, the
one-time transform URL, per-image download URLs, the cleanup URL), so the
transports take full URLs rather than paths.  Each call goes through the
same lifecycle:

1. Send the HTTP request with the configured timeout.
2. On a request failure (connection, timeout, redirect loop) -- raise
   :class:`ScalerNetworkError`.
3. Record request metrics and emit the optional debug dump.
4. On ``200`` -- return the :class:`httpx.Response`.
5. On anything else -- raise the endpoint's error class with the status
   code and raw body, unless the caller asked to inspect the response
   itself.

Nothing is retried; retry policy belongs to the caller.

Downloads written straight to disk use :meth:`ScalerTransport.stream`,
which yields the response before its body is read.
"""

from __future__ import annotations

import json as _json
import sys
import time
from collections.abc import AsyncIterator, Iterator
from contextlib import asynccontextmanager, contextmanager
from typing import Any
from urllib.parse import urlsplit

import httpx

from scaler.config import ScalerConfig
from scaler.errors import ScalerError, ScalerNetworkError
from scaler.observability import NoopMetricsHook, get_logger

log = get_logger("scaler.transport")

_BODY_PREVIEW_CHARS = 1000


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def display_url(url: str) -> str:
    """Return *url* without its query string, for logs and error messages.

    Signed URLs carry their signature in the query string.
    """
    parts = urlsplit(str(url))
    return f"{parts.scheme}://{parts.netloc}{parts.path}"


def _bearer_secret(kwargs: dict[str, Any]) -> str | None:
    headers = kwargs.get("headers") or {}
    auth = headers.get("Authorization")
    if auth and auth.startswith("Bearer "):
        return auth[len("Bearer "):]
    return None


def _raise_for_status(
    response: httpx.Response,
    method: str,
    url: str,
    op: str,
    error_cls: type[ScalerError],
) -> None:
    """Raise *error_cls* for any status other than ``200``."""
    status = response.status_code
    if status == 200:
        return
    body = response.text
    raise error_cls(
        message=(
            f"{op} failed on {method} {display_url(url)}: "
            f"status {status}, body: {body[:_BODY_PREVIEW_CHARS]}"
        ),
        context={"status_code": status, "body": body, "url": display_url(url)},
    )


def _dump_payload(
    method: str,
    url: str,
    payload: Any | None,
    response_status: int | None,
    response_body: Any | None,
    secrets: tuple[str | None, ...] = (),
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from scaler.utils.redact import redact

    dump: dict[str, Any] = {
        "method": method,
        "url": url,
    }
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    safe_dump = redact(dump, secrets)
    print(
        _json.dumps(safe_dump, indent=2, default=str),
        file=sys.stderr,
    )


def _emit_debug_dump(
    config: ScalerConfig,
    method: str,
    url: str,
    response: httpx.Response,
    kwargs: dict[str, Any],
) -> None:
    """Emit a redacted debug dump of request/response if enabled."""
    if not config.debug_dump_payload:
        return
    content_type = response.headers.get("content-type", "")
    try:
        content = response.content
    except httpx.ResponseNotRead:
        resp_body: Any = "<streamed>"
    else:
        resp_body = _dump_body(response, content_type, content)
    _dump_payload(
        method, url, kwargs.get("json"),
        response.status_code, resp_body,
        secrets=(config.api_key, _bearer_secret(kwargs)),
    )


def _dump_body(response: httpx.Response, content_type: str, content: bytes) -> Any:
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return response.text[:_BODY_PREVIEW_CHARS]
    return f"<binary:{len(content)}_bytes>"


def _network_error(
    method: str,
    url: str,
    op: str,
    exc: Exception,
) -> ScalerNetworkError:
    log.warning(
        "Request network error",
        extra={
            "extra_fields": {
                "op": op,
                "method": method,
                "url": display_url(url),
                "error": str(exc),
            }
        },
    )
    return ScalerNetworkError(
        message=f"Network error during {op} on {method} {display_url(url)}: {exc}",
        context={"url": display_url(url), "method": method},
        cause=exc,
    )


def _record(
    metrics: Any,
    op: str,
    method: str,
    status: int | str,
    elapsed_ms: float | None = None,
) -> None:
    tags = {"op": op, "method": method, "status": str(status)}
    metrics.increment("scaler.requests_total", tags=tags)
    if elapsed_ms is not None:
        metrics.timing("scaler.request_duration_ms", elapsed_ms, tags=tags)


def _build_client_kwargs(config: ScalerConfig) -> dict[str, Any]:
    proxy: httpx.URL | str | None = config.http_proxy
    return {
        "timeout": httpx.Timeout(config.timeout_seconds),
        "proxy": proxy,
        "follow_redirects": True,
    }


# ---------------------------------------------------------------------------
# Sync transport
# ---------------------------------------------------------------------------

class ScalerTransport:
    """Synchronous HTTP transport.

    Parameters
    ----------
    config:
        A :class:`ScalerConfig` instance controlling transport behaviour.
    """

    def __init__(self, config: ScalerConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._client = httpx.Client(**_build_client_kwargs(config))

    # -- public API --------------------------------------------------------

    def request(
        self,
        method: str,
        url: str,
        *,
        op: str,
        error_cls: type[ScalerError] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute a single HTTP request.

        Parameters
        ----------
        method:
            HTTP method.
        url:
            Absolute URL, used verbatim.
        op:
            Short operation name used in logs, metrics and error messages
            (``"refresh"``, ``"sign"``, ``"upload"``, ``"download"``,
            ``"cleanup"``).
        error_cls:
            Error raised for any non-``200`` status.  ``None`` returns the
            response unchecked.
        **kwargs:
            Forwarded to :meth:`httpx.Client.request` (``json=``,
            ``content=``, ``headers=``).

        Returns
        -------
        httpx.Response

        Raises
        ------
        ScalerNetworkError
            On timeouts, connection failures and redirect loops.
        ScalerError
            *error_cls* on non-``200`` responses.
        """
        t0 = time.monotonic()
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            _record(self._metrics, op, method, "error")
            raise _network_error(method, url, op, exc) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000

        _record(self._metrics, op, method, response.status_code, elapsed_ms)
        _emit_debug_dump(self._config, method, url, response, kwargs)

        if error_cls is not None:
            _raise_for_status(response, method, url, op, error_cls)
        return response

    @contextmanager
    def stream(
        self,
        method: str,
        url: str,
        *,
        op: str,
        error_cls: type[ScalerError],
        **kwargs: Any,
    ) -> Iterator[httpx.Response]:
        """Send a request and yield the response with its body unread.

        A non-``200`` status is read and raised as *error_cls* before
        anything is yielded.  Request failures while the caller iterates the
        body are raised as :class:`ScalerNetworkError`.  The response is
        closed on exit.
        """
        t0 = time.monotonic()
        try:
            response = self._client.send(
                self._client.build_request(method, url, **kwargs), stream=True,
            )
        except httpx.RequestError as exc:
            _record(self._metrics, op, method, "error")
            raise _network_error(method, url, op, exc) from exc
        try:
            elapsed_ms = (time.monotonic() - t0) * 1000
            _record(self._metrics, op, method, response.status_code, elapsed_ms)
            if response.status_code != 200:
                response.read()
            _emit_debug_dump(self._config, method, url, response, kwargs)
            _raise_for_status(response, method, url, op, error_cls)
            yield response
        except httpx.RequestError as exc:
            raise _network_error(method, url, op, exc) from exc
        finally:
            response.close()

    def close(self) -> None:
        """Close the underlying HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> ScalerTransport:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncScalerTransport:
    """Asynchronous HTTP transport.

    Mirrors :class:`ScalerTransport` on top of ``httpx.AsyncClient``.
    """

    def __init__(self, config: ScalerConfig) -> None:
        self._config = config
        self._metrics = config.metrics if config.metrics is not None else NoopMetricsHook()
        self._client = httpx.AsyncClient(**_build_client_kwargs(config))

    # -- public API --------------------------------------------------------

    async def request(
        self,
        method: str,
        url: str,
        *,
        op: str,
        error_cls: type[ScalerError] | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute a single HTTP request (async).

        See :meth:`ScalerTransport.request` for full documentation.
        """
        t0 = time.monotonic()
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.RequestError as exc:
            _record(self._metrics, op, method, "error")
            raise _network_error(method, url, op, exc) from exc
        elapsed_ms = (time.monotonic() - t0) * 1000

        _record(self._metrics, op, method, response.status_code, elapsed_ms)
        _emit_debug_dump(self._config, method, url, response, kwargs)

        if error_cls is not None:
            _raise_for_status(response, method, url, op, error_cls)
        return response

    @asynccontextmanager
    async def stream(
        self,
        method: str,
        url: str,
        *,
        op: str,
        error_cls: type[ScalerError],
        **kwargs: Any,
    ) -> AsyncIterator[httpx.Response]:
        """Send a request and yield the response with its body unread (async).

        See :meth:`ScalerTransport.stream`.
        """
        t0 = time.monotonic()
        try:
            response = await self._client.send(
                self._client.build_request(method, url, **kwargs), stream=True,
            )
        except httpx.RequestError as exc:
            _record(self._metrics, op, method, "error")
            raise _network_error(method, url, op, exc) from exc
        try:
            elapsed_ms = (time.monotonic() - t0) * 1000
            _record(self._metrics, op, method, response.status_code, elapsed_ms)
            if response.status_code != 200:
                await response.aread()
            _emit_debug_dump(self._config, method, url, response, kwargs)
            _raise_for_status(response, method, url, op, error_cls)
            yield response
        except httpx.RequestError as exc:
            raise _network_error(method, url, op, exc) from exc
        finally:
            await response.aclose()

    async def close(self) -> None:
        """Close the underlying async HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncScalerTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
