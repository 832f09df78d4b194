"""Asynchronous Scaler SDK client.

:class:`AsyncScalerClient` mirrors :class:`ScalerClient` but every I/O
method is an ``async def`` coroutine, and output images are downloaded
concurrently.  Downloads run under a semaphore bounded by
``config.download_max_concurrent`` and are joined all-settled: cleanup
runs once every download has finished, and a failed download never
discards the images its siblings fetched.

Usage::

    import asyncio
    from scaler import AsyncScalerClient, ScalerPartialDownloadError

    async def main():
        async with AsyncScalerClient(api_key="sk_xxx") as client:
            try:
                result = await client.transform({
                    "input": {"remoteUrl": "https://example.com/photo.jpg"},
                    "output": [
                        {"type": "webp", "fit": {"width": 320, "height": 320}},
                        {"type": "webp", "fit": {"width": 1280, "height": 1280}},
                    ],
                })
            except ScalerPartialDownloadError as exc:
                result = exc.result  # failed entries have image=None

    asyncio.run(main())
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Mapping
from typing import IO, Any

from scaler.client import _code_value
from scaler.config import ScalerConfig
from scaler.credentials import AsyncTokenManager, TokenFileStore
from scaler.errors import (
    ScalerDownloadError,
    ScalerError,
    ScalerPartialDownloadError,
    ScalerValidationError,
)
from scaler.models import (
    DownloadOutcome,
    InputKind,
    InputSource,
    OutputImage,
    RemoteTransformResponse,
    TransformRequest,
    TransformResult,
)
from scaler.observability import NoopMetricsHook, get_logger
from scaler.scaler_api.auth import AsyncAuthAPI
from scaler.scaler_api.images import CHUNK_SIZE, AsyncImageAPI
from scaler.scaler_api.sign import AsyncSignAPI
from scaler.scaler_api.transport import AsyncScalerTransport
from scaler.transform import (
    async_cleanup,
    async_resolve_outputs,
    build_sign_payload,
    check_input,
    compute_time_stats,
    elapsed_ms,
    normalize_outputs,
    parse_transform_response,
    shape_output,
)

log = get_logger("scaler.async_client")


class AsyncScalerClient:
    """Asynchronous Scaler SDK client.

    Parameters
    ----------
    api_key:
        Scaler API key.  **Required.**
    token_manager:
        Optional shared :class:`~scaler.credentials.AsyncTokenManager`.
    **kwargs:
        All remaining keyword arguments are forwarded to
        :class:`ScalerConfig`.
    """

    def __init__(
        self,
        api_key: str,
        *,
        token_manager: AsyncTokenManager | None = None,
        **kwargs: Any,
    ) -> None:
        self._config = ScalerConfig(api_key=api_key, **kwargs)
        self._metrics = (
            self._config.metrics if self._config.metrics is not None else NoopMetricsHook()
        )
        self._transport = AsyncScalerTransport(self._config)
        self._auth = AsyncAuthAPI(self._transport, self._config.refresh_url)
        self._sign = AsyncSignAPI(self._transport, self._config.sign_url)
        self._images = AsyncImageAPI(self._transport)
        if token_manager is None:
            store = (
                TokenFileStore(self._config.token_file_path)
                if self._config.token_file_path
                else None
            )
            token_manager = AsyncTokenManager(
                self._auth, api_key, store=store, metrics=self._config.metrics,
            )
        self._tokens = token_manager

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    async def ensure_valid_token(self) -> str:
        """Return a non-expired access token, refreshing if needed."""
        return await self._tokens.ensure_valid_token()

    # ------------------------------------------------------------------
    # Transform
    # ------------------------------------------------------------------

    async def transform(
        self,
        request: TransformRequest | Mapping[str, Any],
    ) -> TransformResult:
        """Run one transform request end to end, downloading concurrently.

        Semantics match :meth:`ScalerClient.transform` except for download
        failures: instead of stopping at the first one, all downloads
        settle and a :class:`ScalerPartialDownloadError` carrying the
        assembled result is raised.

        Raises
        ------
        ScalerPartialDownloadError
            If at least one output image could not be fetched or saved.
        """
        start = time.monotonic()
        try:
            result = await self._transform(request, start)
        except ScalerError as exc:
            self._record_failure(exc)
            raise
        self._record_success(result)
        return result

    async def _transform(
        self,
        request: TransformRequest | Mapping[str, Any],
        start: float,
    ) -> TransformResult:
        if not isinstance(request, TransformRequest):
            request = TransformRequest.from_dict(request)

        # 1. Validate and normalise
        outputs = normalize_outputs(request)
        check_input(request)
        access_token = await self._tokens.ensure_valid_token()
        payload = build_sign_payload(request, outputs)

        # 2. Sign
        t0 = time.monotonic()
        transform_url = await self._sign.sign(access_token, payload)
        sign_ms = elapsed_ms(t0)

        # 3. Send the image and parse the transform response
        t0 = time.monotonic()
        body = await self._send(transform_url, request.input)
        upload_ms = elapsed_ms(t0)
        remote = parse_transform_response(body, len(outputs))

        # 4. Fan out downloads, join all-settled, then clean up
        t0 = time.monotonic()
        try:
            outcomes = await async_resolve_outputs(
                self._images, remote, outputs, self._config.download_max_concurrent,
            )
            get_images_ms = elapsed_ms(t0)
        finally:
            await async_cleanup(self._images, remote, self._metrics)

        # 5. Assemble
        images = [_outcome_image(remote, outcome) for outcome in outcomes]
        time_stats = compute_time_stats(
            sign_ms=sign_ms,
            upload_ms=upload_ms,
            remote=remote.time_stats,
            measured_get_images_ms=get_images_ms,
            total_ms=elapsed_ms(start),
        )
        result = TransformResult(
            input_image=remote.input_image,
            output_image=shape_output(request, images),
            time_stats=time_stats,
        )

        failures = [(o.index, o.error) for o in outcomes if o.error is not None]
        if failures:
            raise ScalerPartialDownloadError(
                message=(
                    f"{len(failures)} of {len(outcomes)} output images could not "
                    "be retrieved"
                ),
                result=result,
                failures=failures,  # type: ignore[arg-type]
                context={"failed_indexes": [i for i, _ in failures]},
                cause=failures[0][1],
            )
        return result

    async def _send(self, transform_url: str, source: InputSource) -> dict[str, Any]:
        """Post the input to the one-time URL, streaming local files."""
        if source.kind is InputKind.REMOTE_URL:
            return await self._images.send(transform_url)
        if source.kind is InputKind.BUFFER:
            return await self._images.send(transform_url, source.buffer)

        loop = asyncio.get_running_loop()
        try:
            fh = await loop.run_in_executor(
                None, open, source.local_path, "rb",  # type: ignore[arg-type]
            )
        except OSError as exc:
            raise ScalerValidationError(
                message=f"Could not read input file {source.local_path}: {exc}",
                context={"field": "input.local_path", "value": source.local_path},
                cause=exc,
            ) from exc
        try:
            return await self._images.send(transform_url, _file_chunks(fh))
        finally:
            await loop.run_in_executor(None, fh.close)

    # ------------------------------------------------------------------
    # Observability
    # ------------------------------------------------------------------

    def _record_success(self, result: TransformResult) -> None:
        stats = result.time_stats
        self._metrics.increment("scaler.transform_total", tags={"status": "ok"})
        self._metrics.timing("scaler.transform_duration_ms", stats.total_ms)
        log.info(
            "transform complete",
            extra={
                "extra_fields": {
                    "op": "transform",
                    "outputs": len(result.output_images),
                    **stats.to_dict(),
                }
            },
        )

    def _record_failure(self, exc: ScalerError) -> None:
        self._metrics.increment(
            "scaler.transform_total", tags={"status": "error", "code": _code_value(exc)},
        )
        if isinstance(exc, ScalerPartialDownloadError):
            self._metrics.increment("scaler.download_failure_total", value=len(exc.failures))
        elif isinstance(exc, ScalerDownloadError):
            self._metrics.increment("scaler.download_failure_total")
        log.warning(
            "transform failed",
            extra={
                "extra_fields": {
                    "op": "transform",
                    "code": _code_value(exc),
                    "status_code": exc.status_code,
                    "error": exc.message,
                }
            },
        )

    # ------------------------------------------------------------------
    # Resource management
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Close the HTTP transport."""
        await self._transport.close()

    async def __aenter__(self) -> AsyncScalerClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


# ------------------------------------------------------------------
# Module-level helpers
# ------------------------------------------------------------------


def _outcome_image(
    remote: RemoteTransformResponse,
    outcome: DownloadOutcome,
) -> OutputImage:
    """Return the resolved image, or a placeholder for a failed download."""
    if outcome.image is not None:
        return outcome.image
    remote_out = remote.output_images[outcome.index]
    return OutputImage(fit=remote_out.fit, pixel_size=remote_out.pixel_size, image=None)


async def _file_chunks(fh: IO[bytes]) -> AsyncIterator[bytes]:
    """Yield *fh* in fixed-size chunks, reading in the default executor."""
    loop = asyncio.get_running_loop()
    while True:
        chunk = await loop.run_in_executor(None, fh.read, CHUNK_SIZE)
        if not chunk:
            return
        yield chunk
