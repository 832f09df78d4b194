"""Synchronous Scaler SDK client.

:class:`ScalerClient` runs one transform end to end on the caller's
thread::

    sign -> send image -> parse -> resolve outputs -> cleanup -> result

Every step is a blocking HTTP call; any failure aborts the transform.
Temporary remote files are still deleted when a download fails.

Usage::

    from scaler import ScalerClient, TransformRequest, InputSource, OutputSpec

    with ScalerClient(api_key="sk_xxx", token_file_path="token.txt") as client:
        result = client.transform(
            TransformRequest(
                input=InputSource(local_path="photo.heic"),
                output=OutputSpec(type="jpeg", fit={"width": 1024, "height": 1024}),
            )
        )
        jpeg_bytes = result.output_image.image
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Any

from scaler.config import ScalerConfig
from scaler.credentials import TokenFileStore, TokenManager
from scaler.errors import ScalerDownloadError, ScalerError, ScalerValidationError
from scaler.models import (
    InputKind,
    InputSource,
    TransformRequest,
    TransformResult,
)
from scaler.observability import NoopMetricsHook, get_logger
from scaler.scaler_api.auth import AuthAPI
from scaler.scaler_api.images import ImageAPI
from scaler.scaler_api.sign import SignAPI
from scaler.scaler_api.transport import ScalerTransport
from scaler.transform import (
    build_sign_payload,
    check_input,
    cleanup,
    compute_time_stats,
    elapsed_ms,
    normalize_outputs,
    parse_transform_response,
    resolve_outputs,
    shape_output,
)

log = get_logger("scaler.client")


class ScalerClient:
    """Synchronous Scaler SDK client.

    Parameters
    ----------
    api_key:
        Scaler API key.  **Required.**
    token_manager:
        Optional shared :class:`~scaler.credentials.TokenManager`.  When
        omitted the client builds its own from the config.
    **kwargs:
        All remaining keyword arguments are forwarded to
        :class:`ScalerConfig`.
    """

    def __init__(
        self,
        api_key: str,
        *,
        token_manager: TokenManager | None = None,
        **kwargs: Any,
    ) -> None:
        self._config = ScalerConfig(api_key=api_key, **kwargs)
        self._metrics = (
            self._config.metrics if self._config.metrics is not None else NoopMetricsHook()
        )
        self._transport = ScalerTransport(self._config)
        self._auth = AuthAPI(self._transport, self._config.refresh_url)
        self._sign = SignAPI(self._transport, self._config.sign_url)
        self._images = ImageAPI(self._transport)
        if token_manager is None:
            store = (
                TokenFileStore(self._config.token_file_path)
                if self._config.token_file_path
                else None
            )
            token_manager = TokenManager(
                self._auth, api_key, store=store, metrics=self._config.metrics,
            )
        self._tokens = token_manager

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    def ensure_valid_token(self) -> str:
        """Return a non-expired access token, refreshing if needed."""
        return self._tokens.ensure_valid_token()

    # ------------------------------------------------------------------
    # Transform
    # ------------------------------------------------------------------

    def transform(
        self,
        request: TransformRequest | Mapping[str, Any],
    ) -> TransformResult:
        """Run one transform request end to end.

        Parameters
        ----------
        request:
            A :class:`TransformRequest`, or the equivalent camelCase options
            mapping accepted by :meth:`TransformRequest.from_dict`.

        Returns
        -------
        TransformResult
            ``output_image`` is a single :class:`OutputImage` when the
            request had a single output and a list otherwise.

        Raises
        ------
        ScalerValidationError
            If the request has no output or an unusable input.
        ScalerAuthError
            If the access token cannot be refreshed.
        ScalerSignError
            If the sign endpoint answers with anything but ``200``.
        ScalerUploadError
            If sending the image fails or the response is malformed.
        ScalerDownloadError
            If fetching or saving an output image fails.
        ScalerNetworkError
            On timeouts and connection failures.
        """
        start = time.monotonic()
        try:
            result = self._transform(request, start)
        except ScalerError as exc:
            self._record_failure(exc)
            raise
        self._record_success(result)
        return result

    def _transform(
        self,
        request: TransformRequest | Mapping[str, Any],
        start: float,
    ) -> TransformResult:
        if not isinstance(request, TransformRequest):
            request = TransformRequest.from_dict(request)

        # 1. Validate and normalise
        outputs = normalize_outputs(request)
        check_input(request)
        access_token = self._tokens.ensure_valid_token()
        payload = build_sign_payload(request, outputs)

        # 2. Sign
        t0 = time.monotonic()
        transform_url = self._sign.sign(access_token, payload)
        sign_ms = elapsed_ms(t0)

        # 3. Send the image and parse the transform response
        t0 = time.monotonic()
        body = self._send(transform_url, request.input)
        upload_ms = elapsed_ms(t0)
        remote = parse_transform_response(body, len(outputs))

        # 4. Resolve outputs, then clean up whatever happened
        t0 = time.monotonic()
        try:
            images = resolve_outputs(self._images, remote, outputs)
            get_images_ms = elapsed_ms(t0)
        finally:
            cleanup(self._images, remote, self._metrics)

        # 5. Assemble
        time_stats = compute_time_stats(
            sign_ms=sign_ms,
            upload_ms=upload_ms,
            remote=remote.time_stats,
            measured_get_images_ms=get_images_ms,
            total_ms=elapsed_ms(start),
        )
        return TransformResult(
            input_image=remote.input_image,
            output_image=shape_output(request, images),
            time_stats=time_stats,
        )

    def _send(self, transform_url: str, source: InputSource) -> dict[str, Any]:
        """Post the input to the one-time URL, streaming local files."""
        if source.kind is InputKind.REMOTE_URL:
            return self._images.send(transform_url)
        if source.kind is InputKind.BUFFER:
            return self._images.send(transform_url, source.buffer)
        try:
            fh = open(source.local_path, "rb")  # type: ignore[arg-type]
        except OSError as exc:
            raise ScalerValidationError(
                message=f"Could not read input file {source.local_path}: {exc}",
                context={"field": "input.local_path", "value": source.local_path},
                cause=exc,
            ) from exc
        with fh:
            return self._images.send(transform_url, fh)

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
        if isinstance(exc, ScalerDownloadError):
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

    def close(self) -> None:
        """Close the HTTP transport."""
        self._transport.close()

    def __enter__(self) -> ScalerClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


# ------------------------------------------------------------------
# Module-level helpers
# ------------------------------------------------------------------


def _code_value(exc: ScalerError) -> str:
    """Return the plain string form of an error code."""
    return getattr(exc.code, "value", exc.code)
