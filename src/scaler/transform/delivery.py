"""Output resolution and remote cleanup.

For every output image the service either already delivered it (no
``downloadUrl``) or left a temporary file to fetch.  Fetched images go to
memory, or are streamed straight into the ``save_to_local_path`` of the
matching request output.

The sequential path (:func:`resolve_outputs`) stops at the first failure.
The concurrent path (:func:`async_resolve_outputs`) runs downloads under a
semaphore and joins them all-settled, so one failed download never hides
the results of its siblings.

Cleanup issues one ``DELETE`` for every output carrying a ``fileId``, after
all downloads have settled.  Its outcome is logged and counted but never
raised, whatever the failure.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from scaler.errors import ScalerError
from scaler.models import (
    UPLOADED,
    DeliveryMode,
    DownloadOutcome,
    OutputImage,
    OutputSpec,
    RemoteOutputImage,
    RemoteTransformResponse,
)
from scaler.observability import NoopMetricsHook, get_logger

log = get_logger("scaler.delivery")


def _uploaded(remote_out: RemoteOutputImage) -> OutputImage:
    return OutputImage(
        fit=remote_out.fit,
        pixel_size=remote_out.pixel_size,
        image=UPLOADED,
        delivery=DeliveryMode.UPLOADED,
    )


def _saved(remote_out: RemoteOutputImage, path: str) -> OutputImage:
    return OutputImage(
        fit=remote_out.fit,
        pixel_size=remote_out.pixel_size,
        image=path,
        delivery=DeliveryMode.LOCAL_PATH,
    )


def _buffered(remote_out: RemoteOutputImage, data: bytes) -> OutputImage:
    return OutputImage(
        fit=remote_out.fit,
        pixel_size=remote_out.pixel_size,
        image=data,
        delivery=DeliveryMode.BUFFER,
    )


# ---------------------------------------------------------------------------
# Sequential resolution
# ---------------------------------------------------------------------------

def resolve_output(
    image_api: Any,
    remote_out: RemoteOutputImage,
    spec: OutputSpec,
) -> OutputImage:
    """Resolve a single output image.

    Raises
    ------
    ScalerDownloadError
        If the download is not ``200`` or the image cannot be saved.
    """
    if remote_out.download_url is None:
        return _uploaded(remote_out)
    path = spec.save_to_local_path
    if path is not None:
        image_api.download_to(remote_out.download_url, path)
        return _saved(remote_out, path)
    return _buffered(remote_out, image_api.download(remote_out.download_url))


def resolve_outputs(
    image_api: Any,
    remote: RemoteTransformResponse,
    outputs: list[OutputSpec],
) -> list[OutputImage]:
    """Resolve every output image in order, failing on the first error."""
    return [
        resolve_output(image_api, remote_out, spec)
        for remote_out, spec in zip(remote.output_images, outputs)
    ]


# ---------------------------------------------------------------------------
# Concurrent resolution
# ---------------------------------------------------------------------------

async def async_resolve_output(
    image_api: Any,
    remote_out: RemoteOutputImage,
    spec: OutputSpec,
) -> OutputImage:
    """Resolve a single output image (async).

    See :func:`resolve_output`.
    """
    if remote_out.download_url is None:
        return _uploaded(remote_out)
    path = spec.save_to_local_path
    if path is not None:
        await image_api.download_to(remote_out.download_url, path)
        return _saved(remote_out, path)
    return _buffered(remote_out, await image_api.download(remote_out.download_url))


async def async_resolve_outputs(
    image_api: Any,
    remote: RemoteTransformResponse,
    outputs: list[OutputSpec],
    max_concurrent: int,
) -> list[DownloadOutcome]:
    """Resolve every output image concurrently and wait for all of them.

    Parameters
    ----------
    image_api:
        An :class:`~scaler.scaler_api.images.AsyncImageAPI`.
    remote:
        The parsed transform response.
    outputs:
        Requested outputs, aligned with ``remote.output_images``.
    max_concurrent:
        Upper bound on downloads in flight.

    Returns
    -------
    list[DownloadOutcome]
        One settled outcome per output, in request order.
    """
    semaphore = asyncio.Semaphore(max_concurrent)

    async def _resolve_one(remote_out: RemoteOutputImage, spec: OutputSpec) -> OutputImage:
        async with semaphore:
            return await async_resolve_output(image_api, remote_out, spec)

    tasks = [
        _resolve_one(remote_out, spec)
        for remote_out, spec in zip(remote.output_images, outputs)
    ]
    settled = await asyncio.gather(*tasks, return_exceptions=True)

    outcomes: list[DownloadOutcome] = []
    for index, value in enumerate(settled):
        if isinstance(value, OutputImage):
            outcomes.append(DownloadOutcome(index=index, image=value))
        elif isinstance(value, Exception):
            outcomes.append(DownloadOutcome(index=index, error=value))
        else:
            # CancelledError and other BaseExceptions are not outcomes.
            raise value
    return outcomes


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------

def _report_cleanup(
    remote: RemoteTransformResponse,
    metrics: Any,
    response: httpx.Response | None,
    error: Exception | None = None,
) -> bool:
    fields: dict[str, Any] = {"op": "cleanup", "files": len(remote.file_ids)}
    if error is None and response is not None and response.status_code == 200:
        log.debug("Remote files deleted", extra={"extra_fields": fields})
        return True

    if response is not None:
        fields["status_code"] = response.status_code
        fields["body"] = response.text[:500]
    if error is not None:
        fields["error"] = str(error)
    metrics.increment("scaler.cleanup_failure_total")
    log.warning("Remote cleanup failed", extra={"extra_fields": fields})
    return False


def cleanup(
    image_api: Any,
    remote: RemoteTransformResponse,
    metrics: Any | None = None,
) -> bool:
    """Delete the temporary output files named in *remote*.

    Returns ``True`` when there was nothing to delete or the service
    answered ``200``.  A non-``200`` answer or any :class:`ScalerError`
    (network failure, redirect loop) is logged and returns ``False``.
    """
    metrics = metrics if metrics is not None else NoopMetricsHook()
    if not remote.file_ids:
        return True
    try:
        response = image_api.delete(remote.delete_url, remote.file_ids)
    except ScalerError as exc:
        return _report_cleanup(remote, metrics, None, exc)
    return _report_cleanup(remote, metrics, response)


async def async_cleanup(
    image_api: Any,
    remote: RemoteTransformResponse,
    metrics: Any | None = None,
) -> bool:
    """Delete the temporary output files named in *remote* (async).

    See :func:`cleanup`.
    """
    metrics = metrics if metrics is not None else NoopMetricsHook()
    if not remote.file_ids:
        return True
    try:
        response = await image_api.delete(remote.delete_url, remote.file_ids)
    except ScalerError as exc:
        return _report_cleanup(remote, metrics, None, exc)
    return _report_cleanup(remote, metrics, response)
