"""Image transfer wrappers for the Scaler API.

Provides :class:`ImageAPI` (sync) and :class:`AsyncImageAPI` (async) for
the unauthenticated half of a transform, which only uses URLs handed out
by the service:

1. **Send** -- post the image bytes to the one-time transform URL.
2. **Download** -- fetch one output image from its download URL, into
   memory or streamed into a local file.
3. **Delete** -- remove the temporary output files in one batch.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterable
from pathlib import Path
from typing import IO, Any

import httpx

from scaler.errors import ScalerDownloadError, ScalerUploadError

from .transport import AsyncScalerTransport, ScalerTransport

OCTET_STREAM = "application/x-octet-stream"
CHUNK_SIZE = 64 * 1024


def _send_kwargs(content: bytes | IO[bytes] | AsyncIterable[bytes] | None) -> dict[str, Any]:
    if content is None:
        return {}
    return {"content": content, "headers": {"Content-Type": OCTET_STREAM}}


def _save_error(path: str, exc: OSError) -> ScalerDownloadError:
    return ScalerDownloadError(
        message=f"Could not save output image to {path}: {exc}",
        context={"path": path},
        cause=exc,
    )


def _discard(path: str) -> None:
    # A partly written image is never left behind.
    with contextlib.suppress(OSError):
        Path(path).unlink(missing_ok=True)


def _parse_transform_body(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError as exc:
        raise ScalerUploadError(
            message="Transform endpoint returned a non-JSON body",
            context={"status_code": response.status_code, "body": response.text},
            cause=exc,
        ) from exc
    if not isinstance(data, dict):
        raise ScalerUploadError(
            message="Transform response is not a JSON object",
            context={"status_code": response.status_code, "body": response.text},
        )
    return data


def _delete_kwargs(file_ids: list[str]) -> dict[str, Any]:
    return {
        "headers": {"Content-Type": "application/json"},
        "json": {"images": list(file_ids)},
    }


class ImageAPI:
    """Synchronous wrapper for image send / download / delete.

    Parameters
    ----------
    transport:
        A configured :class:`ScalerTransport` instance.
    """

    def __init__(self, transport: ScalerTransport) -> None:
        self._transport = transport

    def send(
        self,
        transform_url: str,
        content: bytes | IO[bytes] | None = None,
    ) -> dict[str, Any]:
        """Post the input image to the one-time *transform_url*.

        Parameters
        ----------
        transform_url:
            URL returned by the sign endpoint, used verbatim.
        content:
            Raw bytes or a binary file handle to stream.  ``None`` sends an
            empty body (the service fetches a remote input itself).

        Returns
        -------
        dict
            The decoded transform response.

        Raises
        ------
        ScalerUploadError
            On any non-``200`` response or a non-JSON body.
        """
        response = self._transport.request(
            "POST",
            transform_url,
            op="upload",
            error_cls=ScalerUploadError,
            **_send_kwargs(content),
        )
        return _parse_transform_body(response)

    def download(self, download_url: str) -> bytes:
        """Fetch one output image and return its bytes.

        Raises
        ------
        ScalerDownloadError
            On any non-``200`` response.
        """
        response = self._transport.request(
            "GET",
            download_url,
            op="download",
            error_cls=ScalerDownloadError,
        )
        return response.content

    def download_to(self, download_url: str, path: str) -> None:
        """Stream one output image into the file at *path*.

        The file is only created once the service has answered ``200``, and
        is removed again if the transfer or a write fails.

        Raises
        ------
        ScalerDownloadError
            On any non-``200`` response, or if *path* cannot be written
            (context key ``path``).
        ScalerNetworkError
            If the connection fails mid-body.
        """
        with self._transport.stream(
            "GET", download_url, op="download", error_cls=ScalerDownloadError,
        ) as response:
            try:
                fh = open(path, "wb")
            except OSError as exc:
                raise _save_error(path, exc) from exc
            try:
                with fh:
                    for chunk in response.iter_bytes(CHUNK_SIZE):
                        fh.write(chunk)
            except OSError as exc:
                _discard(path)
                raise _save_error(path, exc) from exc
            except BaseException:
                _discard(path)
                raise

    def delete(self, delete_url: str, file_ids: list[str]) -> httpx.Response:
        """Delete temporary output files.

        The response is returned unchecked; cleanup outcome never decides
        the outcome of a transform.
        """
        return self._transport.request(
            "DELETE",
            delete_url,
            op="cleanup",
            **_delete_kwargs(file_ids),
        )


class AsyncImageAPI:
    """Asynchronous wrapper for image send / download / delete.

    Mirrors :class:`ImageAPI` but all methods are coroutines, and
    :meth:`send` streams an async byte iterable instead of a file handle.
    """

    def __init__(self, transport: AsyncScalerTransport) -> None:
        self._transport = transport

    async def send(
        self,
        transform_url: str,
        content: bytes | AsyncIterable[bytes] | None = None,
    ) -> dict[str, Any]:
        """Post the input image to the one-time *transform_url* (async).

        *content* is raw bytes or an async iterable of chunks to stream.
        See :meth:`ImageAPI.send`.
        """
        response = await self._transport.request(
            "POST",
            transform_url,
            op="upload",
            error_cls=ScalerUploadError,
            **_send_kwargs(content),
        )
        return _parse_transform_body(response)

    async def download(self, download_url: str) -> bytes:
        """Fetch one output image and return its bytes (async)."""
        response = await self._transport.request(
            "GET",
            download_url,
            op="download",
            error_cls=ScalerDownloadError,
        )
        return response.content

    async def download_to(self, download_url: str, path: str) -> None:
        """Stream one output image into the file at *path* (async).

        File writes run in the default executor.  See
        :meth:`ImageAPI.download_to`.
        """
        loop = asyncio.get_running_loop()
        async with self._transport.stream(
            "GET", download_url, op="download", error_cls=ScalerDownloadError,
        ) as response:
            try:
                fh = await loop.run_in_executor(None, open, path, "wb")
            except OSError as exc:
                raise _save_error(path, exc) from exc
            try:
                try:
                    async for chunk in response.aiter_bytes(CHUNK_SIZE):
                        await loop.run_in_executor(None, fh.write, chunk)
                finally:
                    await loop.run_in_executor(None, fh.close)
            except OSError as exc:
                _discard(path)
                raise _save_error(path, exc) from exc
            except BaseException:
                _discard(path)
                raise

    async def delete(self, delete_url: str, file_ids: list[str]) -> httpx.Response:
        """Delete temporary output files (async).  Returned unchecked."""
        return await self._transport.request(
            "DELETE",
            delete_url,
            op="cleanup",
            **_delete_kwargs(file_ids),
        )
