"""Sign endpoint wrappers.

The sign endpoint accepts the transform description and answers with a
short-lived, one-time URL that the image bytes are then posted to.
"""

from __future__ import annotations

from typing import Any

import httpx

from scaler.errors import ScalerSignError

from .transport import AsyncScalerTransport, ScalerTransport


def _parse_signed_url(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError as exc:
        raise ScalerSignError(
            message="Sign endpoint returned a non-JSON body",
            context={"status_code": response.status_code, "body": response.text},
            cause=exc,
        ) from exc
    url = data.get("url") if isinstance(data, dict) else None
    if not isinstance(url, str) or not url:
        raise ScalerSignError(
            message="Sign response has no url",
            context={"status_code": response.status_code, "body": response.text},
        )
    return url


class SignAPI:
    """Synchronous wrapper for the sign endpoint.

    Parameters
    ----------
    transport:
        A configured :class:`ScalerTransport` instance.
    sign_url:
        Absolute URL of the sign endpoint.
    """

    def __init__(self, transport: ScalerTransport, sign_url: str) -> None:
        self._transport = transport
        self._sign_url = sign_url

    def sign(self, access_token: str, payload: dict[str, Any]) -> str:
        """Sign *payload* and return the one-time transform URL.

        Parameters
        ----------
        access_token:
            A valid bearer token.
        payload:
            ``{"input": ..., "output": [...]}`` as built by
            :func:`scaler.transform.request.build_sign_payload`.

        Raises
        ------
        ScalerSignError
            On any non-``200`` response or a body without ``url``.
        """
        response = self._transport.request(
            "POST",
            self._sign_url,
            op="sign",
            error_cls=ScalerSignError,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        return _parse_signed_url(response)


class AsyncSignAPI:
    """Asynchronous wrapper for the sign endpoint."""

    def __init__(self, transport: AsyncScalerTransport, sign_url: str) -> None:
        self._transport = transport
        self._sign_url = sign_url

    async def sign(self, access_token: str, payload: dict[str, Any]) -> str:
        """Sign *payload* and return the one-time transform URL (async).

        See :meth:`SignAPI.sign`.
        """
        response = await self._transport.request(
            "POST",
            self._sign_url,
            op="sign",
            error_cls=ScalerSignError,
            headers={
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json",
            },
            json=payload,
        )
        return _parse_signed_url(response)
