"""Token refresh endpoint wrappers.

Provides :class:`AuthAPI` (sync) and :class:`AsyncAuthAPI` (async), which
trade the long-lived API key for a short-lived access token.
"""

from __future__ import annotations

import httpx

from scaler.errors import ScalerAuthError

from .transport import AsyncScalerTransport, ScalerTransport


def _parse_access_token(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError as exc:
        raise ScalerAuthError(
            message="Token refresh returned a non-JSON body",
            context={"status_code": response.status_code, "body": response.text},
            cause=exc,
        ) from exc
    token = data.get("accessToken") if isinstance(data, dict) else None
    if not isinstance(token, str) or not token:
        raise ScalerAuthError(
            message="Token refresh response has no accessToken",
            context={"status_code": response.status_code, "body": response.text},
        )
    return token


class AuthAPI:
    """Synchronous wrapper for the token refresh endpoint.

    Parameters
    ----------
    transport:
        A configured :class:`ScalerTransport` instance.
    refresh_url:
        Absolute URL of the refresh endpoint.
    """

    def __init__(self, transport: ScalerTransport, refresh_url: str) -> None:
        self._transport = transport
        self._refresh_url = refresh_url

    def refresh_access_token(self, api_key: str) -> str:
        """Exchange *api_key* for a new access token.

        Raises
        ------
        ScalerAuthError
            On any non-``200`` response or a body without ``accessToken``.
        """
        response = self._transport.request(
            "POST",
            self._refresh_url,
            op="refresh",
            error_cls=ScalerAuthError,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        return _parse_access_token(response)


class AsyncAuthAPI:
    """Asynchronous wrapper for the token refresh endpoint.

    Mirrors :class:`AuthAPI` but all methods are coroutines.
    """

    def __init__(self, transport: AsyncScalerTransport, refresh_url: str) -> None:
        self._transport = transport
        self._refresh_url = refresh_url

    async def refresh_access_token(self, api_key: str) -> str:
        """Exchange *api_key* for a new access token (async).

        See :meth:`AuthAPI.refresh_access_token`.
        """
        response = await self._transport.request(
            "POST",
            self._refresh_url,
            op="refresh",
            error_cls=ScalerAuthError,
            headers={"Authorization": f"Bearer {api_key}"},
        )
        return _parse_access_token(response)
