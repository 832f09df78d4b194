"""Access-token lifecycle.

:class:`TokenManager` (sync) and :class:`AsyncTokenManager` (async) own the
in-memory access token.  Clients call :meth:`ensure_valid_token` before
every authenticated request; the manager returns the cached token while it
is fresh and otherwise consults the token file and, if that is stale too,
refreshes through the API key.  A mutex serialises the check-and-refresh so
concurrent callers on one manager trigger at most one refresh.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable
from typing import Any

from scaler.observability import NoopMetricsHook, get_logger

from .jwt import is_expired, token_expiry
from .store import TokenFileStore

log = get_logger("scaler.credentials")


class _TokenState:
    """Shared bookkeeping for the sync and async managers."""

    def __init__(
        self,
        api_key: str,
        store: TokenFileStore | None,
        clock: Callable[[], float],
        metrics: Any | None,
    ) -> None:
        self._api_key = api_key
        self._store = store
        self._clock = clock
        self._metrics = metrics if metrics is not None else NoopMetricsHook()
        self._token: str | None = None

    @property
    def token(self) -> str | None:
        """The cached token, which may be stale."""
        return self._token

    def invalidate(self) -> None:
        """Forget the cached token so the next call refreshes it."""
        self._token = None

    def _fresh(self, token: str | None) -> bool:
        return not is_expired(token, now=self._clock())

    def _persist(self, token: str) -> None:
        if self._store is None:
            return
        try:
            self._store.save(token)
        except OSError as exc:
            log.warning(
                "Could not persist access token",
                extra={
                    "extra_fields": {
                        "path": str(self._store.path),
                        "error": str(exc),
                    }
                },
            )

    def _refreshed(self, token: str) -> str:
        self._token = token
        exp = token_expiry(token)
        self._metrics.increment("scaler.token_refresh_total")
        if exp is not None:
            self._metrics.gauge("scaler.token_ttl_seconds", max(0.0, exp - self._clock()))
        log.info(
            "Access token refreshed",
            extra={"extra_fields": {"op": "refresh", "exp": exp}},
        )
        return token


class TokenManager(_TokenState):
    """Synchronous access-token manager.

    Parameters
    ----------
    auth_api:
        An :class:`~scaler.scaler_api.auth.AuthAPI` used to refresh.
    api_key:
        The Scaler API key.
    store:
        Optional :class:`TokenFileStore` for the persisted token.
    clock:
        Returns the current Unix time in seconds.
    metrics:
        Optional metrics hook.
    """

    def __init__(
        self,
        auth_api: Any,
        api_key: str,
        store: TokenFileStore | None = None,
        clock: Callable[[], float] = time.time,
        metrics: Any | None = None,
    ) -> None:
        super().__init__(api_key, store, clock, metrics)
        self._auth_api = auth_api
        self._lock = threading.Lock()

    def ensure_valid_token(self) -> str:
        """Return a non-expired access token, refreshing if needed.

        Raises
        ------
        ScalerAuthError
            If the refresh endpoint rejects the API key.
        """
        with self._lock:
            if self._fresh(self._token):
                return self._token  # type: ignore[return-value]

            if self._store is not None:
                stored = self._store.load()
                if self._fresh(stored):
                    self._token = stored
                    return stored  # type: ignore[return-value]

            token = self._auth_api.refresh_access_token(self._api_key)
            self._persist(token)
            return self._refreshed(token)


class AsyncTokenManager(_TokenState):
    """Asynchronous access-token manager.

    Mirrors :class:`TokenManager`; token file I/O runs in the default
    executor so the event loop is never blocked.
    """

    def __init__(
        self,
        auth_api: Any,
        api_key: str,
        store: TokenFileStore | None = None,
        clock: Callable[[], float] = time.time,
        metrics: Any | None = None,
    ) -> None:
        super().__init__(api_key, store, clock, metrics)
        self._auth_api = auth_api
        self._lock = asyncio.Lock()

    async def ensure_valid_token(self) -> str:
        """Return a non-expired access token, refreshing if needed (async)."""
        async with self._lock:
            if self._fresh(self._token):
                return self._token  # type: ignore[return-value]

            loop = asyncio.get_running_loop()
            if self._store is not None:
                stored = await loop.run_in_executor(None, self._store.load)
                if self._fresh(stored):
                    self._token = stored
                    return stored  # type: ignore[return-value]

            token = await self._auth_api.refresh_access_token(self._api_key)
            await loop.run_in_executor(None, self._persist, token)
            return self._refreshed(token)
