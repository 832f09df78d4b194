"""Tests for TokenManager and AsyncTokenManager.

Refresh must happen if and only if neither the in-memory token nor the
persisted token is fresh.
"""

from __future__ import annotations

import asyncio
import threading
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from conftest import make_jwt

from scaler.credentials import AsyncTokenManager, TokenFileStore, TokenManager
from scaler.errors import ScalerAuthError

NOW = 1_000_000.0
FRESH = make_jwt(NOW + 600)
FRESH_2 = make_jwt(NOW + 1200, n=2)
STALE = make_jwt(NOW - 1)


def clock() -> float:
    return NOW


def make_auth(token: str = FRESH) -> MagicMock:
    auth = MagicMock()
    auth.refresh_access_token.return_value = token
    return auth


def make_async_auth(token: str = FRESH) -> MagicMock:
    auth = MagicMock()
    auth.refresh_access_token = AsyncMock(return_value=token)
    return auth


# ---------------------------------------------------------------------------
# Sync manager
# ---------------------------------------------------------------------------

class TestTokenManager:
    def test_no_store_refreshes_once(self):
        auth = make_auth()
        mgr = TokenManager(auth, "sk_key", clock=clock)
        assert mgr.ensure_valid_token() == FRESH
        assert mgr.ensure_valid_token() == FRESH
        auth.refresh_access_token.assert_called_once_with("sk_key")

    def test_fresh_persisted_token_skips_refresh(self, tmp_path):
        path = tmp_path / "token"
        path.write_text(FRESH)
        auth = make_auth()
        mgr = TokenManager(auth, "k", store=TokenFileStore(path), clock=clock)
        assert mgr.ensure_valid_token() == FRESH
        auth.refresh_access_token.assert_not_called()

    def test_stale_persisted_token_refreshes_and_persists(self, tmp_path):
        path = tmp_path / "token"
        path.write_text(STALE)
        auth = make_auth(FRESH_2)
        mgr = TokenManager(auth, "k", store=TokenFileStore(path), clock=clock)
        assert mgr.ensure_valid_token() == FRESH_2
        auth.refresh_access_token.assert_called_once()
        assert path.read_text() == FRESH_2

    def test_missing_file_refreshes_and_creates(self, tmp_path):
        path = tmp_path / "token"
        mgr = TokenManager(make_auth(), "k", store=TokenFileStore(path), clock=clock)
        mgr.ensure_valid_token()
        assert path.read_text() == FRESH

    def test_unreadable_exp_forces_refresh(self, tmp_path):
        path = tmp_path / "token"
        path.write_text("not-a-jwt")
        auth = make_auth()
        mgr = TokenManager(auth, "k", store=TokenFileStore(path), clock=clock)
        assert mgr.ensure_valid_token() == FRESH
        auth.refresh_access_token.assert_called_once()

    def test_expiry_in_memory_rereads_file(self, tmp_path):
        path = tmp_path / "token"
        now = [NOW]
        auth = make_auth(FRESH)
        mgr = TokenManager(auth, "k", store=TokenFileStore(path), clock=lambda: now[0])
        mgr.ensure_valid_token()
        # Another process refreshed the file meanwhile.
        path.write_text(FRESH_2)
        now[0] = NOW + 900
        assert mgr.ensure_valid_token() == FRESH_2
        auth.refresh_access_token.assert_called_once()

    def test_invalidate_forces_lookup(self):
        auth = make_auth()
        mgr = TokenManager(auth, "k", clock=clock)
        mgr.ensure_valid_token()
        mgr.invalidate()
        assert mgr.token is None
        mgr.ensure_valid_token()
        assert auth.refresh_access_token.call_count == 2

    def test_auth_error_propagates(self):
        auth = MagicMock()
        auth.refresh_access_token.side_effect = ScalerAuthError(
            message="denied", context={"status_code": 401, "body": "bad key"},
        )
        mgr = TokenManager(auth, "k", clock=clock)
        with pytest.raises(ScalerAuthError) as exc_info:
            mgr.ensure_valid_token()
        assert exc_info.value.status_code == 401
        assert mgr.token is None

    def test_persist_failure_is_not_fatal(self, tmp_path):
        store = TokenFileStore(tmp_path / "token")
        with patch.object(store, "save", side_effect=PermissionError("read-only")):
            mgr = TokenManager(make_auth(), "k", store=store, clock=clock)
            assert mgr.ensure_valid_token() == FRESH

    def test_refresh_metric(self, metrics):
        mgr = TokenManager(make_auth(), "k", clock=clock, metrics=metrics)
        mgr.ensure_valid_token()
        mgr.ensure_valid_token()
        assert metrics.count("scaler.token_refresh_total") == 1
        assert metrics.gauges == [
            {"name": "scaler.token_ttl_seconds", "value": 600.0, "tags": None}
        ]

    def test_concurrent_callers_refresh_once(self):
        auth = make_auth()
        mgr = TokenManager(auth, "k", clock=clock)
        results: list[str] = []
        threads = [
            threading.Thread(target=lambda: results.append(mgr.ensure_valid_token()))
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert results == [FRESH] * 8
        auth.refresh_access_token.assert_called_once()


# ---------------------------------------------------------------------------
# Async manager
# ---------------------------------------------------------------------------

class TestAsyncTokenManager:
    async def test_refreshes_once(self):
        auth = make_async_auth()
        mgr = AsyncTokenManager(auth, "k", clock=clock)
        assert await mgr.ensure_valid_token() == FRESH
        assert await mgr.ensure_valid_token() == FRESH
        auth.refresh_access_token.assert_awaited_once_with("k")

    async def test_fresh_persisted_token_skips_refresh(self, tmp_path):
        path = tmp_path / "token"
        path.write_text(FRESH)
        auth = make_async_auth()
        mgr = AsyncTokenManager(auth, "k", store=TokenFileStore(path), clock=clock)
        assert await mgr.ensure_valid_token() == FRESH
        auth.refresh_access_token.assert_not_awaited()

    async def test_stale_persisted_token_refreshes_and_persists(self, tmp_path):
        path = tmp_path / "token"
        path.write_text(STALE)
        mgr = AsyncTokenManager(
            make_async_auth(FRESH_2), "k", store=TokenFileStore(path), clock=clock,
        )
        assert await mgr.ensure_valid_token() == FRESH_2
        assert path.read_text() == FRESH_2

    async def test_concurrent_callers_refresh_once(self):
        auth = make_async_auth()
        mgr = AsyncTokenManager(auth, "k", clock=clock)
        results = await asyncio.gather(*(mgr.ensure_valid_token() for _ in range(10)))
        assert results == [FRESH] * 10
        auth.refresh_access_token.assert_awaited_once()
