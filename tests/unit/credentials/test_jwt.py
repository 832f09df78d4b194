"""Tests for access-token expiry decoding."""

from __future__ import annotations

import base64

import pytest
from conftest import make_jwt

from scaler.credentials import decode_claims, is_expired, token_expiry


class TestDecodeClaims:
    def test_round_trip_claims(self):
        token = make_jwt(1_700_000_000, sub="user-1")
        assert decode_claims(token) == {"sub": "user-1", "exp": 1_700_000_000}

    def test_unpadded_segment(self):
        # 20-byte payload: the encoded segment had one "=" stripped.
        token = make_jwt(1, a="x")
        assert decode_claims(token)["a"] == "x"

    @pytest.mark.parametrize("token", ["", "abc", "a.b", "a.b.c.d"])
    def test_wrong_segment_count(self, token):
        with pytest.raises(ValueError, match="segments"):
            decode_claims(token)

    def test_payload_not_base64_json(self):
        with pytest.raises(ValueError, match="base64url JSON"):
            decode_claims("h.!!!notbase64!!!.s")

    def test_payload_not_object(self):
        segment = base64.urlsafe_b64encode(b"[1,2]").rstrip(b"=").decode()
        with pytest.raises(ValueError, match="not a JSON object"):
            decode_claims(f"h.{segment}.s")


class TestTokenExpiry:
    def test_reads_exp(self):
        assert token_expiry(make_jwt(1234)) == 1234.0

    def test_missing_exp(self):
        assert token_expiry(make_jwt(None, sub="x")) is None

    def test_non_numeric_exp(self):
        assert token_expiry(make_jwt("tomorrow")) is None  # type: ignore[arg-type]

    def test_boolean_exp(self):
        assert token_expiry(make_jwt(True)) is None  # type: ignore[arg-type]

    def test_garbage_token(self):
        assert token_expiry("not-a-jwt") is None


class TestIsExpired:
    def test_future_exp_is_fresh(self):
        assert is_expired(make_jwt(2000), now=1000) is False

    def test_exp_equal_now_is_stale(self):
        assert is_expired(make_jwt(1000), now=1000) is True

    def test_past_exp_is_stale(self):
        assert is_expired(make_jwt(999), now=1000) is True

    @pytest.mark.parametrize("token", [None, "", "garbage", make_jwt(None)])
    def test_unreadable_is_stale(self, token):
        assert is_expired(token, now=0) is True

    def test_defaults_to_wall_clock(self, fresh_token, stale_token):
        assert is_expired(fresh_token) is False
        assert is_expired(stale_token) is True
