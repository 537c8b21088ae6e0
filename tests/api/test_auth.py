"""Tests for bearer token verification."""

import time

import jwt
import pytest

from devinsights.exceptions import AuthenticationError
from devinsights.middleware.auth import verify_token

SECRET = "devinsights-test-secret-0123456789abcdef"


class TestVerifyToken:
    def test_valid_token(self) -> None:
        token = jwt.encode({"sub": "user-1", "org_id": "org-9"}, SECRET, algorithm="HS256")
        claims = verify_token(token, SECRET)
        assert claims["sub"] == "user-1"
        assert claims["org_id"] == "org-9"

    def test_expired_token_rejected(self) -> None:
        token = jwt.encode({"sub": "user-1", "exp": int(time.time()) - 60}, SECRET, algorithm="HS256")
        with pytest.raises(AuthenticationError):
            verify_token(token, SECRET)

    def test_missing_subject_rejected(self) -> None:
        token = jwt.encode({"org_id": "org-9"}, SECRET, algorithm="HS256")
        with pytest.raises(AuthenticationError, match="subject"):
            verify_token(token, SECRET)

    def test_garbage_rejected(self) -> None:
        with pytest.raises(AuthenticationError):
            verify_token("not-a-jwt", SECRET)

    def test_unverified_without_secret(self, caplog) -> None:
        token = jwt.encode({"sub": "user-1"}, "whatever-secret-0123456789abcdefgh", algorithm="HS256")
        claims = verify_token(token, None)
        assert claims["sub"] == "user-1"
        assert "skipping JWT signature verification" in caplog.text
