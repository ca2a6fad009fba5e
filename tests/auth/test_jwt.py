"""Tests for session token creation and verification."""

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from boreview.auth.jwt import create_admin_token, create_visitor_token, verify_token
from boreview.config import get_settings


class TestTokens:
    def test_admin_token_round_trip(self):
        token = create_admin_token("user-1", "admin@boreview.vn", "ADMIN")
        payload = verify_token(token, expected_type="admin")
        assert payload["sub"] == "user-1"
        assert payload["role"] == "ADMIN"
        assert payload["iss"] == "boreview.vn"

    def test_visitor_token_claims(self):
        payload = verify_token(create_visitor_token("v-1", "bofan"), expected_type="visitor")
        assert payload["username"] == "bofan"
        lifetime = payload["exp"] - payload["iat"]
        assert lifetime == get_settings().visitor_token_expire_days * 86400

    def test_type_mismatch(self):
        token = create_visitor_token("v-1", "bofan")
        with pytest.raises(jwt.InvalidTokenError, match="Expected token type 'admin'"):
            verify_token(token, expected_type="admin")

    def test_expired(self):
        settings = get_settings()
        past = datetime.now(timezone.utc) - timedelta(days=1)
        token = jwt.encode(
            {"sub": "v-1", "iat": past, "exp": past + timedelta(minutes=1), "iss": settings.jwt_issuer, "type": "visitor"},
            settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
        )
        with pytest.raises(jwt.InvalidTokenError, match="expired"):
            verify_token(token, expected_type="visitor")

    def test_wrong_secret(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "v-1", "iss": settings.jwt_issuer, "type": "visitor"}, "another-secret", algorithm="HS256"
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="visitor")

    def test_wrong_issuer(self):
        settings = get_settings()
        token = jwt.encode(
            {"sub": "v-1", "iss": "elsewhere", "type": "visitor"}, settings.jwt_secret, algorithm=settings.jwt_algorithm
        )
        with pytest.raises(jwt.InvalidTokenError):
            verify_token(token, expected_type="visitor")
