"""
Unit Tests for Security Module
Tests for: password hashing, JWT tokens, one-time account tokens
"""
import pytest
from datetime import timedelta
from types import SimpleNamespace
from jose import jwt

from app.core.config import settings
from app.models.user import UserRole
from app.core.exceptions import AuthenticationError
from app.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    create_refresh_token,
    create_token_pair,
    decode_token,
    generate_account_token,
    hash_account_token,
)


class TestPasswordHashing:
    """Test password hashing functions"""

    def test_hash_password_returns_different_value(self):
        """Test that hashing returns a different value than input"""
        hashed = get_password_hash("testpassword123")

        assert hashed != "testpassword123"
        assert hashed.startswith("$2")

    def test_hash_password_different_each_time(self):
        """Bcrypt salts every hash"""
        assert get_password_hash("testpassword123") != get_password_hash("testpassword123")

    def test_verify_password_correct(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("testpassword123", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = get_password_hash("testpassword123")

        assert verify_password("wrongpassword", hashed) is False

    def test_hash_long_password_truncated(self):
        """Passwords beyond bcrypt's 72 bytes still verify"""
        long_password = "a" * 100
        hashed = get_password_hash(long_password)

        assert verify_password(long_password, hashed) is True


class TestJWTTokens:
    """Test JWT creation and decoding"""

    def test_access_token_carries_type_and_subject(self):
        token = create_access_token({"sub": "user-1"})
        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_refresh_token_type(self):
        payload = decode_token(create_refresh_token({"sub": "user-1"}))

        assert payload["type"] == "refresh"

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(AuthenticationError) as exc_info:
            decode_token(token)

        assert "expired" in exc_info.value.message.lower()

    def test_token_signed_with_other_key_rejected(self):
        token = jwt.encode({"sub": "user-1", "type": "access"}, "another-key", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(AuthenticationError):
            decode_token(token)

    def test_garbage_token_rejected(self):
        with pytest.raises(AuthenticationError):
            decode_token("not-a-jwt")

    def test_token_pair_shape(self):
        user = SimpleNamespace(id="user-1", email="someone@example.com", role=UserRole.STUDENT)

        pair = create_token_pair(user)

        assert pair["token_type"] == "bearer"
        assert pair["expires_in"] == settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
        assert decode_token(pair["access_token"])["role"] == "student"
        assert decode_token(pair["refresh_token"])["type"] == "refresh"


class TestAccountTokens:
    """Email verification / password reset tokens"""

    def test_only_digest_is_returned_for_storage(self):
        raw, digest = generate_account_token()

        assert raw != digest
        assert hash_account_token(raw) == digest
        assert len(digest) == 64

    def test_tokens_are_unique(self):
        first, _ = generate_account_token()
        second, _ = generate_account_token()

        assert first != second
