"""
Tests for password hashing and JWT access tokens.
"""

import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from core.config import settings
from core.security import (
    create_access_token,
    get_token_user_id,
    hash_password,
    verify_jwt_token,
    verify_password,
)


class TestPasswordHashing:
    """Test bcrypt password hashes."""

    def test_hash_format(self):
        hashed = hash_password("correct horse")

        assert hashed != "correct horse"
        assert hashed.startswith("$2b$")  # bcrypt format

    def test_verify(self):
        hashed = hash_password("correct horse")

        assert verify_password("correct horse", hashed) is True
        assert verify_password("wrong horse", hashed) is False

    def test_salts_differ(self):
        assert hash_password("same") != hash_password("same")

    @pytest.mark.parametrize("stored", [
        "",
        "not-a-hash",
        "pbkdf2_sha256$1000$salt$abcdef",
    ])
    def test_malformed_hash_never_matches(self, stored):
        assert verify_password("anything", stored) is False


class TestAccessTokens:
    """Test token creation and verification."""

    def test_round_trip_claims(self):
        user_id = uuid.uuid4()

        token = create_access_token(user_id, email="hm@example.com")
        payload = verify_jwt_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["user_id"] == str(user_id)
        assert payload["email"] == "hm@example.com"
        assert payload["type"] == "access"
        assert payload["jti"]
        assert get_token_user_id(payload) == user_id

    def test_default_lifetime(self):
        token = create_access_token(uuid.uuid4())
        payload = verify_jwt_token(token)

        assert payload["exp"] - payload["iat"] == settings.access_token_expire_minutes * 60

    def test_expired_token(self):
        token = create_access_token(uuid.uuid4(), expires_delta=timedelta(seconds=-1))

        with pytest.raises(jwt.ExpiredSignatureError):
            verify_jwt_token(token)

    def test_wrong_secret(self):
        token = create_access_token(uuid.uuid4(), secret_key="another-secret-key-of-enough-length")

        with pytest.raises(jwt.InvalidTokenError):
            verify_jwt_token(token)

    def test_tampered_token(self):
        token = create_access_token(uuid.uuid4())

        with pytest.raises(jwt.InvalidTokenError):
            verify_jwt_token(token[:-4] + "AAAA")

    def test_algorithm_none_rejected(self):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "exp": datetime.now(timezone.utc) + timedelta(minutes=5)},
            None,
            algorithm="none",
        )

        with pytest.raises(jwt.InvalidTokenError):
            verify_jwt_token(token)


class TestTokenUserId:
    def test_falls_back_to_sub(self):
        user_id = uuid.uuid4()

        assert get_token_user_id({"sub": str(user_id)}) == user_id

    def test_missing_claim(self):
        with pytest.raises(jwt.InvalidTokenError, match="missing"):
            get_token_user_id({})

    def test_not_a_uuid(self):
        with pytest.raises(jwt.InvalidTokenError, match="not a UUID"):
            get_token_user_id({"user_id": "42"})
