"""
Security utilities: password hashing and JWT access tokens.

Tokens are HS256 JWTs signed with ``settings.jwt_secret_key``. The user id is
carried in both ``sub`` and ``user_id`` as the string form of the UUID.
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from uuid import UUID

import bcrypt
import jwt

from core.config import settings

logger = logging.getLogger(__name__)

JWTPayload = Dict[str, Any]


# ==================== Passwords ===================== #
def hash_password(password: str) -> str:
    """Hash a password with bcrypt and a fresh salt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str) -> bool:
    """Check a password against a stored bcrypt hash. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        return False


# ==================== Tokens ===================== #
def create_access_token(
    user_id: UUID,
    email: Optional[str] = None,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token for a user.

    Args:
        user_id: User the token identifies
        email: Optional email claim
        secret_key: Signing key (defaults to settings)
        algorithm: Signing algorithm (defaults to settings)
        expires_delta: Lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)

    Returns:
        Encoded JWT
    """
    issued_at = datetime.now(timezone.utc)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    payload: JWTPayload = {
        "sub": str(user_id),
        "user_id": str(user_id),
        "type": "access",
        "iat": issued_at,
        "exp": issued_at + expires_delta,
        "jti": uuid.uuid4().hex,
    }
    if email:
        payload["email"] = email

    return jwt.encode(
        payload,
        secret_key or settings.jwt_secret_key,
        algorithm=algorithm or settings.jwt_algorithm,
    )


def verify_jwt_token(
    token: str,
    secret_key: Optional[str] = None,
    algorithm: Optional[str] = None,
) -> JWTPayload:
    """
    Decode and verify a token.

    Raises:
        jwt.ExpiredSignatureError: if the token has expired
        jwt.InvalidTokenError: for any other invalid token
    """
    return jwt.decode(
        token,
        secret_key or settings.jwt_secret_key,
        algorithms=[algorithm or settings.jwt_algorithm],
    )


def get_token_user_id(payload: JWTPayload) -> UUID:
    """
    Extract the user id claim.

    Raises:
        jwt.InvalidTokenError: if the claim is missing or not a UUID
    """
    raw = payload.get("user_id") or payload.get("sub")
    if not raw:
        raise jwt.InvalidTokenError("Token missing user_id")
    try:
        return UUID(str(raw))
    except ValueError as exc:
        raise jwt.InvalidTokenError("Token user_id is not a UUID") from exc
