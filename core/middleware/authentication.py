"""
Authentication middleware: resolve the calling user from a bearer token.

Authentication only establishes identity. A missing token leaves the caller
anonymous (``ANONYMOUS_USER_ID``) and every permission check then answers
Forbidden. A token that is present but invalid or expired is rejected here
with 401, and a token for an unknown or inactive user is treated the same way.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional
from uuid import UUID

import jwt
from fastapi import Request, status
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.middleware.authorization import ANONYMOUS_USER_ID
from core.security import get_token_user_id, verify_jwt_token
from database.engine import AsyncSessionLocal
from database.models.users import User

logger = logging.getLogger(__name__)

# Public endpoints that never look at the token
PUBLIC_ENDPOINTS = [
    "/",
    "/health",
    "/ready",
    "/api/v1/auth/login",
    "/docs",
    "/redoc",
    "/openapi.json",
]


class AuthenticationError(Exception):
    """Base exception for authentication errors."""


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is invalid."""


class UserNotFoundError(AuthenticationError):
    """Raised when the token's user does not exist."""


class UserInactiveError(AuthenticationError):
    """Raised when user account is inactive."""


class AuthenticationMiddleware:
    """
    ASGI middleware that puts the caller's user id on ``scope["user_id"]``.
    """

    def __init__(
        self,
        app: Callable,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        session_factory: Optional[async_sessionmaker] = None,
    ):
        """
        Args:
            app: ASGI application
            jwt_secret: Secret key for JWT verification
            jwt_algorithm: JWT signing algorithm
            session_factory: Session maker used to look the user up
        """
        self.app = app
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.session_factory = session_factory or AsyncSessionLocal

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        scope["user_id"] = ANONYMOUS_USER_ID
        request = Request(scope)

        if self._is_public_endpoint(request.url.path):
            await self.app(scope, receive, send)
            return

        token = self._extract_token(request)
        if not token:
            await self.app(scope, receive, send)
            return

        try:
            try:
                payload = verify_jwt_token(token, self.jwt_secret, self.jwt_algorithm)
                user_id = get_token_user_id(payload)
            except jwt.ExpiredSignatureError:
                raise TokenExpiredError("Token has expired")
            except jwt.InvalidTokenError as e:
                raise TokenInvalidError(f"Invalid token: {str(e)}")

            async with self.session_factory() as db:
                await self._validate_user(db, user_id)
        except TokenExpiredError:
            await self._send_error_response(
                scope,
                receive,
                send,
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="TOKEN_EXPIRED",
                message="Authentication token has expired.",
            )
            return
        except (TokenInvalidError, UserNotFoundError) as e:
            logger.warning(f"Rejected token: {str(e)}")
            await self._send_error_response(
                scope,
                receive,
                send,
                status_code=status.HTTP_401_UNAUTHORIZED,
                code="TOKEN_INVALID",
                message="Invalid authentication token.",
            )
            return
        except UserInactiveError:
            logger.warning("Inactive user attempted access")
            await self._send_error_response(
                scope,
                receive,
                send,
                status_code=status.HTTP_403_FORBIDDEN,
                code="USER_INACTIVE",
                message="User account is inactive.",
            )
            return

        scope["user_id"] = user_id
        await self.app(scope, receive, send)

    def _is_public_endpoint(self, path: str) -> bool:
        if path in PUBLIC_ENDPOINTS:
            return True
        public_prefixes = ["/health", "/ready", "/docs", "/redoc", "/openapi"]
        return any(path.startswith(prefix) for prefix in public_prefixes)

    def _extract_token(self, request: Request) -> Optional[str]:
        auth_header = request.headers.get("Authorization")
        if auth_header and auth_header.startswith("Bearer "):
            return auth_header[7:]
        return None

    async def _validate_user(self, db: AsyncSession, user_id: UUID) -> None:
        """
        Raises:
            UserNotFoundError: If user doesn't exist
            UserInactiveError: If user is inactive
        """
        result = await db.execute(select(User.is_active).where(User.id == user_id))
        is_active = result.scalar_one_or_none()
        if is_active is None:
            raise UserNotFoundError(f"User {user_id} not found")
        if not is_active:
            raise UserInactiveError(f"User {user_id} is inactive")

    async def _send_error_response(
        self,
        scope: dict,
        receive: Callable,
        send: Callable,
        status_code: int,
        code: str,
        message: str,
    ) -> None:
        response = JSONResponse(
            status_code=status_code,
            content={
                "error": {
                    "code": code,
                    "message": message,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            },
        )
        await response(scope, receive, send)

