"""Password login for staff accounts."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import AccountInactiveError, InvalidCredentialsError
from core.security import verify_password
from database.models.users import User

logger = logging.getLogger(__name__)


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """
    Resolve a user from email and password.

    Unknown emails and wrong passwords raise the same error so that login
    does not reveal which accounts exist.

    Raises:
        InvalidCredentialsError: unknown email, no password set, or wrong password
        AccountInactiveError: credentials are right but the account is disabled
    """
    result = await db.execute(
        select(User).where(func.lower(User.email) == email.strip().lower())
    )
    user = result.scalar_one_or_none()

    if user is None or not user.password_hash or not verify_password(password, user.password_hash):
        logger.warning(f"Failed login attempt for {email}")
        raise InvalidCredentialsError()

    if not user.is_active:
        raise AccountInactiveError()

    logger.info(f"User {user.id} logged in")
    return user
