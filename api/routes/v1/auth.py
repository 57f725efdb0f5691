"""Authentication endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.auth import LoginRequest, TokenResponse
from api.services.auth import authenticate_user
from core.config import settings
from core.security import create_access_token
from database.engine import get_db

router = APIRouter()


@router.post("/login", response_model=TokenResponse, summary="Login")
async def login(
    login_data: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange email and password for a bearer access token."""
    user = await authenticate_user(db, login_data.email, login_data.password)
    return TokenResponse(
        access_token=create_access_token(user.id, email=user.email),
        expires_in=settings.access_token_expire_minutes * 60,
    )
