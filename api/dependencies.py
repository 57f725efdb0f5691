"""FastAPI dependencies for dependency injection."""

from fastapi import Depends, HTTPException, status

from core.middleware.authorization import (
    AuthorizationContext,
    get_authorization_context,
)
from core.parsers.resume_preview import ResumePreviewConverter


async def require_authenticated_user(
    context: AuthorizationContext = Depends(get_authorization_context),
) -> AuthorizationContext:
    """Require a resolved (non-anonymous) caller."""
    if not context.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context



def get_resume_preview_converter() -> ResumePreviewConverter:
    """Converter configured from settings; conversions share the process-wide lock."""
    return ResumePreviewConverter()
