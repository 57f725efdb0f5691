"""
Core middleware package.

- Error handling with sensitive data sanitization
- Structured logging with masking
- Bearer-token authentication
- Role/permission authorization
"""

from core.middleware.error_handling import (
    ErrorHandlingMiddleware,
    setup_error_handlers,
    sanitize_error_message,
)

from core.middleware.logging import (
    StructuredLoggingMiddleware,
    setup_logging,
)

from core.middleware.authentication import (
    AuthenticationMiddleware,
    AuthenticationError,
)

from core.middleware.authorization import (
    ANONYMOUS_USER_ID,
    AuthorizationContext,
    Permission,
    get_authorization_context,
    get_user_permissions,
    has_permission,
    require_permission,
)

__all__ = [
    # Error handling
    "ErrorHandlingMiddleware",
    "setup_error_handlers",
    "sanitize_error_message",
    # Logging
    "StructuredLoggingMiddleware",
    "setup_logging",
    # Authentication
    "AuthenticationMiddleware",
    "AuthenticationError",
    # Authorization
    "ANONYMOUS_USER_ID",
    "AuthorizationContext",
    "Permission",
    "get_authorization_context",
    "get_user_permissions",
    "has_permission",
    "require_permission",
]
