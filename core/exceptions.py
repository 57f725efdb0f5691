"""
Domain exceptions surfaced to API callers.

Each exception carries the HTTP status and error code the error handling
middleware renders; messages are short and safe to show to clients.
"""

from typing import Optional
from uuid import UUID


class ApplicationError(Exception):
    """Base class for caller-visible domain errors."""

    status_code: int = 400
    error_code: str = "APPLICATION_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InsufficientPermissions(ApplicationError):
    """Raised when user lacks required permission."""

    status_code = 403
    error_code = "PERMISSION_DENIED"

    def __init__(self, permission: str):
        super().__init__(f"Missing permission: {permission}")
        self.permission = permission


class ResourceNotFound(ApplicationError):
    """Raised when a referenced resource does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class JobNotFoundError(ResourceNotFound):
    def __init__(self, job_id: UUID):
        super().__init__("Job not found")
        self.job_id = job_id


class NotificationNotFoundError(ResourceNotFound):
    def __init__(self, notification_id: UUID):
        super().__init__("Notification not found")
        self.notification_id = notification_id


class InvalidJobStateError(ApplicationError):
    """Job exists but is not in the state the transition requires."""

    status_code = 400
    error_code = "INVALID_STATE"


class JobConflictError(ApplicationError):
    """A competing write changed the job between read and commit."""

    status_code = 409
    error_code = "STALE_STATE"

    def __init__(self, job_id: Optional[UUID] = None):
        super().__init__("Job was modified by another request. Reload and try again.")
        self.job_id = job_id


class DuplicateJobCodeError(ApplicationError):
    status_code = 409
    error_code = "DUPLICATE_JOB_CODE"

    def __init__(self, job_code: str):
        super().__init__(f"Job code '{job_code}' is already in use.")
        self.job_code = job_code


class InvalidCredentialsError(ApplicationError):
    status_code = 401
    error_code = "INVALID_CREDENTIALS"

    def __init__(self):
        super().__init__("Invalid email or password")


class AccountInactiveError(ApplicationError):
    status_code = 403
    error_code = "ACCOUNT_INACTIVE"

    def __init__(self):
        super().__init__("Account is inactive. Please contact support.")


class UnsupportedDocumentError(ApplicationError):
    """Upload cannot be previewed (empty, or a file type the converter does not take)."""

    status_code = 400
    error_code = "UNSUPPORTED_DOCUMENT"


class PreviewConversionError(ApplicationError):
    """The external converter failed, timed out or produced no PDF."""

    status_code = 502
    error_code = "PREVIEW_FAILED"
