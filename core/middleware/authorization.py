"""
Authorization: permission codes and the role/permission oracle.

A user's effective permissions are the distinct set of permission codes
reachable through ``user_roles -> role_permissions -> permissions``. Grants
are positive only. Permission codes are stored as strings; inside the
application they are the closed ``Permission`` enum below.

Lookups are never cached across requests. ``AuthorizationContext`` memoizes
the closure for the lifetime of one request only.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional
from uuid import UUID

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import InsufficientPermissions
from database.engine import get_db
from database.models.users import Permission as PermissionRow
from database.models.users import RolePermission, UserRole

logger = logging.getLogger(__name__)

# Identity of an unauthenticated caller
ANONYMOUS_USER_ID = UUID(int=0)


class Permission(str, Enum):
    """System-wide permission codes."""

    # Job Management
    JOBS_CREATE = "Jobs.Create"
    JOBS_EDIT = "Jobs.Edit"
    JOBS_VIEW = "Jobs.View"
    JOBS_SUBMIT_FOR_APPROVAL = "Jobs.SubmitForApproval"
    JOBS_APPROVE = "Jobs.Approve"
    JOBS_REJECT = "Jobs.Reject"
    JOBS_PUBLISH = "Jobs.Publish"
    JOBS_UNPUBLISH = "Jobs.Unpublish"
    JOBS_CLOSE = "Jobs.Close"

    # Candidate Management
    CANDIDATES_VIEW = "Candidates.View"
    CANDIDATES_EDIT = "Candidates.Edit"
    CANDIDATES_MOVE_STAGE = "Candidates.MoveStage"
    CANDIDATES_BULK_ACTIONS = "Candidates.BulkActions"
    CANDIDATES_PARSE_RESUME = "Candidates.ParseResume"

    # Interview/Scheduling
    INTERVIEWS_SCHEDULE = "Interviews.Schedule"
    INTERVIEWS_UPDATE = "Interviews.Update"
    INTERVIEWS_CANCEL = "Interviews.Cancel"
    INTERVIEWS_VIEW = "Interviews.View"
    INTERVIEWS_SUBMIT_SCORECARD = "Interviews.SubmitScorecard"

    # Reporting & Settings
    ANALYTICS_VIEW_REPORTS = "Analytics.ViewReports"
    SETTINGS_MANAGE_TEMPLATES = "Settings.ManageTemplates"
    SETTINGS_MANAGE_STAGES = "Settings.ManageStages"

    @classmethod
    def parse(cls, code: str) -> Optional["Permission"]:
        """Map a stored code to the enum; unknown codes return None."""
        try:
            return cls(code)
        except ValueError:
            return None


def _code(permission: "Permission | str") -> str:
    """
    Normalize a permission to its stored code.

    Raises:
        ValueError: for a string that is not a known permission code
    """
    if isinstance(permission, Permission):
        return permission.value
    parsed = Permission.parse(permission)
    if parsed is None:
        raise ValueError(f"Unknown permission code: {permission!r}")
    return parsed.value


async def get_user_permissions(db: AsyncSession, user_id: UUID) -> set[str]:
    """
    Get the distinct set of permission codes granted to a user.

    Args:
        db: Database session
        user_id: User to resolve

    Returns:
        Set of known permission codes (empty for the anonymous user).
        Stored codes outside the Permission enum are ignored.
    """
    if user_id == ANONYMOUS_USER_ID:
        return set()

    result = await db.execute(
        select(PermissionRow.code)
        .join(RolePermission, RolePermission.permission_id == PermissionRow.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .where(UserRole.user_id == user_id)
        .distinct()
    )
    return {code for code in result.scalars().all() if Permission.parse(code)}


async def has_permission(
    db: AsyncSession, user_id: UUID, permission: "Permission | str"
) -> bool:
    """
    Check whether a user holds a permission through any of their roles.

    Returns False immediately for the anonymous user, without a query.

    Raises:
        ValueError: for a string that is not a known permission code
    """
    code = _code(permission)
    if user_id == ANONYMOUS_USER_ID:
        return False

    result = await db.execute(
        select(PermissionRow.id)
        .join(RolePermission, RolePermission.permission_id == PermissionRow.id)
        .join(UserRole, UserRole.role_id == RolePermission.role_id)
        .where(UserRole.user_id == user_id, PermissionRow.code == code)
        .limit(1)
    )
    return result.first() is not None


async def get_users_with_permission(
    db: AsyncSession, permission: "Permission | str"
) -> list[UUID]:
    """Get the distinct ids of every user holding a permission."""
    result = await db.execute(
        select(UserRole.user_id)
        .join(RolePermission, RolePermission.role_id == UserRole.role_id)
        .join(PermissionRow, PermissionRow.id == RolePermission.permission_id)
        .where(PermissionRow.code == _code(permission))
        .distinct()
    )
    return list(result.scalars().all())


@dataclass
class AuthorizationContext:
    """
    Acting user plus a request-scoped memo of their permission closure.

    Create one per request; never share it across requests since grants can
    change between them.
    """

    db: AsyncSession
    user_id: UUID = ANONYMOUS_USER_ID
    _granted: Optional[set[str]] = field(default=None, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return self.user_id != ANONYMOUS_USER_ID

    async def permissions(self) -> set[str]:
        if self._granted is None:
            self._granted = await get_user_permissions(self.db, self.user_id)
        return self._granted

    async def has(self, permission: "Permission | str") -> bool:
        code = _code(permission)
        if not self.is_authenticated:
            return False
        return code in await self.permissions()

    async def require(self, *permissions: "Permission | str") -> None:
        """
        Require every listed permission.

        Raises:
            InsufficientPermissions: on the first permission not held
        """
        for permission in permissions:
            if not await self.has(permission):
                logger.warning(
                    f"User {self.user_id} lacks permission {_code(permission)}"
                )
                raise InsufficientPermissions(_code(permission))


def get_request_user_id(request: Request) -> UUID:
    """User id placed on the scope by AuthenticationMiddleware."""
    return request.scope.get("user_id") or ANONYMOUS_USER_ID


async def get_authorization_context(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AuthorizationContext:
    """FastAPI dependency: one AuthorizationContext per request."""
    context = getattr(request.state, "authorization", None)
    if context is None or context.db is not db:
        context = AuthorizationContext(db=db, user_id=get_request_user_id(request))
        request.state.authorization = context
    return context


def require_permission(*required_permissions: "Permission | str") -> Callable:
    """
    Dependency to require specific permissions (all of them).

    Args:
        required_permissions: Required permissions

    Returns:
        FastAPI dependency resolving to the request's AuthorizationContext
    """
    # Unknown codes fail when the route is declared, not on first request
    codes = [_code(p) for p in required_permissions]

    async def dependency(
        context: AuthorizationContext = Depends(get_authorization_context),
    ) -> AuthorizationContext:
        await context.require(*codes)
        return context

    return dependency


def permission_codes(permissions: Iterable["Permission | str"]) -> list[str]:
    """Sorted string codes, for seeding and API output."""
    return sorted(_code(p) for p in permissions)
