"""
Import every model module so ``Base.metadata`` knows all tables.
"""

from database.models.users import User, Role, Permission, RolePermission, UserRole
from database.models.jobs import (
    Job,
    JobStageConfig,
    JobStatusHistory,
    JobApprovalAction,
)
from database.models.notifications import AppNotification
from database.models.audit import AuditLog

__all__ = [
    "User",
    "Role",
    "Permission",
    "RolePermission",
    "UserRole",
    "Job",
    "JobStageConfig",
    "JobStatusHistory",
    "JobApprovalAction",
    "AppNotification",
    "AuditLog",
]
