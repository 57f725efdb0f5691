"""Dashboard read model: job counts, approval queue and the user's notifications."""

from typing import Any, Dict
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.notifications import list_notifications
from core.middleware.authorization import AuthorizationContext, Permission
from database.models.jobs import Job, JobStatus
from database.models.notifications import AppNotification

APPROVAL_QUEUE_SIZE = 10
RECENT_NOTIFICATIONS = 20


async def count_unread_notifications(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(func.count(AppNotification.id)).where(
            AppNotification.user_id == user_id,
            AppNotification.is_read.is_(False),
        )
    )
    return result.scalar() or 0


async def get_dashboard(context: AuthorizationContext) -> Dict[str, Any]:
    """
    Build the dashboard for the acting user.

    The approval queue holds the most recently updated PendingApproval jobs
    and is only filled for users holding the approve permission.
    """
    db = context.db

    counts = await db.execute(
        select(
            func.count(Job.id),
            func.count(Job.id).filter(Job.status == JobStatus.ACTIVE),
            func.count(Job.id).filter(Job.status == JobStatus.PENDING_APPROVAL),
        )
    )
    total_jobs, active_jobs, pending_approvals = counts.one()

    can_approve = await context.has(Permission.JOBS_APPROVE)
    approval_queue = []
    if can_approve:
        result = await db.execute(
            select(Job)
            .where(Job.status == JobStatus.PENDING_APPROVAL)
            .order_by(Job.updated_at.desc())
            .limit(APPROVAL_QUEUE_SIZE)
        )
        approval_queue = list(result.scalars().all())

    return {
        "summary": {
            "total_jobs": total_jobs or 0,
            "active_jobs": active_jobs or 0,
            "pending_approvals": pending_approvals or 0,
        },
        "can_approve": can_approve,
        "approval_queue": approval_queue,
        "notifications": await list_notifications(
            db, context.user_id, limit=RECENT_NOTIFICATIONS
        ),
        "unread_count": await count_unread_notifications(db, context.user_id),
    }
