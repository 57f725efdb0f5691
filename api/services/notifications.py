"""
Notification fan-out and the recipient-facing notification operations.

Fan-out functions add one AppNotification per recipient to the caller's
unit of work and never commit; an empty audience adds nothing. They are not
idempotent, so each transition calls its fan-out exactly once.
"""

from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from api.services.audit import record_audit
from core.exceptions import NotificationNotFoundError
from core.middleware.authorization import Permission, get_users_with_permission
from core.utils.datetime import now
from database.models.jobs import ApprovalActionType, Job, JobApprovalAction
from database.models.notifications import AppNotification, NotificationType

logger = logging.getLogger(__name__)

JOB_ENTITY = "Job"


def _fan_out(
    db: AsyncSession,
    recipients: List[UUID],
    notification_type: NotificationType,
    title: str,
    message: str,
    job: Job,
) -> List[AppNotification]:
    notifications = [
        AppNotification(
            user_id=user_id,
            type=notification_type.value,
            title=title,
            message=message,
            entity_name=JOB_ENTITY,
            entity_id=job.id,
        )
        for user_id in recipients
    ]
    db.add_all(notifications)
    if notifications:
        logger.info(
            f"Queued {len(notifications)} {notification_type.value} notifications for job {job.id}"
        )
    return notifications


async def get_approver_user_ids(db: AsyncSession) -> List[UUID]:
    """Distinct users who currently hold the approve permission."""
    return await get_users_with_permission(db, Permission.JOBS_APPROVE)


async def get_submitter_user_ids(db: AsyncSession, job_id: UUID) -> List[UUID]:
    """Distinct users who have ever submitted this job for approval."""
    result = await db.execute(
        select(JobApprovalAction.action_by_user_id)
        .where(
            JobApprovalAction.job_id == job_id,
            JobApprovalAction.action == ApprovalActionType.SUBMIT_FOR_APPROVAL.value,
        )
        .distinct()
    )
    return list(result.scalars().all())


async def notify_approvers_job_created(
    db: AsyncSession, job: Job
) -> List[AppNotification]:
    """Tell every approver that a new draft exists."""
    recipients = await get_approver_user_ids(db)
    return _fan_out(
        db,
        recipients,
        NotificationType.JOB_CREATED,
        "New job draft created",
        f"{job.title} ({job.job_code}) has been created as draft.",
        job,
    )


async def notify_approvers_job_submitted(
    db: AsyncSession, job: Job
) -> List[AppNotification]:
    """Tell every approver that a job is waiting for approval."""
    recipients = await get_approver_user_ids(db)
    return _fan_out(
        db,
        recipients,
        NotificationType.JOB_APPROVAL,
        "New job requires approval",
        f"{job.title} ({job.job_code}) is waiting for approval.",
        job,
    )


async def notify_submitters_outcome(
    db: AsyncSession,
    job: Job,
    outcome: str,
    reason: Optional[str] = None,
) -> List[AppNotification]:
    """
    Tell every prior submitter of the job how approval ended.

    Args:
        db: Database session
        job: The decided job
        outcome: "Approved" or "Rejected"
        reason: Optional decision reason, appended when not blank
    """
    recipients = await get_submitter_user_ids(db, job.id)
    reason_part = f" Reason: {reason}" if reason and reason.strip() else ""
    return _fan_out(
        db,
        recipients,
        NotificationType.APPROVAL_RESULT,
        f"Job {outcome}",
        f"{job.title} ({job.job_code}) has been {outcome.lower()}.{reason_part}",
        job,
    )


async def mark_job_notifications_read(
    db: AsyncSession, user_id: UUID, job_id: UUID
) -> int:
    """Mark the user's unread notifications about a job as read, in the current unit of work."""
    result = await db.execute(
        select(AppNotification).where(
            AppNotification.user_id == user_id,
            AppNotification.entity_name == JOB_ENTITY,
            AppNotification.entity_id == job_id,
            AppNotification.is_read.is_(False),
        )
    )
    items = result.scalars().all()
    read_at = now()
    for item in items:
        item.is_read = True
        item.read_at = read_at
    return len(items)


async def list_notifications(
    db: AsyncSession, user_id: UUID, limit: int = 20
) -> List[AppNotification]:
    """Most recent notifications for a user."""
    result = await db.execute(
        select(AppNotification)
        .where(AppNotification.user_id == user_id)
        .order_by(AppNotification.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def mark_notification_read(
    db: AsyncSession, user_id: UUID, notification_id: UUID
) -> AppNotification:
    """
    Mark one of the user's notifications as read.

    Marking an already-read notification is a no-op: read_at keeps its
    original value and nothing is written.

    Raises:
        NotificationNotFoundError: if the notification does not exist or
            belongs to another user
    """
    result = await db.execute(
        select(AppNotification).where(
            AppNotification.id == notification_id,
            AppNotification.user_id == user_id,
        )
    )
    notification = result.scalar_one_or_none()
    if notification is None:
        raise NotificationNotFoundError(notification_id)

    if not notification.is_read:
        notification.is_read = True
        notification.read_at = now()
        await db.commit()

    return notification


async def mark_all_notifications_read(db: AsyncSession, user_id: UUID) -> int:
    """Mark every unread notification of the user as read; returns rows updated."""
    try:
        result = await db.execute(
            update(AppNotification)
            .where(
                AppNotification.user_id == user_id,
                AppNotification.is_read.is_(False),
            )
            .values(is_read=True, read_at=now())
        )
        updated = result.rowcount or 0
        record_audit(
            db,
            user_id,
            "MarkAllNotificationsRead",
            "AppNotification",
            payload={"updated": updated},
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    return updated
