"""
Job service functions and the job lifecycle engine.

Status graph (integer codes in parentheses)::

    Draft(1) -> PendingApproval(2) -> Active(3)
                PendingApproval(2) -> Draft(1)      (reject)
    Draft | PendingApproval | Active -> Closed(4)

Every transition runs as one unit of work: permission check, job lookup,
state precondition, then the status change together with its history row,
approval-action row, audit row, read-marks and notifications. All of it
commits together or none of it does. The job row carries a version column,
so a competing transition that commits first makes this one fail with
JobConflictError instead of applying twice.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional, Tuple
from uuid import UUID
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from api.schemas.jobs import InterviewStageInput, JobUpsertRequest
from api.services.audit import record_audit
from api.services.notifications import (
    mark_job_notifications_read,
    notify_approvers_job_created,
    notify_approvers_job_submitted,
    notify_submitters_outcome,
)
from core.exceptions import (
    DuplicateJobCodeError,
    InvalidJobStateError,
    JobConflictError,
    JobNotFoundError,
)
from core.middleware.authorization import AuthorizationContext, Permission
from database.models.jobs import (
    ApprovalActionType,
    Job,
    JobApprovalAction,
    JobStageConfig,
    JobStatus,
    JobStatusHistory,
)

logger = logging.getLogger(__name__)

JOB_ENTITY = "Job"


@asynccontextmanager
async def job_unit_of_work(
    db: AsyncSession, job_id: Optional[UUID] = None
) -> AsyncIterator[None]:
    """
    Commit everything added inside the block, or roll all of it back.

    A StaleDataError (version mismatch on the job row) is reported as
    JobConflictError.
    """
    try:
        yield
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        logger.warning(f"Concurrent modification detected on job {job_id}")
        raise JobConflictError(job_id) from exc
    except BaseException:
        await db.rollback()
        raise


# ==================== Reads ===================== #
async def get_job(db: AsyncSession, job_id: UUID) -> Optional[Job]:
    """Get job details, or None."""
    return await db.get(Job, job_id)


async def list_jobs(
    db: AsyncSession,
    status: Optional[JobStatus] = None,
    limit: int = 20,
    offset: int = 0,
) -> Tuple[List[Job], int]:
    """List jobs, latest application deadline first, then newest."""
    query = select(Job)
    if status is not None:
        query = query.where(Job.status == status)

    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = (
        query.order_by(Job.application_deadline.desc().nulls_last(), Job.created_at.desc())
        .limit(limit)
        .offset(offset)
    )
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def get_job_history(db: AsyncSession, job_id: UUID) -> List[JobStatusHistory]:
    """Status history of a job in the order it happened."""
    if await db.get(Job, job_id) is None:
        raise JobNotFoundError(job_id)

    result = await db.execute(
        select(JobStatusHistory)
        .where(JobStatusHistory.job_id == job_id)
        .order_by(JobStatusHistory.job_version)
    )
    return list(result.scalars().all())


# ==================== Authoring ===================== #
def build_stage_configs(stages: List[InterviewStageInput]) -> List[JobStageConfig]:
    """
    Turn requested stages into configs.

    Blank names are dropped; a non-positive order becomes the 1-based
    position after sorting by the requested order.
    """
    kept = sorted(
        (s for s in stages if s.stage_name and s.stage_name.strip()),
        key=lambda s: s.stage_order,
    )
    return [
        JobStageConfig(
            stage_name=stage.stage_name.strip(),
            stage_order=stage.stage_order if stage.stage_order > 0 else index + 1,
            is_active=stage.is_active,
        )
        for index, stage in enumerate(kept)
    ]


def _apply_fields(job: Job, data: JobUpsertRequest) -> None:
    job.title = data.title
    job.department = data.department
    job.skills_csv = data.skills_csv
    # Negotiable salaries carry no range
    job.salary_range_min = 0 if data.is_salary_negotiable else data.salary_range_min
    job.salary_range_max = 0 if data.is_salary_negotiable else data.salary_range_max
    job.is_salary_negotiable = data.is_salary_negotiable
    job.location_type = data.location_type
    job.location_text = data.location_text
    job.employment_type = data.employment_type
    job.experience_level = data.experience_level
    job.job_code = data.job_code
    job.vacancy_count = data.vacancy_count
    job.application_deadline = data.application_deadline
    job.description_html = data.description_html
    job.requirements_html = data.requirements_html
    job.description_json = data.description_json
    job.requirements_json = data.requirements_json


async def _ensure_job_code_free(
    db: AsyncSession, job_code: str, exclude_job_id: Optional[UUID] = None
) -> None:
    query = select(Job.id).where(Job.job_code == job_code)
    if exclude_job_id is not None:
        query = query.where(Job.id != exclude_job_id)
    if (await db.execute(query.limit(1))).first() is not None:
        raise DuplicateJobCodeError(job_code)


async def create_job(context: AuthorizationContext, data: JobUpsertRequest) -> Job:
    """
    Create a job in Draft and tell every approver about it.

    Raises:
        InsufficientPermissions: without Jobs.Create
        DuplicateJobCodeError: if the job code is taken
    """
    db = context.db
    async with job_unit_of_work(db):
        await context.require(Permission.JOBS_CREATE)
        await _ensure_job_code_free(db, data.job_code)

        job = Job(status=JobStatus.DRAFT, created_by_user_id=context.user_id)
        _apply_fields(job, data)
        job.stages = build_stage_configs(data.interview_stages or [])
        db.add(job)
        await db.flush()

        record_audit(
            db,
            context.user_id,
            "CreateJob",
            JOB_ENTITY,
            job.id,
            payload=data.model_dump(mode="json"),
        )
        await notify_approvers_job_created(db, job)

    logger.info(f"Job {job.id} ({job.job_code}) created by {context.user_id}")
    return job


async def update_job(
    context: AuthorizationContext, job_id: UUID, data: JobUpsertRequest
) -> Job:
    """
    Replace a job's editable fields, and its stages when given.

    Raises:
        InsufficientPermissions: without Jobs.Edit
        JobNotFoundError: if the job does not exist
        DuplicateJobCodeError: if the new job code is taken
    """
    db = context.db
    async with job_unit_of_work(db, job_id):
        await context.require(Permission.JOBS_EDIT)
        job = await _load_job(db, job_id)
        await _ensure_job_code_free(db, data.job_code, exclude_job_id=job_id)

        _apply_fields(job, data)
        if data.interview_stages is not None:
            job.stages = build_stage_configs(data.interview_stages)

        record_audit(
            db,
            context.user_id,
            "UpdateJob",
            JOB_ENTITY,
            job.id,
            payload=data.model_dump(mode="json"),
        )

    logger.info(f"Job {job_id} updated by {context.user_id}")
    return job


# ==================== Lifecycle ===================== #
async def _load_job(db: AsyncSession, job_id: UUID) -> Job:
    job = await db.get(Job, job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job


def _ensure_status(job: Job, expected: JobStatus, message: str) -> None:
    if job.status != expected:
        logger.warning(
            f"Rejected transition on job {job.id}: status is {job.status.label}, "
            f"expected {expected.label}"
        )
        raise InvalidJobStateError(message)


def _transition(
    db: AsyncSession,
    job: Job,
    to_status: JobStatus,
    user_id: UUID,
    reason: Optional[str] = None,
) -> JobStatusHistory:
    """Move the job to a new status and append the history row."""
    from_status = job.status
    if not from_status.can_transition_to(to_status):
        raise InvalidJobStateError(
            f"Cannot move job from {from_status.label} to {to_status.label}."
        )

    job.status = to_status
    entry = JobStatusHistory(
        job_id=job.id,
        from_status=from_status,
        to_status=to_status,
        job_version=job.version,
        changed_by_user_id=user_id,
        reason=reason,
    )
    db.add(entry)
    return entry


def _record_approval_action(
    db: AsyncSession,
    job: Job,
    action: ApprovalActionType,
    user_id: UUID,
    reason: Optional[str] = None,
) -> JobApprovalAction:
    entry = JobApprovalAction(
        job_id=job.id, action_by_user_id=user_id, action=action.value, reason=reason
    )
    db.add(entry)
    return entry


async def submit_for_approval(context: AuthorizationContext, job_id: UUID) -> Job:
    """
    Draft -> PendingApproval, then notify every approver.

    Raises:
        InsufficientPermissions: without Jobs.SubmitForApproval
        JobNotFoundError: if the job does not exist
        InvalidJobStateError: if the job is not a Draft
        JobConflictError: if a competing request changed the job first
    """
    db = context.db
    async with job_unit_of_work(db, job_id):
        await context.require(Permission.JOBS_SUBMIT_FOR_APPROVAL)
        job = await _load_job(db, job_id)
        _ensure_status(job, JobStatus.DRAFT, "Only Draft can be submitted.")

        _transition(db, job, JobStatus.PENDING_APPROVAL, context.user_id)
        _record_approval_action(
            db, job, ApprovalActionType.SUBMIT_FOR_APPROVAL, context.user_id
        )
        record_audit(
            db, context.user_id, ApprovalActionType.SUBMIT_FOR_APPROVAL.value, JOB_ENTITY, job.id
        )
        await notify_approvers_job_submitted(db, job)

    logger.info(f"Job {job_id} submitted for approval by {context.user_id}")
    return job


async def approve_job(
    context: AuthorizationContext, job_id: UUID, reason: Optional[str] = None
) -> Job:
    """
    PendingApproval -> Active, clear any rejection reason, notify submitters.

    Raises:
        InsufficientPermissions: without Jobs.Approve
        JobNotFoundError: if the job does not exist
        InvalidJobStateError: if the job is not PendingApproval
        JobConflictError: if a competing request changed the job first
    """
    db = context.db
    async with job_unit_of_work(db, job_id):
        await context.require(Permission.JOBS_APPROVE)
        job = await _load_job(db, job_id)
        _ensure_status(
            job, JobStatus.PENDING_APPROVAL, "Only PendingApproval can be approved."
        )

        _transition(db, job, JobStatus.ACTIVE, context.user_id)
        job.rejection_reason = None
        _record_approval_action(
            db, job, ApprovalActionType.APPROVE, context.user_id, reason
        )
        record_audit(
            db,
            context.user_id,
            ApprovalActionType.APPROVE.value,
            JOB_ENTITY,
            job.id,
            payload={"reason": reason},
        )
        await mark_job_notifications_read(db, context.user_id, job.id)
        await notify_submitters_outcome(db, job, "Approved", reason)

    logger.info(f"Job {job_id} approved by {context.user_id}")
    return job


async def reject_job(
    context: AuthorizationContext, job_id: UUID, reason: Optional[str] = None
) -> Job:
    """
    PendingApproval -> Draft with the rejection reason, notify submitters.

    Raises:
        InsufficientPermissions: without Jobs.Reject
        JobNotFoundError: if the job does not exist
        InvalidJobStateError: if the job is not PendingApproval
        JobConflictError: if a competing request changed the job first
    """
    db = context.db
    async with job_unit_of_work(db, job_id):
        await context.require(Permission.JOBS_REJECT)
        job = await _load_job(db, job_id)
        _ensure_status(
            job, JobStatus.PENDING_APPROVAL, "Only PendingApproval can be rejected."
        )

        _transition(db, job, JobStatus.DRAFT, context.user_id, reason)
        job.rejection_reason = reason
        _record_approval_action(
            db, job, ApprovalActionType.REJECT, context.user_id, reason
        )
        record_audit(
            db,
            context.user_id,
            ApprovalActionType.REJECT.value,
            JOB_ENTITY,
            job.id,
            payload={"reason": reason},
        )
        await mark_job_notifications_read(db, context.user_id, job.id)
        await notify_submitters_outcome(db, job, "Rejected", reason)

    logger.info(f"Job {job_id} rejected by {context.user_id}")
    return job


async def close_job(context: AuthorizationContext, job_id: UUID) -> Job:
    """
    Close a job from any open status. Writes the history row only.

    Raises:
        InsufficientPermissions: without Jobs.Close
        JobNotFoundError: if the job does not exist
        InvalidJobStateError: if the job is already Closed
        JobConflictError: if a competing request changed the job first
    """
    db = context.db
    async with job_unit_of_work(db, job_id):
        await context.require(Permission.JOBS_CLOSE)
        job = await _load_job(db, job_id)
        if job.status == JobStatus.CLOSED:
            raise InvalidJobStateError("Job is already closed.")

        _transition(db, job, JobStatus.CLOSED, context.user_id)

    logger.info(f"Job {job_id} closed by {context.user_id}")
    return job
