"""
Job requisition endpoints.

Reads need an authenticated caller. Every mutation is permission-gated
inside the service, before the job is looked up, so an unauthorized caller
gets 403 even for ids that do not exist.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query, status

from api.dependencies import require_authenticated_user
from api.schemas.jobs import (
    ApproveRejectRequest,
    JobListParams,
    JobListResponse,
    JobResponse,
    JobStatusHistoryResponse,
    JobUpsertRequest,
)
from api.services import jobs as job_service
from core.exceptions import JobNotFoundError
from core.middleware.authorization import AuthorizationContext, get_authorization_context
from database.models.jobs import JobStatus

router = APIRouter()


@router.get(
    "",
    response_model=JobListResponse,
    summary="List Jobs",
    description="List jobs, latest application deadline first.",
)
async def list_jobs(
    status_filter: Optional[int] = Query(
        None, alias="status", ge=1, le=4, description="Filter by status code (1-4)"
    ),
    paging: JobListParams = Depends(),
    context: AuthorizationContext = Depends(require_authenticated_user),
):
    jobs, total = await job_service.list_jobs(
        context.db,
        status=JobStatus(status_filter) if status_filter is not None else None,
        limit=paging.page_size,
        offset=paging.offset,
    )
    return JobListResponse.for_page(jobs, total, paging)


@router.get("/{job_id}", response_model=JobResponse, summary="Get Job Details")
async def get_job(
    job_id: UUID = Path(..., description="Job ID"),
    context: AuthorizationContext = Depends(require_authenticated_user),
):
    job = await job_service.get_job(context.db, job_id)
    if job is None:
        raise JobNotFoundError(job_id)
    return job


@router.get(
    "/{job_id}/history",
    response_model=list[JobStatusHistoryResponse],
    summary="Get Job Status History",
)
async def get_job_history(
    job_id: UUID = Path(..., description="Job ID"),
    context: AuthorizationContext = Depends(require_authenticated_user),
):
    return await job_service.get_job_history(context.db, job_id)


@router.post(
    "",
    response_model=JobResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Job",
    description="Create a job in Draft. Requires Jobs.Create.",
)
async def create_job(
    data: JobUpsertRequest,
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await job_service.create_job(context, data)


@router.put(
    "/{job_id}",
    response_model=JobResponse,
    summary="Update Job",
    description="Replace a job's editable fields. Requires Jobs.Edit.",
)
async def update_job(
    data: JobUpsertRequest,
    job_id: UUID = Path(..., description="Job ID"),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await job_service.update_job(context, job_id, data)


@router.post(
    "/{job_id}/submit-for-approval",
    response_model=JobResponse,
    summary="Submit Job For Approval",
    description="Draft to PendingApproval. Requires Jobs.SubmitForApproval.",
)
async def submit_for_approval(
    job_id: UUID = Path(..., description="Job ID"),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await job_service.submit_for_approval(context, job_id)


@router.post(
    "/{job_id}/approve",
    response_model=JobResponse,
    summary="Approve Job",
    description="PendingApproval to Active. Requires Jobs.Approve.",
)
async def approve_job(
    job_id: UUID = Path(..., description="Job ID"),
    body: Optional[ApproveRejectRequest] = Body(None),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await job_service.approve_job(context, job_id, body.reason if body else None)


@router.post(
    "/{job_id}/reject",
    response_model=JobResponse,
    summary="Reject Job",
    description="PendingApproval back to Draft. Requires Jobs.Reject.",
)
async def reject_job(
    job_id: UUID = Path(..., description="Job ID"),
    body: Optional[ApproveRejectRequest] = Body(None),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await job_service.reject_job(context, job_id, body.reason if body else None)


@router.post(
    "/{job_id}/close",
    response_model=JobResponse,
    summary="Close Job",
    description="Close a job that is not already closed. Requires Jobs.Close.",
)
async def close_job(
    job_id: UUID = Path(..., description="Job ID"),
    context: AuthorizationContext = Depends(get_authorization_context),
):
    return await job_service.close_job(context, job_id)
