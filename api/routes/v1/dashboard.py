"""Dashboard and notification consumption endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Path

from api.dependencies import require_authenticated_user
from api.schemas.notifications import (
    DashboardResponse,
    MarkAllReadResponse,
    NotificationResponse,
)
from api.services import dashboard as dashboard_service
from api.services import notifications as notification_service
from core.middleware.authorization import AuthorizationContext

router = APIRouter()


@router.get("", response_model=DashboardResponse, summary="Get Dashboard")
async def get_dashboard(
    context: AuthorizationContext = Depends(require_authenticated_user),
):
    """Job counts, the approval queue (approvers only) and recent notifications."""
    return await dashboard_service.get_dashboard(context)


@router.post(
    "/notifications/read-all",
    response_model=MarkAllReadResponse,
    summary="Mark All Notifications Read",
)
async def mark_all_notifications_read(
    context: AuthorizationContext = Depends(require_authenticated_user),
):
    updated = await notification_service.mark_all_notifications_read(
        context.db, context.user_id
    )
    return MarkAllReadResponse(updated=updated)


@router.post(
    "/notifications/{notification_id}/read",
    response_model=NotificationResponse,
    summary="Mark Notification Read",
)
async def mark_notification_read(
    notification_id: UUID = Path(..., description="Notification ID"),
    context: AuthorizationContext = Depends(require_authenticated_user),
):
    return await notification_service.mark_notification_read(
        context.db, context.user_id, notification_id
    )
