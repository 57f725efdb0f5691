"""Notification and dashboard API schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.schemas.jobs import JobSummaryResponse


class NotificationResponse(BaseModel):
    id: UUID
    type: str
    title: str
    message: str
    entity_name: Optional[str] = None
    entity_id: Optional[UUID] = None
    is_read: bool
    read_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MarkAllReadResponse(BaseModel):
    updated: int = Field(ge=0)


class DashboardSummary(BaseModel):
    total_jobs: int
    active_jobs: int
    pending_approvals: int


class DashboardResponse(BaseModel):
    summary: DashboardSummary
    can_approve: bool
    approval_queue: list[JobSummaryResponse]
    notifications: list[NotificationResponse]
    unread_count: int
