"""Job requisition API schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from database.models.jobs import (
    EmploymentType,
    ExperienceLevel,
    JobStatus,
    LocationType,
)


class InterviewStageInput(BaseModel):
    """One interview stage in a create/update request."""

    stage_name: str = Field(default="", max_length=100)
    stage_order: int = Field(default=0, description="Non-positive values use list position")
    is_active: bool = True


class JobUpsertRequest(BaseModel):
    """Schema for creating or updating a job."""

    title: str = Field(..., min_length=1, max_length=200)
    department: str = Field(..., min_length=1, max_length=200)
    skills_csv: str = Field(default="")
    salary_range_min: Decimal = Field(default=Decimal(0), ge=0)
    salary_range_max: Decimal = Field(default=Decimal(0), ge=0)
    is_salary_negotiable: bool = False
    location_type: LocationType = LocationType.ON_SITE
    location_text: str = Field(default="", max_length=255)
    employment_type: EmploymentType = EmploymentType.FULL_TIME
    experience_level: ExperienceLevel = ExperienceLevel.MID
    job_code: str = Field(..., min_length=1, max_length=50)
    vacancy_count: int = Field(default=1, gt=0)
    application_deadline: Optional[datetime] = None
    description_html: str = ""
    requirements_html: str = ""
    description_json: dict[str, Any] = Field(default_factory=dict)
    requirements_json: dict[str, Any] = Field(default_factory=dict)
    interview_stages: Optional[list[InterviewStageInput]] = None

    @field_validator("title", "department", "job_code", mode="before")
    @classmethod
    def strip_whitespace(cls, v: str) -> str:
        """Strip whitespace from required text fields."""
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def validate_salary_range(self) -> "JobUpsertRequest":
        if not self.is_salary_negotiable and self.salary_range_max < self.salary_range_min:
            raise ValueError("salary_range_max must be greater than or equal to salary_range_min")
        return self


class ApproveRejectRequest(BaseModel):
    """Optional decision reason for approve/reject."""

    reason: Optional[str] = Field(None, max_length=2000)


class JobStageResponse(BaseModel):
    stage_name: str
    stage_order: int
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class JobResponse(BaseModel):
    """Schema for job response."""

    id: UUID
    title: str
    department: str
    skills_csv: str
    salary_range_min: Decimal
    salary_range_max: Decimal
    is_salary_negotiable: bool
    location_type: LocationType
    location_text: str
    employment_type: EmploymentType
    experience_level: ExperienceLevel
    job_code: str
    vacancy_count: int
    application_deadline: Optional[datetime] = None
    description_html: str
    requirements_html: str
    description_json: dict[str, Any]
    requirements_json: dict[str, Any]
    status: JobStatus
    rejection_reason: Optional[str] = None
    version: int
    stages: list[JobStageResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class JobSummaryResponse(BaseModel):
    id: UUID
    title: str
    job_code: str
    department: str
    location_text: str
    status: JobStatus
    application_deadline: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class JobListParams(BaseModel):
    """Page selection for the job list; pages are 1-indexed."""

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class JobListResponse(BaseModel):
    items: list[JobSummaryResponse]
    total: int = Field(ge=0, description="Jobs matching the filter across all pages")
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def for_page(cls, jobs: list[Any], total: int, params: JobListParams) -> "JobListResponse":
        return cls(
            items=[JobSummaryResponse.model_validate(job) for job in jobs],
            total=total,
            page=params.page,
            page_size=params.page_size,
            total_pages=(total + params.page_size - 1) // params.page_size,
        )


class JobStatusHistoryResponse(BaseModel):
    id: UUID
    job_id: UUID
    from_status: JobStatus
    to_status: JobStatus
    job_version: int
    changed_by_user_id: UUID
    reason: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
