"""
Jobs Module

Job requisitions, their interview stage configuration, and the two
append-only ledgers written by the approval workflow: status history and
approval actions.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum, IntEnum
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.utils.datetime import now
from database.engine import Base


# ==================== Job Enums ===================== #
class JobStatus(IntEnum):
    """Requisition lifecycle status, stored as its integer code."""

    DRAFT = 1
    PENDING_APPROVAL = 2
    ACTIVE = 3
    CLOSED = 4

    def can_transition_to(self, new: "JobStatus") -> bool:
        return new in JOB_STATUS_TRANSITIONS.get(self, set())

    @property
    def label(self) -> str:
        return self.name.title().replace("_", "")


JOB_STATUS_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.DRAFT: {JobStatus.PENDING_APPROVAL, JobStatus.CLOSED},
    JobStatus.PENDING_APPROVAL: {JobStatus.ACTIVE, JobStatus.DRAFT, JobStatus.CLOSED},
    JobStatus.ACTIVE: {JobStatus.CLOSED},
    JobStatus.CLOSED: set(),
}


class LocationType(IntEnum):
    REMOTE = 1
    ON_SITE = 2
    HYBRID = 3


class EmploymentType(IntEnum):
    FULL_TIME = 1
    PART_TIME = 2
    CONTRACT = 3
    INTERNSHIP = 4


class ExperienceLevel(IntEnum):
    JUNIOR = 1
    MID = 2
    SENIOR = 3
    LEAD = 4


class ApprovalActionType(str, PyEnum):
    """Named actions recorded in the approval ledger."""

    SUBMIT_FOR_APPROVAL = "SubmitForApproval"
    APPROVE = "Approve"
    REJECT = "Reject"


class IntEnumType(TypeDecorator):
    """Persist an IntEnum as a plain integer and load it back as the enum."""

    impl = Integer
    cache_ok = True

    def __init__(self, enum_cls: type[IntEnum], *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.enum_cls = enum_cls

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return int(self.enum_cls(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return self.enum_cls(value)


# ==================== Models ===================== #
class Job(Base):
    """
    A requisition.

    ``version`` is the optimistic concurrency token: every UPDATE is issued
    with ``WHERE version = <loaded version>`` and fails with StaleDataError
    when a competing transaction already moved the row.
    """

    __tablename__ = "jobs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str] = mapped_column(String(200), nullable=False)
    skills_csv: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Compensation
    salary_range_min: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=0
    )
    salary_range_max: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, default=0
    )
    is_salary_negotiable: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    # Placement
    location_type: Mapped[LocationType] = mapped_column(
        IntEnumType(LocationType), nullable=False, default=LocationType.ON_SITE
    )
    location_text: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    employment_type: Mapped[EmploymentType] = mapped_column(
        IntEnumType(EmploymentType), nullable=False, default=EmploymentType.FULL_TIME
    )
    experience_level: Mapped[ExperienceLevel] = mapped_column(
        IntEnumType(ExperienceLevel), nullable=False, default=ExperienceLevel.MID
    )

    job_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    vacancy_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Description: HTML plus structured editor JSON twin
    description_html: Mapped[str] = mapped_column(Text, nullable=False, default="")
    requirements_html: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description_json: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )
    requirements_json: Mapped[dict[str, Any]] = mapped_column(
        JSON, nullable=False, default=dict
    )

    application_deadline: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True)
    )

    # Workflow
    status: Mapped[JobStatus] = mapped_column(
        IntEnumType(JobStatus), nullable=False, default=JobStatus.DRAFT, index=True
    )
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_by_user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now,
        onupdate=now,
        server_default=func.now(),
    )

    stages: Mapped[list["JobStageConfig"]] = relationship(
        back_populates="job",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="JobStageConfig.stage_order",
    )

    __mapper_args__ = {"version_id_col": version}


class JobStageConfig(Base):
    """Interview stage configured for a job."""

    __tablename__ = "job_stage_configs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    stage_name: Mapped[str] = mapped_column(String(100), nullable=False)
    stage_order: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    job: Mapped[Job] = relationship(back_populates="stages")


class JobStatusHistory(Base):
    """Append-only ledger: one row per status transition."""

    __tablename__ = "job_status_histories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    from_status: Mapped[JobStatus] = mapped_column(IntEnumType(JobStatus), nullable=False)
    to_status: Mapped[JobStatus] = mapped_column(IntEnumType(JobStatus), nullable=False)
    # Job.version the transition was applied to; orders a job's history
    job_version: Mapped[int] = mapped_column(Integer, nullable=False)
    changed_by_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("job_id", "job_version", name="uq_job_status_history_job_version"),
        Index("idx_job_status_history_job_created", "job_id", "created_at"),
    )


class JobApprovalAction(Base):
    """Append-only ledger of approval actions (who submitted, who decided)."""

    __tablename__ = "job_approval_actions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    job_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    action_by_user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now, server_default=func.now()
    )

    __table_args__ = (Index("idx_job_approval_action_job_action", "job_id", "action"),)
