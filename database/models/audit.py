import uuid
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from core.utils.datetime import now
from database.engine import Base


# ==================== Models ===================== #
class AuditLog(Base):
    """
    Complete audit trail for all system actions.

    Rows are only ever inserted. ``user_id`` is null for anonymous actions
    such as public applications.
    """

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Actor
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)

    # Action
    action: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    entity_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, index=True)

    # Details
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=now,
        server_default=func.now(),
        index=True,
    )
