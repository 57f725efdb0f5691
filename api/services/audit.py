"""Audit recorder: append-only log of mutating actions."""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from core.middleware.logging import is_sensitive_field
from database.models.audit import AuditLog

logger = logging.getLogger(__name__)


def _snapshot(value: Any) -> Any:
    """JSON-safe copy of a payload with sensitive keys redacted."""
    if isinstance(value, dict):
        return {
            str(k): "[REDACTED]" if is_sensitive_field(str(k)) else _snapshot(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple, set)):
        return [_snapshot(v) for v in value]
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


def record_audit(
    db: AsyncSession,
    user_id: Optional[UUID],
    action: str,
    entity_name: str,
    entity_id: Optional[UUID] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Add one audit row to the current unit of work.

    The row commits or rolls back together with the caller's other writes.

    Args:
        db: Database session
        user_id: Acting user, None for anonymous actions
        action: Action name, e.g. "SubmitForApproval"
        entity_name: Entity type, e.g. "Job"
        entity_id: Entity id, if any
        payload: JSON snapshot of the action's input

    Returns:
        The pending AuditLog row
    """
    entry = AuditLog(
        user_id=user_id,
        action=action,
        entity_name=entity_name,
        entity_id=entity_id,
        payload=_snapshot(payload or {}),
    )
    db.add(entry)
    logger.debug(f"Audit {action} on {entity_name} {entity_id} by {user_id}")
    return entry
