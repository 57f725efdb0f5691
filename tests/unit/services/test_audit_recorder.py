"""Tests for the audit recorder."""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from api.services.audit import record_audit
from database.models.audit import AuditLog


@pytest.mark.asyncio
async def test_row_joins_callers_unit_of_work(db, session_factory):
    user_id = uuid.uuid4()
    entity_id = uuid.uuid4()

    entry = record_audit(db, user_id, "SubmitForApproval", "Job", entity_id)

    assert entry in db.new
    await db.commit()
    async with session_factory() as check:
        stored = (await check.execute(select(AuditLog))).scalar_one()
    assert stored.user_id == user_id
    assert stored.action == "SubmitForApproval"
    assert stored.entity_name == "Job"
    assert stored.entity_id == entity_id
    assert stored.payload == {}


@pytest.mark.asyncio
async def test_rolled_back_with_caller(db, session_factory):
    record_audit(db, uuid.uuid4(), "CreateJob", "Job")
    await db.rollback()

    async with session_factory() as check:
        assert (await check.execute(select(func.count(AuditLog.id)))).scalar() == 0


def test_payload_snapshot_redacts_and_stringifies():
    db = type("Session", (), {"add": lambda self, row: None})()
    deadline = datetime(2026, 1, 31, tzinfo=timezone.utc)

    entry = record_audit(
        db,
        None,
        "CreateJob",
        "Job",
        payload={
            "title": "Backend Engineer",
            "salary_range_min": Decimal("90000.00"),
            "application_deadline": deadline,
            "api_key": "k-123",
            "interview_stages": [{"stage_name": "Screen", "access_token": "t"}],
        },
    )

    assert entry.user_id is None
    assert entry.payload == {
        "title": "Backend Engineer",
        "salary_range_min": "90000.00",
        "application_deadline": str(deadline),
        "api_key": "[REDACTED]",
        "interview_stages": [{"stage_name": "Screen", "access_token": "[REDACTED]"}],
    }
