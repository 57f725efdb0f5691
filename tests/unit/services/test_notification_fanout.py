"""
Tests for notification fan-out and recipient-side notification operations.
"""

import uuid

import pytest
import pytest_asyncio
from sqlalchemy import func, select

from api.services.notifications import (
    get_approver_user_ids,
    get_submitter_user_ids,
    list_notifications,
    mark_all_notifications_read,
    mark_job_notifications_read,
    mark_notification_read,
    notify_approvers_job_created,
    notify_approvers_job_submitted,
    notify_submitters_outcome,
)
from core.exceptions import NotificationNotFoundError
from database.models.audit import AuditLog
from database.models.jobs import ApprovalActionType, Job, JobApprovalAction, JobStatus
from database.models.notifications import AppNotification


@pytest_asyncio.fixture
async def job(db, people):
    job = Job(
        title="Data Analyst",
        department="Finance",
        job_code="FIN-007",
        status=JobStatus.PENDING_APPROVAL,
        created_by_user_id=people.submitter,
    )
    db.add(job)
    await db.commit()
    return job


async def add_notification(db, user_id, job_id=None, is_read=False):
    notification = AppNotification(
        user_id=user_id,
        type="JobApproval",
        title="New job requires approval",
        message="...",
        entity_name="Job",
        entity_id=job_id,
        is_read=is_read,
    )
    db.add(notification)
    await db.commit()
    return notification


async def unread_for(session, user_id):
    result = await session.execute(
        select(func.count(AppNotification.id)).where(
            AppNotification.user_id == user_id,
            AppNotification.is_read.is_(False),
        )
    )
    return result.scalar()


class TestAudiences:
    @pytest.mark.asyncio
    async def test_approvers_are_approve_holders(self, db, people):
        approvers = await get_approver_user_ids(db)

        assert sorted(approvers) == sorted([people.approver, people.second_approver])

    @pytest.mark.asyncio
    async def test_submitters_are_distinct(self, db, people, job):
        for _ in range(2):
            db.add(
                JobApprovalAction(
                    job_id=job.id,
                    action=ApprovalActionType.SUBMIT_FOR_APPROVAL.value,
                    action_by_user_id=people.submitter,
                )
            )
        db.add(
            JobApprovalAction(
                job_id=job.id,
                action=ApprovalActionType.REJECT.value,
                action_by_user_id=people.approver,
            )
        )
        await db.commit()

        assert await get_submitter_user_ids(db, job.id) == [people.submitter]


class TestFanOut:
    @pytest.mark.asyncio
    async def test_created_message(self, db, people, job):
        notifications = await notify_approvers_job_created(db, job)
        await db.commit()

        assert len(notifications) == 2
        assert {n.user_id for n in notifications} == {people.approver, people.second_approver}
        first = notifications[0]
        assert first.type == "JobCreated"
        assert first.title == "New job draft created"
        assert first.message == "Data Analyst (FIN-007) has been created as draft."
        assert first.entity_name == "Job"
        assert first.entity_id == job.id
        assert first.is_read is False

    @pytest.mark.asyncio
    async def test_submitted_message(self, db, job):
        notifications = await notify_approvers_job_submitted(db, job)

        assert {n.message for n in notifications} == {"Data Analyst (FIN-007) is waiting for approval."}
        assert {n.type for n in notifications} == {"JobApproval"}

    @pytest.mark.asyncio
    async def test_fan_out_does_not_commit(self, db, session_factory, job):
        await notify_approvers_job_submitted(db, job)
        await db.rollback()

        async with session_factory() as other:
            total = (await other.execute(select(func.count(AppNotification.id)))).scalar()
        assert total == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reason,expected", [
        (None, "Data Analyst (FIN-007) has been approved."),
        ("   ", "Data Analyst (FIN-007) has been approved."),
        ("Budget ok", "Data Analyst (FIN-007) has been approved. Reason: Budget ok"),
    ])
    async def test_outcome_reason_suffix(self, db, people, job, reason, expected):
        db.add(
            JobApprovalAction(
                job_id=job.id,
                action=ApprovalActionType.SUBMIT_FOR_APPROVAL.value,
                action_by_user_id=people.submitter,
            )
        )
        await db.flush()

        notifications = await notify_submitters_outcome(db, job, "Approved", reason)

        assert len(notifications) == 1
        assert notifications[0].user_id == people.submitter
        assert notifications[0].title == "Job Approved"
        assert notifications[0].message == expected

    @pytest.mark.asyncio
    async def test_outcome_without_submitters_adds_nothing(self, db, job):
        assert await notify_submitters_outcome(db, job, "Rejected", "No") == []


class TestMarkRead:
    @pytest.mark.asyncio
    async def test_mark_read_is_idempotent(self, db, session_factory, people, job):
        notification = await add_notification(db, people.approver, job.id)

        async with session_factory() as first:
            await mark_notification_read(first, people.approver, notification.id)
        async with session_factory() as reload:
            read_at = (await reload.get(AppNotification, notification.id)).read_at

        async with session_factory() as second:
            again = await mark_notification_read(second, people.approver, notification.id)

        assert again.is_read is True
        assert again.read_at == read_at

    @pytest.mark.asyncio
    async def test_other_users_notification_is_not_found(self, db, people, job):
        notification = await add_notification(db, people.approver, job.id)

        with pytest.raises(NotificationNotFoundError):
            await mark_notification_read(db, people.second_approver, notification.id)

    @pytest.mark.asyncio
    async def test_unknown_notification(self, db, people):
        with pytest.raises(NotificationNotFoundError):
            await mark_notification_read(db, people.approver, uuid.uuid4())

    @pytest.mark.asyncio
    async def test_mark_all(self, db, session_factory, people, job):
        await add_notification(db, people.approver, job.id)
        await add_notification(db, people.approver, job.id)
        await add_notification(db, people.approver, job.id, is_read=True)
        await add_notification(db, people.second_approver, job.id)

        updated = await mark_all_notifications_read(db, people.approver)

        assert updated == 2
        async with session_factory() as check:
            assert await unread_for(check, people.approver) == 0
            assert await unread_for(check, people.second_approver) == 1
            audit = (await check.execute(select(AuditLog))).scalar_one()
        assert audit.action == "MarkAllNotificationsRead"
        assert audit.payload == {"updated": 2}

    @pytest.mark.asyncio
    async def test_mark_job_notifications_scoped_to_user_and_job(self, db, people, job):
        other_job_id = uuid.uuid4()
        await add_notification(db, people.approver, job.id)
        await add_notification(db, people.approver, other_job_id)
        await add_notification(db, people.second_approver, job.id)

        marked = await mark_job_notifications_read(db, people.approver, job.id)
        await db.commit()

        assert marked == 1
        assert await unread_for(db, people.approver) == 1
        assert await unread_for(db, people.second_approver) == 1


class TestListNotifications:
    @pytest.mark.asyncio
    async def test_only_own_and_limited(self, db, people, job):
        for _ in range(3):
            await add_notification(db, people.approver, job.id)
        await add_notification(db, people.second_approver, job.id)

        items = await list_notifications(db, people.approver, limit=2)

        assert len(items) == 2
        assert {n.user_id for n in items} == {people.approver}
