"""Tests for the idempotent seed."""

import pytest
from sqlalchemy import func, select

from core.middleware.authorization import get_user_permissions
from core.security import verify_password
from database.models.users import Permission, Role, RolePermission, User, UserRole
from database.seed import ALL_CODES, DEFAULT_ROLE_GRANTS, seed_database


async def count(session, model):
    return (await session.execute(select(func.count()).select_from(model))).scalar()


@pytest.mark.asyncio
async def test_seed_creates_codes_and_roles(db):
    roles = await seed_database(db)

    assert set(roles) == set(DEFAULT_ROLE_GRANTS)
    assert await count(db, Permission) == len(ALL_CODES)
    assert await count(db, RolePermission) == sum(len(codes) for codes in DEFAULT_ROLE_GRANTS.values())
    assert await count(db, User) == 0


@pytest.mark.asyncio
async def test_seed_is_idempotent(db):
    await seed_database(db, admin_email="admin@example.com", admin_password="s3cret-pass")
    before = [await count(db, model) for model in (Permission, Role, RolePermission, User, UserRole)]

    await seed_database(db, admin_email="admin@example.com", admin_password="s3cret-pass")

    after = [await count(db, model) for model in (Permission, Role, RolePermission, User, UserRole)]
    assert after == before


@pytest.mark.asyncio
async def test_bootstrap_admin_holds_everything(db):
    await seed_database(db, admin_email="admin@example.com", admin_password="s3cret-pass")

    admin = (await db.execute(select(User).where(User.email == "admin@example.com"))).scalar_one()

    assert verify_password("s3cret-pass", admin.password_hash)
    assert await get_user_permissions(db, admin.id) == set(ALL_CODES)


def test_default_grants():
    assert "Jobs.Approve" in DEFAULT_ROLE_GRANTS["HRHead"]
    assert "Jobs.Approve" not in DEFAULT_ROLE_GRANTS["HiringManager"]
    assert "Jobs.SubmitForApproval" not in DEFAULT_ROLE_GRANTS["Recruiter"]
    assert set(DEFAULT_ROLE_GRANTS["Admin"]) == set(ALL_CODES)
