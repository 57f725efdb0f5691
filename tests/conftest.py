"""Shared fixtures and utilities for tests."""

import os
import tempfile

# Settings are read at import time, so the environment must be in place
# before any application module is imported.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="talentdesk-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DB_DIR}/app.db"
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("JSON_LOGS", "false")
os.environ.setdefault("SEED_ON_STARTUP", "true")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key-min-32-chars-long-for-security")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "60")

import asyncio
from types import SimpleNamespace
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.schemas.jobs import JobUpsertRequest
from core.middleware.authorization import AuthorizationContext
from core.security import hash_password
import database.models  # noqa: F401
from database.engine import Base, build_engine
from database.models.users import User, UserRole
from database.seed import seed_database

# Every seeded person signs in with this password; hashed once per session
TEST_PASSWORD = "correct-horse-battery"
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


async def create_user(db: AsyncSession, roles: dict, email: str, *role_names: str) -> User:
    """Add a user holding the named seeded roles."""
    user = User(
        full_name=email.split("@")[0].title(), email=email, password_hash=TEST_PASSWORD_HASH
    )
    db.add(user)
    await db.flush()
    for name in role_names:
        db.add(UserRole(user_id=user.id, role_id=roles[name].id))
    await db.flush()
    return user


async def seed_people(db: AsyncSession) -> SimpleNamespace:
    """
    Seed roles plus one user per role of interest.

    approver / second_approver hold Jobs.Approve (Admin, HRHead);
    submitter is a HiringManager (create, edit, submit);
    recruiter can create and edit but not submit or approve;
    outsider has no roles at all.
    """
    roles = await seed_database(db)
    people = SimpleNamespace(
        approver=await create_user(db, roles, "approver@example.com", "Admin"),
        second_approver=await create_user(db, roles, "hrhead@example.com", "HRHead"),
        submitter=await create_user(db, roles, "manager@example.com", "HiringManager"),
        recruiter=await create_user(db, roles, "recruiter@example.com", "Recruiter"),
        outsider=await create_user(db, roles, "outsider@example.com"),
    )
    await db.commit()
    return SimpleNamespace(**{name: user.id for name, user in vars(people).items()})


def build_job_request(**overrides) -> JobUpsertRequest:
    """A valid job payload; keyword arguments override fields."""
    data = {
        "title": "Backend Engineer",
        "department": "Engineering",
        "skills_csv": "python,sql",
        "salary_range_min": 90000,
        "salary_range_max": 120000,
        "location_text": "Berlin",
        "job_code": "ENG-001",
        "vacancy_count": 2,
        "description_html": "<p>Build services</p>",
        "interview_stages": [
            {"stage_name": "Screen", "stage_order": 1},
            {"stage_name": "Onsite", "stage_order": 2},
        ],
    }
    data.update(overrides)
    return JobUpsertRequest(**data)


@pytest.fixture
def job_request():
    """Factory for valid job payloads."""
    return build_job_request


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite engine with the full schema, one per test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def people(session_factory):
    async with session_factory() as session:
        return await seed_people(session)


@pytest.fixture
def as_user(db):
    """Build an AuthorizationContext for a user on the shared test session."""

    def build(user_id: UUID, session: AsyncSession = None) -> AuthorizationContext:
        return AuthorizationContext(db=session or db, user_id=user_id)

    return build


@pytest.fixture
def make_user(db):
    """Add and commit a user holding the named roles; returns the user id."""

    async def make(roles: dict, email: str, *role_names: str) -> UUID:
        user = await create_user(db, roles, email, *role_names)
        await db.commit()
        return user.id

    return make


@pytest.fixture
def api():
    """
    The real application against a freshly reset database.

    Yields a namespace with the TestClient, the seeded people and an
    ``auth(user_id)`` helper building bearer headers. Sync tests only.
    """
    from fastapi.testclient import TestClient

    from api.main import app
    from core.security import create_access_token
    from database.engine import AsyncSessionLocal, db_engine

    async def reset() -> SimpleNamespace:
        async with db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        async with AsyncSessionLocal() as session:
            return await seed_people(session)

    people = asyncio.run(reset())
    with TestClient(app) as client:
        yield SimpleNamespace(
            client=client,
            people=people,
            auth=lambda user_id: {"Authorization": f"Bearer {create_access_token(user_id)}"},
        )


@pytest.fixture
def password():
    """Plain-text password shared by every seeded person."""
    return TEST_PASSWORD
