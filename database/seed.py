"""
Idempotent seed data: permission codes, default roles and their grants,
and an optional bootstrap admin account.

Running the seed again only adds what is missing; existing grants are
never removed.
"""

import logging
from typing import Dict, Iterable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.middleware.authorization import Permission as PermissionCode
from core.middleware.authorization import permission_codes
from core.security import hash_password
from database.models.users import Permission, Role, RolePermission, User, UserRole

logger = logging.getLogger(__name__)

ALL_CODES = permission_codes(PermissionCode)


def _with_prefix(*prefixes: str) -> list[str]:
    return [code for code in ALL_CODES if code.startswith(prefixes)]


DEFAULT_ROLE_GRANTS: Dict[str, list[str]] = {
    "Admin": ALL_CODES,
    "HRHead": _with_prefix("Jobs.", "Candidates.", "Interviews.", "Analytics.", "Settings."),
    "HiringManager": [
        PermissionCode.JOBS_CREATE.value,
        PermissionCode.JOBS_EDIT.value,
        PermissionCode.JOBS_SUBMIT_FOR_APPROVAL.value,
        PermissionCode.CANDIDATES_VIEW.value,
        PermissionCode.INTERVIEWS_VIEW.value,
    ],
    "Recruiter": _with_prefix("Candidates.", "Interviews.")
    + [
        PermissionCode.JOBS_VIEW.value,
        PermissionCode.JOBS_CREATE.value,
        PermissionCode.JOBS_EDIT.value,
    ],
    "Interviewer": [
        PermissionCode.INTERVIEWS_VIEW.value,
        PermissionCode.INTERVIEWS_SUBMIT_SCORECARD.value,
    ],
}


async def seed_permissions(db: AsyncSession, codes: Iterable[str] = ALL_CODES) -> Dict[str, Permission]:
    existing = {
        p.code: p for p in (await db.execute(select(Permission))).scalars().all()
    }
    for code in codes:
        if code not in existing:
            existing[code] = Permission(code=code, description=code)
            db.add(existing[code])
    await db.flush()
    return existing


async def seed_roles(
    db: AsyncSession,
    permissions: Dict[str, Permission],
    grants: Dict[str, list[str]] = DEFAULT_ROLE_GRANTS,
) -> Dict[str, Role]:
    roles = {r.name: r for r in (await db.execute(select(Role))).scalars().all()}
    for name in grants:
        if name not in roles:
            roles[name] = Role(name=name)
            db.add(roles[name])
    await db.flush()

    granted = set(
        (await db.execute(select(RolePermission.role_id, RolePermission.permission_id))).all()
    )
    for name, codes in grants.items():
        role = roles[name]
        for code in codes:
            permission = permissions[code]
            if (role.id, permission.id) not in granted:
                db.add(RolePermission(role_id=role.id, permission_id=permission.id))
                granted.add((role.id, permission.id))
    await db.flush()
    return roles


async def seed_admin_user(
    db: AsyncSession,
    roles: Dict[str, Role],
    email: str,
    password: str,
    full_name: str = "Admin",
) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()
    if user is None:
        user = User(full_name=full_name, email=email, password_hash=hash_password(password))
        db.add(user)
        await db.flush()
        db.add(UserRole(user_id=user.id, role_id=roles["Admin"].id))
        await db.flush()
        logger.info(f"Created bootstrap admin {email}")
    return user


async def seed_database(
    db: AsyncSession,
    admin_email: Optional[str] = None,
    admin_password: Optional[str] = None,
) -> Dict[str, Role]:
    """Seed permissions, roles and (when credentials are given) the admin user, then commit."""
    try:
        permissions = await seed_permissions(db)
        roles = await seed_roles(db, permissions)
        if admin_email and admin_password:
            await seed_admin_user(db, roles, admin_email, admin_password)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(f"Seeded {len(permissions)} permissions and {len(roles)} roles")
    return roles
