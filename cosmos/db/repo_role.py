"""Role lookups with permissions loaded eagerly."""

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cosmos.db.models_user import PermissionEntity, RoleEntity


@dataclass(frozen=True)
class RoleById:
    id: int


@dataclass(frozen=True)
class RoleByTitle:
    title: str


@dataclass(frozen=True)
class DefaultRole:
    """The role flagged ``is_default``, assigned to newly registered users."""


RoleLookup = RoleById | RoleByTitle | DefaultRole


async def get_role(session: AsyncSession, lookup: RoleLookup) -> RoleEntity | None:
    """Fetch a role and its permissions."""
    stmt = select(RoleEntity).options(selectinload(RoleEntity.permissions))
    match lookup:
        case RoleById(id=role_id):
            stmt = stmt.where(RoleEntity.id == role_id)
        case RoleByTitle(title=title):
            stmt = stmt.where(RoleEntity.title == title)
        case DefaultRole():
            stmt = stmt.where(RoleEntity.is_default.is_(True)).limit(1)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def create_role(
    session: AsyncSession,
    title: str,
    permissions: list[str],
    *,
    is_default: bool = False,
    description: str | None = None,
) -> RoleEntity:
    """Create a role, creating any permissions that do not exist yet."""
    existing = await session.execute(
        select(PermissionEntity).where(PermissionEntity.title.in_(permissions))
    )
    by_title = {perm.title: perm for perm in existing.scalars()}
    for title_ in permissions:
        if title_ not in by_title:
            by_title[title_] = PermissionEntity(title=title_)
            session.add(by_title[title_])

    role = RoleEntity(
        title=title,
        description=description,
        is_default=is_default,
        permissions=[by_title[p] for p in permissions],
    )
    session.add(role)
    await session.flush()
    return role
