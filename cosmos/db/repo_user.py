"""User repository and principal lookup."""

from dataclasses import dataclass
from datetime import UTC, datetime

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from cosmos.crypto.password import check_password, hash_password
from cosmos.db.models_user import RoleEntity, UserEntity
from cosmos.db.repo_role import DefaultRole, get_role
from cosmos.tokens.claims import Principal


class UserExistsError(Exception):
    """A user with the given email address is already registered."""


class NoDefaultRoleError(Exception):
    """No role is flagged as the default for new users."""


@dataclass(frozen=True)
class UserById:
    id: int


@dataclass(frozen=True)
class UserByEmail:
    email: str


UserLookup = UserById | UserByEmail


class NewUserData(BaseModel):
    """Parameters for registering a user."""

    email: str
    password: str
    name: str | None = None


async def get_user(session: AsyncSession, lookup: UserLookup) -> UserEntity | None:
    """Fetch a user with its role and the role's permissions."""
    stmt = (
        select(UserEntity)
        .options(selectinload(UserEntity.role).selectinload(RoleEntity.permissions))
        .execution_options(populate_existing=True)
    )
    match lookup:
        case UserById(id=user_id):
            stmt = stmt.where(UserEntity.id == user_id)
        case UserByEmail(email=email):
            stmt = stmt.where(UserEntity.email == email.lower())
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


def to_principal(user: UserEntity) -> Principal:
    """Snapshot of ``user`` for token issuance; needs the role eager loaded."""
    role = user.role
    return Principal(
        id=user.id,
        name=user.name or "",
        email=user.email,
        role=role.title if role else "",
        permissions=[perm.title for perm in role.permissions] if role else [],
    )


async def load_principal(session: AsyncSession, lookup: UserLookup) -> Principal | None:
    """Principal for the user matching ``lookup``, if any."""
    user = await get_user(session, lookup)
    if user is None:
        return None
    return to_principal(user)


async def create_user(session: AsyncSession, data: NewUserData) -> UserEntity:
    """Register a user with the default role."""
    if await get_user(session, UserByEmail(data.email)) is not None:
        raise UserExistsError(data.email)

    role = await get_role(session, DefaultRole())
    if role is None:
        raise NoDefaultRoleError("could not get default role")

    user = UserEntity(
        name=data.name,
        email=data.email.lower(),
        password=hash_password(data.password),
        role_id=role.id,
    )
    session.add(user)
    await session.flush()

    created = await get_user(session, UserById(user.id))
    assert created is not None
    return created


async def verify_credentials(
    session: AsyncSession, email: str, password: str
) -> UserEntity | None:
    """Authenticate a user by email and password."""
    user = await get_user(session, UserByEmail(email))
    if user is None:
        return None
    matched, rehashed = check_password(password, user.password)
    if not matched:
        return None
    if rehashed is not None:
        user.password = rehashed
    return user


async def record_login(session: AsyncSession, user: UserEntity) -> None:
    """Update the last login timestamp."""
    user.last_login = datetime.now(UTC)
    await session.flush()
