"""Tests for role lookups."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from cosmos.db.models_user import RoleEntity
from cosmos.db.repo_role import DefaultRole, RoleById, RoleByTitle, create_role, get_role


class TestGetRole:
    """Tests for get_role."""

    @pytest.mark.asyncio
    async def test_default(
        self, db_session: AsyncSession, roles: dict[str, RoleEntity]
    ) -> None:
        role = await get_role(db_session, DefaultRole())
        assert role is not None
        assert role.title == "Player"

    @pytest.mark.asyncio
    async def test_by_title(
        self, db_session: AsyncSession, roles: dict[str, RoleEntity]
    ) -> None:
        role = await get_role(db_session, RoleByTitle("Admin"))
        assert role is not None
        assert [perm.title for perm in role.permissions] == [
            "games:read",
            "games:create",
            "users:read",
        ]

    @pytest.mark.asyncio
    async def test_by_id(
        self, db_session: AsyncSession, roles: dict[str, RoleEntity]
    ) -> None:
        role = await get_role(db_session, RoleById(roles["Admin"].id))
        assert role is not None
        assert role.title == "Admin"

    @pytest.mark.asyncio
    async def test_missing(self, db_session: AsyncSession) -> None:
        assert await get_role(db_session, DefaultRole()) is None
        assert await get_role(db_session, RoleByTitle("Nobody")) is None


class TestCreateRole:
    """Tests for create_role."""

    @pytest.mark.asyncio
    async def test_reuses_permissions(
        self, db_session: AsyncSession, roles: dict[str, RoleEntity]
    ) -> None:
        role = await create_role(db_session, "Spectator", ["games:read"])
        assert role.permissions[0].id == roles["Player"].permissions[0].id
        assert not role.is_default
