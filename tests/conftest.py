"""Shared test fixtures for cosmos auth."""

from collections.abc import AsyncIterator
from datetime import UTC, datetime

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from cosmos.api.deps import AuthContext
from cosmos.core.app import create_app
from cosmos.core.settings import AppSettings, AuthSettings, DatabaseSettings, TokenSettings
from cosmos.crypto.keyring import KeyRing
from cosmos.crypto.keys import generate_rsa_keypair
from cosmos.crypto.password import hash_password
from cosmos.db.base import BaseEntity
from cosmos.db.engine import get_session
from cosmos.db.models_user import RoleEntity, UserEntity
from cosmos.db.repo_role import create_role
from cosmos.tokens.issuer import TokenIssuer
from cosmos.tokens.verifier import TokenVerifier
from tests.support import AUDIENCE, NEW_KID, OLD_KID, FakeClock, MakeUser


@pytest.fixture(autouse=True)
def _set_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep host environment out of the settings under test."""
    for name in ("COSMOS_AUTH_TOKEN_KEYS", "COSMOS_AUTH_AUDIENCE", "COSMOS_MAINTENANCE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def keyring() -> KeyRing:
    """A single in-memory signing key shared by the whole run."""
    return KeyRing.generate()


@pytest.fixture(scope="session")
def key_files(tmp_path_factory: pytest.TempPathFactory) -> dict[str, str]:
    """Two PEM key files; NEW_KID sorts after OLD_KID."""
    root = tmp_path_factory.mktemp("keys")
    paths = {}
    for kid in (OLD_KID, NEW_KID):
        path = root / f"{kid}.pem"
        path.write_text(generate_rsa_keypair(kid).private_key_pem)
        paths[kid] = str(path)
    return paths


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime.now(UTC).replace(microsecond=0))


@pytest.fixture
def auth_settings() -> AuthSettings:
    return AuthSettings(audience=AUDIENCE, cookie_domain="localhost")


@pytest.fixture
def token_settings(auth_settings: AuthSettings) -> TokenSettings:
    return auth_settings.token_settings()


@pytest.fixture
def issuer(keyring: KeyRing, token_settings: TokenSettings, clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(keyring, token_settings, clock=clock)


@pytest.fixture
def verifier(
    keyring: KeyRing, token_settings: TokenSettings, clock: FakeClock
) -> TokenVerifier:
    return TokenVerifier(keyring, token_settings, clock=clock)


@pytest.fixture
def auth(auth_settings: AuthSettings, keyring: KeyRing, clock: FakeClock) -> AuthContext:
    return AuthContext.build(auth_settings, keyring=keyring, clock=clock)


@pytest.fixture
async def db_session() -> AsyncIterator[AsyncSession]:
    """Create an in-memory SQLite async session for tests."""
    engine = create_async_engine("sqlite+aiosqlite://", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest.fixture
async def roles(db_session: AsyncSession) -> dict[str, RoleEntity]:
    """Default Player role and an Admin role."""
    player = await create_role(db_session, "Player", ["games:read"], is_default=True)
    admin = await create_role(
        db_session, "Admin", ["games:read", "games:create", "users:read"]
    )
    return {"Player": player, "Admin": admin}


@pytest.fixture
def make_user(db_session: AsyncSession) -> MakeUser:
    """Factory inserting a user with a given role directly into the session."""

    async def _make_user(
        role: RoleEntity,
        *,
        email: str = "franklin@benjamin.com",
        password: str = "supersecret",
        name: str = "Benjamin Franklin",
    ) -> UserEntity:
        user = UserEntity(
            name=name,
            email=email,
            password=hash_password(password),
            role_id=role.id,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest.fixture
async def client(db_session: AsyncSession, auth: AuthContext) -> AsyncIterator[AsyncClient]:
    """Create an httpx test client with DB session override."""
    app = create_app(
        AppSettings(),
        auth=auth,
        db=DatabaseSettings(url="sqlite+aiosqlite://"),
    )

    async def _override_session() -> AsyncIterator[AsyncSession]:
        try:
            yield db_session
            await db_session.commit()
        except Exception:
            await db_session.rollback()
            raise

    app.dependency_overrides[get_session] = _override_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
