"""Registration, login, logout and token renewal endpoints."""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from cosmos.api.deps import (
    AUTHENTICATION_FAILED,
    Auth,
    CurrentClaims,
    authenticate,
    authorize,
    check_pair,
)
from cosmos.api.schemas import (
    LoginReply,
    LoginRequest,
    ReauthenticateRequest,
    RegisterReply,
    RegisterRequest,
    Reply,
    UserReply,
)
from cosmos.api.transport import clear_auth_cookies, get_access_token, get_refresh_token
from cosmos.core.errors import AuthError, NoCredentialsError
from cosmos.db.engine import get_session
from cosmos.db.repo_user import (
    NewUserData,
    NoDefaultRoleError,
    UserById,
    UserExistsError,
    create_user,
    load_principal,
    record_login,
    to_principal,
    verify_credentials,
)
from cosmos.tokens.claims import Claims

logger = structlog.get_logger()

router = APIRouter(prefix="/v1", tags=["auth"])

DbSession = Annotated[AsyncSession, Depends(get_session)]


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, db: DbSession) -> RegisterReply:
    """POST /v1/register -- create a user with the default role."""
    try:
        user = await create_user(
            db,
            NewUserData(email=payload.email, password=payload.password, name=payload.name),
        )
    except UserExistsError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail="user already exists"
        ) from None
    except NoDefaultRoleError as exc:
        logger.error("auth.registration_failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="could not complete registration",
        ) from exc

    logger.info("auth.user_registered", user_id=user.id, email=user.email)
    return RegisterReply(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role.title if user.role else None,
    )


@router.post("/login")
async def login(
    payload: LoginRequest,
    response: Response,
    db: DbSession,
    auth: Auth,
) -> LoginReply:
    """POST /v1/login -- exchange email and password for a token pair."""
    user = await verify_credentials(db, payload.email, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail=AUTHENTICATION_FAILED
        )

    tokens = auth.issuer.create_tokens(to_principal(user))
    await record_login(db, user)

    auth.set_cookies(response, tokens)
    return LoginReply(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.post("/logout")
async def logout(response: Response, auth: Auth) -> Reply:
    """POST /v1/logout -- expire the token cookies."""
    clear_auth_cookies(response, auth.settings.cookie_domain)
    return Reply(success=True)


@router.post("/reauthenticate")
async def reauthenticate(
    request: Request,
    response: Response,
    db: DbSession,
    auth: Auth,
    payload: ReauthenticateRequest | None = None,
) -> LoginReply:
    """POST /v1/reauthenticate -- trade an active refresh token for a new pair.

    If an access token accompanies the request it must belong to the same
    login as the refresh token. The principal is reloaded so role changes
    take effect on renewal.
    """
    try:
        token = payload.refresh_token if payload and payload.refresh_token else None
        refresh = auth.verifier.verify_refresh(token or get_refresh_token(request))
        try:
            check_pair(auth.verifier.parse_access(get_access_token(request)), refresh)
        except NoCredentialsError:
            pass
        principal = await load_principal(db, UserById(refresh.subject_id))
    except AuthError as exc:
        logger.info("auth.reauthenticate_failed", reason=type(exc).__name__, error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=AUTHENTICATION_FAILED,
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc

    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=AUTHENTICATION_FAILED
        )

    tokens = auth.issuer.create_tokens(principal)
    auth.set_cookies(response, tokens)
    return LoginReply(access_token=tokens.access_token, refresh_token=tokens.refresh_token)


@router.get("/whoami")
async def whoami(claims: CurrentClaims) -> Claims:
    """GET /v1/whoami -- claims of the authenticated caller."""
    return claims


@router.get(
    "/users/{user_id}",
    dependencies=[Depends(authenticate), Depends(authorize("users:read"))],
)
async def get_user_detail(user_id: int, db: DbSession) -> UserReply:
    """GET /v1/users/{id} -- principal snapshot, requires users:read."""
    principal = await load_principal(db, UserById(user_id))
    if principal is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="user not found")
    return UserReply(
        id=principal.id,
        name=principal.name or None,
        email=principal.email,
        role=principal.role or None,
        permissions=principal.permissions,
    )
