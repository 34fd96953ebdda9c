"""FastAPI application factory for the cosmos auth service."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

from cosmos.api.deps import AuthContext
from cosmos.api.middleware import MaintenanceMiddleware, RequestIdMiddleware
from cosmos.api.routes_auth import router as auth_router
from cosmos.api.routes_keys import VERSION
from cosmos.api.routes_keys import router as keys_router
from cosmos.api.schemas import Reply
from cosmos.core.logging import configure_logging
from cosmos.core.settings import AppSettings, AuthSettings, DatabaseSettings
from cosmos.db.engine import build_engine, create_session_factory

logger = structlog.get_logger()


async def _http_error(_request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, StarletteHTTPException)
    body = Reply(success=False, error=str(exc.detail))
    return JSONResponse(
        body.model_dump(),
        status_code=exc.status_code,
        headers=exc.headers,
    )


async def _validation_error(_request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, RequestValidationError)
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "could not parse request"
    body = Reply(success=False, error=message)
    return JSONResponse(body.model_dump(), status_code=400)


def create_app(
    settings: AppSettings | None = None,
    auth: AuthContext | None = None,
    db: DatabaseSettings | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Signing keys are loaded here, before the app is returned, so bad key
    configuration aborts startup with a ConfigError.
    """
    settings = settings or AppSettings()
    configure_logging(settings.log_level, settings.console_log)

    auth = auth or AuthContext.build(AuthSettings())
    engine = build_engine(db or DatabaseSettings())
    session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "cosmos.starting",
            version=VERSION,
            current_kid=auth.keyring.current_key_id,
            maintenance=settings.maintenance,
        )
        yield
        logger.info("cosmos.shutdown")
        await engine.dispose()

    app = FastAPI(
        title="Cosmos Auth",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.auth = auth
    app.state.session_factory = session_factory

    if settings.maintenance:
        app.add_middleware(MaintenanceMiddleware)

    origins = settings.get_cors_origin_list()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST"],
            allow_headers=["Authorization", "Content-Type", "X-CSRF-TOKEN"],
        )

    app.add_middleware(RequestIdMiddleware)

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)

    app.include_router(auth_router)
    app.include_router(keys_router)

    return app
