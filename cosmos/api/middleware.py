"""Request ID middleware for correlated logging."""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id to structlog's contextvars and echo it back."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


class MaintenanceMiddleware(BaseHTTPMiddleware):
    """Answer 503 for everything but the status route while in maintenance."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path == "/v1/status":
            return await call_next(request)
        return JSONResponse(
            {"success": False, "error": "the server is in maintenance mode"},
            status_code=503,
        )
