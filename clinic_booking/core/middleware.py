"""
Request logging middleware.

Every request gets an id, either the caller's ``X-Request-ID`` (when it looks
like an id) or a fresh one, which is echoed back with the processing time.
Log lines name the matched route template, e.g.
``PATCH /api/v1/appointments/{appointment_id}/cancel``, so requests for
different appointments group together, and carry the authenticated user id
once the auth dependency has resolved it.
"""
import logging
import re
import time
import uuid
from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware

# Set up logging
logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def _request_id(request: Request) -> str:
    incoming = request.headers.get(REQUEST_ID_HEADER)
    if incoming and REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return uuid.uuid4().hex


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    return f"{request.method} {path}"


def _user_label(request: Request) -> str:
    user_id = getattr(request.state, "user_id", None)
    return f"user {user_id}" if user_id is not None else "anonymous"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and tags the response with its id and duration."""

    async def dispatch(self, request: Request, call_next):
        request_id = _request_id(request)
        request.state.request_id = request_id
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] {_route_label(request)} failed for {_user_label(request)} "
                f"after {time.perf_counter() - start:.4f}s: {str(e)}"
            )
            raise

        duration = time.perf_counter() - start
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Process-Time"] = f"{duration:.4f}"

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            f"[{request_id}] {_route_label(request)} -> {response.status_code} "
            f"for {_user_label(request)} in {duration:.4f}s"
        )
        return response


def setup_middlewares(app: FastAPI) -> None:
    app.add_middleware(RequestLoggingMiddleware)
