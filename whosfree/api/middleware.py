"""aiohttp middleware: request correlation ids and error-to-status mapping."""

import logging
import uuid
from collections.abc import Awaitable, Callable
from contextvars import ContextVar

from aiohttp import web

from whosfree.exceptions import (
    AuthenticationError,
    DataAccessError,
    GroupAccessError,
    ICSContentTooLargeError,
    ICSParseError,
    TimeParameterError,
    WhosFreeError,
)

logger = logging.getLogger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

# Context variable for storing request correlation ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Typed request storage key for the correlation ID
CORRELATION_ID_KEY = web.RequestKey("correlation_id", str)

# Most specific first; ICSContentTooLargeError subclasses ICSParseError
_ERROR_STATUS: tuple[tuple[type[WhosFreeError], int], ...] = (
    (AuthenticationError, 401),
    (GroupAccessError, 403),
    (ICSContentTooLargeError, 413),
    (ICSParseError, 400),
    (TimeParameterError, 400),
    (DataAccessError, 500),
)

_PUBLIC_MESSAGES = {
    401: "Unauthorized",
    403: "Forbidden",
}


@web.middleware
async def correlation_id_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Extract or generate a correlation ID and echo it in X-Request-ID."""
    correlation_id = (
        request.headers.get("X-Request-ID")
        or request.headers.get("X-Correlation-ID")
        or str(uuid.uuid4())
    )
    request_id_var.set(correlation_id)
    request[CORRELATION_ID_KEY] = correlation_id

    response = await handler(request)
    response.headers["X-Request-ID"] = correlation_id
    return response


def status_for_error(error: WhosFreeError) -> int:
    for error_type, status in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Render WhosFreeError subclasses as JSON error responses."""
    try:
        return await handler(request)
    except WhosFreeError as e:
        status = status_for_error(e)
        message = _PUBLIC_MESSAGES.get(status, str(e))
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.path, e)
        else:
            logger.info("%s %s rejected (%d): %s", request.method, request.path, status, e)
        return web.json_response({"error": message}, status=status)


def get_request_id() -> str:
    """Current request correlation ID, or "no-request-id" outside a request."""
    request_id = request_id_var.get()
    return request_id if request_id else "no-request-id"
