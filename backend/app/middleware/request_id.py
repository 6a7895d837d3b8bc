"""
ProfileBuilder Backend — Request ID Middleware
================================================

What:  Gives every request a correlation id and echoes it in X-Request-ID.
How:   A client-supplied X-Request-ID is reused when it looks sane; otherwise
       a short random id is generated. The id is published through a
       ContextVar so loggers and the request pipeline can read it without
       threading the request object through every call.
Who:   Applied to every request; error bodies carry the same id as
       `request_id` so users can quote it in bug reports.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own id.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client ids end up in log lines; keep them short and printable.
_CLIENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns request ids and exposes them on request.state and the response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "")
        rid = supplied if _CLIENT_ID_PATTERN.match(supplied) else new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)

        response.headers["X-Request-ID"] = rid
        return response
