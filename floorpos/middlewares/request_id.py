import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

# Read by RequestIdFilter and the error envelope
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# Client ids end up in every JSON log line; keep them short and printable.
_SAFE_ID = re.compile(r"[A-Za-z0-9._:-]{1,64}")


def resolve_request_id(header: str | None) -> str:
    """Return ``header`` when it is a safe id, else a fresh uuid4."""

    if header and _SAFE_ID.fullmatch(header):
        return header
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id echoed back as ``X-Request-ID``."""

    async def dispatch(self, request: Request, call_next):
        req_id = resolve_request_id(request.headers.get("X-Request-ID"))
        token = request_id_ctx.set(req_id)
        request.state.request_id = req_id
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = req_id
        return response
