"""
Request tracing ids.

X-Correlation-ID ties together the requests of one front-end session;
X-Request-ID identifies a single call. Both are taken from the request when
present, otherwise generated, echoed on the response, and exposed through
context variables so log lines and problem responses can carry them.
"""

import uuid
import logging
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"
REQUEST_HEADER = "X-Request-ID"

correlation_id_ctx: ContextVar[str] = ContextVar("correlation_id", default="")
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")


def generate_id() -> str:
    return uuid.uuid4().hex[:12]


def get_correlation_id() -> str:
    return correlation_id_ctx.get() or "unknown"


def get_request_id() -> str:
    return request_id_ctx.get() or "unknown"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        ids = {
            CORRELATION_HEADER: request.headers.get(CORRELATION_HEADER) or generate_id(),
            REQUEST_HEADER: request.headers.get(REQUEST_HEADER) or generate_id(),
        }
        correlation_id_ctx.set(ids[CORRELATION_HEADER])
        request_id_ctx.set(ids[REQUEST_HEADER])
        request.state.request_id = ids[REQUEST_HEADER]

        response = await call_next(request)
        response.headers.update(ids)
        return response


class CorrelationLogFilter(logging.Filter):
    """Adds `correlation_id` and `request_id` to every record ("unknown" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.request_id = get_request_id()
        return True
