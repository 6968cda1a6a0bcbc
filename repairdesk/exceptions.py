"""
RFC 7807 Problem Details errors for the RepairDesk API.

Every error leaves the API as application/problem+json with a machine code
(`RES_001`, `VAL_005`, ...) and the request's correlation id as `trace_id`,
so a shop owner's bug report can be matched to the server log line.

See: https://datatracker.ietf.org/doc/html/rfc7807
"""

from http import HTTPStatus
from typing import Optional, Dict, Any, List
from enum import Enum
from pydantic import BaseModel
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging
import uuid

from repairdesk.middleware.correlation import get_request_id
from repairdesk.timeutils import utcnow

logger = logging.getLogger(__name__)

PROBLEM_TYPE_BASE = "https://repairdesk.local/problems"


class ErrorCode(str, Enum):
    """Machine-readable error codes, grouped by prefix."""

    # Auth
    UNAUTHORIZED = "AUTH_001"
    FORBIDDEN = "AUTH_002"

    # Validation
    VALIDATION_ERROR = "VAL_001"
    MISSING_FIELD = "VAL_003"
    INVALID_TRANSITION = "VAL_005"

    # Resources
    NOT_FOUND = "RES_001"
    ALREADY_EXISTS = "RES_002"
    CONFLICT = "RES_003"

    # Downstream
    EXTERNAL_SERVICE_ERROR = "EXT_001"
    DATABASE_ERROR = "EXT_004"
    EMAIL_ERROR = "EXT_007"

    # Server
    INTERNAL_ERROR = "SRV_001"
    SERVICE_UNAVAILABLE = "SRV_002"


# Code used when a plain HTTPException (e.g. a 405 from the router) is rendered
STATUS_CODES = {
    400: ErrorCode.VALIDATION_ERROR,
    401: ErrorCode.UNAUTHORIZED,
    403: ErrorCode.FORBIDDEN,
    404: ErrorCode.NOT_FOUND,
    409: ErrorCode.CONFLICT,
    422: ErrorCode.VALIDATION_ERROR,
    502: ErrorCode.EXTERNAL_SERVICE_ERROR,
    503: ErrorCode.SERVICE_UNAVAILABLE,
}


def current_trace_id() -> str:
    request_id = get_request_id()
    if request_id and request_id != "unknown":
        return request_id
    return uuid.uuid4().hex[:12]


def status_title(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Error"


class ProblemDetail(BaseModel):
    """Body of every error response."""

    type: str = "about:blank"
    title: str
    status: int
    detail: str
    instance: Optional[str] = None
    code: str
    timestamp: str
    trace_id: str
    errors: Optional[List[Dict[str, Any]]] = None

    @classmethod
    def build(
        cls,
        status_code: int,
        code: ErrorCode,
        detail: str,
        instance: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        trace_id: Optional[str] = None,
        title: Optional[str] = None,
    ) -> "ProblemDetail":
        return cls(
            type=f"{PROBLEM_TYPE_BASE}/{code.value.lower().replace('_', '-')}",
            title=title or status_title(status_code),
            status=status_code,
            detail=detail,
            instance=instance,
            code=code.value,
            timestamp=utcnow().isoformat() + "Z",
            trace_id=trace_id or current_trace_id(),
            errors=errors,
        )


class ShopException(HTTPException):
    """
    Base API error. Raise a subclass from routes or the service layer;
    the registered handler renders it as problem+json.
    """

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        detail: str,
        title: Optional[str] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.code = code
        self.title = title
        self.errors = errors
        self.trace_id = current_trace_id()
        super().__init__(status_code=status_code, detail=detail, headers=headers)

    def to_problem_detail(self, instance: Optional[str] = None) -> ProblemDetail:
        return ProblemDetail.build(
            self.status_code,
            self.code,
            self.detail,
            instance=instance,
            errors=self.errors,
            trace_id=self.trace_id,
            title=self.title,
        )


class NotFoundError(ShopException):
    """Resource not found (404)."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(404, ErrorCode.NOT_FOUND, f"{resource} with ID {resource_id} was not found")


class ValidationError(ShopException):
    """Missing or invalid input rejected by business validation (400)."""

    def __init__(
        self,
        detail: str,
        errors: Optional[List[Dict[str, Any]]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(400, code, detail, errors=errors)


class MissingFieldsError(ValidationError):
    """One or more required fields were absent."""

    def __init__(self, fields: List[str]):
        self.fields = fields
        super().__init__(
            detail=f"Missing required fields: {', '.join(fields)}",
            errors=[{"field": f, "message": "Field required", "type": "missing"} for f in fields],
            code=ErrorCode.MISSING_FIELD,
        )


class InvalidTransitionError(ValidationError):
    """Status change not allowed by the service workflow."""

    def __init__(self, current: str, requested: str, allowed: List[str]):
        self.current = current
        self.requested = requested
        self.allowed = allowed
        allowed_text = ", ".join(allowed) if allowed else "none (terminal status)"
        super().__init__(
            detail=f"Cannot change status from {current} to {requested}. Allowed: {allowed_text}",
            code=ErrorCode.INVALID_TRANSITION,
        )


class UnauthorizedError(ShopException):
    def __init__(self, detail: str = "Authentication required"):
        super().__init__(401, ErrorCode.UNAUTHORIZED, detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(ShopException):
    def __init__(self, detail: str = "Permission denied"):
        super().__init__(403, ErrorCode.FORBIDDEN, detail)


class ConflictError(ShopException):
    def __init__(self, detail: str):
        super().__init__(409, ErrorCode.CONFLICT, detail)


class PersistenceError(ShopException):
    """Database write failed (500). Never retried by the API."""

    def __init__(self, detail: str = "Database operation failed"):
        super().__init__(500, ErrorCode.DATABASE_ERROR, detail)


class ExternalServiceError(ShopException):
    """A downstream provider (email) failed (502)."""

    def __init__(self, service: str, detail: str, code: ErrorCode = ErrorCode.EXTERNAL_SERVICE_ERROR):
        super().__init__(502, code, f"{service} service error: {detail}")


def create_problem_response(
    request: Request,
    problem: ProblemDetail,
    allowed_origins: Optional[List[str]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """Render a ProblemDetail, echoing CORS headers for allowed origins."""
    response = JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
        headers=headers,
    )
    # Responses built by exception handlers skip CORSMiddleware
    origin = request.headers.get("origin", "")
    if allowed_origins and origin in allowed_origins:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"
    return response


def create_exception_handlers(allowed_origins: List[str]):
    """
    Build the handlers registered in main.py, keyed by "shop", "http",
    "validation" and "generic".
    """

    async def handle_shop_exception(request: Request, exc: ShopException) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"{exc.code.value} {request.method} {request.url.path}: {exc.detail}",
            extra={"trace_id": exc.trace_id, "status_code": exc.status_code},
        )
        problem = exc.to_problem_detail(instance=request.url.path)
        return create_problem_response(request, problem, allowed_origins, headers=exc.headers)

    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        problem = ProblemDetail.build(
            exc.status_code,
            STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR),
            str(exc.detail),
            instance=request.url.path,
        )
        return create_problem_response(request, problem, allowed_origins, headers=getattr(exc, "headers", None))

    async def handle_validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        problem = ProblemDetail.build(
            422,
            ErrorCode.VALIDATION_ERROR,
            "Request validation failed",
            instance=request.url.path,
            errors=errors,
        )
        return create_problem_response(request, problem, allowed_origins)

    async def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
        trace_id = current_trace_id()
        logger.exception(
            f"Unhandled exception on {request.method} {request.url.path}",
            extra={"trace_id": trace_id},
        )

        from repairdesk.config import settings

        # Internal details only leave the server in DEBUG
        detail = str(exc) if settings.DEBUG else "An unexpected error occurred"
        problem = ProblemDetail.build(
            500, ErrorCode.INTERNAL_ERROR, detail, instance=request.url.path, trace_id=trace_id
        )
        return create_problem_response(request, problem, allowed_origins)

    return {
        "shop": handle_shop_exception,
        "http": handle_http_exception,
        "validation": handle_validation_exception,
        "generic": handle_generic_exception,
    }
