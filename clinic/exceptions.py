import logging
from enum import Enum
from fastapi import HTTPException, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

# Malformed bodies on these routes are reported as 400 in the error envelope
BAD_REQUEST_ROUTES = {("POST", "/api/appointments")}


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FATAL = "fatal"


class SchedulingError(Exception):
    """Base class for expected, caller-recoverable scheduling failures."""

    kind: ErrorKind = ErrorKind.FATAL
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    kind = ErrorKind.VALIDATION
    status_code = 400


class NotFoundError(SchedulingError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class ConflictError(SchedulingError):
    kind = ErrorKind.CONFLICT
    status_code = 409


def create_error_response(error_message: str, status_code: int = 400) -> dict:
    """Create a standardized error response"""
    return {
        "success": False,
        "data": None,
        "error": error_message
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom exception handler for HTTPException"""
    # HTTPBearer answers a missing header with 403; report it as 401
    if exc.status_code == 403 and "Not authenticated" in str(exc.detail):
        return JSONResponse(
            status_code=401,
            content=create_error_response("Authentication required", 401)
        )

    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.detail, exc.status_code),
        headers=getattr(exc, "headers", None),
    )

async def scheduling_exception_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=create_error_response(exc.message, exc.status_code)
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    if (request.method, request.url.path.rstrip("/")) not in BAD_REQUEST_ROUTES:
        return await request_validation_exception_handler(request, exc)

    errors = exc.errors()
    message = "Invalid request body."
    if errors and errors[0].get("type") != "json_invalid":
        field = ".".join(str(loc) for loc in errors[0].get("loc", ()) if loc != "body")
        if field:
            message = f"Invalid {field}: {errors[0].get('msg')}"
    logger.warning(f"Validation error on {request.url.path}: {message}")
    return JSONResponse(status_code=400, content=create_error_response(message, 400))
