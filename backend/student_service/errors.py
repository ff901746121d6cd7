"""
Error taxonomy for the student record service and its HTTP rendering.

The persistence layer raises the exceptions defined here. Route handlers
translate them into ``HTTPException`` with either a plain message or a
``{"message", "error"}`` detail, and the handlers registered by
``register_exception_handlers`` turn those into JSON error bodies:

    {"message": "...", "error": "..."}   # "error" only when detail is echoed
"""

import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from student_service.logging_config import get_logger, log_with_context

logger = get_logger("http")

NOT_FOUND_MESSAGE = "Student not found"
DUPLICATE_EMAIL_MESSAGE = "Student with this email already exists"
REQUIRED_FIELDS_MESSAGE = "All fields are required"
GENERIC_ERROR_MESSAGE = "Something went wrong!"


class StudentServiceError(Exception):
    """Base class for every error raised by the service."""


class StudentValidationError(StudentServiceError):
    """A field failed a write-time model rule (required, email format)."""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Student validation failed: {field}: {reason}")


class DuplicateEmailError(StudentServiceError):
    """Another record already owns the normalized email."""

    def __init__(self, email: str = None):
        self.email = email
        super().__init__(DUPLICATE_EMAIL_MESSAGE)


class StoreError(StudentServiceError):
    """Store failure not otherwise classified, including malformed identifiers."""


class StartupError(StudentServiceError):
    """The initial store connection could not be established."""


def error_body(message: str, error: str = None) -> dict:
    body = {"message": message}
    if error is not None:
        body["error"] = error
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        content = detail
    elif exc.status_code == 404 and detail == "Not Found":
        # Starlette's default detail for paths no route matched
        content = error_body("Route not found")
    else:
        content = error_body(str(detail))
    return JSONResponse(content, status_code=exc.status_code, headers=exc.headers)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        error_body("Invalid request body", str(exc.errors())),
        status_code=400,
    )


async def unexpected_exception_handler(request: Request, exc: Exception):
    log_with_context(logger, "ERROR",
        "Unhandled error on {} {}: {}".format(request.method, request.url.path, exc),
        extra_data={"traceback": "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__))})
    return JSONResponse(error_body(GENERIC_ERROR_MESSAGE), status_code=500)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_exception_handler)
