"""
Error types and HTTP error handlers for the API Workspace.

Structural no-ops in the workspace engine (moving a folder into itself,
pasting an empty clipboard, ...) are reported through return values and
never raise. The exceptions below belong to the outer layers: HTTP routes,
format converters and request execution. Every error response has the same
``{"detail": ..., "error_code": ...}`` body.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

from .schemas.execute import ExecutionError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    detail: str
    error_code: str | None = None


class APIException(Exception):
    """Base class for errors that are turned into JSON error responses."""

    def __init__(
        self,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str | None = None
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(detail)


class ResourceNotFoundError(APIException):
    """A project, tree item, environment or variable id that does not exist."""

    def __init__(self, resource_type: str, resource_id: Any):
        self.resource_type = resource_type
        super().__init__(
            detail=f"{resource_type} with id {resource_id} not found",
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="RESOURCE_NOT_FOUND"
        )


class BadRequestError(APIException):
    """A well-formed request the workspace refuses, e.g. deleting a project root."""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(detail, status.HTTP_400_BAD_REQUEST, error_code)


class InvalidImportError(BadRequestError):
    """
    A document that cannot be read by a format converter.

    Args:
        format_name: Name of the format, e.g. ``Postman`` or ``cURL``
        reason: Short description of what is wrong with the document
    """

    def __init__(self, format_name: str, reason: str):
        self.format_name = format_name
        self.reason = reason
        super().__init__(f"Invalid {format_name} import: {reason}", "INVALID_IMPORT")


class NetworkError(APIException):
    """The target server could not be reached or the exchange failed."""

    def __init__(self, detail: str):
        super().__init__(detail, status.HTTP_502_BAD_GATEWAY, "NETWORK_ERROR")


class ExecutionTimeoutError(APIException):
    def __init__(self, detail: str = "Request timed out"):
        super().__init__(detail, status.HTTP_504_GATEWAY_TIMEOUT, "TIMEOUT")


def execution_exception(result: ExecutionError) -> APIException:
    """Pick the API exception matching a failed send."""
    message = f"{result.error}: {result.details}" if result.details else result.error
    if result.error_type == "timeout":
        return ExecutionTimeoutError(message)
    if result.error_type == "network_error":
        return NetworkError(message)
    if result.error_type == "invalid_url":
        return BadRequestError(message, "INVALID_URL")
    return APIException(message, error_code="EXECUTION_ERROR")


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "error_code": exc.error_code}
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Flatten Pydantic validation errors into one ``loc: msg`` line per error."""
    messages = [
        f"{' -> '.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "; ".join(messages) or "Validation error", "error_code": "VALIDATION_ERROR"}
    )


async def sqlalchemy_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """The snapshot could not be written; the in-memory workspace is still intact."""
    logger.error("Saving the workspace failed while handling %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Workspace could not be saved", "error_code": "DATABASE_ERROR"}
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
