"""
Pydantic schemas for request execution.

Defines the snapshot attached to a request after a successful send and the
error returned when execution fails.
"""

from typing import Any, Literal

from pydantic import BaseModel

from .request import Cookie


class RedirectEntry(BaseModel):
    url: str
    status_code: int


class ResponseSnapshot(BaseModel):
    """
    Latest response received for a request.

    Contains all response details including status, headers, body,
    timing information, and any warnings from variable substitution.
    """
    status_code: int
    status_text: str
    headers: dict[str, str] = {}
    cookies: list[Cookie] = []
    body: str | None = None
    body_json: Any | None = None
    response_time_ms: int = 0
    response_size: int = 0
    http_version: str = "HTTP/1.1"
    redirects: list[RedirectEntry] = []
    warnings: list[str] = []


class ExecutionError(BaseModel):
    """Schema for execution error response."""
    error: str
    error_type: Literal["network_error", "timeout", "invalid_url", "unknown"]
    details: str | None = None
