"""
HTTP execution service for sending HTTP requests.

This is the default execution collaborator of the workspace: it takes a
fully resolved request definition, sends it with httpx and turns the
outcome into either a ResponseSnapshot or an ExecutionError. Variable
substitution happens before this point, in the workspace send flow.
"""

import base64
import binascii
import json
import logging
import time
from typing import Any, Awaitable, Callable

import httpx

from ..schemas.execute import ExecutionError, RedirectEntry, ResponseSnapshot
from ..schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    BasicAuth,
    BearerAuth,
    BinaryBody,
    Cookie,
    FormUrlEncodedBody,
    MultipartBody,
    RawBody,
)

logger = logging.getLogger(__name__)

Executor = Callable[[ApiRequest], Awaitable[ResponseSnapshot | ExecutionError]]


def _has_header(headers: dict[str, str], name: str) -> bool:
    return any(key.lower() == name.lower() for key in headers)


def build_httpx_arguments(request: ApiRequest) -> dict[str, Any]:
    """
    Translate a request definition into keyword arguments for ``client.request``.

    Auth, cookies and the body variant are folded into headers, params and
    content the way the server expects them.
    """
    headers = dict(request.headers)
    params = dict(request.query_params)
    arguments: dict[str, Any] = {"method": request.method, "url": request.url}

    auth = request.auth
    if isinstance(auth, BasicAuth):
        arguments["auth"] = httpx.BasicAuth(auth.username, auth.password)
    elif isinstance(auth, BearerAuth) and not _has_header(headers, "Authorization"):
        headers["Authorization"] = f"Bearer {auth.token}"
    elif isinstance(auth, ApiKeyAuth) and auth.key:
        if auth.add_to == "query":
            params[auth.key] = auth.value
        else:
            headers[auth.key] = auth.value

    if request.cookies and not _has_header(headers, "Cookie"):
        headers["Cookie"] = "; ".join(f"{c.name}={c.value}" for c in request.cookies)

    body = request.body
    if isinstance(body, RawBody):
        arguments["content"] = body.content
        if body.content_type and not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = body.content_type
    elif isinstance(body, FormUrlEncodedBody):
        arguments["data"] = dict(body.fields)
    elif isinstance(body, MultipartBody):
        files = []
        for part in body.fields:
            if part.kind == "file":
                # File contents are not stored in the workspace; send an empty part
                files.append((part.name, (part.filename or part.name, b"", part.content_type)))
            else:
                files.append((part.name, (None, part.value)))
        arguments["files"] = files
    elif isinstance(body, BinaryBody):
        try:
            arguments["content"] = base64.b64decode(body.data_base64)
        except (binascii.Error, ValueError):
            arguments["content"] = b""
        if not _has_header(headers, "Content-Type"):
            headers["Content-Type"] = "application/octet-stream"

    arguments["headers"] = headers
    arguments["params"] = params or None
    return arguments


def build_client(request: ApiRequest) -> httpx.AsyncClient:
    """Create an AsyncClient configured with the request's transport settings."""
    timeout = request.timeout_ms / 1000 if request.timeout_ms else None
    proxy = None
    if request.proxy is not None:
        proxy_auth = None
        if request.proxy.username:
            proxy_auth = (request.proxy.username, request.proxy.password or "")
        proxy = httpx.Proxy(request.proxy.url, auth=proxy_auth)
    if request.protocol == "quic":
        logger.debug("HTTP/3 is not available; sending over TCP")

    return httpx.AsyncClient(
        timeout=timeout,
        follow_redirects=request.follow_redirects,
        max_redirects=request.max_redirects,
        verify=request.verify_ssl,
        proxy=proxy,
    )


def parse_json_body(body: str | None, content_type: str | None) -> Any | None:
    """
    Try to parse response body as JSON if content type indicates JSON.

    Args:
        body: Response body string
        content_type: Content-Type header value

    Returns:
        Parsed JSON object or None if not JSON or parsing fails
    """
    if not body or not content_type:
        return None

    if "json" in content_type.lower():
        try:
            return json.loads(body)
        except json.JSONDecodeError:
            return None

    return None


def to_snapshot(response: httpx.Response, response_time_ms: int) -> ResponseSnapshot:
    """Capture an httpx response as a ResponseSnapshot."""
    response_headers = dict(response.headers)
    response_body = response.text
    cookies = [
        Cookie(name=c.name, value=c.value or "", domain=c.domain or None, path=c.path or None, secure=c.secure)
        for c in response.cookies.jar
    ]

    return ResponseSnapshot(
        status_code=response.status_code,
        status_text=response.reason_phrase or "",
        headers=response_headers,
        cookies=cookies,
        body=response_body,
        body_json=parse_json_body(response_body, response_headers.get("content-type", "")),
        response_time_ms=response_time_ms,
        response_size=len(response.content),
        http_version=response.http_version,
        redirects=[RedirectEntry(url=str(r.url), status_code=r.status_code) for r in response.history],
    )


async def execute_request(request: ApiRequest) -> ResponseSnapshot | ExecutionError:
    """
    Execute an HTTP request and return the response.

    Args:
        request: The fully resolved request definition

    Returns:
        ResponseSnapshot on success, ExecutionError on failure
    """
    try:
        arguments = build_httpx_arguments(request)
        start_time = time.perf_counter()

        async with build_client(request) as client:
            response = await client.request(**arguments)

        response_time_ms = int((time.perf_counter() - start_time) * 1000)
        return to_snapshot(response, response_time_ms)

    except httpx.TimeoutException:
        return ExecutionError(
            error="Request timed out",
            error_type="timeout",
            details=f"Request exceeded {request.timeout_ms} ms timeout"
        )
    except httpx.ConnectError as e:
        return ExecutionError(
            error="Failed to connect to server",
            error_type="network_error",
            details=str(e)
        )
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
        return ExecutionError(
            error="Invalid URL",
            error_type="invalid_url",
            details=str(e)
        )
    except httpx.HTTPError as e:
        return ExecutionError(
            error="HTTP error occurred",
            error_type="network_error",
            details=str(e)
        )
    except Exception as e:
        logger.warning("Unexpected error executing %s %s: %s", request.method, request.url, e)
        return ExecutionError(
            error="An unexpected error occurred",
            error_type="unknown",
            details=str(e)
        )
