"""
Pydantic schemas for request definitions.

A request definition is everything needed to send one HTTP request:
method, URL, headers, query parameters, cookies, a body variant, an
authorization variant and transport settings.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from ..config import DEFAULT_TIMEOUT_MS


# HTTP methods supported by the system
HttpMethod = Literal["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE", "CONNECT"]

HTTP_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS", "TRACE", "CONNECT")


class Cookie(BaseModel):
    """A cookie attached to an outgoing request or received in a response."""
    name: str
    value: str = ""
    domain: str | None = None
    path: str | None = None
    expires: str | None = None
    http_only: bool | None = None
    secure: bool | None = None


class ProxyConfig(BaseModel):
    url: str
    username: str | None = None
    password: str | None = None


# Body variants

class NoBody(BaseModel):
    type: Literal["none"] = "none"


class RawBody(BaseModel):
    """Text body sent verbatim, e.g. JSON or XML."""
    type: Literal["raw"] = "raw"
    content: str = ""
    content_type: str | None = None


class FormUrlEncodedBody(BaseModel):
    type: Literal["form_urlencoded"] = "form_urlencoded"
    fields: dict[str, str] = {}


class MultipartField(BaseModel):
    """
    One part of a multipart body.

    Text parts carry their content in ``value``; file parts only keep the
    file name and content type since file contents are not stored in the
    workspace.
    """
    name: str
    kind: Literal["text", "file"] = "text"
    value: str = ""
    filename: str | None = None
    content_type: str | None = None


class MultipartBody(BaseModel):
    type: Literal["multipart"] = "multipart"
    fields: list[MultipartField] = []


class BinaryBody(BaseModel):
    type: Literal["binary"] = "binary"
    data_base64: str = ""
    filename: str | None = None


RequestBody = Annotated[
    Union[NoBody, RawBody, FormUrlEncodedBody, MultipartBody, BinaryBody],
    Field(discriminator="type"),
]


# Authorization variants

class NoAuth(BaseModel):
    type: Literal["none"] = "none"


class BasicAuth(BaseModel):
    type: Literal["basic"] = "basic"
    username: str = ""
    password: str = ""


class BearerAuth(BaseModel):
    type: Literal["bearer"] = "bearer"
    token: str = ""


class ApiKeyAuth(BaseModel):
    """API key sent either as a header or as a query parameter."""
    type: Literal["api_key"] = "api_key"
    key: str = ""
    value: str = ""
    add_to: Literal["header", "query"] = "header"


RequestAuth = Annotated[
    Union[NoAuth, BasicAuth, BearerAuth, ApiKeyAuth],
    Field(discriminator="type"),
]


class ApiRequest(BaseModel):
    """
    Complete definition of an HTTP request.

    Attributes:
        method: HTTP method
        url: Target URL, may contain variable placeholders like {{variable}}
        headers: Key-value pairs for HTTP headers
        query_params: Key-value pairs for URL query parameters
        cookies: Cookies sent with the request
        body: Body variant
        auth: Authorization variant
        timeout_ms: Request timeout, None for no timeout
        follow_redirects: Whether redirects are followed
        max_redirects: Upper bound on followed redirects
        verify_ssl: Whether TLS certificates are verified
        proxy: Optional proxy configuration
        protocol: Preferred transport, None lets the executor decide
    """
    method: HttpMethod = "GET"
    url: str = ""
    headers: dict[str, str] = {}
    query_params: dict[str, str] = {}
    cookies: list[Cookie] = []
    body: RequestBody = Field(default_factory=NoBody)
    auth: RequestAuth = Field(default_factory=NoAuth)
    timeout_ms: int | None = DEFAULT_TIMEOUT_MS
    follow_redirects: bool = True
    max_redirects: int = 10
    verify_ssl: bool = True
    proxy: ProxyConfig | None = None
    protocol: Literal["tcp", "quic"] | None = None


def create_default_request(url: str = "", method: str = "GET") -> ApiRequest:
    """Build a request definition with default settings."""
    return ApiRequest(method=method, url=url)
