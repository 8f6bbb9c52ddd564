"""
cURL command import and export for single requests.
"""

import json
import logging
import shlex
from urllib.parse import parse_qsl, unquote_plus, urlencode

from ...exceptions import InvalidImportError
from ...schemas.request import (
    HTTP_METHODS,
    ApiRequest,
    BasicAuth,
    BearerAuth,
    Cookie,
    FormUrlEncodedBody,
    MultipartBody,
    MultipartField,
    RawBody,
    create_default_request,
)
from .common import cookies_to_header_value

logger = logging.getLogger(__name__)

_DATA_FLAGS = ("-d", "--data", "--data-raw", "--data-binary", "--data-ascii")


def _tokenize(command: str) -> list[str]:
    cleaned = command.replace("\\\r\n", " ").replace("\\\n", " ")
    try:
        return shlex.split(cleaned)
    except ValueError as exc:
        raise InvalidImportError("cURL", str(exc)) from exc


def _set_url(request: ApiRequest, token: str) -> None:
    url, _, query = token.partition("?")
    request.url = url
    request.query_params.update(parse_qsl(query, keep_blank_values=True))


def parse_curl(command: str) -> ApiRequest:
    """
    Parse a cURL command line into a request definition.

    Supported flags: -X/--request, --url, -H/--header, -d/--data and
    variants, -F/--form, -b/--cookie, -u/--user, -k/--insecure and
    -L/--location. Query parameters are moved from the URL into
    ``query_params``.

    Raises:
        InvalidImportError: If the command is not a cURL command or has no URL
    """
    tokens = _tokenize(command or "")
    if not tokens or tokens[0] != "curl":
        raise InvalidImportError("cURL", "command must start with 'curl'")

    request = create_default_request()
    method = None
    data: list[str] = []
    form_fields: list[MultipartField] = []

    args = iter(tokens[1:])
    for token in args:
        if token in ("-X", "--request"):
            method = next(args, "GET").upper()
        elif token == "--url":
            _set_url(request, next(args, ""))
        elif token in ("-H", "--header"):
            key, sep, value = next(args, "").partition(":")
            if sep and key.strip():
                request.headers[key.strip()] = value.strip()
        elif token in _DATA_FLAGS:
            data.append(next(args, ""))
        elif token in ("-F", "--form"):
            name, _, value = next(args, "").partition("=")
            if value.startswith("@"):
                form_fields.append(MultipartField(name=name, kind="file", filename=value[1:]))
            else:
                form_fields.append(MultipartField(name=name, value=value))
        elif token in ("-b", "--cookie"):
            for pair in next(args, "").split(";"):
                name, _, value = pair.strip().partition("=")
                if name:
                    request.cookies.append(Cookie(name=name, value=value, path="/"))
        elif token in ("-u", "--user"):
            username, _, password = next(args, "").partition(":")
            request.auth = BasicAuth(username=username, password=password)
        elif token in ("-k", "--insecure"):
            request.verify_ssl = False
        elif token in ("-L", "--location"):
            request.follow_redirects = True
        elif not token.startswith("-") and not request.url:
            _set_url(request, token)

    if not request.url:
        raise InvalidImportError("cURL", "no URL found")

    content_type = next((v for k, v in request.headers.items() if k.lower() == "content-type"), "")
    if data:
        payload = "&".join(data)
        if "application/x-www-form-urlencoded" in content_type.lower():
            request.body = FormUrlEncodedBody(fields={
                unquote_plus(k): unquote_plus(v)
                for k, _, v in (pair.partition("=") for pair in payload.split("&"))
                if k
            })
        elif "application/json" in content_type.lower():
            try:
                content = json.dumps(json.loads(payload), indent=2)
            except json.JSONDecodeError:
                content = payload
            request.body = RawBody(content=content, content_type="application/json")
        else:
            request.body = RawBody(content=payload, content_type=content_type or None)
    elif form_fields:
        request.body = MultipartBody(fields=form_fields)

    if method is not None:
        request.method = method if method in HTTP_METHODS else "GET"
    elif data or form_fields:
        request.method = "POST"
    return request


def _quote(value: str) -> str:
    return "'" + value.replace("'", "'\\''") + "'"


def generate_curl(request: ApiRequest) -> str:
    """Render a request definition as a multi-line cURL command."""
    url = request.url
    if request.query_params:
        url += ("&" if "?" in url else "?") + urlencode(request.query_params)

    parts = ["curl", "--request", request.method, "--url", _quote(url)]
    has_content_type = any(k.lower() == "content-type" for k in request.headers)
    for key, value in request.headers.items():
        if value:
            parts += ["--header", _quote(f"{key}: {value}")]

    auth = request.auth
    if isinstance(auth, BasicAuth):
        parts += ["--user", _quote(f"{auth.username}:{auth.password}")]
    elif isinstance(auth, BearerAuth) and auth.token:
        parts += ["--header", _quote(f"Authorization: Bearer {auth.token}")]

    if request.cookies:
        parts += ["--cookie", _quote(cookies_to_header_value(request.cookies))]

    body = request.body
    if isinstance(body, RawBody):
        if body.content_type and not has_content_type:
            parts += ["--header", _quote(f"Content-Type: {body.content_type}")]
        parts += ["--data", _quote(body.content)]
    elif isinstance(body, FormUrlEncodedBody):
        if not has_content_type:
            parts += ["--header", _quote("Content-Type: application/x-www-form-urlencoded")]
        parts += ["--data", _quote(urlencode({k: v for k, v in body.fields.items() if v}))]
    elif isinstance(body, MultipartBody):
        for field in body.fields:
            if field.kind == "file":
                parts += ["--form", _quote(f"{field.name}=@{field.filename or 'file'}")]
            else:
                parts += ["--form", _quote(f"{field.name}={field.value}")]

    if not request.verify_ssl:
        parts.append("--insecure")
    if request.follow_redirects:
        parts.append("--location")

    return " \\\n  ".join(parts)
