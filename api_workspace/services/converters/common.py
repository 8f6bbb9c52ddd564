"""
Helpers shared by the format converters.
"""

import uuid
from typing import Any, Iterable

from ...schemas.project import Folder, RequestFile
from ...schemas.request import HTTP_METHODS, Cookie
from ..identity import new_id


def prefixed_id(prefix: str) -> str:
    """Id in the ``<prefix>_<24 hex chars>`` form some tools expect."""
    return f"{prefix}_{uuid.uuid4().hex[:24]}"


def new_folder(name: str, children: list | None = None) -> Folder:
    return Folder(id=new_id(), name=name, children=children or [], expanded=True)


def parse_cookie_header(value: str) -> list[Cookie]:
    """Split a ``Cookie`` header value into cookies."""
    cookies = []
    for part in value.split(";"):
        name, _, cookie_value = part.strip().partition("=")
        if name.strip():
            cookies.append(Cookie(name=name.strip(), value=cookie_value.strip()))
    return cookies


def cookies_to_header_value(cookies: Iterable[Cookie]) -> str:
    return "; ".join(f"{c.name}={c.value}" for c in cookies)


def split_headers(pairs: Iterable[tuple[str, str]]) -> tuple[dict[str, str], list[Cookie]]:
    """Separate ``Cookie`` headers from the others."""
    headers: dict[str, str] = {}
    cookies: list[Cookie] = []
    for key, value in pairs:
        if key.lower() == "cookie":
            cookies.extend(parse_cookie_header(value))
        elif key:
            headers[key] = value
    return headers, cookies


def as_text(value: Any) -> str | None:
    """Descriptions may be plain strings or ``{"content": ...}`` objects."""
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("content"), str):
        return value["content"]
    return None


def normalize_method(value: Any) -> str:
    method = str(value or "GET").upper()
    return method if method in HTTP_METHODS else "GET"


def walk_requests(folder: Folder, path: tuple[str, ...] = ()) -> Iterable[tuple[RequestFile, tuple[str, ...]]]:
    """Yield every request with the names of the folders above it (root excluded)."""
    for child in folder.children:
        if isinstance(child, Folder):
            yield from walk_requests(child, path + (child.name,))
        else:
            yield child, path
