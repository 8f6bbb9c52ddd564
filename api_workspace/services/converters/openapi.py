"""
OpenAPI 3 import and export.

Operations are grouped into folders by their first tag; a tag such as
``users/admin`` produces nested folders. JSON request-body examples become
raw JSON bodies, and the first server becomes the project base URL.
"""

import json
import logging
import re
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

from ...exceptions import InvalidImportError
from ...schemas.project import Folder, ImportedProject, Project, RequestFile
from ...schemas.request import RawBody, create_default_request
from ..identity import new_id
from .common import new_folder, walk_requests

logger = logging.getLogger(__name__)

OPENAPI_VERSION = "3.0.3"

OPERATION_METHODS = ("get", "post", "put", "patch", "delete", "head", "options")

_HAS_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*://")


def _get_or_create_folder(parent: Folder, name: str) -> Folder:
    for child in parent.children:
        if isinstance(child, Folder) and child.name == name:
            return child
    folder = new_folder(name)
    parent.children.append(folder)
    return folder


def _server_url(servers: Any) -> Optional[str]:
    if isinstance(servers, list) and servers and isinstance(servers[0], dict):
        url = servers[0].get("url")
        return url if isinstance(url, str) and url else None
    return None


def _parse_operation(path: str, method: str, operation: dict, shared_parameters: list) -> RequestFile:
    query_params: dict[str, str] = {}
    headers: dict[str, str] = {}
    for param in [*shared_parameters, *(operation.get("parameters") or [])]:
        if not isinstance(param, dict) or not param.get("name"):
            continue
        example = (param.get("schema") or {}).get("example", param.get("example", ""))
        value = "" if example is None else str(example)
        if param.get("in") == "query":
            query_params[param["name"]] = value
        elif param.get("in") == "header":
            headers[param["name"]] = value

    url = path
    op_server = _server_url(operation.get("servers"))
    if op_server:
        url = op_server.rstrip("/") + (path if path.startswith("/") else "/" + path)

    request = create_default_request(url, method.upper())
    request.headers = headers
    request.query_params = query_params

    json_content = ((operation.get("requestBody") or {}).get("content") or {}).get("application/json") or {}
    if "example" in json_content:
        request.body = RawBody(
            content=json.dumps(json_content["example"], indent=2),
            content_type="application/json",
        )

    return RequestFile(
        id=new_id(),
        name=operation.get("summary") or operation.get("operationId") or f"{method.upper()} {path}",
        description=operation.get("description"),
        request=request,
    )


def parse_openapi(data: Any) -> ImportedProject:
    """
    Parse an OpenAPI 3 document (already decoded from JSON or YAML).

    Raises:
        InvalidImportError: If the document has no ``paths`` mapping
    """
    if not isinstance(data, dict) or not isinstance(data.get("paths"), dict):
        raise InvalidImportError("OpenAPI", "missing paths")

    root = new_folder("Root")
    for path, path_item in data["paths"].items():
        if not isinstance(path_item, dict):
            continue
        shared_parameters = path_item.get("parameters") or []
        for method, operation in path_item.items():
            if method.lower() not in OPERATION_METHODS or not isinstance(operation, dict):
                continue
            node = _parse_operation(path, method, operation, shared_parameters)

            target = root
            tags = operation.get("tags")
            if isinstance(tags, list) and tags and isinstance(tags[0], str):
                for part in tags[0].split("/"):
                    if part.strip():
                        target = _get_or_create_folder(target, part.strip())
            target.children.append(node)

    info = data.get("info") if isinstance(data.get("info"), dict) else {}
    logger.info("Parsed OpenAPI document %r", info.get("title"))
    return ImportedProject(
        name=info.get("title") or "Imported API",
        description=info.get("description"),
        base_url=_server_url(data.get("servers")),
        root=root,
    )


# Export

def _split_url(url: str, raw_base: str, resolved_base: str) -> tuple[str, Optional[str]]:
    """Return the path key for ``url`` and the server it needs, if any."""
    relative = None
    if url.startswith("/"):
        relative = url
    elif raw_base and url.startswith(raw_base):
        relative = url[len(raw_base):]
    elif resolved_base and url.startswith(resolved_base):
        relative = url[len(resolved_base):]

    if relative is not None:
        return relative if relative.startswith("/") else "/" + relative, None

    if _HAS_SCHEME.match(url) and "{{" not in url.split("://", 1)[1].split("/", 1)[0]:
        parts = urlsplit(url)
        path_key = parts.path or "/"
        if parts.query:
            path_key += "?" + parts.query
        return path_key, f"{parts.scheme}://{parts.netloc}"

    origin, slash, rest = url.partition("/")
    return ("/" + rest) if slash else "/", origin


def generate_openapi(project: Project, resolver: Callable[[str], str] | None = None) -> dict:
    """
    Export a project as an OpenAPI 3.0.3 document.

    Args:
        project: Project to export
        resolver: Optional placeholder resolver applied to the base URL and
            to example values
    """
    resolve = resolver or (lambda text: text)
    raw_base = project.base_url or ""
    resolved_base = resolve(raw_base) if raw_base else ""

    paths: dict[str, dict[str, Any]] = {}
    for node, folders in walk_requests(project.root):
        request = node.request
        path_key, server = _split_url(request.url or "/", raw_base, resolved_base)

        parameters = [
            {"name": key, "in": "query", "schema": {"type": "string", "example": resolve(value or "")}}
            for key, value in request.query_params.items()
        ] + [
            {"name": key, "in": "header", "schema": {"type": "string", "example": resolve(value or "")}}
            for key, value in request.headers.items()
        ]

        operation: dict[str, Any] = {
            "summary": node.name,
            "operationId": re.sub(r"\s+", "_", node.name).lower(),
            "responses": {"200": {"description": "Successful response"}},
        }
        if node.description:
            operation["description"] = node.description
        if folders:
            operation["tags"] = ["/".join(folders)]
        if parameters:
            operation["parameters"] = parameters
        if server:
            operation["servers"] = [{"url": server}]

        body = request.body
        if isinstance(body, RawBody) and body.content_type and "json" in body.content_type:
            try:
                example = json.loads(resolve(body.content))
            except json.JSONDecodeError:
                logger.debug("Skipping non-JSON body of %r in OpenAPI export", node.name)
            else:
                operation["requestBody"] = {"content": {"application/json": {"example": example}}}

        paths.setdefault(path_key, {})[request.method.lower()] = operation

    document: dict[str, Any] = {
        "openapi": OPENAPI_VERSION,
        "info": {"title": project.name, "version": "1.0.0"},
        "paths": paths,
    }
    if resolved_base:
        document["servers"] = [{"url": resolved_base}]
    return document
