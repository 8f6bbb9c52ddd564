"""
Postman Collection v2.1 import and export.

Collection variables become an ``Imported Variables`` environment on import;
on export the variables of the active environment are written back as
collection variables. ``Cookie`` headers are turned into request cookies
and back.
"""

import logging
from typing import Any
from urllib.parse import parse_qsl

from ...exceptions import InvalidImportError
from ...schemas.environment import Environment, EnvironmentVariable
from ...schemas.project import Folder, ImportedProject, Project, RequestFile
from ...schemas.request import (
    ApiKeyAuth,
    ApiRequest,
    BasicAuth,
    BearerAuth,
    BinaryBody,
    FormUrlEncodedBody,
    MultipartBody,
    MultipartField,
    NoAuth,
    NoBody,
    RawBody,
    create_default_request,
)
from ..environment_manager import active_environment
from ..identity import new_id
from .common import as_text, cookies_to_header_value, new_folder, normalize_method, split_headers

logger = logging.getLogger(__name__)

SCHEMA_URL = "https://schema.getpostman.com/json/collection/v2.1.0/collection.json"

# Raw body language <-> content type
_LANGUAGE_CONTENT_TYPES = {
    "json": "application/json",
    "xml": "application/xml",
    "html": "text/html",
    "javascript": "application/javascript",
}


def _is_item_group(item: dict) -> bool:
    return isinstance(item.get("item"), list)


def _auth_attributes(raw: Any) -> dict[str, str]:
    # v2.1 uses a list of {key, value}; v2.0 used a plain mapping
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items()}
    if isinstance(raw, list):
        return {
            str(entry.get("key")): str(entry.get("value") or "")
            for entry in raw
            if isinstance(entry, dict) and entry.get("key")
        }
    return {}


def parse_auth(auth: Any):
    if not isinstance(auth, dict):
        return NoAuth()
    auth_type = auth.get("type")
    attrs = _auth_attributes(auth.get(auth_type))

    if auth_type == "bearer":
        return BearerAuth(token=attrs.get("token", ""))
    if auth_type == "basic":
        return BasicAuth(username=attrs.get("username", ""), password=attrs.get("password", ""))
    if auth_type == "apikey":
        return ApiKeyAuth(
            key=attrs.get("key", ""),
            value=attrs.get("value", ""),
            add_to="query" if attrs.get("in") == "query" else "header",
        )
    return NoAuth()


def _parse_body(body: Any):
    if not isinstance(body, dict) or body.get("disabled"):
        return NoBody()

    mode = body.get("mode")
    if mode == "raw" and body.get("raw") is not None:
        language = ((body.get("options") or {}).get("raw") or {}).get("language")
        return RawBody(
            content=str(body["raw"]),
            content_type=_LANGUAGE_CONTENT_TYPES.get(language, "text/plain"),
        )
    if mode == "urlencoded" and isinstance(body.get("urlencoded"), list):
        fields = {
            f["key"]: f.get("value") or ""
            for f in body["urlencoded"]
            if isinstance(f, dict) and f.get("key") and not f.get("disabled")
        }
        return FormUrlEncodedBody(fields=fields)
    if mode == "formdata" and isinstance(body.get("formdata"), list):
        fields = []
        for f in body["formdata"]:
            if not isinstance(f, dict) or f.get("disabled") or not f.get("key"):
                continue
            if f.get("type") == "file":
                src = f.get("src")
                fields.append(MultipartField(
                    name=f["key"],
                    kind="file",
                    filename=src if isinstance(src, str) and src else f["key"],
                    content_type=f.get("contentType"),
                ))
            else:
                fields.append(MultipartField(name=f["key"], value=f.get("value") or ""))
        return MultipartBody(fields=fields)
    if mode == "file":
        src = (body.get("file") or {}).get("src")
        return BinaryBody(filename=src if isinstance(src, str) else None)
    return NoBody()


def _parse_url(url: Any) -> tuple[str, dict[str, str]]:
    if not url:
        return "", {}
    if isinstance(url, str):
        base, _, query = url.partition("?")
        return base, dict(parse_qsl(query, keep_blank_values=True))
    if not isinstance(url, dict):
        return "", {}

    query_params = {
        q["key"]: q.get("value") or ""
        for q in url.get("query") or []
        if isinstance(q, dict) and q.get("key") and not q.get("disabled")
    }
    return str(url.get("raw") or "").split("?")[0], query_params


def _parse_request_item(item: dict) -> RequestFile:
    req = item.get("request") or {}
    if isinstance(req, str):
        req = {"url": req}

    url, query_params = _parse_url(req.get("url"))
    raw_headers = req.get("header") if isinstance(req.get("header"), list) else []
    headers, cookies = split_headers(
        (h.get("key", ""), h.get("value") or "")
        for h in raw_headers
        if isinstance(h, dict) and not h.get("disabled")
    )

    request = create_default_request(url, normalize_method(req.get("method")))
    request.headers = headers
    request.query_params = query_params
    request.cookies = cookies
    request.body = _parse_body(req.get("body"))
    request.auth = parse_auth(req.get("auth"))

    return RequestFile(
        id=new_id(),
        name=str(item.get("name") or "Untitled Request"),
        description=as_text(item.get("description")) or as_text(req.get("description")),
        request=request,
    )


def _parse_items(items: list) -> list:
    children = []
    for item in items:
        if not isinstance(item, dict):
            continue
        if _is_item_group(item):
            children.append(new_folder(str(item.get("name") or "Folder"), _parse_items(item["item"])))
        else:
            children.append(_parse_request_item(item))
    return children


def parse_postman(data: Any) -> ImportedProject:
    """
    Parse a Postman collection.

    Raises:
        InvalidImportError: If the document is not a Postman collection
    """
    if not isinstance(data, dict) or not isinstance(data.get("info"), dict) or not isinstance(data.get("item"), list):
        raise InvalidImportError("Postman", "missing info or item")

    root = new_folder("Root", _parse_items(data["item"]))

    environments = []
    variables = [
        EnvironmentVariable(
            id=new_id(),
            key=str(v["key"]),
            value="" if v.get("value") is None else str(v.get("value")),
            enabled=not v.get("disabled", False),
        )
        for v in data.get("variable") or []
        if isinstance(v, dict) and v.get("key")
    ]
    if variables:
        environments.append(Environment(id=new_id(), name="Imported Variables", variables=variables))

    collection_auth = parse_auth(data.get("auth"))
    info = data["info"]
    logger.info("Parsed Postman collection %r", info.get("name"))
    return ImportedProject(
        name=info.get("name") or "Imported Collection",
        description=as_text(info.get("description")),
        authorization=None if isinstance(collection_auth, NoAuth) else collection_auth,
        root=root,
        environments=environments,
        active_environment_id=environments[0].id if environments else None,
    )


# Export

def _url_to_postman(url: str, query_params: dict[str, str]) -> dict:
    base, _, existing = url.partition("?")
    query = []
    for pair in filter(None, existing.split("&")):
        key, _, value = pair.partition("=")
        query.append({"key": key, "value": value})
    for key, value in query_params.items():
        if not any(q["key"] == key for q in query):
            query.append({"key": key, "value": value or ""})

    raw = base
    if query:
        raw += "?" + "&".join(f"{q['key']}={q['value']}" for q in query)

    result: dict[str, Any] = {"raw": raw}
    scheme, sep, rest = base.partition("://")
    if sep and scheme:
        host_port, _, path = rest.partition("/")
        host, _, port = host_port.partition(":")
        result["protocol"] = scheme
        result["host"] = host.split(".")
        if port:
            result["port"] = port
        segments = [segment for segment in path.split("/") if segment]
        if segments:
            result["path"] = segments
    if query:
        result["query"] = query
    return result


def auth_to_postman(auth) -> dict | None:
    if isinstance(auth, BearerAuth):
        return {"type": "bearer", "bearer": [{"key": "token", "value": auth.token, "type": "string"}]}
    if isinstance(auth, BasicAuth):
        return {
            "type": "basic",
            "basic": [
                {"key": "username", "value": auth.username, "type": "string"},
                {"key": "password", "value": auth.password, "type": "string"},
            ],
        }
    if isinstance(auth, ApiKeyAuth):
        return {
            "type": "apikey",
            "apikey": [
                {"key": "key", "value": auth.key, "type": "string"},
                {"key": "value", "value": auth.value, "type": "string"},
                {"key": "in", "value": auth.add_to, "type": "string"},
            ],
        }
    return None


def _body_to_postman(body) -> dict | None:
    if isinstance(body, RawBody):
        content_type = body.content_type or "text/plain"
        language = next(
            (lang for lang in ("json", "xml", "html", "javascript") if lang in content_type),
            "text",
        )
        return {"mode": "raw", "raw": body.content, "options": {"raw": {"language": language}}}
    if isinstance(body, FormUrlEncodedBody):
        return {
            "mode": "urlencoded",
            "urlencoded": [{"key": k, "value": v or ""} for k, v in body.fields.items()],
        }
    if isinstance(body, MultipartBody):
        formdata = []
        for field in body.fields:
            if field.kind == "file":
                formdata.append({"key": field.name, "type": "file", "src": field.filename})
            else:
                formdata.append({"key": field.name, "value": field.value, "type": "text"})
        return {"mode": "formdata", "formdata": formdata}
    if isinstance(body, BinaryBody):
        return {"mode": "file", "file": {"src": body.filename}}
    return None


def _request_to_postman(node: RequestFile) -> dict:
    request: ApiRequest = node.request
    headers = [{"key": k, "value": v or ""} for k, v in request.headers.items()]
    if request.cookies:
        headers.append({"key": "Cookie", "value": cookies_to_header_value(request.cookies)})

    postman_request: dict[str, Any] = {
        "method": request.method,
        "header": headers,
        "url": _url_to_postman(request.url, request.query_params),
    }
    if node.description:
        postman_request["description"] = node.description
    body = _body_to_postman(request.body)
    if body is not None:
        postman_request["body"] = body
    auth = auth_to_postman(request.auth)
    if auth is not None:
        postman_request["auth"] = auth

    item: dict[str, Any] = {"name": node.name, "request": postman_request, "response": []}
    if node.description:
        item["description"] = node.description
    return item


def _children_to_postman(folder: Folder) -> list[dict]:
    items = []
    for child in folder.children:
        if isinstance(child, Folder):
            items.append({"name": child.name, "item": _children_to_postman(child)})
        else:
            items.append(_request_to_postman(child))
    return items


def generate_postman(project: Project) -> dict:
    """Export a project as a Postman v2.1 collection."""
    collection: dict[str, Any] = {
        "info": {
            "name": project.name,
            "_postman_id": new_id(),
            "schema": SCHEMA_URL,
        },
        "item": _children_to_postman(project.root),
    }
    if project.description:
        collection["info"]["description"] = project.description

    env = active_environment(project)
    if env is not None and env.variables:
        collection["variable"] = [
            {"key": v.key, "value": v.value, "type": "string", "disabled": not v.enabled}
            for v in env.variables
        ]
    auth = auth_to_postman(project.authorization)
    if auth is not None:
        collection["auth"] = auth
    return collection
