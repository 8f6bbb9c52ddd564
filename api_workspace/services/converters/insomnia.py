"""
Insomnia export (format 4) import and export.

An Insomnia export is a flat list of resources linked by ``parentId``. The
workspace resource is the root; request groups are folders ordered by
``metaSortKey``. Sub-environments of the base environment become project
environments.
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from ...exceptions import InvalidImportError
from ...schemas.environment import Environment, EnvironmentVariable
from ...schemas.project import Folder, ImportedProject, Project, RequestFile
from ...schemas.request import (
    ApiKeyAuth,
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
from ..identity import new_id
from .common import cookies_to_header_value, new_folder, normalize_method, prefixed_id, split_headers

logger = logging.getLogger(__name__)

EXPORT_FORMAT = 4
EXPORT_SOURCE = "api-workspace"


def _parse_auth(auth: Any):
    if not isinstance(auth, dict) or auth.get("disabled"):
        return NoAuth()
    auth_type = auth.get("type")
    if auth_type == "bearer":
        return BearerAuth(token=auth.get("token") or "")
    if auth_type == "basic":
        return BasicAuth(username=auth.get("username") or "", password=auth.get("password") or "")
    if auth_type == "apikey":
        return ApiKeyAuth(
            key=auth.get("key") or "",
            value=auth.get("value") or "",
            add_to="query" if auth.get("addTo") == "queryParams" else "header",
        )
    return NoAuth()


def _parse_body(body: Any):
    if not isinstance(body, dict):
        return NoBody()
    text, params, file_name = body.get("text"), body.get("params"), body.get("fileName")
    if not text and not params and not file_name:
        return NoBody()

    mime_type = body.get("mimeType") or ""
    if params:
        active = [p for p in params if isinstance(p, dict) and p.get("name") and not p.get("disabled")]
        if "x-www-form-urlencoded" in mime_type:
            return FormUrlEncodedBody(fields={p["name"]: p.get("value") or "" for p in active})
        if "multipart/form-data" in mime_type:
            fields = []
            for p in active:
                if p.get("type") == "file":
                    fields.append(MultipartField(name=p["name"], kind="file", filename=p.get("fileName") or p["name"]))
                else:
                    fields.append(MultipartField(name=p["name"], value=p.get("value") or ""))
            return MultipartBody(fields=fields)

    if text is not None:
        return RawBody(content=str(text), content_type=mime_type or "text/plain")
    if file_name:
        return BinaryBody(filename=file_name)
    return NoBody()


def _parse_request(resource: dict) -> RequestFile:
    headers, cookies = split_headers(
        (h.get("name", ""), h.get("value") or "")
        for h in resource.get("headers") or []
        if isinstance(h, dict) and not h.get("disabled")
    )

    request = create_default_request(str(resource.get("url") or ""), normalize_method(resource.get("method")))
    request.headers = headers
    request.cookies = cookies
    request.query_params = {
        p["name"]: p.get("value") or ""
        for p in resource.get("parameters") or []
        if isinstance(p, dict) and p.get("name") and not p.get("disabled")
    }
    request.body = _parse_body(resource.get("body"))
    request.auth = _parse_auth(resource.get("authentication"))

    return RequestFile(
        id=new_id(),
        name=str(resource.get("name") or "Untitled Request"),
        description=resource.get("description") or None,
        request=request,
    )


def _sort_key(resource: dict) -> float:
    key = resource.get("metaSortKey")
    return key if isinstance(key, (int, float)) else 0


def parse_insomnia(data: Any) -> ImportedProject:
    """
    Parse an Insomnia export.

    Raises:
        InvalidImportError: If there is no resources list or no workspace
    """
    if not isinstance(data, dict) or not isinstance(data.get("resources"), list):
        raise InvalidImportError("Insomnia", "missing resources array")

    resources = [r for r in data["resources"] if isinstance(r, dict)]
    workspace = next((r for r in resources if r.get("_type") == "workspace"), None)
    if workspace is None:
        raise InvalidImportError("Insomnia", "no workspace found")

    children_of: dict[str, list[dict]] = defaultdict(list)
    for resource in resources:
        children_of[resource.get("parentId") or ""].append(resource)

    def build(parent_id: str, name: str, visiting: frozenset) -> Folder:
        # Guard against parentId loops in hand-edited exports
        visiting = visiting | {parent_id}
        children = []
        for child in sorted(children_of.get(parent_id, []), key=_sort_key):
            if child.get("_type") == "request_group" and child.get("_id") not in visiting:
                children.append(build(child["_id"], str(child.get("name") or "Folder"), visiting))
            elif child.get("_type") == "request":
                children.append(_parse_request(child))
        return new_folder(name, children)

    root = build(workspace.get("_id"), "Root", frozenset())

    environments = []
    base_env = next(
        (r for r in resources if r.get("_type") == "environment" and r.get("parentId") == workspace.get("_id")),
        None,
    )
    if base_env is not None:
        for env in resources:
            if env.get("_type") != "environment" or env.get("parentId") != base_env.get("_id"):
                continue
            variables = [
                EnvironmentVariable(id=new_id(), key=str(key), value=str(value), enabled=True)
                for key, value in (env.get("data") or {}).items()
            ]
            environments.append(Environment(id=new_id(), name=str(env.get("name") or "Environment"), variables=variables))

    logger.info("Parsed Insomnia workspace %r", workspace.get("name"))
    return ImportedProject(
        name=workspace.get("name") or "Imported Collection",
        description=workspace.get("description") or None,
        root=root,
        environments=environments,
        active_environment_id=environments[0].id if environments else None,
    )


# Export

def _auth_to_insomnia(auth) -> dict:
    if isinstance(auth, BearerAuth):
        return {"type": "bearer", "token": auth.token}
    if isinstance(auth, BasicAuth):
        return {"type": "basic", "username": auth.username, "password": auth.password}
    if isinstance(auth, ApiKeyAuth):
        return {
            "type": "apikey",
            "key": auth.key,
            "value": auth.value,
            "addTo": "header" if auth.add_to == "header" else "queryParams",
        }
    return {"type": "none"}


def _body_to_insomnia(body) -> dict:
    if isinstance(body, RawBody):
        return {"mimeType": body.content_type or "text/plain", "text": body.content}
    if isinstance(body, FormUrlEncodedBody):
        return {
            "mimeType": "application/x-www-form-urlencoded",
            "params": [{"name": k, "value": v or ""} for k, v in body.fields.items()],
        }
    if isinstance(body, MultipartBody):
        params = []
        for field in body.fields:
            if field.kind == "file":
                params.append({"name": field.name, "value": "", "type": "file", "fileName": field.filename})
            else:
                params.append({"name": field.name, "value": field.value, "type": "text"})
        return {"mimeType": "multipart/form-data", "params": params}
    if isinstance(body, BinaryBody):
        return {"mimeType": "application/octet-stream", "fileName": body.filename}
    return {}


def _request_to_insomnia(node: RequestFile, parent_id: str, sort_key: int) -> dict:
    request = node.request
    headers = [{"name": k, "value": v or ""} for k, v in request.headers.items()]
    if request.cookies:
        headers.append({"name": "Cookie", "value": cookies_to_header_value(request.cookies)})

    return {
        "_id": prefixed_id("req"),
        "_type": "request",
        "parentId": parent_id,
        "name": node.name,
        "description": node.description or "",
        "url": request.url,
        "method": request.method,
        "headers": headers,
        "body": _body_to_insomnia(request.body),
        "parameters": [{"name": k, "value": v or ""} for k, v in request.query_params.items()],
        "authentication": _auth_to_insomnia(request.auth),
        "metaSortKey": sort_key,
        "settingStoreCookies": True,
        "settingSendCookies": True,
        "settingDisableRenderRequestBody": False,
        "settingEncodeUrl": True,
        "settingRebuildPath": True,
        "settingFollowRedirects": "global",
    }


def _children_to_insomnia(folder: Folder, parent_id: str) -> list[dict]:
    resources = []
    for sort_key, child in enumerate(folder.children):
        if isinstance(child, Folder):
            folder_id = prefixed_id("fld")
            resources.append({
                "_id": folder_id,
                "_type": "request_group",
                "parentId": parent_id,
                "name": child.name,
                "metaSortKey": sort_key,
            })
            resources.extend(_children_to_insomnia(child, folder_id))
        else:
            resources.append(_request_to_insomnia(child, parent_id, sort_key))
    return resources


def generate_insomnia(project: Project) -> dict:
    """Export a project as an Insomnia v4 export document."""
    workspace_id = prefixed_id("wrk")
    base_env_id = prefixed_id("env")

    resources: list[dict] = [
        {
            "_id": workspace_id,
            "_type": "workspace",
            "parentId": None,
            "name": project.name,
            "description": project.description or "",
            "scope": "collection",
        },
        {
            "_id": base_env_id,
            "_type": "environment",
            "parentId": workspace_id,
            "name": "Base Environment",
            "data": {},
            "isPrivate": False,
        },
    ]
    for env in project.environments:
        resources.append({
            "_id": prefixed_id("env"),
            "_type": "environment",
            "parentId": base_env_id,
            "name": env.name,
            "data": {v.key: v.value for v in env.variables if v.enabled},
            "isPrivate": False,
        })
    resources.append({
        "_id": prefixed_id("jar"),
        "_type": "cookie_jar",
        "parentId": workspace_id,
        "name": "Default Jar",
        "cookies": [],
    })
    resources.extend(_children_to_insomnia(project.root, workspace_id))

    return {
        "_type": "export",
        "__export_format": EXPORT_FORMAT,
        "__export_date": datetime.now(timezone.utc).isoformat(),
        "__export_source": EXPORT_SOURCE,
        "resources": resources,
    }
