"""
Import and export API routes.

Projects can be imported from and exported to Postman, Insomnia, OpenAPI
and the native JSON format. Single requests can be imported from and
exported as cURL commands.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, status

from ..dependencies import get_workspace
from ..exceptions import BadRequestError, ResourceNotFoundError
from ..schemas.project import CurlExport, CurlImport, Project, RequestFile
from ..services import environment_manager
from ..services.converters import GENERATORS, PARSERS, generate_curl, generate_openapi, parse_curl
from ..services.variable_substitution import resolve
from ..services.workspace_store import Workspace
from .projects import get_project_or_404


router = APIRouter(prefix="/api", tags=["transfer"])


@router.post("/import/curl", response_model=RequestFile, status_code=status.HTTP_201_CREATED)
def import_curl(curl_data: CurlImport, workspace: Workspace = Depends(get_workspace)):
    """
    Add a request parsed from a cURL command to a folder.

    Raises:
        InvalidImportError: 400 if the command cannot be parsed
        ResourceNotFoundError: 404 if the folder does not exist
    """
    request = parse_curl(curl_data.command)
    request_id = workspace.add_request(curl_data.parent_folder_id, curl_data.name, request)
    if request_id is None:
        raise ResourceNotFoundError("Folder", curl_data.parent_folder_id)
    return workspace.find_request(request_id)


@router.post("/import/{format_name}", response_model=Project, status_code=status.HTTP_201_CREATED)
def import_project(
    format_name: str,
    data: Any = Body(...),
    workspace: Workspace = Depends(get_workspace)
):
    """
    Import a document as a new project and make it active.

    Args:
        format_name: One of ``postman``, ``insomnia``, ``openapi``, ``native``
        data: The decoded document
        workspace: Workspace instance

    Raises:
        BadRequestError: 400 for an unknown format
        InvalidImportError: 400 if the document cannot be parsed
    """
    parser = PARSERS.get(format_name)
    if parser is None:
        raise BadRequestError(f"Unsupported import format: {format_name}")
    project_id = workspace.create_project_from_import(parser(data))
    return workspace.get_project(project_id)


@router.get("/export/curl/{request_id}", response_model=CurlExport)
def export_curl(request_id: str, workspace: Workspace = Depends(get_workspace)):
    node = workspace.find_request(request_id)
    if node is None:
        raise ResourceNotFoundError("Request", request_id)
    return CurlExport(command=generate_curl(node.request))


@router.get("/export/{format_name}")
def export_project(
    format_name: str,
    project_id: str | None = None,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Export a project, by default the active one.

    OpenAPI exports resolve placeholders in the base URL and examples
    against the project's active environment.

    Raises:
        BadRequestError: 400 for an unknown format
        ResourceNotFoundError: 404 if the project does not exist
    """
    if format_name not in GENERATORS:
        raise BadRequestError(f"Unsupported export format: {format_name}")
    project = get_project_or_404(workspace, project_id) if project_id else workspace.active_project()

    if format_name == "openapi":
        variables = environment_manager.active_variables(project)
        return generate_openapi(project, resolver=lambda text: resolve(text, variables))
    return GENERATORS[format_name](project)
