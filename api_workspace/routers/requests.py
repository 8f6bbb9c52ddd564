"""
Request API routes.

Provides reading and editing of request nodes, saving (clearing the
unsaved-changes flag), opening a request and the recent-requests list.
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_workspace
from ..exceptions import ResourceNotFoundError
from ..schemas.project import RecentRequest, RequestFile, RequestMetaUpdate
from ..services.workspace_store import Workspace


router = APIRouter(prefix="/api/requests", tags=["requests"])


def get_request_or_404(workspace: Workspace, request_id: str) -> RequestFile:
    node = workspace.find_request(request_id)
    if node is None:
        raise ResourceNotFoundError("Request", request_id)
    return node


@router.get("/recent", response_model=list[RecentRequest])
def list_recent_requests(project_id: str | None = None, workspace: Workspace = Depends(get_workspace)):
    """
    List recently opened requests, most recent first.

    Args:
        project_id: Project to list; defaults to the active project
        workspace: Workspace instance
    """
    return workspace.recent_requests(project_id)


@router.get("/{request_id}", response_model=RequestFile)
def get_request(request_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Get a request node by ID, including its latest response.

    Raises:
        ResourceNotFoundError: 404 if request not found
    """
    return get_request_or_404(workspace, request_id)


@router.put("/{request_id}", response_model=RequestFile)
def update_request(
    request_id: str,
    request_data: RequestMetaUpdate,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Update a request node.

    Only provided fields are updated. Any change marks the request as
    having unsaved changes.

    Args:
        request_id: The unique identifier of the request
        request_data: Fields to update
        workspace: Workspace instance

    Returns:
        The updated request node

    Raises:
        ResourceNotFoundError: 404 if request not found
    """
    get_request_or_404(workspace, request_id)

    if request_data.request is not None:
        new_definition = request_data.request
        workspace.update_request(request_id, lambda _current: new_definition)
    if {"name", "description", "use_inherited_auth"} & request_data.model_fields_set:
        workspace.update_request_meta(
            request_id,
            name=request_data.name,
            description=request_data.description,
            use_inherited_auth=request_data.use_inherited_auth,
        )
    return workspace.find_request(request_id)


@router.post("/{request_id}/save")
def save_request(request_id: str, workspace: Workspace = Depends(get_workspace)):
    """Clear the unsaved-changes flag of a request and persist the workspace."""
    get_request_or_404(workspace, request_id)
    workspace.mark_saved(request_id)
    workspace.save()
    return {"id": request_id, "unsaved": workspace.is_unsaved(request_id)}


@router.post("/{request_id}/activate", response_model=RequestFile)
def activate_request(request_id: str, workspace: Workspace = Depends(get_workspace)):
    """Open a request; its project becomes active and it is added to the recent list."""
    get_request_or_404(workspace, request_id)
    workspace.set_active_request(request_id)
    return workspace.find_request(request_id)
