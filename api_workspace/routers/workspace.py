"""
Workspace overview API routes.
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_workspace
from ..schemas.project import FlatItemResponse, Folder
from ..schemas.workspace import WorkspaceSummary
from ..services.workspace_store import Workspace


router = APIRouter(prefix="/api/workspace", tags=["workspace"])


@router.get("", response_model=WorkspaceSummary)
def get_workspace_summary(workspace: Workspace = Depends(get_workspace)):
    """Return projects, selection state, dirty set, clipboard and revision."""
    return workspace.summary()


@router.get("/tree", response_model=list[FlatItemResponse])
def get_flat_tree(project_id: str | None = None, workspace: Workspace = Depends(get_workspace)):
    """
    Return the visible rows of a project tree in display order.

    Children of collapsed folders are omitted. Defaults to the active project.
    """
    rows = []
    for item, depth, parent_id in workspace.flatten_tree(project_id):
        is_folder = isinstance(item, Folder)
        rows.append(FlatItemResponse(
            id=item.id,
            type=item.type,
            name=item.name,
            depth=depth,
            parent_id=parent_id,
            method=None if is_folder else item.request.method,
            expanded=item.expanded if is_folder else None,
            unsaved=workspace.is_unsaved(item.id),
        ))
    return rows
