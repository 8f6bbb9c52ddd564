"""
Project tree API routes.

Provides creation, renaming, deletion, duplication, moving, sorting and
expanding/collapsing of folders and requests. Structurally invalid moves
(into the item itself or into its own subtree) are ignored and reported
with ``moved: false``.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_workspace
from ..exceptions import BadRequestError, ResourceNotFoundError
from ..schemas.project import (
    Folder,
    FolderCreate,
    ItemRename,
    MoveItem,
    RequestCreate,
    RequestFile,
    SortFolder,
    TreeItem,
)
from ..services.workspace_store import Workspace


router = APIRouter(prefix="/api/tree", tags=["tree"])


def get_item_or_404(workspace: Workspace, item_id: str):
    item = workspace.find_item(item_id)
    if item is None:
        raise ResourceNotFoundError("Item", item_id)
    return item


def get_folder_or_404(workspace: Workspace, folder_id: str) -> Folder:
    item = workspace.find_item(folder_id)
    if not isinstance(item, Folder):
        raise ResourceNotFoundError("Folder", folder_id)
    return item


@router.post("/folders", response_model=Folder, status_code=status.HTTP_201_CREATED)
def create_folder(folder_data: FolderCreate, workspace: Workspace = Depends(get_workspace)):
    """
    Create a new folder at the end of a parent folder.

    Args:
        folder_data: Parent folder id and folder name
        workspace: Workspace instance

    Returns:
        The created (empty, expanded) folder

    Raises:
        ResourceNotFoundError: 404 if the parent folder does not exist
    """
    get_folder_or_404(workspace, folder_data.parent_folder_id)
    folder_id = workspace.add_folder(folder_data.parent_folder_id, folder_data.name)
    return workspace.find_item(folder_id)


@router.post("/requests", response_model=RequestFile, status_code=status.HTTP_201_CREATED)
def create_request(request_data: RequestCreate, workspace: Workspace = Depends(get_workspace)):
    """
    Create a new request at the end of a parent folder and open it.

    Raises:
        ResourceNotFoundError: 404 if the parent folder does not exist
    """
    get_folder_or_404(workspace, request_data.parent_folder_id)
    request_id = workspace.add_request(
        request_data.parent_folder_id,
        request_data.name,
        request_data.request,
    )
    return workspace.find_item(request_id)


@router.put("/items/{item_id}", response_model=TreeItem)
def rename_item(item_id: str, rename_data: ItemRename, workspace: Workspace = Depends(get_workspace)):
    get_item_or_404(workspace, item_id)
    workspace.rename_item(item_id, rename_data.name)
    return workspace.find_item(item_id)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(item_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Delete a folder or request.

    Deleting a folder deletes its whole subtree. The root folder of a
    project cannot be deleted.

    Raises:
        ResourceNotFoundError: 404 if the item does not exist
        BadRequestError: 400 if the item is a project root
    """
    get_item_or_404(workspace, item_id)
    if not workspace.delete_item(item_id):
        raise BadRequestError("The root folder of a project cannot be deleted")
    return None


@router.post("/items/{item_id}/duplicate", response_model=TreeItem, status_code=status.HTTP_201_CREATED)
def duplicate_item(item_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Duplicate a folder or request next to the original.

    Raises:
        ResourceNotFoundError: 404 if the item does not exist
        BadRequestError: 400 if the item is a project root
    """
    get_item_or_404(workspace, item_id)
    copy_id = workspace.duplicate_item(item_id)
    if copy_id is None:
        raise BadRequestError("The root folder of a project cannot be duplicated")
    return workspace.find_item(copy_id)


@router.post("/items/{item_id}/move")
def move_item(item_id: str, move_data: MoveItem, workspace: Workspace = Depends(get_workspace)):
    """
    Move a folder or request.

    The destination is given either as ``target_folder_id`` plus
    ``target_index``, or relative to a sibling with ``before_id`` /
    ``after_id``.

    Returns:
        ``{"moved": bool}``; invalid moves leave the tree unchanged

    Raises:
        ResourceNotFoundError: 404 if the item does not exist
        BadRequestError: 400 if no destination was given
    """
    get_item_or_404(workspace, item_id)
    if move_data.before_id is not None:
        moved = workspace.move_item_before(item_id, move_data.before_id)
    elif move_data.after_id is not None:
        moved = workspace.move_item_after(item_id, move_data.after_id)
    elif move_data.target_folder_id is not None:
        moved = workspace.move_item(item_id, move_data.target_folder_id, move_data.target_index)
    else:
        raise BadRequestError("One of target_folder_id, before_id or after_id is required")
    return {"moved": moved}


@router.post("/folders/{folder_id}/sort", response_model=Folder)
def sort_folder(folder_id: str, sort_data: SortFolder, workspace: Workspace = Depends(get_workspace)):
    """Reorder the direct children of a folder by name or HTTP method."""
    get_folder_or_404(workspace, folder_id)
    workspace.sort_folder(folder_id, sort_data.mode)
    return workspace.find_item(folder_id)


@router.post("/folders/{folder_id}/toggle", response_model=Folder)
def toggle_folder(folder_id: str, workspace: Workspace = Depends(get_workspace)):
    get_folder_or_404(workspace, folder_id)
    workspace.toggle_folder(folder_id)
    return workspace.find_item(folder_id)
