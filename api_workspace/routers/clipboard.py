"""
Clipboard API routes.

Copy and cut only record the item; the tree changes when the item is
pasted. A copied item can be pasted repeatedly, a cut item only once.
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_workspace
from ..exceptions import ResourceNotFoundError
from ..schemas.workspace import ClipboardEntry, ClipboardRequest, PasteRequest
from ..services.workspace_store import Workspace


router = APIRouter(prefix="/api/clipboard", tags=["clipboard"])


@router.post("/copy", response_model=ClipboardEntry)
def copy_item(clipboard_data: ClipboardRequest, workspace: Workspace = Depends(get_workspace)):
    if not workspace.copy_to_clipboard(clipboard_data.item_id):
        raise ResourceNotFoundError("Item", clipboard_data.item_id)
    return workspace.state.clipboard


@router.post("/cut", response_model=ClipboardEntry)
def cut_item(clipboard_data: ClipboardRequest, workspace: Workspace = Depends(get_workspace)):
    if not workspace.cut_to_clipboard(clipboard_data.item_id):
        raise ResourceNotFoundError("Item", clipboard_data.item_id)
    return workspace.state.clipboard


@router.post("/paste")
def paste_item(paste_data: PasteRequest, workspace: Workspace = Depends(get_workspace)):
    """
    Paste the clipboard item into a folder.

    Returns:
        ``{"item_id": ...}`` with the moved item or the new copy, or
        ``{"item_id": null}`` when there was nothing to paste
    """
    return {"item_id": workspace.paste_item(paste_data.target_folder_id)}
