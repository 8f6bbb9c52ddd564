"""
Cut/copy/paste on top of the structural mutation engine.

The clipboard is a single slot on the workspace state. Cutting does not
touch the tree; the item is only moved when the cut is pasted.
"""

import logging
from typing import Optional

from ..schemas.workspace import ClipboardEntry, WorkspaceState
from .tree_mutations import insert_copy, move_item
from .tree_navigator import find_folder, find_item, find_project_containing

logger = logging.getLogger(__name__)


def copy(state: WorkspaceState, item_id: str) -> bool:
    """Put an existing item on the clipboard in copy mode."""
    if find_project_containing(state.projects, item_id) is None:
        return False
    state.clipboard = ClipboardEntry(id=item_id, mode="copy")
    return True


def cut(state: WorkspaceState, item_id: str) -> bool:
    """Put an existing item on the clipboard in cut mode."""
    if find_project_containing(state.projects, item_id) is None:
        return False
    state.clipboard = ClipboardEntry(id=item_id, mode="cut")
    return True


def paste(state: WorkspaceState, target_folder_id: str) -> Optional[str]:
    """
    Paste the clipboard item into ``target_folder_id``.

    A cut item is moved to the first position of the target and the clipboard
    is cleared. Cut items only move within their own project. A copied item
    is appended as a re-keyed copy, possibly into another project, and stays
    on the clipboard so it can be pasted again.

    Returns:
        Id of the moved item or of the new copy, None for a no-op
    """
    entry = state.clipboard
    if entry is None:
        return None

    source = find_project_containing(state.projects, entry.id)
    if source is None:
        logger.debug("paste: clipboard item %s no longer exists", entry.id)
        return None
    target = find_project_containing(state.projects, target_folder_id)
    if target is None or find_folder(target.root, target_folder_id) is None:
        logger.debug("paste: %s is not a folder", target_folder_id)
        return None

    if entry.mode == "cut":
        if source.id != target.id:
            logger.debug("paste: cannot move %s across projects", entry.id)
            return None
        moved = move_item(target.root, entry.id, target_folder_id, 0)
        # A cut is consumed by its first paste even when the move is rejected
        state.clipboard = None
        return entry.id if moved else None

    item = find_item(source.root, entry.id)
    return insert_copy(target.root, target_folder_id, item)
