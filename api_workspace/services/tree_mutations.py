"""
Structural mutation engine for project trees.

Every function mutates the folder tree it is given in place; callers that
need atomic, copy-on-write behaviour (the workspace store) hand in a private
draft and swap it in once the function returns.

Invalid operations (unknown ids, moving a folder into its own subtree,
targeting a request as a container) are silent no-ops: the tree is left
unchanged and the function reports that nothing happened.
"""

import logging
from typing import Optional

from ..schemas.project import Folder, RequestFile, SortMode
from ..schemas.request import ApiRequest
from .identity import new_id
from .tree_navigator import (
    TreeNode,
    collect_ids,
    find_folder,
    find_item,
    find_parent,
    index_of,
    iter_items,
)

logger = logging.getLogger(__name__)

# Requests are ordered by this precedence when sorting by method
METHOD_ORDER = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

COPY_SUFFIX = " (copy)"


def add_request(
    root: Folder,
    parent_folder_id: str,
    name: str = "New Request",
    request: ApiRequest | None = None,
) -> Optional[str]:
    """
    Append a new request to a folder.

    Returns:
        The new request id, or None if ``parent_folder_id`` is not a folder
    """
    parent = find_folder(root, parent_folder_id)
    if parent is None:
        logger.debug("add_request: folder %s not found", parent_folder_id)
        return None

    node = RequestFile(id=new_id(), name=name, request=request or ApiRequest())
    parent.children.append(node)
    return node.id


def add_folder(root: Folder, parent_folder_id: str, name: str = "New Folder") -> Optional[str]:
    """Append a new, expanded sub-folder. Returns its id, or None."""
    parent = find_folder(root, parent_folder_id)
    if parent is None:
        logger.debug("add_folder: folder %s not found", parent_folder_id)
        return None

    node = Folder(id=new_id(), name=name, children=[], expanded=True)
    parent.children.append(node)
    return node.id


def rename_item(root: Folder, item_id: str, new_name: str) -> bool:
    item = find_item(root, item_id)
    if item is None:
        return False
    item.name = new_name
    return True


def delete_item(root: Folder, item_id: str) -> set[str]:
    """
    Remove a node and its whole subtree.

    The root folder cannot be deleted.

    Returns:
        Ids of every removed node, empty if nothing was removed
    """
    parent = find_parent(root, item_id)
    if parent is None:
        logger.debug("delete_item: %s has no parent", item_id)
        return set()

    index = index_of(parent, item_id)
    removed = collect_ids(parent.children[index])
    del parent.children[index]
    return removed


def clone_item(item: TreeNode, suffix: str = COPY_SUFFIX) -> TreeNode:
    """
    Deep-copy a subtree, giving every node in the copy a fresh id.

    Only the top-level node's name gets ``suffix``; responses of copied
    requests are cleared.
    """
    clone = item.model_copy(deep=True)
    nodes = iter_items(clone) if isinstance(clone, Folder) else [clone]
    for node in nodes:
        node.id = new_id()
        if isinstance(node, RequestFile):
            node.response = None
    clone.name = f"{clone.name}{suffix}"
    return clone


def duplicate_item(root: Folder, item_id: str) -> Optional[str]:
    """Insert a re-keyed copy right after the original. Returns the copy's id."""
    parent = find_parent(root, item_id)
    if parent is None:
        logger.debug("duplicate_item: %s has no parent", item_id)
        return None

    index = index_of(parent, item_id)
    clone = clone_item(parent.children[index])
    parent.children.insert(index + 1, clone)
    return clone.id


def insert_copy(
    root: Folder,
    target_folder_id: str,
    item: TreeNode,
    suffix: str = COPY_SUFFIX,
) -> Optional[str]:
    """Append a re-keyed copy of ``item`` to a folder. Returns the copy's id."""
    target = find_folder(root, target_folder_id)
    if target is None:
        logger.debug("insert_copy: folder %s not found", target_folder_id)
        return None

    clone = clone_item(item, suffix=suffix)
    target.children.append(clone)
    return clone.id


def toggle_folder(root: Folder, folder_id: str) -> bool:
    folder = find_folder(root, folder_id)
    if folder is None:
        return False
    folder.expanded = not folder.expanded
    return True


def _name_key(item: TreeNode) -> tuple[str, str]:
    return item.name.casefold(), item.name


def _method_key(item: TreeNode) -> tuple:
    if isinstance(item, Folder):
        # Folders have no method and go after every request
        return (len(METHOD_ORDER) + 1, *_name_key(item))
    method = item.request.method
    rank = METHOD_ORDER.index(method) if method in METHOD_ORDER else len(METHOD_ORDER)
    return (rank, *_name_key(item))


def sort_children(children: list[TreeNode], mode: SortMode) -> list[TreeNode]:
    """Return ``children`` ordered by ``mode``; ``manual`` keeps the order."""
    if mode == "alphabetical":
        return sorted(children, key=_name_key)
    if mode == "method":
        return sorted(children, key=_method_key)
    return list(children)


def sort_folder(root: Folder, folder_id: str, mode: SortMode) -> bool:
    """Reorder the direct children of a folder."""
    folder = find_folder(root, folder_id)
    if folder is None:
        return False
    folder.children = sort_children(folder.children, mode)
    return True


def move_item(root: Folder, item_id: str, target_folder_id: str, target_index: int) -> bool:
    """
    Move a node into ``target_folder_id`` at ``target_index``.

    ``target_index`` refers to the position in the target's child list after
    the item has been removed from its current parent, and is clamped to
    ``[0, len(children)]``.

    Returns:
        True if the item was moved, False for a rejected move
    """
    item = find_item(root, item_id)
    if item is None:
        logger.debug("move_item: %s not found", item_id)
        return False
    if item_id == target_folder_id:
        logger.debug("move_item: %s cannot contain itself", item_id)
        return False
    if isinstance(item, Folder) and target_folder_id in collect_ids(item):
        logger.debug("move_item: %s is inside the subtree of %s", target_folder_id, item_id)
        return False

    source = find_parent(root, item_id)
    target = find_folder(root, target_folder_id)
    if source is None or target is None:
        logger.debug("move_item: cannot resolve parent of %s or folder %s", item_id, target_folder_id)
        return False

    del source.children[index_of(source, item_id)]
    index = max(0, min(target_index, len(target.children)))
    target.children.insert(index, item)
    return True


def _move_relative(root: Folder, item_id: str, anchor_id: str, offset: int) -> bool:
    if item_id == anchor_id:
        return False
    parent = find_parent(root, anchor_id)
    if parent is None:
        return False

    index = index_of(parent, anchor_id) + offset
    current = index_of(parent, item_id)
    # Removing an earlier sibling shifts the anchor one slot to the left
    if current != -1 and current < index:
        index -= 1
    return move_item(root, item_id, parent.id, index)


def move_before(root: Folder, item_id: str, anchor_id: str) -> bool:
    """Move a node so it sits immediately before ``anchor_id``."""
    return _move_relative(root, item_id, anchor_id, 0)


def move_after(root: Folder, item_id: str, anchor_id: str) -> bool:
    """Move a node so it sits immediately after ``anchor_id``."""
    return _move_relative(root, item_id, anchor_id, 1)
