"""
Folder tree service for read-only traversal of a project tree.

Provides functions for:
- Finding nodes, parents and folders by id
- Collecting the ids of a subtree (used for cycle prevention)
- Flattening the visible tree into display rows
- Locating the project that owns a node
"""

from typing import Iterable, Iterator, NamedTuple, Optional, Union

from ..schemas.project import Folder, Project, RequestFile

TreeNode = Union[Folder, RequestFile]


class FlatItem(NamedTuple):
    """One visible row of a flattened tree."""
    item: TreeNode
    depth: int
    parent_id: str


def find_item(root: Folder, item_id: str) -> Optional[TreeNode]:
    """Depth-first search by id. The root itself matches."""
    if root.id == item_id:
        return root
    for child in root.children:
        if child.id == item_id:
            return child
        if isinstance(child, Folder):
            found = find_item(child, item_id)
            if found is not None:
                return found
    return None


def find_parent(root: Folder, item_id: str) -> Optional[Folder]:
    """
    Return the folder whose children list directly contains ``item_id``.

    The root has no parent, so looking it up returns None.
    """
    for child in root.children:
        if child.id == item_id:
            return root
        if isinstance(child, Folder):
            found = find_parent(child, item_id)
            if found is not None:
                return found
    return None


def find_folder(root: Folder, folder_id: str) -> Optional[Folder]:
    """Like find_item, restricted to folder nodes."""
    if root.id == folder_id:
        return root
    for child in root.children:
        if isinstance(child, Folder):
            found = find_folder(child, folder_id)
            if found is not None:
                return found
    return None


def collect_ids(node: TreeNode) -> set[str]:
    """Return the node's id plus the id of every descendant."""
    ids = {node.id}
    if isinstance(node, Folder):
        for child in node.children:
            ids |= collect_ids(child)
    return ids


def iter_items(root: Folder) -> Iterator[TreeNode]:
    """Yield every node of the tree in pre-order, root first, ignoring ``expanded``."""
    yield root
    for child in root.children:
        if isinstance(child, Folder):
            yield from iter_items(child)
        else:
            yield child


def iter_requests(root: Folder) -> Iterator[RequestFile]:
    for node in iter_items(root):
        if isinstance(node, RequestFile):
            yield node


def index_of(folder: Folder, item_id: str) -> int:
    """Position of a direct child in ``folder``, or -1."""
    for index, child in enumerate(folder.children):
        if child.id == item_id:
            return index
    return -1


def flatten(root: Folder) -> list[FlatItem]:
    """
    Flatten the visible part of the tree into display order.

    The root itself is not listed; its children have depth 0. Only folders
    whose ``expanded`` flag is set are descended into. The resulting order is
    also the order drag-and-drop target indices are resolved against.
    """
    rows: list[FlatItem] = []

    def _walk(folder: Folder, depth: int) -> None:
        for child in folder.children:
            rows.append(FlatItem(child, depth, folder.id))
            if isinstance(child, Folder) and child.expanded:
                _walk(child, depth + 1)

    _walk(root, 0)
    return rows


def find_project_containing(projects: Iterable[Project], node_id: str) -> Optional[Project]:
    """Return the first project whose tree contains ``node_id``."""
    for project in projects:
        if find_item(project.root, node_id) is not None:
            return project
    return None
