"""
Unit tests for read-only tree traversal.
"""

from api_workspace.schemas.project import Folder, RequestFile
from api_workspace.schemas.request import ApiRequest
from api_workspace.services.project_factory import new_project
from api_workspace.services.tree_navigator import (
    collect_ids,
    find_folder,
    find_item,
    find_parent,
    find_project_containing,
    flatten,
    index_of,
    iter_requests,
)


def make_tree() -> Folder:
    """
    root
    ├── users (expanded)
    │   ├── list (GET)
    │   └── admin (collapsed)
    │       └── promote (POST)
    └── health (GET)
    """
    promote = RequestFile(id="promote", name="promote", request=ApiRequest(method="POST"))
    admin = Folder(id="admin", name="admin", children=[promote], expanded=False)
    listing = RequestFile(id="list", name="list")
    users = Folder(id="users", name="users", children=[listing, admin])
    health = RequestFile(id="health", name="health")
    return Folder(id="root", name="Root", children=[users, health])


class TestFind:

    def test_find_item_matches_root_and_nested_nodes(self):
        root = make_tree()
        assert find_item(root, "root") is root
        assert find_item(root, "promote").name == "promote"
        assert find_item(root, "missing") is None

    def test_find_parent(self):
        root = make_tree()
        assert find_parent(root, "promote").id == "admin"
        assert find_parent(root, "health").id == "root"
        assert find_parent(root, "root") is None
        assert find_parent(root, "missing") is None

    def test_find_folder_ignores_requests(self):
        root = make_tree()
        assert find_folder(root, "admin").id == "admin"
        assert find_folder(root, "root") is root
        assert find_folder(root, "list") is None

    def test_index_of(self):
        root = make_tree()
        users = find_folder(root, "users")
        assert index_of(users, "admin") == 1
        assert index_of(users, "health") == -1


class TestCollect:

    def test_collect_ids_of_subtree(self):
        root = make_tree()
        assert collect_ids(find_item(root, "users")) == {"users", "list", "admin", "promote"}
        assert collect_ids(find_item(root, "health")) == {"health"}

    def test_iter_requests_ignores_expanded_flag(self):
        root = make_tree()
        assert [r.id for r in iter_requests(root)] == ["list", "promote", "health"]


class TestFlatten:

    def test_flatten_skips_collapsed_folders(self):
        rows = flatten(make_tree())
        assert [(row.item.id, row.depth, row.parent_id) for row in rows] == [
            ("users", 0, "root"),
            ("list", 1, "users"),
            ("admin", 1, "users"),
            ("health", 0, "root"),
        ]

    def test_flatten_descends_into_expanded_folders(self):
        root = make_tree()
        find_folder(root, "admin").expanded = True
        ids = [row.item.id for row in flatten(root)]
        assert ids == ["users", "list", "admin", "promote", "health"]

    def test_flatten_empty_root(self):
        assert flatten(Folder(id="r", name="Root")) == []


class TestFindProjectContaining:

    def test_locates_owning_project(self):
        first, second = new_project("first"), new_project("second")
        second.root.children.append(RequestFile(id="req", name="req"))

        assert find_project_containing([first, second], "req") is second
        assert find_project_containing([first, second], first.root.id) is first
        assert find_project_containing([first, second], "missing") is None
