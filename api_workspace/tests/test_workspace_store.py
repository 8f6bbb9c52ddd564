"""
Tests for the workspace aggregate.

Covers the commit boundary (revision, listeners, autosave), pointer clean-up
on deletion, the dirty set, recent requests and the send flow.
"""

import asyncio

import pytest

from api_workspace.config import MAX_RECENT_REQUESTS
from api_workspace.schemas.execute import ExecutionError, ResponseSnapshot
from api_workspace.schemas.request import ApiRequest, BasicAuth, BearerAuth
from api_workspace.services.persistence import InMemorySnapshotStore
from api_workspace.services.workspace_store import Workspace, join_base_url


class RecordingExecutor:
    """Executor double that records outgoing requests and answers 200."""

    def __init__(self, result=None):
        self.sent: list[ApiRequest] = []
        self.result = result or ResponseSnapshot(status_code=200, status_text="OK")

    async def __call__(self, request: ApiRequest):
        self.sent.append(request)
        return self.result


class GatedExecutor:
    """Executor double whose calls only finish when released by the test."""

    def __init__(self):
        self.gates: list[asyncio.Event] = []
        self.statuses: dict[int, int] = {}

    async def __call__(self, request: ApiRequest):
        index = len(self.gates)
        gate = asyncio.Event()
        self.gates.append(gate)
        await gate.wait()
        return ResponseSnapshot(status_code=self.statuses[index], status_text="")

    def release(self, index: int, status: int) -> None:
        self.statuses[index] = status
        self.gates[index].set()


@pytest.fixture
def store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def ws(store) -> Workspace:
    return Workspace(persistence=store)


def root_id(ws: Workspace) -> str:
    return ws.active_project().root.id


class TestCommitBoundary:

    def test_starts_with_default_project(self, ws):
        assert len(ws.state.projects) == 1
        assert ws.state.active_project_id == ws.state.projects[0].id
        assert ws.state.revision == 0

    def test_commit_bumps_revision_and_autosaves(self, ws, store):
        ws.add_folder(root_id(ws), "Folder")

        assert ws.state.revision == 1
        assert store.save_count == 1
        assert store.data["projects"][0]["root"]["children"][0]["name"] == "Folder"

    def test_rejected_operation_does_not_commit(self, ws, store):
        before = ws.state

        assert ws.add_folder("missing", "Folder") is None
        assert ws.rename_item("missing", "x") is False
        assert ws.move_item("missing", root_id(ws), 0) is False

        assert ws.state is before
        assert ws.state.revision == 0
        assert store.save_count == 0

    def test_committed_state_is_a_new_object(self, ws):
        before = ws.state
        ws.add_folder(root_id(ws), "Folder")

        assert ws.state is not before
        assert before.projects[0].root.children == []

    def test_listeners(self, ws):
        revisions = []
        unsubscribe = ws.subscribe(lambda state: revisions.append(state.revision))

        ws.add_folder(root_id(ws), "a")
        unsubscribe()
        ws.add_folder(root_id(ws), "b")

        assert revisions == [1]

    def test_failing_listener_does_not_skip_autosave(self, ws, store):
        def broken(state):
            raise RuntimeError("listener failed")

        ws.subscribe(broken)
        with pytest.raises(RuntimeError):
            ws.add_folder(root_id(ws), "Folder")

        assert ws.state.revision == 1
        assert store.save_count == 1
        assert store.data["projects"][0]["root"]["children"][0]["name"] == "Folder"

    def test_autosave_disabled(self, store):
        ws = Workspace(persistence=store, autosave=False)
        ws.add_folder(root_id(ws), "a")
        assert store.save_count == 0

        ws.save()
        assert store.save_count == 1

    def test_reload_restores_state(self, ws, store):
        folder = ws.add_folder(root_id(ws), "Folder")
        request = ws.add_request(folder, "Req", ApiRequest(method="POST", url="/x"))

        reloaded = Workspace(persistence=InMemorySnapshotStore(store.data))

        node = reloaded.find_request(request)
        assert node.request.method == "POST"
        assert reloaded.state.active_request_id == request
        assert reloaded.state.projects[0].id == ws.state.projects[0].id


class TestProjects:

    def test_create_and_select(self, ws):
        first = ws.state.projects[0].id
        second = ws.create_project("Second")

        assert ws.state.active_project_id == second
        assert ws.select_project(first)
        assert ws.state.active_project_id == first
        assert ws.select_project("missing") is False

    def test_deleting_last_project_creates_default(self, ws):
        only = ws.state.projects[0].id

        assert ws.delete_project(only)

        assert len(ws.state.projects) == 1
        assert ws.state.projects[0].id != only
        assert ws.state.active_project_id == ws.state.projects[0].id

    def test_deleting_active_project_activates_first(self, ws):
        first = ws.state.projects[0].id
        second = ws.create_project("Second")
        ws.add_request(ws.get_project(second).root.id, "r")

        ws.delete_project(second)

        assert ws.state.active_project_id == first
        assert ws.state.active_request_id is None

    def test_update_config(self, ws):
        project_id = ws.state.projects[0].id

        assert ws.update_project_config(project_id, base_url="https://x", authorization=BearerAuth(token="t"))
        project = ws.get_project(project_id)
        assert project.base_url == "https://x"
        assert project.authorization.token == "t"

        ws.update_project_config(project_id, base_url=None)
        assert ws.get_project(project_id).base_url is None
        assert ws.get_project(project_id).authorization is not None

    def test_update_config_rejects_unknown_fields(self, ws):
        with pytest.raises(TypeError):
            ws.update_project_config(ws.state.projects[0].id, root=None)

    def test_rename(self, ws):
        project_id = ws.state.projects[0].id
        assert ws.rename_project(project_id, "Renamed")
        assert ws.get_project(project_id).name == "Renamed"
        assert ws.rename_project("missing", "x") is False


class TestTree:

    def test_add_request_opens_it(self, ws):
        request_id = ws.add_request(root_id(ws), "Login")

        assert ws.state.active_request_id == request_id
        assert ws.state.selected_item_id == request_id
        assert ws.recent_requests()[0].request_id == request_id

    def test_add_request_restricted_to_project(self, ws):
        other = ws.create_project("Other")
        first_root = ws.state.projects[0].root.id

        assert ws.add_request(first_root, "r", project_id=other) is None

    def test_delete_clears_every_pointer(self, ws):
        folder = ws.add_folder(root_id(ws), "Auth")
        request_id = ws.add_request(folder, "Login")
        ws.update_request(request_id, lambda r: r.model_copy(update={"url": "/login"}))
        ws.copy_to_clipboard(request_id)

        assert ws.delete_item(folder)

        state = ws.state
        assert state.active_request_id is None
        assert state.selected_item_id is None
        assert state.clipboard is None
        assert state.unsaved_changes == set()
        assert ws.recent_requests() == []

    def test_root_cannot_be_deleted(self, ws):
        assert ws.delete_item(root_id(ws)) is False
        assert ws.state.revision == 0

    def test_flatten_and_toggle(self, ws):
        folder = ws.add_folder(root_id(ws), "Auth")
        ws.add_request(folder, "Login")
        assert [row.item.name for row in ws.flatten_tree()] == ["Auth", "Login"]

        ws.toggle_folder(folder)
        assert [row.item.name for row in ws.flatten_tree()] == ["Auth"]

    def test_move_across_projects_is_ignored(self, ws):
        request_id = ws.add_request(root_id(ws), "r")
        other = ws.create_project("Other")
        revision = ws.state.revision

        assert ws.move_item(request_id, ws.get_project(other).root.id, 0) is False
        assert ws.state.revision == revision

    def test_move_before_and_after(self, ws):
        a = ws.add_request(root_id(ws), "a")
        b = ws.add_request(root_id(ws), "b")
        c = ws.add_request(root_id(ws), "c")

        assert ws.move_item_after(a, c)
        assert [n.id for n in ws.active_project().root.children] == [b, c, a]
        assert ws.move_item_before(a, b)
        assert [n.id for n in ws.active_project().root.children] == [a, b, c]

    def test_sort_and_duplicate(self, ws):
        ws.add_request(root_id(ws), "b")
        a = ws.add_request(root_id(ws), "a")
        copy = ws.duplicate_item(a)

        assert ws.sort_folder(root_id(ws), "alphabetical")
        assert [n.name for n in ws.active_project().root.children] == ["a", "a (copy)", "b"]
        assert ws.find_item(copy).name == "a (copy)"


class TestRequests:

    def test_edit_marks_unsaved_and_save_clears(self, ws):
        request_id = ws.add_request(root_id(ws), "r")
        assert not ws.is_unsaved(request_id)

        ws.update_request(request_id, lambda r: r.model_copy(update={"method": "PUT"}))
        assert ws.is_unsaved(request_id)
        assert ws.find_request(request_id).request.method == "PUT"

        assert ws.mark_saved(request_id)
        assert not ws.is_unsaved(request_id)
        assert ws.mark_saved(request_id) is False

    def test_meta_update_marks_unsaved(self, ws):
        request_id = ws.add_request(root_id(ws), "r")
        ws.update_request_meta(request_id, name="renamed", use_inherited_auth=False)

        node = ws.find_request(request_id)
        assert (node.name, node.use_inherited_auth) == ("renamed", False)
        assert ws.is_unsaved(request_id)

    def test_set_response_does_not_mark_unsaved(self, ws):
        request_id = ws.add_request(root_id(ws), "r")
        ws.set_response(request_id, ResponseSnapshot(status_code=204, status_text="No Content"))

        assert ws.find_request(request_id).response.status_code == 204
        assert not ws.is_unsaved(request_id)

    def test_folder_is_not_a_request(self, ws):
        folder = ws.add_folder(root_id(ws), "f")
        assert ws.find_request(folder) is None
        assert ws.set_active_request(folder) is False
        assert ws.update_request(folder, lambda r: r) is False

    def test_close_active_request(self, ws):
        ws.add_request(root_id(ws), "r")
        assert ws.set_active_request(None)
        assert ws.active_request() is None

    def test_open_request_in_other_project_switches_project(self, ws):
        first = ws.state.projects[0]
        request_id = ws.add_request(first.root.id, "r")
        ws.create_project("Other")

        assert ws.set_active_request(request_id)
        assert ws.state.active_project_id == first.id
        assert ws.active_request().id == request_id

    def test_selection_limited_to_active_project(self, ws):
        request_id = ws.add_request(root_id(ws), "r")
        ws.create_project("Other")

        assert ws.set_selected_item(request_id) is False
        assert ws.set_selected_item(None) is True

    def test_recent_requests_are_capped_and_most_recent_first(self, ws):
        ids = [ws.add_request(root_id(ws), f"r{i}") for i in range(MAX_RECENT_REQUESTS + 2)]
        ws.set_active_request(ids[0])

        recent = [r.request_id for r in ws.recent_requests()]
        assert len(recent) == MAX_RECENT_REQUESTS
        assert recent[0] == ids[0]
        assert recent[1] == ids[-1]
        assert ids[1] not in recent


class TestEnvironments:

    def test_environment_operations(self, ws):
        project = ws.active_project()
        staging = ws.add_environment(project.id, "Staging")
        ws.add_variable(staging, "HOST", "staging.example.com")

        assert ws.resolve_variables("{{HOST}}") == "{{HOST}}"
        assert ws.set_active_environment(project.id, staging)
        assert ws.resolve_variables("{{HOST}}") == "staging.example.com"

        assert ws.delete_environment(project.id, staging)
        assert ws.active_project().active_environment_id == ws.active_project().environments[0].id

    def test_sole_environment_delete_does_not_commit(self, ws):
        project = ws.active_project()
        assert ws.delete_environment(project.id, project.environments[0].id) is False
        assert ws.state.revision == 0


class TestClipboard:

    def test_cut_and_paste(self, ws):
        folder = ws.add_folder(root_id(ws), "f")
        request_id = ws.add_request(root_id(ws), "r")

        assert ws.cut_to_clipboard(request_id)
        assert ws.paste_item(folder) == request_id
        assert ws.find_item(folder).children[0].id == request_id
        assert ws.state.clipboard is None


class TestJoinBaseUrl:

    @pytest.mark.parametrize(
        "base, url, expected",
        [
            ("https://api.example.com", "/users", "https://api.example.com/users"),
            ("https://api.example.com/", "users", "https://api.example.com/users"),
            ("https://api.example.com", "https://other.com/x", "https://other.com/x"),
            ("https://api.example.com", "", "https://api.example.com"),
            (None, "/users", "/users"),
        ],
    )
    def test_join(self, base, url, expected):
        assert join_base_url(base, url) == expected


class TestSend:

    def test_send_resolves_and_attaches_response(self, store):
        executor = RecordingExecutor()
        ws = Workspace(persistence=store, executor=executor)
        project = ws.active_project()
        ws.update_project_config(project.id, base_url="{{BASE_URL}}/v1", authorization=BearerAuth(token="{{TOKEN}}"))
        request_id = ws.add_request(root_id(ws), "Users", ApiRequest(url="/users"))

        result = asyncio.run(ws.send_request(request_id))

        sent = executor.sent[0]
        assert sent.url == "https://api.example.com/v1/users"
        assert sent.auth.token == "{{TOKEN}}"
        assert result.warnings == ["Undefined variable in auth: {{TOKEN}}"]
        assert ws.find_request(request_id).response.status_code == 200
        assert not ws.is_unsaved(request_id)

    def test_request_auth_overrides_inherited(self):
        executor = RecordingExecutor()
        ws = Workspace(executor=executor)
        ws.update_project_config(ws.active_project().id, authorization=BearerAuth(token="project"))
        request_id = ws.add_request(root_id(ws), "r", ApiRequest(url="https://x", auth=BasicAuth(username="u")))

        asyncio.run(ws.send_request(request_id))

        assert executor.sent[0].auth.type == "basic"

    def test_inheritance_can_be_disabled(self):
        executor = RecordingExecutor()
        ws = Workspace(executor=executor)
        ws.update_project_config(ws.active_project().id, authorization=BearerAuth(token="project"))
        request_id = ws.add_request(root_id(ws), "r", ApiRequest(url="https://x"))
        ws.update_request_meta(request_id, use_inherited_auth=False)

        asyncio.run(ws.send_request(request_id))

        assert executor.sent[0].auth.type == "none"

    def test_execution_error_does_not_change_workspace(self, store):
        error = ExecutionError(error="Request timed out", error_type="timeout")
        ws = Workspace(persistence=store, executor=RecordingExecutor(error))
        request_id = ws.add_request(root_id(ws), "r", ApiRequest(url="https://x"))
        revision, saves = ws.state.revision, store.save_count

        result = asyncio.run(ws.send_request(request_id))

        assert result == error
        assert ws.state.revision == revision
        assert store.save_count == saves
        assert ws.find_request(request_id).response is None

    def test_missing_request(self):
        ws = Workspace(executor=RecordingExecutor())
        assert asyncio.run(ws.send_request("missing")) is None

    def test_stale_response_is_discarded(self):
        executor = GatedExecutor()
        ws = Workspace(executor=executor)
        request_id = ws.add_request(root_id(ws), "r", ApiRequest(url="https://x"))

        async def scenario():
            first = asyncio.create_task(ws.send_request(request_id))
            await asyncio.sleep(0)
            second = asyncio.create_task(ws.send_request(request_id))
            await asyncio.sleep(0)

            executor.release(1, 201)
            newer = await second
            executor.release(0, 200)
            older = await first
            return older, newer

        older, newer = asyncio.run(scenario())

        assert (older.status_code, newer.status_code) == (200, 201)
        assert ws.find_request(request_id).response.status_code == 201
