"""
Workspace store: the aggregate that owns every project plus UI selection state.

All mutations go through ``Workspace._transaction``. It hands the operation a
deep copy of the current state; when the operation returns, the copy is
compared with the current state and, if anything changed, swapped in as a
whole. Readers of ``Workspace.state`` therefore only ever see complete
states, and rejected operations leave the revision untouched.
"""

import logging
import re
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from ..config import AUTOSAVE, DEFAULT_PROJECT_NAME, MAX_RECENT_REQUESTS
from ..schemas.environment import Environment, EnvironmentVariable
from ..schemas.execute import ExecutionError, ResponseSnapshot
from ..schemas.project import (
    Folder,
    ImportedProject,
    Project,
    RecentRequest,
    RequestFile,
    SortMode,
)
from ..schemas.request import ApiRequest, NoAuth
from ..schemas.workspace import ProjectSummary, WorkspaceState, WorkspaceSummary
from . import clipboard
from . import environment_manager as envs
from . import tree_mutations as mutations
from .http_executor import Executor, execute_request
from .persistence import SnapshotStore
from .project_factory import new_project, project_from_import
from .snapshot_repair import repair_snapshot
from .tree_navigator import (
    FlatItem,
    TreeNode,
    collect_ids,
    find_folder,
    find_item,
    find_project_containing,
    flatten,
)
from .variable_substitution import resolve, resolve_request

logger = logging.getLogger(__name__)

Listener = Callable[[WorkspaceState], None]

_ABSOLUTE_URL = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")

PROJECT_CONFIG_FIELDS = ("name", "description", "icon", "icon_color", "base_url", "authorization")


def _get_project(state: WorkspaceState, project_id: str | None) -> Optional[Project]:
    for project in state.projects:
        if project.id == project_id:
            return project
    return None


def _locate(state: WorkspaceState, node_id: str, project_id: str | None = None) -> Optional[Project]:
    """Project owning ``node_id``, optionally restricted to ``project_id``."""
    if project_id is None:
        return find_project_containing(state.projects, node_id)
    project = _get_project(state, project_id)
    if project is None or find_item(project.root, node_id) is None:
        return None
    return project


def _find_request(state: WorkspaceState, request_id: str) -> Optional[RequestFile]:
    project = find_project_containing(state.projects, request_id)
    if project is None:
        return None
    node = find_item(project.root, request_id)
    return node if isinstance(node, RequestFile) else None


def join_base_url(base_url: str | None, url: str) -> str:
    """Prefix a relative URL with the project's base URL."""
    if not base_url or _ABSOLUTE_URL.match(url):
        return url
    if not url:
        return base_url
    return f"{base_url.rstrip('/')}/{url.lstrip('/')}"


def prepare_request(project: Project, node: RequestFile) -> tuple[ApiRequest, list[str]]:
    """
    Build the request that is actually sent for ``node``.

    Inherited project authorization is applied, placeholders are resolved
    against the project's active environment, and a relative URL is prefixed
    with the (resolved) project base URL.

    Returns:
        Tuple of (outgoing request, warnings about unresolved placeholders)
    """
    request = node.request.model_copy(deep=True)
    if (
        node.use_inherited_auth
        and isinstance(request.auth, NoAuth)
        and project.authorization is not None
    ):
        request.auth = project.authorization.model_copy(deep=True)

    variables = envs.active_variables(project)
    request, warnings = resolve_request(request, variables)
    if project.base_url:
        request.url = join_base_url(resolve(project.base_url, variables), request.url)
    return request, warnings


class Workspace:
    """
    The workspace aggregate.

    Args:
        persistence: Snapshot store used for loading at start-up and saving
            after each committed change; None keeps everything in memory
        executor: Coroutine function sending a request; defaults to httpx
        autosave: Save a snapshot after every committed change
    """

    def __init__(
        self,
        persistence: SnapshotStore | None = None,
        executor: Executor | None = None,
        autosave: bool = AUTOSAVE,
    ):
        self._persistence = persistence
        self._executor = executor or execute_request
        self._autosave = autosave
        self._listeners: list[Listener] = []
        self._send_sequence: dict[str, int] = {}

        raw = persistence.load() if persistence is not None else None
        snapshot = repair_snapshot(raw)
        self._state = WorkspaceState.model_validate(snapshot.model_dump())

    # ------------------------------------------------------------------
    # Commit boundary

    @property
    def state(self) -> WorkspaceState:
        """The current committed state. Treat it as read-only."""
        return self._state

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback invoked after every commit; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @contextmanager
    def _transaction(self) -> Iterator[WorkspaceState]:
        draft = self._state.model_copy(deep=True)
        yield draft

        if draft.model_dump() == self._state.model_dump():
            return

        draft.revision = self._state.revision + 1
        self._state = draft
        logger.debug("Committed workspace revision %d", draft.revision)

        if self._autosave:
            self.save()
        for listener in list(self._listeners):
            listener(self._state)

    def save(self) -> None:
        if self._persistence is not None:
            self._persistence.save(self._state.to_snapshot())

    def summary(self) -> WorkspaceSummary:
        state = self._state
        return WorkspaceSummary(
            projects=[
                ProjectSummary(id=p.id, name=p.name, active_environment_id=p.active_environment_id)
                for p in state.projects
            ],
            active_project_id=state.active_project_id,
            active_request_id=state.active_request_id,
            selected_item_id=state.selected_item_id,
            unsaved_changes=sorted(state.unsaved_changes),
            clipboard=state.clipboard,
            revision=state.revision,
        )

    # ------------------------------------------------------------------
    # Projects

    def get_project(self, project_id: str) -> Optional[Project]:
        return _get_project(self._state, project_id)

    def active_project(self) -> Project:
        project = _get_project(self._state, self._state.active_project_id)
        return project if project is not None else self._state.projects[0]

    def _resolve_project_id(self, project_id: str | None) -> str:
        return project_id if project_id is not None else self.active_project().id

    def create_project(self, name: str = DEFAULT_PROJECT_NAME) -> str:
        """Create an empty project and make it active."""
        project = new_project(name)
        with self._transaction() as draft:
            draft.projects.append(project)
            draft.active_project_id = project.id
            draft.active_request_id = None
            draft.selected_item_id = None
        logger.info("Created project %r (%s)", name, project.id)
        return project.id

    def create_project_from_import(self, imported: ImportedProject) -> str:
        """Add a project built from converter output and make it active."""
        project = project_from_import(imported)
        with self._transaction() as draft:
            draft.projects.append(project)
            draft.active_project_id = project.id
            draft.active_request_id = None
            draft.selected_item_id = None
        logger.info("Imported project %r (%s)", project.name, project.id)
        return project.id

    def select_project(self, project_id: str) -> bool:
        with self._transaction() as draft:
            if _get_project(draft, project_id) is None:
                return False
            if draft.active_project_id != project_id:
                draft.active_project_id = project_id
                draft.active_request_id = None
                draft.selected_item_id = None
        return True

    def rename_project(self, project_id: str, name: str) -> bool:
        return self.update_project_config(project_id, name=name)

    def update_project_config(self, project_id: str, **changes) -> bool:
        """
        Update project-level settings.

        Accepted keywords are the names in ``PROJECT_CONFIG_FIELDS``; only the
        keywords passed are changed, so passing ``base_url=None`` clears it.
        """
        unknown = set(changes) - set(PROJECT_CONFIG_FIELDS)
        if unknown:
            raise TypeError(f"Unknown project settings: {', '.join(sorted(unknown))}")

        with self._transaction() as draft:
            project = _get_project(draft, project_id)
            if project is None:
                return False
            for field, value in changes.items():
                setattr(project, field, value)
        return True

    def delete_project(self, project_id: str) -> bool:
        """
        Delete a project.

        When the last project is deleted a default project is created in its
        place, so the workspace always has at least one project.
        """
        with self._transaction() as draft:
            project = _get_project(draft, project_id)
            if project is None:
                return False

            removed = collect_ids(project.root)
            draft.projects = [p for p in draft.projects if p.id != project_id]
            if not draft.projects:
                draft.projects.append(new_project())
                logger.info("Last project deleted; created a default project")

            if _get_project(draft, draft.active_project_id) is None:
                draft.active_project_id = draft.projects[0].id
                draft.active_request_id = None
                draft.selected_item_id = None

            draft.unsaved_changes -= removed
            if draft.clipboard is not None and draft.clipboard.id in removed:
                draft.clipboard = None
        for request_id in removed:
            self._send_sequence.pop(request_id, None)
        logger.info("Deleted project %s", project_id)
        return True

    # ------------------------------------------------------------------
    # Tree

    def add_request(
        self,
        parent_folder_id: str,
        name: str = "New Request",
        request: ApiRequest | None = None,
        project_id: str | None = None,
    ) -> Optional[str]:
        """
        Append a request to a folder and open it.

        Returns:
            The new request id, or None if the folder does not exist
        """
        with self._transaction() as draft:
            project = _locate(draft, parent_folder_id, project_id)
            if project is None:
                return None
            new_id = mutations.add_request(project.root, parent_folder_id, name, request)
            if new_id is None:
                return None
            self._activate_request(draft, project, new_id)
        return new_id

    def add_folder(
        self,
        parent_folder_id: str,
        name: str = "New Folder",
        project_id: str | None = None,
    ) -> Optional[str]:
        with self._transaction() as draft:
            project = _locate(draft, parent_folder_id, project_id)
            if project is None:
                return None
            return mutations.add_folder(project.root, parent_folder_id, name)

    def rename_item(self, item_id: str, name: str) -> bool:
        with self._transaction() as draft:
            project = _locate(draft, item_id)
            if project is None:
                return False
            return mutations.rename_item(project.root, item_id, name)

    def delete_item(self, item_id: str) -> bool:
        """
        Delete a node and its subtree.

        Every pointer into the removed subtree (active request, selection,
        clipboard, dirty set, recent list) is cleared as part of the same
        commit.
        """
        with self._transaction() as draft:
            project = _locate(draft, item_id)
            if project is None:
                return False
            removed = mutations.delete_item(project.root, item_id)
            if not removed:
                return False

            if draft.active_request_id in removed:
                draft.active_request_id = None
            if draft.selected_item_id in removed:
                draft.selected_item_id = None
            if draft.clipboard is not None and draft.clipboard.id in removed:
                draft.clipboard = None
            draft.unsaved_changes -= removed
            project.recent_requests = [r for r in project.recent_requests if r.request_id not in removed]
        for request_id in removed:
            self._send_sequence.pop(request_id, None)
        return True

    def duplicate_item(self, item_id: str) -> Optional[str]:
        with self._transaction() as draft:
            project = _locate(draft, item_id)
            if project is None:
                return None
            return mutations.duplicate_item(project.root, item_id)

    def toggle_folder(self, folder_id: str) -> bool:
        with self._transaction() as draft:
            project = _locate(draft, folder_id)
            if project is None:
                return False
            return mutations.toggle_folder(project.root, folder_id)

    def sort_folder(self, folder_id: str, mode: SortMode) -> bool:
        with self._transaction() as draft:
            project = _locate(draft, folder_id)
            if project is None:
                return False
            return mutations.sort_folder(project.root, folder_id, mode)

    def move_item(self, item_id: str, target_folder_id: str, target_index: int) -> bool:
        """
        Move a node within its project.

        ``target_index`` is a position in the target's children after the
        item has been taken out. Moves across projects are ignored.
        """
        with self._transaction() as draft:
            project = _locate(draft, item_id)
            if project is None:
                return False
            return mutations.move_item(project.root, item_id, target_folder_id, target_index)

    def move_item_before(self, item_id: str, anchor_id: str) -> bool:
        with self._transaction() as draft:
            project = _locate(draft, item_id)
            if project is None:
                return False
            return mutations.move_before(project.root, item_id, anchor_id)

    def move_item_after(self, item_id: str, anchor_id: str) -> bool:
        with self._transaction() as draft:
            project = _locate(draft, item_id)
            if project is None:
                return False
            return mutations.move_after(project.root, item_id, anchor_id)

    def import_to_folder(self, parent_folder_id: str, item: TreeNode) -> Optional[str]:
        """Insert converter output into an existing folder under fresh ids."""
        with self._transaction() as draft:
            project = _locate(draft, parent_folder_id)
            if project is None or find_folder(project.root, parent_folder_id) is None:
                return None
            return mutations.insert_copy(project.root, parent_folder_id, item, suffix="")

    def find_item(self, item_id: str) -> Optional[TreeNode]:
        project = find_project_containing(self._state.projects, item_id)
        return find_item(project.root, item_id) if project is not None else None

    def flatten_tree(self, project_id: str | None = None) -> list[FlatItem]:
        project = self.get_project(self._resolve_project_id(project_id))
        return flatten(project.root) if project is not None else []

    # ------------------------------------------------------------------
    # Requests

    def find_request(self, request_id: str) -> Optional[RequestFile]:
        return _find_request(self._state, request_id)

    def update_request(self, request_id: str, updater: Callable[[ApiRequest], ApiRequest]) -> bool:
        """Replace a request definition with ``updater(current)`` and mark it unsaved."""
        with self._transaction() as draft:
            node = _find_request(draft, request_id)
            if node is None:
                return False
            node.request = updater(node.request.model_copy(deep=True))
            draft.unsaved_changes.add(request_id)
        return True

    def update_request_meta(
        self,
        request_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        use_inherited_auth: bool | None = None,
    ) -> bool:
        with self._transaction() as draft:
            node = _find_request(draft, request_id)
            if node is None:
                return False
            if name is not None:
                node.name = name
            if description is not None:
                node.description = description
            if use_inherited_auth is not None:
                node.use_inherited_auth = use_inherited_auth
            draft.unsaved_changes.add(request_id)
        return True

    def set_response(self, request_id: str, response: ResponseSnapshot | None) -> bool:
        """Attach the latest execution result. The dirty set is not touched."""
        with self._transaction() as draft:
            node = _find_request(draft, request_id)
            if node is None:
                return False
            node.response = response
        return True

    def mark_saved(self, request_id: str) -> bool:
        with self._transaction() as draft:
            if request_id not in draft.unsaved_changes:
                return False
            draft.unsaved_changes.discard(request_id)
        return True

    def mark_unsaved(self, request_id: str) -> bool:
        with self._transaction() as draft:
            if _find_request(draft, request_id) is None:
                return False
            draft.unsaved_changes.add(request_id)
        return True

    def is_unsaved(self, request_id: str) -> bool:
        return request_id in self._state.unsaved_changes

    def active_request(self) -> Optional[RequestFile]:
        if self._state.active_request_id is None:
            return None
        return _find_request(self._state, self._state.active_request_id)

    @staticmethod
    def _activate_request(draft: WorkspaceState, project: Project, request_id: str) -> None:
        node = find_item(project.root, request_id)
        draft.active_project_id = project.id
        draft.active_request_id = request_id
        draft.selected_item_id = request_id

        recent = [r for r in project.recent_requests if r.request_id != request_id]
        recent.insert(0, RecentRequest(
            request_id=request_id,
            name=node.name,
            method=node.request.method,
            url=node.request.url,
        ))
        project.recent_requests = recent[:MAX_RECENT_REQUESTS]

    def set_active_request(self, request_id: str | None) -> bool:
        """
        Open a request, switching to its project and recording it as recent.

        Passing None closes the active request.
        """
        with self._transaction() as draft:
            if request_id is None:
                draft.active_request_id = None
                return True
            project = find_project_containing(draft.projects, request_id)
            if project is None or not isinstance(find_item(project.root, request_id), RequestFile):
                return False
            self._activate_request(draft, project, request_id)
        return True

    def set_selected_item(self, item_id: str | None) -> bool:
        with self._transaction() as draft:
            if item_id is not None:
                project = _get_project(draft, draft.active_project_id)
                if project is None or find_item(project.root, item_id) is None:
                    return False
            draft.selected_item_id = item_id
        return True

    def recent_requests(self, project_id: str | None = None) -> list[RecentRequest]:
        project = self.get_project(self._resolve_project_id(project_id))
        return list(project.recent_requests) if project is not None else []

    # ------------------------------------------------------------------
    # Environments

    def find_environment(self, env_id: str) -> Optional[Environment]:
        return envs.find_environment_in(self._state.projects, env_id)

    def add_environment(self, project_id: str, name: str) -> Optional[str]:
        with self._transaction() as draft:
            project = _get_project(draft, project_id)
            if project is None:
                return None
            return envs.add_environment(project, name)

    def rename_environment(self, project_id: str, env_id: str, name: str) -> bool:
        with self._transaction() as draft:
            project = _get_project(draft, project_id)
            return project is not None and envs.rename_environment(project, env_id, name)

    def delete_environment(self, project_id: str, env_id: str) -> bool:
        with self._transaction() as draft:
            project = _get_project(draft, project_id)
            return project is not None and envs.delete_environment(project, env_id)

    def set_active_environment(self, project_id: str, env_id: str) -> bool:
        with self._transaction() as draft:
            project = _get_project(draft, project_id)
            return project is not None and envs.set_active_environment(project, env_id)

    def add_variable(self, env_id: str, key: str, value: str = "", enabled: bool = True) -> Optional[str]:
        with self._transaction() as draft:
            return envs.add_variable(draft.projects, env_id, key, value, enabled)

    def update_variable(
        self,
        env_id: str,
        var_id: str,
        *,
        key: str | None = None,
        value: str | None = None,
        enabled: bool | None = None,
    ) -> bool:
        with self._transaction() as draft:
            return envs.update_variable(draft.projects, env_id, var_id, key=key, value=value, enabled=enabled)

    def delete_variable(self, env_id: str, var_id: str) -> bool:
        with self._transaction() as draft:
            return envs.delete_variable(draft.projects, env_id, var_id)

    def set_variables(self, env_id: str, variables: list[EnvironmentVariable]) -> bool:
        with self._transaction() as draft:
            return envs.set_variables(draft.projects, env_id, variables)

    def resolve_variables(self, text: str, project_id: str | None = None) -> str:
        project = self.get_project(self._resolve_project_id(project_id))
        if project is None:
            return text
        return resolve(text, envs.active_variables(project))

    # ------------------------------------------------------------------
    # Clipboard

    def copy_to_clipboard(self, item_id: str) -> bool:
        with self._transaction() as draft:
            return clipboard.copy(draft, item_id)

    def cut_to_clipboard(self, item_id: str) -> bool:
        with self._transaction() as draft:
            return clipboard.cut(draft, item_id)

    def paste_item(self, target_folder_id: str) -> Optional[str]:
        with self._transaction() as draft:
            return clipboard.paste(draft, target_folder_id)

    # ------------------------------------------------------------------
    # Execution

    async def send_request(self, request_id: str) -> ResponseSnapshot | ExecutionError | None:
        """
        Send a request and attach the response to it.

        Each send gets a sequence number; when a newer send of the same
        request was started before this one finished, the result is returned
        but not attached. Execution errors never change the workspace.

        Returns:
            The executor result, or None if the request does not exist
        """
        project = find_project_containing(self._state.projects, request_id)
        node = find_item(project.root, request_id) if project is not None else None
        if not isinstance(node, RequestFile):
            return None

        outgoing, warnings = prepare_request(project, node)
        sequence = self._send_sequence.get(request_id, 0) + 1
        self._send_sequence[request_id] = sequence
        logger.debug("Sending %s %s (send #%d of %s)", outgoing.method, outgoing.url, sequence, request_id)

        result = await self._executor(outgoing)

        if isinstance(result, ExecutionError):
            logger.info("Request %s failed: %s", request_id, result.error)
            return result

        if warnings:
            result = result.model_copy(update={"warnings": [*result.warnings, *warnings]})

        latest = self._send_sequence.get(request_id)
        if latest != sequence:
            logger.warning(
                "Discarding stale response for %s (send #%d superseded by #%s)",
                request_id, sequence, latest,
            )
            return result

        self.set_response(request_id, result)
        return result
