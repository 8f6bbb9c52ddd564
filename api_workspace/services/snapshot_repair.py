"""
Defensive repair of persisted workspace snapshots.

Older or hand-edited snapshots may be structurally invalid. Instead of
refusing to start, the workspace repairs what it can and drops what it
cannot, logging a warning for every change:

- legacy flat variable lists are wrapped into a single environment
- a project without environments gets one
- a dangling active environment id falls back to the first environment
- duplicate ids are re-keyed so every node stays uniquely addressable
- projects that fail validation are dropped
- an empty workspace gets a default project
- dangling selection ids are cleared
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..schemas.project import Project, RequestFile
from ..schemas.workspace import WorkspaceSnapshot
from .environment_manager import default_environment
from .identity import new_id
from .project_factory import new_project
from .tree_navigator import find_item, iter_items

logger = logging.getLogger(__name__)


def _is_legacy_variable(entry: Any) -> bool:
    return isinstance(entry, dict) and "key" in entry and "variables" not in entry


def _repair_environments(raw_project: dict) -> dict:
    environments = raw_project.get("environments")

    if not isinstance(environments, list) or not environments:
        env = default_environment("Development")
        logger.warning("Project %r has no environments; added %r", raw_project.get("name"), env.name)
        raw_project["environments"] = [env.model_dump()]
        raw_project["active_environment_id"] = env.id
        return raw_project

    if all(_is_legacy_variable(entry) for entry in environments):
        logger.warning(
            "Project %r stores a flat variable list; wrapping it into one environment",
            raw_project.get("name"),
        )
        env_id = new_id()
        raw_project["environments"] = [{
            "id": env_id,
            "name": "Development",
            "variables": [
                {
                    "id": entry.get("id") or new_id(),
                    "key": entry["key"],
                    "value": entry.get("value") or "",
                    "enabled": entry.get("enabled", True),
                }
                for entry in environments
            ],
        }]
        raw_project["active_environment_id"] = env_id

    return raw_project


def _rekey_duplicates(project: Project, seen: set[str]) -> None:
    """Give a fresh id to every node whose id was already used."""
    def _claim(obj: Any, kind: str) -> None:
        if obj.id in seen:
            old = obj.id
            obj.id = new_id()
            logger.warning("Duplicate %s id %s re-keyed to %s", kind, old, obj.id)
        seen.add(obj.id)

    _claim(project, "project")
    for node in iter_items(project.root):
        _claim(node, "tree item")
    for env in project.environments:
        _claim(env, "environment")
        for variable in env.variables:
            _claim(variable, "variable")


def _as_id(value: Any) -> str | None:
    return value if isinstance(value, str) else None


def _repair_active_environment(project: Project) -> None:
    env_ids = [env.id for env in project.environments]
    if project.active_environment_id is not None and project.active_environment_id not in env_ids:
        logger.warning("Project %r points at a missing environment; resetting", project.name)
        project.active_environment_id = env_ids[0] if env_ids else None


def repair_snapshot(raw: Any) -> WorkspaceSnapshot:
    """
    Turn whatever was loaded from storage into a valid snapshot.

    Never raises; the worst case is a workspace with one default project.
    """
    if not isinstance(raw, dict):
        if raw is not None:
            logger.warning("Ignoring snapshot of unexpected type %s", type(raw).__name__)
        raw = {}

    projects: list[Project] = []
    seen: set[str] = set()
    raw_projects = raw.get("projects")
    if not isinstance(raw_projects, list):
        raw_projects = []

    for raw_project in raw_projects:
        if not isinstance(raw_project, dict):
            logger.warning("Dropping malformed project entry of type %s", type(raw_project).__name__)
            continue
        try:
            project = Project.model_validate(_repair_environments(dict(raw_project)))
        except PydanticValidationError as exc:
            logger.warning(
                "Dropping project %r that failed validation: %d error(s)",
                raw_project.get("name"), exc.error_count(),
            )
            continue
        _rekey_duplicates(project, seen)
        _repair_active_environment(project)
        projects.append(project)

    if not projects:
        projects = [new_project()]

    by_id = {p.id: p for p in projects}
    active_project = by_id.get(_as_id(raw.get("active_project_id"))) or projects[0]

    active_request_id = _as_id(raw.get("active_request_id"))
    if active_request_id is not None:
        node = find_item(active_project.root, active_request_id)
        if not isinstance(node, RequestFile):
            active_request_id = None

    selected_item_id = _as_id(raw.get("selected_item_id"))
    if selected_item_id is not None and find_item(active_project.root, selected_item_id) is None:
        selected_item_id = None

    return WorkspaceSnapshot(
        projects=projects,
        active_project_id=active_project.id,
        active_request_id=active_request_id,
        selected_item_id=selected_item_id,
    )
