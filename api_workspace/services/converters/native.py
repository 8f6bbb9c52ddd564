"""
Native JSON import and export: a complete project dump.
"""

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ...exceptions import InvalidImportError
from ...schemas.environment import Environment, EnvironmentVariable
from ...schemas.project import ImportedProject, Project
from ..identity import new_id
from ..tree_mutations import clone_item

logger = logging.getLogger(__name__)

FORMAT_NAME = "api-workspace"
FORMAT_VERSION = 1


def generate_native(project: Project) -> dict:
    return {
        "format": FORMAT_NAME,
        "version": FORMAT_VERSION,
        "project": project.model_dump(mode="json", exclude={"recent_requests"}),
    }


def parse_native(data: Any) -> ImportedProject:
    """
    Parse a native project dump, wrapped or bare.

    Every node and environment gets a new id, so importing the same file
    twice yields two independent projects.

    Raises:
        InvalidImportError: If the dump does not describe a project
    """
    if isinstance(data, dict) and data.get("format") == FORMAT_NAME:
        data = data.get("project")
    if not isinstance(data, dict) or not isinstance(data.get("root"), dict):
        raise InvalidImportError("native", "missing project root")

    try:
        imported = ImportedProject.model_validate(data)
    except PydanticValidationError as exc:
        raise InvalidImportError("native", f"{exc.error_count()} validation error(s)") from exc

    env_ids: dict[str, str] = {}
    environments = []
    for env in imported.environments or []:
        env_ids[env.id] = new_id()
        environments.append(Environment(
            id=env_ids[env.id],
            name=env.name,
            variables=[
                EnvironmentVariable(id=new_id(), key=v.key, value=v.value, enabled=v.enabled)
                for v in env.variables
            ],
        ))

    logger.info("Parsed native project %r", imported.name)
    return imported.model_copy(update={
        "root": clone_item(imported.root, suffix=""),
        "environments": environments,
        "active_environment_id": env_ids.get(imported.active_environment_id),
    })
