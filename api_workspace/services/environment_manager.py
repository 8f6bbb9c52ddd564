"""
Environment management for projects.

Handles the named variable sets of a project and its "active environment"
pointer. A project always keeps at least one environment, and a non-null
active environment id always points at one of the project's environments.
"""

import logging
from typing import Iterable, Optional

from ..schemas.environment import Environment, EnvironmentVariable
from ..schemas.project import Project
from .identity import new_id

logger = logging.getLogger(__name__)


def default_environment(name: str = "Development", with_base_url: bool = False) -> Environment:
    variables = []
    if with_base_url:
        variables.append(EnvironmentVariable(id=new_id(), key="BASE_URL", value="https://api.example.com"))
    return Environment(id=new_id(), name=name, variables=variables)


def find_environment(project: Project, env_id: str) -> Optional[Environment]:
    for env in project.environments:
        if env.id == env_id:
            return env
    return None


def find_environment_in(projects: Iterable[Project], env_id: str) -> Optional[Environment]:
    """Locate an environment by id across projects."""
    for project in projects:
        env = find_environment(project, env_id)
        if env is not None:
            return env
    return None


def add_environment(project: Project, name: str) -> str:
    """
    Append an empty environment.

    The new environment becomes active if the project had none active.
    """
    env = Environment(id=new_id(), name=name, variables=[])
    project.environments.append(env)
    if project.active_environment_id is None:
        project.active_environment_id = env.id
    return env.id


def rename_environment(project: Project, env_id: str, name: str) -> bool:
    env = find_environment(project, env_id)
    if env is None:
        return False
    env.name = name
    return True


def delete_environment(project: Project, env_id: str) -> bool:
    """
    Remove an environment unless it is the project's only one.

    If the removed environment was active, the first remaining one becomes
    active.
    """
    if len(project.environments) <= 1:
        logger.debug("delete_environment: refusing to delete the only environment of %s", project.id)
        return False
    if find_environment(project, env_id) is None:
        return False

    project.environments = [e for e in project.environments if e.id != env_id]
    if project.active_environment_id == env_id:
        project.active_environment_id = project.environments[0].id if project.environments else None
    return True


def set_active_environment(project: Project, env_id: str) -> bool:
    """Point the project at ``env_id``; ids of other projects are ignored."""
    if find_environment(project, env_id) is None:
        logger.debug("set_active_environment: %s is not an environment of %s", env_id, project.id)
        return False
    project.active_environment_id = env_id
    return True


def active_environment(project: Project) -> Optional[Environment]:
    if project.active_environment_id is None:
        return None
    return find_environment(project, project.active_environment_id)


def active_variables(project: Project) -> list[EnvironmentVariable]:
    """Enabled variables of the active environment, in order."""
    env = active_environment(project)
    if env is None:
        return []
    return [v for v in env.variables if v.enabled]


# Variable CRUD, addressed by environment id regardless of which is active

def add_variable(
    projects: Iterable[Project],
    env_id: str,
    key: str,
    value: str,
    enabled: bool = True,
) -> Optional[str]:
    env = find_environment_in(projects, env_id)
    if env is None:
        return None
    variable = EnvironmentVariable(id=new_id(), key=key, value=value, enabled=enabled)
    env.variables.append(variable)
    return variable.id


def update_variable(
    projects: Iterable[Project],
    env_id: str,
    var_id: str,
    *,
    key: str | None = None,
    value: str | None = None,
    enabled: bool | None = None,
) -> bool:
    """Update the given fields of a variable; fields left as None are kept."""
    env = find_environment_in(projects, env_id)
    if env is None:
        return False
    for variable in env.variables:
        if variable.id == var_id:
            if key is not None:
                variable.key = key
            if value is not None:
                variable.value = value
            if enabled is not None:
                variable.enabled = enabled
            return True
    return False


def delete_variable(projects: Iterable[Project], env_id: str, var_id: str) -> bool:
    env = find_environment_in(projects, env_id)
    if env is None:
        return False
    remaining = [v for v in env.variables if v.id != var_id]
    if len(remaining) == len(env.variables):
        return False
    env.variables = remaining
    return True


def set_variables(projects: Iterable[Project], env_id: str, variables: list[EnvironmentVariable]) -> bool:
    """Replace the whole variable list of an environment."""
    env = find_environment_in(projects, env_id)
    if env is None:
        return False
    env.variables = [v.model_copy() for v in variables]
    return True
