"""
Environment management API routes.

Provides CRUD operations for the environments of a project and their
variables, switching the active environment, and previewing placeholder
resolution against it.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_workspace
from ..exceptions import BadRequestError, ResourceNotFoundError
from ..schemas.environment import (
    Environment,
    EnvironmentCreate,
    EnvironmentUpdate,
    EnvironmentVariable,
    ResolveRequest,
    ResolveResponse,
    VariableCreate,
    VariableUpdate,
)
from ..services import environment_manager
from ..services.variable_substitution import find_unknown_variables, resolve
from ..services.workspace_store import Workspace
from .projects import get_project_or_404


router = APIRouter(prefix="/api/projects", tags=["environments"])


def get_environment_or_404(workspace: Workspace, project_id: str, environment_id: str) -> Environment:
    project = get_project_or_404(workspace, project_id)
    environment = environment_manager.find_environment(project, environment_id)
    if environment is None:
        raise ResourceNotFoundError("Environment", environment_id)
    return environment


def get_variable_or_404(
    workspace: Workspace,
    project_id: str,
    environment_id: str,
    variable_id: str
) -> EnvironmentVariable:
    environment = get_environment_or_404(workspace, project_id, environment_id)
    for variable in environment.variables:
        if variable.id == variable_id:
            return variable
    raise ResourceNotFoundError("Variable", variable_id)


# Environment endpoints

@router.get("/{project_id}/environments", response_model=list[Environment])
def list_environments(project_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    List all environments of a project with their variables.

    Raises:
        ResourceNotFoundError: 404 if project not found
    """
    return get_project_or_404(workspace, project_id).environments


@router.post(
    "/{project_id}/environments",
    response_model=Environment,
    status_code=status.HTTP_201_CREATED
)
def create_environment(
    project_id: str,
    environment_data: EnvironmentCreate,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Create a new environment with optional initial variables.

    The new environment becomes active if the project has no active
    environment.

    Args:
        project_id: Owning project
        environment_data: Environment name and initial variables
        workspace: Workspace instance

    Returns:
        The created environment with its variables
    """
    get_project_or_404(workspace, project_id)
    environment_id = workspace.add_environment(project_id, environment_data.name)
    for var_data in environment_data.variables:
        workspace.add_variable(environment_id, var_data.key, var_data.value, var_data.enabled)
    return workspace.find_environment(environment_id)


@router.put("/{project_id}/environments/{environment_id}", response_model=Environment)
def update_environment(
    project_id: str,
    environment_id: str,
    environment_data: EnvironmentUpdate,
    workspace: Workspace = Depends(get_workspace)
):
    get_environment_or_404(workspace, project_id, environment_id)
    workspace.rename_environment(project_id, environment_id, environment_data.name)
    return workspace.find_environment(environment_id)


@router.delete("/{project_id}/environments/{environment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_environment(project_id: str, environment_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Delete an environment and all its variables.

    If it was active, the first remaining environment becomes active.

    Raises:
        ResourceNotFoundError: 404 if project or environment not found
        BadRequestError: 400 if it is the project's only environment
    """
    get_environment_or_404(workspace, project_id, environment_id)
    if not workspace.delete_environment(project_id, environment_id):
        raise BadRequestError("A project must keep at least one environment")
    return None


@router.post("/{project_id}/environments/{environment_id}/activate", response_model=Environment)
def activate_environment(project_id: str, environment_id: str, workspace: Workspace = Depends(get_workspace)):
    """Make an environment the project's active environment."""
    environment = get_environment_or_404(workspace, project_id, environment_id)
    workspace.set_active_environment(project_id, environment_id)
    return environment


# Variable endpoints

@router.get("/{project_id}/environments/{environment_id}/variables", response_model=list[EnvironmentVariable])
def list_variables(project_id: str, environment_id: str, workspace: Workspace = Depends(get_workspace)):
    return get_environment_or_404(workspace, project_id, environment_id).variables


@router.post(
    "/{project_id}/environments/{environment_id}/variables",
    response_model=EnvironmentVariable,
    status_code=status.HTTP_201_CREATED
)
def create_variable(
    project_id: str,
    environment_id: str,
    variable_data: VariableCreate,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Add a variable to an environment.

    Raises:
        ResourceNotFoundError: 404 if project or environment not found
    """
    get_environment_or_404(workspace, project_id, environment_id)
    variable_id = workspace.add_variable(
        environment_id,
        variable_data.key,
        variable_data.value,
        variable_data.enabled,
    )
    return get_variable_or_404(workspace, project_id, environment_id, variable_id)


@router.put(
    "/{project_id}/environments/{environment_id}/variables/{variable_id}",
    response_model=EnvironmentVariable
)
def update_variable(
    project_id: str,
    environment_id: str,
    variable_id: str,
    variable_data: VariableUpdate,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Update a variable. Only provided fields are updated.

    Raises:
        ResourceNotFoundError: 404 if project, environment or variable not found
    """
    get_variable_or_404(workspace, project_id, environment_id, variable_id)
    workspace.update_variable(
        environment_id,
        variable_id,
        key=variable_data.key,
        value=variable_data.value,
        enabled=variable_data.enabled,
    )
    return get_variable_or_404(workspace, project_id, environment_id, variable_id)


@router.delete(
    "/{project_id}/environments/{environment_id}/variables/{variable_id}",
    status_code=status.HTTP_204_NO_CONTENT
)
def delete_variable(
    project_id: str,
    environment_id: str,
    variable_id: str,
    workspace: Workspace = Depends(get_workspace)
):
    get_variable_or_404(workspace, project_id, environment_id, variable_id)
    workspace.delete_variable(environment_id, variable_id)
    return None


@router.post("/{project_id}/resolve", response_model=ResolveResponse)
def resolve_text(project_id: str, resolve_data: ResolveRequest, workspace: Workspace = Depends(get_workspace)):
    """
    Resolve placeholders in a text against the project's active environment.

    Unknown placeholders are left in place and listed in
    ``unknown_variables``.
    """
    project = get_project_or_404(workspace, project_id)
    variables = environment_manager.active_variables(project)
    return ResolveResponse(
        resolved=resolve(resolve_data.text, variables),
        unknown_variables=find_unknown_variables(resolve_data.text, variables),
    )
