"""
Project management API routes.

Provides CRUD operations for projects and switching the active project.
The workspace always keeps at least one project.
"""

from fastapi import APIRouter, Depends, status

from ..dependencies import get_workspace
from ..exceptions import ResourceNotFoundError
from ..schemas.project import Project, ProjectCreate, ProjectUpdate
from ..services.workspace_store import Workspace


router = APIRouter(prefix="/api/projects", tags=["projects"])


def get_project_or_404(workspace: Workspace, project_id: str) -> Project:
    project = workspace.get_project(project_id)
    if project is None:
        raise ResourceNotFoundError("Project", project_id)
    return project


@router.get("", response_model=list[Project])
def list_projects(workspace: Workspace = Depends(get_workspace)):
    """
    List all projects.

    Returns:
        Every project in workspace order
    """
    return workspace.state.projects


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
def create_project(project_data: ProjectCreate, workspace: Workspace = Depends(get_workspace)):
    """
    Create a new empty project and make it the active one.

    Args:
        project_data: Project name
        workspace: Workspace instance

    Returns:
        The created project with its default environment
    """
    project_id = workspace.create_project(project_data.name)
    return workspace.get_project(project_id)


@router.get("/{project_id}", response_model=Project)
def get_project(project_id: str, workspace: Workspace = Depends(get_workspace)):
    return get_project_or_404(workspace, project_id)


@router.put("/{project_id}", response_model=Project)
def update_project(
    project_id: str,
    project_data: ProjectUpdate,
    workspace: Workspace = Depends(get_workspace)
):
    """
    Update project settings.

    Only fields present in the request body are changed; sending
    ``"base_url": null`` clears the base URL.

    Raises:
        ResourceNotFoundError: 404 if project not found
    """
    get_project_or_404(workspace, project_id)
    changes = {field: getattr(project_data, field) for field in project_data.model_fields_set}
    if changes.get("name", "") is None:
        del changes["name"]
    workspace.update_project_config(project_id, **changes)
    return workspace.get_project(project_id)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Delete a project with its tree and environments.

    Deleting the last project replaces it with a new default project.

    Raises:
        ResourceNotFoundError: 404 if project not found
    """
    get_project_or_404(workspace, project_id)
    workspace.delete_project(project_id)
    return None


@router.post("/{project_id}/select", response_model=Project)
def select_project(project_id: str, workspace: Workspace = Depends(get_workspace)):
    """Make a project the active one."""
    get_project_or_404(workspace, project_id)
    workspace.select_project(project_id)
    return workspace.get_project(project_id)
