"""
Construction of new projects, either empty or from converter output.
"""

from ..config import DEFAULT_PROJECT_NAME
from ..schemas.environment import Environment
from ..schemas.project import Folder, ImportedProject, Project
from .environment_manager import default_environment
from .identity import new_id
from .tree_mutations import clone_item


def new_root_folder() -> Folder:
    return Folder(id=new_id(), name="Root", children=[], expanded=True)


def new_project(name: str = DEFAULT_PROJECT_NAME) -> Project:
    """
    Create an empty project.

    The project gets a ``Development`` environment holding a ``BASE_URL``
    variable; that environment is active.
    """
    env = default_environment("Development", with_base_url=True)
    return Project(
        id=new_id(),
        name=name,
        root=new_root_folder(),
        environments=[env],
        active_environment_id=env.id,
    )


def project_from_import(imported: ImportedProject) -> Project:
    """
    Build a complete project from a partial one.

    The tree is re-keyed so that importing the same document twice never
    produces colliding ids.
    """
    root = clone_item(imported.root, suffix="") if imported.root is not None else new_root_folder()

    environments = [env.model_copy(deep=True) for env in imported.environments or []]
    if not environments:
        environments = [Environment(id=new_id(), name="main", variables=[])]

    env_ids = {env.id for env in environments}
    active_env_id = imported.active_environment_id
    if active_env_id not in env_ids:
        active_env_id = environments[0].id

    return Project(
        id=new_id(),
        name=imported.name or "Imported Project",
        description=imported.description,
        base_url=imported.base_url,
        authorization=imported.authorization,
        root=root,
        environments=environments,
        active_environment_id=active_env_id,
    )
