"""
Pydantic schemas for the workspace aggregate.

``WorkspaceState`` is the full in-memory state; ``WorkspaceSnapshot`` is the
subset that is persisted between sessions.
"""

from typing import Literal

from pydantic import BaseModel

from .project import Project


class ClipboardEntry(BaseModel):
    id: str
    mode: Literal["cut", "copy"]


class WorkspaceSnapshot(BaseModel):
    """Serialized form of the workspace used by the persistence layer."""
    projects: list[Project] = []
    active_project_id: str | None = None
    active_request_id: str | None = None
    selected_item_id: str | None = None


class WorkspaceState(WorkspaceSnapshot):
    """
    Complete workspace state.

    Attributes:
        unsaved_changes: Dirty set of request ids with edits not yet saved
        clipboard: Single-slot clipboard
        revision: Incremented on every committed change
    """
    unsaved_changes: set[str] = set()
    clipboard: ClipboardEntry | None = None
    revision: int = 0

    def to_snapshot(self) -> WorkspaceSnapshot:
        return WorkspaceSnapshot(
            projects=self.projects,
            active_project_id=self.active_project_id,
            active_request_id=self.active_request_id,
            selected_item_id=self.selected_item_id,
        )


class ProjectSummary(BaseModel):
    id: str
    name: str
    active_environment_id: str | None


class WorkspaceSummary(BaseModel):
    """Schema for the workspace overview returned to the UI shell."""
    projects: list[ProjectSummary]
    active_project_id: str | None
    active_request_id: str | None
    selected_item_id: str | None
    unsaved_changes: list[str]
    clipboard: ClipboardEntry | None
    revision: int


class ClipboardRequest(BaseModel):
    item_id: str


class PasteRequest(BaseModel):
    target_folder_id: str
