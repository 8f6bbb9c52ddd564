"""
Pydantic schemas for projects and their folder trees.

A project owns one root folder. Folders hold an ordered list of children,
each either a sub-folder or a request; requests are always leaves. Children
are discriminated on their ``type`` field so that a serialized tree
round-trips without losing node kinds.
"""

from datetime import datetime, timezone
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from .environment import Environment, NonBlankName
from .execute import ResponseSnapshot
from .request import ApiRequest, RequestAuth


SortMode = Literal["manual", "method", "alphabetical"]


class RequestFile(BaseModel):
    """
    A saved request in the tree.

    Attributes:
        id: Unique identifier of the node
        name: Display name
        description: Optional free-form notes
        request: The request definition
        response: Latest response received, cleared on duplication
        use_inherited_auth: Use the project's authorization when the request has none
    """
    id: str
    type: Literal["request"] = "request"
    name: str
    description: str | None = None
    request: ApiRequest = Field(default_factory=ApiRequest)
    response: ResponseSnapshot | None = None
    use_inherited_auth: bool = True


class Folder(BaseModel):
    """递归文件夹节点，包含子文件夹和请求"""
    id: str
    type: Literal["folder"] = "folder"
    name: str
    children: list["TreeItem"] = []
    expanded: bool = True


TreeItem = Annotated[Union[Folder, RequestFile], Field(discriminator="type")]

Folder.model_rebuild()


class RecentRequest(BaseModel):
    request_id: str
    name: str
    method: str
    url: str
    opened_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Project(BaseModel):
    """
    A named collection of folders and requests with its own environments.

    ``active_environment_id`` is either None or the id of a member of
    ``environments``.
    """
    id: str
    name: str
    description: str | None = None
    icon: str | None = None
    icon_color: str | None = None
    base_url: str | None = None
    authorization: Optional[RequestAuth] = None
    root: Folder
    environments: list[Environment] = []
    active_environment_id: str | None = None
    recent_requests: list[RecentRequest] = []


class ImportedProject(BaseModel):
    """
    Partial project produced by a format converter.

    Missing parts are filled with defaults when the project is added to the
    workspace.
    """
    name: str | None = None
    description: str | None = None
    base_url: str | None = None
    authorization: Optional[RequestAuth] = None
    root: Folder | None = None
    environments: list[Environment] | None = None
    active_environment_id: str | None = None


# API payload schemas

class ProjectCreate(BaseModel):
    name: NonBlankName


class ProjectUpdate(BaseModel):
    """Schema for updating a project. All fields are optional."""
    name: NonBlankName | None = None
    description: str | None = None
    icon: str | None = None
    icon_color: str | None = None
    base_url: str | None = None
    authorization: Optional[RequestAuth] = None


class FolderCreate(BaseModel):
    parent_folder_id: str
    name: NonBlankName = "New Folder"


class RequestCreate(BaseModel):
    parent_folder_id: str
    name: NonBlankName = "New Request"
    request: ApiRequest | None = None


class ItemRename(BaseModel):
    name: NonBlankName


class MoveItem(BaseModel):
    """
    Schema for moving a tree item.

    Either ``target_folder_id`` (with ``target_index``, interpreted against
    the target's children after the item has been removed), ``before_id`` or
    ``after_id`` must be given.
    """
    target_folder_id: str | None = None
    target_index: int = 0
    before_id: str | None = None
    after_id: str | None = None


class SortFolder(BaseModel):
    mode: SortMode


class RequestMetaUpdate(BaseModel):
    """Schema for updating a request node. All fields are optional."""
    name: NonBlankName | None = None
    description: str | None = None
    use_inherited_auth: bool | None = None
    request: ApiRequest | None = None


class FlatItemResponse(BaseModel):
    """One display row of a flattened tree."""
    id: str
    type: Literal["folder", "request"]
    name: str
    depth: int
    parent_id: str | None
    method: str | None = None
    expanded: bool | None = None
    unsaved: bool = False


class CurlImport(BaseModel):
    """Schema for adding a request parsed from a cURL command."""
    command: str
    parent_folder_id: str
    name: NonBlankName = "Imported Request"


class CurlExport(BaseModel):
    command: str
