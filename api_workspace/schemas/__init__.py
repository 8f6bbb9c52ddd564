"""
Pydantic schemas package.

Exports the workspace document model and the API payload schemas.
"""

from .request import (
    HttpMethod,
    HTTP_METHODS,
    Cookie,
    ProxyConfig,
    NoBody,
    RawBody,
    FormUrlEncodedBody,
    MultipartField,
    MultipartBody,
    BinaryBody,
    RequestBody,
    NoAuth,
    BasicAuth,
    BearerAuth,
    ApiKeyAuth,
    RequestAuth,
    ApiRequest,
    create_default_request,
)

from .execute import (
    RedirectEntry,
    ResponseSnapshot,
    ExecutionError,
)

from .environment import (
    EnvironmentVariable,
    Environment,
    VariableCreate,
    VariableUpdate,
    EnvironmentCreate,
    EnvironmentUpdate,
    ResolveRequest,
    ResolveResponse,
)

from .project import (
    SortMode,
    RequestFile,
    Folder,
    TreeItem,
    RecentRequest,
    Project,
    ImportedProject,
    ProjectCreate,
    ProjectUpdate,
    FolderCreate,
    RequestCreate,
    ItemRename,
    MoveItem,
    SortFolder,
    RequestMetaUpdate,
    FlatItemResponse,
    CurlImport,
    CurlExport,
)

from .workspace import (
    ClipboardEntry,
    WorkspaceSnapshot,
    WorkspaceState,
    ProjectSummary,
    WorkspaceSummary,
    ClipboardRequest,
    PasteRequest,
)

__all__ = [
    # Request definition schemas
    "HttpMethod",
    "HTTP_METHODS",
    "Cookie",
    "ProxyConfig",
    "NoBody",
    "RawBody",
    "FormUrlEncodedBody",
    "MultipartField",
    "MultipartBody",
    "BinaryBody",
    "RequestBody",
    "NoAuth",
    "BasicAuth",
    "BearerAuth",
    "ApiKeyAuth",
    "RequestAuth",
    "ApiRequest",
    "create_default_request",
    # Execute schemas
    "RedirectEntry",
    "ResponseSnapshot",
    "ExecutionError",
    # Environment schemas
    "EnvironmentVariable",
    "Environment",
    "VariableCreate",
    "VariableUpdate",
    "EnvironmentCreate",
    "EnvironmentUpdate",
    "ResolveRequest",
    "ResolveResponse",
    # Project and tree schemas
    "SortMode",
    "RequestFile",
    "Folder",
    "TreeItem",
    "RecentRequest",
    "Project",
    "ImportedProject",
    "ProjectCreate",
    "ProjectUpdate",
    "FolderCreate",
    "RequestCreate",
    "ItemRename",
    "MoveItem",
    "SortFolder",
    "RequestMetaUpdate",
    "FlatItemResponse",
    "CurlImport",
    "CurlExport",
    # Workspace schemas
    "ClipboardEntry",
    "WorkspaceSnapshot",
    "WorkspaceState",
    "ProjectSummary",
    "WorkspaceSummary",
    "ClipboardRequest",
    "PasteRequest",
]
