# Services package

from .variable_substitution import extract_variables, resolve, resolve_request
from .http_executor import execute_request
from .persistence import InMemorySnapshotStore, SnapshotStore, SqlSnapshotStore
from .snapshot_repair import repair_snapshot
from .workspace_store import Workspace

__all__ = [
    "extract_variables",
    "resolve",
    "resolve_request",
    "execute_request",
    "InMemorySnapshotStore",
    "SnapshotStore",
    "SqlSnapshotStore",
    "repair_snapshot",
    "Workspace",
]
