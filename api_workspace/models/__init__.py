"""
Models package for API Workspace.

Exports all SQLAlchemy models for database operations.
"""

from .snapshot import WorkspaceSnapshotRecord

__all__ = [
    "WorkspaceSnapshotRecord",
]
