"""
Workspace snapshot model.

The whole workspace document is serialized into one JSON column so that a
save is a single, atomic row write and a reload never sees a torn state.
"""

from datetime import datetime

from sqlalchemy import JSON, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ..database import Base


class WorkspaceSnapshotRecord(Base):
    """
    SQLAlchemy model for persisted workspace snapshots.

    Attributes:
        id: Slot identifier; the default workspace uses slot 1
        data: Serialized WorkspaceSnapshot
        schema_version: Version of the serialized layout
        saved_at: Timestamp of the last save
    """
    __tablename__ = "workspace_snapshots"

    id: Mapped[int] = mapped_column(primary_key=True)
    data: Mapped[dict] = mapped_column(JSON)
    schema_version: Mapped[int] = mapped_column(Integer, default=1)
    saved_at: Mapped[datetime] = mapped_column(default=datetime.utcnow, onupdate=datetime.utcnow)
