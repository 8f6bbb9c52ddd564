"""
Persistence of workspace snapshots.

The workspace only depends on the ``SnapshotStore`` protocol: ``save`` takes
a complete snapshot and ``load`` returns the raw stored data (or None), which
the workspace repairs before use.
"""

import logging
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..database import SessionLocal
from ..models.snapshot import WorkspaceSnapshotRecord
from ..schemas.workspace import WorkspaceSnapshot

logger = logging.getLogger(__name__)

SNAPSHOT_SCHEMA_VERSION = 1


class SnapshotStore(Protocol):
    def save(self, snapshot: WorkspaceSnapshot) -> None: ...

    def load(self) -> dict[str, Any] | None: ...


class InMemorySnapshotStore:
    """Keeps the last saved snapshot in memory. Used by tests and previews."""

    def __init__(self, data: dict[str, Any] | None = None):
        self.data = data
        self.save_count = 0

    def save(self, snapshot: WorkspaceSnapshot) -> None:
        self.data = snapshot.model_dump(mode="json")
        self.save_count += 1

    def load(self) -> dict[str, Any] | None:
        return self.data


class SqlSnapshotStore:
    """
    Stores the workspace snapshot as one JSON row in the database.

    Args:
        session_factory: SQLAlchemy session factory
        slot: Row id, allowing several independent workspaces in one database
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal, slot: int = 1):
        self._session_factory = session_factory
        self._slot = slot

    def save(self, snapshot: WorkspaceSnapshot) -> None:
        data = snapshot.model_dump(mode="json")
        session: Session = self._session_factory()
        try:
            record = session.get(WorkspaceSnapshotRecord, self._slot)
            if record is None:
                record = WorkspaceSnapshotRecord(id=self._slot)
                session.add(record)
            record.data = data
            record.schema_version = SNAPSHOT_SCHEMA_VERSION
            record.saved_at = datetime.utcnow()
            session.commit()
        except SQLAlchemyError:
            session.rollback()
            raise
        finally:
            session.close()

    def load(self) -> dict[str, Any] | None:
        """
        Return the stored snapshot data.

        Database errors and rows whose JSON cannot be decoded are logged and
        reported as "nothing stored", and the workspace opens with a default
        project.
        """
        session: Session = self._session_factory()
        try:
            record = session.get(WorkspaceSnapshotRecord, self._slot)
            if record is None:
                return None
            logger.info("Loaded workspace snapshot from slot %d (saved %s)", self._slot, record.saved_at)
            return record.data
        except (SQLAlchemyError, ValueError) as exc:
            logger.warning("Could not load workspace snapshot: %s", exc)
            return None
        finally:
            session.close()
