"""
Database configuration for the API Workspace.

The workspace is persisted as whole snapshots in SQLite through SQLAlchemy,
so the schema is a single table and there are no relations to enforce.
"""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import DATABASE_URL

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False},  # sessions are opened from FastAPI worker threads
    echo=False
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def init_db(bind: Engine = engine):
    """
    Create the snapshot table if it does not exist yet.

    Called from the application lifespan; tests pass their own engine.
    """
    # Register the models on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind)
