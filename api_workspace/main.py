"""
API Workspace - FastAPI Application Entry Point

Serves the workspace document model of a desktop API client: projects,
folder trees of requests, environments and variables, cut/copy/paste,
request execution and import/export of third-party collection formats.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import LOG_LEVEL
from .database import init_db
from .exceptions import register_exception_handlers
from .routers import clipboard, environments, execute, projects, requests, transfer, tree, workspace
from .services.persistence import SqlSnapshotStore
from .services.workspace_store import Workspace

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown events."""
    # Startup: Initialize database and load the workspace
    init_db()
    if getattr(app.state, "workspace", None) is None:
        app.state.workspace = Workspace(persistence=SqlSnapshotStore())
    logger.info("Workspace ready with %d project(s)", len(app.state.workspace.state.projects))
    yield
    # Shutdown: write a final snapshot
    app.state.workspace.save()


app = FastAPI(
    title="API Workspace",
    description="Workspace document model for an API testing client",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

# Configure CORS middleware
# Allow all origins for development; restrict in production
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure specific origins in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register global exception handlers
register_exception_handlers(app)


@app.get("/")
async def root():
    """Root endpoint returning API information."""
    return {
        "name": "API Workspace",
        "version": "1.0.0",
        "docs": "/docs"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Register routers
app.include_router(workspace.router)
app.include_router(projects.router)
app.include_router(tree.router)
app.include_router(requests.router)
app.include_router(clipboard.router)
app.include_router(environments.router)
app.include_router(execute.router)
app.include_router(transfer.router)
