"""
FastAPI dependencies shared by the routers.
"""

from fastapi import Request

from .services.workspace_store import Workspace


def get_workspace(request: Request) -> Workspace:
    """
    Dependency function that returns the application's workspace.

    The workspace is created by the application lifespan and stored on
    ``app.state``. Tests override this dependency to use their own instance.
    """
    return request.app.state.workspace
