"""
Runtime configuration for the API Workspace.

Every setting is a module-level constant that can be overridden through an
environment variable of the same name prefixed with ``API_WORKSPACE_``.
"""

import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


# SQLite database URL - file-based storage for workspace snapshots
DATABASE_URL = os.environ.get("API_WORKSPACE_DATABASE_URL", "sqlite:///./api_workspace.db")

# Default request timeout in milliseconds for newly created requests
DEFAULT_TIMEOUT_MS = int(os.environ.get("API_WORKSPACE_DEFAULT_TIMEOUT_MS", "30000"))

# Number of entries kept in a project's recent-requests list
MAX_RECENT_REQUESTS = int(os.environ.get("API_WORKSPACE_MAX_RECENT_REQUESTS", "10"))

# Name given to the project synthesized when the workspace would otherwise be empty
DEFAULT_PROJECT_NAME = os.environ.get("API_WORKSPACE_DEFAULT_PROJECT_NAME", "My Project")

LOG_LEVEL = os.environ.get("API_WORKSPACE_LOG_LEVEL", "INFO")

# Save a snapshot after every committed mutation
AUTOSAVE = _env_bool("API_WORKSPACE_AUTOSAVE", True)
