"""
Identity allocation for workspace nodes.

Every project, folder, request, environment and variable gets an opaque
identifier that is unique for the lifetime of the process.
"""

import uuid


def new_id() -> str:
    """Return a fresh globally unique identifier."""
    return str(uuid.uuid4())
