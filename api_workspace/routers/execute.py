"""
Request execution API routes.

Sends a request from the workspace tree: project authorization is
inherited, placeholders are resolved against the active environment of the
request's project and the response is attached to the request node.
"""

from fastapi import APIRouter, Depends

from ..dependencies import get_workspace
from ..exceptions import ErrorResponse, ResourceNotFoundError, execution_exception
from ..schemas.execute import ExecutionError, ResponseSnapshot
from ..services.workspace_store import Workspace


router = APIRouter(prefix="/api/execute", tags=["execute"])


@router.post(
    "/{request_id}",
    response_model=ResponseSnapshot,
    responses={
        200: {"model": ResponseSnapshot, "description": "Successful execution"},
        400: {"model": ErrorResponse, "description": "Invalid URL"},
        502: {"model": ErrorResponse, "description": "Network error"},
        504: {"model": ErrorResponse, "description": "Request timeout"},
    }
)
async def execute_saved_request(request_id: str, workspace: Workspace = Depends(get_workspace)):
    """
    Send a request from the workspace tree by ID.

    A response that arrives after a newer send of the same request has
    started is returned but not attached to the request.

    Args:
        request_id: The unique identifier of the request node
        workspace: Workspace instance

    Returns:
        ResponseSnapshot with status, headers, body, timing and any
        unresolved-variable warnings

    Raises:
        ResourceNotFoundError: 404 if request not found
        ExecutionTimeoutError: 504 if the request timed out
        NetworkError: 502 if the server could not be reached
        BadRequestError: 400 if the URL is invalid
    """
    result = await workspace.send_request(request_id)
    if result is None:
        raise ResourceNotFoundError("Request", request_id)
    if isinstance(result, ExecutionError):
        raise execution_exception(result)
    return result
