# Platform Integrations - Connections Router
"""
API endpoints for platform connections and their project data.

Every endpoint is scoped to the authenticated user; a connection id owned
by someone else behaves exactly like a missing one (404).
"""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from platform_integrations.auth import get_current_user_id
from platform_integrations.dependencies import get_connection_handler
from platform_integrations.errors import ConnectionNotFoundError, ErrorCode
from platform_integrations.handlers import ConnectionHandler
from platform_integrations.models.requests import ConfigTestRequest, CreateConnectionRequest
from platform_integrations.models.responses import (
    ConnectionResponse,
    ConnectionTestResponse,
    DeleteResponse,
    ProjectsResponse,
    SyncResponse,
)
from platform_integrations.platforms.factory import get_supported_platforms

router = APIRouter(prefix="/connections", tags=["connections"])

ERROR_STATUS_CODES = {
    ErrorCode.AUTHENTICATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.CONNECTION_NOT_FOUND: 404,
    ErrorCode.CONFIGURATION_ERROR: 400,
    ErrorCode.DECRYPTION_ERROR: 400,
    ErrorCode.CONNECTION_INACTIVE: 400,
    ErrorCode.UPSTREAM_UNAVAILABLE: 502,
    ErrorCode.TRANSFORMATION_ERROR: 500,
    ErrorCode.UNKNOWN_ERROR: 500,
}


def http_status_for(error_code: ErrorCode) -> int:
    return ERROR_STATUS_CODES.get(error_code, 500)


@router.get("", response_model=list[ConnectionResponse])
async def list_connections(
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """List the user's connections (credentials are never returned)."""
    return [ConnectionResponse.from_connection(c) for c in handler.list_connections(user_id)]


@router.post("", response_model=ConnectionResponse, status_code=201)
async def create_connection(
    request: CreateConnectionRequest,
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Create a connection and test it immediately."""
    connection = await handler.create_connection(
        user_id,
        request.name,
        request.platform.value,
        request.config,
        metadata=request.metadata,
    )
    return ConnectionResponse.from_connection(connection)


@router.get("/platforms")
async def list_platforms(user_id: str = Depends(get_current_user_id)):
    """List supported platforms."""
    return {"platforms": get_supported_platforms()}


@router.get("/platforms/{platform}/info")
async def platform_info(
    platform: str,
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Capabilities and API details for one platform."""
    return handler.get_platform_info(platform)


@router.post("/test-config", response_model=ConnectionTestResponse)
async def test_config(
    request: ConfigTestRequest,
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Test credentials without saving them."""
    result = await handler.test_connection_config(request.platform.value, request.config)
    return ConnectionTestResponse(**result.to_dict())


@router.get("/{connection_id}", response_model=ConnectionResponse)
async def get_connection(
    connection_id: str,
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Get one connection."""
    connection = handler.get_connection(user_id, connection_id)
    if connection is None:
        raise ConnectionNotFoundError()
    return ConnectionResponse.from_connection(connection)


@router.post("/{connection_id}/test", response_model=ConnectionTestResponse)
async def test_connection(
    connection_id: str,
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Re-test a stored connection and update its status."""
    result = await handler.test_connection(user_id, connection_id)
    return ConnectionTestResponse(**result.to_dict())


@router.post("/{connection_id}/sync", response_model=SyncResponse)
async def sync_connection(
    connection_id: str,
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Re-test and re-fetch a connection, refreshing its project count."""
    result = await handler.sync_connection(user_id, connection_id)
    return SyncResponse(
        success=result.success,
        status=result.status,
        message=result.message,
        project_count=result.project_count,
        last_sync=result.last_sync,
    )


@router.get("/{connection_id}/health")
async def connection_health(
    connection_id: str,
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Check credentials, configuration and upstream reachability."""
    return await handler.health_check(user_id, connection_id)


@router.delete("/{connection_id}", response_model=DeleteResponse)
async def delete_connection(
    connection_id: str,
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Delete a connection and its stored credentials."""
    handler.delete_connection(user_id, connection_id)
    return DeleteResponse(message="Connection deleted successfully")


@router.get("/{connection_id}/projects", response_model=ProjectsResponse)
async def get_projects(
    connection_id: str,
    project_id: str | None = Query(default=None, alias="projectId"),
    user_id: str = Depends(get_current_user_id),
    handler: ConnectionHandler = Depends(get_connection_handler),
):
    """Fetch canonical project data for a connection."""
    result = await handler.get_project_data_result(user_id, connection_id, project_id)
    if not result.success:
        return JSONResponse(
            status_code=http_status_for(result.error_code),
            content={
                "success": False,
                "message": result.message,
                "errorCode": result.error_code.value,
            },
        )

    connection = handler.get_connection(user_id, connection_id)
    return ProjectsResponse(
        projects=[project.to_dict() for project in result.projects],
        total_count=len(result.projects),
        connection={"id": connection.id, "name": connection.name, "platform": connection.platform},
        timestamp=datetime.utcnow(),
    )
