"""Connection request API routes."""

from typing import Literal

from fastapi import APIRouter, Query, status

from src.api.deps import ConnectionServiceDep, CurrentUser
from src.models.connection import ConnectionStatus
from src.schemas.connection import (
    ConnectionListResponse,
    ConnectionRequestCreate,
    ConnectionRequestResponse,
)

router = APIRouter(prefix="/connections", tags=["connections"])


@router.post(
    "/requests",
    response_model=ConnectionRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send connection request",
)
async def send_request(
    data: ConnectionRequestCreate,
    user: CurrentUser,
    service: ConnectionServiceDep,
) -> ConnectionRequestResponse:
    """Send a connection request to another user.

    Raises:
        ValidationError: Self-request, or the pair already has a pending or
            accepted request.
        NotFoundError: The recipient has no profile.
    """
    row = await service.send_request(str(user.user_id), data.recipient_id, data.message)
    return ConnectionRequestResponse.from_row(row)


@router.get(
    "/requests",
    response_model=list[ConnectionRequestResponse],
    summary="List connection requests",
    description="Requests received (incoming) or sent (outgoing), pending by default.",
)
async def list_requests(
    user: CurrentUser,
    service: ConnectionServiceDep,
    direction: Literal["incoming", "outgoing"] = Query(default="incoming"),
    request_status: ConnectionStatus | None = Query(default=ConnectionStatus.PENDING, alias="status"),
) -> list[ConnectionRequestResponse]:
    rows = await service.list_requests(str(user.user_id), direction, request_status)
    return [ConnectionRequestResponse.from_row(row) for row in rows]


@router.post(
    "/requests/{request_id}/accept",
    response_model=ConnectionRequestResponse,
    summary="Accept connection request",
    description="Only the recipient can accept. Opens a chat between the two users.",
)
async def accept_request(
    request_id: str,
    user: CurrentUser,
    service: ConnectionServiceDep,
) -> ConnectionRequestResponse:
    row = await service.accept_request(request_id, str(user.user_id))
    return ConnectionRequestResponse.from_row(row)


@router.post(
    "/requests/{request_id}/reject",
    response_model=ConnectionRequestResponse,
    summary="Reject connection request",
)
async def reject_request(
    request_id: str,
    user: CurrentUser,
    service: ConnectionServiceDep,
) -> ConnectionRequestResponse:
    row = await service.reject_request(request_id, str(user.user_id))
    return ConnectionRequestResponse.from_row(row)


@router.get(
    "",
    response_model=ConnectionListResponse,
    summary="List connections",
)
async def list_connections(user: CurrentUser, service: ConnectionServiceDep) -> ConnectionListResponse:
    connections = await service.list_connections(str(user.user_id))
    return ConnectionListResponse(connections=connections)
