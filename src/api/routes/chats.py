"""Chat API routes."""

from fastapi import APIRouter, Query, status

from src.api.deps import ChatServiceDep, CurrentUser
from src.schemas.chat import ChatResponse, MarkReadResponse, MessageCreate, MessageResponse

router = APIRouter(prefix="/chats", tags=["chats"])


@router.get(
    "",
    response_model=list[ChatResponse],
    summary="List chats",
    description="The user's chats, most recent activity first, with unread counts.",
)
async def list_chats(user: CurrentUser, service: ChatServiceDep) -> list[ChatResponse]:
    return await service.list_chats(str(user.user_id))


@router.get(
    "/{chat_id}/messages",
    response_model=list[MessageResponse],
    summary="List messages",
)
async def list_messages(
    chat_id: str,
    user: CurrentUser,
    service: ChatServiceDep,
    limit: int = Query(default=100, ge=1, le=500),
) -> list[MessageResponse]:
    rows = await service.list_messages(chat_id, str(user.user_id), limit=limit)
    return [MessageResponse(**row) for row in rows]


@router.post(
    "/{chat_id}/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send message",
)
async def send_message(
    chat_id: str,
    data: MessageCreate,
    user: CurrentUser,
    service: ChatServiceDep,
) -> MessageResponse:
    row = await service.send_message(chat_id, str(user.user_id), data.content)
    return MessageResponse(**row)


@router.post(
    "/{chat_id}/read",
    response_model=MarkReadResponse,
    summary="Mark chat as read",
)
async def mark_read(chat_id: str, user: CurrentUser, service: ChatServiceDep) -> MarkReadResponse:
    updated = await service.mark_read(chat_id, str(user.user_id))
    return MarkReadResponse(updated=updated)
