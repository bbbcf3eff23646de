"""Chat business logic service."""

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from src.api.middleware.error_handler import AuthorizationError, NotFoundError, ValidationError
from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.schemas.chat import ChatResponse, MessageResponse

logger = logging.getLogger(__name__)

CHATS_TABLE = "chats"
MESSAGES_TABLE = "chat_messages"


def chat_key(user_a: str, user_b: str) -> tuple[str, str]:
    """Sorted participant pair identifying a chat."""
    return (user_a, user_b) if user_a <= user_b else (user_b, user_a)


def other_participant(chat: dict[str, Any], user_id: str) -> str:
    return chat["participant_b"] if chat["participant_a"] == user_id else chat["participant_a"]


class ChatService:
    """Service for chats between connected users and their messages."""

    def __init__(self, client: Client | None = None) -> None:
        """Initialize chat service with Supabase client."""
        self.client = client or get_supabase_client()
        self.settings = get_settings()

    async def get_chat(self, chat_id: str) -> dict[str, Any] | None:
        response = (
            self.client.table(CHATS_TABLE)
            .select("*")
            .eq("id", chat_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    async def get_chat_between(self, user_a: str, user_b: str) -> dict[str, Any] | None:
        """Get the chat for an unordered pair of users.

        Returns:
            dict | None: The chat row or None if the pair has no chat.
        """
        first, second = chat_key(user_a, user_b)
        response = (
            self.client.table(CHATS_TABLE)
            .select("*")
            .eq("participant_a", first)
            .eq("participant_b", second)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    async def ensure_chat(self, user_a: str, user_b: str) -> dict[str, Any]:
        """Get the pair's chat, creating an empty one if it does not exist yet.

        Args:
            user_a: One participant.
            user_b: The other participant.

        Returns:
            dict: The chat row.
        """
        existing = await self.get_chat_between(user_a, user_b)
        if existing:
            return existing

        first, second = chat_key(user_a, user_b)
        response = (
            self.client.table(CHATS_TABLE)
            .insert({"participant_a": first, "participant_b": second})
            .execute()
        )
        logger.info("Opened chat between %s and %s", first, second)
        return response.data[0]

    async def list_chats(self, user_id: str) -> list[ChatResponse]:
        """List the user's chats, most recent activity first.

        Each chat carries its last message and the number of messages
        addressed to user_id that are still unread.
        """
        response = (
            self.client.table(CHATS_TABLE)
            .select("*")
            .or_(f"participant_a.eq.{user_id},participant_b.eq.{user_id}")
            .execute()
        )
        chats = sorted(
            response.data or [],
            key=lambda chat: chat.get("last_message_at") or chat["created_at"],
            reverse=True,
        )

        results = []
        for chat in chats:
            last = (
                self.client.table(MESSAGES_TABLE)
                .select("*")
                .eq("chat_id", chat["id"])
                .order("created_at", desc=True)
                .limit(1)
                .execute()
            )
            unread = (
                self.client.table(MESSAGES_TABLE)
                .select("id")
                .eq("chat_id", chat["id"])
                .eq("recipient_id", user_id)
                .eq("read", False)
                .execute()
            )
            results.append(
                ChatResponse(
                    id=chat["id"],
                    participants=[chat["participant_a"], chat["participant_b"]],
                    created_at=chat["created_at"],
                    last_message=MessageResponse(**last.data[0]) if last.data else None,
                    unread_count=len(unread.data or []),
                )
            )
        return results

    async def send_message(self, chat_id: str, sender_id: str, content: str) -> dict[str, Any]:
        """Append a message to a chat.

        Args:
            chat_id: The chat id.
            sender_id: Identity of the sender; must be a participant.
            content: Message text.

        Returns:
            dict: The created message row.

        Raises:
            NotFoundError: If the chat does not exist.
            AuthorizationError: If the sender is not a participant.
            ValidationError: If the content is blank or too long.
        """
        chat = await self._get_participant_chat(chat_id, sender_id)

        content = content.strip()
        if not content:
            raise ValidationError("Message cannot be empty")
        max_length = self.settings.chat_message_max_length
        if len(content) > max_length:
            raise ValidationError(f"Message cannot exceed {max_length} characters")

        response = (
            self.client.table(MESSAGES_TABLE)
            .insert({
                "chat_id": chat_id,
                "sender_id": sender_id,
                "recipient_id": other_participant(chat, sender_id),
                "content": content,
                "read": False,
            })
            .execute()
        )
        message = response.data[0]

        self.client.table(CHATS_TABLE).update(
            {"last_message_at": message.get("created_at") or datetime.now(timezone.utc).isoformat()}
        ).eq("id", chat_id).execute()

        return message

    async def list_messages(self, chat_id: str, user_id: str, limit: int = 100) -> list[dict[str, Any]]:
        """List a chat's messages, oldest first."""
        await self._get_participant_chat(chat_id, user_id)
        response = (
            self.client.table(MESSAGES_TABLE)
            .select("*")
            .eq("chat_id", chat_id)
            .order("created_at")
            .limit(limit)
            .execute()
        )
        return response.data or []

    async def mark_read(self, chat_id: str, user_id: str) -> int:
        """Mark every unread message addressed to user_id in the chat as read.

        Returns:
            int: Number of messages updated.
        """
        await self._get_participant_chat(chat_id, user_id)
        response = (
            self.client.table(MESSAGES_TABLE)
            .update({"read": True})
            .eq("chat_id", chat_id)
            .eq("recipient_id", user_id)
            .eq("read", False)
            .execute()
        )
        return len(response.data or [])

    async def _get_participant_chat(self, chat_id: str, user_id: str) -> dict[str, Any]:
        chat = await self.get_chat(chat_id)
        if not chat:
            raise NotFoundError("Chat not found")
        if user_id not in (chat["participant_a"], chat["participant_b"]):
            raise AuthorizationError("You are not a participant in this chat")
        return chat
