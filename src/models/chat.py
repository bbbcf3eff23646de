"""Chat and message row type definitions."""

from typing import TypedDict


class ChatRow(TypedDict):
    """chats table row representation.

    participant_a sorts before participant_b; the pair is unique.
    """

    id: str
    participant_a: str
    participant_b: str
    created_at: str
    last_message_at: str | None


class ChatMessageRow(TypedDict):
    """chat_messages table row representation."""

    id: str
    chat_id: str
    sender_id: str
    recipient_id: str
    content: str
    read: bool
    created_at: str
