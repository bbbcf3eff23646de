"""Chat and message schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageCreate(BaseModel):
    """Request schema for sending a chat message."""

    content: str = Field(..., min_length=1, max_length=2000, description="Message text")

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class MessageResponse(BaseModel):
    """A single chat message."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Message id")
    chat_id: str = Field(description="Chat the message belongs to")
    sender_id: str = Field(description="Sender identity")
    recipient_id: str = Field(description="Recipient identity")
    content: str = Field(description="Message text")
    read: bool = Field(default=False, description="Whether the recipient has read it")
    created_at: datetime = Field(description="When the message was sent")


class ChatResponse(BaseModel):
    """A chat between two connected users."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Chat id")
    participants: list[str] = Field(description="Both participant identities, sorted")
    created_at: datetime = Field(description="When the chat was opened")
    last_message: MessageResponse | None = Field(default=None, description="Most recent message")
    unread_count: int = Field(default=0, description="Messages addressed to the viewer and not yet read")


class MarkReadResponse(BaseModel):
    """Result of marking a chat as read."""

    updated: int = Field(description="Number of messages marked read")
