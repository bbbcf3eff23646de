"""Connection request schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.connection import ConnectionStatus


class ConnectionRequestCreate(BaseModel):
    """Request schema for sending a connection request."""

    recipient_id: str = Field(..., min_length=1, description="Identity of the user to connect with")
    message: str = Field(default="", max_length=200, description="Short note shown to the recipient")

    @field_validator("message", mode="before")
    @classmethod
    def strip_message(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class ConnectionRequestResponse(BaseModel):
    """A directed connection request."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Request id")
    requester_id: str = Field(description="Identity that sent the request")
    recipient_id: str = Field(description="Identity that received the request")
    message: str = Field(default="", description="Request message")
    status: ConnectionStatus = Field(description="Request status")
    created_at: datetime = Field(description="When the request was sent")
    updated_at: datetime | None = Field(default=None, description="Last status change")

    @classmethod
    def from_row(cls, row: dict) -> "ConnectionRequestResponse":
        """Build from a user_connections row."""
        return cls(
            id=row["id"],
            requester_id=row["user_id"],
            recipient_id=row["connected_user_id"],
            message=row.get("message") or "",
            status=row["status"],
            created_at=row["created_at"],
            updated_at=row.get("updated_at"),
        )


class ConnectionListResponse(BaseModel):
    """Identities of the user's accepted connections."""

    connections: list[str] = Field(default_factory=list, description="Peer identities")
