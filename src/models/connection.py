"""Connection request row type definitions."""

from enum import Enum
from typing import TypedDict


class ConnectionStatus(str, Enum):
    """Connection request status values matching database enum."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ConnectionRow(TypedDict):
    """user_connections table row representation.

    user_id is the requester, connected_user_id the recipient.
    """

    id: str
    user_id: str
    connected_user_id: str
    status: str
    message: str
    created_at: str
    updated_at: str
