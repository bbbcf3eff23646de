"""Connection request business logic service."""

import logging
from datetime import datetime, timezone
from typing import Any, Literal

from supabase import Client

from src.api.middleware.error_handler import AuthorizationError, NotFoundError, ValidationError
from src.core.config import get_settings
from src.core.supabase import get_supabase_client
from src.models.connection import ConnectionStatus
from src.services.chat_service import ChatService
from src.services.profile_store import CONNECTIONS_TABLE, ProfileStore

logger = logging.getLogger(__name__)

Direction = Literal["incoming", "outgoing"]


class ConnectionService:
    """Service for connection requests between users.

    A request is a directed user_connections row (user_id requests
    connected_user_id). Accepting it makes the pair connected and opens
    their chat; rejecting it keeps the row with status rejected.
    """

    def __init__(
        self,
        client: Client | None = None,
        store: ProfileStore | None = None,
        chats: ChatService | None = None,
    ) -> None:
        """Initialize connection service with Supabase client."""
        self.client = client or get_supabase_client()
        self.store = store or ProfileStore(self.client)
        self.chats = chats or ChatService(self.client)
        self.settings = get_settings()

    async def send_request(self, requester_id: str, recipient_id: str, message: str = "") -> dict[str, Any]:
        """Send a connection request.

        Args:
            requester_id: Identity sending the request.
            recipient_id: Identity receiving it.
            message: Optional note for the recipient.

        Returns:
            dict: The created request row.

        Raises:
            ValidationError: On a self-request, an overlong message, or a pair
                that already has a pending or accepted request.
            NotFoundError: If the recipient has no profile.
        """
        if requester_id == recipient_id:
            raise ValidationError("You cannot send a connection request to yourself")

        message = (message or "").strip()
        max_length = self.settings.connection_message_max_length
        if len(message) > max_length:
            raise ValidationError(f"Message cannot exceed {max_length} characters")

        if not await self.store.get_profile(recipient_id):
            raise NotFoundError("User not found")

        for edge in await self._edges_between(requester_id, recipient_id):
            if edge["status"] == ConnectionStatus.ACCEPTED.value:
                raise ValidationError("You are already connected with this user")
            if edge["status"] == ConnectionStatus.PENDING.value:
                raise ValidationError("A connection request between you is already pending")

        response = (
            self.client.table(CONNECTIONS_TABLE)
            .insert({
                "user_id": requester_id,
                "connected_user_id": recipient_id,
                "status": ConnectionStatus.PENDING.value,
                "message": message,
            })
            .execute()
        )
        logger.info("Connection request %s -> %s", requester_id, recipient_id)
        return response.data[0]

    async def get_request(self, request_id: str) -> dict[str, Any] | None:
        response = (
            self.client.table(CONNECTIONS_TABLE)
            .select("*")
            .eq("id", request_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    async def list_requests(
        self,
        user_id: str,
        direction: Direction = "incoming",
        status: ConnectionStatus | None = ConnectionStatus.PENDING,
    ) -> list[dict[str, Any]]:
        """List requests the user received (incoming) or sent (outgoing), newest first."""
        column = "connected_user_id" if direction == "incoming" else "user_id"
        query = (
            self.client.table(CONNECTIONS_TABLE)
            .select("*")
            .eq(column, user_id)
        )
        if status:
            query = query.eq("status", status.value)

        response = query.order("created_at", desc=True).execute()
        return response.data or []

    async def accept_request(self, request_id: str, user_id: str) -> dict[str, Any]:
        """Accept a pending request addressed to user_id and open the pair's chat.

        Returns:
            dict: The updated request row.

        Raises:
            NotFoundError: If the request does not exist.
            AuthorizationError: If user_id is not the recipient.
            ValidationError: If the request is no longer pending.
        """
        request = await self._get_pending_for_recipient(request_id, user_id)
        updated = self._set_status(request_id, ConnectionStatus.ACCEPTED)
        await self.chats.ensure_chat(request["user_id"], request["connected_user_id"])
        logger.info("Connection %s accepted by %s", request_id, user_id)
        return updated

    async def reject_request(self, request_id: str, user_id: str) -> dict[str, Any]:
        """Reject a pending request addressed to user_id."""
        await self._get_pending_for_recipient(request_id, user_id)
        updated = self._set_status(request_id, ConnectionStatus.REJECTED)
        logger.info("Connection %s rejected by %s", request_id, user_id)
        return updated

    async def list_connections(self, user_id: str) -> list[str]:
        """Identities connected to user_id."""
        return await self.store.get_accepted_connections(user_id)

    async def _edges_between(self, user_a: str, user_b: str) -> list[dict[str, Any]]:
        edges: list[dict[str, Any]] = []
        for requester, recipient in ((user_a, user_b), (user_b, user_a)):
            response = (
                self.client.table(CONNECTIONS_TABLE)
                .select("id, user_id, connected_user_id, status")
                .eq("user_id", requester)
                .eq("connected_user_id", recipient)
                .execute()
            )
            edges.extend(response.data or [])
        return edges

    async def _get_pending_for_recipient(self, request_id: str, user_id: str) -> dict[str, Any]:
        request = await self.get_request(request_id)
        if not request:
            raise NotFoundError("Connection request not found")
        if request["connected_user_id"] != user_id:
            raise AuthorizationError("Only the recipient can respond to this request")
        if request["status"] != ConnectionStatus.PENDING.value:
            raise ValidationError(f"Connection request has already been {request['status']}")
        return request

    def _set_status(self, request_id: str, status: ConnectionStatus) -> dict[str, Any]:
        # Only a still-pending row is updated; an empty result means another answer won.
        response = (
            self.client.table(CONNECTIONS_TABLE)
            .update({
                "status": status.value,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            })
            .eq("id", request_id)
            .eq("status", ConnectionStatus.PENDING.value)
            .execute()
        )
        if not response.data:
            raise ValidationError("Connection request has already been answered")
        return response.data[0]
