"""Data access for profile rows and their dependent sub-collections."""

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import Client

from src.core.supabase import get_supabase_client
from src.models.connection import ConnectionStatus
from src.schemas.profile import Skill

logger = logging.getLogger(__name__)

PROFILES_TABLE = "user_profiles"
TAUGHT_SKILLS_TABLE = "user_skills_teach"
LEARN_SKILLS_TABLE = "user_skills_learn"
INTERESTS_TABLE = "user_interests"
CONNECTIONS_TABLE = "user_connections"


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so value only matches itself."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ProfileStore:
    """Thin wrapper over the profile tables.

    Every method is one or a few PostgREST round-trips; errors from the
    client propagate to the caller.
    """

    def __init__(self, client: Client | None = None) -> None:
        """Initialize store with the shared Supabase client unless one is given."""
        self.client = client or get_supabase_client()

    async def get_profile(self, user_id: str) -> dict[str, Any] | None:
        """Get a profile row by identity.

        Args:
            user_id: The auth user id.

        Returns:
            dict | None: The profile row or None if not found.
        """
        response = (
            self.client.table(PROFILES_TABLE)
            .select("*")
            .eq("id", user_id)
            .limit(1)
            .execute()
        )
        return response.data[0] if response.data else None

    async def find_profile_by_email(self, email: str) -> dict[str, Any] | None:
        """Get a profile row by email address (case-insensitive, exact)."""
        email = email.strip()
        response = (
            self.client.table(PROFILES_TABLE)
            .select("id, email")
            .ilike("email", escape_like(email))
            .limit(5)
            .execute()
        )
        for row in response.data or []:
            if (row.get("email") or "").lower() == email.lower():
                return row
        return None

    async def upsert_profile(self, user_id: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Create the profile row or merge fields into the existing one.

        Columns not present in fields are left as they are.

        Args:
            user_id: The auth user id.
            fields: Column values to write.

        Returns:
            dict: The written row.
        """
        row = {
            **fields,
            "id": user_id,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        response = (
            self.client.table(PROFILES_TABLE)
            .upsert(row, on_conflict="id")
            .execute()
        )
        return response.data[0]

    async def list_profiles(self, limit: int = 200) -> list[dict[str, Any]]:
        """List profile rows, newest first."""
        response = (
            self.client.table(PROFILES_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
        return response.data or []

    async def list_taught_skills(self, user_id: str) -> list[Skill]:
        rows = await self._list_rows(TAUGHT_SKILLS_TABLE, user_id)
        return [
            Skill(
                name=row["skill_name"],
                rating=row.get("rating") or 1,
                description=row.get("description") or "",
            )
            for row in rows
        ]

    async def list_learn_skills(self, user_id: str) -> list[str]:
        rows = await self._list_rows(LEARN_SKILLS_TABLE, user_id)
        return [row["skill_name"] for row in rows]

    async def list_interests(self, user_id: str) -> list[str]:
        rows = await self._list_rows(INTERESTS_TABLE, user_id)
        return [row["interest_name"] for row in rows]

    async def replace_taught_skills(self, user_id: str, skills: list[Skill]) -> None:
        """Replace every taught skill of user_id with skills."""
        rows = [
            {
                "user_id": user_id,
                "skill_name": skill.name,
                "rating": skill.rating,
                "description": skill.description,
            }
            for skill in skills
        ]
        await self._replace_rows(TAUGHT_SKILLS_TABLE, user_id, rows)

    async def replace_learn_skills(self, user_id: str, skills: list[str]) -> None:
        """Replace every wanted skill of user_id with skills."""
        rows = [{"user_id": user_id, "skill_name": skill} for skill in skills]
        await self._replace_rows(LEARN_SKILLS_TABLE, user_id, rows)

    async def replace_interests(self, user_id: str, interests: list[str]) -> None:
        """Replace every interest of user_id with interests."""
        rows = [{"user_id": user_id, "interest_name": interest} for interest in interests]
        await self._replace_rows(INTERESTS_TABLE, user_id, rows)

    async def get_accepted_connections(self, user_id: str) -> list[str]:
        """Identities on the other side of every accepted edge touching user_id."""
        response = (
            self.client.table(CONNECTIONS_TABLE)
            .select("user_id, connected_user_id")
            .or_(f"user_id.eq.{user_id},connected_user_id.eq.{user_id}")
            .eq("status", ConnectionStatus.ACCEPTED.value)
            .execute()
        )

        peers: list[str] = []
        for row in response.data or []:
            peer = row["connected_user_id"] if row["user_id"] == user_id else row["user_id"]
            if peer not in peers:
                peers.append(peer)
        return peers

    async def get_pending_request_ids(self, user_id: str) -> tuple[list[str], list[str]]:
        """Ids of pending requests as (incoming, outgoing)."""
        response = (
            self.client.table(CONNECTIONS_TABLE)
            .select("id, user_id, connected_user_id")
            .or_(f"user_id.eq.{user_id},connected_user_id.eq.{user_id}")
            .eq("status", ConnectionStatus.PENDING.value)
            .order("created_at", desc=True)
            .execute()
        )

        incoming: list[str] = []
        outgoing: list[str] = []
        for row in response.data or []:
            if row["connected_user_id"] == user_id:
                incoming.append(row["id"])
            else:
                outgoing.append(row["id"])
        return incoming, outgoing

    async def _list_rows(self, table: str, user_id: str) -> list[dict[str, Any]]:
        response = (
            self.client.table(table)
            .select("*")
            .eq("user_id", user_id)
            .order("created_at")
            .execute()
        )
        return response.data or []

    async def _replace_rows(self, table: str, user_id: str, rows: list[dict[str, Any]]) -> None:
        """Swap a sub-collection by inserting the new rows before deleting the old ones.

        A failed insert leaves the previous rows untouched. A failed delete
        leaves both generations in place, which the next replace cleans up.
        """
        existing = (
            self.client.table(table)
            .select("id")
            .eq("user_id", user_id)
            .execute()
        )
        old_ids = [row["id"] for row in existing.data or []]

        if rows:
            self.client.table(table).insert(rows).execute()

        if old_ids:
            try:
                self.client.table(table).delete().in_("id", old_ids).execute()
            except Exception:
                logger.error(
                    "Replaced %s for %s but could not delete %d previous rows",
                    table,
                    user_id,
                    len(old_ids),
                )
                raise
