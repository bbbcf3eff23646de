"""Resolve an authenticated identity into the profile shown to the client."""

import logging
from typing import Any

from src.schemas.auth import AuthIdentity
from src.schemas.profile import Profile
from src.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)


class ProfileResolver:
    """Builds Profile objects from the store, degrading to a placeholder.

    Resolution never raises: a missing row or a failing store both produce
    the "needs setup" placeholder so the client can always reach profile
    setup.
    """

    def __init__(self, store: ProfileStore | None = None) -> None:
        self.store = store or ProfileStore()

    async def resolve(self, identity: AuthIdentity) -> Profile:
        """Load the full profile for identity.

        Args:
            identity: The authenticated identity.

        Returns:
            Profile: The stored profile with its sub-collections, or a
            placeholder built from auth metadata when no row exists or the
            store could not be read.
        """
        try:
            row = await self.store.get_profile(identity.user_id)
            if row is None:
                logger.info("No profile row for %s, using placeholder", identity.user_id)
                return self.build_placeholder(identity)
            return await self._assemble(row)
        except Exception:
            logger.exception("Profile fetch failed for %s, using placeholder", identity.user_id)
            return self.build_placeholder(identity)

    def build_placeholder(self, identity: AuthIdentity) -> Profile:
        """Minimal unsaved profile from auth metadata; always incomplete."""
        return Profile(
            id=identity.user_id,
            email=identity.email,
            name=identity.display_name,
            profile_image=identity.avatar_url,
        )

    async def _assemble(self, row: dict[str, Any]) -> Profile:
        user_id = row["id"]
        skills_to_teach = await self.store.list_taught_skills(user_id)
        skills_to_learn = await self.store.list_learn_skills(user_id)
        interests = await self.store.list_interests(user_id)
        connections = await self.store.get_accepted_connections(user_id)
        pending_requests, sent_requests = await self.store.get_pending_request_ids(user_id)

        return Profile(
            id=user_id,
            email=row.get("email"),
            name=row.get("name") or "",
            date_of_birth=row.get("date_of_birth") or None,
            gender=row.get("gender") or None,
            school_or_job=row.get("school_or_job") or "",
            location=row.get("location") or "",
            bio=row.get("bio") or "",
            profile_image=row.get("profile_image"),
            skills_to_teach=skills_to_teach,
            skills_to_learn=skills_to_learn,
            interests=interests,
            connections=connections,
            pending_requests=pending_requests,
            sent_requests=sent_requests,
            created_at=row.get("created_at"),
        )
