"""Apply partial profile updates, creating the profile row on first write."""

import logging

from src.api.middleware.error_handler import ProfileUpdateError
from src.schemas.auth import AuthIdentity
from src.schemas.profile import Profile, ProfileUpdate
from src.services.profile_resolver import ProfileResolver
from src.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)


class ProfileMutationPipeline:
    """Writes a ProfileUpdate to the store and returns the reloaded profile."""

    def __init__(
        self,
        store: ProfileStore | None = None,
        resolver: ProfileResolver | None = None,
    ) -> None:
        self.store = store or ProfileStore()
        self.resolver = resolver or ProfileResolver(self.store)

    async def apply(self, identity: AuthIdentity, update: ProfileUpdate) -> Profile:
        """Apply update for identity.

        Scalar fields present in the update are merged into the profile row
        (the row is created first if missing, seeded from the auth identity).
        Each sub-collection present in the update is replaced as a whole.
        Steps already written are kept if a later step fails.

        Args:
            identity: The authenticated identity being edited.
            update: The partial update.

        Returns:
            Profile: The reloaded profile, completeness re-derived.

        Raises:
            ProfileUpdateError: If any store call fails.
        """
        user_id = identity.user_id
        step = "load profile"
        try:
            existing = await self.store.get_profile(user_id)
            fields = update.scalar_changes()

            if existing is None:
                step = "create profile"
                seed = {
                    "email": identity.email or "",
                    "name": identity.display_name,
                    "profile_image": identity.avatar_url,
                }
                await self.store.upsert_profile(user_id, {**seed, **fields})
                logger.info("Created profile for %s", user_id)
            elif fields:
                step = "update profile"
                await self.store.upsert_profile(user_id, fields)

            collections = update.collection_changes()
            if "skills_to_teach" in collections:
                step = "replace taught skills"
                await self.store.replace_taught_skills(user_id, collections["skills_to_teach"])
            if "skills_to_learn" in collections:
                step = "replace learn skills"
                await self.store.replace_learn_skills(user_id, collections["skills_to_learn"])
            if "interests" in collections:
                step = "replace interests"
                await self.store.replace_interests(user_id, collections["interests"])

        except Exception as e:
            logger.error("Profile update for %s failed at step '%s': %s", user_id, step, e)
            raise ProfileUpdateError(f"Profile update failed while trying to {step}") from e

        return await self.resolver.resolve(identity)
