"""Profile discovery: search other users by location, skills and interests."""

import logging
from datetime import date
from typing import Any

from src.api.middleware.error_handler import NotFoundError
from src.schemas.profile import ProfileSearchFilters, PublicProfile
from src.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)


def age_on(date_of_birth: date | str | None, today: date | None = None) -> int | None:
    """Whole years between date_of_birth and today."""
    if not date_of_birth:
        return None
    if isinstance(date_of_birth, str):
        date_of_birth = date.fromisoformat(date_of_birth[:10])
    today = today or date.today()
    had_birthday = (today.month, today.day) >= (date_of_birth.month, date_of_birth.day)
    return today.year - date_of_birth.year - (0 if had_birthday else 1)


def _matches_any(values: list[str], wanted: list[str]) -> bool:
    """True when some value contains some wanted term, ignoring case."""
    terms = [term.strip().lower() for term in wanted if term.strip()]
    if not terms:
        return True
    lowered = [value.lower() for value in values]
    return any(term in value for term in terms for value in lowered)


class DiscoveryService:
    """Read-only search over other users' public profiles."""

    # Candidate rows scanned per search before sub-collection filters apply.
    SCAN_LIMIT = 500

    def __init__(self, store: ProfileStore | None = None) -> None:
        self.store = store or ProfileStore()

    async def search_profiles(self, viewer_id: str, filters: ProfileSearchFilters) -> list[PublicProfile]:
        """Find profiles matching every supplied filter.

        The viewer is never included. Location is a case-insensitive
        substring match; each list filter matches when any of its terms is
        a substring of any entry in the corresponding profile collection.

        Args:
            viewer_id: Identity of the user searching.
            filters: Search filters.

        Returns:
            list[PublicProfile]: Matches, newest profiles first.
        """
        rows = await self.store.list_profiles(limit=self.SCAN_LIMIT)
        results: list[PublicProfile] = []

        for row in rows:
            if row["id"] == viewer_id or not self._row_matches(row, filters):
                continue

            profile = await self._build_public(row)
            if not _matches_any([skill.name for skill in profile.skills_to_teach], filters.skills_to_teach):
                continue
            if not _matches_any(profile.skills_to_learn, filters.skills_to_learn):
                continue
            if not _matches_any(profile.interests, filters.interests):
                continue

            results.append(profile)
            if len(results) >= filters.limit:
                break

        logger.debug("Discovery search by %s returned %d profiles", viewer_id, len(results))
        return results

    async def get_public_profile(self, user_id: str) -> PublicProfile:
        """Public view of one user's profile.

        Raises:
            NotFoundError: If the user has no profile.
        """
        row = await self.store.get_profile(user_id)
        if not row:
            raise NotFoundError("Profile not found")
        return await self._build_public(row)

    def _row_matches(self, row: dict[str, Any], filters: ProfileSearchFilters) -> bool:
        if filters.location:
            if filters.location.strip().lower() not in (row.get("location") or "").lower():
                return False
        if filters.gender and row.get("gender") != filters.gender.value:
            return False
        if filters.min_age is not None or filters.max_age is not None:
            age = age_on(row.get("date_of_birth"))
            if age is None:
                return False
            if filters.min_age is not None and age < filters.min_age:
                return False
            if filters.max_age is not None and age > filters.max_age:
                return False
        return True

    async def _build_public(self, row: dict[str, Any]) -> PublicProfile:
        user_id = row["id"]
        return PublicProfile(
            id=user_id,
            name=row.get("name") or "",
            date_of_birth=row.get("date_of_birth") or None,
            gender=row.get("gender") or None,
            school_or_job=row.get("school_or_job") or "",
            location=row.get("location") or "",
            bio=row.get("bio") or "",
            profile_image=row.get("profile_image"),
            skills_to_teach=await self.store.list_taught_skills(user_id),
            skills_to_learn=await self.store.list_learn_skills(user_id),
            interests=await self.store.list_interests(user_id),
            created_at=row.get("created_at"),
            age=age_on(row.get("date_of_birth")),
        )
