"""Profile API routes."""

from typing import Annotated

from fastapi import APIRouter, Query

from src.api.deps import CurrentUser, DiscoveryServiceDep, ProfilePipelineDep, ProfileResolverDep
from src.api.middleware.error_handler import ValidationError
from src.models.profile import Gender
from src.schemas.profile import Profile, ProfileSearchFilters, ProfileUpdate, PublicProfile

router = APIRouter(prefix="/profiles", tags=["profiles"])


@router.get(
    "/me",
    response_model=Profile,
    summary="Get current user's profile",
    description="Returns the stored profile, or an incomplete placeholder if none exists yet.",
)
async def get_my_profile(user: CurrentUser, resolver: ProfileResolverDep) -> Profile:
    return await resolver.resolve(user.to_identity())


@router.put(
    "/me",
    response_model=Profile,
    summary="Update current user's profile",
    description="Partial update. Omitted fields are untouched; supplied lists replace the stored ones.",
)
async def update_my_profile(
    data: ProfileUpdate,
    user: CurrentUser,
    pipeline: ProfilePipelineDep,
) -> Profile:
    """Update the authenticated user's profile.

    The profile row is created on first write, seeded from the account's
    name and avatar.

    Args:
        data: Fields to update.
        user: The authenticated user context.

    Returns:
        Profile: The reloaded profile.
    """
    return await pipeline.apply(user.to_identity(), data)


@router.post(
    "/me/complete",
    response_model=Profile,
    summary="Complete profile setup",
    description="Apply the update and require name, location and school or job to be filled in.",
)
async def complete_my_profile(
    data: ProfileUpdate,
    user: CurrentUser,
    pipeline: ProfilePipelineDep,
) -> Profile:
    profile = await pipeline.apply(user.to_identity(), data)
    if not profile.profile_complete:
        raise ValidationError("Name, location and school or job are required to complete the profile")
    return profile


@router.get(
    "",
    response_model=list[PublicProfile],
    summary="Search profiles",
    description="Find other users by location, skills, interests, gender and age.",
)
async def search_profiles(
    user: CurrentUser,
    discovery: DiscoveryServiceDep,
    location: str | None = Query(default=None, description="Substring of the location"),
    skills_to_teach: Annotated[list[str], Query()] = [],
    skills_to_learn: Annotated[list[str], Query()] = [],
    interests: Annotated[list[str], Query()] = [],
    gender: Gender | None = Query(default=None),
    min_age: int | None = Query(default=None, ge=0),
    max_age: int | None = Query(default=None, ge=0),
    limit: int = Query(default=50, ge=1, le=200),
) -> list[PublicProfile]:
    filters = ProfileSearchFilters(
        location=location,
        skills_to_teach=skills_to_teach,
        skills_to_learn=skills_to_learn,
        interests=interests,
        gender=gender,
        min_age=min_age,
        max_age=max_age,
        limit=limit,
    )
    return await discovery.search_profiles(str(user.user_id), filters)


@router.get(
    "/{user_id}",
    response_model=PublicProfile,
    summary="Get a user's public profile",
)
async def get_profile(user_id: str, user: CurrentUser, discovery: DiscoveryServiceDep) -> PublicProfile:
    return await discovery.get_public_profile(user_id)
