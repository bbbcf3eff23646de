"""Profile table row type definitions for database operations."""

from enum import Enum
from typing import TypedDict


class Gender(str, Enum):
    """Gender values matching the user_profiles check constraint."""

    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class UserProfileRow(TypedDict):
    """user_profiles table row representation.

    The primary key is the auth provider's user id.
    """

    id: str
    email: str
    name: str
    date_of_birth: str | None
    gender: str | None
    school_or_job: str | None
    location: str | None
    bio: str | None
    profile_image: str | None
    created_at: str
    updated_at: str


class UserProfileWrite(TypedDict, total=False):
    """Columns accepted by an upsert into user_profiles."""

    id: str
    email: str
    name: str
    date_of_birth: str | None
    gender: str | None
    school_or_job: str | None
    location: str | None
    bio: str | None
    profile_image: str | None
    updated_at: str


class TaughtSkillRow(TypedDict):
    """user_skills_teach table row representation."""

    id: str
    user_id: str
    skill_name: str
    rating: int
    description: str
    created_at: str


class LearnSkillRow(TypedDict):
    """user_skills_learn table row representation."""

    id: str
    user_id: str
    skill_name: str
    created_at: str


class InterestRow(TypedDict):
    """user_interests table row representation."""

    id: str
    user_id: str
    interest_name: str
    created_at: str
