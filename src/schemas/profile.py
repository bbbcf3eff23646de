"""Profile Pydantic schemas for API request/response models."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator

from src.models.profile import Gender

# Columns of user_profiles that a partial update may touch directly.
SCALAR_FIELDS = (
    "name",
    "date_of_birth",
    "gender",
    "school_or_job",
    "location",
    "bio",
    "profile_image",
)
COLLECTION_FIELDS = ("skills_to_teach", "skills_to_learn", "interests")


def is_profile_complete(name: str | None, location: str | None, school_or_job: str | None) -> bool:
    """Return True when every required profile field has non-blank content."""
    return all((value or "").strip() for value in (name, location, school_or_job))


def unique_labels(values: list[str]) -> list[str]:
    """Trim labels, drop blanks and keep the first occurrence of each."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        label = value.strip()
        if label and label not in seen:
            seen.add(label)
            result.append(label)
    return result


class Skill(BaseModel):
    """A skill the user can teach, with a self-assessed rating."""

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(..., min_length=1, max_length=100, description="Skill name")
    rating: int = Field(default=1, ge=1, le=5, description="Self-assessed rating from 1 to 5")
    description: str = Field(default="", max_length=500, description="What the user can teach")

    @field_validator("name", "description", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class ProfileBase(BaseModel):
    """Fields shared by the owner's profile and its public view."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(description="Auth user id owning the profile")
    name: str = Field(default="", description="Display name")
    date_of_birth: date | None = Field(default=None, description="Date of birth")
    gender: Gender | None = Field(default=None, description="Gender")
    school_or_job: str = Field(default="", description="School or job")
    location: str = Field(default="", description="Free-text location")
    bio: str = Field(default="", description="Free-text bio")
    profile_image: str | None = Field(default=None, description="Profile image reference")
    skills_to_teach: list[Skill] = Field(default_factory=list, description="Skills the user teaches")
    skills_to_learn: list[str] = Field(default_factory=list, description="Skills the user wants to learn")
    interests: list[str] = Field(default_factory=list, description="Interests")
    created_at: datetime | None = Field(default=None, description="Profile creation timestamp")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def profile_complete(self) -> bool:
        """Whether name, location and school_or_job are all filled in."""
        return is_profile_complete(self.name, self.location, self.school_or_job)


class Profile(ProfileBase):
    """The signed-in user's own profile."""

    email: str | None = Field(default=None, description="User email address")
    connections: list[str] = Field(default_factory=list, description="Identities of accepted connections")
    pending_requests: list[str] = Field(default_factory=list, description="Ids of incoming pending requests")
    sent_requests: list[str] = Field(default_factory=list, description="Ids of outgoing pending requests")


class PublicProfile(ProfileBase):
    """Profile as shown to other users."""

    age: int | None = Field(default=None, description="Age in whole years, if date of birth is known")


class ProfileUpdate(BaseModel):
    """Partial profile update.

    A field left out of the payload is not touched. A nullable field sent
    as null is cleared. Which fields were supplied is read from
    model_fields_set.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=255)
    date_of_birth: date | None = None
    gender: Gender | None = None
    school_or_job: str | None = Field(default=None, max_length=255)
    location: str | None = Field(default=None, max_length=255)
    bio: str | None = Field(default=None, max_length=2000)
    profile_image: str | None = None
    skills_to_teach: list[Skill] | None = None
    skills_to_learn: list[str] | None = None
    interests: list[str] | None = None

    @field_validator("name", "school_or_job", "location", "bio", mode="before")
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("skills_to_learn", "interests")
    @classmethod
    def dedupe_labels(cls, value: list[str] | None) -> list[str] | None:
        return unique_labels(value) if value is not None else None

    @model_validator(mode="after")
    def check_required_name(self) -> "ProfileUpdate":
        if "name" in self.model_fields_set and not self.name:
            raise ValueError("name cannot be cleared")
        return self

    def scalar_changes(self) -> dict[str, Any]:
        """Column values for the supplied scalar fields, ready for the store."""
        changes: dict[str, Any] = {}
        for field in SCALAR_FIELDS:
            if field not in self.model_fields_set:
                continue
            value = getattr(self, field)
            if isinstance(value, date):
                value = value.isoformat()
            elif isinstance(value, Gender):
                value = value.value
            changes[field] = value
        return changes

    def collection_changes(self) -> dict[str, list[Any]]:
        """Replacement sets for the supplied sub-collections; null means empty."""
        return {
            field: list(getattr(self, field) or [])
            for field in COLLECTION_FIELDS
            if field in self.model_fields_set
        }


class ProfileSearchFilters(BaseModel):
    """Discovery filters; every supplied filter must match."""

    location: str | None = Field(default=None, description="Substring of the location")
    skills_to_teach: list[str] = Field(default_factory=list, description="Any taught skill matching one of these")
    skills_to_learn: list[str] = Field(default_factory=list, description="Any wanted skill matching one of these")
    interests: list[str] = Field(default_factory=list, description="Any interest matching one of these")
    gender: Gender | None = Field(default=None, description="Exact gender")
    min_age: int | None = Field(default=None, ge=0, description="Minimum age in years")
    max_age: int | None = Field(default=None, ge=0, description="Maximum age in years")
    limit: int = Field(default=50, ge=1, le=200, description="Maximum number of results")
