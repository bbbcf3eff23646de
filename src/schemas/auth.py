"""Authentication schemas: identities, session states and auth API payloads."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.profile import Profile


class AuthErrorKind(str, Enum):
    """Fixed failure kinds surfaced by auth operations."""

    ACCOUNT_NOT_FOUND = "account_not_found"
    INCORRECT_PASSWORD = "incorrect_password"
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    DUPLICATE_ACCOUNT = "duplicate_account"
    WEAK_PASSWORD = "weak_password"
    INVALID_EMAIL = "invalid_email"
    PROVIDER_UNAVAILABLE = "provider_unavailable"


class SessionState(str, Enum):
    """Client-visible session states driven by the session controller."""

    LOADING = "loading"
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED_INCOMPLETE = "authenticated_incomplete"
    AUTHENTICATED_COMPLETE = "authenticated_complete"
    EMAIL_CONFIRMATION_PENDING = "email_confirmation_pending"


class SessionEvent(str, Enum):
    """Session-change notifications emitted by the auth provider."""

    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"
    PASSWORD_RECOVERY = "PASSWORD_RECOVERY"


class AuthIdentity(BaseModel):
    """An authenticated identity as reported by the auth provider.

    The user_id is opaque to this service and keys every profile row.
    """

    model_config = ConfigDict(from_attributes=True)

    user_id: str = Field(description="Auth provider user id")
    email: str | None = Field(default=None, description="Email address on the auth account")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Provider user metadata")

    @property
    def display_name(self) -> str:
        """Best-effort display name: metadata name, else the email local part."""
        for key in ("full_name", "name"):
            value = self.metadata.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        if self.email:
            return self.email.split("@", 1)[0]
        return ""

    @property
    def avatar_url(self) -> str | None:
        """Avatar reference from metadata (federated providers set one of these)."""
        for key in ("avatar_url", "picture"):
            value = self.metadata.get(key)
            if isinstance(value, str) and value:
                return value
        return None


class ProviderSession(BaseModel):
    """A live provider session for an identity."""

    identity: AuthIdentity
    access_token: str
    refresh_token: str | None = None
    expires_in: int = 3600


class SignUpResult(BaseModel):
    """Outcome of a provider sign-up."""

    identity: AuthIdentity
    requires_confirmation: bool
    session: ProviderSession | None = None


class UserContext(BaseModel):
    """Authenticated user context extracted from JWT token."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    role: str | None = Field(default=None, description="User's role (e.g., 'authenticated')")
    user_metadata: dict[str, Any] = Field(default_factory=dict, description="Provider user metadata claim")

    def to_identity(self) -> AuthIdentity:
        """Convert the request user into a provider identity."""
        return AuthIdentity(
            user_id=str(self.user_id),
            email=self.email,
            metadata=self.user_metadata,
        )


class TokenPayload(BaseModel):
    """JWT token payload structure for Supabase tokens."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's UUID")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")
    aud: str | list[str] | None = Field(default=None, description="Audience - intended recipient")
    iss: str | None = Field(default=None, description="Issuer - token issuer URL")
    user_metadata: dict[str, Any] = Field(default_factory=dict, description="Provider user metadata")

    @property
    def expiration_datetime(self) -> datetime:
        """Get expiration as datetime object."""
        return datetime.fromtimestamp(self.exp)

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext."""
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            role=self.role,
            user_metadata=self.user_metadata,
        )


class AuthenticatedResponse(BaseModel):
    """Response for authenticated health endpoint."""

    authenticated: bool = Field(default=True, description="Authentication status")
    user_id: str = Field(description="Authenticated user ID")
    email: str | None = Field(default=None, description="User email if available")
    role: str | None = Field(default=None, description="User role if available")


# Sign-up and sign-in schemas


class SignupRequest(BaseModel):
    """Request schema for user signup.

    Password strength is checked by the auth service so that weak passwords
    come back as a typed failure rather than a schema error.
    """

    email: str = Field(..., description="User's email address", min_length=1, max_length=255)
    password: str = Field(..., description="User's password", max_length=100)
    name: str = Field(..., description="Display name", min_length=1, max_length=255)


class SessionStateResponse(BaseModel):
    """Current session state and the resolved profile, if any."""

    state: SessionState = Field(description="Session state")
    profile: Profile | None = Field(default=None, description="Resolved profile")


class SignupResponse(SessionStateResponse):
    """Response schema for user signup."""

    user_id: str = Field(description="Newly created user ID")
    email: str = Field(description="User's email address")
    requires_confirmation: bool = Field(description="Whether the email must be confirmed first")
    message: str = Field(description="Status message")


class LoginRequest(BaseModel):
    """Request schema for user login."""

    email: str = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")


class LoginResponse(SessionStateResponse):
    """Response schema for user login."""

    access_token: str = Field(description="JWT access token")
    refresh_token: str | None = Field(default=None, description="Refresh token if available")
    expires_in: int = Field(description="Token expiration time in seconds")


class FederatedSignInRequest(BaseModel):
    """Request schema for starting a federated (OAuth) sign-in."""

    provider: str | None = Field(default=None, description="OAuth provider, defaults to configured provider")


class FederatedSignInResponse(BaseModel):
    """Redirect target for a federated sign-in."""

    provider: str = Field(description="OAuth provider")
    url: str = Field(description="URL the browser must be redirected to")


class ForgotPasswordRequest(BaseModel):
    """Request schema for password reset request."""

    email: str = Field(..., description="User's email address", min_length=3, max_length=255)


class ForgotPasswordResponse(BaseModel):
    """Response schema for password reset request."""

    message: str = Field(description="Status message")
    email_sent: bool = Field(description="Whether password reset email was requested")
