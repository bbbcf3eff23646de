"""Auth provider facade: typed outcomes over the Supabase auth client."""

import logging
import re
from typing import Any, Callable

from supabase import Client

from src.api.middleware.error_handler import AuthFailure
from src.core.config import get_settings
from src.core.rate_limiter import AttemptLimiter, get_attempt_limiter
from src.core.supabase import create_auth_client
from src.schemas.auth import (
    AuthErrorKind,
    AuthIdentity,
    ProviderSession,
    SessionEvent,
    SignUpResult,
)
from src.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

DUPLICATE_CODES = {"user_already_exists", "email_exists"}
WEAK_PASSWORD_CODES = {"weak_password"}
INVALID_EMAIL_CODES = {"email_address_invalid", "validation_failed"}
RATE_LIMIT_CODES = {"over_request_rate_limit", "over_email_send_rate_limit"}

SessionChangeCallback = Callable[[SessionEvent, ProviderSession | None], None]


def _error_code(error: Exception) -> str:
    return str(getattr(error, "code", None) or "").lower()


def _is_rate_limited(error: Exception, message: str) -> bool:
    return (
        getattr(error, "status", None) == 429
        or _error_code(error) in RATE_LIMIT_CODES
        or "rate limit" in message
        or "too many" in message
    )


def identity_from_user(user: Any) -> AuthIdentity:
    """Build an AuthIdentity from a provider user object."""
    return AuthIdentity(
        user_id=str(user.id),
        email=user.email,
        metadata=dict(user.user_metadata or {}),
    )


def session_from_provider(session: Any) -> ProviderSession:
    """Build a ProviderSession from a provider session object."""
    return ProviderSession(
        identity=identity_from_user(session.user),
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in or 3600,
    )


class AuthService:
    """Auth provider operations with errors mapped to AuthErrorKind.

    Each instance owns an isolated auth client, so the session and the
    notifications it emits belong to a single caller.
    """

    def __init__(
        self,
        client: Client | None = None,
        store: ProfileStore | None = None,
        limiter: AttemptLimiter | None = None,
    ) -> None:
        self.client = client or create_auth_client()
        self.store = store or ProfileStore()
        self.limiter = limiter or get_attempt_limiter()
        self.settings = get_settings()

    async def sign_up(self, email: str, password: str, name: str) -> SignUpResult:
        """Register a new account.

        Args:
            email: User's email address.
            password: User's password.
            name: Display name stored in the account metadata.

        Returns:
            SignUpResult: The new identity and whether email confirmation is pending.

        Raises:
            AuthFailure: DUPLICATE_ACCOUNT, WEAK_PASSWORD, INVALID_EMAIL,
                TOO_MANY_ATTEMPTS or PROVIDER_UNAVAILABLE.
        """
        email = email.strip()
        self._check_email(email)
        if len(password) < self.settings.min_password_length:
            raise AuthFailure(
                AuthErrorKind.WEAK_PASSWORD,
                f"Password must be at least {self.settings.min_password_length} characters",
            )

        try:
            response = self.client.auth.sign_up(
                {
                    "email": email,
                    "password": password,
                    "options": {
                        "email_redirect_to": self.settings.auth_redirect_url,
                        "data": {"full_name": name.strip()},
                    },
                }
            )
        except Exception as e:
            raise self._sign_up_failure(e) from e

        user = response.user
        if not user:
            raise AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, "Failed to create user account")

        # Projects with confirmation enabled answer a duplicate sign-up with
        # an obfuscated user that has no identities.
        if isinstance(user.identities, list) and not user.identities:
            raise AuthFailure(AuthErrorKind.DUPLICATE_ACCOUNT, "An account with this email already exists")

        logger.info("User signed up: %s", user.id)
        session = session_from_provider(response.session) if response.session else None
        return SignUpResult(
            identity=identity_from_user(user),
            requires_confirmation=session is None,
            session=session,
        )

    async def sign_in(self, email: str, password: str) -> ProviderSession:
        """Sign in with email and password.

        A generic invalid-credentials reply is split into ACCOUNT_NOT_FOUND
        and INCORRECT_PASSWORD by looking the email up in the profile store.

        Raises:
            AuthFailure: ACCOUNT_NOT_FOUND, INCORRECT_PASSWORD,
                EMAIL_NOT_CONFIRMED, TOO_MANY_ATTEMPTS, INVALID_EMAIL or
                PROVIDER_UNAVAILABLE.
        """
        email = email.strip()
        self._check_email(email)

        limiter_key = f"signin:{email.lower()}"
        allowed, _, retry_after = await self.limiter.check_and_increment(limiter_key)
        if not allowed:
            logger.warning("Sign-in attempts exhausted for %s", email)
            raise AuthFailure(
                AuthErrorKind.TOO_MANY_ATTEMPTS,
                f"Too many sign-in attempts. Try again in {retry_after} seconds.",
                retry_after=retry_after,
            )

        try:
            response = self.client.auth.sign_in_with_password({"email": email, "password": password})
        except Exception as e:
            raise await self._sign_in_failure(email, e) from e

        if not response.user or not response.session:
            raise AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, "Sign-in did not create a session")

        await self.limiter.reset(limiter_key)
        logger.info("User signed in: %s", response.user.id)
        return session_from_provider(response.session)

    async def federated_sign_in_url(self, provider: str | None = None) -> str:
        """Start an OAuth redirect flow and return the provider URL.

        The eventual session arrives through the OAuth callback, not here.
        """
        provider = provider or self.settings.federated_provider
        try:
            response = self.client.auth.sign_in_with_oauth(
                {
                    "provider": provider,
                    "options": {"redirect_to": self.settings.auth_redirect_url},
                }
            )
        except Exception as e:
            logger.error("Federated sign-in with %s failed: %s", provider, e)
            raise AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, f"Could not start {provider} sign-in") from e

        return response.url

    async def request_password_reset(self, email: str) -> None:
        """Ask the provider to send a password reset email.

        Succeeds whether or not the address is registered, and provider
        errors are only logged, so callers cannot probe for accounts.
        """
        try:
            self.client.auth.reset_password_for_email(
                email.strip(),
                options={"redirect_to": self.settings.auth_redirect_url},
            )
            logger.info("Password reset requested for: %s", email)
        except Exception as e:
            logger.error("Password reset request failed: %s", e)

    async def sign_out(self) -> None:
        """End the provider session.

        Raises:
            AuthFailure: PROVIDER_UNAVAILABLE if the provider call fails.
        """
        try:
            self.client.auth.sign_out()
        except Exception as e:
            raise AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, "Sign-out could not be confirmed") from e

    async def get_current_session(self) -> ProviderSession | None:
        """Session held by this client, if any."""
        try:
            session = self.client.auth.get_session()
        except Exception as e:
            raise AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, "Could not read current session") from e
        return session_from_provider(session) if session else None

    async def restore_session(self, access_token: str, refresh_token: str | None = None) -> ProviderSession | None:
        """Adopt an existing session from its tokens.

        Returns:
            ProviderSession | None: The session, or None if the provider
            rejects the tokens.

        Raises:
            AuthFailure: PROVIDER_UNAVAILABLE for anything other than a rejection.
        """
        try:
            response = self.client.auth.set_session(access_token, refresh_token or "")
        except Exception as e:
            status_code = getattr(e, "status", None)
            message = str(e).lower()
            if status_code in (400, 401, 403) or "invalid" in message or "expired" in message:
                logger.info("Provider rejected stored session: %s", e)
                return None
            raise AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, "Could not restore session") from e

        return session_from_provider(response.session) if response.session else None

    def on_session_change(self, callback: SessionChangeCallback) -> Callable[[], None]:
        """Register callback for provider session notifications.

        The callback may run on a provider thread. Unknown event names are
        dropped.

        Returns:
            Callable: Unsubscribe handle.
        """

        def relay(event: str, session: Any) -> None:
            try:
                kind = SessionEvent(event)
            except ValueError:
                logger.debug("Ignoring auth event %s", event)
                return
            callback(kind, session_from_provider(session) if session else None)

        subscription = self.client.auth.on_auth_state_change(relay)
        return subscription.unsubscribe

    def _check_email(self, email: str) -> None:
        if not EMAIL_PATTERN.match(email):
            raise AuthFailure(AuthErrorKind.INVALID_EMAIL, "Invalid email address")

    def _sign_up_failure(self, error: Exception) -> AuthFailure:
        message = str(error).lower()
        code = _error_code(error)
        logger.error("Signup failed: %s", error)

        if code in DUPLICATE_CODES or "already registered" in message or "already exists" in message:
            return AuthFailure(AuthErrorKind.DUPLICATE_ACCOUNT, "An account with this email already exists")
        if code in WEAK_PASSWORD_CODES or ("password" in message and ("weak" in message or "at least" in message)):
            return AuthFailure(AuthErrorKind.WEAK_PASSWORD, "Password is too weak")
        if code in INVALID_EMAIL_CODES or ("invalid" in message and "email" in message):
            return AuthFailure(AuthErrorKind.INVALID_EMAIL, "Invalid email address")
        if _is_rate_limited(error, message):
            return AuthFailure(AuthErrorKind.TOO_MANY_ATTEMPTS, "Too many sign-up attempts. Please wait.")
        return AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, "Sign-up is unavailable right now")

    async def _sign_in_failure(self, email: str, error: Exception) -> AuthFailure:
        message = str(error).lower()
        code = _error_code(error)
        logger.warning("Login failed for %s: %s", email, error)

        if code == "email_not_confirmed" or "email not confirmed" in message:
            return AuthFailure(AuthErrorKind.EMAIL_NOT_CONFIRMED, "Please confirm your email before signing in")
        if _is_rate_limited(error, message):
            return AuthFailure(AuthErrorKind.TOO_MANY_ATTEMPTS, "Too many sign-in attempts. Please wait.")
        if code == "invalid_credentials" or ("invalid" in message and "credentials" in message):
            try:
                profile = await self.store.find_profile_by_email(email)
            except Exception as lookup_error:
                logger.error("Account lookup for %s failed: %s", email, lookup_error)
                return AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, "Sign-in is unavailable right now")
            if profile is None:
                return AuthFailure(AuthErrorKind.ACCOUNT_NOT_FOUND, "No account found with this email")
            return AuthFailure(AuthErrorKind.INCORRECT_PASSWORD, "Incorrect password")
        return AuthFailure(AuthErrorKind.PROVIDER_UNAVAILABLE, "Sign-in is unavailable right now")
