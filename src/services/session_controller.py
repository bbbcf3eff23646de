"""Session controller: the single writer of the client-visible auth state."""

import asyncio
import itertools
import logging
from dataclasses import dataclass
from typing import Callable

from src.api.middleware.error_handler import AuthenticationError, AuthFailure, ValidationError
from src.schemas.auth import AuthIdentity, ProviderSession, SessionEvent, SessionState
from src.schemas.profile import Profile, ProfileUpdate
from src.services.auth_service import AuthService
from src.services.profile_mutation import ProfileMutationPipeline
from src.services.profile_resolver import ProfileResolver

logger = logging.getLogger(__name__)

SIGNED_IN_EVENTS = {SessionEvent.SIGNED_IN, SessionEvent.INITIAL_SESSION, SessionEvent.PASSWORD_RECOVERY}
REFRESH_EVENTS = {SessionEvent.TOKEN_REFRESHED, SessionEvent.USER_UPDATED}


@dataclass(frozen=True)
class SessionSnapshot:
    """Immutable view of the controller state handed to readers."""

    state: SessionState
    profile: Profile | None = None
    sequence: int = 0


SessionListener = Callable[[SessionSnapshot], None]


def state_for(profile: Profile) -> SessionState:
    """Authenticated state matching the profile's completeness."""
    if profile.profile_complete:
        return SessionState.AUTHENTICATED_COMPLETE
    return SessionState.AUTHENTICATED_INCOMPLETE


class AuthSessionController:
    """Drives the session state machine for one client.

    Every state write goes through _apply(), which enforces two rules:
    results tagged with an older sequence number than the last applied
    one are dropped, and nothing is written after close().

    Use as an async context manager, or call start() and close() yourself.
    """

    def __init__(
        self,
        auth: AuthService,
        resolver: ProfileResolver,
        pipeline: ProfileMutationPipeline,
    ) -> None:
        self._auth = auth
        self._resolver = resolver
        self._pipeline = pipeline

        self._snapshot = SessionSnapshot(state=SessionState.LOADING)
        self._session: ProviderSession | None = None
        self._sequence = itertools.count(1)
        self._applied = 0
        self._alive = True

        self._listeners: list[SessionListener] = []
        self._tasks: set[asyncio.Task] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._unsubscribe: Callable[[], None] | None = None

    async def __aenter__(self) -> "AuthSessionController":
        self._subscribe_to_provider()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def state(self) -> SessionState:
        return self._snapshot.state

    @property
    def profile(self) -> Profile | None:
        return self._snapshot.profile

    @property
    def session(self) -> ProviderSession | None:
        return self._session

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a reader notified after every applied state change.

        Returns:
            Callable: Unsubscribe handle.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self, access_token: str | None = None, refresh_token: str | None = None) -> SessionSnapshot:
        """Load the existing session, if any, and route to the matching state.

        Args:
            access_token: Tokens of a session to adopt. When omitted the
                provider's current session is used.
            refresh_token: Refresh token paired with access_token.

        Returns:
            SessionSnapshot: The state after startup.

        Raises:
            AuthFailure: PROVIDER_UNAVAILABLE if the provider cannot be reached;
                the state is UNAUTHENTICATED in that case.
        """
        self._subscribe_to_provider()
        sequence = next(self._sequence)
        try:
            if access_token:
                session = await self._auth.restore_session(access_token, refresh_token)
            else:
                session = await self._auth.get_current_session()
        except AuthFailure:
            self._apply(sequence, SessionState.UNAUTHENTICATED, None, session=None)
            raise

        if session is None:
            self._apply(sequence, SessionState.UNAUTHENTICATED, None, session=None)
        else:
            profile = await self._resolver.resolve(session.identity)
            self._apply(sequence, state_for(profile), profile, session=session)
        return self._snapshot

    async def close(self) -> None:
        """Stop listening and make every later state write a no-op."""
        self._alive = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._listeners.clear()

    async def sign_up(self, email: str, password: str, name: str) -> Profile:
        """Create an account.

        If the provider wants the email confirmed first, the returned
        profile is an unsaved placeholder and the state becomes
        EMAIL_CONFIRMATION_PENDING. Nothing is written to the profile store.
        """
        sequence = next(self._sequence)
        result = await self._auth.sign_up(email, password, name)

        if result.requires_confirmation or result.session is None:
            profile = self._resolver.build_placeholder(result.identity)
            self._apply(sequence, SessionState.EMAIL_CONFIRMATION_PENDING, profile, session=None)
            return profile

        profile = await self._resolver.resolve(result.identity)
        self._apply(sequence, state_for(profile), profile, session=result.session)
        return profile

    async def sign_in(self, email: str, password: str) -> Profile:
        """Sign in with a password and return the resolved profile."""
        sequence = next(self._sequence)
        session = await self._auth.sign_in(email, password)
        profile = await self._resolver.resolve(session.identity)
        self._apply(sequence, state_for(profile), profile, session=session)
        return profile

    async def sign_in_with_federated_identity(self, provider: str | None = None) -> str:
        """Start a redirect sign-in; returns the URL to send the browser to.

        No profile is produced here. The session notification that follows
        the callback drives the state change.
        """
        return await self._auth.federated_sign_in_url(provider)

    async def reset_password(self, email: str) -> None:
        await self._auth.request_password_reset(email)

    async def sign_out(self) -> None:
        """Sign out locally at once, then tell the provider.

        A failing provider call is logged and ignored; the client is signed
        out either way. Calling this repeatedly is harmless.
        """
        sequence = next(self._sequence)
        self._apply(sequence, SessionState.UNAUTHENTICATED, None, session=None)
        try:
            await self._auth.sign_out()
        except AuthFailure as e:
            logger.warning("Provider sign-out failed, local session already cleared: %s", e.message)

    async def update_profile(self, update: ProfileUpdate) -> Profile:
        """Apply a partial update to the signed-in user's profile.

        Raises:
            AuthenticationError: If no user is signed in.
            ProfileUpdateError: If the store write fails.
        """
        identity = self._current_identity()
        sequence = next(self._sequence)
        profile = await self._pipeline.apply(identity, update)
        self._apply(sequence, state_for(profile), profile)
        return profile

    async def complete_profile(self, update: ProfileUpdate) -> Profile:
        """Apply update and require the profile to be complete afterwards.

        Raises:
            ValidationError: If name, location or school_or_job is still blank.
        """
        profile = await self.update_profile(update)
        if not profile.profile_complete:
            raise ValidationError("Name, location and school or job are required to complete the profile")
        return profile

    def _current_identity(self) -> AuthIdentity:
        if self._session is not None:
            return self._session.identity
        raise AuthenticationError("Sign in before editing the profile")

    def _subscribe_to_provider(self) -> None:
        if self._unsubscribe is not None or not self._alive:
            return
        self._loop = asyncio.get_running_loop()
        self._unsubscribe = self._auth.on_session_change(self._on_provider_event)

    def _on_provider_event(self, event: SessionEvent, session: ProviderSession | None) -> None:
        # May be called from a provider thread; hop onto the controller loop.
        if self._loop is None or self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._dispatch_event, event, session)

    def _dispatch_event(self, event: SessionEvent, session: ProviderSession | None) -> None:
        if not self._alive:
            return
        sequence = next(self._sequence)
        task = asyncio.ensure_future(self._handle_event(sequence, event, session))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _handle_event(self, sequence: int, event: SessionEvent, session: ProviderSession | None) -> None:
        logger.debug("Auth event %s (sequence %d)", event.value, sequence)

        if event == SessionEvent.SIGNED_OUT or session is None:
            self._apply(sequence, SessionState.UNAUTHENTICATED, None, session=None)
            return

        if event in REFRESH_EVENTS and self._snapshot.state == SessionState.UNAUTHENTICATED:
            # A refresh racing a local sign-out must not sign the user back in.
            return

        if event in SIGNED_IN_EVENTS or event in REFRESH_EVENTS:
            profile = await self._resolver.resolve(session.identity)
            self._apply(sequence, state_for(profile), profile, session=session)

    def _apply(
        self,
        sequence: int,
        state: SessionState,
        profile: Profile | None,
        session: ProviderSession | None | object = ...,
    ) -> bool:
        """Write a new snapshot unless it is stale or the controller is closed.

        Passing session=... keeps the current provider session.
        """
        if not self._alive:
            logger.debug("Dropping state %s after close", state.value)
            return False
        if sequence <= self._applied:
            logger.debug("Dropping stale state %s (sequence %d <= %d)", state.value, sequence, self._applied)
            return False

        self._applied = sequence
        if session is not ...:
            self._session = session  # type: ignore[assignment]
        self._snapshot = SessionSnapshot(state=state, profile=profile, sequence=sequence)

        for listener in list(self._listeners):
            try:
                listener(self._snapshot)
            except Exception:
                logger.exception("Session listener failed")
        return True
