"""Authentication API routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Header, status

from src.api.deps import CurrentUser, ProfileResolverDep, SessionControllerDep, extract_bearer_token
from src.api.middleware.error_handler import AuthFailure
from src.core.config import get_settings
from src.schemas.auth import (
    FederatedSignInRequest,
    FederatedSignInResponse,
    ForgotPasswordRequest,
    ForgotPasswordResponse,
    LoginRequest,
    LoginResponse,
    SessionState,
    SessionStateResponse,
    SignupRequest,
    SignupResponse,
)
from src.schemas.profile import Profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up new user",
    description="Create a new account. When email confirmation is enabled no session is returned.",
)
async def signup(data: SignupRequest, controller: SessionControllerDep) -> SignupResponse:
    """Sign up a new user with email and password.

    Args:
        data: Signup request with email, password and display name.

    Returns:
        SignupResponse: The resulting session state and profile.
    """
    profile = await controller.sign_up(data.email, data.password, data.name)
    requires_confirmation = controller.session is None

    return SignupResponse(
        state=controller.state,
        profile=profile,
        user_id=profile.id,
        email=data.email.strip(),
        requires_confirmation=requires_confirmation,
        message=(
            "Check your email to confirm your account"
            if requires_confirmation
            else "Account created"
        ),
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    summary="Log in with email and password",
    description="Authenticate and receive tokens along with the resolved profile.",
)
async def login(data: LoginRequest, controller: SessionControllerDep) -> LoginResponse:
    """Log in a user.

    Failures come back with the failure kind in the error field:
    account_not_found, incorrect_password, email_not_confirmed,
    too_many_attempts, invalid_email or provider_unavailable.
    """
    profile = await controller.sign_in(data.email, data.password)
    session = controller.session

    return LoginResponse(
        state=controller.state,
        profile=profile,
        access_token=session.access_token,
        refresh_token=session.refresh_token,
        expires_in=session.expires_in,
    )


@router.post(
    "/federated",
    response_model=FederatedSignInResponse,
    summary="Start federated sign-in",
    description="Returns the provider URL to redirect the browser to.",
)
async def federated_sign_in(
    data: FederatedSignInRequest,
    controller: SessionControllerDep,
) -> FederatedSignInResponse:
    provider = data.provider or get_settings().federated_provider
    url = await controller.sign_in_with_federated_identity(provider)
    return FederatedSignInResponse(provider=provider, url=url)


@router.post(
    "/forgot-password",
    response_model=ForgotPasswordResponse,
    summary="Request password reset",
    description="Send a password reset email. Always succeeds to avoid revealing registered addresses.",
)
async def forgot_password(
    data: ForgotPasswordRequest,
    controller: SessionControllerDep,
) -> ForgotPasswordResponse:
    await controller.reset_password(data.email)
    return ForgotPasswordResponse(
        message="If an account exists with this email, a password reset link has been sent.",
        email_sent=True,
    )


@router.post(
    "/logout",
    response_model=SessionStateResponse,
    summary="Log out",
    description="End the session. Succeeds even if the provider cannot be reached.",
)
async def logout(
    controller: SessionControllerDep,
    authorization: Annotated[str | None, Header()] = None,
    x_refresh_token: Annotated[str | None, Header()] = None,
) -> SessionStateResponse:
    """Log out the caller.

    The bearer token, if any, is adopted first so the provider session it
    belongs to is the one ended.
    """
    token = extract_bearer_token(authorization)
    if token:
        try:
            await controller.start(access_token=token, refresh_token=x_refresh_token)
        except AuthFailure as e:
            logger.warning("Could not adopt session before logout: %s", e.message)
    await controller.sign_out()
    return SessionStateResponse(state=controller.state, profile=None)


@router.get(
    "/session",
    response_model=SessionStateResponse,
    summary="Get session state",
    description="Resolve the caller's session into a session state and profile.",
)
async def get_session_state(
    controller: SessionControllerDep,
    authorization: Annotated[str | None, Header()] = None,
    x_refresh_token: Annotated[str | None, Header()] = None,
) -> SessionStateResponse:
    """Report where the caller stands.

    No token or a rejected token gives unauthenticated. A valid token gives
    authenticated_incomplete or authenticated_complete depending on the
    profile.
    """
    token = extract_bearer_token(authorization)
    if not token:
        return SessionStateResponse(state=SessionState.UNAUTHENTICATED, profile=None)
    snapshot = await controller.start(access_token=token, refresh_token=x_refresh_token)
    return SessionStateResponse(state=snapshot.state, profile=snapshot.profile)


@router.get(
    "/me",
    response_model=Profile,
    summary="Get current user",
    description="Resolve the token's identity into its profile, or a placeholder if none is stored.",
)
async def get_me(user: CurrentUser, resolver: ProfileResolverDep) -> Profile:
    return await resolver.resolve(user.to_identity())
