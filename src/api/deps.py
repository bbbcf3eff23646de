"""FastAPI dependency injection functions."""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, HTTPException, status

from src.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from src.schemas.auth import UserContext
from src.services.auth_service import AuthService
from src.services.chat_service import ChatService
from src.services.connection_service import ConnectionService
from src.services.discovery_service import DiscoveryService
from src.services.profile_mutation import ProfileMutationPipeline
from src.services.profile_resolver import ProfileResolver
from src.services.profile_store import ProfileStore
from src.services.session_controller import AuthSessionController


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from a "Bearer <token>" header, or None if malformed."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None
    return parts[1]


async def get_current_user(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> UserContext:
    """Extract and validate the current user from the Authorization header.

    Args:
        authorization: The Authorization header value (Bearer token).

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        HTTPException: 401 if token is missing, invalid, or expired.
    """
    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = extract_bearer_token(authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Expected: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_jwt(token)
        return payload.to_user_context()

    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            ) from e

        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Extract the current user if an Authorization header is present.

    A present but invalid token is still rejected with 401.
    """
    if not authorization:
        return None
    return await get_current_user(authorization)


CurrentUser = Annotated[UserContext, Depends(get_current_user)]
OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]


# Service factories, overridable through app.dependency_overrides


def get_profile_store() -> ProfileStore:
    return ProfileStore()


def get_profile_resolver(store: Annotated[ProfileStore, Depends(get_profile_store)]) -> ProfileResolver:
    return ProfileResolver(store)


def get_profile_pipeline(
    store: Annotated[ProfileStore, Depends(get_profile_store)],
    resolver: Annotated[ProfileResolver, Depends(get_profile_resolver)],
) -> ProfileMutationPipeline:
    return ProfileMutationPipeline(store, resolver)


def get_auth_service(store: Annotated[ProfileStore, Depends(get_profile_store)]) -> AuthService:
    """Auth facade with its own auth client, one per request."""
    return AuthService(store=store)


def get_chat_service() -> ChatService:
    return ChatService()


def get_connection_service(
    store: Annotated[ProfileStore, Depends(get_profile_store)],
    chats: Annotated[ChatService, Depends(get_chat_service)],
) -> ConnectionService:
    return ConnectionService(store=store, chats=chats)


def get_discovery_service(store: Annotated[ProfileStore, Depends(get_profile_store)]) -> DiscoveryService:
    return DiscoveryService(store)


async def get_session_controller(
    auth: Annotated[AuthService, Depends(get_auth_service)],
    resolver: Annotated[ProfileResolver, Depends(get_profile_resolver)],
    pipeline: Annotated[ProfileMutationPipeline, Depends(get_profile_pipeline)],
) -> AsyncGenerator[AuthSessionController, None]:
    """Session controller scoped to the request; closed when the response is done."""
    controller = AuthSessionController(auth, resolver, pipeline)
    async with controller:
        yield controller


ProfileResolverDep = Annotated[ProfileResolver, Depends(get_profile_resolver)]
ProfilePipelineDep = Annotated[ProfileMutationPipeline, Depends(get_profile_pipeline)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
ConnectionServiceDep = Annotated[ConnectionService, Depends(get_connection_service)]
DiscoveryServiceDep = Annotated[DiscoveryService, Depends(get_discovery_service)]
SessionControllerDep = Annotated[AuthSessionController, Depends(get_session_controller)]
