"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from tests.fakes import TEST_SIGNING_KEY_JWK, FakeSupabase

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ["SUPABASE_SIGNING_KEY_JWK"] = TEST_SIGNING_KEY_JWK


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache."""
    from src.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    return FakeSupabase()


@pytest.fixture
def store(fake_supabase: FakeSupabase):
    from src.services.profile_store import ProfileStore

    return ProfileStore(fake_supabase)


@pytest.fixture
def resolver(store):
    from src.services.profile_resolver import ProfileResolver

    return ProfileResolver(store)


@pytest.fixture
def pipeline(store, resolver):
    from src.services.profile_mutation import ProfileMutationPipeline

    return ProfileMutationPipeline(store, resolver)


@pytest.fixture
def limiter():
    from src.core.rate_limiter import AttemptLimitConfig, AttemptLimiter

    return AttemptLimiter(AttemptLimitConfig(max_attempts=5, window_seconds=300))


@pytest.fixture
def auth_service(fake_supabase: FakeSupabase, store, limiter):
    from src.services.auth_service import AuthService

    return AuthService(client=fake_supabase, store=store, limiter=limiter)


@pytest.fixture
def chat_service(fake_supabase: FakeSupabase):
    from src.services.chat_service import ChatService

    return ChatService(fake_supabase)


@pytest.fixture
def connection_service(fake_supabase: FakeSupabase, store, chat_service):
    from src.services.connection_service import ConnectionService

    return ConnectionService(fake_supabase, store=store, chats=chat_service)


@pytest.fixture
def client(fake_supabase: FakeSupabase, store, limiter) -> Generator[TestClient, None, None]:
    """Test client with every service wired to the in-memory Supabase fake."""
    from src.api import deps
    from src.main import app
    from src.services.auth_service import AuthService
    from src.services.chat_service import ChatService
    from src.services.connection_service import ConnectionService

    app.dependency_overrides[deps.get_profile_store] = lambda: store
    app.dependency_overrides[deps.get_auth_service] = lambda: AuthService(
        client=fake_supabase, store=store, limiter=limiter
    )
    chats = ChatService(fake_supabase)
    app.dependency_overrides[deps.get_chat_service] = lambda: chats
    app.dependency_overrides[deps.get_connection_service] = lambda: ConnectionService(
        fake_supabase, store=store, chats=chats
    )

    with patch("src.api.routes.health.check_database_connection", return_value={"healthy": True}):
        with TestClient(app) as test_client:
            yield test_client

    app.dependency_overrides.clear()
