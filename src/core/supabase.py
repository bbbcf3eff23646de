"""Supabase client factories for table access and auth sessions."""

from functools import lru_cache
from typing import Any

from supabase import Client, create_client
from supabase.lib.client_options import SyncClientOptions
from supabase_auth import SyncMemoryStorage

from src.core.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    """Get cached Supabase client singleton for table operations.

    Uses the secret key, which bypasses RLS at the PostgREST level. Callers
    must have verified the acting user before touching rows on their behalf.

    Never call auth.set_session() or auth.sign_in_*() on this client; use
    create_auth_client() so the shared Authorization header stays clean.

    Returns:
        Client: Supabase client instance.
    """
    settings = get_settings()
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
    )


def create_auth_client() -> Client:
    """Create a fresh Supabase client for one auth session.

    Every session controller gets its own client so that sign-in, sign-out
    and set_session() calls, and the notifications they emit, stay scoped to
    that controller.

    The implicit flow is kept so OAuth, confirmation and reset redirects
    carry tokens the caller can hand back to /auth/session; a PKCE verifier
    would die with this client.

    Returns:
        Client: Fresh Supabase client instance with isolated session storage.
    """
    settings = get_settings()
    options = SyncClientOptions(
        storage=SyncMemoryStorage(),
        auto_refresh_token=False,
        persist_session=False,
    )
    return create_client(
        settings.supabase_url,
        settings.supabase_secret_key,
        options=options,
    )


async def check_database_connection() -> dict[str, Any]:
    """Check if database connection is healthy.

    Returns:
        dict: Connection status with 'healthy' boolean and optional 'error' message.
    """
    try:
        client = get_supabase_client()
        client.table("user_profiles").select("id").limit(1).execute()
        return {"healthy": True}
    except Exception as e:
        return {"healthy": False, "error": str(e)}
