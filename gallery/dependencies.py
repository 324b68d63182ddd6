"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from gallery.config import get_settings
from gallery.db import DbClient, InMemoryDbClient, PostgresDbClient, RestDbClient
from gallery.likes import LikeStore

if TYPE_CHECKING:
    from gallery.auth import AuthClient

_db_client: DbClient | None = None
_auth_client: "AuthClient | None" = None
_like_store: LikeStore | None = None


def get_db_client() -> DbClient:
    """
    Return a singleton DB client. Per-user clients are derived from it with
    `for_token` so row-level policies see the caller's identity.
    """
    global _db_client
    if _db_client:
        return _db_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _db_client = InMemoryDbClient()
    elif settings.supabase_url and settings.supabase_anon_key:
        _db_client = RestDbClient(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.request_timeout_seconds,
        )
    elif settings.database_url:
        _db_client = PostgresDbClient(settings.database_url)
    else:
        _db_client = InMemoryDbClient()
    return _db_client


def get_auth_client() -> "AuthClient":
    global _auth_client
    if _auth_client:
        return _auth_client

    from gallery.auth import InMemoryAuthClient, RestAuthClient

    settings = get_settings()
    if (
        settings.use_in_memory_backends
        or not settings.supabase_url
        or not settings.supabase_anon_key
    ):
        _auth_client = InMemoryAuthClient()
    else:
        _auth_client = RestAuthClient(
            settings.supabase_url,
            settings.supabase_anon_key,
            timeout=settings.request_timeout_seconds,
        )
    return _auth_client


def get_like_store() -> LikeStore:
    """Likes live only in this process and vanish on restart."""
    global _like_store
    if _like_store is None:
        _like_store = LikeStore()
    return _like_store
