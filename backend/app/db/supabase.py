"""
Supabase Client
===============
Thin wrapper that provides a configured Supabase client. Routes hand it
to an EntryStore; nothing else in the app reaches for it directly.

Uses the service_role key (not the anon key) because the backend writes
entries on behalf of authenticated users and scopes every query by owner
itself.
"""

from functools import lru_cache

from supabase import Client, create_client

from app.config import get_settings


@lru_cache
def get_supabase_client() -> Client:
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_key)
