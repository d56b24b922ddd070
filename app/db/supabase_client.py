"""
Supabase client initialization module.

Provides a thread-safe singleton client for the ``documents`` and
``keyword_matrices`` tables. When SUPABASE_SERVICE_ROLE_KEY is set the
client uses it to bypass RLS; otherwise it falls back to the anon key.
"""

import threading

from supabase import Client, create_client

from app.config import get_settings

_client: Client | None = None
_lock = threading.Lock()


def get_supabase_client() -> Client:
    """
    Return the shared Supabase client, creating it on first use.

    Raises:
        ValueError: If the client cannot be created from the settings
    """
    global _client
    if _client is not None:
        return _client
    with _lock:
        if _client is not None:
            return _client
        settings = get_settings()
        key = settings.supabase_service_role_key or settings.supabase_key
        try:
            _client = create_client(settings.supabase_url, key)
        except Exception as e:
            raise ValueError(f"Failed to create Supabase client: {str(e)}") from e
        return _client
