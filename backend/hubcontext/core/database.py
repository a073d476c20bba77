"""
Supabase database connection and client setup.
"""

from supabase import create_client, Client
from hubcontext.core.config import settings


class SupabaseClient:
    """Supabase client singleton."""

    _service_client: Client | None = None

    @classmethod
    def get_service_client(cls) -> Client:
        """Get Supabase client with service role key (bypasses RLS)."""
        if cls._service_client is None:
            cls._service_client = create_client(
                settings.supabase_url,
                settings.supabase_service_role_key
            )
        return cls._service_client


def get_supabase_service() -> Client:
    """Get Supabase client with service role (bypasses RLS).

    Chunk search, the context cache and the metrics tables are all
    written by the backend, so every service uses this client.
    """
    return SupabaseClient.get_service_client()
