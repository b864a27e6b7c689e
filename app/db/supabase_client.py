"""Service-role Supabase client singleton."""

from supabase import create_client, Client
from app.config import settings

_client: Client | None = None


def get_supabase() -> Client:
    """Get or create the Supabase client using the service role key.

    Used by the job, evaluation, idempotency and document stores when
    STORAGE_BACKEND=supabase.
    """
    global _client
    if _client is None:
        if not settings.supabase_url or not settings.supabase_service_role_key:
            raise RuntimeError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set "
                "when STORAGE_BACKEND=supabase"
            )
        _client = create_client(
            settings.supabase_url,
            settings.supabase_service_role_key,
        )
    return _client


def get_anon_client() -> Client:
    """Client with the anon key, used to validate end-user JWTs."""
    return create_client(settings.supabase_url, settings.supabase_anon_key)
