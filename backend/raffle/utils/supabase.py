from supabase import create_client, Client
from raffle.config import settings


def get_supabase_client() -> Client:
    """
    Create and return a Supabase client instance.
    Uses service role key; runs, codes and sessions are admin-only tables.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_SERVICE_KEY")

    supabase: Client = create_client(
        settings.SUPABASE_URL,
        settings.SUPABASE_SERVICE_KEY
    )
    return supabase
