import logging
from supabase import create_client, Client
from app.core.config import settings, _mask_secret

logger = logging.getLogger(__name__)


def get_supabase_client() -> Client:
    """Create a Supabase client for the storage bucket.

    The service-role key is preferred; the anon key only works when the
    bucket policies allow it.
    """
    supabase_url = settings.SUPABASE_URL
    supabase_key = settings.SUPABASE_SERVICE_ROLE or settings.SUPABASE_ANON_PUBLIC

    if not supabase_url:
        logger.error("SUPABASE_URL is not configured")
        raise RuntimeError("Supabase configuration missing: set SUPABASE_URL environment variable")

    if not supabase_key:
        logger.error("No Supabase key configured (SUPABASE_SERVICE_ROLE or SUPABASE_ANON_PUBLIC)")
        raise RuntimeError("Supabase configuration missing: set SUPABASE_SERVICE_ROLE or SUPABASE_ANON_PUBLIC environment variable")

    if not settings.SUPABASE_SERVICE_ROLE:
        logger.warning("SUPABASE_SERVICE_ROLE not set; falling back to SUPABASE_ANON_PUBLIC (reduced privileges)")

    host = supabase_url.split("://")[-1]
    logger.debug(f"Using Supabase host: {host} and key: {_mask_secret(supabase_key)}")

    return create_client(supabase_url, supabase_key)
