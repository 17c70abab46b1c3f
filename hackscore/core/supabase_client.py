from fastapi import Request
from supabase import AsyncClient, acreate_client

from hackscore.core.config import settings
from hackscore.utils.exception import ServiceUnavailableException
from hackscore.utils.logging import get_logger

logger = get_logger(__name__)


async def create_supabase_client() -> AsyncClient:
    """
    Create the service-role Supabase client shared by the queue and ledger adapters.
    """
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise ServiceUnavailableException("Supabase client is not configured on the server.")
    try:
        client = await acreate_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)
        logger.info(f"Connected Supabase client for {settings.SUPABASE_URL}")
        return client
    except Exception as e:
        logger.error(f"Failed to create Supabase client: {e}")
        raise


def get_supabase_client(request: Request) -> AsyncClient:
    """
    Dependency returning the client created during application start-up.
    """
    client = getattr(request.app.state, "supabase", None)
    if client is None:
        raise ServiceUnavailableException("Supabase client is not configured on the server.")
    return client
