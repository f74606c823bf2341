import logging
from typing import Optional
from supabase import create_client, Client

from lib.config import get_settings

logger = logging.getLogger(__name__)

_client: Optional[Client] = None

def get_supabase() -> Client:
    """Return the shared Supabase client, creating it on first use"""
    global _client
    if _client is None:
        settings = get_settings()
        logger.info("Initializing Supabase client...")
        _client = create_client(settings.supabase_url, settings.supabase_key)
        logger.info("Supabase client initialized successfully")
    return _client

def reset_client() -> None:
    global _client
    _client = None
