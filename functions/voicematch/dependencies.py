"""
Dependency wiring for the backend client.
"""

from __future__ import annotations

import logging

from voicematch.backend_client import BackendClient, InMemoryBackendClient
from voicematch.config import get_settings
from voicematch.supabase_client import SupabaseBackendClient

logger = logging.getLogger(__name__)

_backend_client: BackendClient | None = None


def get_backend_client() -> BackendClient | None:
    """
    Return the process-wide backend client, or None when Supabase is not configured.
    """
    global _backend_client
    if _backend_client:
        return _backend_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _backend_client = InMemoryBackendClient()
    elif settings.supabase_configured:
        _backend_client = SupabaseBackendClient(
            settings.supabase_url,
            settings.supabase_anon_key,
            persist_session=settings.persist_session,
            auto_refresh_token=settings.auto_refresh_token,
            realtime_events_per_second=settings.realtime_events_per_second,
        )
    else:
        logger.debug(
            "SUPABASE_URL or SUPABASE_ANON_KEY missing; backend client not initialized"
        )
    return _backend_client


def reset_backend_client() -> None:
    global _backend_client
    _backend_client = None
