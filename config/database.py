"""
Database connection management.

Builds Supabase clients from a caller-supplied ServiceContext. Credentials
are never read from ambient global storage; each import passes its own
context to the catalog and the persistence sink.
"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from supabase import create_client, Client
import structlog

from config.settings import settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ServiceContext:
    """
    Credentials for one caller.

    Attributes:
        url: Supabase project URL
        key: Supabase anon/service key
        access_token: Optional end-user JWT forwarded to PostgREST
    """
    url: str
    key: str
    access_token: Optional[str] = None

    @classmethod
    def from_settings(cls, access_token: Optional[str] = None) -> "ServiceContext":
        """Build a context from the configured project credentials."""
        if not settings.supabase_configured:
            raise ConnectionError("SUPABASE_URL and SUPABASE_KEY are not configured")
        return cls(
            url=settings.supabase_url,
            key=settings.supabase_key,
            access_token=access_token,
        )


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class ConnectionError(DatabaseError):
    """Failed to connect to database."""
    pass


@lru_cache(maxsize=32)
def _project_client(url: str, key: str) -> Client:
    return create_client(url, key)


def get_supabase_client(context: ServiceContext) -> Client:
    """
    Get a Supabase client for the given context.

    Clients without an access token are cached per (url, key).
    A client carrying a user token is built fresh so tokens never leak
    between callers.

    Raises:
        ConnectionError: If the client cannot be created
    """
    try:
        logger.debug(
            "connecting_to_supabase",
            url=context.url[:30] + "...",  # Log partial URL only
            user_scoped=context.access_token is not None
        )

        if context.access_token is None:
            return _project_client(context.url, context.key)

        client = create_client(context.url, context.key)
        client.postgrest.auth(context.access_token)
        return client

    except Exception as e:
        logger.error(
            "supabase_connection_failed",
            error=str(e),
            error_type=type(e).__name__
        )
        raise ConnectionError(f"Failed to connect to Supabase: {e}") from e


def reset_connection():
    """
    Reset the cached project clients.

    Call this if a connection becomes stale or after config changes.
    """
    _project_client.cache_clear()
    logger.info("database_connection_reset")
