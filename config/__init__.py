"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    ServiceContext: Caller-supplied credentials
    get_supabase_client: Build a client for a ServiceContext
    configure_logging: One-time structlog setup
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    ServiceContext,
    get_supabase_client,
    reset_connection,
    DatabaseError,
    ConnectionError
)
from config.logging import configure_logging

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Database
    "ServiceContext",
    "get_supabase_client",
    "reset_connection",
    "DatabaseError",
    "ConnectionError",

    # Logging
    "configure_logging",
]
