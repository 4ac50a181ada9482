"""
Utility modules shared by the API server and the admin scripts.
"""

from .database import (
    SupabaseClient,
    DatabaseConnectionError,
    get_db_client,
    close_db_connections,
)

__all__ = [
    "SupabaseClient",
    "DatabaseConnectionError",
    "get_db_client",
    "close_db_connections",
]
