"""
Database connection utility for Supabase integration.

This module provides lazy client initialization, the health check used by
the API and the RPC helper used by the administrative scripts.
"""

import logging
import time
from typing import Optional, Dict, Any

from supabase import create_client, Client
from supabase.lib.client_options import ClientOptions

from ..config import get_config, AppConfig

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Raised when the Supabase backend cannot be reached or rejects a call."""
    pass


class SupabaseClient:
    """
    Supabase client wrapper with lazy initialization.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or get_config()
        self._client: Optional[Client] = None

    @property
    def client(self) -> Client:
        """
        Get the Supabase client instance.

        Returns:
            Client: The Supabase client instance.

        Raises:
            DatabaseConnectionError: If client initialization fails.
        """
        if self._client is None:
            self._initialize_client()
        return self._client

    def _initialize_client(self) -> None:
        """Initialize the Supabase client with configuration."""
        try:
            options = ClientOptions(
                postgrest_client_timeout=self.config.supabase.timeout,
                storage_client_timeout=self.config.supabase.timeout,
            )

            self._client = create_client(
                self.config.supabase.url,
                self.config.supabase.key,
                options=options
            )

            logger.info("Supabase client initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Supabase client: {e}")
            raise DatabaseConnectionError(f"Client initialization failed: {e}")

    def rpc(self, function_name: str, params: Dict[str, Any]) -> Any:
        """
        Call a Postgres function exposed through Supabase RPC.

        Args:
            function_name: Name of the remote procedure.
            params: Named arguments for the procedure.

        Returns:
            The data returned by the procedure.

        Raises:
            DatabaseConnectionError: If the call fails.
        """
        try:
            response = self.client.rpc(function_name, params).execute()
        except DatabaseConnectionError:
            raise
        except Exception as e:
            logger.error(f"RPC {function_name} failed: {e}")
            raise DatabaseConnectionError(f"RPC {function_name} failed: {e}")
        return response.data

    def health_check(self) -> Dict[str, Any]:
        """
        Probe the backend with a one-row read of the users table.

        Never raises; failures are reported in the result.

        Returns:
            Dict with ``status`` ("healthy" or "unhealthy"), ``latency_ms`` and,
            on failure, ``error``.
        """
        started = time.perf_counter()
        try:
            self.client.table(self.config.supabase.users_table).select("id").limit(1).execute()
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return {
                "status": "unhealthy",
                "latency_ms": round((time.perf_counter() - started) * 1000, 2),
                "error": str(e),
            }

        return {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        }

    def close(self) -> None:
        """Drop the client; Supabase does not need explicit closing."""
        self._client = None
        logger.info("Database connections closed")


# Global database client instance
db_client: Optional[SupabaseClient] = None


def get_db_client() -> SupabaseClient:
    """
    Get the global database client instance.

    Returns:
        SupabaseClient: The database client instance.
    """
    global db_client
    if db_client is None:
        db_client = SupabaseClient()
    return db_client


def close_db_connections() -> None:
    """Close all database connections."""
    global db_client
    if db_client:
        db_client.close()
        db_client = None
