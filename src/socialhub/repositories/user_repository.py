"""
User Repository for the SocialHub auth API.

This module provides user persistence on top of the Supabase ``users`` table:
lookup by login identifier (email or username), lookup by ID, uniqueness
checks and insertion.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..schemas.auth_schemas import UserRecord
from ..utils.database import SupabaseClient, DatabaseConnectionError, get_db_client

logger = logging.getLogger(__name__)


class RepositoryError(DatabaseConnectionError):
    """Raised when a repository operation fails."""
    pass


class BaseUserRepository(ABC):
    """
    Storage interface used by the auth service.

    Identifiers passed in are expected to be normalized (lower-cased) by the
    caller.
    """

    @abstractmethod
    async def find_by_login(self, identifier: str) -> Optional[UserRecord]:
        """Return the user whose email or username equals ``identifier``."""

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        """Return the user with the given ID."""

    @abstractmethod
    async def exists(self, email: str, username: str) -> bool:
        """Check whether the email or the username is already taken."""

    @abstractmethod
    async def create(self, user_data: Dict[str, Any]) -> UserRecord:
        """Insert a user row and return it."""

    @abstractmethod
    async def update_password_hash(self, user_id: str, password_hash: str) -> None:
        """Replace the stored password hash of a user."""


def _quote(value: str) -> str:
    # PostgREST filter values containing reserved characters must be quoted
    return '"' + value.replace('"', '\\"') + '"'


class SupabaseUserRepository(BaseUserRepository):
    """
    Repository for user rows stored in Supabase.
    """

    def __init__(self, db_client: Optional[SupabaseClient] = None, table_name: Optional[str] = None):
        """
        Initialize the user repository.

        Args:
            db_client: Supabase client wrapper (global instance by default)
            table_name: Users table name (from configuration by default)
        """
        self.db_client = db_client or get_db_client()
        self.table_name = table_name or self.db_client.config.supabase.users_table
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _table(self):
        return self.db_client.client.table(self.table_name)

    def _rows_to_model(self, rows: Optional[List[Dict[str, Any]]]) -> Optional[UserRecord]:
        if not rows:
            return None
        return UserRecord.model_validate(rows[0])

    async def find_by_login(self, identifier: str) -> Optional[UserRecord]:
        """
        Get a user by email or username.

        Raises:
            RepositoryError: If the Supabase query fails
        """
        value = _quote(identifier)
        try:
            response = (
                self._table()
                .select("*")
                .or_(f"email.eq.{value},username.eq.{value}")
                .limit(1)
                .execute()
            )
        except Exception as e:
            self._logger.error(f"Failed to look up user {identifier}: {e}")
            raise RepositoryError(f"User lookup failed: {e}")
        return self._rows_to_model(response.data)

    async def get_by_id(self, user_id: str) -> Optional[UserRecord]:
        """
        Get a user by ID.

        Raises:
            RepositoryError: If the Supabase query fails
        """
        try:
            response = self._table().select("*").eq("id", user_id).limit(1).execute()
        except Exception as e:
            self._logger.error(f"Failed to get user by ID {user_id}: {e}")
            raise RepositoryError(f"Get user by ID failed: {e}")
        return self._rows_to_model(response.data)

    async def exists(self, email: str, username: str) -> bool:
        try:
            response = (
                self._table()
                .select("id")
                .or_(f"email.eq.{_quote(email)},username.eq.{_quote(username)}")
                .limit(1)
                .execute()
            )
        except Exception as e:
            self._logger.error(f"Failed to check user uniqueness for {email}: {e}")
            raise RepositoryError(f"User uniqueness check failed: {e}")
        return bool(response.data)

    async def create(self, user_data: Dict[str, Any]) -> UserRecord:
        """
        Insert a new user.

        Args:
            user_data: Column values, including the password hash

        Returns:
            Created user row

        Raises:
            RepositoryError: If the insert fails or returns no row
        """
        self._logger.info(f"Creating user with email: {user_data.get('email')}")
        try:
            response = self._table().insert(user_data).execute()
        except Exception as e:
            self._logger.error(f"Failed to create user: {e}")
            raise RepositoryError(f"User creation failed: {e}")

        created = self._rows_to_model(response.data)
        if created is None:
            raise RepositoryError("User creation returned no row")
        self._logger.info(f"User created successfully with ID: {created.id}")
        return created

    async def update_password_hash(self, user_id: str, password_hash: str) -> None:
        """
        Replace a user's password hash.

        Raises:
            RepositoryError: If the update fails
        """
        try:
            self._table().update({"password_hash": password_hash}).eq("id", user_id).execute()
        except Exception as e:
            self._logger.error(f"Failed to update password for user {user_id}: {e}")
            raise RepositoryError(f"Password update failed: {e}")
        self._logger.info(f"Password updated for user {user_id}")
