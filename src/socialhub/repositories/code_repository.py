"""
Pending one-time codes for email verification and password reset.

Each email has at most one pending code per table; issuing a new code
replaces the previous one.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from ..schemas.auth_schemas import PendingCode
from ..utils.database import SupabaseClient, get_db_client
from .user_repository import RepositoryError

logger = logging.getLogger(__name__)


class BaseCodeRepository(ABC):
    """Storage interface for pending codes keyed by normalized email."""

    @abstractmethod
    async def replace(self, email: str, row: Dict[str, Any]) -> None:
        """Drop any pending code for ``email`` and store ``row``."""

    @abstractmethod
    async def find(self, email: str, code: str) -> Optional[PendingCode]:
        """Return the pending row matching both email and code."""

    @abstractmethod
    async def delete(self, email: str) -> None:
        """Drop every pending code for ``email``."""


class SupabaseCodeRepository(BaseCodeRepository):
    """
    Pending codes stored in a Supabase table.

    Args:
        table_name: ``email_verifications`` or ``password_resets``
        db_client: Supabase client wrapper (global instance by default)
    """

    def __init__(self, table_name: str, db_client: Optional[SupabaseClient] = None):
        self.table_name = table_name
        self.db_client = db_client or get_db_client()

    def _table(self):
        return self.db_client.client.table(self.table_name)

    async def replace(self, email: str, row: Dict[str, Any]) -> None:
        await self.delete(email)
        try:
            self._table().insert({**row, "email": email}).execute()
        except Exception as e:
            logger.error(f"Failed to store pending code in {self.table_name} for {email}: {e}")
            raise RepositoryError(f"Storing pending code failed: {e}")

    async def find(self, email: str, code: str) -> Optional[PendingCode]:
        try:
            response = (
                self._table()
                .select("*")
                .eq("email", email)
                .eq("code", code)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to look up pending code in {self.table_name} for {email}: {e}")
            raise RepositoryError(f"Pending code lookup failed: {e}")
        if not response.data:
            return None
        return PendingCode.model_validate(response.data[0])

    async def delete(self, email: str) -> None:
        try:
            self._table().delete().eq("email", email).execute()
        except Exception as e:
            logger.error(f"Failed to delete pending codes in {self.table_name} for {email}: {e}")
            raise RepositoryError(f"Deleting pending codes failed: {e}")
