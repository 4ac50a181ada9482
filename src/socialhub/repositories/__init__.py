"""
Persistence layer for SocialHub users and their pending one-time codes.
"""

from .user_repository import (
    BaseUserRepository,
    SupabaseUserRepository,
    RepositoryError,
)
from .code_repository import BaseCodeRepository, SupabaseCodeRepository

__all__ = [
    "BaseUserRepository",
    "SupabaseUserRepository",
    "RepositoryError",
    "BaseCodeRepository",
    "SupabaseCodeRepository",
]
