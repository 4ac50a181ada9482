"""
Administrative migration scripts.
"""

from .apply_migration import apply_migration

__all__ = ["apply_migration"]
