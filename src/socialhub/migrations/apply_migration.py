#!/usr/bin/env python3
"""
One-shot migration runner.

Reads a SQL file and forwards it to a Postgres function exposed through
Supabase RPC. The function receives the SQL text as its ``sql`` argument.

Usage:
    socialhub-migrate path/to/migration.sql [--function exec_sql]
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from ..config import get_config
from ..utils.database import SupabaseClient, get_db_client

logger = logging.getLogger(__name__)

DEFAULT_FUNCTION = "exec_sql"


def apply_migration(
    sql_path: str,
    function_name: str = DEFAULT_FUNCTION,
    client: Optional[SupabaseClient] = None,
) -> Any:
    """
    Apply a SQL file through Supabase RPC.

    Args:
        sql_path: Path of the SQL file
        function_name: Remote procedure executing the SQL
        client: Supabase client wrapper (global instance by default)

    Returns:
        Whatever the remote procedure returns.

    Raises:
        OSError: If the file cannot be read.
        ValueError: If the file is empty.
        DatabaseConnectionError: If the RPC call fails.
    """
    sql = Path(sql_path).read_text(encoding="utf-8")
    if not sql.strip():
        raise ValueError(f"Migration file {sql_path} is empty")

    client = client or get_db_client()
    logger.info(f"Applying migration {sql_path} via rpc {function_name}")
    result = client.rpc(function_name, {"sql": sql})
    logger.info("Migration applied successfully")
    return result


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point; returns the process exit code."""
    parser = argparse.ArgumentParser(description="Apply a SQL migration through Supabase RPC")
    parser.add_argument("sql_path", help="Path of the SQL file to apply")
    parser.add_argument(
        "--function",
        default=DEFAULT_FUNCTION,
        help=f"Remote procedure that executes the SQL (default: {DEFAULT_FUNCTION})",
    )
    args = parser.parse_args(argv)

    config = get_config()
    logging.basicConfig(level=config.logging.level, format=config.logging.format)

    try:
        apply_migration(args.sql_path, args.function)
    except Exception as e:
        logger.error(f"Error applying migration: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
