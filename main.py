"""
main.py
-------
Command-line entry point for inspecting configured tables.

Reads the database configuration from environment variables (or .env)
and prints the cached column list of each requested table, optionally
followed by a few rows:

    python main.py 101 102 --rows 5
"""

import argparse
import json
import sys
from typing import Optional, Sequence

from config import DB_ENV_PREFIX
from db.errors import ConfigurationError
from services.database import Database
from utils.logger import get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Show the schema of configured tables.")
    parser.add_argument("table_ids", nargs="+", type=int, help="Table ids such as 101")
    parser.add_argument("--rows", type=int, default=0, help="Also print up to N rows per table")
    parser.add_argument("--prefix", default=DB_ENV_PREFIX, help="Environment variable prefix")
    return parser


def describe(database: Database, table_id: int, rows: int = 0) -> list[str]:
    """Return printable lines describing one table."""
    name = database.config.get_table_name(table_id)
    columns = database.columns_of(table_id)
    lines = [f"{table_id} {name}: {', '.join(columns) if columns else '(no columns)'}"]
    if rows > 0 and columns:
        for row in database.sql.select(table_id, limit=rows):
            lines.append("  " + json.dumps(row, default=str, ensure_ascii=False))
    return lines


def main(argv: Optional[Sequence[str]] = None, database: Optional[Database] = None) -> int:
    """Run the CLI; returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        database = database or Database.from_env(args.prefix)
    except ConfigurationError as e:
        logger.error(f"Database configuration is incomplete: {e}")
        return 2

    exit_code = 0
    try:
        for table_id in args.table_ids:
            try:
                for line in describe(database, table_id, args.rows):
                    print(line)
            except ConfigurationError as e:
                logger.error(str(e))
                exit_code = 1
    finally:
        database.close()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
