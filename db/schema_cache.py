"""
db/schema_cache.py
------------------
Per-table column lists read from the live catalog.

A table's columns are fetched from information_schema the first time the
table is referenced and reused until invalidate() is called. Column order
follows the catalog (ordinal_position), so the first entry is normally
the primary key.
"""

import threading
from typing import Optional

from db.config_source import DatabaseConfig
from db.connection import ConnectionRegistry
from db.identity import owner_database_id
from utils.logger import get_logger

logger = get_logger(__name__)

COLUMNS_SQL = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_catalog = %(db)s
      AND table_schema = current_schema()
      AND table_name = %(table)s
    ORDER BY ordinal_position;
"""


class SchemaCache:
    """
    Cached column names keyed by table id.

    A miss for a given table id is loaded by one caller at a time; others
    asking for the same id wait on that id's lock and get the same tuple.
    """

    def __init__(self, registry: ConnectionRegistry, config: DatabaseConfig):
        self.registry = registry
        self.config = config
        self._columns: dict[int, tuple[str, ...]] = {}
        self._guard = threading.Lock()
        self._table_locks: dict[int, threading.Lock] = {}

    def columns_of(self, table_id: int) -> tuple[str, ...]:
        """
        Return the column names of ``table_id`` in catalog order.

        An unknown or inaccessible table yields an empty tuple (and a
        warning); it is cached like any other result.

        Raises:
            ConfigurationError: If the table or its database is not configured.
        """
        columns = self._columns.get(table_id)
        if columns is not None:
            return columns

        with self._guard:
            lock = self._table_locks.setdefault(table_id, threading.Lock())
        # Never log while holding `lock`; log handlers may call back into columns_of().
        loaded = False
        with lock:
            columns = self._columns.get(table_id)
            if columns is None:
                columns = self._load(table_id)
                self._columns[table_id] = columns
                loaded = True

        if loaded:
            table = self.config.get_table_name(table_id)
            if not columns:
                logger.warning(
                    f"No columns found for table {table_id} ({table}); "
                    "check that the table exists and is readable"
                )
            else:
                logger.debug(f"Cached {len(columns)} columns for table {table_id} ({table})")
        return columns

    def _load(self, table_id: int) -> tuple[str, ...]:
        table = self.config.get_table_name(table_id)
        db_name = self.config.get_db_name(owner_database_id(table_id))
        conn = self.registry.for_table(table_id)
        with conn.cursor() as cur:
            cur.execute(COLUMNS_SQL, {"db": db_name, "table": table})
            rows = cur.fetchall()
        return tuple(row["column_name"] for row in rows)

    def invalidate(self, table_id: Optional[int] = None) -> None:
        """Drop the cached columns of one table, or of every table."""
        with self._guard:
            if table_id is None:
                self._columns.clear()
            else:
                self._columns.pop(table_id, None)

    def is_cached(self, table_id: int) -> bool:
        return table_id in self._columns
