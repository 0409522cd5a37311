"""
db/connection.py
----------------
Manages one PostgreSQL connection per logical database id.

Connections are opened lazily on first use and reused for the lifetime of
the registry. Rows come back as dicts (RealDictCursor) and psycopg2 raises
on every error, so callers never inspect status codes.
"""

import threading
from typing import Callable, Optional

import psycopg2
from psycopg2 import extensions, extras

from config import DB_CONNECT_TIMEOUT
from db.config_source import DatabaseConfig, DatabaseDescriptor
from db.identity import owner_database_id
from utils.logger import get_logger

logger = get_logger(__name__)


def build_dsn(descriptor: DatabaseDescriptor, connect_timeout: int = DB_CONNECT_TIMEOUT) -> str:
    """Build a libpq connection string for a database descriptor."""
    return extensions.make_dsn(
        host=descriptor.host,
        port=descriptor.port,
        dbname=descriptor.logical_name,
        user=descriptor.user,
        password=descriptor.password,
        connect_timeout=connect_timeout,
    )


class ConnectionRegistry:
    """
    Lazily created, cached connections keyed by database id.

    First access for a given id is serialized on a per-id lock, so two
    threads asking for the same uncached id end up sharing one connection.
    The registry never closes connections by itself; call close_all() on
    shutdown.
    """

    def __init__(
        self,
        config: DatabaseConfig,
        connect: Optional[Callable[..., object]] = None,
        connect_timeout: int = DB_CONNECT_TIMEOUT,
    ):
        self.config = config
        self._connect = connect or psycopg2.connect
        self._connect_timeout = connect_timeout
        self._connections: dict[int, object] = {}
        self._guard = threading.Lock()
        self._id_locks: dict[int, threading.Lock] = {}

    def get(self, database_id: int):
        """
        Return the connection for ``database_id``, opening it on first use.

        Raises:
            ConfigurationError: If the database id is not configured.
            psycopg2.OperationalError: If the database is unreachable.
        """
        conn = self._connections.get(database_id)
        if conn is not None:
            return conn

        descriptor = self.config.descriptor(database_id)
        with self._guard:
            lock = self._id_locks.setdefault(database_id, threading.Lock())

        # Never log while holding `lock`; log handlers may call back into get().
        opened = False
        try:
            with lock:
                conn = self._connections.get(database_id)
                if conn is None:
                    conn = self._open(descriptor)
                    self._connections[database_id] = conn
                    opened = True
        except psycopg2.OperationalError as e:
            logger.error(f"Failed to connect to database {database_id} ({descriptor.host}): {e}")
            raise

        if opened:
            logger.info(
                f"Opened connection for database {database_id} "
                f"({descriptor.logical_name}@{descriptor.host}:{descriptor.port})"
            )
        return conn

    def for_table(self, table_id: int):
        """Return the connection of the database owning ``table_id``."""
        return self.get(owner_database_id(table_id))

    def _open(self, descriptor: DatabaseDescriptor):
        conn = self._connect(
            build_dsn(descriptor, self._connect_timeout),
            cursor_factory=extras.RealDictCursor,
        )
        conn.autocommit = True
        return conn

    def is_open(self, database_id: int) -> bool:
        return database_id in self._connections

    def close_all(self) -> None:
        """Close every cached connection."""
        with self._guard:
            connections = list(self._connections.items())
            self._connections.clear()
        for database_id, conn in connections:
            try:
                conn.close()
            except psycopg2.Error as e:
                logger.warning(f"Error closing connection for database {database_id}: {e}")
        if connections:
            logger.info("Database connections closed.")
