from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

# Ensure tests always import the local tree, not an older installed copy.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from db.config_source import ArrayDatabaseConfig  # noqa: E402
from db.connection import ConnectionRegistry  # noqa: E402
from db.schema_cache import SchemaCache  # noqa: E402
from repositories.statement_builder import StatementBuilder  # noqa: E402
from repositories.table_repo import TableRepository  # noqa: E402

SETTINGS = {
    "databases": {
        1: {"host": "localhost", "port": 5432, "user": "app", "password": "secret"},
        2: {"host": "10.0.0.2", "port": 5433, "user": "log_user", "pw": "log_pw"},
    },
    "tables": {
        101: "users",
        102: "orders",
        103: "system_logs",
        104: "ghost",
        201: "access_logs",
    },
    "db_mapping": {1: "main", 2: "logs"},
}

COLUMNS = {
    "users": ["id", "name", "email", "status", "age"],
    "orders": ["id", "user_id", "total"],
    "system_logs": ["id", "timestamp", "type", "level", "message"],
    "access_logs": ["id", "path"],
}


class FakeCursor:
    def __init__(self, conn: "FakeConnection"):
        self.conn = conn
        self.rowcount = -1
        self._rows: list[dict] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        if "information_schema.columns" in sql:
            with self.conn.lock:
                self.conn.catalog_queries.append(params)
            if self.conn.catalog_delay:
                time.sleep(self.conn.catalog_delay)
            self._rows = [{"column_name": c} for c in self.conn.columns.get(params["table"], [])]
            return

        with self.conn.lock:
            self.conn.statements.append((sql, params))
        if self.conn.error is not None:
            raise self.conn.error
        if sql.startswith("SELECT"):
            self._rows = [dict(r) for r in self.conn.rows]
            self.rowcount = len(self._rows)
        else:
            self.rowcount = self.conn.rowcount

    def fetchall(self):
        return self._rows


class FakeConnection:
    """Just enough of a psycopg2 connection for the repository layer."""

    def __init__(self, columns=None):
        self.columns = dict(COLUMNS if columns is None else columns)
        self.rows: list[dict] = []
        self.rowcount = 1
        self.error = None
        self.catalog_delay = 0.0
        self.catalog_queries: list = []
        self.statements: list = []
        self.autocommit = False
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.lock = threading.Lock()

    def cursor(self):
        return FakeCursor(self)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


class FakeConnect:
    """Stand-in for psycopg2.connect that hands out one connection per DSN."""

    def __init__(self, conn: FakeConnection | None = None, delay: float = 0.0):
        self.conn = conn
        self.delay = delay
        self.calls: list[tuple[str, dict]] = []
        self.connections: dict[str, FakeConnection] = {}
        self._lock = threading.Lock()

    def __call__(self, dsn, **kwargs):
        if self.delay:
            time.sleep(self.delay)
        with self._lock:
            self.calls.append((dsn, kwargs))
            if self.conn is not None:
                return self.conn
            return self.connections.setdefault(dsn, FakeConnection())


@pytest.fixture
def conn():
    return FakeConnection()


@pytest.fixture
def connect(conn):
    return FakeConnect(conn)


@pytest.fixture
def config():
    return ArrayDatabaseConfig(SETTINGS)


@pytest.fixture
def registry(config, connect):
    return ConnectionRegistry(config, connect)


@pytest.fixture
def schema(registry, config):
    return SchemaCache(registry, config)


@pytest.fixture
def builder(config, schema):
    return StatementBuilder(config, schema)


@pytest.fixture
def repo(builder, registry):
    return TableRepository(builder, registry)
