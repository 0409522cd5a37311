"""
services/database.py
--------------------
Entry point object that wires configuration, connections, schema cache
and statement building together.

    db = Database.from_mapping(settings)
    db.sql.insert(101, {"name": "example.com"})
    db.group("main").table("users").add({"name": "alice"})

Each Database owns its own connection registry and schema cache, so two
instances never share state.
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Mapping, Optional

from config import DB_ENV_PREFIX
from db.config_source import ArrayDatabaseConfig, DatabaseConfig, EnvDatabaseConfig
from db.connection import ConnectionRegistry
from db.schema_cache import SchemaCache
from repositories.statement_builder import StatementBuilder
from repositories.table_repo import TableRepository
from services.query_builder import QueryBuilder
from utils.db_log_handler import DatabaseLogHandler
from utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


class TableHandle:
    """CRUD shortcuts bound to one table id."""

    def __init__(self, repository: TableRepository, table_id: int):
        self.repository = repository
        self.table_id = table_id

    def add(self, data: Mapping[str, Any]) -> bool:
        return self.repository.insert(self.table_id, data)

    def delete(self, where: Optional[Mapping[str, Any]] = None) -> bool:
        return self.repository.delete(self.table_id, where or {})

    def update(self, data: Mapping[str, Any], where: Optional[Mapping[str, Any]] = None) -> bool:
        return self.repository.update(self.table_id, data, where or {})

    def get(self, where: Optional[Mapping[str, Any]] = None) -> list[dict]:
        return self.repository.select(self.table_id, where=where or {})

    def query(self) -> QueryBuilder:
        return QueryBuilder(self.table_id, self.repository)


class DatabaseGroup:
    """Tables of one logical database, looked up by name."""

    def __init__(self, repository: TableRepository, config: DatabaseConfig, database_id: int):
        self.repository = repository
        self.config = config
        self.database_id = database_id

    def table(self, name: str) -> TableHandle:
        """
        Raises:
            ConfigurationError: If no table called ``name`` belongs to this group.
        """
        return TableHandle(self.repository, self.config.table_id_for(self.database_id, name))


class Database:
    """Schema-validated access to every configured database."""

    def __init__(self, config: DatabaseConfig, connect: Optional[Callable[..., object]] = None):
        self.config = config
        self.registry = ConnectionRegistry(config, connect)
        self.schema = SchemaCache(self.registry, config)
        self.builder = StatementBuilder(config, self.schema)
        self.sql = TableRepository(self.builder, self.registry)
        self._log_handler: Optional[DatabaseLogHandler] = None
        self._init_logging()

    def _init_logging(self) -> None:
        settings = self.config.logging_settings()
        if not settings:
            return
        configure_logging(
            enabled=bool(settings.get("enabled", True)),
            file_path=settings.get("file_path") or None,
            level=settings.get("level"),
        )
        table_id = settings.get("database_table_id")
        if table_id:
            self._log_handler = DatabaseLogHandler(self.sql, int(table_id))
            logging.getLogger().addHandler(self._log_handler)
            logger.debug(f"Database logging enabled on table {table_id}")

    # ── FACTORIES ─────────────────────────────────────────

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any], connect: Optional[Callable[..., object]] = None) -> "Database":
        return cls(ArrayDatabaseConfig(config), connect)

    @classmethod
    def from_env(cls, prefix: str = DB_ENV_PREFIX, connect: Optional[Callable[..., object]] = None) -> "Database":
        return cls(EnvDatabaseConfig(prefix), connect)

    # ── ACCESSORS ─────────────────────────────────────────

    def group(self, name: str) -> DatabaseGroup:
        """
        Look up a database group by its mapped name (e.g. 'main').

        Raises:
            ConfigurationError: If the name is not in db_mapping.
        """
        return DatabaseGroup(self.sql, self.config, self.config.database_id_for(name))

    def query(self, table_id: int) -> QueryBuilder:
        return QueryBuilder(table_id, self.sql)

    def columns_of(self, table_id: int) -> tuple[str, ...]:
        return self.schema.columns_of(table_id)

    def invalidate_schema(self, table_id: Optional[int] = None) -> None:
        self.schema.invalidate(table_id)

    # ── TRANSACTIONS ──────────────────────────────────────

    def begin_transaction(self, database_id: int) -> bool:
        """Stop autocommitting on ``database_id`` until commit() or rollback()."""
        self.registry.get(database_id).autocommit = False
        return True

    def commit(self, database_id: int) -> bool:
        conn = self.registry.get(database_id)
        conn.commit()
        conn.autocommit = True
        return True

    def rollback(self, database_id: int) -> bool:
        conn = self.registry.get(database_id)
        conn.rollback()
        conn.autocommit = True
        return True

    @contextmanager
    def transaction(self, database_id: int) -> Iterator["Database"]:
        """Commit on success, roll back and re-raise on any exception."""
        self.begin_transaction(database_id)
        try:
            yield self
        except Exception as e:
            self.rollback(database_id)
            logger.error(f"Transaction on database {database_id} rolled back: {e}")
            raise
        self.commit(database_id)

    def close(self) -> None:
        if self._log_handler is not None:
            logging.getLogger().removeHandler(self._log_handler)
            self._log_handler = None
        self.registry.close_all()
