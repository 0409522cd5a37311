"""
db/config_source.py
-------------------
Configuration sources for database descriptors and table maps.

Every source exposes the same three sections:

    databases:   {database_id: {host, port, user, password}}
    tables:      {table_id: table_name}
    db_mapping:  {database_id: logical_database_name}

and an optional ``logging`` section. Lookups for ids that are not
configured raise ConfigurationError; nothing is silently defaulted.
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from db.errors import ConfigurationError
from db.identity import belongs_to
from utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_SECTIONS = ("databases", "tables", "db_mapping")
DEFAULT_PORT = 5432


@dataclass(frozen=True)
class DatabaseDescriptor:
    """
    Connection details for one logical database.

    Attributes:
        id: Database id (the leading digits of its table ids).
        host: Server host name.
        port: Server port.
        user: Login role.
        password: Login password.
        logical_name: Name of the database on the server.
    """
    id: int
    host: str
    port: int
    user: str
    password: str
    logical_name: str

    def __repr__(self) -> str:
        return (
            f"DatabaseDescriptor(id={self.id}, host={self.host!r}, port={self.port}, "
            f"user={self.user!r}, logical_name={self.logical_name!r})"
        )


class DatabaseConfig(ABC):
    """Read-only view over the databases/tables/db_mapping sections."""

    @abstractmethod
    def as_dict(self) -> dict:
        """Return the full configuration as plain dicts."""

    @abstractmethod
    def validate(self) -> bool:
        """Check that the configuration is usable, raising ConfigurationError if not."""

    def has_section(self, section: str) -> bool:
        return section in self.as_dict()

    def get_db_info(self, db_id: int) -> dict:
        """Return the raw connection settings of a database."""
        databases = self.as_dict().get("databases", {})
        if db_id not in databases:
            raise ConfigurationError(f"Database id {db_id} is not configured")
        return databases[db_id]

    def get_table_name(self, table_id: int) -> str:
        tables = self.as_dict().get("tables", {})
        if table_id not in tables:
            raise ConfigurationError(f"Table id {table_id} is not configured")
        return tables[table_id]

    def get_db_name(self, db_id: int) -> str:
        """Return the logical database name mapped to a database id."""
        mapping = self.as_dict().get("db_mapping", {})
        if db_id not in mapping:
            raise ConfigurationError(f"Database group id {db_id} is not configured")
        return mapping[db_id]

    def descriptor(self, db_id: int) -> DatabaseDescriptor:
        """Build the DatabaseDescriptor for ``db_id``."""
        info = self.get_db_info(db_id)
        password = info.get("password", info.get("pw", ""))
        return DatabaseDescriptor(
            id=db_id,
            host=str(info.get("host", "localhost")),
            port=int(info.get("port", DEFAULT_PORT)),
            user=str(info.get("user", "")),
            password=str(password),
            logical_name=self.get_db_name(db_id),
        )

    def database_id_for(self, group_name: str) -> int:
        """Resolve a database group name (e.g. 'main') to its id."""
        for db_id, name in self.as_dict().get("db_mapping", {}).items():
            if name == group_name:
                return db_id
        raise ConfigurationError(f"Database group '{group_name}' is not configured")

    def table_id_for(self, db_id: int, table_name: str) -> int:
        """Resolve a table name inside a database to its table id."""
        for table_id, name in self.tables_of(db_id).items():
            if name == table_name:
                return table_id
        raise ConfigurationError(f"Table '{table_name}' is not configured in database {db_id}")

    def tables_of(self, db_id: int) -> dict[int, str]:
        """All configured tables owned by ``db_id``."""
        return {
            table_id: name
            for table_id, name in self.as_dict().get("tables", {}).items()
            if belongs_to(table_id, db_id)
        }

    def logging_settings(self) -> dict:
        return dict(self.as_dict().get("logging") or {})


def _int_keys(section: str, data: Mapping) -> dict:
    out = {}
    for key, value in data.items():
        try:
            out[int(key)] = value
        except (TypeError, ValueError):
            raise ConfigurationError(f"Non-numeric id {key!r} in section '{section}'") from None
    return out


class ArrayDatabaseConfig(DatabaseConfig):
    """Configuration held in a plain mapping, e.g. loaded from a settings file."""

    def __init__(self, config: Mapping[str, Any]):
        if not isinstance(config, Mapping):
            raise ConfigurationError("Database configuration must be a mapping")
        self._config = dict(config)
        self.validate()
        for section in REQUIRED_SECTIONS:
            self._config[section] = _int_keys(section, self._config[section])

    def validate(self) -> bool:
        for section in REQUIRED_SECTIONS:
            if not isinstance(self._config.get(section), Mapping):
                raise ConfigurationError(f"Configuration is missing section: {section}")
        return True

    def as_dict(self) -> dict:
        return self._config


class EnvDatabaseConfig(DatabaseConfig):
    """
    Configuration read from environment variables.

    Recognised variables (with the default ``DB_`` prefix):

        DB_DB_1_HOST, DB_DB_1_PORT, DB_DB_1_USER, DB_DB_1_PASSWORD
        DB_TABLE_101_NAME
        DB_MAPPING_1_NAME

    A .env file is honoured because config.py runs load_dotenv().
    """

    def __init__(self, prefix: str = "DB_", environ: Optional[Mapping[str, str]] = None):
        self.prefix = prefix
        self._config = self._load(environ if environ is not None else os.environ)
        self.validate()

    def _load(self, environ: Mapping[str, str]) -> dict:
        config: dict = {"databases": {}, "tables": {}, "db_mapping": {}}
        for key, value in environ.items():
            if key.startswith(self.prefix):
                self._parse_key(key[len(self.prefix):], value, config)
        return config

    @staticmethod
    def _parse_key(key: str, value: str, config: dict) -> None:
        parts = key.split("_", 2)
        if len(parts) != 3:
            return
        kind, raw_id, field = parts[0].lower(), parts[1], parts[2].lower()
        try:
            item_id = int(raw_id)
        except ValueError:
            logger.debug(f"Ignoring environment key with non-numeric id: {key}")
            return

        if kind in ("db", "database"):
            config["databases"].setdefault(item_id, {})[field] = value
        elif kind == "table" and field == "name":
            config["tables"][item_id] = value
        elif kind == "mapping" and field == "name":
            config["db_mapping"][item_id] = value

    def validate(self) -> bool:
        if not self._config["databases"]:
            raise ConfigurationError(
                f"No database connection configured (expected {self.prefix}DB_<id>_HOST, ...)"
            )
        return True

    def as_dict(self) -> dict:
        return self._config
