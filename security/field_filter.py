"""
security/field_filter.py
------------------------
Column whitelist for caller-supplied field names.

Every field name that ends up in a statement passes through here: it must
look like a plain identifier and it must be one of the table's cached
columns. Anything else is dropped, never raised.
"""

import re
from typing import Any, Mapping, Sequence, Union

from db.schema_cache import SchemaCache
from utils.logger import get_logger

logger = get_logger(__name__)

IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


def is_identifier(name: Any) -> bool:
    """True if ``name`` is a str shaped like a column identifier."""
    return isinstance(name, str) and IDENTIFIER_RE.match(name) is not None


class FieldFilter:
    """Strips fields that are not real columns of the target table."""

    def __init__(self, schema: SchemaCache):
        self.schema = schema

    def is_column(self, table_id: int, name: Any) -> bool:
        return is_identifier(name) and name in self.schema.columns_of(table_id)

    def filter(
        self, table_id: int, data: Union[Mapping[str, Any], Sequence[str]]
    ) -> Union[dict[str, Any], list[str]]:
        """
        Keep only the entries of ``data`` that name a column of ``table_id``.

        Args:
            table_id: Table whose cached columns are the whitelist.
            data: Either a mapping of column -> value (INSERT/UPDATE data,
                WHERE equality maps) or a list of column names (SELECT list).

        Returns:
            A dict (string values stripped of surrounding whitespace) for
            mapping input, a list for sequence input. May be empty.
        """
        if isinstance(data, Mapping):
            out: dict[str, Any] = {}
            for key, value in data.items():
                if not self.is_column(table_id, key):
                    logger.debug(f"Dropped field {key!r} for table {table_id}")
                    continue
                out[key] = value.strip() if isinstance(value, str) else value
            return out

        names: list[str] = []
        for name in data:
            if not self.is_column(table_id, name):
                logger.debug(f"Dropped column {name!r} for table {table_id}")
                continue
            names.append(name)
        return names
