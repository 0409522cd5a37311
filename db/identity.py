"""
db/identity.py
--------------
Table identity scheme.

A table id carries the id of the database that owns it in its leading
digits: ``table_id = owner_database_id * 100 + sequence``. With the usual
three-digit ids, 101 and 102 live in database 1 and 201 in database 2.

No other module decodes table ids; everything else asks this one.
"""

from db.errors import ConfigurationError

TABLE_SEQUENCE_WIDTH = 100


def owner_database_id(table_id: int) -> int:
    """
    Return the id of the database that owns ``table_id``.

    Raises:
        ConfigurationError: If ``table_id`` is not a positive int of at
            least three digits.
    """
    if isinstance(table_id, bool) or not isinstance(table_id, int):
        raise ConfigurationError(f"Table id must be an int, got {table_id!r}")
    if table_id < TABLE_SEQUENCE_WIDTH:
        raise ConfigurationError(f"Table id {table_id} does not encode a database id")
    return table_id // TABLE_SEQUENCE_WIDTH


def belongs_to(table_id: int, database_id: int) -> bool:
    """True if ``table_id`` is owned by ``database_id``."""
    return owner_database_id(table_id) == database_id
