"""
db/errors.py
------------
Exceptions raised by the database layer.

Validation problems with caller input are not exceptions: offending
fields and conditions are dropped and logged. Errors raised by psycopg2
while executing a statement are propagated unchanged.
"""


class DatabaseError(Exception):
    """Base class for errors raised by this package."""


class ConfigurationError(DatabaseError):
    """A database id, table id or group name is missing from the configuration."""
