"""
security/conditions.py
----------------------
Turns loosely shaped WHERE input into validated Condition objects.

Accepted shapes for one entry (``key`` -> ``value``):

    "status": "active"                                    -> status = 'active'
    "status": ["status", "IN", ["a", "b"]]                -> status IN (...)
    "status": {"field": "status", "operator": "!=", "value": "x"}

Unknown operators fall back to '='. Entries whose field is not a column
of the table are dropped and logged.
"""

from typing import Any, Iterable, Iterator, Mapping, Optional

from db.schema_cache import SchemaCache
from models.condition import DEFAULT_ALLOWED_OPERATORS, DEFAULT_OPERATOR, Condition
from security.field_filter import is_identifier
from utils.logger import get_logger

logger = get_logger(__name__)


def iter_where(where: Any) -> Iterator[tuple[Any, Any]]:
    """Yield ``(key, value)`` pairs from a mapping or a list of conditions."""
    if not where:
        return iter(())
    if isinstance(where, Mapping):
        return iter(where.items())
    return iter(enumerate(where))


def _resolve(key: Any, value: Any) -> tuple[Any, Any, Any]:
    """Return ``(field, raw_operator, value)`` for one entry."""
    if isinstance(value, (list, tuple)) and len(value) == 3 \
            and isinstance(value[0], str) and isinstance(value[1], str):
        return value[0], value[1], value[2]
    if isinstance(value, Mapping) and "field" in value and "value" in value:
        return value["field"], value.get("operator", DEFAULT_OPERATOR), value["value"]
    return key, DEFAULT_OPERATOR, value


def normalize_operator(operator: Any, allowed: Iterable[str] = DEFAULT_ALLOWED_OPERATORS) -> str:
    """Upper-case and trim ``operator``; anything not allowed becomes '='."""
    op = " ".join(str(operator).split()).upper() if operator is not None else DEFAULT_OPERATOR
    if op not in allowed:
        logger.debug(f"Operator {operator!r} not allowed, using '{DEFAULT_OPERATOR}'")
        return DEFAULT_OPERATOR
    return op


class ConditionNormalizer:
    """Validates WHERE entries against the table's cached columns."""

    def __init__(self, schema: SchemaCache):
        self.schema = schema

    def normalize(
        self,
        table_id: int,
        key: Any,
        value: Any,
        allowed_operators: Iterable[str] = DEFAULT_ALLOWED_OPERATORS,
    ) -> Optional[Condition]:
        """
        Normalize a single WHERE entry.

        For the list and mapping shapes the embedded field wins over
        ``key``. Returns None when the resolved field is not a valid
        identifier or not a column of ``table_id``.
        """
        field, operator, operand = _resolve(key, value)

        if not is_identifier(field):
            logger.warning(f"Invalid field name in condition for table {table_id}: {field!r}")
            return None
        if field not in self.schema.columns_of(table_id):
            logger.warning(f"Field not found in table {table_id}: {field}")
            return None

        return Condition(
            field=field,
            operator=normalize_operator(operator, tuple(allowed_operators)),
            value=operand,
        )

    def normalize_all(
        self,
        table_id: int,
        where: Any,
        allowed_operators: Iterable[str] = DEFAULT_ALLOWED_OPERATORS,
    ) -> list[Condition]:
        """Normalize every entry of ``where``, dropping the ones that fail."""
        allowed = tuple(allowed_operators)
        conditions = []
        for key, value in iter_where(where):
            condition = self.normalize(table_id, key, value, allowed)
            if condition is not None:
                conditions.append(condition)
        return conditions
