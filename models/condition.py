"""
models/condition.py
-------------------
WHERE-clause conditions and join descriptions.
"""

from dataclasses import dataclass, field
from typing import Any

DEFAULT_OPERATOR = "="

DEFAULT_ALLOWED_OPERATORS: tuple[str, ...] = (
    "=", "!=", ">", "<", ">=", "<=",
    "LIKE", "IN", "NOT IN", "IS NULL", "IS NOT NULL",
)

LIST_OPERATORS = ("IN", "NOT IN")
NULL_OPERATORS = ("IS NULL", "IS NOT NULL")

JOIN_KINDS = ("INNER", "LEFT", "RIGHT")


@dataclass(frozen=True)
class Condition:
    """
    A single normalized comparison.

    Attributes:
        field: Column name, verified against the table's cached columns.
        operator: One of the allowed operators (never anything else).
        value: Scalar, or a sequence for IN / NOT IN.
    """
    field: str
    operator: str
    value: Any

    @property
    def is_list(self) -> bool:
        return self.operator in LIST_OPERATORS

    @property
    def is_null_check(self) -> bool:
        return self.operator in NULL_OPERATORS


@dataclass(frozen=True)
class Join:
    """
    Equi-join of the queried table with another table of the same database.

    Attributes:
        table_id: Joined table.
        left_column: Column of the queried table.
        right_column: Column of the joined table.
        kind: 'INNER', 'LEFT' or 'RIGHT'.
        fields: Columns of the joined table to add to the select list.
    """
    table_id: int
    left_column: str
    right_column: str
    kind: str = "INNER"
    fields: tuple[str, ...] = field(default_factory=tuple)
