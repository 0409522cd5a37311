"""
models/statement.py
-------------------
A fully built, parameterized statement.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class StatementPlan:
    """
    SQL text plus its bound values, ready for cursor.execute().

    Attributes:
        sql: Statement text. Identifiers are quoted in place; every value
            is a named ``%(name)s`` placeholder.
        params: Values for the placeholders.
        database_id: Database whose connection runs the statement.
        kind: 'INSERT', 'UPDATE', 'DELETE' or 'SELECT'.
        table: Table name, for log lines.
    """
    sql: str
    params: dict[str, Any] = field(default_factory=dict)
    database_id: int = 0
    kind: str = "SELECT"
    table: str = ""

    def __str__(self) -> str:
        return f"{self.kind} {self.table} (db {self.database_id})"
