"""
services/query_builder.py
-------------------------
Chainable wrapper around TableRepository.select_open / count.

    rows = (
        db.query(101)
        .select(["id", "name"])
        .and_where("age", 18, ">=")
        .order_by("name ASC")
        .limit(20)
        .get()
    )

All validation happens in the repository layer.
"""

from typing import Any, Iterable, Mapping, Optional

from models.condition import Join
from repositories.table_repo import TableRepository


class QueryBuilder:
    """Accumulates query parts for one table and runs them on demand."""

    def __init__(self, table_id: int, repository: TableRepository):
        self.table_id = table_id
        self.repository = repository
        self._fields: list[str] = ["*"]
        self._where: dict[Any, Any] = {}
        self._order: Optional[str] = None
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None
        self._joins: list[Join] = []

    def select(self, fields: Iterable[str]) -> "QueryBuilder":
        self._fields = list(fields)
        return self

    def where(self, conditions: Mapping[Any, Any]) -> "QueryBuilder":
        """Merge conditions; a later entry for the same key replaces the earlier one."""
        self._where.update(conditions)
        return self

    def and_where(self, field: str, value: Any, operator: str = "=") -> "QueryBuilder":
        self._where[field] = [field, operator, value]
        return self

    def order_by(self, order: str) -> "QueryBuilder":
        self._order = order
        return self

    def limit(self, limit: int) -> "QueryBuilder":
        self._limit = limit
        return self

    def offset(self, offset: int) -> "QueryBuilder":
        self._offset = offset
        return self

    def join(
        self,
        table_id: int,
        left_column: str,
        right_column: str,
        kind: str = "INNER",
        fields: Iterable[str] = (),
    ) -> "QueryBuilder":
        """Join another table of the same database on ``left_column = right_column``."""
        self._joins.append(Join(table_id, left_column, right_column, kind.upper(), tuple(fields)))
        return self

    def get(self) -> list[dict]:
        return self.repository.select_open(
            self.table_id,
            self._fields,
            self._where,
            self._order,
            self._limit,
            self._offset,
            self._joins,
        )

    def first(self) -> Optional[dict]:
        self._limit = 1
        rows = self.get()
        return rows[0] if rows else None

    def count(self) -> int:
        return self.repository.count(self.table_id, self._where, self._joins)

    def exists(self) -> bool:
        return self.count() > 0
