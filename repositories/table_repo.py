"""
repositories/table_repo.py
--------------------------
Executes statements built by StatementBuilder on the pooled connection of
the owning database.

Writes return True when at least one row was affected; reads return lists
of dicts. When the builder reports "nothing to do" no statement is sent.
psycopg2 errors are logged and re-raised unchanged: there is no retry and
no rollback here, transactions belong to the caller.
"""

from typing import Any, Iterable, Mapping, Optional

import psycopg2

from db.connection import ConnectionRegistry
from models.condition import Join
from models.statement import StatementPlan
from repositories.statement_builder import ALL_COLUMNS, StatementBuilder
from utils.logger import get_logger

logger = get_logger(__name__)


class TableRepository:
    """Schema-validated CRUD for any configured table id."""

    def __init__(self, builder: StatementBuilder, registry: ConnectionRegistry):
        self.builder = builder
        self.registry = registry

    # ── EXECUTION ─────────────────────────────────────────

    def _execute(self, plan: StatementPlan) -> int:
        """Run a write statement and return its row count."""
        conn = self.registry.get(plan.database_id)
        try:
            with conn.cursor() as cur:
                cur.execute(plan.sql, plan.params)
                rowcount = cur.rowcount
        except psycopg2.Error as e:
            logger.error(f"Failed to execute {plan}: {e}")
            raise
        logger.info(f"{plan.kind} {plan.table}: {rowcount} row(s) affected")
        return rowcount

    def _fetch(self, plan: StatementPlan) -> list[dict]:
        conn = self.registry.get(plan.database_id)
        try:
            with conn.cursor() as cur:
                cur.execute(plan.sql, plan.params)
                return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error(f"Failed to execute {plan}: {e}")
            raise

    # ── CREATE ────────────────────────────────────────────

    def insert(self, table_id: int, data: Mapping[str, Any]) -> bool:
        """
        Insert one row built from the columns of ``data`` that exist.

        Returns:
            True if a row was inserted, False if nothing survived filtering.
        """
        plan = self.builder.build_insert(table_id, data)
        if plan is None:
            logger.debug(f"INSERT into table {table_id} skipped: no valid columns")
            return False
        return self._execute(plan) > 0

    # ── READ ──────────────────────────────────────────────

    def select(
        self,
        table_id: int,
        fields: Optional[Iterable[str]] = (ALL_COLUMNS,),
        where: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict]:
        """Rows matching every ``column = value`` pair of ``where``."""
        plan = self.builder.build_select(table_id, fields, where, order, limit, offset)
        if plan is None:
            return []
        return self._fetch(plan)

    def select_open(
        self,
        table_id: int,
        fields: Optional[Iterable[str]] = (ALL_COLUMNS,),
        where: Any = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        joins: Iterable[Join] = (),
    ) -> list[dict]:
        """
        Rows matching operator conditions such as
        ``{"age": ["age", ">=", 18], "status": ["status", "IN", ["a", "b"]]}``.

        Returns an empty list, without querying, when every supplied
        condition was rejected.
        """
        plan = self.builder.build_select_open(table_id, fields, where, order, limit, offset, joins)
        if plan is None:
            return []
        return self._fetch(plan)

    def select_one(
        self,
        table_id: int,
        where: Optional[Mapping[str, Any]] = None,
        fields: Optional[Iterable[str]] = (ALL_COLUMNS,),
    ) -> Optional[dict]:
        rows = self.select(table_id, fields, where, limit=1)
        return rows[0] if rows else None

    def select_like(
        self,
        table_id: int,
        like: Mapping[str, Any],
        fields: Optional[Iterable[str]] = (ALL_COLUMNS,),
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Substring search on one or more text columns."""
        if limit is None:
            plan = self.builder.build_select_like(table_id, like, fields)
        else:
            plan = self.builder.build_select_like(table_id, like, fields, limit)
        if plan is None:
            return []
        return self._fetch(plan)

    def count(self, table_id: int, where: Any = None, joins: Iterable[Join] = ()) -> int:
        plan = self.builder.build_count(table_id, where, joins)
        if plan is None:
            return 0
        rows = self._fetch(plan)
        return int(rows[0]["count"]) if rows else 0

    # ── UPDATE ────────────────────────────────────────────

    def update(self, table_id: int, data: Mapping[str, Any], where: Mapping[str, Any]) -> bool:
        """
        Update rows matching ``where`` (equality only).

        Returns:
            True if a row was updated. False if no row matched, or if
            ``data`` or ``where`` was empty after filtering, in which case
            nothing is executed.
        """
        plan = self.builder.build_update(table_id, data, where)
        if plan is None:
            logger.debug(f"UPDATE of table {table_id} skipped: empty data or conditions")
            return False
        return self._execute(plan) > 0

    # ── DELETE ────────────────────────────────────────────

    def delete(self, table_id: int, where: Mapping[str, Any]) -> bool:
        """
        Delete rows matching ``where`` (equality only).

        An empty or fully invalid ``where`` never deletes anything.
        """
        plan = self.builder.build_delete(table_id, where)
        if plan is None:
            logger.debug(f"DELETE from table {table_id} skipped: no valid conditions")
            return False
        return self._execute(plan) > 0

    # ── SCHEMA ────────────────────────────────────────────

    def columns_of(self, table_id: int) -> tuple[str, ...]:
        return self.builder.schema.columns_of(table_id)

    def invalidate_schema(self, table_id: Optional[int] = None) -> None:
        self.builder.schema.invalidate(table_id)
