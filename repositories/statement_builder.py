"""
repositories/statement_builder.py
---------------------------------
Builds parameterized INSERT / UPDATE / DELETE / SELECT statements from
caller-supplied field maps and conditions.

Column names only reach the SQL text after FieldFilter or
ConditionNormalizer has checked them against the cached schema, and they
are always double-quoted. Values are never written into the text; each one
gets a named ``%(name)s`` placeholder bound by psycopg2.

A builder returns None for the "nothing to do" outcome: no surviving
data, no surviving WHERE for a write, or a non-empty WHERE that filtered
down to nothing for a read.
"""

from typing import Any, Iterable, Mapping, Optional, Sequence

from config import DEFAULT_LIKE_LIMIT, DEFAULT_SELECT_LIMIT
from db.config_source import DatabaseConfig
from db.identity import belongs_to, owner_database_id
from db.schema_cache import SchemaCache
from models.condition import JOIN_KINDS, Condition, Join
from models.statement import StatementPlan
from security.conditions import ConditionNormalizer
from security.field_filter import FieldFilter, is_identifier
from utils.logger import get_logger

logger = get_logger(__name__)

ALL_COLUMNS = "*"
ORDER_DIRECTIONS = ("ASC", "DESC")


def quote_identifier(name: str) -> str:
    """Double-quote an identifier for PostgreSQL."""
    return '"' + name.replace('"', '""') + '"'


def _wants_all(fields: Optional[Iterable[str]]) -> bool:
    return fields is None or list(fields) == [ALL_COLUMNS]


def _as_count(value: Any) -> int:
    return max(int(value), 0)


class StatementBuilder:
    """Turns validated input into StatementPlan objects."""

    def __init__(
        self,
        config: DatabaseConfig,
        schema: SchemaCache,
        field_filter: Optional[FieldFilter] = None,
        normalizer: Optional[ConditionNormalizer] = None,
        default_limit: int = DEFAULT_SELECT_LIMIT,
    ):
        self.config = config
        self.schema = schema
        self.fields = field_filter or FieldFilter(schema)
        self.normalizer = normalizer or ConditionNormalizer(schema)
        self.default_limit = default_limit

    # ── HELPERS ───────────────────────────────────────────

    def quote_table(self, table_id: int) -> str:
        return quote_identifier(self.config.get_table_name(table_id))

    def _plan(self, table_id: int, kind: str, sql: str, params: dict) -> StatementPlan:
        return StatementPlan(
            sql=sql,
            params=params,
            database_id=owner_database_id(table_id),
            kind=kind,
            table=self.config.get_table_name(table_id),
        )

    @staticmethod
    def _column(name: str, qualifier: Optional[str] = None) -> str:
        if qualifier:
            return f"{qualifier}.{quote_identifier(name)}"
        return quote_identifier(name)

    def _paging(self, limit: Optional[int], offset: Optional[int], params: dict) -> str:
        params["limit"] = self.default_limit if limit is None else _as_count(limit)
        clause = "LIMIT %(limit)s"
        if offset is not None:
            params["offset"] = _as_count(offset)
            clause += " OFFSET %(offset)s"
        return clause

    @staticmethod
    def _equality(where: Mapping[str, Any], qualifier: Optional[str] = None) -> tuple[list[str], dict]:
        parts, params = [], {}
        for i, (col, value) in enumerate(where.items(), start=1):
            name = f"w{i}"
            parts.append(f"{StatementBuilder._column(col, qualifier)} = %({name})s")
            params[name] = value
        return parts, params

    @staticmethod
    def _comparisons(conditions: Sequence[Condition], qualifier: Optional[str] = None) -> tuple[list[str], dict]:
        parts, params = [], {}
        for i, condition in enumerate(conditions, start=1):
            column = StatementBuilder._column(condition.field, qualifier)
            name = f"w{i}"

            if condition.is_null_check:
                parts.append(f"{column} {condition.operator}")
            elif condition.is_list:
                values = condition.value
                if not isinstance(values, (list, tuple, set, frozenset)):
                    values = [values]
                placeholders = []
                for index, item in enumerate(values):
                    key = f"{name}_{index}"
                    placeholders.append(f"%({key})s")
                    params[key] = item
                if placeholders:
                    parts.append(f"{column} {condition.operator} ({', '.join(placeholders)})")
                else:
                    parts.append("FALSE" if condition.operator == "IN" else "TRUE")
            else:
                parts.append(f"{column} {condition.operator} %({name})s")
                params[name] = condition.value
        return parts, params

    @staticmethod
    def _where_sql(parts: list[str]) -> str:
        return "WHERE " + " AND ".join(parts) if parts else ""

    @staticmethod
    def _join_clauses(*clauses: str) -> str:
        return " ".join(c for c in clauses if c)

    # ── ORDER BY ──────────────────────────────────────────

    def validate_order(self, table_id: int, order: Optional[str], qualifier: Optional[str] = None) -> str:
        """
        Return a safe ORDER BY clause for ``table_id``.

        ``order`` must be exactly ``"<column> ASC|DESC"`` naming a cached
        column. When it is missing or malformed the clause falls back to
        the first catalog column, descending; with no known columns there
        is no ORDER BY at all.
        """
        columns = self.schema.columns_of(table_id)
        default = f"ORDER BY {self._column(columns[0], qualifier)} DESC" if columns else ""

        if order is None or not str(order).strip():
            if not columns:
                logger.warning(f"Column list of table {table_id} is empty; no ORDER BY applied")
            return default

        parts = str(order).split()
        if len(parts) != 2 or parts[1].upper() not in ORDER_DIRECTIONS:
            logger.warning(f"Invalid order parameter: {order!r}")
            return default

        field = parts[0].strip('"`')
        if not is_identifier(field) or field not in columns:
            logger.warning(f"Order column not found in table {table_id}: {field}")
            return default

        return f"ORDER BY {self._column(field, qualifier)} {parts[1].upper()}"

    # ── JOINS ─────────────────────────────────────────────

    def _resolve_joins(self, table_id: int, joins: Iterable[Join]) -> list[tuple[str, str, str, list[str]]]:
        """Validate joins; returns (kind, quoted table, ON clause, quoted fields) tuples."""
        database_id = owner_database_id(table_id)
        base = self.quote_table(table_id)
        seen = {table_id}
        resolved = []
        for join in joins:
            kind = str(join.kind).strip().upper()
            if kind not in JOIN_KINDS:
                logger.warning(f"Unsupported join type {join.kind!r}; join on table {join.table_id} dropped")
                continue
            if join.table_id in seen or not belongs_to(join.table_id, database_id):
                logger.warning(f"Table {join.table_id} cannot be joined to table {table_id}")
                continue
            if not self.fields.is_column(table_id, join.left_column) \
                    or not self.fields.is_column(join.table_id, join.right_column):
                logger.warning(
                    f"Join columns {join.left_column!r}/{join.right_column!r} not found; "
                    f"join on table {join.table_id} dropped"
                )
                continue

            seen.add(join.table_id)
            other = self.quote_table(join.table_id)
            on = f"{self._column(join.left_column, base)} = {self._column(join.right_column, other)}"
            fields = [self._column(f, other) for f in self.fields.filter(join.table_id, list(join.fields))]
            resolved.append((kind, other, on, fields))
        return resolved

    # ── WRITES ────────────────────────────────────────────

    def build_insert(self, table_id: int, data: Mapping[str, Any]) -> Optional[StatementPlan]:
        """INSERT of every surviving column; None if nothing survives."""
        data = self.fields.filter(table_id, data or {})
        if not data:
            return None

        cols, placeholders, params = [], [], {}
        for i, (col, value) in enumerate(data.items(), start=1):
            name = f"v{i}"
            cols.append(quote_identifier(col))
            placeholders.append(f"%({name})s")
            params[name] = value

        sql = (
            f"INSERT INTO {self.quote_table(table_id)} ({', '.join(cols)}) "
            f"VALUES ({', '.join(placeholders)})"
        )
        return self._plan(table_id, "INSERT", sql, params)

    def build_delete(self, table_id: int, where: Mapping[str, Any]) -> Optional[StatementPlan]:
        """Equality-only DELETE; None when no WHERE column survives."""
        where = self.fields.filter(table_id, where or {})
        if not where:
            return None

        parts, params = self._equality(where)
        sql = f"DELETE FROM {self.quote_table(table_id)} {self._where_sql(parts)}"
        return self._plan(table_id, "DELETE", sql, params)

    def build_update(
        self, table_id: int, data: Mapping[str, Any], where: Mapping[str, Any]
    ) -> Optional[StatementPlan]:
        """
        UPDATE with SET values bound as ``s<n>`` and WHERE values as
        ``w<n>``. None if either side is empty after filtering.
        """
        data = self.fields.filter(table_id, data or {})
        where = self.fields.filter(table_id, where or {})
        if not data or not where:
            return None

        sets, params = [], {}
        for i, (col, value) in enumerate(data.items(), start=1):
            name = f"s{i}"
            sets.append(f"{quote_identifier(col)} = %({name})s")
            params[name] = value
        parts, where_params = self._equality(where)
        params.update(where_params)

        sql = f"UPDATE {self.quote_table(table_id)} SET {', '.join(sets)} {self._where_sql(parts)}"
        return self._plan(table_id, "UPDATE", sql, params)

    # ── READS ─────────────────────────────────────────────

    def _select_list(self, table_id: int, fields: Optional[Iterable[str]], qualifier: Optional[str] = None) -> Optional[list[str]]:
        if fields is not None:
            fields = list(fields)
        if _wants_all(fields):
            return [f"{qualifier}.*" if qualifier else ALL_COLUMNS]
        names = self.fields.filter(table_id, fields)
        if not names:
            logger.warning(f"No requested column exists in table {table_id}")
            return None
        return [self._column(name, qualifier) for name in names]

    def build_select(
        self,
        table_id: int,
        fields: Optional[Iterable[str]] = (ALL_COLUMNS,),
        where: Optional[Mapping[str, Any]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> Optional[StatementPlan]:
        """Equality-only SELECT."""
        filtered = self.fields.filter(table_id, where or {})
        if where and not filtered:
            logger.warning(f"All conditions for table {table_id} are invalid")
            return None

        columns = self._select_list(table_id, fields)
        if columns is None:
            return None

        parts, params = self._equality(filtered)
        sql = self._join_clauses(
            f"SELECT {', '.join(columns)} FROM {self.quote_table(table_id)}",
            self._where_sql(parts),
            self.validate_order(table_id, order),
            self._paging(limit, offset, params),
        )
        return self._plan(table_id, "SELECT", sql, params)

    def _open_where(self, table_id: int, where: Any, qualifier: Optional[str]) -> Optional[tuple[list[str], dict]]:
        conditions = self.normalizer.normalize_all(table_id, where)
        if where and not conditions:
            logger.warning(f"All conditions for table {table_id} are invalid")
            return None
        return self._comparisons(conditions, qualifier)

    def _from_clause(self, table_id: int, resolved_joins: list) -> str:
        clause = f"FROM {self.quote_table(table_id)}"
        for kind, other, on, _ in resolved_joins:
            clause += f" {kind} JOIN {other} ON {on}"
        return clause

    def build_select_open(
        self,
        table_id: int,
        fields: Optional[Iterable[str]] = (ALL_COLUMNS,),
        where: Any = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        joins: Iterable[Join] = (),
    ) -> Optional[StatementPlan]:
        """
        Operator-aware SELECT.

        ``where`` is a mapping or a list of conditions in any shape the
        ConditionNormalizer accepts. IN / NOT IN lists get one placeholder
        per element. Returns None when a non-empty ``where`` loses every
        condition, so the caller answers with no rows instead of scanning
        the whole table.
        """
        resolved = self._resolve_joins(table_id, joins)
        qualifier = self.quote_table(table_id) if resolved else None

        rendered = self._open_where(table_id, where, qualifier)
        if rendered is None:
            return None
        parts, params = rendered

        columns = self._select_list(table_id, fields, qualifier)
        if columns is None:
            return None
        for _, _, _, join_fields in resolved:
            columns.extend(join_fields)

        sql = self._join_clauses(
            f"SELECT {', '.join(columns)}",
            self._from_clause(table_id, resolved),
            self._where_sql(parts),
            self.validate_order(table_id, order, qualifier),
            self._paging(limit, offset, params),
        )
        return self._plan(table_id, "SELECT", sql, params)

    def build_count(self, table_id: int, where: Any = None, joins: Iterable[Join] = ()) -> Optional[StatementPlan]:
        """SELECT COUNT(*) with the same WHERE handling as build_select_open."""
        resolved = self._resolve_joins(table_id, joins)
        qualifier = self.quote_table(table_id) if resolved else None

        rendered = self._open_where(table_id, where, qualifier)
        if rendered is None:
            return None
        parts, params = rendered

        sql = self._join_clauses(
            'SELECT COUNT(*) AS "count"',
            self._from_clause(table_id, resolved),
            self._where_sql(parts),
        )
        return self._plan(table_id, "SELECT", sql, params)

    def build_select_like(
        self,
        table_id: int,
        like: Mapping[str, Any],
        fields: Optional[Iterable[str]] = (ALL_COLUMNS,),
        limit: int = DEFAULT_LIKE_LIMIT,
    ) -> Optional[StatementPlan]:
        """Substring search: every surviving ``col -> text`` becomes ``col LIKE '%text%'``."""
        like = self.fields.filter(table_id, like or {})
        if not like:
            return None
        columns = self._select_list(table_id, fields)
        if columns is None:
            return None

        parts, params = [], {}
        for i, (col, value) in enumerate(like.items(), start=1):
            name = f"l{i}"
            parts.append(f"{quote_identifier(col)} LIKE %({name})s")
            params[name] = f"%{value}%"

        table_columns = self.schema.columns_of(table_id)
        order = self.validate_order(table_id, f"{table_columns[0]} ASC") if table_columns else ""
        sql = self._join_clauses(
            f"SELECT {', '.join(columns)} FROM {self.quote_table(table_id)}",
            self._where_sql(parts),
            order,
            self._paging(limit, None, params),
        )
        return self._plan(table_id, "SELECT", sql, params)
