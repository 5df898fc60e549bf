"""Render join clauses and query specs through SQLAlchemy Core.

SQLAlchemy is the SQL-generation layer: this module maps the abstract
values from ``query.join`` / ``query.spec`` onto lightweight
``table()``/``column()`` constructs and lets the chosen dialect compile
them. No table metadata or database connection is needed to render.

Usage:
    sql = render_sql(left_join_for(book_category), dialect="postgresql")
    stmt = to_select(spec)  # executable sqlalchemy.sql.Select
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from sqlalchemy import ColumnElement, FromClause, Select, case, column, select, table
from sqlalchemy.dialects import mssql, mysql, oracle, postgresql, sqlite
from sqlalchemy.engine import Dialect
from sqlalchemy.sql.expression import TableClause

from leftjoin.core.config import SUPPORTED_DIALECTS, get_settings
from leftjoin.core.models.base import NullsPlacement, Operator, SortDirection
from leftjoin.query.expressions import Condition, FieldRef, Ordering
from leftjoin.query.join import JoinClause
from leftjoin.query.spec import QuerySpec

_DIALECT_FACTORIES: dict[str, Callable[[], Dialect]] = {
    "sqlite": sqlite.dialect,
    "postgresql": postgresql.dialect,
    "mysql": mysql.dialect,
    "mssql": mssql.dialect,
    "oracle": oracle.dialect,
}


def get_dialect(name: str | None = None) -> Dialect:
    """Get a SQLAlchemy dialect by name, defaulting to settings.

    Raises:
        ValueError: If the dialect is not supported
    """
    name = name or get_settings().default_dialect
    try:
        factory = _DIALECT_FACTORIES[name]
    except KeyError:
        raise ValueError(
            f"Unsupported dialect {name!r}; expected one of {', '.join(SUPPORTED_DIALECTS)}"
        ) from None
    return factory()


class TableSet:
    """Lightweight SQLAlchemy tables for every relation a statement touches.

    ``table()`` constructs must declare their columns up front, so fields
    are registered first and tables are built on first access.
    """

    def __init__(self) -> None:
        self._columns: dict[str, dict[str, None]] = {}
        self._tables: dict[str, TableClause] = {}

    def register(self, *refs: FieldRef) -> None:
        for ref in refs:
            if ref.relation in self._tables:
                raise RuntimeError(f"Table {ref.relation!r} already built")
            self._columns.setdefault(ref.relation, {})[ref.field] = None

    def table(self, relation: str) -> TableClause:
        if relation not in self._tables:
            names = self._columns.get(relation, {})
            self._tables[relation] = table(relation, *(column(n) for n in names))
        return self._tables[relation]

    def column(self, ref: FieldRef) -> ColumnElement[Any]:
        return self.table(ref.relation).c[ref.field]


def to_join(clause: JoinClause, left: FromClause, tables: TableSet) -> FromClause:
    """Splice ``clause`` onto ``left``, producing a SQLAlchemy Join."""
    owner_field, referenced_field = clause.condition
    onclause = tables.column(owner_field) == tables.column(referenced_field)
    return left.join(tables.table(clause.target), onclause, isouter=clause.is_outer)


def to_condition(condition: Condition, tables: TableSet) -> ColumnElement[bool]:
    col = tables.column(condition.field)
    op = condition.operator
    value = condition.value
    if op is Operator.EQ:
        return col.is_(None) if value is None else col == value
    if op is Operator.NE:
        return col.is_not(None) if value is None else col != value
    if op is Operator.LT:
        return col < value
    if op is Operator.LE:
        return col <= value
    if op is Operator.GT:
        return col > value
    if op is Operator.GE:
        return col >= value
    if op is Operator.IS_NULL:
        return col.is_(None)
    if op is Operator.IS_NOT_NULL:
        return col.is_not(None)
    if op is Operator.IN:
        return col.in_(list(value or ()))
    raise ValueError(f"Unsupported operator: {op}")


def to_order_by(ordering: Ordering, tables: TableSet) -> list[ColumnElement[Any]]:
    """ORDER BY terms for one ordering.

    NULL placement is emitted as a leading ``CASE WHEN col IS NULL`` key
    rather than ``NULLS FIRST/LAST``, which MySQL and SQL Server lack.
    """
    col = tables.column(ordering.field)
    null_last_flag = case((col.is_(None), 1), else_=0)
    null_key = (
        null_last_flag.asc() if ordering.nulls is NullsPlacement.LAST else null_last_flag.desc()
    )
    value_key = col.asc() if ordering.direction is SortDirection.ASC else col.desc()
    return [null_key, value_key]


def _referenced_fields(spec: QuerySpec, extra: Iterable[FieldRef]) -> list[FieldRef]:
    refs: list[FieldRef] = [FieldRef(relation=spec.base.name, field=spec.base.primary_key)]
    refs.extend(spec.selected_fields)
    refs.extend(extra)
    for joined in spec.joins:
        refs.extend(joined.clause.condition)
    refs.extend(c.field for c in spec.conditions)
    refs.extend(o.field for o in spec.orderings)
    return refs


def to_select(spec: QuerySpec, extra_fields: Iterable[FieldRef] = ()) -> Select[Any]:
    """Build an executable SELECT for ``spec``.

    Every selected column is labelled ``"<relation>.<field>"``.

    Args:
        spec: Query specification
        extra_fields: Additional fields to select after the spec's own
            (used by the executor for preload keys)

    Returns:
        SQLAlchemy Select statement
    """
    extra = [f for f in dict.fromkeys(extra_fields) if f not in spec.selected_fields]
    tables = TableSet()
    tables.register(*_referenced_fields(spec, extra))

    from_clause: FromClause = tables.table(spec.base.name)
    for joined in spec.joins:
        from_clause = to_join(joined.clause, from_clause, tables)

    selected = [*spec.selected_fields, *extra]
    stmt = select(*(tables.column(f).label(f.label) for f in selected)).select_from(from_clause)

    for condition in spec.conditions:
        stmt = stmt.where(to_condition(condition, tables))
    for ordering in spec.orderings:
        stmt = stmt.order_by(*to_order_by(ordering, tables))
    if spec.limit_count is not None:
        stmt = stmt.limit(spec.limit_count)
    if spec.offset_count is not None:
        stmt = stmt.offset(spec.offset_count)
    return stmt


def join_construct(clause: JoinClause) -> FromClause:
    """The SQLAlchemy Join for a standalone clause (source joined to target)."""
    tables = TableSet()
    tables.register(*clause.condition)
    return to_join(clause, tables.table(clause.source), tables)


def render_sql(
    target: QuerySpec | JoinClause,
    dialect: str | None = None,
    *,
    literal_binds: bool = False,
) -> str:
    """Compile a query spec or a join clause to SQL text for a dialect.

    A JoinClause renders as its FROM fragment, e.g.
    ``books LEFT OUTER JOIN categories ON books.category_id = categories.id``.

    Args:
        target: What to render
        dialect: Dialect name; defaults to ``Settings.default_dialect``
        literal_binds: Inline parameter values instead of placeholders

    Returns:
        SQL text

    Raises:
        ValueError: If the dialect is not supported
    """
    construct = join_construct(target) if isinstance(target, JoinClause) else to_select(target)
    compile_kwargs = {"literal_binds": True} if literal_binds else {}
    compiled = construct.compile(dialect=get_dialect(dialect), compile_kwargs=compile_kwargs)
    return str(compiled)
