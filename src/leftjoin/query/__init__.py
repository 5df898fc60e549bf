"""Query layer: join clauses, query specs, rendering and execution."""

from leftjoin.query.execution import QueryExecutor, QueryResult, ResultRow, execute_query
from leftjoin.query.expressions import Condition, FieldRef, Ordering, field
from leftjoin.query.join import (
    JoinClause,
    build_left_join,
    inner_join_for,
    join_for,
    left_join_for,
)
from leftjoin.query.rendering import get_dialect, render_sql, to_join, to_select
from leftjoin.query.spec import JoinedRelation, Preload, PreloadDirection, QuerySpec

__all__ = [
    # Join builder
    "JoinClause",
    "build_left_join",
    "inner_join_for",
    "join_for",
    "left_join_for",
    # Composition
    "Condition",
    "FieldRef",
    "JoinedRelation",
    "Ordering",
    "Preload",
    "PreloadDirection",
    "QuerySpec",
    "field",
    # Rendering
    "get_dialect",
    "render_sql",
    "to_join",
    "to_select",
    # Execution
    "QueryExecutor",
    "QueryResult",
    "ResultRow",
    "execute_query",
]
