"""leftjoin.

Database-agnostic LEFT OUTER JOIN clauses built from relation/association
metadata, composed into queries that SQLAlchemy renders and executes.
"""

__version__ = "0.1.0"

from leftjoin.core.models.base import Result
from leftjoin.query import (
    JoinClause,
    QueryExecutor,
    QuerySpec,
    build_left_join,
    field,
    left_join_for,
    render_sql,
)
from leftjoin.schema import AssociationDescriptor, RelationDescriptor, SchemaRegistry

__all__ = [
    "AssociationDescriptor",
    "JoinClause",
    "QueryExecutor",
    "QuerySpec",
    "RelationDescriptor",
    "Result",
    "SchemaRegistry",
    "__version__",
    "build_left_join",
    "field",
    "left_join_for",
    "render_sql",
]
