"""Query execution with batched eager loading.

Runs a ``QuerySpec`` on a SQLAlchemy connection (or session):
1. Execute the primary SELECT (joins, filters, ordering, paging)
2. For each preload, collect the keys seen in step 1 and fetch the
   associated rows in ``IN (...)`` batches, one round-trip per batch
3. Attach the fetched rows to each result row by key

Database errors are expected failures here and come back as
``Result.fail``; chaining mistakes in the spec raise before execution.

Usage:
    with manager.connection() as conn:
        result = QueryExecutor(conn).execute(spec)
        for row in result.unwrap().rows:
            print(row["books.name"], row.preloaded["category"])
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Connection, literal_column, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from leftjoin.core.config import get_settings
from leftjoin.core.logging import (
    end_query_metrics,
    get_logger,
    increment_db_query,
    increment_preload_batch,
    record_operation_timing,
    record_rows_fetched,
    start_query_metrics,
)
from leftjoin.core.models.base import Result
from leftjoin.query.expressions import FieldRef
from leftjoin.query.rendering import TableSet, to_select
from leftjoin.query.spec import Preload, PreloadDirection, QuerySpec

logger = get_logger(__name__)


@dataclass
class ResultRow:
    """One row of the primary query plus its preloaded associations.

    ``values`` is keyed by ``"<relation>.<field>"``. ``preloaded`` maps a
    preload name to a dict (belongs-to, or None when the key is NULL
    or dangling) or a list of dicts (has-many).
    """

    values: dict[str, Any]
    preloaded: dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, label: str) -> Any:
        return self.values[label]


@dataclass
class QueryResult:
    """Result of executing a query spec."""

    columns: list[str]
    rows: list[ResultRow]
    queries_issued: int = 0

    def tuples(self) -> list[tuple[Any, ...]]:
        """Rows as tuples in column order."""
        return [tuple(row.values[c] for c in self.columns) for row in self.rows]

    def __len__(self) -> int:
        return len(self.rows)


class QueryExecutor:
    """Executes query specs against one connection or session.

    The executor holds no state between calls beyond its connection, so
    one executor per connection is enough.
    """

    def __init__(self, connection: Connection | Session, batch_size: int | None = None):
        self.connection = connection
        if batch_size is None:
            batch_size = get_settings().preload_batch_size
        self.batch_size = batch_size
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")

    def execute(self, spec: QuerySpec) -> Result[QueryResult]:
        """Run the primary query and its preloads.

        Args:
            spec: Query specification

        Returns:
            Result containing the QueryResult, or the database error
        """
        metrics = start_query_metrics(spec.base.name)
        try:
            rows = self._run_primary(spec)
            for preload in spec.preloads:
                self._run_preload(preload, rows)
        except SQLAlchemyError as e:
            logger.error("query_failed", relation=spec.base.name, error=str(e))
            return Result.fail(f"Query on {spec.base.name!r} failed: {e}")
        finally:
            end_query_metrics()

        columns = [f.label for f in spec.selected_fields]
        result_rows = [
            ResultRow(values={c: values[c] for c in columns}, preloaded=preloaded)
            for values, preloaded in rows
        ]
        logger.debug(
            "query_executed",
            relation=spec.base.name,
            joins=len(spec.joins),
            rows=len(result_rows),
            queries=metrics.db_queries,
            duration_seconds=round(metrics.duration_seconds, 4),
        )
        return Result.ok(
            QueryResult(columns=columns, rows=result_rows, queries_issued=metrics.db_queries)
        )

    def _run_primary(self, spec: QuerySpec) -> list[tuple[dict[str, Any], dict[str, Any]]]:
        stmt = to_select(spec, extra_fields=[p.local_key for p in spec.preloads])
        start = time.perf_counter()
        fetched = self.connection.execute(stmt).mappings().all()
        record_operation_timing("primary", time.perf_counter() - start)
        increment_db_query()
        record_rows_fetched(len(fetched))
        return [(dict(r), {}) for r in fetched]

    def _run_preload(
        self,
        preload: Preload,
        rows: list[tuple[dict[str, Any], dict[str, Any]]],
    ) -> None:
        local_label = preload.local_key.label
        keys = list(dict.fromkeys(v[local_label] for v, _ in rows if v[local_label] is not None))

        by_key: dict[Any, list[dict[str, Any]]] = {}
        for i in range(0, len(keys), self.batch_size):
            batch = keys[i : i + self.batch_size]
            for fetched in self._fetch_batch(preload, batch):
                by_key.setdefault(fetched[preload.remote_key], []).append(fetched)

        for values, preloaded in rows:
            matches = by_key.get(values[local_label], [])
            if preload.direction is PreloadDirection.BELONGS_TO:
                preloaded[preload.name] = matches[0] if matches else None
            else:
                preloaded[preload.name] = list(matches)

        logger.debug(
            "preload_complete",
            association=preload.name,
            direction=preload.direction.value,
            keys=len(keys),
            matched=len(by_key),
        )

    def _fetch_batch(self, preload: Preload, keys: list[Any]) -> list[dict[str, Any]]:
        remote = preload.remote_relation
        key_ref = FieldRef(relation=remote, field=preload.remote_key)
        tables = TableSet()
        tables.register(key_ref)
        if preload.relation is not None:
            tables.register(
                *(FieldRef(relation=remote, field=c) for c in preload.relation.columns)
            )
            remote_table = tables.table(remote)
            stmt = select(*remote_table.c)
        else:
            remote_table = tables.table(remote)
            stmt = select(literal_column("*")).select_from(remote_table)

        stmt = stmt.where(tables.column(key_ref).in_(keys))
        # without a descriptor the owner primary key is unknown, so has-many
        # list order is left to the database
        if preload.direction is PreloadDirection.HAS_MANY and preload.relation is not None:
            stmt = stmt.order_by(remote_table.c[preload.relation.primary_key])

        start = time.perf_counter()
        fetched = self.connection.execute(stmt).mappings().all()
        record_operation_timing(f"preload:{preload.name}", time.perf_counter() - start)
        increment_db_query()
        increment_preload_batch()
        record_rows_fetched(len(fetched))
        logger.debug("preload_batch", association=preload.name, keys=len(keys), rows=len(fetched))
        return [dict(r) for r in fetched]


def execute_query(
    spec: QuerySpec,
    connection: Connection | Session,
    *,
    batch_size: int | None = None,
) -> Result[QueryResult]:
    """Execute ``spec`` on ``connection`` with a one-off executor."""
    return QueryExecutor(connection, batch_size=batch_size).execute(spec)
