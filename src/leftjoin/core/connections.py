"""Connection management for the query-execution layer.

Wraps a sync SQLAlchemy engine so callers get connections and sessions
through context managers:
- In-memory SQLite shares one connection across threads (StaticPool)
- SQLite foreign keys are enabled on every new DBAPI connection

Usage:
    from leftjoin.core.connections import ConnectionConfig, ConnectionManager

    manager = ConnectionManager(ConnectionConfig.in_memory())
    manager.initialize(metadata)

    with manager.connection() as conn:
        result = QueryExecutor(conn).execute(spec)

    manager.close()
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Connection, Engine, MetaData, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from leftjoin.core.config import get_settings
from leftjoin.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ConnectionConfig:
    """Connection configuration for SQLAlchemy.

    Attributes:
        database_url: SQLAlchemy database URL
        echo_sql: Whether to echo SQL statements (for debugging)
        pool_size: Connection pool size (ignored for SQLite)
        pool_timeout: Seconds to wait for a connection from pool (ignored for SQLite)
    """

    database_url: str
    echo_sql: bool = False
    pool_size: int = 5
    pool_timeout: float = 30.0

    @classmethod
    def from_settings(cls, **kwargs: Any) -> ConnectionConfig:
        """Create config from application settings.

        Args:
            **kwargs: Override any config attributes
        """
        settings = get_settings()
        values: dict[str, Any] = {
            "database_url": settings.database_url,
            "echo_sql": settings.echo_sql,
        }
        values.update(kwargs)
        return cls(**values)

    @classmethod
    def in_memory(cls, **kwargs: Any) -> ConnectionConfig:
        """Create config for an in-memory SQLite database (useful for testing)."""
        return cls(database_url="sqlite:///:memory:", **kwargs)

    @property
    def is_sqlite(self) -> bool:
        return make_url(self.database_url).get_backend_name() == "sqlite"

    @property
    def is_in_memory(self) -> bool:
        url = make_url(self.database_url)
        return self.is_sqlite and url.database in (None, "", ":memory:")


@dataclass
class ConnectionManager:
    """Owns the SQLAlchemy engine and hands out connections and sessions.

    Thread Safety:
    - Engine creation is guarded by a lock
    - Connections and sessions are per-caller, never shared
    """

    config: ConnectionConfig
    _engine: Engine | None = field(default=None, init=False, repr=False)
    _session_factory: sessionmaker[Session] | None = field(default=None, init=False, repr=False)
    _init_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def initialize(self, metadata: MetaData | None = None) -> None:
        """Create the engine and, optionally, the tables in ``metadata``.

        Safe to call multiple times (idempotent).

        Raises:
            RuntimeError: If initialization fails
        """
        with self._init_lock:
            if self._engine is None:
                try:
                    self._engine = self._create_engine()
                except Exception as e:
                    raise RuntimeError(f"Failed to initialize connections: {e}") from e
                self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
                logger.debug("engine_created", url=self._engine.url.render_as_string())

        if metadata is not None:
            with self.engine.begin() as conn:
                metadata.create_all(conn)

    def _create_engine(self) -> Engine:
        kwargs: dict[str, Any] = {"echo": self.config.echo_sql}
        if self.config.is_in_memory:
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        elif not self.config.is_sqlite:
            kwargs["pool_size"] = self.config.pool_size
            kwargs["pool_timeout"] = self.config.pool_timeout

        engine = create_engine(self.config.database_url, **kwargs)

        if self.config.is_sqlite:

            @event.listens_for(engine, "connect")
            def set_sqlite_pragma(dbapi_conn: Any, connection_record: Any) -> None:
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        return engine

    def _ensure_initialized(self) -> None:
        """Raise if not initialized."""
        if self._engine is None:
            raise RuntimeError("ConnectionManager not initialized. Call initialize() first.")

    @property
    def engine(self) -> Engine:
        """The initialized engine.

        Raises:
            RuntimeError: If manager not initialized
        """
        self._ensure_initialized()
        assert self._engine is not None
        return self._engine

    @contextmanager
    def connection(self) -> Generator[Connection]:
        """Get a connection inside a transaction that commits on success.

        Example:
            with manager.connection() as conn:
                rows = conn.execute(select(...)).all()
        """
        with self.engine.begin() as conn:
            yield conn

    @contextmanager
    def session_scope(self) -> Generator[Session]:
        """Get an ORM session with automatic commit/rollback."""
        self._ensure_initialized()
        assert self._session_factory is not None

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        """Dispose of the engine and its pool."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
