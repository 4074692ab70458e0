"""
Module: expense_kernel.db.engine
Responsibility: SQLAlchemy engine initialization and session factory
    management.  Single point of database connection configuration for
    the kernel, the API and the scripts.
Architecture position: Kernel > DB.  May import from db/base.py.  Imports
    models/ lazily inside create_tables() so that Base.metadata is complete.

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED with a QueuePool and pre-ping.
      Exactly-once writes rely on the unique key constraint plus a single
      commit, not on stronger isolation.
    - SQLite (local runs and tests) is opened with check_same_thread=False
      and a busy timeout, so concurrent writers queue instead of failing.
    - Every storage call is bounded: pool checkout timeout, SQLite busy
      timeout, PostgreSQL statement_timeout.

Failure modes:
    - RuntimeError if get_engine/get_session_factory is called
      before init_engine_from_url().
    - OperationalError from the driver when a timeout expires; services
      translate it into TransientStorageError.
"""

import atexit

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from expense_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
    statement_timeout_ms: int = 5000,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Calling again replaces the previous engine (the old one is disposed).

    Args:
        database_url: PostgreSQL or SQLite URL.
        echo: If True, log all SQL statements.
        pool_size: Connections kept in the pool.
        max_overflow: Connections allowed beyond pool_size.
        pool_pre_ping: Test connections before use.
        pool_timeout: Seconds to wait for a pooled connection.
        pool_recycle: Seconds after which a connection is recycled.
        statement_timeout_ms: Upper bound for a single statement (PostgreSQL)
            or for waiting on a write lock (SQLite busy timeout).

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    url = make_url(database_url)
    dialect = url.get_backend_name()

    if dialect == "sqlite":
        connect_args = {
            "check_same_thread": False,
            "timeout": statement_timeout_ms / 1000,
        }
        if url.database in (None, "", ":memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            _engine = create_engine(
                url,
                echo=echo,
                poolclass=StaticPool,
                connect_args=connect_args,
            )
        else:
            _engine = create_engine(
                url,
                echo=echo,
                pool_pre_ping=pool_pre_ping,
                pool_timeout=pool_timeout,
                connect_args=connect_args,
            )
    else:
        _engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
            connect_args={"options": f"-c statement_timeout={statement_timeout_ms}"},
        )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": dialect,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "statement_timeout_ms": statement_timeout_ms,
            "echo": echo,
        },
    )

    return _engine


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        RuntimeError: If engine has not been initialized.
    """
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory.

    Each thread or request needs its own session; pass the factory, not a
    session, to anything that outlives a single unit of work.
    """
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory


def create_tables() -> None:
    """
    Create all kernel tables.  Safe to call repeatedly.

    Raises:
        RuntimeError: If engine is not initialized.
    """
    from expense_kernel.db.base import Base
    import expense_kernel.models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop all tables. Use with caution - primarily for testing."""
    from expense_kernel.db.base import Base
    import expense_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """
    Dispose the engine and forget the session factory.

    Useful for test cleanup and application shutdown.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)


def is_sqlite() -> bool:
    """Check if the current engine is SQLite."""
    if _engine is None:
        return False
    return _engine.dialect.name == "sqlite"
