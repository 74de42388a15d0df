"""
Engine and session lifecycle for the shared relational store.

One process-wide engine, initialized once from ``DATABASE_URL`` by the
entry-point scripts.  Services never create sessions: the batch layer is
handed the session factory and opens one short ``session_scope`` per unit
of work (a claim, a job's ingestion, a failure record).

PostgreSQL (production):
    QueuePool with pre-ping and recycling; READ COMMITTED, with explicit
    row locks where a stronger guarantee is needed (job claim, patient
    merge).

SQLite (local runs and tests):
    No pool tuning.  The driver's implicit BEGIN is disabled so that
    SAVEPOINT (``Session.begin_nested``) behaves as on PostgreSQL.

Failure modes:
    - RuntimeError from the accessors before ``init_engine_from_url``.
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from clinic_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _postgres_options(pool_size: int, max_overflow: int) -> dict[str, Any]:
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    A batch process runs one job at a time, so the pool stays small; the
    overflow covers the claim session overlapping a job session.
    """
    global _engine, _SessionFactory

    dialect = make_url(database_url).get_backend_name()
    if dialect == "sqlite":
        _engine = enable_sqlite_savepoints(create_engine(database_url, echo=echo))
    else:
        _engine = create_engine(
            database_url, echo=echo, **_postgres_options(pool_size, max_overflow),
        )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": dialect, "pool_size": pool_size, "echo": echo},
    )
    return _engine


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """Let SQLAlchemy emit BEGIN itself on SQLite. No-op for other dialects."""
    if engine.dialect.name != "sqlite":
        return engine

    @event.listens_for(engine, "connect")
    def _no_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _explicit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Iterator[Session]:
    """
    Commit on normal exit, roll back and re-raise on error, always close.

    ``factory`` defaults to the process-wide one; tests pass their own.
    """
    session = factory() if factory is not None else get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Schema helpers (local runs and tests; production DDL is owned elsewhere)
# ---------------------------------------------------------------------------


def import_all_orm_models() -> None:
    """Import every model module so Base.metadata knows all tables."""
    import clinic_kernel.models  # noqa: F401
    import clinic_batch.models  # noqa: F401


def create_tables() -> None:
    from clinic_kernel.db.base import Base

    import_all_orm_models()
    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from clinic_kernel.db.base import Base

    import_all_orm_models()
    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the factory."""
    global _engine, _SessionFactory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
