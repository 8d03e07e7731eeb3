"""
Module: transfer_kernel.db.engine
Responsibility: The process-wide SQLAlchemy engine and session factory,
    plus table management and the commit-or-rollback scope used by
    bootstrap code.
Architecture position: Kernel > DB.  May import from db/base.py and
    models/.  MUST NOT import from services/, selectors/ or domain/.

Invariants enforced:
    - Every connection runs at SERIALIZABLE isolation, set on the engine
      so no session can opt out.  The retry executor relies on the store
      reporting conflicts instead of silently interleaving transfers.
    - PostgreSQL is the production backend (QueuePool with pre-ping).
      SQLite is accepted for demos and tests; an in-memory database is
      shared through StaticPool so every session sees the same tables.

Failure modes:
    - RuntimeError from any accessor before init_engine_from_url().
    - sqlalchemy.exc.ArgumentError on a malformed URL.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from transfer_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

ISOLATION_LEVEL = "SERIALIZABLE"

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _pool_options(url: URL, pool: dict[str, Any]) -> dict[str, Any]:
    if url.get_backend_name() != "sqlite":
        return {"poolclass": QueuePool, **pool}
    options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine for ``database_url`` and a session factory bound to it.

    A second call replaces the first engine without disposing it; call
    reset_engine() first when that matters.  Pool arguments apply to
    server databases only.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    pool = {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": pool_pre_ping,
        "pool_timeout": pool_timeout,
        "pool_recycle": pool_recycle,
    }
    _engine = create_engine(
        url, echo=echo, isolation_level=ISOLATION_LEVEL, **_pool_options(url, pool)
    )
    # expire_on_commit=False: balances stay readable after commit without
    # opening another transaction.
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "isolation_level": ISOLATION_LEVEL,
            "echo": echo,
        },
    )
    return _engine


def _initialized() -> tuple[Engine, sessionmaker[Session]]:
    if _engine is None or _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine, _SessionFactory


def get_engine() -> Engine:
    return _initialized()[0]


def get_session_factory() -> sessionmaker[Session]:
    """Factory for independent sessions; each concurrent worker needs its own."""
    return _initialized()[1]


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(session: Session | None = None) -> Generator[Session, None, None]:
    """
    Commit on normal exit, roll back and re-raise on error.

    A session opened here is closed on exit; a session passed in stays open.
    """
    owned = session is None
    active = get_session() if session is None else session
    try:
        yield active
        active.commit()
        logger.debug("scope_committed")
    except Exception:
        active.rollback()
        logger.warning("scope_rolled_back", exc_info=True)
        raise
    finally:
        if owned:
            active.close()


def _metadata():
    from transfer_kernel.db.base import Base
    import transfer_kernel.models  # noqa: F401  (registers the tables)

    return Base.metadata


def create_tables() -> None:
    _metadata().create_all(get_engine())


def drop_tables() -> None:
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory.  Used by tests and the CLI."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()
