"""
Pytest fixtures for the transfer kernel test suite.

Provides:
- Structured logging configured once per session, plus a JSON log capture
- An in-memory SQLite engine (fresh per test) for store-backed tests
- Seeded account fixtures and service fixtures
- PostgreSQL engines for the concurrency suite (opt-in)

Environment Variables:
- TRANSFER_TEST_DATABASE_URL: PostgreSQL URL for tests marked ``postgres``.
  When unset those tests are skipped; everything else runs on SQLite.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from transfer_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from transfer_kernel.domain.classifier import ErrorClassifier
from transfer_kernel.domain.dtos import RetryPolicy
from transfer_kernel.domain.sleeper import RecordingSleeper
from transfer_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from transfer_kernel.models.account import Account
from transfer_kernel.services.ledger_service import LedgerOperations
from transfer_kernel.services.retry_executor import RetryingTransactionExecutor
from transfer_kernel.services.transactional_resource import SessionResource

POSTGRES_URL_ENV = "TRANSFER_TEST_DATABASE_URL"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture transfer_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, executor):
            executor.run(...)
            logs = captured_logs()
            assert any(r["message"] == "attempt_committed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("transfer_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


def pytest_collection_modifyitems(config, items):
    """Skip PostgreSQL tests unless a test database is configured."""
    if os.environ.get(POSTGRES_URL_ENV):
        return
    skip_pg = pytest.mark.skip(reason=f"{POSTGRES_URL_ENV} not set")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# SQLite store (fresh in-memory database per test)
# =============================================================================


@pytest.fixture
def db_engine():
    eng = init_engine_from_url("sqlite://")
    create_tables()
    yield eng
    reset_engine()


@pytest.fixture
def session(db_engine) -> Generator[Session, None, None]:
    """A session that really commits; the database is discarded after the test."""
    sess = get_session()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def resource(session) -> SessionResource:
    return SessionResource(session)


def seed_accounts(session: Session, balances: dict[str, Decimal]) -> None:
    session.add_all(
        Account(account_no=account_no, balance=balance)
        for account_no, balance in balances.items()
    )
    session.commit()
    # Tests rewrite these rows with bulk UPDATEs and DDL; keep no stale copies.
    session.expunge_all()


@pytest.fixture
def two_accounts(session) -> dict[str, Decimal]:
    """Accounts 1 and 2 holding 100 and 200."""
    balances = {"1": Decimal("100"), "2": Decimal("200")}
    seed_accounts(session, balances)
    return balances


@pytest.fixture
def nine_accounts(session) -> dict[str, Decimal]:
    """Accounts 1..9, account i holding 100*i (the CLI's default seed)."""
    balances = {str(i): Decimal(100 * i) for i in range(1, 10)}
    seed_accounts(session, balances)
    return balances


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture
def policy() -> RetryPolicy:
    return RetryPolicy(max_retries=4, retry_delay_ms=1000)


@pytest.fixture
def executor(sleeper, policy) -> RetryingTransactionExecutor:
    return RetryingTransactionExecutor(
        classifier=ErrorClassifier(), sleeper=sleeper, policy=policy
    )


@pytest.fixture
def ledger() -> LedgerOperations:
    return LedgerOperations()


# =============================================================================
# PostgreSQL (concurrency suite only)
# =============================================================================


@pytest.fixture(scope="module")
def postgres_engine():
    """Engine on TRANSFER_TEST_DATABASE_URL with a fresh accounts table."""
    url = os.environ.get(POSTGRES_URL_ENV)
    if not url:
        pytest.skip(f"{POSTGRES_URL_ENV} not set")
    eng = init_engine_from_url(url, pool_size=20, max_overflow=10, pool_timeout=10)
    drop_tables()
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def pg_session_factory(postgres_engine):
    """
    Session factory for threads; every session it hands out is closed
    and the accounts table emptied at teardown.
    """
    factory = get_session_factory()
    created: list[Session] = []

    def tracked_factory() -> Session:
        s = factory()
        created.append(s)
        return s

    yield tracked_factory

    for s in created:
        s.rollback()
        s.close()
    with factory() as s:
        s.query(Account).delete()
        s.commit()
