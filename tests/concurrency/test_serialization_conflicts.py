"""
True-concurrency tests against PostgreSQL at SERIALIZABLE isolation.

These provoke real serialization failures (SQLSTATE 40001) instead of
scripted ones, and check that retried transfers still conserve money.

Run with:
    TRANSFER_TEST_DATABASE_URL=postgresql://... pytest -m postgres
"""

import random
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

import pytest
from sqlalchemy import select

from tests.conftest import seed_accounts
from transfer_kernel.domain.classifier import ErrorClassifier
from transfer_kernel.domain.dtos import RetryPolicy
from transfer_kernel.domain.sleeper import RecordingSleeper, SystemSleeper
from transfer_kernel.exceptions import StoreError
from transfer_kernel.models.account import Account
from transfer_kernel.selectors.account_selector import AccountSelector
from transfer_kernel.services.ledger_service import LedgerOperations
from transfer_kernel.services.retry_executor import RetryingTransactionExecutor
from transfer_kernel.services.transactional_resource import SessionResource

pytestmark = [pytest.mark.postgres, pytest.mark.slow_locks]

NUM_THREADS = 8
TRANSFERS_PER_THREAD = 10


@pytest.fixture
def seeded(pg_session_factory):
    session = pg_session_factory()
    seed_accounts(session, {str(i): Decimal(100 * i) for i in range(1, 10)})
    session.close()
    return pg_session_factory


def _snapshot(resource):
    """Take the transaction's snapshot by reading the table."""
    resource.execute(select(Account.balance).where(Account.account_no == "1")).all()


class TestRealSerializationFailure:

    def test_concurrent_update_reports_40001(self, seeded):
        ledger = LedgerOperations()
        first = SessionResource(seeded())
        second = SessionResource(seeded())

        _snapshot(first)
        _snapshot(second)
        ledger.transfer(first, "1", "2", Decimal("10"))
        first.commit()

        with pytest.raises(StoreError) as exc_info:
            ledger.transfer(second, "1", "2", Decimal("10"))
        second.rollback()

        assert exc_info.value.sqlstate == "40001"
        assert ErrorClassifier().is_retryable(exc_info.value)

    def test_executor_retries_real_conflict(self, seeded):
        ledger = LedgerOperations()
        interferer = SessionResource(seeded())
        resource = SessionResource(seeded())
        sleeper = RecordingSleeper()
        executor = RetryingTransactionExecutor(
            sleeper=sleeper, policy=RetryPolicy(max_retries=4, retry_delay_ms=10)
        )
        interfered = False

        def unit(r):
            nonlocal interfered
            _snapshot(r)
            if not interfered:
                interfered = True
                ledger.transfer(interferer, "1", "2", Decimal("10"))
                interferer.commit()
            return ledger.transfer(r, "1", "2", Decimal("10"))

        outcome = executor.run(resource, unit)

        assert outcome.attempts == 2
        assert outcome.rollbacks == 1
        assert sleeper.calls == [0.01]
        assert not resource.in_transaction

        check = seeded()
        balances = AccountSelector(check).balance_map()
        assert balances["1"] == Decimal("80")
        assert balances["2"] == Decimal("220")


class TestConservationUnderContention:

    def test_parallel_transfers_conserve_total(self, seeded):
        barrier = Barrier(NUM_THREADS)

        def worker(seed: int) -> list[int]:
            rng = random.Random(seed)
            resource = SessionResource(seeded())
            executor = RetryingTransactionExecutor(
                sleeper=SystemSleeper(),
                policy=RetryPolicy(max_retries=50, retry_delay_ms=5),
            )
            ledger = LedgerOperations()
            attempts = []
            barrier.wait()
            for _ in range(TRANSFERS_PER_THREAD):
                # Few accounts, many writers: conflicts are near certain.
                from_account, to_account = rng.sample(["1", "2", "3"], 2)
                amount = Decimal(rng.randint(1, 50))
                outcome = executor.run(
                    resource,
                    lambda r: ledger.transfer(r, from_account, to_account, amount),
                )
                attempts.append(outcome.attempts)
            assert not resource.in_transaction
            return attempts

        with ThreadPoolExecutor(max_workers=NUM_THREADS) as pool:
            futures = [pool.submit(worker, i) for i in range(NUM_THREADS)]
            results = [f.result(timeout=120) for f in futures]

        assert sum(len(r) for r in results) == NUM_THREADS * TRANSFERS_PER_THREAD

        check = seeded()
        selector = AccountSelector(check)
        assert selector.total_balance() == Decimal("4500")
        untouched = selector.balance_map()
        for i in range(4, 10):
            assert untouched[str(i)] == Decimal(100 * i)
