"""
End-to-end transfer tests: workflow + executor + ledger on a real store.

Conflicts are injected with FlakyResource, which lets the real UPDATE run
and then fails the transaction the way a serialization failure would.
"""

from decimal import Decimal

import pytest

from tests.fakes import FlakyResource, ListSource, RecordingReporter, constraint_violation
from transfer_kernel.domain.dtos import RetryPolicy, TransferRequest
from transfer_kernel.exceptions import (
    AccountNotFoundError,
    FatalStoreError,
    RetriesExhaustedError,
)
from transfer_kernel.selectors.account_selector import AccountSelector
from transfer_kernel.services.retry_executor import RetryingTransactionExecutor
from transfer_kernel.services.transfer_workflow import TransferWorkflow


def _balances(session):
    balances = AccountSelector(session).balance_map()
    session.rollback()
    return balances


def _request(from_account, to_account, amount):
    return TransferRequest(from_account, to_account, Decimal(amount))


class TestRunOne:

    def test_transfer_commits(self, session, resource, executor, two_accounts):
        workflow = TransferWorkflow(resource, executor, ListSource([]))

        outcome = workflow.run_one(_request("1", "2", "50"))

        assert outcome.attempts == 1
        assert outcome.rollbacks == 0
        assert not resource.in_transaction
        assert _balances(session) == {"1": Decimal("50"), "2": Decimal("250")}

    def test_conflicts_on_first_two_attempts(self, session, resource, executor, sleeper, two_accounts):
        flaky = FlakyResource(resource, conflicts=2)
        workflow = TransferWorkflow(flaky, executor, ListSource([]))

        outcome = workflow.run_one(_request("1", "2", "50"))

        assert outcome.attempts == 3
        assert outcome.rollbacks == 2
        assert flaky.rollback_calls == 2
        assert flaky.commit_calls == 1
        assert sleeper.calls == [1.0, 1.0]
        # The debits issued by the failed attempts were rolled back.
        assert _balances(session) == {"1": Decimal("50"), "2": Decimal("250")}

    def test_exhausted_transfer_changes_nothing(self, session, resource, sleeper, two_accounts):
        executor = RetryingTransactionExecutor(
            sleeper=sleeper, policy=RetryPolicy(max_retries=2, retry_delay_ms=10)
        )
        flaky = FlakyResource(resource, conflicts=10)
        workflow = TransferWorkflow(flaky, executor, ListSource([]))

        with pytest.raises(RetriesExhaustedError) as exc_info:
            workflow.run_one(_request("1", "2", "50"))

        assert exc_info.value.attempts == 3
        assert sleeper.calls == [0.01, 0.01]
        assert not resource.in_transaction
        assert _balances(session) == {"1": Decimal("100"), "2": Decimal("200")}

    def test_fatal_store_error_changes_nothing(self, session, resource, executor, sleeper, two_accounts):
        flaky = FlakyResource(resource, conflicts=1, error_factory=constraint_violation)
        workflow = TransferWorkflow(flaky, executor, ListSource([]))

        with pytest.raises(FatalStoreError):
            workflow.run_one(_request("1", "2", "50"))

        assert sleeper.call_count == 0
        assert _balances(session) == {"1": Decimal("100"), "2": Decimal("200")}

    def test_missing_account_is_not_retried(self, session, resource, executor, sleeper, two_accounts):
        workflow = TransferWorkflow(resource, executor, ListSource([]))

        with pytest.raises(AccountNotFoundError):
            workflow.run_one(_request("1", "42", "50"))

        assert sleeper.call_count == 0
        assert not resource.in_transaction
        assert _balances(session) == {"1": Decimal("100"), "2": Decimal("200")}

    def test_workflow_policy_overrides_executor(self, resource, executor, sleeper, two_accounts):
        flaky = FlakyResource(resource, conflicts=10)
        workflow = TransferWorkflow(
            flaky, executor, ListSource([]), policy=RetryPolicy(max_retries=0)
        )

        with pytest.raises(RetriesExhaustedError) as exc_info:
            workflow.run_one(_request("1", "2", "5"))

        assert exc_info.value.attempts == 1
        assert sleeper.call_count == 0


class TestRun:

    def test_runs_requests_in_order(self, session, resource, executor, nine_accounts):
        source = ListSource([
            _request("1", "2", "50"),
            _request("2", "3", "250"),
            _request("9", "1", "900"),
        ])
        reporter = RecordingReporter()
        workflow = TransferWorkflow(resource, executor, source, reporter=reporter)

        completed = workflow.run()

        assert completed == 3
        assert [r.from_account for r, _ in reporter.completed] == ["1", "2", "9"]
        balances = _balances(session)
        assert balances["1"] == Decimal("950")
        assert balances["2"] == Decimal("0")
        assert balances["3"] == Decimal("550")
        assert balances["9"] == Decimal("0")
        assert sum(balances.values()) == Decimal("4500")

    def test_empty_source(self, resource, executor):
        assert TransferWorkflow(resource, executor, ListSource([])).run() == 0

    def test_failure_stops_the_loop(self, session, resource, executor, two_accounts):
        source = ListSource([_request("1", "404", "10"), _request("1", "2", "10")])
        reporter = RecordingReporter()
        workflow = TransferWorkflow(resource, executor, source, reporter=reporter)

        with pytest.raises(AccountNotFoundError):
            workflow.run()

        assert source.handed_out == 1
        assert reporter.completed == []
        assert _balances(session) == {"1": Decimal("100"), "2": Decimal("200")}

    def test_reporter_sees_retry_count(self, resource, executor, two_accounts):
        reporter = RecordingReporter()
        flaky = FlakyResource(resource, conflicts=1)
        workflow = TransferWorkflow(
            flaky, executor, ListSource([_request("2", "1", "1")]), reporter=reporter
        )

        workflow.run()

        (_, outcome), = reporter.completed
        assert outcome.attempts == 2


class TestLogging:

    def test_transfer_id_bound_per_transfer(self, resource, executor, two_accounts, captured_logs):
        source = ListSource([_request("1", "2", "1"), _request("2", "1", "1")])
        TransferWorkflow(resource, executor, source).run()

        logs = captured_logs()
        requested = [r for r in logs if r["message"] == "transfer_requested"]
        assert len(requested) == 2
        ids = {r["transfer_id"] for r in requested}
        assert len(ids) == 2

        for transfer_id in ids:
            events = [r["message"] for r in logs if r.get("transfer_id") == transfer_id]
            assert events[0] == "transfer_requested"
            assert "attempt_committed" in events
            assert events[-1] == "transfer_completed"

        finished = [r for r in logs if r["message"] == "transfers_finished"]
        assert finished[0]["completed"] == 2
        assert "transfer_id" not in finished[0]

    def test_failure_logged_with_code(self, resource, executor, two_accounts, captured_logs):
        with pytest.raises(AccountNotFoundError):
            TransferWorkflow(resource, executor, ListSource([])).run_one(_request("1", "x", "1"))

        failed = [r for r in captured_logs() if r["message"] == "transfer_failed"]
        assert failed[0]["error_code"] == "ACCOUNT_NOT_FOUND"
