"""Tests for LedgerOperations against a real (SQLite) accounts table."""

from decimal import Decimal

import pytest

from tests.fakes import FakeResource
from transfer_kernel.exceptions import AccountNotFoundError, TransferValidationError
from transfer_kernel.selectors.account_selector import AccountSelector


def _balances(session):
    balances = AccountSelector(session).balance_map()
    session.rollback()
    return balances


class TestTransfer:

    def test_moves_amount(self, session, resource, ledger, two_accounts):
        request = ledger.transfer(resource, "1", "2", Decimal("50"))
        resource.commit()

        assert request.amount == Decimal("50")
        assert _balances(session) == {"1": Decimal("50"), "2": Decimal("250")}

    def test_total_is_conserved(self, session, resource, ledger, nine_accounts):
        before = AccountSelector(session).total_balance()
        session.rollback()

        ledger.transfer(resource, "9", "1", Decimal("123.50"))
        ledger.transfer(resource, "4", "7", Decimal("0.25"))
        resource.commit()

        assert AccountSelector(session).total_balance() == before == Decimal("4500")

    def test_writes_invisible_until_commit(self, session, resource, ledger, two_accounts):
        ledger.transfer(resource, "1", "2", Decimal("50"))
        assert resource.in_transaction
        resource.rollback()

        assert _balances(session) == {"1": Decimal("100"), "2": Decimal("200")}

    def test_overdraft_allowed(self, session, resource, ledger, two_accounts):
        ledger.transfer(resource, "1", "2", Decimal("150"))
        resource.commit()

        assert _balances(session)["1"] == Decimal("-50")

    def test_self_transfer_leaves_balance_unchanged(self, session, resource, ledger, two_accounts):
        ledger.transfer(resource, "2", "2", Decimal("75"))
        resource.commit()

        assert _balances(session) == {"1": Decimal("100"), "2": Decimal("200")}

    def test_zero_amount(self, session, resource, ledger, two_accounts):
        ledger.transfer(resource, "1", "2", Decimal("0"))
        resource.commit()
        assert _balances(session) == {"1": Decimal("100"), "2": Decimal("200")}

    def test_fractional_amount(self, session, resource, ledger, two_accounts):
        ledger.transfer(resource, "2", "1", Decimal("0.25"))
        resource.commit()
        assert _balances(session) == {"1": Decimal("100.25"), "2": Decimal("199.75")}


class TestMissingAccounts:

    def test_unknown_source(self, resource, ledger, two_accounts):
        with pytest.raises(AccountNotFoundError) as exc_info:
            ledger.transfer(resource, "99", "2", Decimal("10"))
        assert exc_info.value.account_no == "99"
        resource.rollback()

    def test_unknown_target_aborts_after_debit(self, session, resource, ledger, two_accounts):
        with pytest.raises(AccountNotFoundError) as exc_info:
            ledger.transfer(resource, "1", "99", Decimal("10"))
        assert exc_info.value.account_no == "99"

        # The debit is still pending; rolling back restores it.
        resource.rollback()
        assert _balances(session) == {"1": Decimal("100"), "2": Decimal("200")}


class TestValidation:

    @pytest.mark.parametrize(
        "from_account,to_account,amount",
        [
            ("1", "2", Decimal("-1")),
            ("", "2", Decimal("1")),
            ("1", "  ", Decimal("1")),
            ("1", "2", Decimal("NaN")),
            ("1", "2", 1.5),
        ],
    )
    def test_rejected_before_store(self, ledger, from_account, to_account, amount):
        resource = FakeResource()
        with pytest.raises(TransferValidationError):
            ledger.transfer(resource, from_account, to_account, amount)
        assert resource.execute_calls == 0
        assert not resource.in_transaction


class TestUnitOfWork:

    def test_unit_of_work_applies_request(self, session, resource, ledger, two_accounts):
        from transfer_kernel.domain.dtos import TransferRequest

        request = TransferRequest("2", "1", Decimal("20"))
        applied = ledger.unit_of_work(request)(resource)
        resource.commit()

        assert applied == request
        assert _balances(session) == {"1": Decimal("120"), "2": Decimal("180")}
