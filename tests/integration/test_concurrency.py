"""Integration tests for optimistic concurrency on the ledgers"""

import pytest
from fondo_ledger.domain.exceptions import (
    ConcurrencyConflictError,
    LoanNotPendingError,
    StaleVersionError,
    WithdrawalLimitReachedError,
)
from fondo_ledger.domain.models import DisbursementInfo
from fondo_ledger.infrastructure.database.repositories import SqlLedgerStore, SqlLoanStore
from fondo_ledger.services.eligibility import EligibilityService
from fondo_ledger.services.ledger import SavingsLedger
from fondo_ledger.services.loans import LoanService


class InterleavingLedgerStore(SqlLedgerStore):
    """Lets another writer commit between our read and our first write"""

    def __init__(self, db, interleave):
        super().__init__(db)
        self.interleave = interleave
        self.writes = 0

    def save_account(self, account, posting=None):
        self.writes += 1
        if self.writes == 1:
            self.interleave()
        return super().save_account(account, posting)


class AlwaysStaleLedgerStore(SqlLedgerStore):
    def __init__(self, db):
        super().__init__(db)
        self.writes = 0

    def save_account(self, account, posting=None):
        self.writes += 1
        raise StaleVersionError("Savings account changed concurrently")


class InterleavingLoanStore(SqlLoanStore):
    def __init__(self, db, interleave):
        super().__init__(db)
        self.interleave = interleave
        self.writes = 0

    def save_loan(self, loan, installments=()):
        self.writes += 1
        if self.writes == 1:
            self.interleave()
        return super().save_loan(loan, installments)


def test_concurrent_deposits_both_land(db, clock, config, funded_member):
    other = SavingsLedger(SqlLedgerStore(db), clock, config)
    store = InterleavingLedgerStore(db, lambda: other.deposit(funded_member, 20_000, "Concurrent deposit"))
    ledger = SavingsLedger(store, clock, config)

    result = ledger.deposit(funded_member, 30_000, "Our deposit")

    assert store.writes == 2
    assert result.new_balance == 150_000
    assert result.transaction.sequence == 3

    history = ledger.history(funded_member)
    assert [t.sequence for t in history] == [3, 2, 1]
    assert sum(t.signed_effect for t in history) == 150_000


def test_concurrent_withdrawals_respect_cap(db, clock, config, funded_member):
    other = SavingsLedger(SqlLedgerStore(db), clock, config)
    other.withdraw(funded_member, 5_000, "First")

    store = InterleavingLedgerStore(db, lambda: other.withdraw(funded_member, 5_000, "Second"))
    ledger = SavingsLedger(store, clock, config)

    with pytest.raises(WithdrawalLimitReachedError):
        ledger.withdraw(funded_member, 5_000, "Third")

    assert store.writes == 1
    account = ledger.get_account(funded_member)
    assert account.withdrawals_this_month == 2
    assert account.balance == 100_000 - 2 * 5_100


def test_conflict_reported_after_retries(db, clock, config, funded_member):
    store = AlwaysStaleLedgerStore(db)
    ledger = SavingsLedger(store, clock, config)

    with pytest.raises(ConcurrencyConflictError) as exc_info:
        ledger.deposit(funded_member, 20_000, "Never lands")

    assert exc_info.value.attempts == config.max_transaction_attempts
    assert store.writes == config.max_transaction_attempts
    assert ledger.get_account(funded_member).balance == 100_000
    assert len(ledger.history(funded_member)) == 1


def test_racing_approvals_create_one_schedule(db, clock, config, funded_member, co_signers):
    ledger_store = SqlLedgerStore(db)
    eligibility = EligibilityService(ledger_store, SqlLoanStore(db), config)
    other = LoanService(SqlLoanStore(db), eligibility, clock, config)
    loan = other.submit(funded_member, 500_000, 6, "Motorbike", co_signers)

    store = InterleavingLoanStore(
        db, lambda: other.approve(loan.loan_id, "admin-2", DisbursementInfo(method="cash"))
    )
    service = LoanService(store, eligibility, clock, config)

    with pytest.raises(LoanNotPendingError):
        service.approve(loan.loan_id, "admin-1", DisbursementInfo(method="transfer"))

    approved = service.get_loan(loan.loan_id)
    assert approved.approved_by == "admin-2"
    assert len(store.list_installments(loan.loan_id)) == 6
