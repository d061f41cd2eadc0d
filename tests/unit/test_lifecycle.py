"""Unit tests for the loan lifecycle transition table"""

import pytest
from datetime import datetime, timezone
from fondo_ledger.domain.exceptions import InvalidTransitionError
from fondo_ledger.domain.lifecycle import accepts_payments, can_transition, is_terminal, transition
from fondo_ledger.domain.models import LoanApplication, LoanStatus

TERMINAL = [LoanStatus.PAID, LoanStatus.REJECTED, LoanStatus.CANCELLED, LoanStatus.DEFAULTED]


def _loan(status):
    return LoanApplication(
        loan_id="loan-1",
        borrower_id="member-1",
        amount=1_000_000,
        term_months=12,
        purpose="Test",
        monthly_rate_percent=2.0,
        monthly_payment=94_560,
        total_interest=134_720,
        total_payable=1_134_720,
        status=status,
    )


@pytest.mark.parametrize(
    "current,target",
    [
        (LoanStatus.PENDING, LoanStatus.ACTIVE),
        (LoanStatus.PENDING, LoanStatus.REJECTED),
        (LoanStatus.PENDING, LoanStatus.CANCELLED),
        (LoanStatus.APPROVED, LoanStatus.ACTIVE),
        (LoanStatus.ACTIVE, LoanStatus.OVERDUE),
        (LoanStatus.ACTIVE, LoanStatus.PAID),
        (LoanStatus.OVERDUE, LoanStatus.ACTIVE),
        (LoanStatus.OVERDUE, LoanStatus.DEFAULTED),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)


@pytest.mark.parametrize(
    "current,target",
    [
        (LoanStatus.PENDING, LoanStatus.PAID),
        (LoanStatus.ACTIVE, LoanStatus.PENDING),
        (LoanStatus.OVERDUE, LoanStatus.CANCELLED),
        (LoanStatus.REJECTED, LoanStatus.ACTIVE),
    ],
)
def test_disallowed_transitions(current, target):
    assert not can_transition(current, target)


@pytest.mark.parametrize("status", TERMINAL)
def test_terminal_statuses_have_no_exit(status):
    assert is_terminal(status)
    for target in LoanStatus:
        with pytest.raises(InvalidTransitionError):
            transition(_loan(status), target, datetime.now(timezone.utc))


def test_only_active_and_overdue_accept_payments():
    assert {s for s in LoanStatus if accepts_payments(s)} == {LoanStatus.ACTIVE, LoanStatus.OVERDUE}


def test_transition_returns_updated_copy():
    loan = _loan(LoanStatus.PENDING)
    now = datetime(2024, 1, 15, tzinfo=timezone.utc)

    rejected = transition(loan, LoanStatus.REJECTED, now, rejection_reason="Incomplete documents")

    assert rejected.status == LoanStatus.REJECTED
    assert rejected.rejection_reason == "Incomplete documents"
    assert rejected.updated_at == now
    assert loan.status == LoanStatus.PENDING
