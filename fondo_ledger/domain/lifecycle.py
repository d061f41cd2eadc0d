"""Loan lifecycle transition table"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, FrozenSet

from fondo_ledger.domain.exceptions import InvalidTransitionError
from fondo_ledger.domain.models import LoanApplication, LoanStatus

TRANSITIONS: Dict[LoanStatus, FrozenSet[LoanStatus]] = {
    LoanStatus.PENDING: frozenset(
        {LoanStatus.APPROVED, LoanStatus.ACTIVE, LoanStatus.REJECTED, LoanStatus.CANCELLED}
    ),
    LoanStatus.APPROVED: frozenset({LoanStatus.ACTIVE, LoanStatus.CANCELLED}),
    LoanStatus.ACTIVE: frozenset(
        {LoanStatus.PAID, LoanStatus.OVERDUE, LoanStatus.DEFAULTED, LoanStatus.CANCELLED}
    ),
    # Back to active once caught up
    LoanStatus.OVERDUE: frozenset({LoanStatus.ACTIVE, LoanStatus.PAID, LoanStatus.DEFAULTED}),
    LoanStatus.PAID: frozenset(),
    LoanStatus.REJECTED: frozenset(),
    LoanStatus.CANCELLED: frozenset(),
    LoanStatus.DEFAULTED: frozenset(),
}

PAYABLE_STATUSES = frozenset({LoanStatus.ACTIVE, LoanStatus.OVERDUE})


def can_transition(current: LoanStatus, target: LoanStatus) -> bool:
    return target in TRANSITIONS[current]


def ensure_transition(current: LoanStatus, target: LoanStatus) -> None:
    """Raise InvalidTransitionError unless current -> target is allowed"""
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value)


def is_terminal(status: LoanStatus) -> bool:
    return not TRANSITIONS[status]


def accepts_payments(status: LoanStatus) -> bool:
    return status in PAYABLE_STATUSES


def transition(loan: LoanApplication, target: LoanStatus, now: datetime, **changes) -> LoanApplication:
    """Copy of loan moved to target, with any extra field changes applied"""
    ensure_transition(loan.status, target)
    return replace(loan, status=target, updated_at=now, **changes)
