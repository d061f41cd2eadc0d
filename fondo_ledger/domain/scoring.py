"""Credit scoring - derives a 0-100 score and loan statistics from repayment history"""

from typing import Iterable, List

from fondo_ledger.domain.models import LoanApplication, LoanPayment, LoanStats, LoanStatus, PaymentStatus

OPEN_LOAN_STATUSES = (LoanStatus.ACTIVE, LoanStatus.OVERDUE)
BLOCKING_LOAN_STATUSES = (LoanStatus.ACTIVE, LoanStatus.OVERDUE, LoanStatus.APPROVED)
INDEBTED_LOAN_STATUSES = (LoanStatus.ACTIVE, LoanStatus.OVERDUE, LoanStatus.DEFAULTED)


def calculate_credit_score(
    payments_made: int,
    payments_on_time: int,
    overdue_amount: int,
    average_late_days: float,
) -> int:
    """
    Calculate credit score from 0 (worst) to 100 (best).

    Penalties, starting from 100:
    - On-time ratio (only once a payment exists): <80% -20, <90% -10, <95% -5
    - Any amount currently overdue: -30
    - Average late days per payment: >10 -20, >5 -10, >0 -5
    """
    score = 100

    if payments_made > 0:
        on_time_percent = payments_on_time / payments_made * 100
        if on_time_percent < 80:
            score -= 20
        elif on_time_percent < 90:
            score -= 10
        elif on_time_percent < 95:
            score -= 5

    if overdue_amount > 0:
        score -= 30

    if average_late_days > 10:
        score -= 20
    elif average_late_days > 5:
        score -= 10
    elif average_late_days > 0:
        score -= 5

    return max(0, min(100, score))


def max_loan_amount(savings_balance: int, multiplier: int, ceiling: int) -> int:
    """Members may borrow up to a multiple of their savings, capped by the fund ceiling"""
    return max(0, min(savings_balance * multiplier, ceiling))


def summarize_history(loans: List[LoanApplication], installments: Iterable[LoanPayment]) -> LoanStats:
    """
    Aggregate a member's loans and installments into LoanStats.

    A "payment made" is a fully paid installment; it is on time when it was
    settled with zero late days. The overdue amount is what remains unpaid on
    installments currently flagged overdue.
    """
    paid = []
    total_paid = 0
    overdue_amount = 0
    for inst in installments:
        total_paid += inst.paid_amount
        if inst.status == PaymentStatus.PAID:
            paid.append(inst)
        elif inst.status == PaymentStatus.OVERDUE:
            overdue_amount += inst.outstanding

    payments_made = len(paid)
    payments_on_time = sum(1 for p in paid if p.late_days == 0)
    total_late_days = sum(p.late_days for p in paid)
    average_late_days = total_late_days / payments_made if payments_made > 0 else 0.0

    return LoanStats(
        total_loans=len(loans),
        active_loans=sum(1 for loan in loans if loan.status in OPEN_LOAN_STATUSES),
        total_borrowed=sum(loan.amount for loan in loans if loan.disbursed_at is not None),
        total_paid=total_paid,
        total_interest_paid=sum(p.interest for p in paid),
        current_debt=sum(loan.remaining_balance for loan in loans if loan.status in INDEBTED_LOAN_STATUSES),
        overdue_amount=overdue_amount,
        payments_made=payments_made,
        payments_on_time=payments_on_time,
        average_late_days=round(average_late_days, 2),
        credit_score=calculate_credit_score(payments_made, payments_on_time, overdue_amount, average_late_days),
    )
