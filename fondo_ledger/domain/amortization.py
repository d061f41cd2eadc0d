"""Amortization schedule generation for level-payment loans"""

from datetime import date
from typing import List, Sequence

from fondo_ledger.domain.models import ScheduledInstallment, ScheduleSummary
from fondo_ledger.domain.money import Number, interest_for, monthly_payment
from fondo_ledger.utils.date_utils import add_months


def generate_schedule(
    principal: int,
    monthly_rate_percent: Number,
    term_months: int,
    start_date: date,
) -> List[ScheduledInstallment]:
    """
    Generate a French (level payment) amortization schedule.

    Requirements:
    - Interest each month is the outstanding balance times the monthly rate, rounded half-up
    - Due dates are start_date + i calendar months, clamped to short months
    - Last installment absorbs the rounding residual so principal sums exactly to the loan amount
    - Pure: identical inputs always give an identical schedule

    Args:
        principal: Loan amount in integer units
        monthly_rate_percent: Monthly rate as a percentage (2.0 means 2%)
        term_months: Number of installments
        start_date: Anchor date, usually the approval date

    Returns:
        term_months ScheduledInstallment rows numbered 1..n

    Example:
        1,000,000 at 2% over 12 months -> 12 installments of ~94,560,
        last one adjusted so its remaining balance is 0
    """
    payment = monthly_payment(principal, monthly_rate_percent, term_months)

    balance = principal
    schedule = []
    for number in range(1, term_months + 1):
        interest = interest_for(balance, monthly_rate_percent)
        if number == term_months:
            principal_part = balance
        else:
            principal_part = min(max(payment - interest, 0), balance)

        balance = max(0, balance - principal_part)
        schedule.append(
            ScheduledInstallment(
                installment_number=number,
                due_date=add_months(start_date, number),
                amount=principal_part + interest,
                principal=principal_part,
                interest=interest,
                balance=balance,
            )
        )

    return schedule


def summarize_schedule(
    installments: Sequence[ScheduledInstallment], monthly_payment_amount: int
) -> ScheduleSummary:
    """Totals over a schedule (works for persisted LoanPayment rows too)"""
    return ScheduleSummary(
        total_amount=sum(i.amount for i in installments),
        total_principal=sum(i.principal for i in installments),
        total_interest=sum(i.interest for i in installments),
        monthly_payment=monthly_payment_amount,
        term_months=len(installments),
    )
