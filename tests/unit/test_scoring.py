"""Unit tests for credit scoring and loan statistics"""

import pytest
from datetime import date, datetime, timezone
from fondo_ledger.domain.models import LoanApplication, LoanPayment, LoanStatus, PaymentStatus
from fondo_ledger.domain.scoring import calculate_credit_score, max_loan_amount, summarize_history


def test_credit_score_without_history_is_perfect():
    assert calculate_credit_score(0, 0, 0, 0.0) == 100


def test_credit_score_all_on_time():
    assert calculate_credit_score(10, 10, 0, 0.0) == 100


@pytest.mark.parametrize(
    "on_time,expected",
    [
        (7, 80),  # 70%
        (8, 90),  # 80%
        (9, 95),  # 90%
        (10, 100),
    ],
)
def test_credit_score_on_time_ratio_bands(on_time, expected):
    assert calculate_credit_score(10, on_time, 0, 0.0) == expected


def test_credit_score_overdue_amount_penalty():
    assert calculate_credit_score(10, 10, 1, 0.0) == 70


@pytest.mark.parametrize("late_days,expected", [(0.5, 95), (5.0, 95), (6.0, 90), (10.0, 90), (10.5, 80)])
def test_credit_score_average_late_days_bands(late_days, expected):
    assert calculate_credit_score(0, 0, 0, late_days) == expected


def test_credit_score_combined_penalties():
    # -20 ratio, -30 overdue, -20 lateness
    assert calculate_credit_score(10, 0, 50_000, 30.0) == 30


def test_max_loan_amount_is_multiple_of_savings_capped():
    assert max_loan_amount(100_000, 10, 5_000_000) == 1_000_000
    assert max_loan_amount(600_000, 10, 5_000_000) == 5_000_000
    assert max_loan_amount(0, 10, 5_000_000) == 0


def _loan(loan_id, status, amount=1_000_000, remaining=0, disbursed=True):
    return LoanApplication(
        loan_id=loan_id,
        borrower_id="member-1",
        amount=amount,
        term_months=12,
        purpose="Test",
        monthly_rate_percent=2.0,
        monthly_payment=94_560,
        total_interest=134_720,
        total_payable=1_134_720,
        status=status,
        remaining_balance=remaining,
        disbursed_at=datetime(2024, 1, 15, tzinfo=timezone.utc) if disbursed else None,
    )


def _installment(number, status, paid_amount=0, late_days=0, amount=94_560, interest=20_000):
    return LoanPayment(
        loan_id="loan-1",
        installment_number=number,
        due_date=date(2024, 1 + number, 15),
        amount=amount,
        principal=amount - interest,
        interest=interest,
        balance=0,
        status=status,
        paid_amount=paid_amount,
        late_days=late_days,
    )


def test_summarize_history_empty():
    stats = summarize_history([], [])

    assert stats.total_loans == 0
    assert stats.payments_made == 0
    assert stats.credit_score == 100


def test_summarize_history_mixed():
    loans = [
        _loan("loan-1", LoanStatus.OVERDUE, remaining=900_000),
        _loan("loan-0", LoanStatus.PAID, amount=500_000),
        _loan("loan-x", LoanStatus.REJECTED, amount=2_000_000, disbursed=False),
    ]
    installments = [
        _installment(1, PaymentStatus.PAID, paid_amount=94_560),
        _installment(2, PaymentStatus.PAID, paid_amount=94_560, late_days=4, interest=18_509),
        _installment(3, PaymentStatus.OVERDUE, paid_amount=10_000),
        _installment(4, PaymentStatus.PENDING),
    ]

    stats = summarize_history(loans, installments)

    assert stats.total_loans == 3
    assert stats.active_loans == 1
    assert stats.total_borrowed == 1_500_000
    assert stats.total_paid == 199_120
    assert stats.total_interest_paid == 38_509
    assert stats.current_debt == 900_000
    assert stats.overdue_amount == 84_560
    assert stats.payments_made == 2
    assert stats.payments_on_time == 1
    assert stats.average_late_days == 2.0
    # 50% on time -20, overdue -30, late days -5
    assert stats.credit_score == 45
