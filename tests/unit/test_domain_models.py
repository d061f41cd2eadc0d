"""Unit tests for domain models and status parsing"""

import pytest
from datetime import date, datetime, timezone
from fondo_ledger.domain.exceptions import DataIntegrityError, UnknownStatusError
from fondo_ledger.domain.models import (
    LoanPayment,
    LoanStatus,
    PaymentStatus,
    SavingsTransaction,
    TransactionType,
    parse_status,
)


def test_parse_status_known_value():
    assert parse_status(LoanStatus, "overdue") is LoanStatus.OVERDUE
    assert parse_status(PaymentStatus, PaymentStatus.PAID) is PaymentStatus.PAID


@pytest.mark.parametrize("value", ["", "settled", None, "ACTIVE"])
def test_parse_status_fails_closed(value):
    with pytest.raises(UnknownStatusError) as exc_info:
        parse_status(LoanStatus, value)

    assert isinstance(exc_info.value, DataIntegrityError)
    assert exc_info.value.kind == "LoanStatus"


def _posting(type_, amount, metadata=None):
    return SavingsTransaction(
        transaction_id="t-1",
        account_id="member-1",
        sequence=1,
        type=type_,
        amount=amount,
        balance=0,
        concept="test",
        created_at=datetime(2024, 1, 15, tzinfo=timezone.utc),
        created_by="member-1",
        metadata=metadata or {},
    )


def test_signed_effect_by_posting_type():
    assert _posting(TransactionType.DEPOSIT, 20_000).signed_effect == 20_000
    assert _posting(TransactionType.INTEREST, 500).signed_effect == 500
    assert _posting(TransactionType.FINE, 10_000).signed_effect == -10_000
    assert _posting(TransactionType.WITHDRAWAL, 10_000, {"fee": 200}).signed_effect == -10_200


def test_installment_outstanding_never_negative():
    installment = LoanPayment(
        loan_id="loan-1",
        installment_number=1,
        due_date=date(2024, 2, 15),
        amount=94_560,
        principal=74_560,
        interest=20_000,
        balance=925_440,
        paid_amount=50_000,
    )
    assert installment.outstanding == 44_560

    installment.paid_amount = 100_000
    assert installment.outstanding == 0
