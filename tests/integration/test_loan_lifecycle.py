"""Integration tests for loan submission, approval, rejection and cancellation"""

import pytest
from datetime import date
from fondo_ledger.domain.exceptions import (
    CoSignerNotFoundError,
    InvalidTransitionError,
    LoanNotFoundError,
    LoanNotPendingError,
    LoanValidationError,
    NotEligibleError,
)
from fondo_ledger.domain.models import CoSigner, CoSignerStatus, DisbursementInfo, LoanStatus, PaymentStatus

CASH = DisbursementInfo(method="cash")


def test_submit_creates_pending_loan(ledger_engine, funded_member, co_signers):
    loan = ledger_engine.loans.submit(
        funded_member, 1_000_000, 12, "Home repairs", co_signers, borrower_name="Maria Lopez"
    )

    assert loan.status == LoanStatus.PENDING
    assert loan.monthly_rate_percent == 2.0
    assert loan.monthly_payment == 94_560
    assert loan.total_payable == 94_560 * 12
    assert loan.total_interest == 94_560 * 12 - 1_000_000
    assert loan.remaining_balance == loan.total_payable
    assert loan.total_payments == 12
    assert loan.paid_payments == 0
    assert loan.borrower_name == "Maria Lopez"
    assert [c.status for c in loan.co_signers] == [CoSignerStatus.PENDING] * 2
    assert ledger_engine.loans.get_loan(loan.loan_id) == loan


def test_submit_reports_every_violation(ledger_engine, funded_member):
    with pytest.raises(LoanValidationError) as exc_info:
        ledger_engine.loans.submit(funded_member, 50_000, 30, "Too small", [CoSigner(member_id="member-2")])

    violations = exc_info.value.violations
    assert len(violations) == 3
    assert any("Amount" in v for v in violations)
    assert any("Term" in v for v in violations)
    assert any("co-signers" in v for v in violations)
    assert ledger_engine.loans.list_member_loans(funded_member) == []


def test_submit_rejects_too_many_co_signers(ledger_engine, funded_member):
    co_signers = [CoSigner(member_id=f"member-{n}") for n in range(2, 6)]

    with pytest.raises(LoanValidationError, match="At most 3"):
        ledger_engine.loans.submit(funded_member, 500_000, 6, "Equipment", co_signers)


def test_borrower_cannot_co_sign_own_loan(ledger_engine, funded_member):
    co_signers = [CoSigner(member_id=funded_member), CoSigner(member_id="member-2")]

    with pytest.raises(LoanValidationError, match="own loan"):
        ledger_engine.loans.submit(funded_member, 500_000, 6, "Equipment", co_signers)


def test_submit_requires_eligibility(ledger_engine, co_signers):
    with pytest.raises(NotEligibleError) as exc_info:
        ledger_engine.loans.submit("member-9", 500_000, 6, "Equipment", co_signers)

    assert any("No savings account" in r for r in exc_info.value.reasons)


def test_active_loan_blocks_new_application(ledger_engine, active_loan, co_signers):
    with pytest.raises(NotEligibleError) as exc_info:
        ledger_engine.loans.submit(active_loan.borrower_id, 200_000, 3, "Second loan", co_signers)

    assert any("active loan" in r for r in exc_info.value.reasons)


def test_approve_activates_and_persists_schedule(ledger_engine, funded_member, co_signers):
    loan = ledger_engine.loans.submit(funded_member, 1_000_000, 12, "Home repairs", co_signers)

    approved = ledger_engine.loans.approve(
        loan.loan_id, "admin-1", DisbursementInfo(method="transfer", account="ACC-123", notes="Bank transfer")
    )

    assert approved.status == LoanStatus.ACTIVE
    assert approved.approved_by == "admin-1"
    assert approved.disbursed_at is not None
    assert approved.disbursement_method == "transfer"
    assert approved.disbursement_account == "ACC-123"
    assert approved.next_payment_date == date(2024, 2, 15)

    schedule = ledger_engine.loans.get_schedule(loan.loan_id)
    assert len(schedule.installments) == 12
    assert all(i.status == PaymentStatus.PENDING for i in schedule.installments)
    assert schedule.installments[-1].due_date == date(2025, 1, 15)
    assert schedule.summary.total_principal == 1_000_000
    assert approved.total_payable == schedule.summary.total_amount
    assert approved.remaining_balance == schedule.summary.total_amount


def test_approve_twice_conflicts(ledger_engine, active_loan):
    with pytest.raises(LoanNotPendingError):
        ledger_engine.loans.approve(active_loan.loan_id, "admin-2", CASH)

    assert len(ledger_engine.loans.get_schedule(active_loan.loan_id).installments) == 12


def test_reject_is_terminal(ledger_engine, funded_member, co_signers):
    loan = ledger_engine.loans.submit(funded_member, 300_000, 6, "Laptop", co_signers)

    rejected = ledger_engine.loans.reject(loan.loan_id, "Insufficient guarantees", rejected_by="admin-1")

    assert rejected.status == LoanStatus.REJECTED
    assert rejected.rejection_reason == "Insufficient guarantees"
    with pytest.raises(LoanNotPendingError):
        ledger_engine.loans.approve(loan.loan_id, "admin-1", CASH)
    with pytest.raises(InvalidTransitionError):
        ledger_engine.loans.cancel(loan.loan_id)


def test_unknown_loan(ledger_engine):
    with pytest.raises(LoanNotFoundError):
        ledger_engine.loans.approve("missing", "admin-1", CASH)
    with pytest.raises(LoanNotFoundError):
        ledger_engine.loans.reject("missing", "No such loan")


def test_cancel_pending_loan(ledger_engine, funded_member, co_signers):
    loan = ledger_engine.loans.submit(funded_member, 300_000, 6, "Laptop", co_signers)

    cancelled = ledger_engine.loans.cancel(loan.loan_id, reason="Member withdrew request", cancelled_by="member-1")

    assert cancelled.status == LoanStatus.CANCELLED
    assert cancelled.notes == "Member withdrew request"
    assert ledger_engine.loans.list_pending() == []


def test_co_signer_response(ledger_engine, funded_member, co_signers, clock):
    loan = ledger_engine.loans.submit(funded_member, 300_000, 6, "Laptop", co_signers)

    updated = ledger_engine.loans.respond_co_signer(loan.loan_id, "member-2", accepted=True)

    by_member = {c.member_id: c for c in updated.co_signers}
    assert by_member["member-2"].status == CoSignerStatus.ACCEPTED
    assert by_member["member-2"].responded_at == clock.now()
    assert by_member["member-3"].status == CoSignerStatus.PENDING

    with pytest.raises(CoSignerNotFoundError):
        ledger_engine.loans.respond_co_signer(loan.loan_id, "member-7", accepted=False)


def test_pending_loan_schedule_is_projected(ledger_engine, funded_member, co_signers):
    loan = ledger_engine.loans.submit(funded_member, 300_000, 6, "Laptop", co_signers)

    schedule = ledger_engine.loans.get_schedule(loan.loan_id)

    assert len(schedule.installments) == 6
    assert schedule.summary.total_principal == 300_000
    assert ledger_engine.loans.store.list_installments(loan.loan_id) == []


def test_list_pending_oldest_first(ledger_engine, co_signers, clock):
    for member in ("member-1", "member-4"):
        ledger_engine.savings.deposit(member, 60_000, "Contribution")

    first = ledger_engine.loans.submit("member-1", 200_000, 3, "First", co_signers)
    clock.advance(hours=1)
    second = ledger_engine.loans.submit("member-4", 200_000, 3, "Second", co_signers)

    assert [loan.loan_id for loan in ledger_engine.loans.list_pending()] == [first.loan_id, second.loan_id]
