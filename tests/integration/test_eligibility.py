"""Integration tests for loan eligibility and credit statistics"""

from datetime import datetime, timezone


def test_funded_member_is_eligible(ledger_engine, funded_member):
    verdict = ledger_engine.eligibility.check_eligibility(funded_member)

    assert verdict.is_eligible
    assert verdict.reasons == []
    assert verdict.max_loan_amount == 1_000_000
    assert verdict.required_savings == 50_000
    assert not verdict.has_active_loan
    assert not verdict.has_overdue_payments
    assert verdict.credit_score == 100


def test_member_without_account(ledger_engine):
    verdict = ledger_engine.eligibility.check_eligibility("member-9")

    assert not verdict.is_eligible
    assert verdict.max_loan_amount == 0
    assert len(verdict.reasons) == 1
    assert "No savings account" in verdict.reasons[0]


def test_low_savings(ledger_engine):
    ledger_engine.savings.deposit("member-1", 30_000, "Contribution")

    verdict = ledger_engine.eligibility.check_eligibility("member-1")

    assert not verdict.is_eligible
    assert "30000" in verdict.reasons[0]
    assert verdict.max_loan_amount == 300_000


def test_max_loan_amount_capped_by_fund_ceiling(ledger_engine):
    ledger_engine.savings.deposit("member-1", 600_000, "Large contribution")

    assert ledger_engine.eligibility.check_eligibility("member-1").max_loan_amount == 5_000_000


def test_all_failing_rules_are_reported(ledger_engine, active_loan):
    # Drop savings below the minimum while the loan is active
    ledger_engine.savings.withdraw(active_loan.borrower_id, 60_000, "Emergency")

    verdict = ledger_engine.eligibility.check_eligibility(active_loan.borrower_id)

    assert not verdict.is_eligible
    assert verdict.has_active_loan
    assert len(verdict.reasons) == 2


def test_pending_application_does_not_block(ledger_engine, funded_member, co_signers):
    ledger_engine.loans.submit(funded_member, 300_000, 6, "Laptop", co_signers)

    assert ledger_engine.eligibility.check_eligibility(funded_member).is_eligible


def test_loan_stats_after_repayments(ledger_engine, active_loan, clock):
    loan_id = active_loan.loan_id
    installments = ledger_engine.loans.store.list_installments(loan_id)

    clock.set(datetime(2024, 2, 15, 9, 0, tzinfo=timezone.utc))
    ledger_engine.payments.record_payment(loan_id, 1, installments[0].amount, "cash")
    clock.set(datetime(2024, 3, 20, 9, 0, tzinfo=timezone.utc))
    ledger_engine.payments.record_payment(loan_id, 2, installments[1].amount, "cash")

    stats = ledger_engine.eligibility.get_stats(active_loan.borrower_id)

    assert stats.total_loans == 1
    assert stats.active_loans == 1
    assert stats.total_borrowed == 1_000_000
    assert stats.payments_made == 2
    assert stats.payments_on_time == 1
    assert stats.total_paid == installments[0].amount + installments[1].amount
    assert stats.total_interest_paid == installments[0].interest + installments[1].interest
    assert stats.current_debt == active_loan.remaining_balance - stats.total_paid
    assert stats.average_late_days == 2.5
    # 50% on time -20, some lateness -5
    assert stats.credit_score == 75


def test_stats_for_unknown_member(ledger_engine):
    stats = ledger_engine.eligibility.get_stats("nobody")

    assert stats.total_loans == 0
    assert stats.credit_score == 100
