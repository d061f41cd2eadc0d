"""Loan eligibility and credit statistics - read-only consumers of both ledgers"""

from typing import List, Optional

from fondo_ledger.config import Settings, settings as default_settings
from fondo_ledger.domain.models import Eligibility, LoanStats, PaymentStatus
from fondo_ledger.domain.scoring import BLOCKING_LOAN_STATUSES, max_loan_amount, summarize_history
from fondo_ledger.services.ports import LedgerStore, LoanStore


class EligibilityService:
    """Computes verdicts and scores on every call; never writes anything back"""

    def __init__(self, ledger_store: LedgerStore, loan_store: LoanStore, config: Optional[Settings] = None):
        self.ledger_store = ledger_store
        self.loan_store = loan_store
        self.config = config or default_settings

    def get_stats(self, member_id: str) -> LoanStats:
        loans = self.loan_store.list_loans_by_borrower(member_id)
        installments = self.loan_store.list_installments_by_borrower(member_id)
        return summarize_history(loans, installments)

    def check_eligibility(self, member_id: str) -> Eligibility:
        """
        Evaluate every rule and collect all failures.

        Rules:
        - Savings balance >= min_savings_required
        - No loan that is approved, active or overdue
        - No installment currently overdue
        """
        reasons: List[str] = []
        required = self.config.min_savings_required

        account = self.ledger_store.get_account(member_id)
        balance = account.balance if account else 0
        if account is None:
            reasons.append(f"No savings account; at least {required} COP in savings is required")
        elif balance < required:
            reasons.append(f"At least {required} COP in savings is required (current balance {balance} COP)")

        loans = self.loan_store.list_loans_by_borrower(member_id)
        has_active_loan = any(loan.status in BLOCKING_LOAN_STATUSES for loan in loans)
        if has_active_loan:
            reasons.append("Member already has an active loan; it must be paid before requesting another")

        installments = self.loan_store.list_installments_by_borrower(member_id)
        has_overdue = any(inst.status == PaymentStatus.OVERDUE for inst in installments)
        if has_overdue:
            reasons.append("Member has overdue installments; they must be brought up to date first")

        stats = summarize_history(loans, installments)

        return Eligibility(
            is_eligible=not reasons,
            reasons=reasons,
            max_loan_amount=max_loan_amount(
                balance, self.config.max_loan_savings_multiplier, self.config.max_loan_amount
            ),
            required_savings=required,
            has_active_loan=has_active_loan,
            has_overdue_payments=has_overdue,
            credit_score=stats.credit_score,
        )
