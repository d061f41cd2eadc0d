"""Loan state machine - submission, approval with schedule generation, rejection, cancellation"""

import uuid
from dataclasses import replace
from typing import List, Optional, Sequence, Tuple

from fondo_ledger.config import Settings, settings as default_settings
from fondo_ledger.domain.amortization import generate_schedule, summarize_schedule
from fondo_ledger.domain.exceptions import (
    CoSignerNotFoundError,
    LoanNotFoundError,
    LoanNotPendingError,
    LoanValidationError,
    NotEligibleError,
)
from fondo_ledger.domain.lifecycle import transition
from fondo_ledger.domain.models import (
    CoSigner,
    CoSignerStatus,
    DisbursementInfo,
    LoanApplication,
    LoanPayment,
    LoanStatus,
    PaymentSchedule,
    PaymentStatus,
    ScheduledInstallment,
)
from fondo_ledger.domain.money import monthly_payment
from fondo_ledger.infrastructure.observability.logging import log_loan_transition
from fondo_ledger.infrastructure.observability.metrics import record_transition
from fondo_ledger.services.atomic import run_atomic
from fondo_ledger.services.eligibility import EligibilityService
from fondo_ledger.services.ports import LoanStore
from fondo_ledger.utils.clock import Clock, SystemClock


def announce_transition(
    loan_id: str, from_status: Optional[LoanStatus], to_status: LoanStatus, actor: Optional[str] = None
) -> None:
    """Log and count a committed status change"""
    record_transition(to_status.value)
    log_loan_transition(loan_id, from_status.value if from_status else None, to_status.value, actor)


def _installment_rows(loan_id: str, schedule: Sequence[ScheduledInstallment]) -> List[LoanPayment]:
    return [
        LoanPayment(
            loan_id=loan_id,
            installment_number=row.installment_number,
            due_date=row.due_date,
            amount=row.amount,
            principal=row.principal,
            interest=row.interest,
            balance=row.balance,
            status=PaymentStatus.PENDING,
        )
        for row in schedule
    ]


class LoanService:
    """Owner of loan status; the payment processor only moves loans along repayment states"""

    def __init__(
        self,
        store: LoanStore,
        eligibility: EligibilityService,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
    ):
        self.store = store
        self.eligibility = eligibility
        self.clock = clock or SystemClock()
        self.config = config or default_settings

    def _atomic(self, operation, name: str):
        return run_atomic(
            operation,
            self.store.rollback,
            max_attempts=self.config.max_transaction_attempts,
            backoff_seconds=self.config.retry_backoff_seconds,
            name=name,
        )

    def _require_loan(self, loan_id: str) -> LoanApplication:
        loan = self.store.get_loan(loan_id)
        if loan is None:
            raise LoanNotFoundError(loan_id)
        return loan

    def validate_application(
        self, borrower_id: str, amount: int, term_months: int, purpose: str, co_signers: Sequence[CoSigner]
    ) -> List[str]:
        """Return every violated rule (empty when the application is well formed)"""
        cfg = self.config
        violations = []
        if not cfg.min_loan_amount <= amount <= cfg.max_loan_amount:
            violations.append(f"Amount must be between {cfg.min_loan_amount} and {cfg.max_loan_amount} COP")
        if not cfg.min_term_months <= term_months <= cfg.max_term_months:
            violations.append(f"Term must be between {cfg.min_term_months} and {cfg.max_term_months} months")
        if len(co_signers) < cfg.required_co_signers:
            violations.append(f"At least {cfg.required_co_signers} co-signers are required")
        elif len(co_signers) > cfg.max_co_signers:
            violations.append(f"At most {cfg.max_co_signers} co-signers are allowed")

        member_ids = [c.member_id for c in co_signers]
        if borrower_id in member_ids:
            violations.append("Borrower cannot co-sign their own loan")
        if len(set(member_ids)) != len(member_ids):
            violations.append("Each co-signer may appear only once")
        if not purpose.strip():
            violations.append("Purpose is required")
        return violations

    def submit(
        self,
        borrower_id: str,
        amount: int,
        term_months: int,
        purpose: str,
        co_signers: Sequence[CoSigner],
        borrower_name: str = "",
    ) -> LoanApplication:
        """
        Create a pending loan application.

        Raises:
            LoanValidationError: amount, term or co-signers out of bounds (all violations listed)
            NotEligibleError: member fails eligibility (all reasons listed)
        """
        violations = self.validate_application(borrower_id, amount, term_months, purpose, co_signers)
        if violations:
            raise LoanValidationError(violations)

        eligibility = self.eligibility.check_eligibility(borrower_id)
        if not eligibility.is_eligible:
            raise NotEligibleError(eligibility.reasons)

        rate = self.config.monthly_interest_rate_percent
        payment = monthly_payment(amount, rate, term_months)
        total_payable = payment * term_months
        now = self.clock.now()

        loan = LoanApplication(
            loan_id=str(uuid.uuid4()),
            borrower_id=borrower_id,
            borrower_name=borrower_name,
            amount=amount,
            term_months=term_months,
            purpose=purpose,
            monthly_rate_percent=rate,
            monthly_payment=payment,
            total_interest=total_payable - amount,
            total_payable=total_payable,
            co_signers=[replace(c, status=CoSignerStatus.PENDING, responded_at=None) for c in co_signers],
            status=LoanStatus.PENDING,
            total_payments=term_months,
            remaining_balance=total_payable,
            created_at=now,
            updated_at=now,
        )
        saved = self._atomic(lambda: self.store.save_loan(loan), "submit_loan")
        announce_transition(saved.loan_id, None, saved.status, borrower_id)
        return saved

    def approve(self, loan_id: str, approver_id: str, disbursement: DisbursementInfo) -> LoanApplication:
        """
        Approve, disburse and activate a pending loan.

        The amortization schedule is generated here, anchored at the approval
        date, and written together with the status change. It is never
        regenerated afterwards.

        Raises:
            LoanNotFoundError, LoanNotPendingError
        """

        def operation() -> LoanApplication:
            loan = self._require_loan(loan_id)
            if loan.status != LoanStatus.PENDING:
                raise LoanNotPendingError(loan_id, loan.status.value)

            now = self.clock.now()
            schedule = generate_schedule(loan.amount, loan.monthly_rate_percent, loan.term_months, now.date())
            installments = _installment_rows(loan_id, schedule)
            summary = summarize_schedule(schedule, loan.monthly_payment)

            activated = transition(
                loan,
                LoanStatus.ACTIVE,
                now,
                approved_by=approver_id,
                approved_at=now,
                disbursed_at=now,
                disbursement_method=disbursement.method,
                disbursement_account=disbursement.account,
                notes=disbursement.notes or loan.notes,
                total_payments=len(installments),
                total_payable=summary.total_amount,
                total_interest=summary.total_interest,
                remaining_balance=summary.total_amount,
                next_payment_date=installments[0].due_date,
            )
            return self.store.save_loan(activated, installments)

        saved = self._atomic(operation, "approve_loan")
        announce_transition(saved.loan_id, LoanStatus.PENDING, saved.status, approver_id)
        return saved

    def reject(self, loan_id: str, reason: str, rejected_by: Optional[str] = None) -> LoanApplication:
        """Reject a pending application; terminal"""

        def operation() -> LoanApplication:
            loan = self._require_loan(loan_id)
            if loan.status != LoanStatus.PENDING:
                raise LoanNotPendingError(loan_id, loan.status.value)
            return self.store.save_loan(
                transition(loan, LoanStatus.REJECTED, self.clock.now(), rejection_reason=reason)
            )

        saved = self._atomic(operation, "reject_loan")
        announce_transition(saved.loan_id, LoanStatus.PENDING, saved.status, rejected_by)
        return saved

    def cancel(self, loan_id: str, reason: Optional[str] = None, cancelled_by: Optional[str] = None) -> LoanApplication:
        """
        Cancel a loan that is pending, approved or active.

        Raises:
            InvalidTransitionError: loan is overdue or already terminal
        """

        def operation() -> Tuple[LoanStatus, LoanApplication]:
            loan = self._require_loan(loan_id)
            cancelled = transition(loan, LoanStatus.CANCELLED, self.clock.now(), notes=reason or loan.notes)
            return loan.status, self.store.save_loan(cancelled)

        previous, saved = self._atomic(operation, "cancel_loan")
        announce_transition(saved.loan_id, previous, saved.status, cancelled_by)
        return saved

    def respond_co_signer(self, loan_id: str, member_id: str, accepted: bool) -> LoanApplication:
        """Record a co-signer's acceptance or refusal while the loan is pending"""

        def operation() -> LoanApplication:
            loan = self._require_loan(loan_id)
            if loan.status != LoanStatus.PENDING:
                raise LoanNotPendingError(loan_id, loan.status.value)
            if member_id not in {c.member_id for c in loan.co_signers}:
                raise CoSignerNotFoundError(loan_id, member_id)

            now = self.clock.now()
            status = CoSignerStatus.ACCEPTED if accepted else CoSignerStatus.REJECTED
            co_signers = [
                replace(c, status=status, responded_at=now) if c.member_id == member_id else c
                for c in loan.co_signers
            ]
            return self.store.save_loan(replace(loan, co_signers=co_signers, updated_at=now))

        return self._atomic(operation, "co_signer_response")

    def get_loan(self, loan_id: str) -> LoanApplication:
        return self._require_loan(loan_id)

    def list_member_loans(self, member_id: str) -> List[LoanApplication]:
        return self.store.list_loans_by_borrower(member_id)

    def list_pending(self) -> List[LoanApplication]:
        """Approval queue, oldest first"""
        return self.store.list_loans_by_status(LoanStatus.PENDING)

    def get_schedule(self, loan_id: str) -> PaymentSchedule:
        """
        Installment schedule of a loan.

        Loans that have not been activated yet get a projection anchored at
        today; activated loans return their persisted installments.
        """
        loan = self._require_loan(loan_id)
        installments = self.store.list_installments(loan_id)
        if not installments and loan.status in (LoanStatus.PENDING, LoanStatus.APPROVED):
            projected = generate_schedule(
                loan.amount, loan.monthly_rate_percent, loan.term_months, self.clock.now().date()
            )
            installments = _installment_rows(loan_id, projected)

        return PaymentSchedule(
            loan_id=loan_id,
            installments=installments,
            summary=summarize_schedule(installments, loan.monthly_payment),
        )
