"""Payment processor - applies installment payments, late fees and delinquency"""

from dataclasses import replace
from datetime import date
from typing import List, Optional, Sequence, Tuple

from fondo_ledger.config import Settings, settings as default_settings
from fondo_ledger.domain.exceptions import (
    AlreadyPaidError,
    InstallmentNotFoundError,
    InvalidAmountError,
    LoanNotActiveError,
    LoanNotFoundError,
)
from fondo_ledger.domain.lifecycle import accepts_payments, transition
from fondo_ledger.domain.models import LoanApplication, LoanPayment, LoanStatus, PaymentStatus
from fondo_ledger.infrastructure.observability.logging import log_payment
from fondo_ledger.infrastructure.observability.metrics import record_payment
from fondo_ledger.services.atomic import run_atomic
from fondo_ledger.services.loans import announce_transition
from fondo_ledger.services.ports import LoanStore
from fondo_ledger.utils.clock import Clock, SystemClock
from fondo_ledger.utils.date_utils import days_between

UNSETTLED = (PaymentStatus.PENDING, PaymentStatus.PARTIALLY_PAID)


def late_days_for(due_date: date, today: date) -> int:
    return max(0, days_between(due_date, today))


def _delinquency(installments: Sequence[LoanPayment], today: date) -> Tuple[int, int, int]:
    """(overdue count, summed days past due, worst days past due) over overdue installments"""
    days = [late_days_for(i.due_date, today) for i in installments if i.status == PaymentStatus.OVERDUE]
    return len(days), sum(days), max(days, default=0)


def _next_due(installments: Sequence[LoanPayment]) -> Optional[date]:
    for inst in installments:
        if inst.status != PaymentStatus.PAID:
            return inst.due_date
    return None


class PaymentProcessor:
    """Only writer of installment status and of a loan's repayment aggregates"""

    def __init__(self, store: LoanStore, clock: Optional[Clock] = None, config: Optional[Settings] = None):
        self.store = store
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

    def record_payment(
        self,
        loan_id: str,
        installment_number: int,
        amount_paid: int,
        method: str,
        receipt_ref: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LoanPayment:
        """
        Apply a payment to one installment.

        Flow:
        1. Load loan and installment
        2. late_days = days past the due date, late_fee = late_days * late_fee_per_day
        3. Accumulate paid amount; paid once it covers the scheduled amount, else
           partially_paid (an overdue installment stays overdue until covered)
        4. Update loan aggregates; late fees never reduce remaining_balance
        5. Move the loan to paid when every installment is settled, or back to
           active when an overdue loan has caught up

        A shortfall stays on the same installment for a later call.

        Raises:
            InvalidAmountError: amount_paid <= 0
            LoanNotFoundError, InstallmentNotFoundError
            AlreadyPaidError: installment already settled
            LoanNotActiveError: loan not active or overdue
        """
        if amount_paid <= 0:
            raise InvalidAmountError(f"Payment amount must be positive, got {amount_paid}")

        def operation() -> Tuple[LoanStatus, LoanApplication, LoanPayment]:
            loan = self.store.get_loan(loan_id)
            if loan is None:
                raise LoanNotFoundError(loan_id)
            installment = self.store.get_installment(loan_id, installment_number)
            if installment is None:
                raise InstallmentNotFoundError(loan_id, installment_number)
            if installment.status == PaymentStatus.PAID:
                raise AlreadyPaidError(loan_id, installment_number)
            if not accepts_payments(loan.status):
                raise LoanNotActiveError(loan_id, loan.status.value)

            now = self.clock.now()
            today = now.date()
            late_days = late_days_for(installment.due_date, today)
            late_fee = max(late_days * self.config.late_fee_per_day, installment.late_fee)
            fee_increase = late_fee - installment.late_fee

            paid_amount = installment.paid_amount + amount_paid
            settled = paid_amount >= installment.amount
            if settled:
                status = PaymentStatus.PAID
            elif installment.status == PaymentStatus.OVERDUE:
                # Still past due until fully covered
                status = PaymentStatus.OVERDUE
            else:
                status = PaymentStatus.PARTIALLY_PAID
            updated_installment = replace(
                installment,
                status=status,
                paid_at=now,
                paid_amount=paid_amount,
                late_days=late_days,
                late_fee=late_fee,
                payment_method=method,
                receipt_ref=receipt_ref or installment.receipt_ref,
                notes=notes or installment.notes,
            )

            installments = [
                updated_installment if i.installment_number == installment_number else i
                for i in self.store.list_installments(loan_id)
            ]
            overdue_count, overdue_days, _ = _delinquency(installments, today)
            paid_payments = loan.paid_payments + (1 if settled else 0)

            changes = dict(
                remaining_balance=max(0, loan.remaining_balance - amount_paid),
                paid_payments=paid_payments,
                total_late_fees=loan.total_late_fees + fee_increase,
                last_payment_date=now,
                next_payment_date=_next_due(installments),
                overdue_payments=overdue_count,
                overdue_days=overdue_days,
            )

            target = loan.status
            if paid_payments >= loan.total_payments:
                target = LoanStatus.PAID
            elif loan.status == LoanStatus.OVERDUE and overdue_count == 0:
                target = LoanStatus.ACTIVE

            if target != loan.status:
                updated_loan = transition(loan, target, now, **changes)
            else:
                updated_loan = replace(loan, updated_at=now, **changes)

            saved = self.store.save_loan(updated_loan, [updated_installment])
            return loan.status, saved, self.store.get_installment(loan_id, installment_number)

        previous, loan, payment = self._atomic(operation, "record_payment")

        record_payment(payment.status.value, payment.late_fee)
        log_payment(loan_id, installment_number, amount_paid, payment.status.value, payment.late_days, payment.late_fee)
        if loan.status != previous:
            announce_transition(loan_id, previous, loan.status)
        return payment

    def refresh_delinquency(self, loan_id: str) -> LoanApplication:
        """
        Flag installments past their due date and escalate the loan.

        Called by the external periodic sweep; uses the injected clock for
        "today". Unsettled installments due before today become overdue. The
        loan becomes overdue when any installment is, and defaulted when more
        than max_overdue_installments are overdue or the oldest is more than
        max_late_days late. Loans that do not accept payments are returned as is.
        """

        def operation() -> Tuple[LoanStatus, LoanApplication]:
            loan = self.store.get_loan(loan_id)
            if loan is None:
                raise LoanNotFoundError(loan_id)
            if not accepts_payments(loan.status):
                return loan.status, loan

            now = self.clock.now()
            today = now.date()
            flagged: List[LoanPayment] = []
            installments = []
            for inst in self.store.list_installments(loan_id):
                if inst.status in UNSETTLED and inst.due_date < today:
                    inst = replace(inst, status=PaymentStatus.OVERDUE)
                    flagged.append(inst)
                installments.append(inst)

            overdue_count, overdue_days, worst = _delinquency(installments, today)
            if overdue_count > self.config.max_overdue_installments or worst > self.config.max_late_days:
                target = LoanStatus.DEFAULTED
            elif overdue_count > 0:
                target = LoanStatus.OVERDUE
            else:
                target = LoanStatus.ACTIVE

            changes = dict(overdue_payments=overdue_count, overdue_days=overdue_days)
            unchanged = (
                not flagged
                and target == loan.status
                and (loan.overdue_payments, loan.overdue_days) == (overdue_count, overdue_days)
            )
            if unchanged:
                return loan.status, loan

            if target != loan.status:
                updated = transition(loan, target, now, **changes)
            else:
                updated = replace(loan, updated_at=now, **changes)
            return loan.status, self.store.save_loan(updated, flagged)

        previous, loan = self._atomic(operation, "refresh_delinquency")
        if loan.status != previous:
            announce_transition(loan_id, previous, loan.status)
        return loan
