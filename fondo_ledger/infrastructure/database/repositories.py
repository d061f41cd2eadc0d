"""Data access layer implementing the ledger and loan storage ports"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from fondo_ledger.domain.exceptions import StaleVersionError
from fondo_ledger.domain.models import (
    AccountStatus,
    CoSigner,
    CoSignerStatus,
    LoanApplication,
    LoanPayment,
    LoanStatus,
    PaymentStatus,
    SavingsAccount,
    SavingsTransaction,
    TransactionType,
    parse_status,
)
from fondo_ledger.infrastructure.database.models import (
    LoanPaymentRecord,
    LoanRecord,
    SavingsAccountRecord,
    SavingsTransactionRecord,
)

ACCOUNT_FIELDS = (
    "owner_id",
    "balance",
    "total_deposits",
    "total_withdrawals",
    "monthly_contribution",
    "min_monthly_contribution",
    "contribution_streak",
    "withdrawals_this_month",
    "max_withdrawals_per_month",
    "total_fines",
    "fines_pending",
    "posting_count",
    "last_transaction_id",
    "last_contribution_at",
    "last_withdrawal_at",
    "updated_at",
)

LOAN_FIELDS = (
    "borrower_id",
    "borrower_name",
    "amount",
    "term_months",
    "purpose",
    "monthly_rate_percent",
    "monthly_payment",
    "total_interest",
    "total_payable",
    "approved_by",
    "approved_at",
    "rejection_reason",
    "disbursed_at",
    "disbursement_method",
    "disbursement_account",
    "notes",
    "paid_payments",
    "total_payments",
    "remaining_balance",
    "last_payment_date",
    "next_payment_date",
    "overdue_payments",
    "overdue_days",
    "total_late_fees",
    "updated_at",
)

# Static schedule fields are written once on insert and never copied again
INSTALLMENT_STATIC_FIELDS = ("due_date", "amount", "principal", "interest", "balance")
INSTALLMENT_PAYMENT_FIELDS = (
    "paid_at",
    "paid_amount",
    "late_days",
    "late_fee",
    "payment_method",
    "receipt_ref",
    "notes",
)


def _copy(source: Any, target: Any, fields: Sequence[str]) -> None:
    for name in fields:
        setattr(target, name, getattr(source, name))


class SqlLedgerStore:
    """Savings accounts and their append-only postings"""

    def __init__(self, db: Session):
        self.db = db

    def get_account(self, account_id: str) -> Optional[SavingsAccount]:
        record = self.db.get(SavingsAccountRecord, account_id)
        return _to_account(record) if record else None

    def save_account(
        self, account: SavingsAccount, posting: Optional[SavingsTransaction] = None
    ) -> SavingsAccount:
        """Persist account aggregates and the posting that changed them in one commit"""
        try:
            if account.version is None:
                record = SavingsAccountRecord(account_id=account.account_id, created_at=account.created_at)
                self.db.add(record)
            else:
                record = self.db.get(SavingsAccountRecord, account.account_id)
                if record is None or record.version != account.version:
                    raise StaleVersionError(f"Savings account {account.account_id} changed concurrently")

            _copy(account, record, ACCOUNT_FIELDS)
            record.status = account.status.value

            if posting is not None:
                self.db.add(
                    SavingsTransactionRecord(
                        transaction_id=posting.transaction_id,
                        account_id=posting.account_id,
                        sequence=posting.sequence,
                        type=posting.type.value,
                        amount=posting.amount,
                        balance=posting.balance,
                        concept=posting.concept,
                        metadata_=posting.metadata or None,
                        created_at=posting.created_at,
                        created_by=posting.created_by,
                    )
                )

            self.db.commit()
        except (StaleDataError, IntegrityError) as e:
            self.db.rollback()
            raise StaleVersionError(f"Savings account {account.account_id} changed concurrently") from e
        except Exception:
            self.db.rollback()
            raise

        return _to_account(record)

    def list_transactions(self, account_id: str, limit: int = 50) -> List[SavingsTransaction]:
        """Most recent first"""
        records = (
            self.db.query(SavingsTransactionRecord)
            .filter(SavingsTransactionRecord.account_id == account_id)
            .order_by(SavingsTransactionRecord.sequence.desc())
            .limit(limit)
            .all()
        )
        return [_to_transaction(r) for r in records]

    def rollback(self) -> None:
        self.db.rollback()


class SqlLoanStore:
    """Loan applications and their installments"""

    def __init__(self, db: Session):
        self.db = db

    def get_loan(self, loan_id: str) -> Optional[LoanApplication]:
        record = self.db.get(LoanRecord, loan_id)
        return _to_loan(record) if record else None

    def list_loans_by_borrower(self, borrower_id: str) -> List[LoanApplication]:
        records = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.borrower_id == borrower_id)
            .order_by(LoanRecord.created_at.desc())
            .all()
        )
        return [_to_loan(r) for r in records]

    def list_loans_by_status(self, status: LoanStatus) -> List[LoanApplication]:
        records = (
            self.db.query(LoanRecord)
            .filter(LoanRecord.status == status.value)
            .order_by(LoanRecord.created_at.asc())
            .all()
        )
        return [_to_loan(r) for r in records]

    def save_loan(
        self, loan: LoanApplication, installments: Sequence[LoanPayment] = ()
    ) -> LoanApplication:
        """Persist loan and installments together; any stale version aborts the whole batch"""
        try:
            if loan.version is None:
                record = LoanRecord(loan_id=loan.loan_id, created_at=loan.created_at)
                self.db.add(record)
            else:
                record = self.db.get(LoanRecord, loan.loan_id)
                if record is None or record.version != loan.version:
                    raise StaleVersionError(f"Loan {loan.loan_id} changed concurrently")

            _copy(loan, record, LOAN_FIELDS)
            record.status = loan.status.value
            record.co_signers = [_co_signer_to_json(c) for c in loan.co_signers]

            for inst in installments:
                self._stage_installment(inst)

            self.db.commit()
        except (StaleDataError, IntegrityError) as e:
            self.db.rollback()
            raise StaleVersionError(f"Loan {loan.loan_id} changed concurrently") from e
        except Exception:
            self.db.rollback()
            raise

        return _to_loan(record)

    def _stage_installment(self, inst: LoanPayment) -> None:
        if inst.version is None:
            record = LoanPaymentRecord(loan_id=inst.loan_id, installment_number=inst.installment_number)
            _copy(inst, record, INSTALLMENT_STATIC_FIELDS)
            self.db.add(record)
        else:
            record = self._installment_record(inst.loan_id, inst.installment_number)
            if record is None or record.version != inst.version:
                raise StaleVersionError(
                    f"Installment {inst.installment_number} of loan {inst.loan_id} changed concurrently"
                )

        _copy(inst, record, INSTALLMENT_PAYMENT_FIELDS)
        record.status = inst.status.value

    def _installment_record(self, loan_id: str, installment_number: int) -> Optional[LoanPaymentRecord]:
        return (
            self.db.query(LoanPaymentRecord)
            .filter(
                LoanPaymentRecord.loan_id == loan_id,
                LoanPaymentRecord.installment_number == installment_number,
            )
            .first()
        )

    def get_installment(self, loan_id: str, installment_number: int) -> Optional[LoanPayment]:
        record = self._installment_record(loan_id, installment_number)
        return _to_installment(record) if record else None

    def list_installments(self, loan_id: str) -> List[LoanPayment]:
        records = (
            self.db.query(LoanPaymentRecord)
            .filter(LoanPaymentRecord.loan_id == loan_id)
            .order_by(LoanPaymentRecord.installment_number.asc())
            .all()
        )
        return [_to_installment(r) for r in records]

    def list_installments_by_borrower(self, borrower_id: str) -> List[LoanPayment]:
        records = (
            self.db.query(LoanPaymentRecord)
            .join(LoanRecord, LoanRecord.loan_id == LoanPaymentRecord.loan_id)
            .filter(LoanRecord.borrower_id == borrower_id)
            .order_by(LoanPaymentRecord.loan_id, LoanPaymentRecord.installment_number)
            .all()
        )
        return [_to_installment(r) for r in records]

    def rollback(self) -> None:
        self.db.rollback()


def _to_account(record: SavingsAccountRecord) -> SavingsAccount:
    return SavingsAccount(
        account_id=record.account_id,
        owner_id=record.owner_id,
        balance=record.balance,
        total_deposits=record.total_deposits,
        total_withdrawals=record.total_withdrawals,
        monthly_contribution=record.monthly_contribution,
        min_monthly_contribution=record.min_monthly_contribution,
        contribution_streak=record.contribution_streak,
        withdrawals_this_month=record.withdrawals_this_month,
        max_withdrawals_per_month=record.max_withdrawals_per_month,
        total_fines=record.total_fines,
        fines_pending=record.fines_pending,
        status=parse_status(AccountStatus, record.status),
        posting_count=record.posting_count,
        last_transaction_id=record.last_transaction_id,
        last_contribution_at=record.last_contribution_at,
        last_withdrawal_at=record.last_withdrawal_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
        version=record.version,
    )


def _to_transaction(record: SavingsTransactionRecord) -> SavingsTransaction:
    return SavingsTransaction(
        transaction_id=record.transaction_id,
        account_id=record.account_id,
        sequence=record.sequence,
        type=parse_status(TransactionType, record.type),
        amount=record.amount,
        balance=record.balance,
        concept=record.concept,
        created_at=record.created_at,
        created_by=record.created_by,
        metadata=dict(record.metadata_ or {}),
    )


def _co_signer_to_json(co_signer: CoSigner) -> Dict[str, Any]:
    return {
        "member_id": co_signer.member_id,
        "name": co_signer.name,
        "email": co_signer.email,
        "phone": co_signer.phone,
        "status": co_signer.status.value,
        "responded_at": co_signer.responded_at.isoformat() if co_signer.responded_at else None,
    }


def _co_signer_from_json(data: Dict[str, Any]) -> CoSigner:
    responded_at = data.get("responded_at")
    return CoSigner(
        member_id=data["member_id"],
        name=data.get("name", ""),
        email=data.get("email", ""),
        phone=data.get("phone", ""),
        status=parse_status(CoSignerStatus, data.get("status")),
        responded_at=datetime.fromisoformat(responded_at) if responded_at else None,
    )


def _to_loan(record: LoanRecord) -> LoanApplication:
    return LoanApplication(
        loan_id=record.loan_id,
        borrower_id=record.borrower_id,
        borrower_name=record.borrower_name,
        amount=record.amount,
        term_months=record.term_months,
        purpose=record.purpose,
        monthly_rate_percent=record.monthly_rate_percent,
        monthly_payment=record.monthly_payment,
        total_interest=record.total_interest,
        total_payable=record.total_payable,
        co_signers=[_co_signer_from_json(c) for c in record.co_signers or []],
        status=parse_status(LoanStatus, record.status),
        approved_by=record.approved_by,
        approved_at=record.approved_at,
        rejection_reason=record.rejection_reason,
        disbursed_at=record.disbursed_at,
        disbursement_method=record.disbursement_method,
        disbursement_account=record.disbursement_account,
        notes=record.notes,
        paid_payments=record.paid_payments,
        total_payments=record.total_payments,
        remaining_balance=record.remaining_balance,
        last_payment_date=record.last_payment_date,
        next_payment_date=record.next_payment_date,
        overdue_payments=record.overdue_payments,
        overdue_days=record.overdue_days,
        total_late_fees=record.total_late_fees,
        created_at=record.created_at,
        updated_at=record.updated_at,
        version=record.version,
    )


def _to_installment(record: LoanPaymentRecord) -> LoanPayment:
    return LoanPayment(
        loan_id=record.loan_id,
        installment_number=record.installment_number,
        due_date=record.due_date,
        amount=record.amount,
        principal=record.principal,
        interest=record.interest,
        balance=record.balance,
        status=parse_status(PaymentStatus, record.status),
        paid_at=record.paid_at,
        paid_amount=record.paid_amount,
        late_days=record.late_days,
        late_fee=record.late_fee,
        payment_method=record.payment_method,
        receipt_ref=record.receipt_ref,
        notes=record.notes,
        version=record.version,
    )
