"""SQLAlchemy ORM models for savings accounts, ledger postings, loans and installments"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Float,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    JSON,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class SavingsAccountRecord(Base):
    """One savings account per member; updated only together with a posting"""

    __tablename__ = "savings_account"

    account_id = Column(Text, primary_key=True)
    owner_id = Column(Text, nullable=False, index=True)
    balance = Column(BigInteger, nullable=False, default=0)
    total_deposits = Column(BigInteger, nullable=False, default=0)
    total_withdrawals = Column(BigInteger, nullable=False, default=0)
    monthly_contribution = Column(BigInteger, nullable=False, default=0)
    min_monthly_contribution = Column(BigInteger, nullable=False)
    contribution_streak = Column(Integer, nullable=False, default=0)
    withdrawals_this_month = Column(Integer, nullable=False, default=0)
    max_withdrawals_per_month = Column(Integer, nullable=False)
    total_fines = Column(BigInteger, nullable=False, default=0)
    fines_pending = Column(BigInteger, nullable=False, default=0)
    status = Column(Text, nullable=False)
    posting_count = Column(Integer, nullable=False, default=0)
    last_transaction_id = Column(Text, nullable=True)
    last_contribution_at = Column(DateTime(timezone=True), nullable=True)
    last_withdrawal_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False)

    # UPDATE ... WHERE version = :loaded_version; zero rows raises StaleDataError
    __mapper_args__ = {"version_id_col": version}


class SavingsTransactionRecord(Base):
    """Append-only ledger posting; never updated or deleted"""

    __tablename__ = "savings_transaction"
    __table_args__ = (UniqueConstraint("account_id", "sequence", name="uq_posting_sequence"),)

    transaction_id = Column(Text, primary_key=True, default=new_id)
    account_id = Column(Text, ForeignKey("savings_account.account_id"), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    type = Column(Text, nullable=False)
    amount = Column(BigInteger, nullable=False)
    balance = Column(BigInteger, nullable=False)
    concept = Column(Text, nullable=False, default="")
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(Text, nullable=False)


class LoanRecord(Base):
    """Loan application and its repayment aggregates"""

    __tablename__ = "loan"

    loan_id = Column(Text, primary_key=True, default=new_id)
    borrower_id = Column(Text, nullable=False, index=True)
    borrower_name = Column(Text, nullable=False, default="")
    amount = Column(BigInteger, nullable=False)
    term_months = Column(Integer, nullable=False)
    purpose = Column(Text, nullable=False)
    monthly_rate_percent = Column(Float, nullable=False)
    monthly_payment = Column(BigInteger, nullable=False)
    total_interest = Column(BigInteger, nullable=False)
    total_payable = Column(BigInteger, nullable=False)
    co_signers = Column(JSON, nullable=False, default=list)
    status = Column(Text, nullable=False, index=True)
    approved_by = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    disbursed_at = Column(DateTime(timezone=True), nullable=True)
    disbursement_method = Column(Text, nullable=True)
    disbursement_account = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    paid_payments = Column(Integer, nullable=False, default=0)
    total_payments = Column(Integer, nullable=False, default=0)
    remaining_balance = Column(BigInteger, nullable=False, default=0)
    last_payment_date = Column(DateTime(timezone=True), nullable=True)
    next_payment_date = Column(Date, nullable=True)
    overdue_payments = Column(Integer, nullable=False, default=0)
    overdue_days = Column(Integer, nullable=False, default=0)
    total_late_fees = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)
    version = Column(Integer, nullable=False)

    installments = relationship(
        "LoanPaymentRecord",
        back_populates="loan",
        order_by="LoanPaymentRecord.installment_number",
    )

    __mapper_args__ = {"version_id_col": version}


class LoanPaymentRecord(Base):
    """Scheduled installment; static split fixed at activation, payment fields mutable"""

    __tablename__ = "loan_payment"
    __table_args__ = (UniqueConstraint("loan_id", "installment_number", name="uq_installment_number"),)

    id = Column(String(36), primary_key=True, default=new_id)
    loan_id = Column(Text, ForeignKey("loan.loan_id"), nullable=False, index=True)
    installment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount = Column(BigInteger, nullable=False)
    principal = Column(BigInteger, nullable=False)
    interest = Column(BigInteger, nullable=False)
    balance = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, index=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    paid_amount = Column(BigInteger, nullable=False, default=0)
    late_days = Column(Integer, nullable=False, default=0)
    late_fee = Column(BigInteger, nullable=False, default=0)
    payment_method = Column(Text, nullable=True)
    receipt_ref = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    version = Column(Integer, nullable=False)

    loan = relationship("LoanRecord", back_populates="installments")

    __mapper_args__ = {"version_id_col": version}
