"""Domain models - pure Python dataclasses and status enums for the fund ledger"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar

from fondo_ledger.domain.exceptions import UnknownStatusError


class AccountStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    FROZEN = "frozen"


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    FINE = "fine"
    INTEREST = "interest"


class LoanStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ACTIVE = "active"
    PAID = "paid"
    OVERDUE = "overdue"
    DEFAULTED = "defaulted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    PARTIALLY_PAID = "partially_paid"


class CoSignerStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


E = TypeVar("E", bound=Enum)


def parse_status(enum_cls: Type[E], value: Any) -> E:
    """
    Convert a stored status value to its enum member.

    Missing or unrecognised values fail closed with UnknownStatusError
    instead of falling back to a default.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        raise UnknownStatusError(enum_cls.__name__, value) from e


@dataclass
class SavingsAccount:
    """Member savings account; aggregates are derived from the posting ledger"""

    account_id: str
    owner_id: str
    balance: int = 0
    total_deposits: int = 0
    total_withdrawals: int = 0
    monthly_contribution: int = 0
    min_monthly_contribution: int = 0
    contribution_streak: int = 0
    withdrawals_this_month: int = 0
    max_withdrawals_per_month: int = 0
    total_fines: int = 0
    fines_pending: int = 0
    status: AccountStatus = AccountStatus.ACTIVE
    posting_count: int = 0
    last_transaction_id: Optional[str] = None
    last_contribution_at: Optional[datetime] = None
    last_withdrawal_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: Optional[int] = None  # None until first persisted


@dataclass
class SavingsTransaction:
    """Immutable ledger posting"""

    transaction_id: str
    account_id: str
    sequence: int
    type: TransactionType
    amount: int
    balance: int  # Snapshot after this posting
    concept: str
    created_at: datetime
    created_by: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def signed_effect(self) -> int:
        """Change this posting applied to the account balance"""
        if self.type in (TransactionType.DEPOSIT, TransactionType.INTEREST):
            return self.amount
        if self.type == TransactionType.WITHDRAWAL:
            return -(self.amount + int(self.metadata.get("fee", 0)))
        return -self.amount


@dataclass
class PostingResult:
    """Outcome of a ledger mutation"""

    transaction: SavingsTransaction
    account: SavingsAccount

    @property
    def new_balance(self) -> int:
        return self.account.balance


@dataclass
class SavingsStats:
    balance: int
    total_deposited: int
    total_withdrawn: int
    contribution_streak: int
    total_fines: int
    fines_pending: int
    account_age_months: int
    last_activity_at: Optional[datetime]


@dataclass
class CoSigner:
    """Member accepting joint liability for a loan; embedded in the loan"""

    member_id: str
    name: str = ""
    email: str = ""
    phone: str = ""
    status: CoSignerStatus = CoSignerStatus.PENDING
    responded_at: Optional[datetime] = None


@dataclass
class DisbursementInfo:
    method: str
    account: Optional[str] = None
    notes: Optional[str] = None


@dataclass
class LoanApplication:
    loan_id: str
    borrower_id: str
    amount: int
    term_months: int
    purpose: str
    monthly_rate_percent: float
    monthly_payment: int
    total_interest: int
    total_payable: int
    borrower_name: str = ""
    co_signers: List[CoSigner] = field(default_factory=list)
    status: LoanStatus = LoanStatus.PENDING
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    disbursed_at: Optional[datetime] = None
    disbursement_method: Optional[str] = None
    disbursement_account: Optional[str] = None
    notes: Optional[str] = None
    paid_payments: int = 0
    total_payments: int = 0
    remaining_balance: int = 0
    last_payment_date: Optional[datetime] = None
    next_payment_date: Optional[date] = None
    overdue_payments: int = 0
    overdue_days: int = 0
    total_late_fees: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: Optional[int] = None


@dataclass
class ScheduledInstallment:
    """Single row of an amortization schedule, before it is persisted"""

    installment_number: int
    due_date: date
    amount: int
    principal: int
    interest: int
    balance: int  # Outstanding principal after this installment


@dataclass
class LoanPayment:
    """Persisted installment of an active loan"""

    loan_id: str
    installment_number: int
    due_date: date
    amount: int
    principal: int
    interest: int
    balance: int
    status: PaymentStatus = PaymentStatus.PENDING
    paid_at: Optional[datetime] = None
    paid_amount: int = 0
    late_days: int = 0
    late_fee: int = 0
    payment_method: Optional[str] = None
    receipt_ref: Optional[str] = None
    notes: Optional[str] = None
    version: Optional[int] = None

    @property
    def outstanding(self) -> int:
        """Scheduled amount not yet covered by payments"""
        return max(0, self.amount - self.paid_amount)


@dataclass
class ScheduleSummary:
    total_amount: int
    total_principal: int
    total_interest: int
    monthly_payment: int
    term_months: int


@dataclass
class PaymentSchedule:
    loan_id: str
    installments: List[LoanPayment]
    summary: ScheduleSummary


@dataclass
class Eligibility:
    is_eligible: bool
    reasons: List[str]
    max_loan_amount: int
    required_savings: int
    has_active_loan: bool
    has_overdue_payments: bool
    credit_score: int


@dataclass
class LoanStats:
    total_loans: int = 0
    active_loans: int = 0
    total_borrowed: int = 0
    total_paid: int = 0
    total_interest_paid: int = 0
    current_debt: int = 0
    overdue_amount: int = 0
    payments_made: int = 0
    payments_on_time: int = 0
    average_late_days: float = 0.0
    credit_score: int = 100
