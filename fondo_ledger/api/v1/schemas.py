"""Pydantic schemas for API request/response validation"""

from enum import Enum
from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from datetime import date, datetime
from typing import Annotated, Any, Dict, List, Optional

# Domain enums arrive as members; responses carry their plain value
StatusValue = Annotated[str, BeforeValidator(lambda v: v.value if isinstance(v, Enum) else v)]


class DepositRequest(BaseModel):
    """Request body for POST /v1/savings/{account_id}/deposits"""

    amount: int = Field(..., gt=0, description="Deposit amount in COP")
    concept: str = Field("Monthly contribution", max_length=200)
    receipt_ref: Optional[str] = None
    created_by: Optional[str] = None


class WithdrawalRequest(BaseModel):
    """Request body for POST /v1/savings/{account_id}/withdrawals"""

    amount: int = Field(..., gt=0, description="Amount to hand out in COP, fee excluded")
    concept: str = Field("Withdrawal", max_length=200)
    approver_id: Optional[str] = None


class TransactionSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    transaction_id: str
    account_id: str
    sequence: int
    type: StatusValue
    amount: int
    balance: int
    concept: str
    metadata: Dict[str, Any] = {}
    created_at: datetime
    created_by: str


class AccountSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    account_id: str
    owner_id: str
    balance: int
    total_deposits: int
    total_withdrawals: int
    monthly_contribution: int
    min_monthly_contribution: int
    contribution_streak: int
    withdrawals_this_month: int
    max_withdrawals_per_month: int
    total_fines: int
    fines_pending: int
    status: StatusValue


class PostingResponse(BaseModel):
    """Response for savings mutations"""

    transaction: Optional[TransactionSchema] = None
    account: AccountSchema
    new_balance: int


class HistoryResponse(BaseModel):
    account_id: str
    transactions: List[TransactionSchema]


class CoSignerSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    member_id: str = Field(..., min_length=1)
    name: str = ""
    email: str = ""
    phone: str = ""
    status: StatusValue = "pending"


class LoanRequest(BaseModel):
    """Request body for POST /v1/loans"""

    borrower_id: str = Field(..., min_length=1)
    borrower_name: str = ""
    amount: int = Field(..., gt=0, description="Requested amount in COP")
    term_months: int = Field(..., gt=0)
    purpose: str = ""
    co_signers: List[CoSignerSchema] = []


class ApproveRequest(BaseModel):
    approver_id: str = Field(..., min_length=1)
    disbursement_method: str = Field(..., min_length=1)
    disbursement_account: Optional[str] = None
    notes: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    rejected_by: Optional[str] = None


class LoanSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    loan_id: str
    borrower_id: str
    borrower_name: str
    amount: int
    term_months: int
    purpose: str
    monthly_rate_percent: float
    monthly_payment: int
    total_interest: int
    total_payable: int
    co_signers: List[CoSignerSchema]
    status: StatusValue
    approved_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    disbursement_method: Optional[str] = None
    paid_payments: int
    total_payments: int
    remaining_balance: int
    next_payment_date: Optional[date] = None
    overdue_payments: int
    overdue_days: int
    total_late_fees: int


class PaymentRequest(BaseModel):
    """Request body for POST /v1/loans/{loan_id}/payments"""

    installment_number: int = Field(..., ge=1)
    amount: int = Field(..., gt=0)
    method: str = Field(..., min_length=1)
    receipt_ref: Optional[str] = None
    notes: Optional[str] = None


class InstallmentSchema(BaseModel):
    """Single installment in a repayment schedule"""

    model_config = ConfigDict(from_attributes=True)

    installment_number: int
    due_date: date
    amount: int
    principal: int
    interest: int
    balance: int
    status: StatusValue
    paid_amount: int = 0
    late_days: int = 0
    late_fee: int = 0


class ScheduleSummarySchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_amount: int
    total_principal: int
    total_interest: int
    monthly_payment: int
    term_months: int


class ScheduleResponse(BaseModel):
    """Response for GET /v1/loans/{loan_id}/schedule"""

    model_config = ConfigDict(from_attributes=True)

    loan_id: str
    installments: List[InstallmentSchema]
    summary: ScheduleSummarySchema


class EligibilityResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_eligible: bool
    reasons: List[str]
    max_loan_amount: int
    required_savings: int
    has_active_loan: bool
    has_overdue_payments: bool
    credit_score: int


class LoanStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_loans: int
    active_loans: int
    total_borrowed: int
    total_paid: int
    total_interest_paid: int
    current_debt: int
    overdue_amount: int
    payments_made: int
    payments_on_time: int
    average_late_days: float
    credit_score: int


class ErrorResponse(BaseModel):
    category: str
    message: str
    details: List[str] = []
