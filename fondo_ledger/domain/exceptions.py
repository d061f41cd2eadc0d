"""Domain-specific exceptions

Every failure the engine reports belongs to exactly one category base class
so callers can render an appropriate message without inspecting strings.
"""

from typing import List


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


# Validation: rejected before any state change


class ValidationError(DomainException):
    """Input is outside configured bounds"""

    def __init__(self, violations: List[str]):
        self.violations = list(violations)
        super().__init__("; ".join(self.violations))


class InvalidAmountError(ValidationError):
    """Amount is below the configured minimum or not positive"""

    def __init__(self, message: str):
        super().__init__([message])


class InvalidRateError(ValidationError):
    """Interest rate is negative"""

    def __init__(self, rate_percent: float):
        super().__init__([f"Interest rate must be >= 0, got {rate_percent}"])


class InvalidTermError(ValidationError):
    """Loan term is shorter than one month"""

    def __init__(self, term_months: int):
        super().__init__([f"Term must be at least 1 month, got {term_months}"])


class LoanValidationError(ValidationError):
    """Loan application violates one or more configured rules"""

    pass


# Eligibility


class EligibilityError(DomainException):
    """Member may not currently take a new loan"""

    pass


class NotEligibleError(EligibilityError):
    """Carries every reason the member is ineligible"""

    def __init__(self, reasons: List[str]):
        self.reasons = list(reasons)
        super().__init__(". ".join(self.reasons))


# State conflicts: rejected, nothing written


class StateConflictError(DomainException):
    """Operation is not allowed in the entity's current state"""

    pass


class LoanNotPendingError(StateConflictError):
    """Loan must be pending for approval or rejection"""

    def __init__(self, loan_id: str, status: str):
        self.loan_id = loan_id
        self.status = status
        super().__init__(f"Loan {loan_id} is {status}, not pending")


class LoanNotActiveError(StateConflictError):
    """Loan does not accept payments in its current state"""

    def __init__(self, loan_id: str, status: str):
        self.loan_id = loan_id
        self.status = status
        super().__init__(f"Loan {loan_id} is {status} and does not accept payments")


class InvalidTransitionError(StateConflictError):
    """Loan status change is not in the transition table"""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move loan from {current} to {target}")


class AlreadyPaidError(StateConflictError):
    """Installment is already fully paid"""

    def __init__(self, loan_id: str, installment_number: int):
        super().__init__(f"Installment {installment_number} of loan {loan_id} is already paid")


class WithdrawalLimitReachedError(StateConflictError):
    """Monthly withdrawal cap reached"""

    def __init__(self, cap: int):
        self.cap = cap
        super().__init__(f"Monthly limit of {cap} withdrawals reached")


class InsufficientBalanceError(StateConflictError):
    """Balance does not cover the amount plus fee"""

    def __init__(self, balance: int, required: int):
        self.balance = balance
        self.required = required
        super().__init__(f"Insufficient balance: {balance} available, {required} required (fee included)")


class AccountInactiveError(StateConflictError):
    """Savings account is inactive or frozen"""

    def __init__(self, account_id: str, status: str):
        super().__init__(f"Savings account {account_id} is {status}")


# Not found


class NotFoundError(DomainException):
    """Referenced entity does not exist"""

    pass


class AccountNotFoundError(NotFoundError):
    def __init__(self, account_id: str):
        super().__init__(f"Savings account {account_id} not found")


class LoanNotFoundError(NotFoundError):
    def __init__(self, loan_id: str):
        super().__init__(f"Loan {loan_id} not found")


class InstallmentNotFoundError(NotFoundError):
    def __init__(self, loan_id: str, installment_number: int):
        super().__init__(f"Installment {installment_number} of loan {loan_id} not found")


class CoSignerNotFoundError(NotFoundError):
    def __init__(self, loan_id: str, member_id: str):
        super().__init__(f"Member {member_id} is not a co-signer of loan {loan_id}")


# Concurrency


class StaleVersionError(DomainException):
    """A concurrent writer committed first; the atomic unit must be retried"""

    pass


class ConcurrencyConflictError(DomainException):
    """Optimistic retries exhausted; transient, safe to resubmit"""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Concurrent update conflict persisted after {attempts} attempts")


# Data integrity


class DataIntegrityError(DomainException):
    """Stored data cannot be interpreted"""

    pass


class UnknownStatusError(DataIntegrityError):
    """Stored status value is missing or not a member of its enum"""

    def __init__(self, kind: str, value: object):
        self.kind = kind
        self.value = value
        super().__init__(f"Unknown {kind} value: {value!r}")
