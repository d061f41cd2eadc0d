"""Storage ports the services depend on

Adapters live in fondo_ledger.infrastructure.database.repositories. Every
save_* call is one atomic write: it commits the whole batch or nothing, and
raises StaleVersionError when an entity's stored version no longer matches
the version it was read with.
"""

from typing import List, Optional, Protocol, Sequence

from fondo_ledger.domain.models import (
    LoanApplication,
    LoanPayment,
    LoanStatus,
    SavingsAccount,
    SavingsTransaction,
)


class LedgerStore(Protocol):
    def get_account(self, account_id: str) -> Optional[SavingsAccount]: ...

    def save_account(
        self, account: SavingsAccount, posting: Optional[SavingsTransaction] = None
    ) -> SavingsAccount:
        """Insert (version None) or update the account, appending posting in the same commit"""
        ...

    def list_transactions(self, account_id: str, limit: int) -> List[SavingsTransaction]: ...

    def rollback(self) -> None: ...


class LoanStore(Protocol):
    def get_loan(self, loan_id: str) -> Optional[LoanApplication]: ...

    def list_loans_by_borrower(self, borrower_id: str) -> List[LoanApplication]: ...

    def list_loans_by_status(self, status: LoanStatus) -> List[LoanApplication]: ...

    def save_loan(
        self, loan: LoanApplication, installments: Sequence[LoanPayment] = ()
    ) -> LoanApplication:
        """Write the loan and the given installments in one commit"""
        ...

    def get_installment(self, loan_id: str, installment_number: int) -> Optional[LoanPayment]: ...

    def list_installments(self, loan_id: str) -> List[LoanPayment]: ...

    def list_installments_by_borrower(self, borrower_id: str) -> List[LoanPayment]: ...

    def rollback(self) -> None: ...
