"""Wiring of the ledger services over one database session"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from fondo_ledger.config import Settings, settings as default_settings
from fondo_ledger.infrastructure.database.repositories import SqlLedgerStore, SqlLoanStore
from fondo_ledger.services.eligibility import EligibilityService
from fondo_ledger.services.ledger import SavingsLedger
from fondo_ledger.services.loans import LoanService
from fondo_ledger.services.payments import PaymentProcessor
from fondo_ledger.utils.clock import Clock, SystemClock


@dataclass
class LedgerEngine:
    savings: SavingsLedger
    eligibility: EligibilityService
    loans: LoanService
    payments: PaymentProcessor

    @classmethod
    def from_session(
        cls, db: Session, clock: Optional[Clock] = None, config: Optional[Settings] = None
    ) -> "LedgerEngine":
        clock = clock or SystemClock()
        config = config or default_settings
        ledger_store = SqlLedgerStore(db)
        loan_store = SqlLoanStore(db)
        eligibility = EligibilityService(ledger_store, loan_store, config)
        return cls(
            savings=SavingsLedger(ledger_store, clock, config),
            eligibility=eligibility,
            loans=LoanService(loan_store, eligibility, clock, config),
            payments=PaymentProcessor(loan_store, clock, config),
        )
