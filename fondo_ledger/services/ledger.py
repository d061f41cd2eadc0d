"""Savings ledger - append-only postings with derived account aggregates"""

import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Dict, List, Optional

from fondo_ledger.config import Settings, settings as default_settings
from fondo_ledger.domain.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    InsufficientBalanceError,
    InvalidAmountError,
    WithdrawalLimitReachedError,
)
from fondo_ledger.domain.models import (
    AccountStatus,
    PostingResult,
    SavingsAccount,
    SavingsStats,
    SavingsTransaction,
    TransactionType,
)
from fondo_ledger.domain.money import percentage_of
from fondo_ledger.infrastructure.observability.logging import log_posting
from fondo_ledger.infrastructure.observability.metrics import record_posting
from fondo_ledger.services.atomic import run_atomic
from fondo_ledger.services.ports import LedgerStore
from fondo_ledger.utils.clock import Clock, SystemClock
from fondo_ledger.utils.date_utils import months_between

SYSTEM_ACTOR = "system"


class SavingsLedger:
    """
    Sole writer of savings accounts.

    Each mutation reads the account, computes the next aggregates and the
    posting that explains them, and hands both to the store in one write.
    """

    def __init__(self, store: LedgerStore, clock: Optional[Clock] = None, config: Optional[Settings] = None):
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

    def _new_account(self, account_id: str, now: datetime) -> SavingsAccount:
        return SavingsAccount(
            account_id=account_id,
            owner_id=account_id,
            status=AccountStatus.ACTIVE,
            min_monthly_contribution=self.config.min_monthly_contribution,
            max_withdrawals_per_month=self.config.max_withdrawals_per_month,
            created_at=now,
            updated_at=now,
        )

    def _require_account(self, account_id: str) -> SavingsAccount:
        account = self.store.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    @staticmethod
    def _require_active(account: SavingsAccount) -> None:
        if account.status != AccountStatus.ACTIVE:
            raise AccountInactiveError(account.account_id, account.status.value)

    def _post(
        self,
        account: SavingsAccount,
        transaction_type: TransactionType,
        amount: int,
        new_balance: int,
        concept: str,
        created_by: str,
        now: datetime,
        metadata: Optional[Dict[str, Any]] = None,
        **changes: Any,
    ) -> PostingResult:
        """Build the posting plus the updated account and write them together"""
        sequence = account.posting_count + 1
        posting = SavingsTransaction(
            transaction_id=str(uuid.uuid4()),
            account_id=account.account_id,
            sequence=sequence,
            type=transaction_type,
            amount=amount,
            balance=new_balance,
            concept=concept,
            created_at=now,
            created_by=created_by,
            metadata={k: v for k, v in (metadata or {}).items() if v is not None},
        )
        updated = replace(
            account,
            balance=new_balance,
            posting_count=sequence,
            last_transaction_id=posting.transaction_id,
            updated_at=now,
            **changes,
        )
        saved = self.store.save_account(updated, posting)
        return PostingResult(transaction=posting, account=saved)

    @staticmethod
    def _report(result: PostingResult) -> PostingResult:
        txn = result.transaction
        record_posting(txn.type.value, txn.amount)
        log_posting(txn.account_id, txn.type.value, txn.amount, txn.balance, txn.transaction_id)
        return result

    def deposit(
        self,
        account_id: str,
        amount: int,
        concept: str,
        created_by: Optional[str] = None,
        receipt_ref: Optional[str] = None,
    ) -> PostingResult:
        """
        Credit a contribution, creating the account on first deposit.

        Raises:
            InvalidAmountError: amount below the configured minimum deposit
            AccountInactiveError: account exists but is inactive or frozen
        """
        if amount < self.config.min_deposit_amount:
            raise InvalidAmountError(f"Minimum deposit is {self.config.min_deposit_amount} COP, got {amount}")

        def operation() -> PostingResult:
            now = self.clock.now()
            account = self.store.get_account(account_id) or self._new_account(account_id, now)
            self._require_active(account)
            return self._post(
                account,
                TransactionType.DEPOSIT,
                amount,
                account.balance + amount,
                concept,
                created_by or account.owner_id,
                now,
                metadata={"receipt_ref": receipt_ref},
                total_deposits=account.total_deposits + amount,
                monthly_contribution=account.monthly_contribution + amount,
                last_contribution_at=now,
            )

        return self._report(self._atomic(operation, "deposit"))

    def withdraw(
        self,
        account_id: str,
        amount: int,
        concept: str,
        approver_id: Optional[str] = None,
    ) -> PostingResult:
        """
        Debit amount plus the withdrawal fee.

        The posting records the requested amount; the fee goes to metadata and
        both are taken from the balance.

        Raises:
            InvalidAmountError: amount below the configured minimum withdrawal
            AccountNotFoundError: no savings account
            AccountInactiveError: account not active
            WithdrawalLimitReachedError: monthly cap reached
            InsufficientBalanceError: balance < amount + fee
        """
        if amount < self.config.min_withdrawal_amount:
            raise InvalidAmountError(
                f"Minimum withdrawal is {self.config.min_withdrawal_amount} COP, got {amount}"
            )
        fee = percentage_of(amount, self.config.withdrawal_fee_percent)
        debit = amount + fee

        def operation() -> PostingResult:
            account = self._require_account(account_id)
            self._require_active(account)
            if account.withdrawals_this_month >= account.max_withdrawals_per_month:
                raise WithdrawalLimitReachedError(account.max_withdrawals_per_month)
            if account.balance < debit:
                raise InsufficientBalanceError(account.balance, debit)

            now = self.clock.now()
            return self._post(
                account,
                TransactionType.WITHDRAWAL,
                amount,
                account.balance - debit,
                concept,
                account.owner_id,
                now,
                metadata={"fee": fee, "approved_by": approver_id or account.owner_id},
                total_withdrawals=account.total_withdrawals + debit,
                withdrawals_this_month=account.withdrawals_this_month + 1,
                last_withdrawal_at=now,
            )

        return self._report(self._atomic(operation, "withdrawal"))

    def apply_monthly_fine(self, account_id: str) -> Optional[PostingResult]:
        """
        Close the contribution month for one account.

        Below the minimum contribution a fine is charged and the streak resets;
        otherwise the streak grows. The month's contribution counter resets
        either way. The fine posting is capped at the balance; whatever the
        balance cannot cover stays in fines_pending only. The external
        scheduler must call this exactly once per account per month.

        Returns:
            PostingResult when a fine posting was appended, else None
        """

        def operation() -> Optional[PostingResult]:
            account = self._require_account(account_id)
            now = self.clock.now()

            if account.monthly_contribution >= account.min_monthly_contribution:
                self.store.save_account(
                    replace(
                        account,
                        contribution_streak=account.contribution_streak + 1,
                        monthly_contribution=0,
                        updated_at=now,
                    )
                )
                return None

            fine = self.config.monthly_fine_amount
            charged = min(fine, account.balance)
            changes = dict(
                total_fines=account.total_fines + fine,
                fines_pending=account.fines_pending + fine,
                contribution_streak=0,
                monthly_contribution=0,
            )
            if charged == 0:
                self.store.save_account(replace(account, updated_at=now, **changes))
                return None

            return self._post(
                account,
                TransactionType.FINE,
                charged,
                account.balance - charged,
                "Monthly minimum contribution not met",
                SYSTEM_ACTOR,
                now,
                metadata={
                    "fine_reason": (
                        f"Monthly contribution {account.monthly_contribution} COP "
                        f"(minimum {account.min_monthly_contribution} COP)"
                    ),
                    "uncovered": fine - charged if charged < fine else None,
                },
                **changes,
            )

        result = self._atomic(operation, "monthly_fine")
        return self._report(result) if result else None

    def post_interest(self, account_id: str, amount: int, concept: str = "Interest earned") -> PostingResult:
        """Credit interest earned on savings"""
        if amount <= 0:
            raise InvalidAmountError(f"Interest amount must be positive, got {amount}")

        def operation() -> PostingResult:
            account = self._require_account(account_id)
            self._require_active(account)
            return self._post(
                account,
                TransactionType.INTEREST,
                amount,
                account.balance + amount,
                concept,
                SYSTEM_ACTOR,
                self.clock.now(),
            )

        return self._report(self._atomic(operation, "interest"))

    def reset_monthly_withdrawals(self, account_id: str) -> SavingsAccount:
        """Start a new withdrawal month; no posting"""

        def operation() -> SavingsAccount:
            account = self._require_account(account_id)
            return self.store.save_account(replace(account, withdrawals_this_month=0, updated_at=self.clock.now()))

        return self._atomic(operation, "reset_withdrawals")

    def set_status(self, account_id: str, status: AccountStatus) -> SavingsAccount:
        """Change lifecycle status; accounts are never deleted"""

        def operation() -> SavingsAccount:
            account = self._require_account(account_id)
            if account.status == status:
                return account
            return self.store.save_account(replace(account, status=status, updated_at=self.clock.now()))

        return self._atomic(operation, "account_status")

    def deactivate(self, account_id: str) -> SavingsAccount:
        return self.set_status(account_id, AccountStatus.INACTIVE)

    def get_account(self, account_id: str) -> SavingsAccount:
        return self._require_account(account_id)

    def history(self, account_id: str, limit: int = 50) -> List[SavingsTransaction]:
        """Postings for an account, most recent first"""
        return self.store.list_transactions(account_id, limit)

    def get_stats(self, account_id: str) -> SavingsStats:
        account = self._require_account(account_id)
        now = self.clock.now()
        last_activity = max(
            (d for d in (account.last_contribution_at, account.last_withdrawal_at) if d is not None),
            key=lambda d: d.replace(tzinfo=None),
            default=None,
        )
        return SavingsStats(
            balance=account.balance,
            total_deposited=account.total_deposits,
            total_withdrawn=account.total_withdrawals,
            contribution_streak=account.contribution_streak,
            total_fines=account.total_fines,
            fines_pending=account.fines_pending,
            account_age_months=months_between(account.created_at, now) if account.created_at else 0,
            last_activity_at=last_activity,
        )
