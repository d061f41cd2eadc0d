"""Savings ledger endpoints - deposits, withdrawals, monthly fines, history"""

import logging
from fastapi import APIRouter, Depends, Query, Request

from fondo_ledger.api.dependencies import get_engine, get_request_id, to_http_exception
from fondo_ledger.api.v1.schemas import (
    AccountSchema,
    DepositRequest,
    HistoryResponse,
    PostingResponse,
    TransactionSchema,
    WithdrawalRequest,
)
from fondo_ledger.domain.exceptions import DomainException
from fondo_ledger.domain.models import PostingResult, SavingsAccount
from fondo_ledger.services.engine import LedgerEngine

router = APIRouter()


def _posting_response(result: PostingResult) -> PostingResponse:
    return PostingResponse(
        transaction=TransactionSchema.model_validate(result.transaction),
        account=AccountSchema.model_validate(result.account),
        new_balance=result.new_balance,
    )


def _account_response(account: SavingsAccount) -> PostingResponse:
    return PostingResponse(account=AccountSchema.model_validate(account), new_balance=account.balance)


@router.post("/savings/{account_id}/deposits", response_model=PostingResponse, status_code=201)
def create_deposit(
    account_id: str,
    request_body: DepositRequest,
    request: Request,
    engine: LedgerEngine = Depends(get_engine),
):
    """Credit a contribution; the account is created on first deposit"""
    try:
        result = engine.savings.deposit(
            account_id,
            request_body.amount,
            request_body.concept,
            created_by=request_body.created_by,
            receipt_ref=request_body.receipt_ref,
        )
    except DomainException as e:
        logging.warning(f"Deposit rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
    return _posting_response(result)


@router.post("/savings/{account_id}/withdrawals", response_model=PostingResponse, status_code=201)
def create_withdrawal(
    account_id: str,
    request_body: WithdrawalRequest,
    request: Request,
    engine: LedgerEngine = Depends(get_engine),
):
    """Debit amount plus the withdrawal fee"""
    try:
        result = engine.savings.withdraw(
            account_id, request_body.amount, request_body.concept, approver_id=request_body.approver_id
        )
    except DomainException as e:
        logging.warning(f"Withdrawal rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
    return _posting_response(result)


@router.post("/savings/{account_id}/fines", response_model=PostingResponse)
def apply_monthly_fine(account_id: str, request: Request, engine: LedgerEngine = Depends(get_engine)):
    """
    Close the contribution month for an account.

    Invoked once per account per month by the external scheduler.
    """
    try:
        result = engine.savings.apply_monthly_fine(account_id)
        if result is None:
            return _account_response(engine.savings.get_account(account_id))
    except DomainException as e:
        logging.warning(f"Monthly close failed: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
    return _posting_response(result)


@router.get("/savings/{account_id}", response_model=AccountSchema)
def get_account(account_id: str, engine: LedgerEngine = Depends(get_engine)):
    try:
        return AccountSchema.model_validate(engine.savings.get_account(account_id))
    except DomainException as e:
        raise to_http_exception(e)


@router.get("/savings/{account_id}/transactions", response_model=HistoryResponse)
def get_history(
    account_id: str,
    limit: int = Query(50, ge=1, le=500),
    engine: LedgerEngine = Depends(get_engine),
):
    """Postings, most recent first"""
    transactions = engine.savings.history(account_id, limit)
    return HistoryResponse(
        account_id=account_id,
        transactions=[TransactionSchema.model_validate(t) for t in transactions],
    )
