"""Loan endpoints - submission, approval, rejection, schedule, payments"""

import logging
from fastapi import APIRouter, Depends, Request

from fondo_ledger.api.dependencies import get_engine, get_request_id, to_http_exception
from fondo_ledger.api.v1.schemas import (
    ApproveRequest,
    InstallmentSchema,
    LoanRequest,
    LoanSchema,
    PaymentRequest,
    RejectRequest,
    ScheduleResponse,
)
from fondo_ledger.domain.exceptions import DomainException
from fondo_ledger.domain.models import CoSigner, DisbursementInfo
from fondo_ledger.services.engine import LedgerEngine

router = APIRouter()


@router.post("/loans", response_model=LoanSchema, status_code=201)
def submit_loan(request_body: LoanRequest, request: Request, engine: LedgerEngine = Depends(get_engine)):
    """
    Submit a loan application.

    Returns 422 with every violated rule or every eligibility reason.
    """
    co_signers = [
        CoSigner(member_id=c.member_id, name=c.name, email=c.email, phone=c.phone)
        for c in request_body.co_signers
    ]
    try:
        loan = engine.loans.submit(
            request_body.borrower_id,
            request_body.amount,
            request_body.term_months,
            request_body.purpose,
            co_signers,
            borrower_name=request_body.borrower_name,
        )
    except DomainException as e:
        logging.warning(f"Loan application rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
    return LoanSchema.model_validate(loan)


@router.post("/loans/{loan_id}/approve", response_model=LoanSchema)
def approve_loan(
    loan_id: str, request_body: ApproveRequest, request: Request, engine: LedgerEngine = Depends(get_engine)
):
    """Activate a pending loan and persist its amortization schedule"""
    disbursement = DisbursementInfo(
        method=request_body.disbursement_method,
        account=request_body.disbursement_account,
        notes=request_body.notes,
    )
    try:
        loan = engine.loans.approve(loan_id, request_body.approver_id, disbursement)
    except DomainException as e:
        logging.warning(f"Loan approval failed: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
    return LoanSchema.model_validate(loan)


@router.post("/loans/{loan_id}/reject", response_model=LoanSchema)
def reject_loan(
    loan_id: str, request_body: RejectRequest, request: Request, engine: LedgerEngine = Depends(get_engine)
):
    try:
        loan = engine.loans.reject(loan_id, request_body.reason, rejected_by=request_body.rejected_by)
    except DomainException as e:
        logging.warning(f"Loan rejection failed: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
    return LoanSchema.model_validate(loan)


@router.get("/loans/{loan_id}", response_model=LoanSchema)
def get_loan(loan_id: str, engine: LedgerEngine = Depends(get_engine)):
    try:
        return LoanSchema.model_validate(engine.loans.get_loan(loan_id))
    except DomainException as e:
        raise to_http_exception(e)


@router.get("/loans/{loan_id}/schedule", response_model=ScheduleResponse)
def get_schedule(loan_id: str, engine: LedgerEngine = Depends(get_engine)):
    """Persisted schedule, or a projection for loans not yet approved"""
    try:
        return ScheduleResponse.model_validate(engine.loans.get_schedule(loan_id))
    except DomainException as e:
        raise to_http_exception(e)


@router.post("/loans/{loan_id}/payments", response_model=InstallmentSchema, status_code=201)
def record_payment(
    loan_id: str, request_body: PaymentRequest, request: Request, engine: LedgerEngine = Depends(get_engine)
):
    try:
        payment = engine.payments.record_payment(
            loan_id,
            request_body.installment_number,
            request_body.amount,
            request_body.method,
            receipt_ref=request_body.receipt_ref,
            notes=request_body.notes,
        )
    except DomainException as e:
        logging.warning(f"Payment rejected: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
    return InstallmentSchema.model_validate(payment)


@router.post("/loans/{loan_id}/delinquency", response_model=LoanSchema)
def refresh_delinquency(loan_id: str, request: Request, engine: LedgerEngine = Depends(get_engine)):
    """Hook for the external overdue sweep"""
    try:
        loan = engine.payments.refresh_delinquency(loan_id)
    except DomainException as e:
        logging.warning(f"Delinquency refresh failed: {e}", extra={"request_id": get_request_id(request)})
        raise to_http_exception(e)
    return LoanSchema.model_validate(loan)
