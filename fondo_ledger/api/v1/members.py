"""Member read endpoints - eligibility verdict and loan statistics"""

from typing import List

from fastapi import APIRouter, Depends

from fondo_ledger.api.dependencies import get_engine
from fondo_ledger.api.v1.schemas import EligibilityResponse, LoanSchema, LoanStatsResponse
from fondo_ledger.services.engine import LedgerEngine

router = APIRouter()


@router.get("/members/{member_id}/eligibility", response_model=EligibilityResponse)
def get_eligibility(member_id: str, engine: LedgerEngine = Depends(get_engine)):
    """Every failed rule is listed, not just the first"""
    return EligibilityResponse.model_validate(engine.eligibility.check_eligibility(member_id))


@router.get("/members/{member_id}/loan-stats", response_model=LoanStatsResponse)
def get_loan_stats(member_id: str, engine: LedgerEngine = Depends(get_engine)):
    return LoanStatsResponse.model_validate(engine.eligibility.get_stats(member_id))


@router.get("/members/{member_id}/loans", response_model=List[LoanSchema])
def list_member_loans(member_id: str, engine: LedgerEngine = Depends(get_engine)):
    return [LoanSchema.model_validate(loan) for loan in engine.loans.list_member_loans(member_id)]
