"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from fondo_ledger.api.v1.schemas import ErrorResponse
from fondo_ledger.domain.exceptions import (
    ConcurrencyConflictError,
    DataIntegrityError,
    DomainException,
    EligibilityError,
    NotEligibleError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from fondo_ledger.infrastructure.database.session import get_db
from fondo_ledger.services.engine import LedgerEngine
from fondo_ledger.utils.clock import Clock, SystemClock

# Most specific first
ERROR_STATUS = (
    (ValidationError, 422, "validation"),
    (EligibilityError, 422, "eligibility"),
    (NotFoundError, 404, "not_found"),
    (StateConflictError, 409, "state_conflict"),
    (ConcurrencyConflictError, 503, "concurrency_conflict"),
    (DataIntegrityError, 500, "data_integrity"),
)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_clock() -> Clock:
    """Provide the business clock"""
    return SystemClock()


def get_engine(db: Session = Depends(get_db), clock: Clock = Depends(get_clock)) -> LedgerEngine:
    """Provide ledger services bound to the request's session"""
    return LedgerEngine.from_session(db, clock)


def to_http_exception(error: DomainException) -> HTTPException:
    """Map a domain error category to an HTTP status with a typed body"""
    details = getattr(error, "violations", None) or []
    if isinstance(error, NotEligibleError):
        details = error.reasons

    for error_type, status_code, category in ERROR_STATUS:
        if isinstance(error, error_type):
            body = ErrorResponse(category=category, message=str(error), details=details)
            return HTTPException(status_code=status_code, detail=body.model_dump())

    body = ErrorResponse(category="internal", message="Internal server error")
    return HTTPException(status_code=500, detail=body.model_dump())
