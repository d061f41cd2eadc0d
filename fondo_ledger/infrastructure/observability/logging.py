"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from fondo_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_posting(account_id: str, transaction_type: str, amount: int, balance: int, transaction_id: str) -> None:
    """Log a ledger posting with the balance it produced"""
    logging.info(
        "Ledger posting appended",
        extra={
            "account_id": account_id,
            "step": "ledger_posting",
            "transaction_type": transaction_type,
            "amount": amount,
            "balance": balance,
            "transaction_id": transaction_id,
        },
    )


def log_loan_transition(loan_id: str, from_status: Optional[str], to_status: str, actor: Optional[str] = None) -> None:
    logging.info(
        "Loan status changed",
        extra={
            "loan_id": loan_id,
            "step": "loan_transition",
            "from_status": from_status,
            "to_status": to_status,
            "actor": actor,
        },
    )


def log_payment(
    loan_id: str,
    installment_number: int,
    amount_paid: int,
    status: str,
    late_days: int,
    late_fee: int,
) -> None:
    logging.info(
        "Installment payment recorded",
        extra={
            "loan_id": loan_id,
            "step": "payment_recorded",
            "installment_number": installment_number,
            "amount_paid": amount_paid,
            "installment_status": status,
            "late_days": late_days,
            "late_fee": late_fee,
        },
    )
