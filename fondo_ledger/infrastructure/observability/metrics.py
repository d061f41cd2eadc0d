"""Prometheus metrics for ledger postings, loan lifecycle, payments and write conflicts"""

from prometheus_client import Counter, Histogram

# Savings ledger
posting_counter = Counter(
    "fondo_ledger_postings_total",
    "Ledger postings appended",
    ["type"],  # deposit | withdrawal | fine | interest
)

posting_amount_counter = Counter(
    "fondo_ledger_posted_amount_total",
    "Sum of posted amounts in COP",
    ["type"],
)

# Loans
loan_transition_counter = Counter(
    "fondo_loan_transitions_total",
    "Loan status transitions",
    ["status"],  # target status
)

payment_counter = Counter(
    "fondo_payments_total",
    "Installment payments recorded",
    ["status"],  # paid | partially_paid | overdue
)

late_fee_counter = Counter(
    "fondo_late_fees_total",
    "Late fees charged in COP",
)

# Optimistic concurrency
concurrency_retry_counter = Counter(
    "fondo_concurrency_retries_total",
    "Atomic units retried after a stale write",
    ["operation"],
)

concurrency_conflict_counter = Counter(
    "fondo_concurrency_conflicts_total",
    "Atomic units that exhausted their retries",
    ["operation"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_posting(transaction_type: str, amount: int) -> None:
    posting_counter.labels(type=transaction_type).inc()
    posting_amount_counter.labels(type=transaction_type).inc(amount)


def record_transition(status: str) -> None:
    loan_transition_counter.labels(status=status).inc()


def record_payment(status: str, late_fee: int) -> None:
    """Record a payment and any late fee it added"""
    payment_counter.labels(status=status).inc()
    if late_fee > 0:
        late_fee_counter.inc(late_fee)
