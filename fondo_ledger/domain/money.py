"""Integer currency arithmetic and rate application

Amounts are integers in the smallest currency unit. Intermediate values use
Decimal so that rounding happens exactly once per monetary result.
"""

from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Union

from fondo_ledger.domain.exceptions import InvalidRateError, InvalidTermError

Number = Union[int, float, Decimal]

PRECISION = 28


def to_decimal(value: Number) -> Decimal:
    # str() keeps floats like 2.0 or 0.1 from dragging binary noise along
    return value if isinstance(value, Decimal) else Decimal(str(value))


def round_half_up(value: Number) -> int:
    """Round to the nearest integer unit, halves away from zero"""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def rate_fraction(rate_percent: Number) -> Decimal:
    """2.0 -> Decimal('0.02')"""
    return to_decimal(rate_percent) / Decimal(100)


def percentage_of(amount: int, percent: Number) -> int:
    """Fee-style percentage of an amount, rounded half-up"""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return round_half_up(Decimal(amount) * rate_fraction(percent))


def monthly_payment(principal: int, monthly_rate_percent: Number, term_months: int) -> int:
    """
    Level monthly payment from the annuity formula.

        M = P * r(1+r)^n / ((1+r)^n - 1)

    Args:
        principal: Loan amount in integer units
        monthly_rate_percent: Monthly rate as a percentage (2.0 means 2%)
        term_months: Number of monthly payments, >= 1

    Raises:
        InvalidRateError: rate < 0
        InvalidTermError: term < 1

    Example:
        monthly_payment(1_000_000, 2.0, 12) == 94_560
    """
    if to_decimal(monthly_rate_percent) < 0:
        raise InvalidRateError(monthly_rate_percent)
    if term_months < 1:
        raise InvalidTermError(term_months)

    with localcontext() as ctx:
        ctx.prec = PRECISION
        rate = rate_fraction(monthly_rate_percent)
        if rate == 0:
            return round_half_up(Decimal(principal) / Decimal(term_months))

        growth = (1 + rate) ** term_months
        payment = Decimal(principal) * rate * growth / (growth - 1)
        return round_half_up(payment)


def interest_for(balance: int, monthly_rate_percent: Number) -> int:
    """One month of interest on an outstanding balance"""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return round_half_up(Decimal(balance) * rate_fraction(monthly_rate_percent))
