# backend/backoffice/payroll/computation.py
"""
Salary arithmetic. Pure functions, no I/O.

Money is `Decimal` end to end. The one rounding rule is ROUND_HALF_UP to the
currency minor unit (0.01), applied once to the final total. The commission
is then `total - base`, so the salary record and the commission ledger can
never drift apart by a rounding cent.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_money(value: Decimal | int | str) -> Decimal:
    """Coerce an exact value to Decimal. Floats are refused outright."""
    if isinstance(value, float):
        raise TypeError("money must not be a binary float; pass Decimal, int or str")
    return value if isinstance(value, Decimal) else Decimal(value)


def round_money(value: Decimal) -> Decimal:
    return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class SalaryComputation:
    base_salary: Decimal
    commissionable_sales: Decimal
    commission_percentage: Decimal
    commission_amount: Decimal
    total_salary: Decimal


def _validate(base_salary: Decimal, sales_total: Decimal, commission_percentage: Decimal) -> None:
    if base_salary < 0:
        raise ValueError("base salary must be non-negative")
    if sales_total < 0:
        raise ValueError("commissionable sales total must be non-negative")
    if not ZERO <= commission_percentage <= HUNDRED:
        raise ValueError("commission percentage must be within 0..100")


def compute_salary(
    base_salary: Decimal,
    commissionable_sales_total: Decimal,
    commission_percentage: Decimal,
) -> SalaryComputation:
    """
    commission = sales * percentage / 100
    total      = round_half_up(base + commission)
    """
    base = to_money(base_salary)
    sales = to_money(commissionable_sales_total)
    pct = to_money(commission_percentage)
    _validate(base, sales, pct)

    raw_commission = sales * pct / HUNDRED
    total = round_money(base + raw_commission)
    commission = total - base

    return SalaryComputation(
        base_salary=base,
        commissionable_sales=sales,
        commission_percentage=pct,
        commission_amount=commission,
        total_salary=total,
    )


def allocate_commission(amounts: Iterable[Decimal], commission_percentage: Decimal) -> list[Decimal]:
    """
    Split the period commission over the contributing sales.

    Each share is the difference of rounded running totals, so the shares
    telescope to round(sum(amounts) * pct / 100), which is exactly the
    commission compute_salary() produces for a base with whole cents.
    """
    pct = to_money(commission_percentage)
    shares: list[Decimal] = []
    running = ZERO
    allocated = ZERO
    for amount in amounts:
        running += to_money(amount) * pct / HUNDRED
        rounded = round_money(running)
        shares.append(rounded - allocated)
        allocated = rounded
    return shares
