# tests/test_salary_computation.py
from __future__ import annotations

from decimal import Decimal

import pytest

from backoffice.payroll.computation import allocate_commission, compute_salary, round_money, to_money


def D(value: str) -> Decimal:
    return Decimal(value)


def test_base_plus_one_percent_commission():
    result = compute_salary(D("1500000"), D("500000"), D("1"))

    assert result.commission_amount == D("5000.00")
    assert result.total_salary == D("1505000.00")
    assert result.base_salary + result.commission_amount == result.total_salary


def test_zero_sales_pays_base_only():
    result = compute_salary(D("1500000.00"), D("0"), D("2.5"))

    assert result.commission_amount == D("0.00")
    assert result.total_salary == D("1500000.00")


def test_total_rounds_half_up_once():
    # 0.5 * 1% = 0.005 -> 0.01 (banker's rounding would give 0.00)
    result = compute_salary(D("100.00"), D("0.50"), D("1"))

    assert result.total_salary == D("100.01")
    assert result.commission_amount == D("0.01")


def test_fractional_percentage():
    result = compute_salary(D("2000000"), D("123456.78"), D("2.75"))

    # 123456.78 * 0.0275 = 3395.06145
    assert result.total_salary == D("2003395.06")
    assert result.commission_amount == D("3395.06")


def test_hundred_percent_commission():
    result = compute_salary(D("0"), D("999.99"), D("100"))
    assert result.total_salary == D("999.99")


@pytest.mark.parametrize(
    "base,sales,pct",
    [
        ("-1", "0", "1"),
        ("100", "-0.01", "1"),
        ("100", "10", "-1"),
        ("100", "10", "100.01"),
    ],
)
def test_rejects_out_of_range_inputs(base, sales, pct):
    with pytest.raises(ValueError):
        compute_salary(D(base), D(sales), D(pct))


def test_rejects_binary_floats():
    with pytest.raises(TypeError):
        compute_salary(1500000.0, D("0"), D("1"))
    with pytest.raises(TypeError):
        to_money(0.1)


def test_round_money_half_up():
    assert round_money(D("2.345")) == D("2.35")
    assert round_money(D("2.344999")) == D("2.34")


def test_allocation_matches_commission_for_concrete_sales():
    shares = allocate_commission([D("200000"), D("300000")], D("1"))
    assert shares == [D("2000.00"), D("3000.00")]
    assert sum(shares) == compute_salary(D("1500000"), D("500000"), D("1")).commission_amount


def test_allocation_never_drifts_from_commission():
    # Each sale alone rounds to 0.00 or 0.01; the shares still add up.
    amounts = [D("0.33")] * 7 + [D("1.49"), D("0.50")]
    pct = D("1.5")

    shares = allocate_commission(amounts, pct)
    result = compute_salary(D("750000.00"), sum(amounts), pct)

    assert len(shares) == len(amounts)
    assert sum(shares) == result.commission_amount
    assert all(share >= 0 for share in shares)


def test_allocation_of_no_sales_is_empty():
    assert allocate_commission([], D("5")) == []
