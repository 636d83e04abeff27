# backend/backoffice/payroll/ledger_reader.py
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import timezone, tzinfo
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.sale import SALE_STATUS_COMPLETED, Sale
from backoffice.payroll.computation import ZERO
from backoffice.payroll.period import PayPeriod


@dataclass(frozen=True)
class SaleAmount:
    sale_id: uuid.UUID
    sales_amount: Decimal


@dataclass(frozen=True)
class CommissionableSales:
    employee_id: uuid.UUID
    period: PayPeriod
    lines: list[SaleAmount] = field(default_factory=list)

    @property
    def total(self) -> Decimal:
        return sum((line.sales_amount for line in self.lines), ZERO)


class CommissionLedgerReader:
    """
    Attributed sales of one employee inside one period.

    Attribution is by sale owner (Sale.employee_id). Only COMPLETED sales
    count; the amount is the sale sub_total, tax excluded.
    """

    def __init__(self, tz: tzinfo = timezone.utc):
        self.tz = tz

    async def read(self, db: AsyncSession, employee_id: uuid.UUID, period: PayPeriod) -> CommissionableSales:
        start, end = period.bounds(self.tz)
        stmt = (
            select(Sale.id, Sale.sub_total)
            .where(Sale.employee_id == employee_id)
            .where(Sale.status == SALE_STATUS_COMPLETED)
            .where(Sale.occurred_at >= start)
            .where(Sale.occurred_at < end)
            .order_by(Sale.occurred_at.asc(), Sale.id.asc())
        )
        rows = (await db.execute(stmt)).all()

        # Summed in Python: SQL SUM over NUMERIC comes back as float on SQLite.
        lines = [SaleAmount(sale_id=sale_id, sales_amount=Decimal(sub_total)) for sale_id, sub_total in rows]
        return CommissionableSales(employee_id=employee_id, period=period, lines=lines)
