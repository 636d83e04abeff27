# backend/backoffice/payroll/period_gate.py
from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.errors import AlreadyGenerated
from backoffice.models.salary_record import SalaryRecord
from backoffice.payroll.period import PayPeriod


class PeriodGate:
    """
    Pre-check for "already paid this period".

    Only an optimisation: two runs can both pass the gate. The unique
    constraint on salary_records decides who wins at commit time.
    """

    async def is_generated(self, db: AsyncSession, employee_id: uuid.UUID, period: PayPeriod) -> bool:
        stmt = (
            select(SalaryRecord.id)
            .where(SalaryRecord.employee_id == employee_id)
            .where(SalaryRecord.period_year == period.year)
            .where(SalaryRecord.period_month == period.month)
        )
        return (await db.execute(stmt)).first() is not None

    async def ensure_clear(self, db: AsyncSession, employee_id: uuid.UUID, period: PayPeriod) -> None:
        if await self.is_generated(db, employee_id, period):
            raise AlreadyGenerated(employee_id, period.label)
