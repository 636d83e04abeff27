# backoffice/crud/payroll.py
from __future__ import annotations

import uuid
from typing import Optional, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.commission_ledger_entry import CommissionLedgerEntry
from backoffice.models.salary_record import SalaryRecord
from backoffice.payroll.period import PayPeriod


def _salary_filters(stmt: Select, employee_id: Optional[uuid.UUID], period: Optional[PayPeriod]) -> Select:
    if employee_id is not None:
        stmt = stmt.where(SalaryRecord.employee_id == employee_id)
    if period is not None:
        stmt = stmt.where(SalaryRecord.period_year == period.year).where(SalaryRecord.period_month == period.month)
    return stmt


async def count_salary_records(
    db: AsyncSession,
    employee_id: Optional[uuid.UUID] = None,
    period: Optional[PayPeriod] = None,
) -> int:
    stmt = _salary_filters(select(func.count(SalaryRecord.id)), employee_id, period)
    res = await db.execute(stmt)
    return int(res.scalar() or 0)


async def list_salary_records(
    db: AsyncSession,
    employee_id: Optional[uuid.UUID] = None,
    period: Optional[PayPeriod] = None,
    limit: int = 20,
    offset: int = 0,
) -> Sequence[SalaryRecord]:
    """Newest period first, then by creation time."""
    stmt = (
        _salary_filters(select(SalaryRecord), employee_id, period)
        .order_by(
            SalaryRecord.period_year.desc(),
            SalaryRecord.period_month.desc(),
            SalaryRecord.created_at.desc(),
        )
        .limit(limit)
        .offset(offset)
    )
    return (await db.execute(stmt)).scalars().all()


def _entry_filters(stmt: Select, employee_id: Optional[uuid.UUID], period: Optional[PayPeriod]) -> Select:
    if employee_id is not None:
        stmt = stmt.where(CommissionLedgerEntry.employee_id == employee_id)
    if period is not None:
        stmt = stmt.where(CommissionLedgerEntry.period_year == period.year).where(
            CommissionLedgerEntry.period_month == period.month
        )
    return stmt


async def count_commission_entries(
    db: AsyncSession,
    employee_id: Optional[uuid.UUID] = None,
    period: Optional[PayPeriod] = None,
) -> int:
    stmt = _entry_filters(select(func.count(CommissionLedgerEntry.id)), employee_id, period)
    res = await db.execute(stmt)
    return int(res.scalar() or 0)


async def list_commission_entries(
    db: AsyncSession,
    employee_id: Optional[uuid.UUID] = None,
    period: Optional[PayPeriod] = None,
    limit: int = 50,
    offset: int = 0,
) -> Sequence[CommissionLedgerEntry]:
    stmt = (
        _entry_filters(select(CommissionLedgerEntry), employee_id, period)
        .order_by(
            CommissionLedgerEntry.period_year.desc(),
            CommissionLedgerEntry.period_month.desc(),
            CommissionLedgerEntry.created_at.asc(),
            CommissionLedgerEntry.id.asc(),
        )
        .limit(limit)
        .offset(offset)
    )
    return (await db.execute(stmt)).scalars().all()


async def list_entries_for_salary(db: AsyncSession, salary_record_id: uuid.UUID) -> Sequence[CommissionLedgerEntry]:
    stmt = (
        select(CommissionLedgerEntry)
        .where(CommissionLedgerEntry.salary_record_id == salary_record_id)
        .order_by(CommissionLedgerEntry.created_at.asc(), CommissionLedgerEntry.id.asc())
    )
    return (await db.execute(stmt)).scalars().all()
