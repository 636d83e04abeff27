# backoffice/api/v1/payroll.py
from __future__ import annotations

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.api.deps.payroll import get_notification_queue, get_payroll_routine
from backoffice.core.errors import EmployeeEnumerationFailed, NotificationFailure
from backoffice.crud.payroll import (
    count_commission_entries,
    count_salary_records,
    list_commission_entries,
    list_entries_for_salary,
    list_salary_records,
)
from backoffice.db.session import get_db
from backoffice.models.employee import Employee
from backoffice.models.salary_record import SalaryRecord
from backoffice.notifications.queue import InMemoryNotificationQueue
from backoffice.notifications.salary_report import SalaryNotification
from backoffice.payroll.directory import EmployeeRef
from backoffice.payroll.period import PayPeriod
from backoffice.payroll.routine import PayrollRoutine
from backoffice.schemas.payroll import (
    CommissionEntriesPageOut,
    CommissionLedgerEntryOut,
    PayrollRunRequest,
    RunReportOut,
    SalaryPageOut,
    SalaryRecordDetailOut,
    SalaryRecordOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payroll", tags=["payroll"])


def _parse_period(value: Optional[str]) -> Optional[PayPeriod]:
    if value is None:
        return None
    try:
        return PayPeriod.parse(value)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


# =========================================================
# RUN (on-demand trigger; same contract as the monthly job)
# =========================================================
@router.post("/runs", response_model=RunReportOut)
async def run_payroll(
    payload: Optional[PayrollRunRequest] = Body(default=None),
    routine: PayrollRoutine = Depends(get_payroll_routine),
):
    """
    Generate salaries for a period (default: the month just completed).
    Re-running is safe: already paid employees come back as SKIPPED.
    """
    period = _parse_period(payload.period if payload else None)
    try:
        report = await routine.run(period)
    except EmployeeEnumerationFailed as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    return RunReportOut.from_report(report)


# =========================================================
# SALARY RECORDS (read-only)
# =========================================================
@router.get("/salaries", response_model=SalaryPageOut)
async def list_salaries(
    employee_id: Optional[UUID] = None,
    period: Optional[str] = Query(None, description="YYYY-MM"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    p = _parse_period(period)
    total = await count_salary_records(db, employee_id, p)
    rows = await list_salary_records(db, employee_id, p, limit=limit, offset=offset)
    return SalaryPageOut(
        items=[SalaryRecordOut.model_validate(r) for r in rows],
        limit=limit,
        offset=offset,
        total=total,
    )


@router.get("/salaries/{salary_id}", response_model=SalaryRecordDetailOut)
async def get_salary(salary_id: UUID, db: AsyncSession = Depends(get_db)):
    record = await db.get(SalaryRecord, salary_id)
    if not record:
        raise HTTPException(status_code=404, detail="Salary record not found")

    entries = await list_entries_for_salary(db, record.id)
    base = SalaryRecordOut.model_validate(record)
    return SalaryRecordDetailOut.model_validate(
        {
            **base.model_dump(),
            "commission_entries": [CommissionLedgerEntryOut.model_validate(e) for e in entries],
        }
    )


@router.post("/salaries/{salary_id}/notify", status_code=status.HTTP_202_ACCEPTED)
async def resend_salary_statement(
    salary_id: UUID,
    db: AsyncSession = Depends(get_db),
    queue: InMemoryNotificationQueue = Depends(get_notification_queue),
):
    """Re-queue the statement of an already committed salary. Money is untouched."""
    record = await db.get(SalaryRecord, salary_id)
    if not record:
        raise HTTPException(status_code=404, detail="Salary record not found")

    employee = await db.get(Employee, record.employee_id)
    if employee is None:
        raise HTTPException(status_code=404, detail="Employee not found")
    if not employee.email:
        raise HTTPException(status_code=409, detail="Employee has no email address")

    ref = EmployeeRef(id=employee.id, code=employee.code, name=employee.name, email=employee.email)
    try:
        queue.enqueue(SalaryNotification.from_record(record, ref))
    except NotificationFailure as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    logger.info("Salary statement %s re-queued", record.id)
    return {"status": "queued", "salary_id": str(record.id)}


# =========================================================
# COMMISSION LEDGER (read-only)
# =========================================================
@router.get("/commission-entries", response_model=CommissionEntriesPageOut)
async def list_commission_ledger(
    employee_id: Optional[UUID] = None,
    period: Optional[str] = Query(None, description="YYYY-MM"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    p = _parse_period(period)
    total = await count_commission_entries(db, employee_id, p)
    rows = await list_commission_entries(db, employee_id, p, limit=limit, offset=offset)
    return CommissionEntriesPageOut(
        items=[CommissionLedgerEntryOut.model_validate(e) for e in rows],
        limit=limit,
        offset=offset,
        total=total,
    )
