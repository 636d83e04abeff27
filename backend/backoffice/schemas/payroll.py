# backoffice/schemas/payroll.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from backoffice.payroll.period import PayPeriod
from backoffice.payroll.routine import RunReport


class PayrollRunRequest(BaseModel):
    """Empty body = the month just completed."""

    period: Optional[str] = Field(default=None, pattern=r"^\d{4}-\d{2}$", examples=["2026-09"])

    @field_validator("period")
    @classmethod
    def _valid_month(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            PayPeriod.parse(v)
        return v


class EmployeeOutcomeOut(BaseModel):
    employee_id: uuid.UUID
    employee_code: str
    status: str
    reason: Optional[str] = None
    salary_record_id: Optional[uuid.UUID] = None
    total_salary: Optional[Decimal] = None
    notified: Optional[bool] = None


class RunReportOut(BaseModel):
    period: str
    started_at: datetime
    finished_at: Optional[datetime] = None

    paid: int
    skipped: int
    failed: int

    failures: List[EmployeeOutcomeOut] = Field(default_factory=list)
    unnotified: List[uuid.UUID] = Field(default_factory=list)
    outcomes: List[EmployeeOutcomeOut] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: RunReport) -> "RunReportOut":
        def _out(o) -> EmployeeOutcomeOut:
            return EmployeeOutcomeOut(
                employee_id=o.employee_id,
                employee_code=o.employee_code,
                status=o.status.value,
                reason=o.reason,
                salary_record_id=o.salary_record_id,
                total_salary=o.total_salary,
                notified=o.notified,
            )

        return cls(
            period=report.period.label,
            started_at=report.started_at,
            finished_at=report.finished_at,
            paid=report.paid,
            skipped=report.skipped,
            failed=report.failed,
            failures=[_out(o) for o in report.failures],
            unnotified=[o.employee_id for o in report.unnotified],
            outcomes=[_out(o) for o in report.outcomes],
        )


class CommissionLedgerEntryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    sale_id: uuid.UUID
    salary_record_id: uuid.UUID
    period_year: int
    period_month: int
    sales_amount: Decimal
    commission_amount: Decimal
    created_at: datetime


class SalaryRecordOut(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: uuid.UUID
    employee_id: uuid.UUID
    period: str = Field(validation_alias="period_label")

    role_id: Optional[uuid.UUID] = None
    role_name: str
    base_salary: Decimal
    commission_percentage: Decimal

    commissionable_sales: Decimal
    commission_amount: Decimal
    total_salary: Decimal
    currency: str

    created_at: datetime


class SalaryRecordDetailOut(SalaryRecordOut):
    commission_entries: List[CommissionLedgerEntryOut] = Field(default_factory=list)


class SalaryPageOut(BaseModel):
    items: List[SalaryRecordOut]
    limit: int
    offset: int
    total: int


class CommissionEntriesPageOut(BaseModel):
    items: List[CommissionLedgerEntryOut]
    limit: int
    offset: int
    total: int
