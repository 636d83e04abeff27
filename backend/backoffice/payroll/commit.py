# backend/backoffice/payroll/commit.py
from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.errors import AlreadyGenerated, ConstraintViolation, NotificationFailure, PersistenceFailure
from backoffice.models.commission_ledger_entry import CommissionLedgerEntry
from backoffice.models.salary_record import SalaryRecord
from backoffice.notifications.queue import NotificationQueue
from backoffice.notifications.salary_report import SalaryNotification
from backoffice.payroll.computation import ZERO, SalaryComputation, allocate_commission
from backoffice.payroll.directory import EmployeeRef
from backoffice.payroll.ledger_reader import CommissionableSales
from backoffice.payroll.period import PayPeriod
from backoffice.payroll.period_gate import PeriodGate
from backoffice.payroll.rate_resolver import RoleRate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    record: SalaryRecord
    entries: list[CommissionLedgerEntry]
    notified: bool


class SalaryCommitter:
    def __init__(self, gate: PeriodGate, notifier: NotificationQueue, currency: str):
        self.gate = gate
        self.notifier = notifier
        self.currency = currency

    def _build_entries(
        self,
        record: SalaryRecord,
        sales: CommissionableSales,
        computation: SalaryComputation,
    ) -> list[CommissionLedgerEntry]:
        shares = allocate_commission((line.sales_amount for line in sales.lines), computation.commission_percentage)
        if sum(shares, ZERO) != computation.commission_amount:
            # Only possible with a base salary carrying sub-cent digits.
            raise PersistenceFailure(
                f"commission split for employee {record.employee_id} does not reconcile "
                f"({sum(shares)} != {computation.commission_amount})"
            )
        return [
            CommissionLedgerEntry(
                employee_id=record.employee_id,
                sale_id=line.sale_id,
                salary_record_id=record.id,
                period_year=record.period_year,
                period_month=record.period_month,
                sales_amount=line.sales_amount,
                commission_amount=share,
            )
            for line, share in zip(sales.lines, shares)
        ]

    async def commit(
        self,
        db: AsyncSession,
        employee: EmployeeRef,
        period: PayPeriod,
        rate: RoleRate,
        sales: CommissionableSales,
        computation: SalaryComputation,
    ) -> CommitResult:
        """
        One transaction: salary record first (so the unique constraint trips
        before anything else is written), then the ledger entries.

        The notification goes out only after the commit succeeded, and its
        failure is reported, never raised.
        """
        record = SalaryRecord(
            employee_id=employee.id,
            period_year=period.year,
            period_month=period.month,
            role_id=rate.role_id,
            role_name=rate.role_name,
            base_salary=computation.base_salary,
            commission_percentage=computation.commission_percentage,
            commissionable_sales=computation.commissionable_sales,
            commission_amount=computation.commission_amount,
            total_salary=computation.total_salary,
            currency=self.currency,
        )

        try:
            db.add(record)
            await db.flush()

            entries = self._build_entries(record, sales, computation)
            db.add_all(entries)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            # Lost a race against another run, or a genuine constraint problem.
            if await self.gate.is_generated(db, employee.id, period):
                raise AlreadyGenerated(employee.id, period.label) from exc
            raise ConstraintViolation(
                f"constraint violated committing salary for employee {employee.id} in {period.label}: {exc.orig}"
            ) from exc
        except PersistenceFailure:
            await db.rollback()
            raise
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceFailure(f"storage error committing salary for {employee.id}: {exc}") from exc

        notified = self.notify(record, employee)
        return CommitResult(record=record, entries=entries, notified=notified)

    def notify(self, record: SalaryRecord, employee: EmployeeRef) -> bool:
        if not employee.email:
            logger.warning(
                "Salary %s committed; employee %s has no email, statement not queued",
                record.id,
                employee.code,
            )
            return False
        try:
            self.notifier.enqueue(SalaryNotification.from_record(record, employee))
        except (NotificationFailure, ValueError) as exc:
            logger.warning("Salary %s committed but notification not queued: %s", record.id, exc)
            return False
        return True
