# backend/backoffice/payroll/routine.py
"""
Monthly salary routine.

    Start -> for each active employee:
                 gate -> resolve rate + read sales -> compute -> commit
                 (or skip: already paid, or fail: reason recorded)
          -> summarize -> RunReport

Each employee runs in its own session and transaction; one employee's
failure never blocks another's pay. Safe to re-run for the same period.
"""
from __future__ import annotations

import asyncio
import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.core.config import Settings, settings as default_settings
from backoffice.core.errors import (
    AlreadyGenerated,
    ConstraintViolation,
    EmployeeEnumerationFailed,
    InvalidRoleRate,
    PersistenceFailure,
    RoleNotFound,
)
from backoffice.notifications.queue import NotificationQueue
from backoffice.payroll.commit import SalaryCommitter
from backoffice.payroll.computation import compute_salary
from backoffice.payroll.directory import EmployeeDirectory, EmployeeRef
from backoffice.payroll.ledger_reader import CommissionLedgerReader
from backoffice.payroll.period import PayPeriod, utcnow
from backoffice.payroll.period_gate import PeriodGate
from backoffice.payroll.rate_resolver import RateResolver

logger = logging.getLogger(__name__)


class OutcomeStatus(str, enum.Enum):
    PAID = "PAID"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class EmployeeOutcome:
    employee_id: uuid.UUID
    employee_code: str
    status: OutcomeStatus
    reason: Optional[str] = None
    salary_record_id: Optional[uuid.UUID] = None
    total_salary: Optional[Decimal] = None
    notified: Optional[bool] = None


@dataclass
class RunReport:
    period: PayPeriod
    started_at: datetime
    finished_at: Optional[datetime] = None
    outcomes: list[EmployeeOutcome] = field(default_factory=list)

    def _with(self, status: OutcomeStatus) -> list[EmployeeOutcome]:
        return [o for o in self.outcomes if o.status is status]

    @property
    def paid(self) -> int:
        return len(self._with(OutcomeStatus.PAID))

    @property
    def skipped(self) -> int:
        return len(self._with(OutcomeStatus.SKIPPED))

    @property
    def failed(self) -> int:
        return len(self._with(OutcomeStatus.FAILED))

    @property
    def failures(self) -> list[EmployeeOutcome]:
        return self._with(OutcomeStatus.FAILED)

    @property
    def unnotified(self) -> list[EmployeeOutcome]:
        return [o for o in self.outcomes if o.status is OutcomeStatus.PAID and o.notified is False]


class PayrollRoutine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        directory: EmployeeDirectory,
        reader: CommissionLedgerReader,
        resolver: RateResolver,
        gate: PeriodGate,
        committer: SalaryCommitter,
        tz: tzinfo = timezone.utc,
        concurrency: int = 4,
        commit_retries: int = 3,
        retry_backoff_seconds: float = 0.2,
    ):
        self.session_factory = session_factory
        self.directory = directory
        self.reader = reader
        self.resolver = resolver
        self.gate = gate
        self.committer = committer
        self.tz = tz
        self.concurrency = max(1, concurrency)
        self.commit_retries = max(1, commit_retries)
        self.retry_backoff_seconds = retry_backoff_seconds

    def default_period(self, now: Optional[datetime] = None) -> PayPeriod:
        # Policy: pay the calendar month that just ended.
        return PayPeriod.previous(now or utcnow(), self.tz)

    async def run(self, period: Optional[PayPeriod] = None, *, now: Optional[datetime] = None) -> RunReport:
        period = period or self.default_period(now)
        report = RunReport(period=period, started_at=utcnow())
        logger.info("Start generating employee salaries for %s", period.label)

        try:
            async with self.session_factory() as db:
                employees = await self.directory.list_active(db)
        except SQLAlchemyError as exc:
            logger.error("Could not enumerate employees for %s: %s", period.label, exc)
            raise EmployeeEnumerationFailed(f"could not list active employees: {exc}") from exc

        semaphore = asyncio.Semaphore(self.concurrency)

        async def _bounded(employee: EmployeeRef) -> EmployeeOutcome:
            async with semaphore:
                return await self._process_employee(employee, period)

        report.outcomes = list(await asyncio.gather(*(_bounded(e) for e in employees)))
        report.finished_at = utcnow()

        logger.info(
            "Salary run %s done: paid=%d skipped=%d failed=%d",
            period.label,
            report.paid,
            report.skipped,
            report.failed,
        )
        return report

    async def _process_employee(self, employee: EmployeeRef, period: PayPeriod) -> EmployeeOutcome:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._pay(employee, period)
            except AlreadyGenerated:
                return EmployeeOutcome(employee.id, employee.code, OutcomeStatus.SKIPPED, reason="already generated")
            except (RoleNotFound, InvalidRoleRate, ConstraintViolation) as exc:
                logger.warning("Salary for %s not generated: %s", employee.code, exc)
                return EmployeeOutcome(employee.id, employee.code, OutcomeStatus.FAILED, reason=str(exc))
            except (PersistenceFailure, SQLAlchemyError) as exc:
                if attempt < self.commit_retries:
                    logger.warning(
                        "Salary for %s attempt %d/%d failed, retrying: %s",
                        employee.code,
                        attempt,
                        self.commit_retries,
                        exc,
                    )
                    await asyncio.sleep(self.retry_backoff_seconds * attempt)
                    continue
                logger.error("Salary for %s failed after %d attempts: %s", employee.code, attempt, exc)
                return EmployeeOutcome(employee.id, employee.code, OutcomeStatus.FAILED, reason=str(exc))
            except Exception as exc:
                # Isolation: an unexpected bug for one employee is reported, not fatal.
                logger.exception("Unexpected error generating salary for %s", employee.code)
                return EmployeeOutcome(
                    employee.id,
                    employee.code,
                    OutcomeStatus.FAILED,
                    reason=f"{type(exc).__name__}: {exc}",
                )

    async def _pay(self, employee: EmployeeRef, period: PayPeriod) -> EmployeeOutcome:
        async with self.session_factory() as db:
            await self.gate.ensure_clear(db, employee.id, period)

            rate = await self.resolver.resolve(db, employee.id)
            sales = await self.reader.read(db, employee.id, period)
            computation = compute_salary(rate.base_salary, sales.total, rate.commission_percentage)

            result = await self.committer.commit(db, employee, period, rate, sales, computation)

        return EmployeeOutcome(
            employee.id,
            employee.code,
            OutcomeStatus.PAID,
            salary_record_id=result.record.id,
            total_salary=result.record.total_salary,
            notified=result.notified,
        )


def build_payroll_routine(
    session_factory: async_sessionmaker[AsyncSession],
    notifier: NotificationQueue,
    config: Settings = default_settings,
) -> PayrollRoutine:
    """Wire the routine from settings. Used by the API dependency and the CLI."""
    tz = config.payroll_zone
    gate = PeriodGate()
    return PayrollRoutine(
        session_factory,
        directory=EmployeeDirectory(),
        reader=CommissionLedgerReader(tz=tz),
        resolver=RateResolver(),
        gate=gate,
        committer=SalaryCommitter(gate, notifier, currency=config.PAYROLL_CURRENCY),
        tz=tz,
        concurrency=config.PAYROLL_CONCURRENCY,
        commit_retries=config.PAYROLL_COMMIT_RETRIES,
        retry_backoff_seconds=config.PAYROLL_RETRY_BACKOFF_SECONDS,
    )
