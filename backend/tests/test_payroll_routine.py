# tests/test_payroll_routine.py
from __future__ import annotations

import asyncio
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from backoffice.core.errors import EmployeeEnumerationFailed, NotificationFailure, PersistenceFailure
from backoffice.models.commission_ledger_entry import CommissionLedgerEntry
from backoffice.models.salary_record import SalaryRecord
from backoffice.models.sale import SALE_STATUS_CANCELLED
from backoffice.notifications.queue import InMemoryNotificationQueue
from backoffice.payroll.commit import SalaryCommitter
from backoffice.payroll.ledger_reader import CommissionLedgerReader
from backoffice.payroll.period import PayPeriod
from backoffice.payroll.period_gate import PeriodGate
from backoffice.payroll.routine import OutcomeStatus

from payroll_data import create_employee, create_role, create_sale, make_routine, utc

SEPT = PayPeriod(2026, 9)


async def salary_records(db, employee_id=None):
    stmt = select(SalaryRecord)
    if employee_id is not None:
        stmt = stmt.where(SalaryRecord.employee_id == employee_id)
    return (await db.execute(stmt)).scalars().all()


async def ledger_entries(db, employee_id):
    stmt = select(CommissionLedgerEntry).where(CommissionLedgerEntry.employee_id == employee_id)
    return (await db.execute(stmt)).scalars().all()


def outcome_for(report, employee):
    return next(o for o in report.outcomes if o.employee_id == employee.id)


class FailingNotifier:
    def __init__(self):
        self.calls = 0

    def enqueue(self, message) -> None:
        self.calls += 1
        raise NotificationFailure("mail relay unreachable")


class BrokenDirectory:
    async def list_active(self, db):
        raise OperationalError("SELECT employees", {}, Exception("connection refused"))


@pytest.mark.asyncio
async def test_concrete_month_pays_base_plus_commission(routine, db, notification_queue):
    role = await create_role(db, base_salary="1500000", commission_percentage="1")
    emp = await create_employee(db, role)
    await create_sale(db, emp, "200000", utc(2026, 9, 3, 10))
    await create_sale(db, emp, "300000", utc(2026, 9, 21, 16), tax="33000")
    await db.commit()

    report = await routine.run(SEPT)

    assert (report.paid, report.skipped, report.failed) == (1, 0, 0)
    records = await salary_records(db, emp.id)
    assert len(records) == 1
    record = records[0]
    assert Decimal(record.commission_amount) == Decimal("5000.00")
    assert Decimal(record.total_salary) == Decimal("1505000.00")
    assert Decimal(record.commissionable_sales) == Decimal("500000.00")
    assert (record.period_year, record.period_month) == (2026, 9)
    assert record.currency == "IDR"

    entries = await ledger_entries(db, emp.id)
    assert len(entries) == 2
    assert sum(Decimal(e.commission_amount) for e in entries) == Decimal("5000.00")
    assert {e.salary_record_id for e in entries} == {record.id}

    # Statement queued only after the commit
    assert notification_queue.qsize() == 1
    message = notification_queue.get_nowait()
    assert message.salary_record_id == record.id
    assert message.total_salary == Decimal("1505000.00")
    assert outcome_for(report, emp).notified is True


@pytest.mark.asyncio
async def test_rerun_for_same_period_skips_everyone(routine, db):
    role = await create_role(db)
    e1 = await create_employee(db, role)
    e2 = await create_employee(db, role)
    await create_sale(db, e1, "100000", utc(2026, 9, 5))
    await db.commit()

    first = await routine.run(SEPT)
    second = await routine.run(SEPT)

    assert first.paid == 2
    assert (second.paid, second.skipped, second.failed) == (0, 2, 0)
    assert len(await salary_records(db)) == 2
    assert len(await ledger_entries(db, e1.id)) == 1
    assert {o.employee_id for o in second.outcomes} == {e1.id, e2.id}


@pytest.mark.asyncio
async def test_employee_without_sales_gets_base_salary(routine, db):
    role = await create_role(db, base_salary="2750000", commission_percentage="3")
    emp = await create_employee(db, role)
    await db.commit()

    report = await routine.run(SEPT)

    assert report.paid == 1
    record = (await salary_records(db, emp.id))[0]
    assert Decimal(record.commission_amount) == Decimal("0.00")
    assert Decimal(record.total_salary) == Decimal("2750000.00")
    assert await ledger_entries(db, emp.id) == []


@pytest.mark.asyncio
async def test_missing_role_fails_only_that_employee(routine, db):
    role = await create_role(db)
    paid = await create_employee(db, role)
    orphan = await create_employee(db, None)
    retired = await create_role(db, is_active=False)
    on_retired_role = await create_employee(db, retired)
    await db.commit()

    report = await routine.run(SEPT)

    assert (report.paid, report.skipped, report.failed) == (1, 0, 2)
    assert outcome_for(report, paid).status is OutcomeStatus.PAID
    assert outcome_for(report, orphan).status is OutcomeStatus.FAILED
    assert "no resolvable role" in outcome_for(report, orphan).reason
    assert "inactive" in outcome_for(report, on_retired_role).reason
    assert {f.employee_id for f in report.failures} == {orphan.id, on_retired_role.id}
    assert len(await salary_records(db)) == 1


@pytest.mark.asyncio
async def test_inactive_employees_are_not_paid(routine, db):
    role = await create_role(db)
    await create_employee(db, role, is_active=False)
    await db.commit()

    report = await routine.run(SEPT)

    assert report.outcomes == []
    assert await salary_records(db) == []


@pytest.mark.asyncio
async def test_sale_on_period_end_belongs_to_next_month(routine, db):
    role = await create_role(db, base_salary="1000000", commission_percentage="10")
    emp = await create_employee(db, role)
    await create_sale(db, emp, "1000", utc(2026, 9, 1, 0, 0, 0))
    await create_sale(db, emp, "2000", utc(2026, 9, 30, 23, 59, 59))
    await create_sale(db, emp, "40000", utc(2026, 10, 1, 0, 0, 0))
    await create_sale(db, emp, "80000", utc(2026, 8, 31, 23, 59, 59))
    await db.commit()

    await routine.run(SEPT)
    await routine.run(PayPeriod(2026, 10))

    by_month = {r.period_month: r for r in await salary_records(db, emp.id)}
    assert Decimal(by_month[9].commissionable_sales) == Decimal("3000.00")
    assert Decimal(by_month[9].commission_amount) == Decimal("300.00")
    assert Decimal(by_month[10].commissionable_sales) == Decimal("40000.00")

    # every sale is commissioned at most once
    sale_ids = [e.sale_id for e in await ledger_entries(db, emp.id)]
    assert len(sale_ids) == len(set(sale_ids)) == 3


@pytest.mark.asyncio
async def test_month_is_taken_in_payroll_timezone(sessionmaker, notification_queue, db):
    jakarta = ZoneInfo("Asia/Jakarta")
    routine = make_routine(sessionmaker, notification_queue, reader=CommissionLedgerReader(tz=jakarta), tz=jakarta)

    role = await create_role(db, commission_percentage="10")
    emp = await create_employee(db, role)
    # 1 October 01:00 local time
    await create_sale(db, emp, "5000", utc(2026, 9, 30, 18, 0))
    # 1 September 00:30 local time
    await create_sale(db, emp, "7000", utc(2026, 8, 31, 17, 30))
    await db.commit()

    await routine.run(SEPT)

    record = (await salary_records(db, emp.id))[0]
    assert Decimal(record.commissionable_sales) == Decimal("7000.00")


@pytest.mark.asyncio
async def test_cancelled_sales_earn_no_commission(routine, db):
    role = await create_role(db, commission_percentage="5")
    emp = await create_employee(db, role)
    await create_sale(db, emp, "100000", utc(2026, 9, 10))
    await create_sale(db, emp, "900000", utc(2026, 9, 11), status=SALE_STATUS_CANCELLED)
    await db.commit()

    await routine.run(SEPT)

    record = (await salary_records(db, emp.id))[0]
    assert Decimal(record.commissionable_sales) == Decimal("100000.00")
    assert Decimal(record.commission_amount) == Decimal("5000.00")
    assert len(await ledger_entries(db, emp.id)) == 1


@pytest.mark.asyncio
async def test_sales_of_other_employees_are_not_attributed(routine, db):
    role = await create_role(db, commission_percentage="2")
    seller = await create_employee(db, role)
    colleague = await create_employee(db, role)
    await create_sale(db, seller, "250000", utc(2026, 9, 15))
    await db.commit()

    await routine.run(SEPT)

    colleague_record = (await salary_records(db, colleague.id))[0]
    assert Decimal(colleague_record.commission_amount) == Decimal("0.00")
    seller_record = (await salary_records(db, seller.id))[0]
    assert Decimal(seller_record.commission_amount) == Decimal("5000.00")


@pytest.mark.asyncio
async def test_ledger_reconciles_when_each_sale_rounds(routine, db):
    role = await create_role(db, base_salary="1000000", commission_percentage="1.5")
    emp = await create_employee(db, role)
    for day, amount in enumerate(["0.33", "0.33", "0.33", "1.49", "0.50", "12345.67"], start=1):
        await create_sale(db, emp, amount, utc(2026, 9, day))
    await db.commit()

    await routine.run(SEPT)

    record = (await salary_records(db, emp.id))[0]
    entries = await ledger_entries(db, emp.id)
    assert len(entries) == 6
    assert sum(Decimal(e.commission_amount) for e in entries) == Decimal(record.commission_amount)
    assert Decimal(record.base_salary) + Decimal(record.commission_amount) == Decimal(record.total_salary)


@pytest.mark.asyncio
async def test_concurrent_runs_pay_each_employee_once(sessionmaker, db):
    role = await create_role(db)
    employees = [await create_employee(db, role) for _ in range(3)]
    for emp in employees:
        await create_sale(db, emp, "100000", utc(2026, 9, 12))
    await db.commit()

    queue = InMemoryNotificationQueue()
    run_a = make_routine(sessionmaker, queue)
    run_b = make_routine(sessionmaker, queue)

    report_a, report_b = await asyncio.gather(run_a.run(SEPT), run_b.run(SEPT))

    assert report_a.failed == report_b.failed == 0
    assert report_a.paid + report_b.paid == 3
    assert report_a.skipped + report_b.skipped == 3
    for emp in employees:
        assert len(await salary_records(db, emp.id)) == 1
        assert len(await ledger_entries(db, emp.id)) == 1
    assert queue.qsize() == 3


@pytest.mark.asyncio
async def test_notification_failure_keeps_committed_salary(sessionmaker, db):
    notifier = FailingNotifier()
    routine = make_routine(sessionmaker, notifier)

    role = await create_role(db)
    emp = await create_employee(db, role)
    await db.commit()

    report = await routine.run(SEPT)

    assert notifier.calls == 1
    assert report.paid == 1
    assert outcome_for(report, emp).notified is False
    assert [o.employee_id for o in report.unnotified] == [emp.id]
    assert len(await salary_records(db, emp.id)) == 1


@pytest.mark.asyncio
async def test_full_notification_queue_does_not_block_pay(sessionmaker, db):
    queue = InMemoryNotificationQueue(maxsize=1)
    routine = make_routine(sessionmaker, queue)

    role = await create_role(db)
    for _ in range(3):
        await create_employee(db, role)
    await db.commit()

    report = await routine.run(SEPT)

    assert report.paid == 3
    assert len(report.unnotified) == 2
    assert queue.qsize() == 1
    assert len(await salary_records(db)) == 3


@pytest.mark.asyncio
async def test_employee_without_email_is_paid_and_reported_unnotified(routine, db, notification_queue):
    role = await create_role(db)
    emp = await create_employee(db, role, email=None)
    await db.commit()

    report = await routine.run(SEPT)

    assert report.paid == 1
    assert outcome_for(report, emp).notified is False
    assert notification_queue.empty()


@pytest.mark.asyncio
async def test_salary_keeps_rate_used_at_computation_time(routine, db):
    role = await create_role(db, base_salary="1500000", commission_percentage="1", name="Cashier")
    emp = await create_employee(db, role)
    await create_sale(db, emp, "500000", utc(2026, 9, 9))
    await db.commit()

    await routine.run(SEPT)

    role.base_salary = Decimal("9000000")
    role.commission_percentage = Decimal("50")
    await db.commit()

    report = await routine.run(SEPT)
    assert report.skipped == 1

    record = (await salary_records(db, emp.id))[0]
    assert record.role_name == "Cashier"
    assert Decimal(record.base_salary) == Decimal("1500000.00")
    assert Decimal(record.commission_percentage) == Decimal("1.00")
    assert Decimal(record.total_salary) == Decimal("1505000.00")


@pytest.mark.asyncio
async def test_default_period_is_previous_month(routine, db):
    role = await create_role(db)
    emp = await create_employee(db, role)
    await db.commit()

    report = await routine.run(now=utc(2027, 1, 1, 1, 0))

    assert report.period == PayPeriod(2026, 12)
    record = (await salary_records(db, emp.id))[0]
    assert (record.period_year, record.period_month) == (2026, 12)


@pytest.mark.asyncio
async def test_enumeration_failure_aborts_the_run(sessionmaker, notification_queue):
    routine = make_routine(sessionmaker, notification_queue, directory=BrokenDirectory())

    with pytest.raises(EmployeeEnumerationFailed):
        await routine.run(SEPT)


class FlakyCommitter(SalaryCommitter):
    """Fails the first `failures` commits with a storage error, then commits for real."""

    def __init__(self, *args, failures: int = 1, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures
        self.calls = 0

    async def commit(self, db, employee, period, rate, sales, computation):
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise OperationalError("INSERT INTO salary_records", {}, Exception("database is locked"))
        return await super().commit(db, employee, period, rate, sales, computation)


class BrokenCommitterFor(SalaryCommitter):
    """Always fails for one employee; everyone else commits normally."""

    def __init__(self, *args, broken_employee_id, **kwargs):
        super().__init__(*args, **kwargs)
        self.broken_employee_id = broken_employee_id
        self.broken_calls = 0

    async def commit(self, db, employee, period, rate, sales, computation):
        if employee.id == self.broken_employee_id:
            self.broken_calls += 1
            raise PersistenceFailure(f"storage error committing salary for {employee.id}: disk full")
        return await super().commit(db, employee, period, rate, sales, computation)


class CountingCommitter(SalaryCommitter):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = 0

    async def commit(self, db, employee, period, rate, sales, computation):
        self.calls += 1
        return await super().commit(db, employee, period, rate, sales, computation)


@pytest.mark.asyncio
async def test_transient_storage_error_is_retried(sessionmaker, notification_queue, db):
    gate = PeriodGate()
    committer = FlakyCommitter(gate, notification_queue, currency="IDR", failures=1)
    routine = make_routine(sessionmaker, notification_queue, gate=gate, committer=committer, commit_retries=3)

    role = await create_role(db)
    emp = await create_employee(db, role)
    await create_sale(db, emp, "500000", utc(2026, 9, 8))
    await db.commit()

    report = await routine.run(SEPT)

    assert committer.calls == 2
    assert (report.paid, report.failed) == (1, 0)
    assert outcome_for(report, emp).status is OutcomeStatus.PAID
    assert len(await salary_records(db, emp.id)) == 1
    assert len(await ledger_entries(db, emp.id)) == 1


@pytest.mark.asyncio
async def test_persistent_storage_error_fails_only_that_employee(sessionmaker, notification_queue, db):
    role = await create_role(db)
    stuck = await create_employee(db, role)
    fine = await create_employee(db, role)
    await db.commit()

    gate = PeriodGate()
    committer = BrokenCommitterFor(gate, notification_queue, currency="IDR", broken_employee_id=stuck.id)
    routine = make_routine(sessionmaker, notification_queue, gate=gate, committer=committer, commit_retries=3)

    report = await routine.run(SEPT)

    assert committer.broken_calls == 3
    assert (report.paid, report.skipped, report.failed) == (1, 0, 1)
    assert outcome_for(report, fine).status is OutcomeStatus.PAID
    failed = outcome_for(report, stuck)
    assert failed.status is OutcomeStatus.FAILED
    assert "disk full" in failed.reason
    assert await salary_records(db, stuck.id) == []


@pytest.mark.asyncio
async def test_sale_commissioned_elsewhere_fails_without_retry(sessionmaker, notification_queue, db):
    role = await create_role(db)
    first_owner = await create_employee(db, role)
    new_owner = await create_employee(db, role, is_active=False)
    sale = await create_sale(db, first_owner, "100000", utc(2026, 9, 14))
    await db.commit()

    await make_routine(sessionmaker, notification_queue).run(SEPT)

    # the sale is later reassigned; its commission is already on record
    sale.employee_id = new_owner.id
    new_owner.is_active = True
    await db.commit()

    gate = PeriodGate()
    committer = CountingCommitter(gate, notification_queue, currency="IDR")
    routine = make_routine(sessionmaker, notification_queue, gate=gate, committer=committer, commit_retries=3)

    report = await routine.run(SEPT)

    assert outcome_for(report, first_owner).status is OutcomeStatus.SKIPPED
    outcome = outcome_for(report, new_owner)
    assert outcome.status is OutcomeStatus.FAILED
    assert "constraint violated" in outcome.reason
    assert committer.calls == 1
    assert await salary_records(db, new_owner.id) == []
    assert [e.employee_id for e in await ledger_entries(db, first_owner.id)] == [first_owner.id]
