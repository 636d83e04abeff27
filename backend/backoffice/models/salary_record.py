# backend/backoffice/models/salary_record.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from backoffice.core.errors import ImmutableRecordError
from backoffice.db.base import Base


class SalaryRecord(Base):
    """
    One employee's pay for one calendar month. Immutable once committed.

    The role figures are copied at computation time so later role edits do
    not rewrite history. At most one row per (employee, period): the unique
    constraint is what makes concurrent runs safe, not the pre-check.
    """

    __tablename__ = "salary_records"
    __table_args__ = (
        UniqueConstraint(
            "employee_id", "period_year", "period_month",
            name="uq_salary_records_employee_period",
        ),
        Index("ix_salary_records_period", "period_year", "period_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)

    # Rate snapshot
    role_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    role_name: Mapped[str] = mapped_column(String(100), nullable=False)
    base_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    commission_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)

    commissionable_sales: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    total_salary: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    currency: Mapped[str] = mapped_column(String(10), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )

    @property
    def period_label(self) -> str:
        return f"{self.period_year:04d}-{self.period_month:02d}"


@event.listens_for(SalaryRecord, "before_update")
def _reject_salary_update(mapper, connection, target: SalaryRecord) -> None:
    raise ImmutableRecordError(f"salary record {target.id} is immutable")


@event.listens_for(SalaryRecord, "before_delete")
def _reject_salary_delete(mapper, connection, target: SalaryRecord) -> None:
    raise ImmutableRecordError(f"salary record {target.id} cannot be deleted")
