# backend/backoffice/models/commission_ledger_entry.py
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, UniqueConstraint, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from backoffice.core.errors import ImmutableRecordError
from backoffice.db.base import Base


class CommissionLedgerEntry(Base):
    """
    Canonical, immutable commission ledger.

    One row per commissioned sale, written in the same transaction as the
    salary record it belongs to. For any (employee, period) the entries sum
    to that salary record's commission_amount.
    """

    __tablename__ = "commission_ledger_entries"
    __table_args__ = (
        # A sale is commissioned exactly once.
        UniqueConstraint("sale_id", name="uq_commission_ledger_entries_sale"),
        Index("ix_commission_ledger_employee_period", "employee_id", "period_year", "period_month"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="RESTRICT"),
        nullable=False,
    )
    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sales.id", ondelete="RESTRICT"),
        nullable=False,
    )
    salary_record_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("salary_records.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    period_month: Mapped[int] = mapped_column(Integer, nullable=False)

    # Economic meaning:
    # - sales_amount: the sale's sub_total (tax excluded)
    # - commission_amount: this sale's share of the period commission
    sales_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
    )


@event.listens_for(CommissionLedgerEntry, "before_update")
def _reject_entry_update(mapper, connection, target: CommissionLedgerEntry) -> None:
    raise ImmutableRecordError(f"commission ledger entry {target.id} is immutable")


@event.listens_for(CommissionLedgerEntry, "before_delete")
def _reject_entry_delete(mapper, connection, target: CommissionLedgerEntry) -> None:
    raise ImmutableRecordError(f"commission ledger entry {target.id} cannot be deleted")
