# backend/backoffice/models/sale.py
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from backoffice.db.base import Base

SALE_STATUS_COMPLETED = "COMPLETED"
SALE_STATUS_CANCELLED = "CANCELLED"


class Sale(Base):
    """
    A point-of-sale transaction, written by the sales module.

    Read-only input for payroll: the owning employee (`employee_id`) earns
    commission on `sub_total`. Tax is never commissionable.
    """

    __tablename__ = "sales"
    __table_args__ = (
        Index("ix_sales_employee_occurred", "employee_id", "occurred_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)

    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("employees.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # COMPLETED | CANCELLED
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SALE_STATUS_COMPLETED)

    sub_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    tax: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))
    total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0.00"))

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    items: Mapped[list["SaleItem"]] = relationship(
        back_populates="sale",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def recalculate_totals(self) -> None:
        # sub_total = sum(items), total = sub_total + tax
        self.sub_total = sum((item.sub_total for item in self.items), Decimal("0.00"))
        self.total = self.sub_total + (self.tax or Decimal("0.00"))


class SaleItem(Base):
    __tablename__ = "sale_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    sale_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Catalog items live in the inventory module; keep a loose reference + name.
    item_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)

    qty: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    sub_total: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    sale: Mapped[Sale] = relationship(back_populates="items")
