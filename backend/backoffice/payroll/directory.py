# backend/backoffice/payroll/directory.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.employee import Employee


@dataclass(frozen=True)
class EmployeeRef:
    """Plain snapshot so per-employee tasks never share ORM objects across sessions."""

    id: uuid.UUID
    code: str
    name: str
    email: Optional[str]


class EmployeeDirectory:
    async def list_active(self, db: AsyncSession) -> list[EmployeeRef]:
        stmt = (
            select(Employee.id, Employee.code, Employee.name, Employee.email)
            .where(Employee.is_active.is_(True))
            .order_by(Employee.code.asc())
        )
        rows = (await db.execute(stmt)).all()
        return [EmployeeRef(id=r.id, code=r.code, name=r.name, email=r.email) for r in rows]
