# backend/backoffice/payroll/rate_resolver.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.errors import InvalidRoleRate, RoleNotFound
from backoffice.models.employee import Employee
from backoffice.models.role import Role
from backoffice.payroll.computation import HUNDRED, ZERO, round_money


@dataclass(frozen=True)
class RoleRate:
    role_id: uuid.UUID
    role_name: str
    base_salary: Decimal
    commission_percentage: Decimal


class RateResolver:
    async def resolve(self, db: AsyncSession, employee_id: uuid.UUID) -> RoleRate:
        """
        Current role of the employee, read at computation time.
        Raises RoleNotFound / InvalidRoleRate; both fail only this employee.
        """
        stmt = (
            select(Role)
            .join(Employee, Employee.role_id == Role.id)
            .where(Employee.id == employee_id)
        )
        role = (await db.execute(stmt)).scalar_one_or_none()
        if role is None:
            raise RoleNotFound(employee_id)
        if role.is_active is not True:
            raise RoleNotFound(employee_id, detail=f"role {role.name!r} is inactive")

        base = Decimal(role.base_salary)
        pct = Decimal(role.commission_percentage)
        if base < ZERO or base != round_money(base):
            raise InvalidRoleRate(role.id, f"base salary {base} is not a non-negative whole-cent amount")
        if not ZERO <= pct <= HUNDRED:
            raise InvalidRoleRate(role.id, f"commission percentage {pct} outside 0..100")

        return RoleRate(role_id=role.id, role_name=role.name, base_salary=base, commission_percentage=pct)
