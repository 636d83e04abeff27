# backend/backoffice/notifications/salary_report.py
from __future__ import annotations

import html
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel

if TYPE_CHECKING:
    from backoffice.models.salary_record import SalaryRecord
    from backoffice.payroll.directory import EmployeeRef

SUBJECT = "Salary Report"

_CELL = 'style="border: 1px solid #ddd; padding: 8px;"'


class SalaryNotification(BaseModel):
    """
    What the payroll routine hands to the mailing side: a fully computed,
    already committed salary. Nothing here is recomputed downstream.
    """

    salary_record_id: uuid.UUID
    employee_id: uuid.UUID
    employee_name: str
    recipient: Optional[str] = None

    period: str
    base_salary: Decimal
    commission_amount: Decimal
    total_salary: Decimal
    currency: str

    # bumped by the dispatcher on every failed delivery
    attempts: int = 0

    @classmethod
    def from_record(cls, record: "SalaryRecord", employee: "EmployeeRef") -> "SalaryNotification":
        return cls(
            salary_record_id=record.id,
            employee_id=record.employee_id,
            employee_name=employee.name,
            recipient=employee.email,
            period=record.period_label,
            base_salary=record.base_salary,
            commission_amount=record.commission_amount,
            total_salary=record.total_salary,
            currency=record.currency,
        )


@dataclass(frozen=True)
class SalaryStatement:
    recipient: str
    subject: str
    text: str
    html: str


def _rows(n: SalaryNotification) -> list[tuple[str, Decimal]]:
    return [
        ("Basic Salary", n.base_salary),
        ("Commission Sales", n.commission_amount),
        ("Total Salary", n.total_salary),
    ]


def _fmt(amount: Decimal, currency: str) -> str:
    return f"{currency} {amount:,.2f}"


def render_salary_statement(n: SalaryNotification) -> SalaryStatement:
    if not n.recipient:
        raise ValueError(f"employee {n.employee_id} has no email address")

    text_lines = [
        f"Hello {n.employee_name},",
        "",
        f"Here are the details of your salary for {n.period}:",
        "",
    ]
    text_lines += [f"  {label:<18}{_fmt(amount, n.currency):>24}" for label, amount in _rows(n)]
    text_lines += ["", "Thank you for your dedication!"]

    table = ['<table style="width:100%; border-collapse: collapse;">']
    table.append(f"<thead><tr><th {_CELL}>Description</th><th {_CELL}>Amount</th></tr></thead>")
    table.append("<tbody>")
    for label, amount in _rows(n):
        table.append(f"<tr><td {_CELL}>{label}</td><td {_CELL}>{_fmt(amount, n.currency)}</td></tr>")
    table.append("</tbody></table>")

    body = (
        f"<p>Hello {html.escape(n.employee_name)},</p>"
        f"<p>Here are the details of your salary for {n.period}:</p>"
        + "".join(table)
        + "<p>Thank you for your dedication!</p>"
    )

    return SalaryStatement(
        recipient=n.recipient,
        subject=f"{SUBJECT} {n.period}",
        text="\n".join(text_lines),
        html=body,
    )
