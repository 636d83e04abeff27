# backend/backoffice/core/errors.py
from __future__ import annotations

import uuid


class PayrollError(Exception):
    """Base class for everything the payroll engine raises on purpose."""


class RoleNotFound(PayrollError):
    def __init__(self, employee_id: uuid.UUID, detail: str = "employee has no resolvable role"):
        super().__init__(f"{detail} (employee {employee_id})")
        self.employee_id = employee_id
        self.detail = detail


class InvalidRoleRate(PayrollError):
    """Role row exists but its base salary or commission percentage is out of bounds."""

    def __init__(self, role_id: uuid.UUID, detail: str):
        super().__init__(f"{detail} (role {role_id})")
        self.role_id = role_id
        self.detail = detail


class AlreadyGenerated(PayrollError):
    """
    A salary record already exists for (employee, period).
    Not an error for the run: the driver reports it as a skip.
    """

    def __init__(self, employee_id: uuid.UUID, period_label: str):
        super().__init__(f"salary for employee {employee_id} in {period_label} already generated")
        self.employee_id = employee_id
        self.period_label = period_label


class PersistenceFailure(PayrollError):
    """Storage error while committing one employee. Retryable for that employee."""


class NotificationFailure(PayrollError):
    """Queueing or delivering a salary statement failed. Never undoes a commit."""


class EmployeeEnumerationFailed(PayrollError):
    """The active employee set could not be read. The only run-aborting failure."""


class ImmutableRecordError(PayrollError):
    """Raised when something tries to update or delete a committed payroll row."""


class ConstraintViolation(PayrollError):
    """
    Commit hit a database constraint other than the (employee, period) one,
    e.g. a sale already commissioned under another salary record. Retrying
    cannot succeed; the employee fails for this run.
    """
