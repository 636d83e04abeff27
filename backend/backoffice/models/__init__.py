# Import models here so Alembic can discover metadata.
from backoffice.models.role import Role  # noqa: F401
from backoffice.models.employee import Employee  # noqa: F401
from backoffice.models.sale import Sale, SaleItem  # noqa: F401

# Payroll output (written only by the payroll routine)
from backoffice.models.salary_record import SalaryRecord  # noqa: F401
from backoffice.models.commission_ledger_entry import CommissionLedgerEntry  # noqa: F401
