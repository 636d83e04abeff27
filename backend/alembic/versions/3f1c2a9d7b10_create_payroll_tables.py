"""create roles, employees, sales and payroll tables

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-05
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # -----------------------------------------------------
    # 1) Roles + employees (owned by the CRUD layer)
    # -----------------------------------------------------
    op.create_table(
        "roles",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("base_salary", sa.Numeric(14, 2), nullable=False),
        sa.Column("commission_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_roles_name"),
        sa.CheckConstraint("base_salary >= 0", name="ck_roles_base_salary_non_negative"),
        sa.CheckConstraint(
            "commission_percentage >= 0 AND commission_percentage <= 100",
            name="ck_roles_commission_percentage_bounds",
        ),
    )

    op.create_table(
        "employees",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone_no", sa.String(length=32), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column(
            "role_id",
            sa.Uuid(),
            sa.ForeignKey("roles.id", ondelete="SET NULL", name="fk_employees_role_id_roles"),
            nullable=True,
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("code", name="uq_employees_code"),
    )
    op.create_index("ix_employees_email", "employees", ["email"], unique=True)
    op.create_index("ix_employees_role_id", "employees", ["role_id"])

    # -----------------------------------------------------
    # 2) Sales (written by the sales module, read by payroll)
    # -----------------------------------------------------
    op.create_table(
        "sales",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column(
            "employee_id",
            sa.Uuid(),
            sa.ForeignKey("employees.id", ondelete="RESTRICT", name="fk_sales_employee_id_employees"),
            nullable=False,
        ),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="COMPLETED"),
        sa.Column("sub_total", sa.Numeric(14, 2), nullable=False, server_default="0.00"),
        sa.Column("tax", sa.Numeric(14, 2), nullable=False, server_default="0.00"),
        sa.Column("total", sa.Numeric(14, 2), nullable=False, server_default="0.00"),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("code", name="uq_sales_code"),
    )
    op.create_index("ix_sales_employee_occurred", "sales", ["employee_id", "occurred_at"])

    op.create_table(
        "sale_items",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "sale_id",
            sa.Uuid(),
            sa.ForeignKey("sales.id", ondelete="CASCADE", name="fk_sale_items_sale_id_sales"),
            nullable=False,
        ),
        sa.Column("item_id", sa.Uuid(), nullable=True),
        sa.Column("item_name", sa.String(length=255), nullable=False),
        sa.Column("qty", sa.Numeric(12, 3), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("sub_total", sa.Numeric(14, 2), nullable=False),
    )
    op.create_index("ix_sale_items_sale_id", "sale_items", ["sale_id"])

    # -----------------------------------------------------
    # 3) Salary records: one per (employee, month), immutable
    # -----------------------------------------------------
    op.create_table(
        "salary_records",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "employee_id",
            sa.Uuid(),
            sa.ForeignKey("employees.id", ondelete="RESTRICT", name="fk_salary_records_employee_id_employees"),
            nullable=False,
        ),
        sa.Column("period_year", sa.Integer(), nullable=False),
        sa.Column("period_month", sa.Integer(), nullable=False),
        sa.Column("role_id", sa.Uuid(), nullable=True),
        sa.Column("role_name", sa.String(length=100), nullable=False),
        sa.Column("base_salary", sa.Numeric(14, 2), nullable=False),
        sa.Column("commission_percentage", sa.Numeric(5, 2), nullable=False),
        sa.Column("commissionable_sales", sa.Numeric(14, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("total_salary", sa.Numeric(14, 2), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "employee_id", "period_year", "period_month",
            name="uq_salary_records_employee_period",
        ),
    )
    op.create_index("ix_salary_records_employee_id", "salary_records", ["employee_id"])
    op.create_index("ix_salary_records_period", "salary_records", ["period_year", "period_month"])

    # -----------------------------------------------------
    # 4) Commission ledger: one entry per commissioned sale
    # -----------------------------------------------------
    op.create_table(
        "commission_ledger_entries",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column(
            "employee_id",
            sa.Uuid(),
            sa.ForeignKey("employees.id", ondelete="RESTRICT", name="fk_commission_ledger_entries_employee_id_employees"),
            nullable=False,
        ),
        sa.Column(
            "sale_id",
            sa.Uuid(),
            sa.ForeignKey("sales.id", ondelete="RESTRICT", name="fk_commission_ledger_entries_sale_id_sales"),
            nullable=False,
        ),
        sa.Column(
            "salary_record_id",
            sa.Uuid(),
            sa.ForeignKey(
                "salary_records.id",
                ondelete="RESTRICT",
                name="fk_commission_ledger_entries_salary_record_id_salary_records",
            ),
            nullable=False,
        ),
        sa.Column("period_year", sa.Integer(), nullable=False),
        sa.Column("period_month", sa.Integer(), nullable=False),
        sa.Column("sales_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("commission_amount", sa.Numeric(14, 2), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("sale_id", name="uq_commission_ledger_entries_sale"),
    )
    op.create_index(
        "ix_commission_ledger_employee_period",
        "commission_ledger_entries",
        ["employee_id", "period_year", "period_month"],
    )
    op.create_index(
        "ix_commission_ledger_entries_salary_record_id",
        "commission_ledger_entries",
        ["salary_record_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_commission_ledger_entries_salary_record_id", table_name="commission_ledger_entries")
    op.drop_index("ix_commission_ledger_employee_period", table_name="commission_ledger_entries")
    op.drop_table("commission_ledger_entries")

    op.drop_index("ix_salary_records_period", table_name="salary_records")
    op.drop_index("ix_salary_records_employee_id", table_name="salary_records")
    op.drop_table("salary_records")

    op.drop_index("ix_sale_items_sale_id", table_name="sale_items")
    op.drop_table("sale_items")

    op.drop_index("ix_sales_employee_occurred", table_name="sales")
    op.drop_table("sales")

    op.drop_index("ix_employees_role_id", table_name="employees")
    op.drop_index("ix_employees_email", table_name="employees")
    op.drop_table("employees")

    op.drop_table("roles")
