"""Payroll cycle, payroll item and per-tenant settings models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from payroll_cycles.models.base import Base, CreatedAtMixin, UpdatedAtMixin


# ===== Payroll Cycles =====


class PayrollCycle(Base, CreatedAtMixin, UpdatedAtMixin):
    """One tenant's payroll run for a single calendar month."""

    __tablename__ = "payroll_cycle"

    payroll_cycle_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    payday: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Aggregates, recomputed by the orchestrator
    total_employees: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(16, 2), nullable=False, default=Decimal("0")
    )

    # Audit trail
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    submitted_by: Mapped[UUID | None] = mapped_column(nullable=True)
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[UUID | None] = mapped_column(nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    __table_args__ = (
        UniqueConstraint("tenant_id", "year", "month", name="payroll_cycle_tenant_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="payroll_cycle_month_check"),
        CheckConstraint(
            "status IN ('draft', 'pending_approval', 'approved', 'processing', "
            "'completed', 'failed')",
            name="payroll_cycle_status_check",
        ),
    )

    # Relationships
    items: Mapped[list[PayrollItem]] = relationship(back_populates="payroll_cycle")

    @property
    def period_label(self) -> str:
        """Return the cycle month as YYYY-MM."""
        return f"{self.year:04d}-{self.month:02d}"


class PayrollItem(Base, CreatedAtMixin, UpdatedAtMixin):
    """Computed pay for one employee in one cycle.

    (payroll_cycle_id, employee_id) is the idempotency key: recomputation
    replaces the row in place.
    """

    __tablename__ = "payroll_item"

    payroll_item_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
    )
    payroll_cycle_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_cycle.payroll_cycle_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employee.employee_id", ondelete="CASCADE"),
        nullable=False,
    )

    # Earnings (prorated)
    basic_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    hra: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    special_allowance: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    da: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    lta: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    bonus: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    gross_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Deductions
    pf_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    esi_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    pt_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    tds_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    net_salary: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    # Attendance
    lop_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False)
    paid_days: Mapped[Decimal] = mapped_column(Numeric(5, 1), nullable=False)
    total_working_days: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("payroll_cycle_id", "employee_id", name="payroll_item_cycle_employee_unique"),
        CheckConstraint("gross_salary >= 0", name="payroll_item_gross_check"),
    )

    # Relationships
    payroll_cycle: Mapped[PayrollCycle] = relationship(back_populates="items")


# ===== Settings =====


class PayrollSettings(Base, UpdatedAtMixin):
    """Per-tenant deduction rates and CTC split percentages."""

    __tablename__ = "payroll_settings"

    payroll_settings_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    tenant_id: Mapped[UUID] = mapped_column(
        ForeignKey("tenant.tenant_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    pf_rate: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    esi_rate: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False)
    pt_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    tds_threshold: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    basic_salary_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    hra_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    special_allowance_percentage: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)