"""Read-side payroll queries: dashboard, previews and payslip history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.calculators.compensation_resolver import CompensationResolver
from payroll_cycles.calculators.salary_calculator import MONTHS_PER_YEAR, SalaryCalculator
from payroll_cycles.calculators.time_window import resolve_pay_period
from payroll_cycles.models import (
    CompensationStructure,
    Employee,
    EmployeeStatus,
    PayrollCycle,
    PayrollItem,
)
from payroll_cycles.services.backfill import BackfillScheduler
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.employee_service import EmployeeService
from payroll_cycles.services.state_machine import CycleStatus


@dataclass(frozen=True)
class NewCyclePreview:
    """Headcount and monthly cost shown before creating a cycle."""

    employee_count: int
    total_compensation: Decimal


@dataclass(frozen=True)
class DashboardStats:
    total_employees: int
    monthly_payroll: Decimal
    pending_approvals: int
    active_cycles: int


@dataclass(frozen=True)
class Payslip:
    """A payroll item together with its cycle's month and status."""

    item: PayrollItem
    year: int
    month: int
    cycle_status: str


class PayrollQueryService:
    """Tenant-scoped read paths.

    dashboard_stats runs the age-out sweep and payslips_for_employee runs
    the backfill before reading, so both may write.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.cycle_service = CycleService(session)
        self.compensation_resolver = CompensationResolver(session)
        self.employee_service = EmployeeService(session)

    async def new_cycle_preview(
        self, tenant_id: UUID, year: int | None = None, month: int | None = None
    ) -> NewCyclePreview:
        """Active headcount and the sum of their monthly CTC for a month."""
        today = date.today()
        window = resolve_pay_period(year or today.year, month or today.month)

        # One row per employee: the unique (employee, effective_from) pair
        # makes the max effective date identify a single structure.
        in_force = (
            select(func.max(CompensationStructure.effective_from))
            .where(
                CompensationStructure.tenant_id == tenant_id,
                CompensationStructure.employee_id == Employee.employee_id,
                CompensationStructure.effective_from <= window.month_end,
            )
            .correlate(Employee)
            .scalar_subquery()
        )
        result = await self.session.execute(
            select(
                func.count(Employee.employee_id),
                func.coalesce(func.sum(CompensationStructure.ctc), 0),
            )
            .select_from(Employee)
            .outerjoin(
                CompensationStructure,
                and_(
                    CompensationStructure.employee_id == Employee.employee_id,
                    CompensationStructure.effective_from == in_force,
                ),
            )
            .where(
                Employee.tenant_id == tenant_id,
                Employee.status == EmployeeStatus.ACTIVE.value,
            )
        )
        employee_count, annual_total = result.one()

        return NewCyclePreview(
            employee_count=employee_count,
            total_compensation=SalaryCalculator.round_to_cents(
                Decimal(str(annual_total or 0)) / MONTHS_PER_YEAR
            ),
        )

    async def dashboard_stats(self, tenant_id: UUID, today: date | None = None) -> DashboardStats:
        """Headline numbers for the tenant dashboard."""
        await self.cycle_service.complete_past_cycles(tenant_id, today)

        employee_count = await self.session.scalar(
            select(func.count(Employee.employee_id)).where(Employee.tenant_id == tenant_id)
        )

        result = await self.session.execute(
            select(PayrollCycle.status, func.count(PayrollCycle.payroll_cycle_id))
            .where(PayrollCycle.tenant_id == tenant_id)
            .group_by(PayrollCycle.status)
        )
        by_status = {status: count for status, count in result.all()}

        latest_total = await self.session.scalar(
            select(PayrollCycle.total_amount)
            .where(
                PayrollCycle.tenant_id == tenant_id,
                PayrollCycle.status.in_(
                    [
                        CycleStatus.APPROVED.value,
                        CycleStatus.PROCESSING.value,
                        CycleStatus.COMPLETED.value,
                    ]
                ),
            )
            .order_by(PayrollCycle.year.desc(), PayrollCycle.month.desc())
            .limit(1)
        )

        return DashboardStats(
            total_employees=employee_count or 0,
            monthly_payroll=Decimal(str(latest_total or 0)),
            pending_approvals=by_status.get(CycleStatus.PENDING_APPROVAL.value, 0),
            active_cycles=by_status.get(CycleStatus.DRAFT.value, 0),
        )

    async def cycle_items(self, tenant_id: UUID, payroll_cycle_id: UUID) -> list[tuple[PayrollItem, Employee]]:
        """Items of one cycle with their employees, by employee code."""
        await self.cycle_service.get_cycle(tenant_id, payroll_cycle_id)
        result = await self.session.execute(
            select(PayrollItem, Employee)
            .join(Employee, PayrollItem.employee_id == Employee.employee_id)
            .where(
                PayrollItem.tenant_id == tenant_id,
                PayrollItem.payroll_cycle_id == payroll_cycle_id,
            )
            .order_by(Employee.employee_code)
            .execution_options(populate_existing=True)
        )
        return [(item, employee) for item, employee in result.all()]

    async def payslips_for_employee(
        self, tenant_id: UUID, email: str, today: date | None = None
    ) -> list[Payslip]:
        """Payslip history for the calling employee, newest month first.

        Past months are backfilled first so history is complete even when
        no cycle was processed explicitly.
        """
        employee = await self.employee_service.find_by_email(tenant_id, email)
        if employee is None:
            return []

        await BackfillScheduler(self.session).backfill(tenant_id, today)

        result = await self.session.execute(
            select(PayrollItem, PayrollCycle.year, PayrollCycle.month, PayrollCycle.status)
            .join(PayrollCycle, PayrollItem.payroll_cycle_id == PayrollCycle.payroll_cycle_id)
            .where(
                PayrollItem.employee_id == employee.employee_id,
                PayrollItem.tenant_id == tenant_id,
            )
            .order_by(PayrollCycle.year.desc(), PayrollCycle.month.desc())
            .execution_options(populate_existing=True)
        )
        return [
            Payslip(item=item, year=year, month=month, cycle_status=status)
            for item, year, month, status in result.all()
        ]

    async def current_compensation_for_email(
        self, tenant_id: UUID, email: str
    ) -> CompensationStructure | None:
        """Compensation in force today for the calling employee."""
        employee = await self.employee_service.find_by_email(tenant_id, email)
        if employee is None:
            return None
        return await self.compensation_resolver.find(
            tenant_id, employee.employee_id, date.today()
        )
