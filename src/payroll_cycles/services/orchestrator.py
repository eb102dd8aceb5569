"""Cycle orchestrator - computes and persists payroll items for a cycle."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.calculators.attendance_aggregator import AttendanceAggregator
from payroll_cycles.calculators.compensation_resolver import CompensationResolver
from payroll_cycles.calculators.salary_calculator import SalaryCalculator
from payroll_cycles.calculators.time_window import resolve_pay_period
from payroll_cycles.calculators.types import (
    CompensationComponents,
    PayPeriodWindow,
    SalaryBreakdown,
    SalarySettings,
)
from payroll_cycles.database import upsert
from payroll_cycles.errors import (
    CompensationMissingError,
    CycleNotFoundError,
    IllegalTransitionError,
    PersistenceFailureError,
)
from payroll_cycles.models import Employee, EmployeeStatus, PayrollCycle, PayrollItem
from payroll_cycles.services.settings_service import SettingsService
from payroll_cycles.services.state_machine import CycleStateMachine

logger = logging.getLogger(__name__)

ITEM_VALUE_COLUMNS = (
    "basic_salary",
    "hra",
    "special_allowance",
    "da",
    "lta",
    "bonus",
    "gross_salary",
    "pf_deduction",
    "esi_deduction",
    "pt_deduction",
    "tds_deduction",
    "total_deductions",
    "net_salary",
    "lop_days",
    "paid_days",
    "total_working_days",
)


@dataclass
class CycleRunResult:
    """Result of running the orchestrator over one cycle."""

    payroll_cycle_id: UUID
    period: str
    eligible_count: int = 0
    processed: list[UUID] = field(default_factory=list)
    skipped: dict[UUID, str] = field(default_factory=dict)  # employee_id -> reason
    errors: dict[UUID, str] = field(default_factory=dict)  # employee_id -> message
    removed_count: int = 0
    ctc_fallback: list[UUID] = field(default_factory=list)
    total_employees: int = 0
    total_amount: Decimal = Decimal("0")

    @property
    def no_eligible_employees(self) -> bool:
        """True when nobody was eligible; a valid, empty result."""
        return self.eligible_count == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)


class CycleOrchestrator:
    """Drives the per-employee payroll pipeline for a cycle.

    Pipeline (sequential, ascending join date):
    1) Enumerate employees active and joined on/before month end
    2) Resolve compensation effective at month end
    3) Aggregate LOP and paid days
    4) Calculate salary and deductions
    5) Upsert the payroll item keyed by (cycle, employee)
    6) Drop items of employees who are no longer eligible (full runs only)
    7) Recompute cycle totals from the stored items

    A failure for one employee is logged and skipped. Storage failures
    are raised as PersistenceFailureError.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.compensation_resolver = CompensationResolver(session)
        self.attendance_aggregator = AttendanceAggregator(session)
        self.settings_service = SettingsService(session)

    async def run_cycle(
        self,
        tenant_id: UUID,
        payroll_cycle_id: UUID,
        *,
        only_missing: bool = False,
        settings: SalarySettings | None = None,
    ) -> CycleRunResult:
        """Compute payroll items for every eligible employee in a cycle.

        Args:
            tenant_id: Tenant owning the cycle
            payroll_cycle_id: The cycle to process
            only_missing: Skip employees that already have an item
            settings: Salary settings; loaded for the tenant when omitted

        Raises:
            CycleNotFoundError: If the cycle does not exist for the tenant
            IllegalTransitionError: If the cycle's items are locked
            PersistenceFailureError: If storage fails
        """
        cycle = await self._load_cycle(tenant_id, payroll_cycle_id)
        if not CycleStateMachine.can_modify_items(cycle.status):
            raise IllegalTransitionError(
                cycle.status, "calculate", "payroll items are locked"
            )

        window = resolve_pay_period(cycle.year, cycle.month)
        if settings is None:
            settings = await self.settings_service.get_salary_settings(tenant_id)

        employees = await self._get_eligible_employees(tenant_id, window.month_end)
        existing = (
            await self._get_item_employee_ids(payroll_cycle_id) if only_missing else set()
        )

        result = CycleRunResult(
            payroll_cycle_id=payroll_cycle_id,
            period=window.label,
            eligible_count=len(employees),
        )
        if not employees:
            logger.info(
                "No eligible employees for tenant %s in %s", tenant_id, window.label
            )

        for employee in employees:
            employee_id = employee.employee_id
            if employee_id in existing:
                result.skipped[employee_id] = "already processed"
                continue

            try:
                breakdown = await self.calculate_employee(
                    tenant_id, employee_id, window, settings
                )
            except CompensationMissingError as e:
                logger.info("Skipping employee %s for %s: %s", employee_id, window.label, e)
                result.skipped[employee_id] = str(e)
                continue
            except SQLAlchemyError as e:
                raise PersistenceFailureError(
                    f"Failed to load payroll inputs for employee {employee_id}"
                ) from e
            except Exception as e:
                logger.exception(
                    "Failed to calculate pay for employee %s in cycle %s",
                    employee_id,
                    payroll_cycle_id,
                )
                result.errors[employee_id] = str(e)
                continue

            await self._upsert_item(cycle, employee_id, breakdown)
            result.processed.append(employee_id)
            if breakdown.used_ctc_fallback:
                result.ctc_fallback.append(employee_id)

        if not only_missing:
            result.removed_count = await self._remove_ineligible_items(
                cycle, [employee.employee_id for employee in employees]
            )

        result.total_employees, result.total_amount = await self.refresh_totals(cycle)

        logger.info(
            "Processed cycle %s (%s): %d computed, %d skipped, %d removed, %d errors",
            payroll_cycle_id,
            window.label,
            len(result.processed),
            len(result.skipped),
            result.removed_count,
            result.error_count,
        )
        return result

    async def calculate_employee(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        window: PayPeriodWindow,
        settings: SalarySettings,
    ) -> SalaryBreakdown:
        """Run resolver, aggregator and calculator for one employee-month."""
        structure = await self.compensation_resolver.resolve(
            tenant_id, employee_id, window.month_end
        )
        attendance = await self.attendance_aggregator.aggregate(
            tenant_id, employee_id, window
        )
        return SalaryCalculator.calculate(
            CompensationComponents.from_structure(structure),
            attendance,
            settings,
        )

    async def refresh_totals(self, cycle: PayrollCycle) -> tuple[int, Decimal]:
        """Recompute total_employees and total_amount from stored items."""
        try:
            result = await self.session.execute(
                select(
                    func.count(PayrollItem.payroll_item_id),
                    func.coalesce(func.sum(PayrollItem.gross_salary), 0),
                ).where(
                    PayrollItem.tenant_id == cycle.tenant_id,
                    PayrollItem.payroll_cycle_id == cycle.payroll_cycle_id,
                )
            )
            count, total = result.one()
            total_amount = Decimal(str(total or 0))

            await self.session.execute(
                update(PayrollCycle)
                .where(
                    PayrollCycle.payroll_cycle_id == cycle.payroll_cycle_id,
                    PayrollCycle.tenant_id == cycle.tenant_id,
                )
                .values(
                    total_employees=count,
                    total_amount=total_amount,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise PersistenceFailureError(
                f"Failed to persist totals for payroll cycle {cycle.payroll_cycle_id}"
            ) from e

        return count, total_amount

    async def _upsert_item(
        self,
        cycle: PayrollCycle,
        employee_id: UUID,
        breakdown: SalaryBreakdown,
    ) -> None:
        """Insert the item, or replace its amounts if one already exists.

        An existing row whose amounts are unchanged is left untouched.
        """
        now = datetime.now(timezone.utc)
        columns = PayrollItem.__table__.c
        stmt = upsert(self.session, PayrollItem).values(
            payroll_item_id=uuid4(),
            tenant_id=cycle.tenant_id,
            payroll_cycle_id=cycle.payroll_cycle_id,
            employee_id=employee_id,
            updated_at=now,
            **breakdown.to_item_values(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["payroll_cycle_id", "employee_id"],
            set_={
                **{name: stmt.excluded[name] for name in ITEM_VALUE_COLUMNS},
                "updated_at": stmt.excluded.updated_at,
            },
            where=or_(*(columns[name] != stmt.excluded[name] for name in ITEM_VALUE_COLUMNS)),
        )
        try:
            await self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceFailureError(
                f"Failed to persist payroll item for employee {employee_id}"
            ) from e

    async def _remove_ineligible_items(
        self, cycle: PayrollCycle, eligible_ids: list[UUID]
    ) -> int:
        """Delete items of employees outside the eligible set; returns the count."""
        try:
            result = await self.session.execute(
                delete(PayrollItem)
                .where(
                    PayrollItem.tenant_id == cycle.tenant_id,
                    PayrollItem.payroll_cycle_id == cycle.payroll_cycle_id,
                    PayrollItem.employee_id.not_in(eligible_ids),
                )
                .execution_options(synchronize_session=False)
            )
        except SQLAlchemyError as e:
            raise PersistenceFailureError(
                f"Failed to remove stale items for payroll cycle {cycle.payroll_cycle_id}"
            ) from e
        if result.rowcount:
            logger.info(
                "Removed %d items of ineligible employees from cycle %s",
                result.rowcount,
                cycle.payroll_cycle_id,
            )
        return result.rowcount

    # === Data Loading Methods ===

    async def _load_cycle(self, tenant_id: UUID, payroll_cycle_id: UUID) -> PayrollCycle:
        result = await self.session.execute(
            select(PayrollCycle)
            .where(
                PayrollCycle.payroll_cycle_id == payroll_cycle_id,
                PayrollCycle.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        cycle = result.scalar_one_or_none()
        if cycle is None:
            raise CycleNotFoundError(payroll_cycle_id)
        return cycle

    async def _get_eligible_employees(
        self, tenant_id: UUID, month_end: date
    ) -> list[Employee]:
        """Active employees who joined on or before month end, oldest first."""
        result = await self.session.execute(
            select(Employee)
            .where(
                Employee.tenant_id == tenant_id,
                Employee.status == EmployeeStatus.ACTIVE.value,
                Employee.date_of_joining <= month_end,
            )
            .order_by(Employee.date_of_joining, Employee.employee_id)
        )
        return list(result.scalars().all())

    async def _get_item_employee_ids(self, payroll_cycle_id: UUID) -> set[UUID]:
        result = await self.session.execute(
            select(PayrollItem.employee_id).where(
                PayrollItem.payroll_cycle_id == payroll_cycle_id
            )
        )
        return set(result.scalars().all())
