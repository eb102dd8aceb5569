"""Tests for read-side payroll queries."""

from datetime import date
from decimal import Decimal

from sqlalchemy import update

from payroll_cycles.models import PayrollCycle
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.orchestrator import CycleOrchestrator
from payroll_cycles.services.query_service import PayrollQueryService


async def set_cycle(session, cycle, **values):
    await session.execute(
        update(PayrollCycle)
        .where(PayrollCycle.payroll_cycle_id == cycle.payroll_cycle_id)
        .values(**values)
    )


class TestNewCyclePreview:
    """Test the headcount and cost preview."""

    async def test_counts_active_and_sums_monthly_ctc(
        self, session, tenant, make_employee, add_compensation
    ):
        first = await make_employee(tenant)
        await add_compensation(first, ctc=Decimal("600000"))
        second = await make_employee(tenant)
        await add_compensation(second, effective_from=date(2023, 1, 1), ctc=Decimal("900000"))
        await add_compensation(second, effective_from=date(2024, 1, 1), ctc=Decimal("1200000"))
        inactive = await make_employee(tenant, status="inactive")
        await add_compensation(inactive, ctc=Decimal("480000"))
        uncompensated = await make_employee(tenant)
        await add_compensation(uncompensated, effective_from=date(2024, 7, 1))

        preview = await PayrollQueryService(session).new_cycle_preview(tenant.tenant_id, 2024, 6)

        assert preview.employee_count == 3
        assert preview.total_compensation == Decimal("150000.00")

    async def test_single_statement(
        self, session, tenant, make_employee, add_compensation, monkeypatch
    ):
        for _ in range(5):
            employee = await make_employee(tenant)
            await add_compensation(employee, ctc=Decimal("120000"))

        statements = []
        execute = session.execute

        async def counting_execute(statement, *args, **kwargs):
            statements.append(statement)
            return await execute(statement, *args, **kwargs)

        monkeypatch.setattr(session, "execute", counting_execute)
        preview = await PayrollQueryService(session).new_cycle_preview(tenant.tenant_id, 2024, 6)

        assert len(statements) == 1
        assert preview.employee_count == 5
        assert preview.total_compensation == Decimal("50000.00")

    async def test_empty_tenant(self, session, tenant):
        preview = await PayrollQueryService(session).new_cycle_preview(tenant.tenant_id, 2024, 6)
        assert preview.employee_count == 0
        assert preview.total_compensation == Decimal("0.00")


class TestDashboardStats:
    """Test dashboard figures."""

    async def test_stats(self, session, tenant, other_tenant, make_employee):
        await make_employee(tenant)
        await make_employee(tenant, status="inactive")
        await make_employee(other_tenant)

        service = CycleService(session)
        old = await service.create_cycle(tenant.tenant_id, 2023, 12)
        await set_cycle(session, old, total_amount=Decimal("81234.50"))
        pending = await service.create_cycle(tenant.tenant_id, 2024, 3)
        await set_cycle(session, pending, status="pending_approval")
        await service.create_cycle(tenant.tenant_id, 2024, 4)

        stats = await PayrollQueryService(session).dashboard_stats(
            tenant.tenant_id, today=date(2024, 3, 10)
        )

        assert stats.total_employees == 2
        assert stats.pending_approvals == 1
        assert stats.active_cycles == 1
        assert stats.monthly_payroll == Decimal("81234.50")

        aged = await service.get_cycle(tenant.tenant_id, old.payroll_cycle_id)
        assert aged.status == "completed"

    async def test_empty_tenant(self, session, tenant):
        stats = await PayrollQueryService(session).dashboard_stats(tenant.tenant_id)
        assert stats.total_employees == 0
        assert stats.monthly_payroll == Decimal("0")
        assert stats.pending_approvals == 0
        assert stats.active_cycles == 0


class TestPayslips:
    """Test payslip history for an employee."""

    async def test_backfills_and_orders_newest_first(
        self, session, tenant, make_employee, add_compensation
    ):
        employee = await make_employee(
            tenant, date_of_joining=date(2024, 1, 1), email="asha@example.com"
        )
        await add_compensation(employee, effective_from=date(2024, 1, 1))

        payslips = await PayrollQueryService(session).payslips_for_employee(
            tenant.tenant_id, "asha@example.com", today=date(2024, 4, 10)
        )

        assert [(p.year, p.month) for p in payslips] == [(2024, 3), (2024, 2), (2024, 1)]
        assert all(p.cycle_status == "completed" for p in payslips)
        assert all(p.item.employee_id == employee.employee_id for p in payslips)

    async def test_unknown_email_returns_nothing(self, session, tenant, make_employee):
        await make_employee(tenant, email="known@example.com")
        payslips = await PayrollQueryService(session).payslips_for_employee(
            tenant.tenant_id, "stranger@example.com", today=date(2024, 4, 10)
        )
        assert payslips == []

    async def test_email_scoped_to_tenant(
        self, session, tenant, other_tenant, make_employee, add_compensation
    ):
        employee = await make_employee(other_tenant, email="shared@example.com")
        await add_compensation(employee)

        payslips = await PayrollQueryService(session).payslips_for_employee(
            tenant.tenant_id, "shared@example.com", today=date(2024, 4, 10)
        )
        assert payslips == []


class TestCycleItemsAndCompensation:
    """Test item listing and compensation lookups."""

    async def test_cycle_items_with_employee(
        self, session, tenant, make_employee, add_compensation
    ):
        employee = await make_employee(tenant)
        await add_compensation(employee)
        cycle = await CycleService(session).create_cycle(tenant.tenant_id, 2024, 4)
        await CycleOrchestrator(session).run_cycle(tenant.tenant_id, cycle.payroll_cycle_id)

        rows = await PayrollQueryService(session).cycle_items(
            tenant.tenant_id, cycle.payroll_cycle_id
        )
        assert len(rows) == 1
        item, owner = rows[0]
        assert owner.employee_code == employee.employee_code
        assert item.gross_salary == Decimal("35000.00")

    async def test_current_compensation_for_email(
        self, session, tenant, make_employee, add_compensation
    ):
        employee = await make_employee(tenant, email="ravi@example.com")
        await add_compensation(employee, effective_from=date(2023, 1, 1), ctc=Decimal("500000"))
        await add_compensation(employee, effective_from=date(2024, 1, 1), ctc=Decimal("650000"))

        service = PayrollQueryService(session)
        current = await service.current_compensation_for_email(tenant.tenant_id, "ravi@example.com")
        assert current.ctc == Decimal("650000")
        assert await service.current_compensation_for_email(tenant.tenant_id, "nobody@example.com") is None
