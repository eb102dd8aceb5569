"""Tests for payroll cycle lifecycle operations."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import update

from payroll_cycles.errors import (
    CycleAlreadyExistsError,
    CycleNotFoundError,
    IllegalTransitionError,
    InvalidPeriodError,
    RejectionReasonRequiredError,
)
from payroll_cycles.models import PayrollCycle
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.orchestrator import CycleOrchestrator
from payroll_cycles.services.state_machine import CycleStateMachine


@pytest.fixture
async def staffed(tenant, make_employee, add_compensation):
    """One active employee with compensation."""
    employee = await make_employee(tenant)
    await add_compensation(employee)
    return employee


async def computed_cycle(session, tenant, year=2024, month=4) -> PayrollCycle:
    cycle = await CycleService(session).create_cycle(tenant.tenant_id, year, month)
    await CycleOrchestrator(session).run_cycle(tenant.tenant_id, cycle.payroll_cycle_id)
    return cycle


class TestCreateCycle:
    """Test explicit and lazy cycle creation."""

    async def test_create_in_draft(self, session, tenant):
        actor = uuid4()
        cycle = await CycleService(session).create_cycle(
            tenant.tenant_id, 2024, 2, actor_user_id=actor
        )
        assert cycle.status == "draft"
        assert cycle.payday == date(2024, 2, 29)
        assert cycle.created_by == actor
        assert cycle.total_employees == 0
        assert cycle.period_label == "2024-02"

    async def test_explicit_payday(self, session, tenant):
        cycle = await CycleService(session).create_cycle(
            tenant.tenant_id, 2024, 5, payday=date(2024, 5, 28)
        )
        assert cycle.payday == date(2024, 5, 28)

    async def test_duplicate_month_rejected(self, session, tenant):
        service = CycleService(session)
        await service.create_cycle(tenant.tenant_id, 2024, 4)
        with pytest.raises(CycleAlreadyExistsError) as exc_info:
            await service.create_cycle(tenant.tenant_id, 2024, 4)
        assert exc_info.value.code == "CYCLE_EXISTS"

    async def test_same_month_other_tenant_allowed(self, session, tenant, other_tenant):
        service = CycleService(session)
        mine = await service.create_cycle(tenant.tenant_id, 2024, 4)
        theirs = await service.create_cycle(other_tenant.tenant_id, 2024, 4)
        assert mine.payroll_cycle_id != theirs.payroll_cycle_id

    async def test_invalid_month(self, session, tenant):
        with pytest.raises(InvalidPeriodError):
            await CycleService(session).create_cycle(tenant.tenant_id, 2024, 13)

    async def test_get_or_create_is_stable(self, session, tenant):
        service = CycleService(session)
        first, created = await service.get_or_create_cycle(tenant.tenant_id, 2023, 11)
        again, created_again = await service.get_or_create_cycle(tenant.tenant_id, 2023, 11)
        assert created is True
        assert created_again is False
        assert again.payroll_cycle_id == first.payroll_cycle_id

    async def test_list_newest_first(self, session, tenant, other_tenant):
        service = CycleService(session)
        for year, month in [(2023, 12), (2024, 2), (2024, 1)]:
            await service.create_cycle(tenant.tenant_id, year, month)
        await service.create_cycle(other_tenant.tenant_id, 2024, 3)

        cycles = await service.list_cycles(tenant.tenant_id)
        assert [c.period_label for c in cycles] == ["2024-02", "2024-01", "2023-12"]

    async def test_get_cycle_scoped_to_tenant(self, session, tenant, other_tenant):
        service = CycleService(session)
        cycle = await service.create_cycle(tenant.tenant_id, 2024, 4)
        with pytest.raises(CycleNotFoundError):
            await service.get_cycle(other_tenant.tenant_id, cycle.payroll_cycle_id)


class TestWorkflow:
    """Test submit / approve / reject / process."""

    async def test_submit_without_items_fails(self, session, tenant):
        service = CycleService(session)
        cycle = await service.create_cycle(tenant.tenant_id, 2024, 4)

        with pytest.raises(IllegalTransitionError) as exc_info:
            await service.submit(tenant.tenant_id, cycle.payroll_cycle_id)
        assert "no payroll items" in str(exc_info.value)

        reloaded = await service.get_cycle(tenant.tenant_id, cycle.payroll_cycle_id)
        assert reloaded.status == "draft"

    async def test_full_happy_path(self, session, tenant, staffed):
        service = CycleService(session)
        cycle = await computed_cycle(session, tenant)
        submitter, approver = uuid4(), uuid4()
        observed = [cycle.status]

        cycle = await service.submit(tenant.tenant_id, cycle.payroll_cycle_id, submitter)
        observed.append(cycle.status)
        assert cycle.submitted_by == submitter
        assert cycle.submitted_at is not None

        cycle = await service.approve(tenant.tenant_id, cycle.payroll_cycle_id, approver)
        observed.append(cycle.status)
        assert cycle.approved_by == approver

        cycle = await service.process(tenant.tenant_id, cycle.payroll_cycle_id)
        observed.append(cycle.status)
        assert cycle.processed_at is not None

        assert observed == ["draft", "pending_approval", "approved", "processing"]
        assert CycleStateMachine.is_valid_path(observed)

    async def test_process_does_not_recompute(
        self, session, tenant, staffed, add_compensation
    ):
        service = CycleService(session)
        cycle = await computed_cycle(session, tenant)
        total_before = (await service.get_cycle(tenant.tenant_id, cycle.payroll_cycle_id)).total_amount
        assert total_before > 0
        await service.submit(tenant.tenant_id, cycle.payroll_cycle_id)
        await service.approve(tenant.tenant_id, cycle.payroll_cycle_id)

        await add_compensation(staffed, effective_from=date(2024, 4, 1), basic_salary=Decimal("90000"))
        processed = await service.process(tenant.tenant_id, cycle.payroll_cycle_id)

        assert processed.status == "processing"
        assert processed.total_amount == total_before

    @pytest.mark.parametrize("steps", [[], ["submit"]])
    async def test_process_requires_approved(self, session, tenant, staffed, steps):
        service = CycleService(session)
        cycle = await computed_cycle(session, tenant)
        for step in steps:
            await getattr(service, step)(tenant.tenant_id, cycle.payroll_cycle_id)

        with pytest.raises(IllegalTransitionError):
            await service.process(tenant.tenant_id, cycle.payroll_cycle_id)

    async def test_reject_returns_to_draft(self, session, tenant, staffed):
        service = CycleService(session)
        cycle = await computed_cycle(session, tenant)
        await service.submit(tenant.tenant_id, cycle.payroll_cycle_id)

        rejected = await service.reject(
            tenant.tenant_id, cycle.payroll_cycle_id, "  HRA is wrong  "
        )
        assert rejected.status == "draft"
        assert rejected.rejection_reason == "HRA is wrong"
        assert rejected.rejected_at is not None

        # Can be resubmitted after correction
        resubmitted = await service.submit(tenant.tenant_id, cycle.payroll_cycle_id)
        assert resubmitted.status == "pending_approval"

    async def test_reject_requires_reason(self, session, tenant, staffed):
        service = CycleService(session)
        cycle = await computed_cycle(session, tenant)
        await service.submit(tenant.tenant_id, cycle.payroll_cycle_id)

        with pytest.raises(RejectionReasonRequiredError):
            await service.reject(tenant.tenant_id, cycle.payroll_cycle_id, "   ")

        reloaded = await service.get_cycle(tenant.tenant_id, cycle.payroll_cycle_id)
        assert reloaded.status == "pending_approval"

    async def test_approve_from_draft_fails(self, session, tenant, staffed):
        service = CycleService(session)
        cycle = await computed_cycle(session, tenant)
        with pytest.raises(IllegalTransitionError) as exc_info:
            await service.approve(tenant.tenant_id, cycle.payroll_cycle_id)
        assert exc_info.value.from_status == "draft"
        assert exc_info.value.event == "approve"

    async def test_stale_status_loses_race(self, session, tenant, staffed, monkeypatch):
        """A status change between read and update fails the transition."""
        service = CycleService(session)
        cycle = await computed_cycle(session, tenant)
        await service.submit(tenant.tenant_id, cycle.payroll_cycle_id)
        await service.approve(tenant.tenant_id, cycle.payroll_cycle_id)

        original_count = service.count_items

        async def complete_meanwhile(payroll_cycle_id):
            await session.execute(
                update(PayrollCycle)
                .where(PayrollCycle.payroll_cycle_id == payroll_cycle_id)
                .values(status="completed")
            )
            return await original_count(payroll_cycle_id)

        # process checks the item count after reading the status
        monkeypatch.setattr(service, "count_items", complete_meanwhile)

        with pytest.raises(IllegalTransitionError) as exc_info:
            await service.process(tenant.tenant_id, cycle.payroll_cycle_id)
        assert exc_info.value.from_status == "completed"
        assert "changed from 'approved'" in str(exc_info.value)

class TestAgeOut:
    """Test the sweep that completes past months."""

    async def test_past_open_cycles_completed(self, session, tenant, other_tenant):
        service = CycleService(session)
        old_draft = await service.create_cycle(tenant.tenant_id, 2024, 1)
        old_pending = await service.create_cycle(tenant.tenant_id, 2023, 12)
        current = await service.create_cycle(tenant.tenant_id, 2024, 3)
        future = await service.create_cycle(tenant.tenant_id, 2024, 5)
        theirs = await service.create_cycle(other_tenant.tenant_id, 2023, 6)
        await session.execute(
            update(PayrollCycle)
            .where(PayrollCycle.payroll_cycle_id == old_pending.payroll_cycle_id)
            .values(status="pending_approval")
        )

        completed = await service.complete_past_cycles(tenant.tenant_id, today=date(2024, 3, 10))
        assert completed == 2

        statuses = {
            c.payroll_cycle_id: c.status for c in await service.list_cycles(tenant.tenant_id)
        }
        assert statuses[old_draft.payroll_cycle_id] == "completed"
        assert statuses[old_pending.payroll_cycle_id] == "completed"
        assert statuses[current.payroll_cycle_id] == "draft"
        assert statuses[future.payroll_cycle_id] == "draft"

        other = await service.get_cycle(other_tenant.tenant_id, theirs.payroll_cycle_id)
        assert other.status == "draft"

    async def test_sweep_leaves_failed_and_completed(self, session, tenant):
        service = CycleService(session)
        failed = await service.create_cycle(tenant.tenant_id, 2023, 1)
        await session.execute(
            update(PayrollCycle)
            .where(PayrollCycle.payroll_cycle_id == failed.payroll_cycle_id)
            .values(status="failed")
        )

        assert await service.complete_past_cycles(tenant.tenant_id, today=date(2024, 3, 10)) == 0
        reloaded = await service.get_cycle(tenant.tenant_id, failed.payroll_cycle_id)
        assert reloaded.status == "failed"
