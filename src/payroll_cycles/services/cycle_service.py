"""Payroll cycle service - lifecycle entry points for the state machine."""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.calculators.time_window import resolve_pay_period
from payroll_cycles.database import upsert
from payroll_cycles.errors import (
    CycleAlreadyExistsError,
    CycleNotFoundError,
    IllegalTransitionError,
    RejectionReasonRequiredError,
)
from payroll_cycles.models import PayrollCycle, PayrollItem
from payroll_cycles.services.state_machine import (
    CycleEvent,
    CycleStateMachine,
    CycleStatus,
)

logger = logging.getLogger(__name__)


class CycleService:
    """Service for managing payroll cycle lifecycle.

    Operations:
    - create_cycle: explicit creation in draft
    - get_or_create_cycle: lazy creation on first access to a month
    - submit / approve / reject / process: workflow transitions
    - complete_past_cycles: age-out sweep for months before today

    Every transition is a single conditional UPDATE on the expected current
    status, so two concurrent requests cannot both move the same cycle.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_cycle(self, tenant_id: UUID, payroll_cycle_id: UUID) -> PayrollCycle:
        """Load a cycle scoped to the tenant.

        Raises CycleNotFoundError if it does not exist for this tenant.
        """
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

    async def find_cycle(self, tenant_id: UUID, year: int, month: int) -> PayrollCycle | None:
        result = await self.session.execute(
            select(PayrollCycle)
            .where(
                PayrollCycle.tenant_id == tenant_id,
                PayrollCycle.year == year,
                PayrollCycle.month == month,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_cycles(self, tenant_id: UUID) -> list[PayrollCycle]:
        """All cycles for a tenant, newest month first."""
        result = await self.session.execute(
            select(PayrollCycle)
            .where(PayrollCycle.tenant_id == tenant_id)
            .order_by(PayrollCycle.year.desc(), PayrollCycle.month.desc())
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def create_cycle(
        self,
        tenant_id: UUID,
        year: int,
        month: int,
        payday: date | None = None,
        actor_user_id: UUID | None = None,
    ) -> PayrollCycle:
        """Create a cycle in draft.

        Raises:
            InvalidPeriodError: If year/month is not a calendar month
            CycleAlreadyExistsError: If the tenant already has this month
        """
        cycle, created = await self._insert_cycle(
            tenant_id, year, month, payday, actor_user_id
        )
        if not created:
            raise CycleAlreadyExistsError(year, month)
        logger.info("Created payroll cycle %s for tenant %s", cycle.period_label, tenant_id)
        return cycle

    async def get_or_create_cycle(
        self,
        tenant_id: UUID,
        year: int,
        month: int,
        actor_user_id: UUID | None = None,
    ) -> tuple[PayrollCycle, bool]:
        """Return the month's cycle, creating it in draft if absent.

        Lazily created cycles are paid on the last day of the month.
        """
        return await self._insert_cycle(tenant_id, year, month, None, actor_user_id)

    async def submit(
        self, tenant_id: UUID, payroll_cycle_id: UUID, actor_user_id: UUID | None = None
    ) -> PayrollCycle:
        """draft → pending_approval; requires at least one payroll item."""
        return await self._transition(
            tenant_id,
            payroll_cycle_id,
            CycleEvent.SUBMIT,
            submitted_by=actor_user_id,
            submitted_at=_now(),
        )

    async def approve(
        self, tenant_id: UUID, payroll_cycle_id: UUID, actor_user_id: UUID | None = None
    ) -> PayrollCycle:
        """pending_approval → approved; payroll items become locked."""
        return await self._transition(
            tenant_id,
            payroll_cycle_id,
            CycleEvent.APPROVE,
            approved_by=actor_user_id,
            approved_at=_now(),
        )

    async def reject(
        self,
        tenant_id: UUID,
        payroll_cycle_id: UUID,
        reason: str,
        actor_user_id: UUID | None = None,
    ) -> PayrollCycle:
        """pending_approval → draft with a recorded reason."""
        if not reason or not reason.strip():
            raise RejectionReasonRequiredError()
        return await self._transition(
            tenant_id,
            payroll_cycle_id,
            CycleEvent.REJECT,
            rejected_by=actor_user_id,
            rejected_at=_now(),
            rejection_reason=reason.strip(),
        )

    async def process(
        self, tenant_id: UUID, payroll_cycle_id: UUID, actor_user_id: UUID | None = None
    ) -> PayrollCycle:
        """approved → processing. Relabels status only; amounts are not recomputed."""
        return await self._transition(
            tenant_id,
            payroll_cycle_id,
            CycleEvent.PROCESS,
            processed_at=_now(),
        )

    async def complete_past_cycles(self, tenant_id: UUID, today: date | None = None) -> int:
        """Force-complete every open cycle whose month is before today's month.

        Returns the number of cycles completed.
        """
        today = today or date.today()
        now = _now()
        result = await self.session.execute(
            update(PayrollCycle)
            .where(
                PayrollCycle.tenant_id == tenant_id,
                PayrollCycle.status.in_(CycleStateMachine.age_out_sources()),
                or_(
                    PayrollCycle.year < today.year,
                    and_(PayrollCycle.year == today.year, PayrollCycle.month < today.month),
                ),
            )
            .values(
                status=CycleStatus.COMPLETED.value,
                completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        completed = result.rowcount or 0
        if completed:
            logger.info("Aged out %d payroll cycle(s) for tenant %s", completed, tenant_id)
        return completed

    async def count_items(self, payroll_cycle_id: UUID) -> int:
        result = await self.session.execute(
            select(func.count(PayrollItem.payroll_item_id)).where(
                PayrollItem.payroll_cycle_id == payroll_cycle_id
            )
        )
        return result.scalar() or 0

    async def _insert_cycle(
        self,
        tenant_id: UUID,
        year: int,
        month: int,
        payday: date | None,
        actor_user_id: UUID | None,
    ) -> tuple[PayrollCycle, bool]:
        """Insert a draft cycle unless one exists; returns (cycle, created)."""
        window = resolve_pay_period(year, month)
        now = _now()
        stmt = (
            upsert(self.session, PayrollCycle)
            .values(
                payroll_cycle_id=uuid4(),
                tenant_id=tenant_id,
                year=year,
                month=month,
                status=CycleStateMachine.INITIAL_STATUS.value,
                payday=payday or window.month_end,
                total_employees=0,
                total_amount=0,
                created_by=actor_user_id,
                created_at=now,
                updated_at=now,
            )
            .on_conflict_do_nothing(index_elements=["tenant_id", "year", "month"])
        )
        result = await self.session.execute(stmt)
        created = bool(result.rowcount)

        cycle = await self.find_cycle(tenant_id, year, month)
        if cycle is None:
            raise CycleNotFoundError(period=window.label)
        return cycle, created

    async def _transition(
        self,
        tenant_id: UUID,
        payroll_cycle_id: UUID,
        event: CycleEvent,
        **audit_values: Any,
    ) -> PayrollCycle:
        """Apply one event with a compare-and-swap on the current status."""
        cycle = await self.get_cycle(tenant_id, payroll_cycle_id)
        from_status = cycle.status
        to_status = CycleStateMachine.validate(from_status, event)

        if CycleStateMachine.requires_items(event):
            if await self.count_items(payroll_cycle_id) == 0:
                raise IllegalTransitionError(
                    from_status, event.value, "cycle has no payroll items"
                )

        result = await self.session.execute(
            update(PayrollCycle)
            .where(
                PayrollCycle.payroll_cycle_id == payroll_cycle_id,
                PayrollCycle.tenant_id == tenant_id,
                PayrollCycle.status == from_status,
            )
            .values(status=to_status, updated_at=_now(), **audit_values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            current = await self.get_cycle(tenant_id, payroll_cycle_id)
            raise IllegalTransitionError(
                current.status,
                event.value,
                f"status changed from '{from_status}' during the request",
            )

        logger.info(
            "Payroll cycle %s: %s → %s (%s)",
            payroll_cycle_id,
            from_status,
            to_status,
            event.value,
        )
        return await self.get_cycle(tenant_id, payroll_cycle_id)


def _now() -> datetime:
    return datetime.now(timezone.utc)
