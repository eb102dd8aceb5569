"""Backfill of past payroll months for historical reads."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.calculators.time_window import iter_months
from payroll_cycles.models import Employee
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.orchestrator import CycleOrchestrator, CycleRunResult
from payroll_cycles.services.settings_service import SettingsService
from payroll_cycles.services.state_machine import CycleStateMachine

logger = logging.getLogger(__name__)


@dataclass
class BackfillResult:
    """Summary of one backfill pass."""

    months_visited: int = 0
    cycles_created: list[str] = field(default_factory=list)
    locked_months: list[str] = field(default_factory=list)
    runs: list[CycleRunResult] = field(default_factory=list)
    cycles_completed: int = 0

    @property
    def items_created(self) -> int:
        return sum(len(run.processed) for run in self.runs)


class BackfillScheduler:
    """Materializes every past month's cycle and fills missing payroll items.

    Walks from the month of the earliest join date in the tenant up to,
    but excluding, the current month. Employees that already have an item
    in a cycle are not recomputed. Finishes with the age-out sweep.

    Work is O(months x employees) and runs inside the calling request.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.cycle_service = CycleService(session)
        self.orchestrator = CycleOrchestrator(session)
        self.settings_service = SettingsService(session)

    async def backfill(self, tenant_id: UUID, today: date | None = None) -> BackfillResult:
        """Run the backfill for one tenant."""
        today = today or date.today()
        result = BackfillResult()

        earliest = await self._earliest_join_date(tenant_id)
        if earliest is not None:
            settings = await self.settings_service.get_salary_settings(tenant_id)

            for year, month in iter_months(earliest, today):
                result.months_visited += 1
                cycle, created = await self.cycle_service.get_or_create_cycle(
                    tenant_id, year, month
                )
                if created:
                    result.cycles_created.append(cycle.period_label)

                if not CycleStateMachine.can_modify_items(cycle.status):
                    result.locked_months.append(cycle.period_label)
                    continue

                run = await self.orchestrator.run_cycle(
                    tenant_id,
                    cycle.payroll_cycle_id,
                    only_missing=True,
                    settings=settings,
                )
                result.runs.append(run)

        result.cycles_completed = await self.cycle_service.complete_past_cycles(
            tenant_id, today
        )

        logger.info(
            "Backfill for tenant %s: %d month(s), %d cycle(s) created, %d item(s) added",
            tenant_id,
            result.months_visited,
            len(result.cycles_created),
            result.items_created,
        )
        return result

    async def _earliest_join_date(self, tenant_id: UUID) -> date | None:
        result = await self.session.execute(
            select(func.min(Employee.date_of_joining)).where(
                Employee.tenant_id == tenant_id
            )
        )
        return result.scalar()
