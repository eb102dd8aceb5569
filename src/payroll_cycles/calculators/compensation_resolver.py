"""Effective-dated compensation resolution."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.errors import CompensationMissingError
from payroll_cycles.models import CompensationStructure


class CompensationResolver:
    """Resolves the compensation structure in force on a date.

    Selection rule:
    - Only records with effective_from <= as_of_date are candidates
    - The greatest effective_from wins
    - Equal effective_from (blocked by the unique constraint) falls back to
      the most recently created record
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        as_of_date: date,
    ) -> CompensationStructure:
        """Resolve the compensation structure for an employee.

        Args:
            tenant_id: Tenant the employee belongs to
            employee_id: The employee to resolve for
            as_of_date: The effective date for lookup (usually month end)

        Returns:
            The effective compensation structure

        Raises:
            CompensationMissingError: If nothing is effective on as_of_date
        """
        structure = await self.find(tenant_id, employee_id, as_of_date)
        if structure is None:
            raise CompensationMissingError(employee_id, as_of_date)
        return structure

    async def find(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        as_of_date: date,
    ) -> CompensationStructure | None:
        """Like resolve, but returns None instead of raising."""
        result = await self.session.execute(
            select(CompensationStructure)
            .where(
                CompensationStructure.tenant_id == tenant_id,
                CompensationStructure.employee_id == employee_id,
                CompensationStructure.effective_from <= as_of_date,
            )
            .order_by(
                CompensationStructure.effective_from.desc(),
                CompensationStructure.created_at.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest(
        self,
        tenant_id: UUID,
        employee_id: UUID,
    ) -> CompensationStructure | None:
        """Newest structure regardless of date, including future-dated ones."""
        result = await self.session.execute(
            select(CompensationStructure)
            .where(
                CompensationStructure.tenant_id == tenant_id,
                CompensationStructure.employee_id == employee_id,
            )
            .order_by(
                CompensationStructure.effective_from.desc(),
                CompensationStructure.created_at.desc(),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def history(
        self,
        tenant_id: UUID,
        employee_id: UUID,
    ) -> list[CompensationStructure]:
        """All compensation versions for an employee, newest first."""
        result = await self.session.execute(
            select(CompensationStructure)
            .where(
                CompensationStructure.tenant_id == tenant_id,
                CompensationStructure.employee_id == employee_id,
            )
            .order_by(CompensationStructure.effective_from.desc())
        )
        return list(result.scalars().all())
