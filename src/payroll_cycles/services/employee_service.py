"""Employee records and their effective-dated compensation."""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.calculators.compensation_resolver import CompensationResolver
from payroll_cycles.database import upsert
from payroll_cycles.errors import (
    CompensationAlreadyExistsError,
    EmployeeAlreadyExistsError,
    EmployeeNotFoundError,
)
from payroll_cycles.models import CompensationStructure, Employee, EmployeeStatus

logger = logging.getLogger(__name__)


class EmployeeService:
    """Tenant-scoped employee and compensation writes.

    Uniqueness (employee code per tenant, one structure per effective date)
    is enforced with ON CONFLICT DO NOTHING, so concurrent duplicates end
    in a domain error rather than an IntegrityError.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.compensation_resolver = CompensationResolver(session)

    async def create_employee(
        self,
        tenant_id: UUID,
        *,
        employee_code: str,
        full_name: str,
        email: str,
        date_of_joining: date,
        status: str = EmployeeStatus.ACTIVE.value,
        department: str | None = None,
        designation: str | None = None,
    ) -> Employee:
        """Add an employee.

        Raises:
            EmployeeAlreadyExistsError: If the code is taken within the tenant
        """
        employee_id = uuid4()
        stmt = (
            upsert(self.session, Employee)
            .values(
                employee_id=employee_id,
                tenant_id=tenant_id,
                employee_code=employee_code,
                full_name=full_name,
                email=email,
                date_of_joining=date_of_joining,
                status=status,
                department=department,
                designation=designation,
            )
            .on_conflict_do_nothing(index_elements=["tenant_id", "employee_code"])
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            raise EmployeeAlreadyExistsError(employee_code)

        logger.info("Created employee %s (%s) for tenant %s", employee_id, employee_code, tenant_id)
        return await self.get_employee(tenant_id, employee_id)

    async def get_employee(self, tenant_id: UUID, employee_id: UUID) -> Employee:
        """Raises EmployeeNotFoundError if the employee is not in this tenant."""
        result = await self.session.execute(
            select(Employee).where(
                Employee.employee_id == employee_id,
                Employee.tenant_id == tenant_id,
            )
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(employee_id=employee_id)
        return employee

    async def find_by_email(self, tenant_id: UUID, email: str) -> Employee | None:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.tenant_id == tenant_id, Employee.email == email)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def require_by_email(self, tenant_id: UUID, email: str) -> Employee:
        employee = await self.find_by_email(tenant_id, email)
        if employee is None:
            raise EmployeeNotFoundError(email=email)
        return employee

    async def list_employees(self, tenant_id: UUID, search: str | None = None) -> list[Employee]:
        """Employees of a tenant, newest first, optionally filtered by a search term.

        The term matches name, email or employee code, case-insensitively.
        """
        stmt = select(Employee).where(Employee.tenant_id == tenant_id)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(
                or_(
                    Employee.full_name.ilike(pattern),
                    Employee.email.ilike(pattern),
                    Employee.employee_code.ilike(pattern),
                )
            )
        result = await self.session.execute(
            stmt.order_by(Employee.created_at.desc(), Employee.employee_code)
        )
        return list(result.scalars().all())

    async def add_compensation(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        *,
        effective_from: date,
        ctc: Decimal,
        created_by: UUID | None = None,
        **components: Any,
    ) -> CompensationStructure:
        """Append a compensation version for an employee.

        Later payroll runs pick it up for months ending on or after
        effective_from. Existing versions are never edited.

        Raises:
            EmployeeNotFoundError: If the employee is not in this tenant
            CompensationAlreadyExistsError: If a version with the same
                effective_from exists
        """
        await self.get_employee(tenant_id, employee_id)

        structure_id = uuid4()
        stmt = (
            upsert(self.session, CompensationStructure)
            .values(
                compensation_structure_id=structure_id,
                tenant_id=tenant_id,
                employee_id=employee_id,
                effective_from=effective_from,
                ctc=ctc,
                created_by=created_by,
                **components,
            )
            .on_conflict_do_nothing(index_elements=["employee_id", "effective_from"])
        )
        result = await self.session.execute(stmt)
        if result.rowcount == 0:
            raise CompensationAlreadyExistsError(employee_id, effective_from)

        result = await self.session.execute(
            select(CompensationStructure).where(
                CompensationStructure.compensation_structure_id == structure_id
            )
        )
        return result.scalar_one()

    async def compensation_history(
        self, tenant_id: UUID, employee_id: UUID
    ) -> list[CompensationStructure]:
        await self.get_employee(tenant_id, employee_id)
        return await self.compensation_resolver.history(tenant_id, employee_id)

    async def latest_compensation(
        self, tenant_id: UUID, employee_id: UUID
    ) -> CompensationStructure | None:
        return await self.compensation_resolver.latest(tenant_id, employee_id)
