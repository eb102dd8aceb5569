"""Pytest fixtures for payroll cycle engine tests."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from payroll_cycles.models import (
    AttendanceRecord,
    Base,
    CompensationStructure,
    Employee,
    LeaveRequest,
    Tenant,
)

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ============================================================================
# Domain data factories
# ============================================================================


@pytest.fixture
async def tenant(session: AsyncSession) -> Tenant:
    """Create a test tenant."""
    tenant = Tenant(tenant_id=uuid4(), company_name="Acme Manufacturing")
    session.add(tenant)
    await session.commit()
    return tenant


@pytest.fixture
async def other_tenant(session: AsyncSession) -> Tenant:
    """A second tenant for isolation checks."""
    tenant = Tenant(tenant_id=uuid4(), company_name="Globex Traders")
    session.add(tenant)
    await session.commit()
    return tenant


@pytest.fixture
def make_employee(session: AsyncSession):
    """Factory for employees; commits immediately."""
    counter = {"n": 0}

    async def _make(
        tenant: Tenant,
        *,
        date_of_joining: date = date(2024, 1, 1),
        status: str = "active",
        email: str | None = None,
    ) -> Employee:
        counter["n"] += 1
        employee = Employee(
            employee_id=uuid4(),
            tenant_id=tenant.tenant_id,
            employee_code=f"EMP{counter['n']:03d}",
            full_name=f"Employee {counter['n']}",
            email=email or f"employee{counter['n']}@example.com",
            status=status,
            date_of_joining=date_of_joining,
        )
        session.add(employee)
        await session.commit()
        return employee

    return _make


@pytest.fixture
def add_compensation(session: AsyncSession):
    """Factory for compensation structures; commits immediately."""

    async def _add(
        employee: Employee,
        *,
        effective_from: date = date(2024, 1, 1),
        ctc: Decimal = Decimal("600000"),
        basic_salary: Decimal = Decimal("20000"),
        hra: Decimal = Decimal("10000"),
        special_allowance: Decimal = Decimal("5000"),
        da: Decimal = Decimal("0"),
        lta: Decimal = Decimal("0"),
        bonus: Decimal = Decimal("0"),
    ) -> CompensationStructure:
        structure = CompensationStructure(
            compensation_structure_id=uuid4(),
            tenant_id=employee.tenant_id,
            employee_id=employee.employee_id,
            effective_from=effective_from,
            ctc=ctc,
            basic_salary=basic_salary,
            hra=hra,
            special_allowance=special_allowance,
            da=da,
            lta=lta,
            bonus=bonus,
        )
        session.add(structure)
        await session.commit()
        return structure

    return _add


@pytest.fixture
def add_leave(session: AsyncSession):
    """Factory for leave requests; defaults to approved loss-of-pay."""

    async def _add(
        employee: Employee,
        start_date: date,
        end_date: date,
        days: Decimal,
        *,
        leave_type: str = "loss_of_pay",
        status: str = "approved",
    ) -> LeaveRequest:
        leave = LeaveRequest(
            leave_request_id=uuid4(),
            tenant_id=employee.tenant_id,
            employee_id=employee.employee_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            status=status,
            days=days,
        )
        session.add(leave)
        await session.commit()
        return leave

    return _add


@pytest.fixture
def add_attendance(session: AsyncSession):
    """Factory for attendance rows."""

    async def _add(
        employee: Employee,
        attendance_date: date,
        *,
        is_lop: bool = True,
        status: str = "absent",
    ) -> AttendanceRecord:
        record = AttendanceRecord(
            attendance_record_id=uuid4(),
            tenant_id=employee.tenant_id,
            employee_id=employee.employee_id,
            attendance_date=attendance_date,
            status=status,
            is_lop=is_lop,
        )
        session.add(record)
        await session.commit()
        return record

    return _add
