"""Integration test fixtures: the FastAPI app over the test database."""

from collections.abc import AsyncGenerator
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from payroll_cycles.api.app import create_app
from payroll_cycles.api.dependencies import get_db_session


@pytest_asyncio.fixture(scope="function")
async def client(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client bound to the per-test database."""
    app = create_app()

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def headers(tenant) -> dict[str, str]:
    """Auth headers for an HR user of the test tenant."""
    return {"X-Tenant-ID": str(tenant.tenant_id), "X-User-ID": str(uuid4())}


@pytest.fixture
def previous_month_start() -> date:
    return (date.today().replace(day=1) - timedelta(days=1)).replace(day=1)


@pytest_asyncio.fixture(scope="function")
async def staffed_tenant(tenant, make_employee, add_compensation, previous_month_start):
    """Tenant with two paid employees who joined last month."""
    employees = []
    for email in ("asha@example.com", "ravi@example.com"):
        employee = await make_employee(
            tenant, date_of_joining=previous_month_start, email=email
        )
        await add_compensation(
            employee,
            effective_from=previous_month_start,
            ctc=Decimal("600000"),
            basic_salary=Decimal("20000"),
            hra=Decimal("10000"),
            special_allowance=Decimal("5000"),
        )
        employees.append(employee)
    return employees
