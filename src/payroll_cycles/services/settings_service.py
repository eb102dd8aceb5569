"""Per-tenant payroll settings with documented defaults."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.calculators.types import DEFAULT_SALARY_SETTINGS, SalarySettings
from payroll_cycles.database import upsert
from payroll_cycles.models import PayrollSettings

SETTING_FIELDS = (
    "pf_rate",
    "esi_rate",
    "pt_rate",
    "tds_threshold",
    "basic_salary_percentage",
    "hra_percentage",
    "special_allowance_percentage",
)


class SettingsService:
    """Reads and writes the per-tenant PayrollSettings row.

    Calculation code never reads the table directly; it receives a
    SalarySettings value from get_salary_settings.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_row(self, tenant_id: UUID) -> PayrollSettings | None:
        result = await self.session.execute(
            select(PayrollSettings)
            .where(PayrollSettings.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_salary_settings(self, tenant_id: UUID) -> SalarySettings:
        """Return the tenant's settings, or the defaults when none are saved."""
        row = await self.get_row(tenant_id)
        if row is None:
            return DEFAULT_SALARY_SETTINGS
        return SalarySettings(
            **{name: Decimal(str(getattr(row, name))) for name in SETTING_FIELDS}
        )

    async def save(self, tenant_id: UUID, settings: SalarySettings) -> PayrollSettings:
        """Insert or replace the tenant's settings row."""
        values = settings.to_dict()
        stmt = upsert(self.session, PayrollSettings).values(
            payroll_settings_id=uuid4(),
            tenant_id=tenant_id,
            updated_at=datetime.now(timezone.utc),
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["tenant_id"],
            set_={
                **{name: stmt.excluded[name] for name in SETTING_FIELDS},
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.session.execute(stmt)

        result = await self.session.execute(
            select(PayrollSettings)
            .where(PayrollSettings.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
