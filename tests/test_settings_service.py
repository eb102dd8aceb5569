"""Tests for per-tenant payroll settings."""

from dataclasses import replace
from decimal import Decimal

from payroll_cycles.calculators.types import DEFAULT_SALARY_SETTINGS
from payroll_cycles.services.settings_service import SettingsService


class TestSettingsService:
    """Test defaults and upsert of the settings row."""

    async def test_defaults_when_unset(self, session, tenant):
        service = SettingsService(session)
        assert await service.get_row(tenant.tenant_id) is None
        assert await service.get_salary_settings(tenant.tenant_id) == DEFAULT_SALARY_SETTINGS

    async def test_save_then_replace(self, session, tenant):
        service = SettingsService(session)

        first = replace(DEFAULT_SALARY_SETTINGS, pf_rate=Decimal("10"))
        row = await service.save(tenant.tenant_id, first)
        assert row.pf_rate == Decimal("10")

        second = replace(first, pt_rate=Decimal("150"))
        row_again = await service.save(tenant.tenant_id, second)
        assert row_again.payroll_settings_id == row.payroll_settings_id

        loaded = await service.get_salary_settings(tenant.tenant_id)
        assert loaded.pf_rate == Decimal("10")
        assert loaded.pt_rate == Decimal("150")
        assert loaded.tds_threshold == DEFAULT_SALARY_SETTINGS.tds_threshold

    async def test_settings_are_per_tenant(self, session, tenant, other_tenant):
        service = SettingsService(session)
        await service.save(tenant.tenant_id, replace(DEFAULT_SALARY_SETTINGS, pf_rate=Decimal("8")))

        assert await service.get_salary_settings(other_tenant.tenant_id) == DEFAULT_SALARY_SETTINGS
