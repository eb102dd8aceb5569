"""Payroll settings, dashboard and new-cycle preview endpoints."""

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from payroll_cycles.api.dependencies import DbSession, TenantId
from payroll_cycles.api.schemas import (
    ErrorResponse,
    NewCyclePreviewResponse,
    SettingsInput,
    SettingsResponse,
    StatsResponse,
)
from payroll_cycles.services.query_service import PayrollQueryService
from payroll_cycles.services.settings_service import SettingsService

router = APIRouter(tags=["payroll"])


@router.get("/payroll-settings", response_model=SettingsResponse)
async def get_payroll_settings(db: DbSession, tenant_id: TenantId) -> SettingsResponse:
    """Get the tenant's payroll settings, or the defaults if none are saved."""
    service = SettingsService(db)
    row = await service.get_row(tenant_id)
    settings = await service.get_salary_settings(tenant_id)
    return SettingsResponse(**settings.to_dict(), is_default=row is None)


@router.post("/payroll-settings", response_model=SettingsResponse)
async def save_payroll_settings(
    db: DbSession,
    tenant_id: TenantId,
    payload: SettingsInput,
) -> SettingsResponse:
    """Create or replace the tenant's payroll settings."""
    row = await SettingsService(db).save(tenant_id, payload.to_settings())
    await db.commit()
    return SettingsResponse.model_validate(row)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(db: DbSession, tenant_id: TenantId) -> StatsResponse:
    """Dashboard figures. Completes cycles of past months first."""
    stats = await PayrollQueryService(db).dashboard_stats(tenant_id)
    await db.commit()
    return StatsResponse(
        total_employees=stats.total_employees,
        monthly_payroll=stats.monthly_payroll,
        pending_approvals=stats.pending_approvals,
        active_cycles=stats.active_cycles,
    )


@router.get(
    "/payroll/new-cycle-data",
    response_model=NewCyclePreviewResponse,
    responses={400: {"model": ErrorResponse}},
)
async def get_new_cycle_data(
    db: DbSession,
    tenant_id: TenantId,
    year: Annotated[int | None, Query(ge=1, le=9999)] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
) -> NewCyclePreviewResponse:
    """Headcount and monthly cost for a prospective cycle (default: this month)."""
    today = date.today()
    year = year or today.year
    month = month or today.month
    preview = await PayrollQueryService(db).new_cycle_preview(tenant_id, year, month)
    return NewCyclePreviewResponse(
        year=year,
        month=month,
        employee_count=preview.employee_count,
        total_compensation=preview.total_compensation,
    )
