"""Payroll cycle API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from payroll_cycles.api.dependencies import Caller, DbSession, TenantId
from payroll_cycles.api.schemas import (
    CreateCycleInput,
    CreateCycleResponse,
    CycleItemResponse,
    CycleRunResponse,
    ErrorResponse,
    PayrollCycleListResponse,
    PayrollCycleResponse,
    PayrollItemResponse,
    ProcessCycleInput,
    RejectCycleInput,
)
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.orchestrator import CycleOrchestrator, CycleRunResult
from payroll_cycles.services.query_service import PayrollQueryService

router = APIRouter(prefix="/payroll-cycles", tags=["payroll-cycles"])

CycleId = Annotated[UUID, Path()]


def _run_response(run: CycleRunResult) -> CycleRunResponse:
    return CycleRunResponse(
        payroll_cycle_id=run.payroll_cycle_id,
        period=run.period,
        eligible_count=run.eligible_count,
        processed_count=len(run.processed),
        skipped=run.skipped,
        errors=run.errors,
        removed_count=run.removed_count,
        ctc_fallback=run.ctc_fallback,
        no_eligible_employees=run.no_eligible_employees,
        total_employees=run.total_employees,
        total_amount=run.total_amount,
    )


# ============================================================================
# Payroll Cycle CRUD
# ============================================================================


@router.post(
    "",
    response_model=CreateCycleResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_cycle(
    db: DbSession,
    caller: Caller,
    payload: CreateCycleInput,
) -> CreateCycleResponse:
    """Create a payroll cycle in draft, optionally computing its items."""
    service = CycleService(db)
    cycle = await service.create_cycle(
        caller.tenant_id,
        payload.year,
        payload.month,
        payday=payload.payday,
        actor_user_id=caller.user_id,
    )

    run = None
    if payload.compute_items:
        run = await CycleOrchestrator(db).run_cycle(caller.tenant_id, cycle.payroll_cycle_id)
        cycle = await service.get_cycle(caller.tenant_id, cycle.payroll_cycle_id)

    await db.commit()
    return CreateCycleResponse(
        cycle=PayrollCycleResponse.model_validate(cycle),
        run=_run_response(run) if run is not None else None,
    )


@router.get(
    "",
    response_model=PayrollCycleListResponse,
    responses={400: {"model": ErrorResponse}},
)
async def list_cycles(db: DbSession, tenant_id: TenantId) -> PayrollCycleListResponse:
    """List the tenant's payroll cycles, newest month first."""
    cycles = await CycleService(db).list_cycles(tenant_id)
    return PayrollCycleListResponse(
        items=[PayrollCycleResponse.model_validate(c) for c in cycles],
        total=len(cycles),
    )


@router.get(
    "/{payroll_cycle_id}",
    response_model=PayrollCycleResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_cycle(
    db: DbSession,
    tenant_id: TenantId,
    payroll_cycle_id: CycleId,
) -> PayrollCycleResponse:
    """Get a specific payroll cycle by ID."""
    cycle = await CycleService(db).get_cycle(tenant_id, payroll_cycle_id)
    return PayrollCycleResponse.model_validate(cycle)


@router.get(
    "/{payroll_cycle_id}/items",
    response_model=list[CycleItemResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_cycle_items(
    db: DbSession,
    tenant_id: TenantId,
    payroll_cycle_id: CycleId,
) -> list[CycleItemResponse]:
    """List the payroll items of a cycle."""
    rows = await PayrollQueryService(db).cycle_items(tenant_id, payroll_cycle_id)
    return [
        CycleItemResponse(
            **PayrollItemResponse.model_validate(item).model_dump(),
            employee_code=employee.employee_code,
            full_name=employee.full_name,
        )
        for item, employee in rows
    ]


# ============================================================================
# Computation and workflow
# ============================================================================


@router.post(
    "/{payroll_cycle_id}/run",
    response_model=CycleRunResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def run_cycle(
    db: DbSession,
    tenant_id: TenantId,
    payroll_cycle_id: CycleId,
) -> CycleRunResponse:
    """Recompute every eligible employee's item. Idempotent."""
    run = await CycleOrchestrator(db).run_cycle(tenant_id, payroll_cycle_id)
    await db.commit()
    return _run_response(run)


@router.post(
    "/{payroll_cycle_id}/submit",
    response_model=PayrollCycleResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def submit_cycle(
    db: DbSession,
    caller: Caller,
    payroll_cycle_id: CycleId,
) -> PayrollCycleResponse:
    """Submit a draft cycle for approval."""
    cycle = await CycleService(db).submit(caller.tenant_id, payroll_cycle_id, caller.user_id)
    await db.commit()
    return PayrollCycleResponse.model_validate(cycle)


@router.post(
    "/{payroll_cycle_id}/approve",
    response_model=PayrollCycleResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_cycle(
    db: DbSession,
    caller: Caller,
    payroll_cycle_id: CycleId,
) -> PayrollCycleResponse:
    """Approve a pending cycle and lock its items."""
    cycle = await CycleService(db).approve(caller.tenant_id, payroll_cycle_id, caller.user_id)
    await db.commit()
    return PayrollCycleResponse.model_validate(cycle)


@router.post(
    "/{payroll_cycle_id}/reject",
    response_model=PayrollCycleResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_cycle(
    db: DbSession,
    caller: Caller,
    payroll_cycle_id: CycleId,
    payload: RejectCycleInput,
) -> PayrollCycleResponse:
    """Send a pending cycle back to draft."""
    cycle = await CycleService(db).reject(
        caller.tenant_id, payroll_cycle_id, payload.reason, caller.user_id
    )
    await db.commit()
    return PayrollCycleResponse.model_validate(cycle)


@router.post(
    "/{payroll_cycle_id}/process",
    response_model=PayrollCycleResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def process_cycle(
    db: DbSession,
    caller: Caller,
    payroll_cycle_id: CycleId,
    payload: ProcessCycleInput | None = None,
) -> PayrollCycleResponse:
    """Move an approved cycle to processing. Amounts are not recomputed."""
    cycle = await CycleService(db).process(caller.tenant_id, payroll_cycle_id, caller.user_id)
    await db.commit()
    return PayrollCycleResponse.model_validate(cycle)
