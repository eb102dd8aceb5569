"""Employee endpoints: records, compensation and payslips."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, HTTPException, Path, Query, status

from payroll_cycles.api.dependencies import Caller, DbSession, TenantId
from payroll_cycles.api.schemas import (
    CompensationInput,
    CompensationResponse,
    EmployeeInput,
    EmployeeProfileResponse,
    EmployeeResponse,
    ErrorResponse,
    PayrollItemResponse,
    PayslipResponse,
)
from payroll_cycles.services.employee_service import EmployeeService
from payroll_cycles.services.query_service import PayrollQueryService

router = APIRouter(tags=["employees"])

EmployeeId = Annotated[UUID, Path()]


def require_email(caller: Caller) -> str:
    if not caller.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-User-Email header is required",
        )
    return caller.email


@router.post(
    "/employees",
    response_model=EmployeeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ErrorResponse}},
)
async def create_employee(
    db: DbSession,
    tenant_id: TenantId,
    payload: EmployeeInput,
) -> EmployeeResponse:
    """Add an employee; codes are unique within the tenant."""
    employee = await EmployeeService(db).create_employee(
        tenant_id,
        **payload.model_dump(exclude={"status"}),
        status=payload.status.value,
    )
    await db.commit()
    return EmployeeResponse.model_validate(employee)


@router.get("/employees", response_model=list[EmployeeResponse])
async def list_employees(
    db: DbSession,
    tenant_id: TenantId,
    q: Annotated[str | None, Query(max_length=200)] = None,
) -> list[EmployeeResponse]:
    """Employees of the tenant, newest first, optionally searched by name, email or code."""
    employees = await EmployeeService(db).list_employees(tenant_id, q)
    return [EmployeeResponse.model_validate(e) for e in employees]


@router.get(
    "/employees/me",
    response_model=EmployeeProfileResponse | None,
    responses={400: {"model": ErrorResponse}},
)
async def get_me(db: DbSession, caller: Caller) -> EmployeeProfileResponse | None:
    """The calling employee, or null when the email matches nobody."""
    email = require_email(caller)
    service = EmployeeService(db)
    employee = await service.find_by_email(caller.tenant_id, email)
    if employee is None:
        return None
    latest = await service.latest_compensation(caller.tenant_id, employee.employee_id)
    return EmployeeProfileResponse(
        **EmployeeResponse.model_validate(employee).model_dump(),
        latest_compensation=CompensationResponse.model_validate(latest) if latest else None,
    )


@router.get(
    "/payslips",
    response_model=list[PayslipResponse],
    responses={400: {"model": ErrorResponse}},
)
async def list_payslips(db: DbSession, caller: Caller) -> list[PayslipResponse]:
    """Payslip history of the calling employee, newest month first.

    Past months without a cycle or item are computed on the way.
    """
    email = require_email(caller)
    payslips = await PayrollQueryService(db).payslips_for_employee(caller.tenant_id, email)
    await db.commit()
    return [
        PayslipResponse(
            **PayrollItemResponse.model_validate(p.item).model_dump(),
            year=p.year,
            month=p.month,
            cycle_status=p.cycle_status,
        )
        for p in payslips
    ]


@router.get(
    "/employees/me/compensation",
    response_model=CompensationResponse | None,
    responses={400: {"model": ErrorResponse}},
)
async def get_my_compensation(db: DbSession, caller: Caller) -> CompensationResponse | None:
    """Compensation in force today for the calling employee."""
    email = require_email(caller)
    structure = await PayrollQueryService(db).current_compensation_for_email(
        caller.tenant_id, email
    )
    if structure is None:
        return None
    return CompensationResponse.model_validate(structure)


@router.get(
    "/employees/{employee_id}/compensation",
    response_model=list[CompensationResponse],
    responses={404: {"model": ErrorResponse}},
)
async def list_compensation(
    db: DbSession,
    tenant_id: TenantId,
    employee_id: EmployeeId,
) -> list[CompensationResponse]:
    """Compensation history of an employee, newest first."""
    history = await EmployeeService(db).compensation_history(tenant_id, employee_id)
    return [CompensationResponse.model_validate(c) for c in history]


@router.post(
    "/employees/{employee_id}/compensation",
    response_model=CompensationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def add_compensation(
    db: DbSession,
    caller: Caller,
    employee_id: EmployeeId,
    payload: CompensationInput,
) -> CompensationResponse:
    """Add an effective-dated compensation structure.

    Later payroll runs pick it up for months ending on or after effective_from.
    """
    structure = await EmployeeService(db).add_compensation(
        caller.tenant_id,
        employee_id,
        created_by=caller.user_id,
        **payload.model_dump(),
    )
    await db.commit()
    return CompensationResponse.model_validate(structure)
