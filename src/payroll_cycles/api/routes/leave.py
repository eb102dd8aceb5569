"""Leave request and attendance endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, status

from payroll_cycles.api.dependencies import Caller, DbSession, TenantId
from payroll_cycles.api.routes.employees import EmployeeId, require_email
from payroll_cycles.api.schemas import (
    AttendanceInput,
    AttendanceResponse,
    ErrorResponse,
    LeaveDecisionInput,
    LeaveRequestInput,
    LeaveRequestResponse,
    LeaveSummaryResponse,
)
from payroll_cycles.services.employee_service import EmployeeService
from payroll_cycles.services.leave_service import LeaveService

router = APIRouter(tags=["leave"])

Year = Annotated[int | None, Query(ge=1, le=9999)]
Month = Annotated[int | None, Query(ge=1, le=12)]


def _month_or_current(year: int | None, month: int | None) -> tuple[int, int]:
    today = date.today()
    return year or today.year, month or today.month


@router.post(
    "/leave-requests/me",
    response_model=LeaveRequestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def create_my_leave(
    db: DbSession,
    caller: Caller,
    payload: LeaveRequestInput,
) -> LeaveRequestResponse:
    """File a pending leave request for the calling employee."""
    employee = await EmployeeService(db).require_by_email(caller.tenant_id, require_email(caller))
    leave = await LeaveService(db).create_leave_request(
        caller.tenant_id,
        employee.employee_id,
        leave_type=payload.leave_type.value,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days=payload.days,
        reason=payload.reason,
    )
    await db.commit()
    return LeaveRequestResponse.model_validate(leave)


@router.get(
    "/leave-requests/me",
    response_model=list[LeaveRequestResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def list_my_leave(
    db: DbSession,
    caller: Caller,
    year: Year = None,
    month: Month = None,
) -> list[LeaveRequestResponse]:
    """Leave requests of the calling employee; filtered to a month when both are given."""
    employee = await EmployeeService(db).require_by_email(caller.tenant_id, require_email(caller))
    leaves = await LeaveService(db).list_leave_requests(
        caller.tenant_id, employee.employee_id, year, month
    )
    return [LeaveRequestResponse.model_validate(leave) for leave in leaves]


@router.get(
    "/leave-requests/me/summary",
    response_model=LeaveSummaryResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def get_my_leave_summary(
    db: DbSession,
    caller: Caller,
    year: Year = None,
    month: Month = None,
) -> LeaveSummaryResponse:
    """Approved leave by type with LOP and paid days for a month (default: current)."""
    employee = await EmployeeService(db).require_by_email(caller.tenant_id, require_email(caller))
    summary = await LeaveService(db).leave_summary(
        caller.tenant_id, employee.employee_id, *_month_or_current(year, month)
    )
    return LeaveSummaryResponse.model_validate(summary)


@router.post(
    "/leave-requests/{leave_request_id}/decision",
    response_model=LeaveRequestResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def decide_leave(
    db: DbSession,
    tenant_id: TenantId,
    leave_request_id: Annotated[UUID, Path()],
    payload: LeaveDecisionInput,
) -> LeaveRequestResponse:
    """Approve, reject or cancel a pending leave request.

    Approved loss-of-pay leave counts in the next run of a draft cycle.
    """
    leave = await LeaveService(db).decide_leave_request(tenant_id, leave_request_id, payload.status)
    await db.commit()
    return LeaveRequestResponse.model_validate(leave)


@router.get(
    "/attendance/me",
    response_model=list[AttendanceResponse],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def list_my_attendance(
    db: DbSession,
    caller: Caller,
    year: Year = None,
    month: Month = None,
) -> list[AttendanceResponse]:
    """Attendance of the calling employee for a month (default: current)."""
    employee = await EmployeeService(db).require_by_email(caller.tenant_id, require_email(caller))
    records = await LeaveService(db).list_attendance(
        caller.tenant_id, employee.employee_id, *_month_or_current(year, month)
    )
    return [AttendanceResponse.model_validate(r) for r in records]


@router.post(
    "/employees/{employee_id}/attendance",
    response_model=AttendanceResponse,
    responses={404: {"model": ErrorResponse}},
)
async def record_attendance(
    db: DbSession,
    tenant_id: TenantId,
    employee_id: EmployeeId,
    payload: AttendanceInput,
) -> AttendanceResponse:
    """Record or replace one day of attendance for an employee."""
    await EmployeeService(db).get_employee(tenant_id, employee_id)
    record = await LeaveService(db).record_attendance(
        tenant_id,
        employee_id,
        attendance_date=payload.attendance_date,
        status=payload.status,
        is_lop=payload.is_lop,
    )
    await db.commit()
    return AttendanceResponse.model_validate(record)
