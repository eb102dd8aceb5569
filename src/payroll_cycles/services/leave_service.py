"""Leave requests and attendance records - the inputs to LOP aggregation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.calculators.attendance_aggregator import AttendanceAggregator
from payroll_cycles.calculators.time_window import resolve_pay_period
from payroll_cycles.database import upsert
from payroll_cycles.errors import LeaveAlreadyDecidedError, LeaveRequestNotFoundError
from payroll_cycles.models import AttendanceRecord, LeaveRequest, LeaveStatus, LeaveType

logger = logging.getLogger(__name__)

DECISION_STATUSES = frozenset(
    {LeaveStatus.APPROVED.value, LeaveStatus.REJECTED.value, LeaveStatus.CANCELLED.value}
)


@dataclass(frozen=True)
class LeaveSummary:
    """Leave taken and paid days for one employee-month."""

    year: int
    month: int
    sick_leave_days: Decimal
    casual_leave_days: Decimal
    earned_leave_days: Decimal
    lop_days: Decimal
    paid_days: Decimal
    total_working_days: int


def inclusive_days(start_date: date, end_date: date) -> Decimal:
    return Decimal((end_date - start_date).days + 1)


class LeaveService:
    """Tenant-scoped leave and attendance reads and writes.

    New leave requests start as pending. Only approved loss-of-pay leave
    reduces pay, and only for cycles whose items are still editable.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.attendance_aggregator = AttendanceAggregator(session)

    async def create_leave_request(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        *,
        leave_type: str,
        start_date: date,
        end_date: date,
        days: Decimal | None = None,
        reason: str | None = None,
    ) -> LeaveRequest:
        """File a pending leave request.

        days defaults to the calendar days from start_date to end_date
        inclusive.

        Raises:
            ValueError: If end_date is before start_date
        """
        if end_date < start_date:
            raise ValueError("end_date must not be before start_date")

        leave = LeaveRequest(
            leave_request_id=uuid4(),
            tenant_id=tenant_id,
            employee_id=employee_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days=days if days is not None else inclusive_days(start_date, end_date),
            status=LeaveStatus.PENDING.value,
            reason=reason,
        )
        self.session.add(leave)
        await self.session.flush()
        await self.session.refresh(leave)
        return leave

    async def decide_leave_request(
        self, tenant_id: UUID, leave_request_id: UUID, status: str
    ) -> LeaveRequest:
        """Move a pending request to approved, rejected or cancelled.

        Raises:
            ValueError: If status is not a decision status
            LeaveRequestNotFoundError: If the request is not in this tenant
            LeaveAlreadyDecidedError: If the request is no longer pending
        """
        if status not in DECISION_STATUSES:
            raise ValueError(f"'{status}' is not a leave decision")

        result = await self.session.execute(
            update(LeaveRequest)
            .where(
                LeaveRequest.leave_request_id == leave_request_id,
                LeaveRequest.tenant_id == tenant_id,
                LeaveRequest.status == LeaveStatus.PENDING.value,
            )
            .values(status=status)
            .execution_options(synchronize_session=False)
        )
        leave = await self.get_leave_request(tenant_id, leave_request_id)
        if result.rowcount == 0:
            raise LeaveAlreadyDecidedError(leave_request_id, leave.status)

        logger.info("Leave request %s %s", leave_request_id, status)
        return leave

    async def get_leave_request(self, tenant_id: UUID, leave_request_id: UUID) -> LeaveRequest:
        result = await self.session.execute(
            select(LeaveRequest)
            .where(
                LeaveRequest.leave_request_id == leave_request_id,
                LeaveRequest.tenant_id == tenant_id,
            )
            .execution_options(populate_existing=True)
        )
        leave = result.scalar_one_or_none()
        if leave is None:
            raise LeaveRequestNotFoundError(leave_request_id)
        return leave

    async def list_leave_requests(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        year: int | None = None,
        month: int | None = None,
    ) -> list[LeaveRequest]:
        """Requests of an employee, latest start first.

        With year and month, only requests overlapping that month.
        """
        stmt = select(LeaveRequest).where(
            LeaveRequest.tenant_id == tenant_id,
            LeaveRequest.employee_id == employee_id,
        )
        if year is not None and month is not None:
            window = resolve_pay_period(year, month)
            stmt = stmt.where(
                LeaveRequest.start_date <= window.month_end,
                LeaveRequest.end_date >= window.month_start,
            )
        result = await self.session.execute(
            stmt.order_by(LeaveRequest.start_date.desc()).execution_options(
                populate_existing=True
            )
        )
        return list(result.scalars().all())

    async def leave_summary(
        self, tenant_id: UUID, employee_id: UUID, year: int, month: int
    ) -> LeaveSummary:
        """Approved leave by type plus the LOP figures payroll would use."""
        window = resolve_pay_period(year, month)
        result = await self.session.execute(
            select(LeaveRequest.leave_type, func.coalesce(func.sum(LeaveRequest.days), 0))
            .where(
                LeaveRequest.tenant_id == tenant_id,
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.start_date <= window.month_end,
                LeaveRequest.end_date >= window.month_start,
            )
            .group_by(LeaveRequest.leave_type)
        )
        by_type = {leave_type: Decimal(str(days)) for leave_type, days in result.all()}
        attendance = await self.attendance_aggregator.aggregate(tenant_id, employee_id, window)

        return LeaveSummary(
            year=year,
            month=month,
            sick_leave_days=by_type.get(LeaveType.SICK.value, Decimal("0")),
            casual_leave_days=by_type.get(LeaveType.CASUAL.value, Decimal("0")),
            earned_leave_days=by_type.get(LeaveType.EARNED.value, Decimal("0")),
            lop_days=attendance.lop_days,
            paid_days=attendance.paid_days,
            total_working_days=attendance.total_working_days,
        )

    async def record_attendance(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        *,
        attendance_date: date,
        status: str,
        is_lop: bool = False,
    ) -> AttendanceRecord:
        """Insert or replace the attendance row for one employee-date."""
        stmt = upsert(self.session, AttendanceRecord).values(
            attendance_record_id=uuid4(),
            tenant_id=tenant_id,
            employee_id=employee_id,
            attendance_date=attendance_date,
            status=status,
            is_lop=is_lop,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["employee_id", "attendance_date"],
            set_={"status": stmt.excluded.status, "is_lop": stmt.excluded.is_lop},
        )
        await self.session.execute(stmt)

        result = await self.session.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date == attendance_date,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def list_attendance(
        self, tenant_id: UUID, employee_id: UUID, year: int, month: int
    ) -> list[AttendanceRecord]:
        """Attendance rows of an employee within a month, by date."""
        window = resolve_pay_period(year, month)
        result = await self.session.execute(
            select(AttendanceRecord)
            .where(
                AttendanceRecord.tenant_id == tenant_id,
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.attendance_date >= window.month_start,
                AttendanceRecord.attendance_date <= window.month_end,
            )
            .order_by(AttendanceRecord.attendance_date)
        )
        return list(result.scalars().all())
