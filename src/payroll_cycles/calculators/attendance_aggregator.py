"""Loss-of-pay and paid-day aggregation from leave and attendance data."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from payroll_cycles.calculators.types import ZERO, AttendanceSummary, PayPeriodWindow
from payroll_cycles.models import AttendanceRecord, LeaveRequest, LeaveStatus, LeaveType


class AttendanceAggregator:
    """Combines LOP leave and LOP-flagged attendance into paid days.

    lop_days = approved loss-of-pay leave days overlapping the month
             + attendance rows flagged is_lop within the month

    The two sources are summed without deduplicating by date.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def aggregate(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        window: PayPeriodWindow,
    ) -> AttendanceSummary:
        """Compute LOP and paid days for an employee in a month."""
        leave_lop = await self.leave_lop_days(tenant_id, employee_id, window)
        attendance_lop = await self.attendance_lop_days(tenant_id, employee_id, window)
        return self.summarize(leave_lop + attendance_lop, window.total_working_days)

    @staticmethod
    def summarize(lop_days: Decimal, total_working_days: int) -> AttendanceSummary:
        """Derive paid days, floored at zero."""
        paid_days = max(ZERO, Decimal(total_working_days) - lop_days)
        return AttendanceSummary(
            lop_days=lop_days,
            paid_days=paid_days,
            total_working_days=total_working_days,
        )

    async def leave_lop_days(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        window: PayPeriodWindow,
    ) -> Decimal:
        """Sum days of approved LOP leave whose range intersects the month.

        A request counts if it starts in the month, ends in the month, or
        spans the whole month. Its full ``days`` value is added.
        """
        result = await self.session.execute(
            select(func.coalesce(func.sum(LeaveRequest.days), 0)).where(
                LeaveRequest.tenant_id == tenant_id,
                LeaveRequest.employee_id == employee_id,
                LeaveRequest.status == LeaveStatus.APPROVED.value,
                LeaveRequest.leave_type == LeaveType.LOSS_OF_PAY.value,
                LeaveRequest.start_date <= window.month_end,
                LeaveRequest.end_date >= window.month_start,
            )
        )
        return Decimal(str(result.scalar() or 0))

    async def attendance_lop_days(
        self,
        tenant_id: UUID,
        employee_id: UUID,
        window: PayPeriodWindow,
    ) -> Decimal:
        """Count attendance rows flagged LOP within the month."""
        result = await self.session.execute(
            select(func.count()).select_from(AttendanceRecord).where(
                AttendanceRecord.tenant_id == tenant_id,
                AttendanceRecord.employee_id == employee_id,
                AttendanceRecord.is_lop.is_(True),
                AttendanceRecord.attendance_date >= window.month_start,
                AttendanceRecord.attendance_date <= window.month_end,
            )
        )
        return Decimal(result.scalar() or 0)
