"""ORM models."""

from payroll_cycles.models.base import Base, CreatedAtMixin, UpdatedAtMixin
from payroll_cycles.models.employee import (
    AttendanceRecord,
    CompensationStructure,
    Employee,
    EmployeeStatus,
    LeaveRequest,
    LeaveStatus,
    LeaveType,
)
from payroll_cycles.models.payroll import PayrollCycle, PayrollItem, PayrollSettings
from payroll_cycles.models.tenant import Tenant

__all__ = [
    "AttendanceRecord",
    "Base",
    "CompensationStructure",
    "CreatedAtMixin",
    "Employee",
    "EmployeeStatus",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "PayrollCycle",
    "PayrollItem",
    "PayrollSettings",
    "Tenant",
    "UpdatedAtMixin",
]
