"""Error taxonomy for payroll cycle processing."""

from __future__ import annotations

from uuid import UUID


class PayrollError(Exception):
    """Base class for all payroll engine errors."""

    code = "PAYROLL_ERROR"


class InvalidPeriodError(PayrollError):
    """Raised for a year/month that does not name a calendar month."""

    code = "INVALID_PERIOD"

    def __init__(self, year: int, month: int, reason: str | None = None):
        self.year = year
        self.month = month
        msg = f"Invalid payroll period {year}-{month}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CycleNotFoundError(PayrollError):
    """Raised when a payroll cycle does not exist for the tenant."""

    code = "CYCLE_NOT_FOUND"

    def __init__(self, payroll_cycle_id: UUID | None = None, period: str | None = None):
        self.payroll_cycle_id = payroll_cycle_id
        self.period = period
        target = str(payroll_cycle_id) if payroll_cycle_id else period
        super().__init__(f"Payroll cycle {target} not found")


class IllegalTransitionError(PayrollError):
    """Raised when a cycle transition or its precondition is violated."""

    code = "ILLEGAL_TRANSITION"

    def __init__(self, from_status: str | None, event: str, reason: str | None = None):
        self.from_status = from_status
        self.event = event
        self.reason = reason
        msg = f"Cannot {event} payroll cycle in status '{from_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class CycleAlreadyExistsError(IllegalTransitionError):
    """Raised when creating a second cycle for the same tenant and month."""

    code = "CYCLE_EXISTS"

    def __init__(self, year: int, month: int):
        self.year = year
        self.month = month
        super().__init__(
            None,
            "create",
            f"a payroll cycle for {year}-{month:02d} already exists",
        )


class CompensationMissingError(PayrollError):
    """Raised when an employee has no compensation effective on a date.

    The orchestrator treats this as a skip for that employee, not a failure.
    """

    code = "COMPENSATION_MISSING"

    def __init__(self, employee_id: UUID, as_of_date):
        self.employee_id = employee_id
        self.as_of_date = as_of_date
        super().__init__(
            f"No compensation structure effective for employee {employee_id} "
            f"on {as_of_date}"
        )


class PersistenceFailureError(PayrollError):
    """Raised when the storage layer fails; always propagated to the caller."""

    code = "PERSISTENCE_FAILURE"


class EmployeeNotFoundError(PayrollError):
    """Raised when an employee does not exist for the tenant."""

    code = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: UUID | None = None, email: str | None = None):
        self.employee_id = employee_id
        self.email = email
        target = str(employee_id) if employee_id else email
        super().__init__(f"Employee {target} not found")


class EmployeeAlreadyExistsError(PayrollError):
    """Raised when an employee code is already taken within the tenant."""

    code = "EMPLOYEE_EXISTS"

    def __init__(self, employee_code: str):
        self.employee_code = employee_code
        super().__init__(f"An employee with code '{employee_code}' already exists")


class CompensationAlreadyExistsError(PayrollError):
    """Raised when an employee already has a structure with the same effective date."""

    code = "COMPENSATION_EXISTS"

    def __init__(self, employee_id: UUID, effective_from):
        self.employee_id = employee_id
        self.effective_from = effective_from
        super().__init__(f"Compensation effective {effective_from} already exists")


class LeaveRequestNotFoundError(PayrollError):
    code = "LEAVE_REQUEST_NOT_FOUND"

    def __init__(self, leave_request_id: UUID):
        self.leave_request_id = leave_request_id
        super().__init__(f"Leave request {leave_request_id} not found")


class LeaveAlreadyDecidedError(PayrollError):
    """Raised when deciding a leave request that is no longer pending."""

    code = "LEAVE_ALREADY_DECIDED"

    def __init__(self, leave_request_id: UUID, status: str):
        self.leave_request_id = leave_request_id
        self.status = status
        super().__init__(f"Leave request {leave_request_id} is already {status}")


class RejectionReasonRequiredError(PayrollError):
    """Raised when a cycle is rejected without a reason."""

    code = "REJECTION_REASON_REQUIRED"

    def __init__(self):
        super().__init__("A rejection reason is required")
