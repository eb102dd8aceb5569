"""Payroll cycle services."""

from payroll_cycles.services.backfill import BackfillResult, BackfillScheduler
from payroll_cycles.services.cycle_service import CycleService
from payroll_cycles.services.employee_service import EmployeeService
from payroll_cycles.services.leave_service import LeaveService, LeaveSummary
from payroll_cycles.services.orchestrator import CycleOrchestrator, CycleRunResult
from payroll_cycles.services.query_service import PayrollQueryService
from payroll_cycles.services.settings_service import SettingsService
from payroll_cycles.services.state_machine import CycleEvent, CycleStateMachine, CycleStatus

__all__ = [
    "BackfillResult",
    "BackfillScheduler",
    "CycleEvent",
    "CycleOrchestrator",
    "CycleRunResult",
    "CycleService",
    "CycleStateMachine",
    "CycleStatus",
    "EmployeeService",
    "LeaveService",
    "LeaveSummary",
    "PayrollQueryService",
    "SettingsService",
]
