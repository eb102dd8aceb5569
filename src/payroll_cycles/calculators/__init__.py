"""Payroll calculation components."""

from payroll_cycles.calculators.attendance_aggregator import AttendanceAggregator
from payroll_cycles.calculators.compensation_resolver import CompensationResolver
from payroll_cycles.calculators.salary_calculator import SalaryCalculator, calculate_salary
from payroll_cycles.calculators.time_window import resolve_pay_period
from payroll_cycles.calculators.types import (
    DEFAULT_SALARY_SETTINGS,
    AttendanceSummary,
    CompensationComponents,
    PayPeriodWindow,
    SalaryBreakdown,
    SalarySettings,
)

__all__ = [
    "AttendanceAggregator",
    "AttendanceSummary",
    "CompensationComponents",
    "CompensationResolver",
    "DEFAULT_SALARY_SETTINGS",
    "PayPeriodWindow",
    "SalaryBreakdown",
    "SalaryCalculator",
    "SalarySettings",
    "calculate_salary",
    "resolve_pay_period",
]
