"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import Decimal
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from payroll_cycles.calculators.types import DEFAULT_SALARY_SETTINGS, SalarySettings
from payroll_cycles.models import EmployeeStatus, LeaveType


# ============================================================================
# Payroll Cycle schemas
# ============================================================================


class CreateCycleInput(BaseModel):
    """Schema for creating a payroll cycle."""

    year: int = Field(ge=1, le=9999)
    month: int = Field(ge=1, le=12)
    payday: date | None = None
    compute_items: bool = True


class ProcessCycleInput(BaseModel):
    """Schema for moving an approved cycle to processing.

    Processing relabels the cycle only, so no amounts are accepted.
    """

    model_config = ConfigDict(extra="forbid")


class RejectCycleInput(BaseModel):
    """Schema for sending a cycle back to draft."""

    reason: str = Field(min_length=1, max_length=2000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("reason must not be blank")
        return value.strip()


class PayrollCycleResponse(BaseModel):
    """Schema for payroll cycle response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_cycle_id: UUID
    tenant_id: UUID
    year: int
    month: int
    status: str
    payday: date | None = None
    total_employees: int
    total_amount: Decimal
    created_by: UUID | None = None
    submitted_by: UUID | None = None
    submitted_at: datetime | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    rejected_by: UUID | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    processed_at: datetime | None = None
    completed_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PayrollCycleListResponse(BaseModel):
    """Schema for listing payroll cycles."""

    items: list[PayrollCycleResponse]
    total: int


class CycleRunResponse(BaseModel):
    """Outcome of computing payroll items for a cycle."""

    payroll_cycle_id: UUID
    period: str
    eligible_count: int
    processed_count: int
    skipped: dict[UUID, str]
    errors: dict[UUID, str]
    removed_count: int = 0
    ctc_fallback: list[UUID] = Field(default_factory=list)
    no_eligible_employees: bool
    total_employees: int
    total_amount: Decimal


class CreateCycleResponse(BaseModel):
    cycle: PayrollCycleResponse
    run: CycleRunResponse | None = None


# ============================================================================
# Payroll Item schemas
# ============================================================================


class PayrollItemResponse(BaseModel):
    """Schema for payroll item response."""

    model_config = ConfigDict(from_attributes=True)

    payroll_item_id: UUID
    payroll_cycle_id: UUID
    employee_id: UUID
    basic_salary: Decimal
    hra: Decimal
    special_allowance: Decimal
    da: Decimal
    lta: Decimal
    bonus: Decimal
    gross_salary: Decimal
    pf_deduction: Decimal
    esi_deduction: Decimal
    pt_deduction: Decimal
    tds_deduction: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    lop_days: Decimal
    paid_days: Decimal
    total_working_days: int


class CycleItemResponse(PayrollItemResponse):
    """Payroll item with the employee's identifying fields."""

    employee_code: str
    full_name: str


class PayslipResponse(PayrollItemResponse):
    """Payroll item with its cycle's month and status."""

    year: int
    month: int
    cycle_status: str


# ============================================================================
# Settings schemas
# ============================================================================


class SettingsInput(BaseModel):
    """Schema for saving payroll settings; omitted fields take the defaults."""

    pf_rate: Decimal = Field(default=DEFAULT_SALARY_SETTINGS.pf_rate, ge=0, le=100)
    esi_rate: Decimal = Field(default=DEFAULT_SALARY_SETTINGS.esi_rate, ge=0, le=100)
    pt_rate: Decimal = Field(default=DEFAULT_SALARY_SETTINGS.pt_rate, ge=0)
    tds_threshold: Decimal = Field(default=DEFAULT_SALARY_SETTINGS.tds_threshold, ge=0)
    basic_salary_percentage: Decimal = Field(
        default=DEFAULT_SALARY_SETTINGS.basic_salary_percentage, ge=0, le=100
    )
    hra_percentage: Decimal = Field(default=DEFAULT_SALARY_SETTINGS.hra_percentage, ge=0, le=100)
    special_allowance_percentage: Decimal = Field(
        default=DEFAULT_SALARY_SETTINGS.special_allowance_percentage, ge=0, le=100
    )

    def to_settings(self) -> SalarySettings:
        return SalarySettings(**self.model_dump())


class SettingsResponse(BaseModel):
    """Effective settings for a tenant."""

    model_config = ConfigDict(from_attributes=True)

    pf_rate: Decimal
    esi_rate: Decimal
    pt_rate: Decimal
    tds_threshold: Decimal
    basic_salary_percentage: Decimal
    hra_percentage: Decimal
    special_allowance_percentage: Decimal
    is_default: bool = False


# ============================================================================
# Dashboard schemas
# ============================================================================


class StatsResponse(BaseModel):
    total_employees: int
    monthly_payroll: Decimal
    pending_approvals: int
    active_cycles: int


class NewCyclePreviewResponse(BaseModel):
    year: int
    month: int
    employee_count: int
    total_compensation: Decimal


# ============================================================================
# Compensation schemas
# ============================================================================


class CompensationInput(BaseModel):
    """Schema for adding an effective-dated compensation structure."""

    effective_from: date
    ctc: Decimal = Field(gt=0)
    basic_salary: Decimal = Field(default=Decimal("0"), ge=0)
    hra: Decimal = Field(default=Decimal("0"), ge=0)
    special_allowance: Decimal = Field(default=Decimal("0"), ge=0)
    da: Decimal = Field(default=Decimal("0"), ge=0)
    lta: Decimal = Field(default=Decimal("0"), ge=0)
    bonus: Decimal = Field(default=Decimal("0"), ge=0)


class CompensationResponse(BaseModel):
    """Schema for compensation structure response."""

    model_config = ConfigDict(from_attributes=True)

    compensation_structure_id: UUID
    employee_id: UUID
    effective_from: date
    ctc: Decimal
    basic_salary: Decimal
    hra: Decimal
    special_allowance: Decimal
    da: Decimal
    lta: Decimal
    bonus: Decimal
    created_by: UUID | None = None
    created_at: datetime | None = None


# ============================================================================
# Employee schemas
# ============================================================================


class EmployeeInput(BaseModel):
    """Schema for adding an employee."""

    employee_code: str = Field(min_length=1, max_length=50)
    full_name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=320)
    date_of_joining: date
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    department: str | None = None
    designation: str | None = None


class EmployeeResponse(BaseModel):
    """Schema for employee response."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    employee_code: str
    full_name: str
    email: str
    status: str
    date_of_joining: date
    department: str | None = None
    designation: str | None = None
    created_at: datetime | None = None


class EmployeeProfileResponse(EmployeeResponse):
    """The calling employee with their newest compensation, future-dated included."""

    latest_compensation: CompensationResponse | None = None


# ============================================================================
# Leave and attendance schemas
# ============================================================================


class LeaveRequestInput(BaseModel):
    """Schema for filing a leave request; days defaults to the inclusive range."""

    leave_type: LeaveType
    start_date: date
    end_date: date
    days: Decimal | None = Field(default=None, gt=0, multiple_of=Decimal("0.5"))
    reason: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def end_not_before_start(self) -> "LeaveRequestInput":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class LeaveDecisionInput(BaseModel):
    status: Literal["approved", "rejected", "cancelled"]


class LeaveRequestResponse(BaseModel):
    """Schema for leave request response."""

    model_config = ConfigDict(from_attributes=True)

    leave_request_id: UUID
    employee_id: UUID
    leave_type: str
    start_date: date
    end_date: date
    days: Decimal
    status: str
    reason: str | None = None
    created_at: datetime | None = None


class LeaveSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    year: int
    month: int
    sick_leave_days: Decimal
    casual_leave_days: Decimal
    earned_leave_days: Decimal
    lop_days: Decimal
    paid_days: Decimal
    total_working_days: int


class AttendanceInput(BaseModel):
    """Schema for recording one day of attendance."""

    attendance_date: date
    status: Literal["present", "absent", "half_day", "holiday", "weekend"]
    is_lop: bool = False


class AttendanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    attendance_record_id: UUID
    employee_id: UUID
    attendance_date: date
    status: str
    is_lop: bool


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
