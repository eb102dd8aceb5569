"""Type definitions for the calculation pipeline."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Any

ZERO = Decimal("0")


@dataclass(frozen=True)
class PayPeriodWindow:
    """Calendar boundaries of one payroll month."""

    year: int
    month: int
    month_start: date
    month_end: date
    total_working_days: int

    @property
    def label(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class SalarySettings:
    """Deduction rates and CTC split percentages for one tenant.

    Rates and percentages are expressed in percent (12.0 means 12%).
    """

    pf_rate: Decimal
    esi_rate: Decimal
    pt_rate: Decimal
    tds_threshold: Decimal
    basic_salary_percentage: Decimal
    hra_percentage: Decimal
    special_allowance_percentage: Decimal

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_SALARY_SETTINGS = SalarySettings(
    pf_rate=Decimal("12.0"),
    esi_rate=Decimal("3.25"),
    pt_rate=Decimal("200.0"),
    tds_threshold=Decimal("250000.0"),
    basic_salary_percentage=Decimal("40"),
    hra_percentage=Decimal("40"),
    special_allowance_percentage=Decimal("20"),
)


@dataclass(frozen=True)
class CompensationComponents:
    """Monthly earning components plus annual CTC."""

    ctc: Decimal = ZERO
    basic_salary: Decimal = ZERO
    hra: Decimal = ZERO
    special_allowance: Decimal = ZERO
    da: Decimal = ZERO
    lta: Decimal = ZERO
    bonus: Decimal = ZERO

    @classmethod
    def from_structure(cls, structure: Any) -> CompensationComponents:
        """Build from a CompensationStructure row (NULLs read as zero)."""
        return cls(
            ctc=Decimal(structure.ctc or 0),
            basic_salary=Decimal(structure.basic_salary or 0),
            hra=Decimal(structure.hra or 0),
            special_allowance=Decimal(structure.special_allowance or 0),
            da=Decimal(structure.da or 0),
            lta=Decimal(structure.lta or 0),
            bonus=Decimal(structure.bonus or 0),
        )

    @property
    def monthly_total(self) -> Decimal:
        return (
            self.basic_salary
            + self.hra
            + self.special_allowance
            + self.da
            + self.lta
            + self.bonus
        )


@dataclass(frozen=True)
class AttendanceSummary:
    """LOP and paid days for one employee in one month."""

    lop_days: Decimal
    paid_days: Decimal
    total_working_days: int


@dataclass
class SalaryBreakdown:
    """Full line-item record produced by the salary calculator."""

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
    used_ctc_fallback: bool = False

    def to_item_values(self) -> dict[str, Any]:
        """Return the columns persisted on a PayrollItem."""
        return {
            "basic_salary": self.basic_salary,
            "hra": self.hra,
            "special_allowance": self.special_allowance,
            "da": self.da,
            "lta": self.lta,
            "bonus": self.bonus,
            "gross_salary": self.gross_salary,
            "pf_deduction": self.pf_deduction,
            "esi_deduction": self.esi_deduction,
            "pt_deduction": self.pt_deduction,
            "tds_deduction": self.tds_deduction,
            "total_deductions": self.total_deductions,
            "net_salary": self.net_salary,
            "lop_days": self.lop_days,
            "paid_days": self.paid_days,
            "total_working_days": self.total_working_days,
        }
