"""Salary and deduction calculation for a single employee-month."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from payroll_cycles.calculators.types import (
    ZERO,
    AttendanceSummary,
    CompensationComponents,
    SalaryBreakdown,
    SalarySettings,
)

HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")

# Employee ESI contribution applies only at or below this monthly gross.
ESI_WAGE_CEILING = Decimal("21000")
# Hard-coded employee ESI rate; settings.esi_rate is not used here.
ESI_EMPLOYEE_RATE = Decimal("0.75")
TDS_RATE = Decimal("5")

EARNING_COMPONENTS = ("basic_salary", "hra", "special_allowance", "da", "lta", "bonus")


class SalaryCalculator:
    """Computes prorated earnings and simplified statutory deductions.

    Pipeline:
    1) CTC fallback when every monthly component is zero
    2) Prorate each component by paid_days / total_working_days
    3) Gross = sum of prorated components
    4) PF on prorated basic, ESI under the wage ceiling, flat PT, TDS on
       annualized gross above the threshold
    5) Net = gross - deductions

    Rounding:
    - Internal compute at full Decimal precision
    - Each component and each deduction rounded half-up to 2 decimals
    - Gross and net are sums of rounded parts, so they reconcile exactly
    """

    OUTPUT_PRECISION = Decimal("0.01")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places."""
        return amount.quantize(SalaryCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def apply_ctc_fallback(
        components: CompensationComponents,
        settings: SalarySettings,
    ) -> tuple[CompensationComponents, bool]:
        """Derive basic/HRA/special allowance from CTC when no components are set.

        Returns the effective components and whether the fallback applied.
        DA, LTA and bonus stay at zero on the fallback path.
        """
        if components.monthly_total != ZERO or components.ctc <= ZERO:
            return components, False

        monthly_ctc = components.ctc / MONTHS_PER_YEAR
        return (
            CompensationComponents(
                ctc=components.ctc,
                basic_salary=monthly_ctc * settings.basic_salary_percentage / HUNDRED,
                hra=monthly_ctc * settings.hra_percentage / HUNDRED,
                special_allowance=monthly_ctc * settings.special_allowance_percentage / HUNDRED,
            ),
            True,
        )

    @classmethod
    def prorate(cls, amount: Decimal, paid_days: Decimal, total_working_days: int) -> Decimal:
        """Scale a monthly amount to the days actually paid."""
        return cls.round_to_cents(amount * paid_days / Decimal(total_working_days))

    @classmethod
    def calculate_esi(cls, gross: Decimal) -> Decimal:
        if gross > ESI_WAGE_CEILING:
            return ZERO
        return cls.round_to_cents(gross * ESI_EMPLOYEE_RATE / HUNDRED)

    @classmethod
    def calculate_tds(cls, gross: Decimal, tds_threshold: Decimal) -> Decimal:
        """Monthly share of 5% tax on annualized gross above the threshold."""
        annualized = gross * MONTHS_PER_YEAR
        if annualized <= tds_threshold:
            return ZERO
        return cls.round_to_cents(
            (annualized - tds_threshold) * TDS_RATE / HUNDRED / MONTHS_PER_YEAR
        )

    @classmethod
    def calculate(
        cls,
        components: CompensationComponents,
        attendance: AttendanceSummary,
        settings: SalarySettings,
    ) -> SalaryBreakdown:
        """Calculate the full pay breakdown. Pure and deterministic.

        Raises:
            ValueError: If total_working_days is not positive.
        """
        total_days = attendance.total_working_days
        if total_days <= 0:
            raise ValueError(f"total_working_days must be positive, got {total_days}")

        paid_days = min(max(attendance.paid_days, ZERO), Decimal(total_days))
        effective, used_fallback = cls.apply_ctc_fallback(components, settings)

        earnings = {
            name: cls.prorate(getattr(effective, name), paid_days, total_days)
            for name in EARNING_COMPONENTS
        }
        gross = sum(earnings.values(), ZERO)

        pf = cls.round_to_cents(earnings["basic_salary"] * settings.pf_rate / HUNDRED)
        esi = cls.calculate_esi(gross)
        pt = cls.round_to_cents(settings.pt_rate)
        tds = cls.calculate_tds(gross, settings.tds_threshold)

        total_deductions = pf + esi + pt + tds

        return SalaryBreakdown(
            **earnings,
            gross_salary=gross,
            pf_deduction=pf,
            esi_deduction=esi,
            pt_deduction=pt,
            tds_deduction=tds,
            total_deductions=total_deductions,
            net_salary=gross - total_deductions,
            lop_days=attendance.lop_days,
            paid_days=paid_days,
            total_working_days=total_days,
            used_ctc_fallback=used_fallback,
        )


def calculate_salary(
    components: CompensationComponents,
    attendance: AttendanceSummary,
    settings: SalarySettings,
) -> SalaryBreakdown:
    """Module-level shortcut for SalaryCalculator.calculate."""
    return SalaryCalculator.calculate(components, attendance, settings)
