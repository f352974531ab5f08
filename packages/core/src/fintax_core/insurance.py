"""Mandatory insurance contributions.

This module provides two calculators:
1. IpInsuranceCalculator - the self-employed owner's own contributions
   (fixed amount plus 1% of income above the threshold, capped)
2. EmployeeInsuranceCalculator - employer contributions per employee with
   full rates up to the wage threshold (MROT) and reduced rates above it
"""

from datetime import date
from typing import Iterable, Optional

import structlog

from .ledger import aggregate_by_quarter
from .models import (
    CalculationAudit,
    ContributionDeadline,
    Employee,
    EmployeeContribution,
    EmployeeContributionTotals,
    EmployeeInsuranceResult,
    ExcludedItem,
    ExclusionReason,
    IpInsuranceResult,
    LedgerSnapshot,
)
from .money import clamp_non_negative, percent_of
from .tax_constants import ConstantTable, TaxConstants, default_constant_table

logger = structlog.get_logger()


class IpInsuranceCalculator:
    """
    Calculate an individual entrepreneur's own insurance contributions.

        excess_income       = max(0, income - threshold)
        excess_contribution = min(round(excess_income * 1%), max_pension - fixed)
        total               = fixed + excess_contribution

    The capped excess is floored at zero even if the cap is misconfigured
    below the fixed amount.
    """

    def __init__(self, constants: Optional[ConstantTable] = None):
        self.constants = constants or default_constant_table()

    def calculate(self, snapshot: LedgerSnapshot, year: int) -> IpInsuranceResult:
        """
        Calculate contributions for a fiscal year from the year's income.

        Raises:
            ConfigurationError: No constants for ``year``
        """
        rates = self.constants.for_year(year)
        audit = CalculationAudit("ip_insurance")

        ledger = aggregate_by_quarter(snapshot.entries, year)
        audit.extend_excluded(ledger.excluded)
        income = ledger.total_income
        audit.step(
            step="annual_income",
            input_value=f"year={year}",
            output_value=str(income),
            source="Income/expense book",
        )

        fixed = rates.ip_fixed_total
        excess_income = clamp_non_negative(income - rates.ip_excess_threshold)
        raw_excess = percent_of(excess_income, rates.ip_excess_rate)
        excess_cap = clamp_non_negative(rates.ip_max_pension - fixed)
        excess_contribution = clamp_non_negative(min(raw_excess, excess_cap))
        total = fixed + excess_contribution

        audit.step(
            step="fixed_contribution",
            input_value=f"constants {rates.year}",
            output_value=str(fixed),
            source="Tax Code art. 430 p. 1.2",
        )
        audit.step(
            step="excess_contribution",
            input_value=(
                f"round(max(0, {income} - {rates.ip_excess_threshold}) * {rates.ip_excess_rate}%)"
                f"={raw_excess}, cap={excess_cap}"
            ),
            output_value=str(excess_contribution),
            source="Tax Code art. 430 p. 1.2",
        )

        deadlines = [
            ContributionDeadline(kind="fixed", amount=fixed, due_date=date(year, 12, 31)),
            ContributionDeadline(
                kind="excess",
                amount=excess_contribution,
                due_date=date(year + 1, rates.ip_excess_due_month, rates.ip_excess_due_day),
            ),
        ]

        logger.info(
            "ip_insurance_calculated",
            year=year,
            income=income,
            total_contribution=total,
        )

        return IpInsuranceResult(
            year=year,
            income=income,
            excess_income=excess_income,
            fixed_contribution=fixed,
            excess_contribution=excess_contribution,
            total_contribution=total,
            deadlines=deadlines,
            excluded=audit.excluded,
            audit_log=audit.entries,
        )


class EmployeeInsuranceCalculator:
    """
    Calculate monthly employer contributions for a list of employees.

    Salary up to the wage threshold is charged at the full pension, medical
    and social rates; the part above it at the reduced SME pension and medical
    rates, with no social contribution. Each component is rounded on its own
    and the rounded components are summed.
    """

    def __init__(self, constants: Optional[ConstantTable] = None):
        self.constants = constants or default_constant_table()

    @staticmethod
    def _contribution(employee: Employee, rates: TaxConstants) -> EmployeeContribution:
        salary = employee.monthly_salary
        threshold = rates.wage_threshold

        if salary <= threshold:
            pension = percent_of(salary, rates.employee_pension_rate)
            medical = percent_of(salary, rates.employee_medical_rate)
            social = percent_of(salary, rates.employee_social_rate)
        else:
            excess = salary - threshold
            pension = percent_of(threshold, rates.employee_pension_rate) + percent_of(
                excess, rates.employee_pension_reduced_rate
            )
            medical = percent_of(threshold, rates.employee_medical_rate) + percent_of(
                excess, rates.employee_medical_reduced_rate
            )
            social = percent_of(threshold, rates.employee_social_rate)

        return EmployeeContribution(
            name=employee.name,
            salary=salary,
            pension_contribution=pension,
            medical_contribution=medical,
            social_contribution=social,
        )

    def calculate(self, employees: Iterable[Employee], year: int) -> EmployeeInsuranceResult:
        """
        Calculate contributions for each employee and the totals.

        Employees with a negative salary are rejected individually and
        reported in ``excluded``; they are not clamped to zero.

        Raises:
            ConfigurationError: No constants for ``year``
        """
        rates = self.constants.for_year(year)
        audit = CalculationAudit("employee_insurance")

        rows: list[EmployeeContribution] = []
        for employee in employees:
            if employee.monthly_salary < 0:
                audit.exclude(
                    ExcludedItem(
                        source="employee",
                        reason=ExclusionReason.NEGATIVE_AMOUNT,
                        reference=employee.name,
                        detail=f"monthly_salary={employee.monthly_salary}",
                    )
                )
                continue
            rows.append(self._contribution(employee, rates))

        totals = EmployeeContributionTotals(
            total_salary=sum(r.salary for r in rows),
            total_pension=sum(r.pension_contribution for r in rows),
            total_medical=sum(r.medical_contribution for r in rows),
            total_social=sum(r.social_contribution for r in rows),
            total_contributions=sum(r.total_contribution for r in rows),
        )

        logger.info(
            "employee_insurance_calculated",
            year=year,
            employees=len(rows),
            rejected=len(audit.excluded),
            total_contributions=totals.total_contributions,
        )

        return EmployeeInsuranceResult(
            year=year,
            employees=rows,
            totals=totals,
            excluded=audit.excluded,
        )
