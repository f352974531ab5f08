"""Simplified-tax (USN) calculations, cumulative by quarter.

This module provides two calculators:
1. Usn6Calculator - USN "income" at 6% with the insurance deduction cap
2. Usn15Calculator - USN "income minus expenses" at 15% with the 1% minimum tax

Both compute every quarter on the running total since January 1, subtract
advances already paid, and recompute everything from the full snapshot on
each call. Calculators hold only the immutable constant table, so a single
instance can serve concurrent requests for different tenants and years.
"""

from typing import Optional

import structlog

from .ledger import (
    QUARTERS,
    QuarterlyLedger,
    QuarterlyPayments,
    aggregate_by_quarter,
    aggregate_payments_by_quarter,
)
from .models import (
    CalculationAudit,
    INSURANCE_KINDS,
    LedgerSnapshot,
    USN_ADVANCE_KINDS,
    Usn6Quarter,
    Usn6Result,
    Usn15Quarter,
    Usn15Result,
)
from .money import clamp_non_negative, percent_of, percentage
from .tax_constants import ConstantTable, TaxConstants, default_constant_table

logger = structlog.get_logger()


class _UsnCalculator:
    """Shared plumbing for the two USN variants."""

    calculation = "usn"

    def __init__(self, constants: Optional[ConstantTable] = None):
        """
        Initialize calculator with a constant table.

        Args:
            constants: Year-keyed constant table (default: built-in table)
        """
        self.constants = constants or default_constant_table()

    def _advances(
        self,
        snapshot: LedgerSnapshot,
        year: int,
        audit: CalculationAudit,
    ) -> QuarterlyPayments:
        advances = aggregate_payments_by_quarter(snapshot.payments, USN_ADVANCE_KINDS, year)
        audit.extend_excluded(advances.excluded)
        audit.step(
            step="paid_advances",
            input_value=f"{len(snapshot.payments)} payments",
            output_value=f"by_quarter={advances.by_quarter}",
            source="Tax payments tagged usn/usn_advance, status paid",
        )
        return advances

    def _ledger(
        self,
        snapshot: LedgerSnapshot,
        year: int,
        audit: CalculationAudit,
    ) -> QuarterlyLedger:
        ledger = aggregate_by_quarter(snapshot.entries, year)
        audit.extend_excluded(ledger.excluded)
        for bucket in ledger.buckets:
            audit.step(
                step=f"q{bucket.quarter}_period_totals",
                input_value=f"year={year}",
                output_value=f"income={bucket.income_total}, expense={bucket.expense_total}",
                source="Income/expense book",
            )
        return ledger

    def _warnings(self, income: int, rates: TaxConstants, audit: CalculationAudit) -> list[str]:
        warnings: list[str] = []
        if income > rates.usn_income_limit:
            warnings.append(
                f"Annual income {income} exceeds the USN limit {rates.usn_income_limit} "
                f"for {rates.year}; the simplified regime may no longer apply."
            )
        if audit.excluded:
            warnings.append(
                f"{len(audit.excluded)} input record(s) were excluded from the totals."
            )
        return warnings


class Usn6Calculator(_UsnCalculator):
    """
    Calculate USN "income" (6%) tax and quarterly advances.

    Per quarter, on cumulative figures:

        tax_calculated     = round(income * 6%)
        max_deduction      = tax_calculated, or round(tax_calculated * 50%)
                             when the taxpayer has employees
        insurance_deduction = min(insurance_paid, max_deduction)
        advance_payment    = max(0, tax_calculated - insurance_deduction - paid_advances)
    """

    calculation = "usn6"

    def calculate(
        self,
        snapshot: LedgerSnapshot,
        year: int,
        has_employees: bool = False,
    ) -> Usn6Result:
        """
        Calculate the USN-6 liability for a fiscal year.

        Args:
            snapshot: Tenant ledger, payments and documents
            year: Fiscal year
            has_employees: Whether the 50% deduction cap applies

        Returns:
            Usn6Result with quarterly breakdown and audit trail

        Raises:
            ConfigurationError: No constants for ``year``
        """
        rates = self.constants.for_year(year)
        audit = CalculationAudit(self.calculation)

        ledger = self._ledger(snapshot, year, audit)
        insurance = aggregate_payments_by_quarter(snapshot.payments, INSURANCE_KINDS, year)
        audit.extend_excluded(insurance.excluded)
        audit.step(
            step="paid_insurance",
            input_value=f"{len(snapshot.payments)} payments",
            output_value=f"by_quarter={insurance.by_quarter}",
            source="Tax payments tagged insurance, status paid",
        )
        advances = self._advances(snapshot, year, audit)

        cap_percent = rates.usn6_deduction_cap_percent if has_employees else None
        quarters: list[Usn6Quarter] = []

        for q in QUARTERS:
            income = ledger.cumulative_through(q).income_total
            insurance_paid = insurance.cumulative_through(q)
            paid_advances = advances.cumulative_through(q)

            tax_calculated = percent_of(income, rates.usn6_rate)
            if cap_percent is None:
                max_deduction = tax_calculated
            else:
                max_deduction = percent_of(tax_calculated, cap_percent)
            insurance_deduction = min(insurance_paid, max_deduction)
            tax_after_deduction = tax_calculated - insurance_deduction
            advance_payment = clamp_non_negative(tax_after_deduction - paid_advances)

            audit.step(
                step=f"q{q}_tax_calculated",
                input_value=f"cumulative_income={income} * {rates.usn6_rate}%",
                output_value=str(tax_calculated),
                source=f"Tax Code art. 346.20, constants {rates.year}",
            )
            audit.step(
                step=f"q{q}_insurance_deduction",
                input_value=(
                    f"insurance_paid={insurance_paid}, max_deduction={max_deduction}"
                    f" (has_employees={has_employees})"
                ),
                output_value=str(insurance_deduction),
                source="Tax Code art. 346.21 p. 3.1",
            )
            audit.step(
                step=f"q{q}_advance_payment",
                input_value=f"{tax_after_deduction} - paid_advances={paid_advances}",
                output_value=str(advance_payment),
                source="Cumulative advance rule",
            )

            quarters.append(
                Usn6Quarter(
                    quarter=q,
                    income=income,
                    tax_calculated=tax_calculated,
                    max_deduction=max_deduction,
                    insurance_paid=insurance_paid,
                    insurance_deduction=insurance_deduction,
                    tax_after_deduction=tax_after_deduction,
                    paid_advances=paid_advances,
                    advance_payment=advance_payment,
                )
            )

        last = quarters[-1]
        effective_rate = percentage(last.advance_payment, last.income)

        logger.info(
            "usn6_calculated",
            year=year,
            income=last.income,
            tax_to_pay=last.advance_payment,
            excluded=len(audit.excluded),
        )

        return Usn6Result(
            year=year,
            has_employees=has_employees,
            income=last.income,
            tax_base=last.income,
            tax_calculated=last.tax_calculated,
            insurance_deduction=last.insurance_deduction,
            tax_to_pay=last.advance_payment,
            effective_rate=effective_rate,
            quarters=quarters,
            warnings=self._warnings(last.income, rates, audit),
            excluded=audit.excluded,
            audit_log=audit.entries,
        )


class Usn15Calculator(_UsnCalculator):
    """
    Calculate USN "income minus expenses" (15%) tax and quarterly advances.

    Per quarter, on cumulative figures:

        tax_base        = max(0, income - expenses)
        tax_calculated  = round(tax_base * 15%)
        advance_payment = max(0, tax_calculated - paid_advances)

    At year end the minimum tax round(income * 1%) replaces the liability
    when it exceeds tax_calculated for Q4. Quarterly advances are never
    overridden.
    """

    calculation = "usn15"

    def calculate(self, snapshot: LedgerSnapshot, year: int) -> Usn15Result:
        """
        Calculate the USN-15 liability for a fiscal year.

        Args:
            snapshot: Tenant ledger, payments and documents
            year: Fiscal year

        Returns:
            Usn15Result with quarterly breakdown, minimum-tax flag and audit trail

        Raises:
            ConfigurationError: No constants for ``year``
        """
        rates = self.constants.for_year(year)
        audit = CalculationAudit(self.calculation)

        ledger = self._ledger(snapshot, year, audit)
        advances = self._advances(snapshot, year, audit)

        quarters: list[Usn15Quarter] = []
        for q in QUARTERS:
            running = ledger.cumulative_through(q)
            paid_advances = advances.cumulative_through(q)

            tax_base = clamp_non_negative(running.income_total - running.expense_total)
            tax_calculated = percent_of(tax_base, rates.usn15_rate)
            advance_payment = clamp_non_negative(tax_calculated - paid_advances)

            audit.step(
                step=f"q{q}_tax_base",
                input_value=f"max(0, {running.income_total} - {running.expense_total})",
                output_value=str(tax_base),
                source="Tax Code art. 346.18 p. 2",
            )
            audit.step(
                step=f"q{q}_tax_calculated",
                input_value=f"{tax_base} * {rates.usn15_rate}%",
                output_value=str(tax_calculated),
                source=f"Tax Code art. 346.20, constants {rates.year}",
            )
            audit.step(
                step=f"q{q}_advance_payment",
                input_value=f"{tax_calculated} - paid_advances={paid_advances}",
                output_value=str(advance_payment),
                source="Cumulative advance rule",
            )

            quarters.append(
                Usn15Quarter(
                    quarter=q,
                    income=running.income_total,
                    expenses=running.expense_total,
                    tax_base=tax_base,
                    tax_calculated=tax_calculated,
                    paid_advances=paid_advances,
                    advance_payment=advance_payment,
                )
            )

        last = quarters[-1]
        min_tax = percent_of(last.income, rates.usn15_min_rate)
        is_min_tax = min_tax > last.tax_calculated
        tax_to_pay = min_tax if is_min_tax else last.advance_payment

        audit.step(
            step="minimum_tax",
            input_value=f"{last.income} * {rates.usn15_min_rate}% vs tax_calculated={last.tax_calculated}",
            output_value=f"min_tax={min_tax}, applied={is_min_tax}",
            source="Tax Code art. 346.18 p. 6",
        )

        logger.info(
            "usn15_calculated",
            year=year,
            income=last.income,
            expenses=last.expenses,
            tax_to_pay=tax_to_pay,
            is_min_tax=is_min_tax,
            excluded=len(audit.excluded),
        )

        return Usn15Result(
            year=year,
            income=last.income,
            expenses=last.expenses,
            tax_base=last.tax_base,
            tax_calculated=last.tax_calculated,
            min_tax=min_tax,
            tax_to_pay=tax_to_pay,
            is_min_tax=is_min_tax,
            effective_rate=percentage(tax_to_pay, last.income),
            quarters=quarters,
            warnings=self._warnings(last.income, rates, audit),
            excluded=audit.excluded,
            audit_log=audit.entries,
        )
