"""Law-defined tax and insurance constants, versioned per fiscal year.

This module holds the statutory rates and amounts used by the USN, VAT and
insurance calculators. Each fiscal year has its own frozen TaxConstants
record; the records are collected in an immutable ConstantTable that is
looked up by year and never mutated, so concurrent requests for different
years cannot interfere.

Amounts are kopecks, rates are percents.

Sources:
- Tax Code of the Russian Federation, ch. 26.2 (USN), art. 346.20, 346.21
- Tax Code of the Russian Federation, art. 430 (IP insurance contributions)
- Federal Law 82-FZ (MROT)

Updated: 2025 (fiscal years 2024, 2025)
"""

from decimal import Decimal
from functools import lru_cache
from types import MappingProxyType
from typing import Iterable, Mapping

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .exceptions import ConfigurationError

Percent = Decimal


class TaxConstants(BaseModel):
    """Statutory constants for a single fiscal year."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=2000, le=2100, description="Fiscal year these constants apply to")

    # USN
    usn6_rate: Percent = Field(ge=0, le=100, description="USN 'income' rate")
    usn15_rate: Percent = Field(ge=0, le=100, description="USN 'income minus expenses' rate")
    usn15_min_rate: Percent = Field(ge=0, le=100, description="USN-15 minimum tax rate on income")
    usn6_deduction_cap_percent: Percent = Field(
        default=Decimal("50"),
        ge=0,
        le=100,
        description="Share of USN-6 tax deductible by insurance when the taxpayer has employees",
    )
    usn_income_limit: int = Field(ge=0, description="Annual income limit for staying on USN")
    usn_employee_limit: int = Field(ge=0, description="Headcount limit for staying on USN")

    # VAT
    vat_rates: tuple[Percent, ...] = Field(description="Available VAT rates")

    # IP (self-employed owner) contributions
    ip_fixed_total: int = Field(ge=0, description="Fixed annual contribution")
    ip_excess_threshold: int = Field(ge=0, description="Income above which 1% is due")
    ip_excess_rate: Percent = Field(ge=0, le=100, description="Rate on income above the threshold")
    ip_max_pension: int = Field(description="Maximum pension contribution, fixed part included")
    ip_excess_due_month: int = Field(default=7, ge=1, le=12)
    ip_excess_due_day: int = Field(default=1, ge=1, le=28)

    # Employer contributions
    wage_threshold: int = Field(ge=0, description="MROT, the monthly wage where rates step down")
    employee_pension_rate: Percent = Field(ge=0, le=100)
    employee_medical_rate: Percent = Field(ge=0, le=100)
    employee_social_rate: Percent = Field(ge=0, le=100)
    employee_pension_reduced_rate: Percent = Field(ge=0, le=100)
    employee_medical_reduced_rate: Percent = Field(ge=0, le=100)

    @model_validator(mode="after")
    def reduced_rates_not_above_full(self) -> "TaxConstants":
        """Reduced SME rates must not exceed the full rates."""
        pairs = (
            ("pension", self.employee_pension_rate, self.employee_pension_reduced_rate),
            ("medical", self.employee_medical_rate, self.employee_medical_reduced_rate),
        )
        for name, full, reduced in pairs:
            if reduced > full:
                raise ValueError(
                    f"employee_{name}_reduced_rate ({reduced}) exceeds full rate ({full})"
                )
        return self

    @property
    def employee_total_rate(self) -> Percent:
        """Combined employer rate up to the wage threshold."""
        return self.employee_pension_rate + self.employee_medical_rate + self.employee_social_rate


# =============================================================================
# BUILT-IN FISCAL YEARS
# =============================================================================

TAX_CONSTANTS_2024 = TaxConstants(
    year=2024,
    usn6_rate=Decimal("6"),
    usn15_rate=Decimal("15"),
    usn15_min_rate=Decimal("1"),
    usn_income_limit=25_100_000_000,  # 251 mln rub
    usn_employee_limit=130,
    vat_rates=(Decimal("20"), Decimal("10"), Decimal("0")),
    ip_fixed_total=4_943_700,  # 49 437 rub, single payment since 2024
    ip_excess_threshold=30_000_000,  # 300 000 rub
    ip_excess_rate=Decimal("1"),
    ip_max_pension=27_747_800,
    wage_threshold=1_916_600,  # MROT 2024, 19 166 rub
    employee_pension_rate=Decimal("22"),
    employee_medical_rate=Decimal("5.1"),
    employee_social_rate=Decimal("2.9"),
    employee_pension_reduced_rate=Decimal("10"),
    employee_medical_reduced_rate=Decimal("5"),
)

TAX_CONSTANTS_2025 = TaxConstants(
    year=2025,
    usn6_rate=Decimal("6"),
    usn15_rate=Decimal("15"),
    usn15_min_rate=Decimal("1"),
    usn_income_limit=45_000_000_000,  # 450 mln rub
    usn_employee_limit=130,
    vat_rates=(Decimal("20"), Decimal("10"), Decimal("0")),
    ip_fixed_total=5_365_800,  # 53 658 rub
    ip_excess_threshold=30_000_000,
    ip_excess_rate=Decimal("1"),
    ip_max_pension=35_454_600,  # 300 888 rub cap on the 1% part plus the fixed part
    wage_threshold=2_244_000,  # MROT 2025, 22 440 rub
    employee_pension_rate=Decimal("22"),
    employee_medical_rate=Decimal("5.1"),
    employee_social_rate=Decimal("2.9"),
    employee_pension_reduced_rate=Decimal("10"),
    employee_medical_reduced_rate=Decimal("5"),
)

BUILTIN_CONSTANTS: tuple[TaxConstants, ...] = (TAX_CONSTANTS_2024, TAX_CONSTANTS_2025)


# =============================================================================
# YEAR-KEYED TABLE
# =============================================================================

class ConstantTable:
    """Read-only mapping of fiscal year to TaxConstants.

    Built once and shared between calculators. Lookups for a year that is
    not present raise ConfigurationError instead of falling back.
    """

    __slots__ = ("_by_year",)

    def __init__(self, constants: Iterable[TaxConstants]):
        by_year: dict[int, TaxConstants] = {}
        for item in constants:
            by_year[item.year] = item
        self._by_year: Mapping[int, TaxConstants] = MappingProxyType(by_year)

    @property
    def years(self) -> list[int]:
        """Fiscal years available in the table, ascending."""
        return sorted(self._by_year)

    def __contains__(self, year: object) -> bool:
        return year in self._by_year

    def __len__(self) -> int:
        return len(self._by_year)

    def for_year(self, year: int) -> TaxConstants:
        """Return the constants for ``year``.

        Raises:
            ConfigurationError: No constants are defined for the year.
        """
        try:
            return self._by_year[year]
        except KeyError:
            raise ConfigurationError(
                f"No tax constants for fiscal year {year}",
                config_key="fiscal_year",
                expected=f"one of {self.years}",
                actual=year,
            ) from None

    def merged_with(self, overrides: Iterable[TaxConstants]) -> "ConstantTable":
        """Return a new table where ``overrides`` replace or add years."""
        return ConstantTable([*self._by_year.values(), *overrides])


@lru_cache(maxsize=1)
def default_constant_table() -> ConstantTable:
    """The built-in constant table, created once per process."""
    return ConstantTable(BUILTIN_CONSTANTS)


def get_tax_constants(year: int) -> TaxConstants:
    """Get built-in constants for a fiscal year.

    Raises:
        ConfigurationError: The year is not in the built-in table.
    """
    return default_constant_table().for_year(year)


__all__ = [
    "TaxConstants",
    "ConstantTable",
    "TAX_CONSTANTS_2024",
    "TAX_CONSTANTS_2025",
    "BUILTIN_CONSTANTS",
    "default_constant_table",
    "get_tax_constants",
]
