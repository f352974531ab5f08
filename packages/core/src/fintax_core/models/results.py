"""Result records returned by the calculators and report builders.

Results are plain data: integer kopecks, Decimal percentages with two
decimals, dates and strings. Formatting and localisation belong to the
presentation layer.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field, field_validator

from .audit import AuditEntry, ExclusionSummary


# =============================================================================
# USN
# =============================================================================

class Usn6Quarter(BaseModel):
    """USN-6 figures cumulative from January 1 through the quarter end."""

    quarter: int = Field(ge=1, le=4)
    income: int = Field(description="Cumulative income")
    tax_calculated: int
    max_deduction: int
    insurance_paid: int = Field(description="Cumulative insurance contributions paid")
    insurance_deduction: int
    tax_after_deduction: int
    paid_advances: int = Field(description="Cumulative advances already paid")
    advance_payment: int = Field(description="Advance still due for the quarter")


class Usn6Result(ExclusionSummary):
    """USN 'income' (6%) liability for a fiscal year."""

    year: int
    has_employees: bool
    income: int = 0
    tax_base: int = 0
    tax_calculated: int = 0
    insurance_deduction: int = 0
    tax_to_pay: int = 0
    effective_rate: Decimal = Field(default=Decimal("0"), description="tax_to_pay / income, percent")
    quarters: list[Usn6Quarter] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)


class Usn15Quarter(BaseModel):
    """USN-15 figures cumulative from January 1 through the quarter end."""

    quarter: int = Field(ge=1, le=4)
    income: int
    expenses: int
    tax_base: int
    tax_calculated: int
    paid_advances: int
    advance_payment: int


class Usn15Result(ExclusionSummary):
    """USN 'income minus expenses' (15%) liability for a fiscal year."""

    year: int
    income: int = 0
    expenses: int = 0
    tax_base: int = 0
    tax_calculated: int = 0
    min_tax: int = 0
    tax_to_pay: int = 0
    is_min_tax: bool = False
    effective_rate: Decimal = Field(default=Decimal("0"), description="tax_to_pay / income, percent")
    quarters: list[Usn15Quarter] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)


# =============================================================================
# VAT
# =============================================================================

class VatDirection(str, Enum):
    """Classification of a document for VAT purposes."""

    OUTPUT = "output"
    INPUT = "input"
    IGNORED = "ignored"


class VatLine(BaseModel):
    """A document contributing to output or input VAT."""

    direction: VatDirection
    document_number: str
    document_date: date
    counterparty_name: Optional[str] = None
    total_amount: int
    vat_amount: int


class VatResult(ExclusionSummary):
    """Output and input VAT for a date window."""

    date_from: date
    date_to: date
    output_vat: int = 0
    input_vat: int = 0
    vat_to_pay: int = 0
    vat_to_refund: int = 0
    documents: list[VatLine] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)


# =============================================================================
# INSURANCE
# =============================================================================

class ContributionDeadline(BaseModel):
    """A contribution amount with its statutory due date."""

    kind: str = Field(description="'fixed' or 'excess'")
    amount: int
    due_date: date


class IpInsuranceResult(ExclusionSummary):
    """Self-employed owner (IP) contributions for a fiscal year."""

    year: int
    income: int
    excess_income: int
    fixed_contribution: int
    excess_contribution: int
    total_contribution: int
    deadlines: list[ContributionDeadline] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)


class EmployeeContribution(BaseModel):
    """Employer contributions for one employee for one month."""

    name: str
    salary: int
    pension_contribution: int
    medical_contribution: int
    social_contribution: int

    @computed_field
    @property
    def total_contribution(self) -> int:
        """Sum of the independently rounded components."""
        return self.pension_contribution + self.medical_contribution + self.social_contribution


class EmployeeContributionTotals(BaseModel):
    total_salary: int = 0
    total_pension: int = 0
    total_medical: int = 0
    total_social: int = 0
    total_contributions: int = 0


class EmployeeInsuranceResult(ExclusionSummary):
    """Employer contributions for a list of employees."""

    year: int
    employees: list[EmployeeContribution] = Field(default_factory=list)
    totals: EmployeeContributionTotals = Field(default_factory=EmployeeContributionTotals)

    @computed_field
    @property
    def monthly_total(self) -> int:
        """Total contributions for the month across all employees."""
        return self.totals.total_contributions


# =============================================================================
# REPORTS
# =============================================================================

class ReportPeriod(BaseModel):
    """An inclusive reporting window."""

    date_from: date = Field(description="Start of the period (inclusive)")
    date_to: date = Field(description="End of the period (inclusive)")

    @field_validator("date_to")
    @classmethod
    def end_date_after_start_date(cls, v, info):
        """Validate that date_to is not before date_from."""
        if "date_from" in info.data and v < info.data["date_from"]:
            raise ValueError("date_to must be on or after date_from")
        return v

    def contains(self, day: date) -> bool:
        return self.date_from <= day <= self.date_to


class MonthlyTotals(BaseModel):
    month: str = Field(description="YYYY-MM")
    income: int = 0
    expense: int = 0

    @computed_field
    @property
    def balance(self) -> int:
        return self.income - self.expense


class CategoryType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class CategoryAmount(BaseModel):
    category_name: str
    category_type: CategoryType
    amount: int
    percentage: Decimal


class RankedAmount(BaseModel):
    name: str
    amount: int


class IncomeExpenseSummary(BaseModel):
    total_income: int = 0
    total_expense: int = 0

    @computed_field
    @property
    def balance(self) -> int:
        return self.total_income - self.total_expense


class IncomeExpenseReport(ExclusionSummary):
    period: ReportPeriod
    summary: IncomeExpenseSummary = Field(default_factory=IncomeExpenseSummary)
    by_month: list[MonthlyTotals] = Field(default_factory=list)
    by_category: list[CategoryAmount] = Field(default_factory=list)
    top_income_sources: list[RankedAmount] = Field(default_factory=list)
    top_expense_categories: list[RankedAmount] = Field(default_factory=list)


class OperatingExpense(BaseModel):
    category: str
    amount: int


class ProfitLossReport(ExclusionSummary):
    period: ReportPeriod
    revenue: int = 0
    cost_of_sales: int = 0
    gross_profit: int = 0
    operating_expenses: list[OperatingExpense] = Field(default_factory=list)
    total_operating_expenses: int = 0
    operating_profit: int = 0
    taxes: int = 0
    net_profit: int = 0
    profit_margin: Decimal = Decimal("0")


class VatReport(ExclusionSummary):
    period: ReportPeriod
    vat_received: int = Field(default=0, description="Output VAT charged on sales")
    vat_paid: int = Field(default=0, description="Input VAT paid on purchases")
    vat_to_pay: int = 0
    vat_to_refund: int = 0
    output_lines: list[VatLine] = Field(default_factory=list)
    input_lines: list[VatLine] = Field(default_factory=list)


class CounterpartyLine(BaseModel):
    counterparty_id: Optional[str] = None
    name: str
    inn: Optional[str] = None
    documents_count: int
    total_invoiced: int
    total_paid: int

    @computed_field
    @property
    def debt(self) -> int:
        return self.total_invoiced - self.total_paid


class CounterpartyReport(ExclusionSummary):
    period: ReportPeriod
    counterparties: list[CounterpartyLine] = Field(default_factory=list)
    total_invoiced: int = 0
    total_paid: int = 0

    @computed_field
    @property
    def total_debt(self) -> int:
        return self.total_invoiced - self.total_paid


class ContractLine(BaseModel):
    contract_id: str
    purchase_number: str
    customer: str
    contract_price: Optional[int] = None
    status: str
    documents_count: int = 0
    paid: int = 0
    income: int = 0
    expenses: int = 0
    profit: int = 0
    margin: Decimal = Decimal("0")


class ContractSummary(BaseModel):
    total_contracts: int = 0
    won_contracts: int = 0
    total_contract_value: int = 0
    total_paid: int = 0
    total_expenses: int = 0
    profit: int = 0
    win_rate: Decimal = Decimal("0")


class ContractReport(ExclusionSummary):
    period: ReportPeriod
    summary: ContractSummary = Field(default_factory=ContractSummary)
    contracts: list[ContractLine] = Field(default_factory=list)


class CashFlowMonth(BaseModel):
    month: int = Field(ge=1, le=12)
    income: int = 0
    expense: int = 0

    @computed_field
    @property
    def net_flow(self) -> int:
        return self.income - self.expense


class CashFlowReport(ExclusionSummary):
    year: int
    month: Optional[int] = None
    months: list[CashFlowMonth] = Field(default_factory=list)
    total_income: int = 0
    total_expense: int = 0

    @computed_field
    @property
    def net_cash_flow(self) -> int:
        return self.total_income - self.total_expense


# =============================================================================
# CALENDARS
# =============================================================================

class CalendarItemType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TAX = "tax"


class CalendarItemStatus(str, Enum):
    PLANNED = "planned"
    OVERDUE = "overdue"


class PaymentCalendarItem(BaseModel):
    item_date: date
    item_type: CalendarItemType
    description: str
    counterparty: Optional[str] = None
    amount: int
    status: CalendarItemStatus
    reference: Optional[str] = None


class PaymentCalendar(BaseModel):
    items: list[PaymentCalendarItem] = Field(default_factory=list)
    opening_balance: int = 0
    total_income: int = 0
    total_expense: int = 0
    cash_gap_warning: bool = False
    cash_gap_date: Optional[date] = None

    @computed_field
    @property
    def balance(self) -> int:
        return self.total_income - self.total_expense


class TaxCalendarEntry(BaseModel):
    tax_kind: str
    tax_name: Optional[str] = None
    period: str
    due_date: date
    calculated_amount: Optional[int] = None
    paid_amount: int = 0
    status: str
    days_until_due: int
    is_overdue: bool
