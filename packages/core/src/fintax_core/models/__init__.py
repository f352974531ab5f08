"""Data models for fintax-core.

This package provides:
- Input records handed to the engine (ledger.py)
- Audit trail and exclusion report (audit.py)
- Calculator and report results (results.py)
"""

from fintax_core.models.ledger import (
    # Enumerations
    EntryKind,
    PaymentStatus,
    TaxKind,
    # Tax-kind groups
    USN_ADVANCE_KINDS,
    INSURANCE_KINDS,
    # Inputs
    LedgerEntry,
    TaxPayment,
    AccountingDocument,
    Contract,
    Employee,
    LedgerSnapshot,
)

from fintax_core.models.audit import (
    ExclusionReason,
    ExcludedItem,
    AuditEntry,
    CalculationAudit,
    ExclusionSummary,
)

from fintax_core.models.results import (
    # USN
    Usn6Quarter,
    Usn6Result,
    Usn15Quarter,
    Usn15Result,
    # VAT
    VatDirection,
    VatLine,
    VatResult,
    # Insurance
    ContributionDeadline,
    IpInsuranceResult,
    EmployeeContribution,
    EmployeeContributionTotals,
    EmployeeInsuranceResult,
    # Reports
    ReportPeriod,
    MonthlyTotals,
    CategoryType,
    CategoryAmount,
    RankedAmount,
    IncomeExpenseSummary,
    IncomeExpenseReport,
    OperatingExpense,
    ProfitLossReport,
    VatReport,
    CounterpartyLine,
    CounterpartyReport,
    ContractLine,
    ContractSummary,
    ContractReport,
    CashFlowMonth,
    CashFlowReport,
    # Calendars
    CalendarItemType,
    CalendarItemStatus,
    PaymentCalendarItem,
    PaymentCalendar,
    TaxCalendarEntry,
)

__all__ = [
    # Enumerations
    "EntryKind",
    "PaymentStatus",
    "TaxKind",
    "USN_ADVANCE_KINDS",
    "INSURANCE_KINDS",
    # Inputs
    "LedgerEntry",
    "TaxPayment",
    "AccountingDocument",
    "Contract",
    "Employee",
    "LedgerSnapshot",
    # Audit
    "ExclusionReason",
    "ExcludedItem",
    "AuditEntry",
    "CalculationAudit",
    "ExclusionSummary",
    # USN
    "Usn6Quarter",
    "Usn6Result",
    "Usn15Quarter",
    "Usn15Result",
    # VAT
    "VatDirection",
    "VatLine",
    "VatResult",
    # Insurance
    "ContributionDeadline",
    "IpInsuranceResult",
    "EmployeeContribution",
    "EmployeeContributionTotals",
    "EmployeeInsuranceResult",
    # Reports
    "ReportPeriod",
    "MonthlyTotals",
    "CategoryType",
    "CategoryAmount",
    "RankedAmount",
    "IncomeExpenseSummary",
    "IncomeExpenseReport",
    "OperatingExpense",
    "ProfitLossReport",
    "VatReport",
    "CounterpartyLine",
    "CounterpartyReport",
    "ContractLine",
    "ContractSummary",
    "ContractReport",
    "CashFlowMonth",
    "CashFlowReport",
    # Calendars
    "CalendarItemType",
    "CalendarItemStatus",
    "PaymentCalendarItem",
    "PaymentCalendar",
    "TaxCalendarEntry",
]
