"""Input records consumed by the calculation engine.

These models describe the tenant data handed to every calculator: ledger
entries (the income/expense book), tax payments already remitted,
accounting documents, contracts won or bid on, and employee salaries.
They are produced by external bookkeeping and persistence layers and are
read-only as far as the engine is concerned.

All monetary fields are integer kopecks.
"""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ..money import Money


class EntryKind(str, Enum):
    """Direction of a ledger entry."""

    INCOME = "income"
    EXPENSE = "expense"


class PaymentStatus(str, Enum):
    """Lifecycle status of a tax payment."""

    PAID = "paid"
    PENDING = "pending"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class TaxKind(str, Enum):
    """Well-known tax kinds used to select payments.

    TaxPayment.tax_kind stays a free string so that unknown kinds from the
    persistence layer do not fail validation.
    """

    USN = "usn"
    USN_ADVANCE = "usn_advance"
    NDFL = "ndfl"
    NDS = "nds"
    INSURANCE = "insurance"
    PROPERTY = "property"
    TRANSPORT = "transport"
    LAND = "land"
    PATENT = "patent"
    OTHER = "other"


USN_ADVANCE_KINDS = frozenset({TaxKind.USN.value, TaxKind.USN_ADVANCE.value})
INSURANCE_KINDS = frozenset({TaxKind.INSURANCE.value})

PAID_DOCUMENT_STATUS = "paid"


class LedgerEntry(BaseModel):
    """A single row of the income/expense book."""

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "entry_date": "2024-02-15",
                    "kind": "income",
                    "amount": 100000,
                    "description": "Оплата по договору 12",
                    "counterparty": "ООО Ромашка",
                }
            ]
        }
    }

    entry_date: date = Field(description="Date the income or expense was recognised")
    kind: EntryKind = Field(description="Income or expense")
    amount: Money = Field(description="Amount in kopecks; expected to be non-negative")
    description: str = Field(default="", description="Free-text description")
    counterparty: Optional[str] = Field(default=None, description="Counterparty name")
    tender_ref: Optional[str] = Field(default=None, description="Linked contract/tender id")

    @property
    def is_income(self) -> bool:
        return self.kind == EntryKind.INCOME


class TaxPayment(BaseModel):
    """A tax or contribution payment already recorded for the tenant."""

    tax_kind: str = Field(description="Tax kind, e.g. 'usn', 'usn_advance', 'insurance'")
    period: str = Field(description="Period tag, e.g. '2024-Q1'")
    due_date: date = Field(description="Statutory due date")
    paid_amount: Money = Field(default=0, description="Amount remitted, kopecks")
    status: PaymentStatus = Field(default=PaymentStatus.PENDING)
    tax_name: Optional[str] = Field(default=None, description="Display name of the tax")
    calculated_amount: Optional[Money] = Field(
        default=None, description="Amount computed as owed for the period"
    )
    payment_id: Optional[str] = None

    @field_validator("tax_kind")
    @classmethod
    def normalize_tax_kind(cls, v: str) -> str:
        """Lower-case and strip the tax kind."""
        return v.strip().lower()

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID


class AccountingDocument(BaseModel):
    """An issued or received accounting document (invoice, act, UPD, ...)."""

    kind: str = Field(description="Document kind, e.g. 'invoice', 'purchase_invoice'")
    document_date: date
    total_amount: Money = Field(description="Document total including VAT, kopecks")
    vat_amount: Optional[Money] = Field(default=None, description="VAT amount, kopecks")
    document_number: str = Field(default="")
    counterparty_id: Optional[str] = None
    counterparty_name: Optional[str] = None
    counterparty_inn: Optional[str] = None
    tender_ref: Optional[str] = None
    payment_status: Optional[str] = Field(
        default=None, description="Payment status; 'paid' marks a settled document"
    )
    due_date: Optional[date] = None
    document_id: Optional[str] = None

    @field_validator("kind")
    @classmethod
    def normalize_kind(cls, v: str) -> str:
        """Lower-case and strip the document kind."""
        return v.strip().lower()

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PAID_DOCUMENT_STATUS


class Contract(BaseModel):
    """A tender/contract whose profitability is reported."""

    contract_id: str
    purchase_number: str = ""
    customer: str = ""
    subject: str = ""
    contract_price: Optional[Money] = None
    status: str = Field(default="", description="Tender status; 'won' counts as won")
    created_on: Optional[date] = Field(
        default=None, description="Date the tender was registered; used for period filtering"
    )

    @property
    def is_won(self) -> bool:
        return self.status == "won"


class Employee(BaseModel):
    """Employee salary input for contribution calculation.

    The salary sign is not validated here: a negative salary is rejected
    per record by the calculator so it shows up in the exclusion report.
    """

    name: str
    monthly_salary: Money = Field(description="Gross monthly salary, kopecks")


class LedgerSnapshot(BaseModel):
    """Already-fetched tenant data for one engine call."""

    entries: list[LedgerEntry] = Field(default_factory=list)
    payments: list[TaxPayment] = Field(default_factory=list)
    documents: list[AccountingDocument] = Field(default_factory=list)
    contracts: list[Contract] = Field(default_factory=list)

    def entries_between(self, date_from: date, date_to: date) -> list[LedgerEntry]:
        """Ledger entries dated within a window (inclusive)."""
        return [e for e in self.entries if date_from <= e.entry_date <= date_to]

    def documents_between(self, date_from: date, date_to: date) -> list[AccountingDocument]:
        """Documents dated within a window (inclusive)."""
        return [d for d in self.documents if date_from <= d.document_date <= date_to]
