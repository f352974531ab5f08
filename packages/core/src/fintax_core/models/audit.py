"""Audit trail and exclusion report models.

Calculators record every derived quantity as an AuditEntry so a figure on a
tax return can be traced back to its inputs. Records that could not be
used (an unparseable period tag, an unknown document kind, a negative
amount) are reported as ExcludedItem rather than silently dropped.

Entries carry no timestamps: two calls with identical inputs must produce
identical results.
"""

from enum import Enum
from typing import Optional

import structlog
from pydantic import BaseModel, Field, computed_field

logger = structlog.get_logger()


class ExclusionReason(str, Enum):
    """Why an input record was left out of the totals."""

    UNPARSEABLE_PERIOD = "unparseable_period"
    UNKNOWN_DOCUMENT_KIND = "unknown_document_kind"
    NEGATIVE_AMOUNT = "negative_amount"
    MISSING_COUNTERPARTY = "missing_counterparty"


class ExcludedItem(BaseModel):
    """An input record excluded from a calculation.

    Attributes:
        source: Kind of record ("entry", "payment", "document", "employee")
        reason: Machine-readable exclusion reason
        reference: Identifier of the record as far as it is known
        detail: Human-readable explanation
    """

    source: str
    reason: ExclusionReason
    reference: Optional[str] = None
    detail: Optional[str] = None


class AuditEntry(BaseModel):
    """Single calculation step.

    Attributes:
        step: Name of the step (e.g. "q2_tax_calculated")
        input_value: Inputs of the step as text
        output_value: Result of the step as text
        source: Rule or law the step applies
        notes: Additional context
    """

    step: str
    input_value: str
    output_value: str
    source: str
    notes: Optional[str] = None


class CalculationAudit:
    """Per-call collector of audit steps and excluded records.

    A fresh instance is created for every calculation, so calculators stay
    free of mutable state and can be shared between threads.
    """

    def __init__(self, calculation: str):
        self.calculation = calculation
        self.entries: list[AuditEntry] = []
        self.excluded: list[ExcludedItem] = []

    def step(
        self,
        step: str,
        input_value: str,
        output_value: str,
        source: str,
        notes: Optional[str] = None,
    ) -> None:
        """Add an entry to the audit log."""
        self.entries.append(
            AuditEntry(
                step=step,
                input_value=input_value,
                output_value=output_value,
                source=source,
                notes=notes,
            )
        )
        logger.info(
            f"{self.calculation}_calculation_step",
            step=step,
            input=input_value,
            output=output_value,
            source=source,
        )

    def exclude(self, item: ExcludedItem) -> None:
        """Record an excluded input and warn about it."""
        self.excluded.append(item)
        logger.warning(
            "input_excluded",
            calculation=self.calculation,
            source=item.source,
            reason=item.reason.value,
            reference=item.reference,
        )

    def extend_excluded(self, items: list[ExcludedItem]) -> None:
        """Carry over exclusions already recorded by a lower layer."""
        self.excluded.extend(items)


class ExclusionSummary(BaseModel):
    """Base for results that report excluded inputs."""

    excluded: list[ExcludedItem] = Field(default_factory=list)

    @computed_field
    @property
    def excluded_count(self) -> int:
        """Number of inputs left out of the totals."""
        return len(self.excluded)
