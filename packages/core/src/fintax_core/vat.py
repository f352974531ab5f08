"""VAT extraction from accounting documents.

Documents the tenant issued (invoice, act, invoice_upd) carry output VAT;
documents the tenant received (purchase_invoice, expense) carry input VAT.
The liability is the positive difference:

    vat_to_pay    = max(0, output_vat - input_vat)
    vat_to_refund = max(0, input_vat - output_vat)

Documents without a VAT amount contribute nothing. Documents of any other
kind are ignored and reported as excluded when they carry VAT.
"""

import calendar
from datetime import date
from typing import Iterable, Optional

import structlog

from .exceptions import ValidationError
from .models import (
    AccountingDocument,
    CalculationAudit,
    ExcludedItem,
    ExclusionReason,
    LedgerSnapshot,
    VatDirection,
    VatLine,
    VatResult,
)
from .money import clamp_non_negative
from .tax_constants import ConstantTable, default_constant_table

logger = structlog.get_logger()

OUTPUT_DOCUMENT_KINDS = frozenset({"invoice", "act", "invoice_upd"})
INPUT_DOCUMENT_KINDS = frozenset({"purchase_invoice", "expense"})


def classify_document(kind: str) -> VatDirection:
    """Classify a document kind as output, input or ignored."""
    normalized = kind.strip().lower()
    if normalized in OUTPUT_DOCUMENT_KINDS:
        return VatDirection.OUTPUT
    if normalized in INPUT_DOCUMENT_KINDS:
        return VatDirection.INPUT
    return VatDirection.IGNORED


def quarter_bounds(year: int, quarter: int) -> tuple[date, date]:
    """First and last day of a calendar quarter.

    Raises:
        ValidationError: ``quarter`` is not 1..4
    """
    if quarter not in (1, 2, 3, 4):
        raise ValidationError(
            "Quarter must be between 1 and 4",
            field="quarter",
            value=quarter,
            constraint="1 <= quarter <= 4",
        )
    start_month = (quarter - 1) * 3 + 1
    end_month = start_month + 2
    last_day = calendar.monthrange(year, end_month)[1]
    return date(year, start_month, 1), date(year, end_month, last_day)


def _check_window(date_from: date, date_to: date) -> None:
    if date_to < date_from:
        raise ValidationError(
            "Window end precedes its start",
            field="date_to",
            value=date_to.isoformat(),
            constraint=f">= {date_from.isoformat()}",
        )


def extract_vat(
    documents: Iterable[AccountingDocument],
    date_from: date,
    date_to: date,
    audit: Optional[CalculationAudit] = None,
) -> VatResult:
    """Sum output and input VAT for documents dated in an inclusive window.

    Args:
        documents: Accounting documents of the tenant
        date_from: First day of the window
        date_to: Last day of the window
        audit: Optional audit collector to record steps into

    Returns:
        VatResult with totals, line items and excluded documents
    """
    _check_window(date_from, date_to)
    audit = audit or CalculationAudit("vat")

    output_vat = 0
    input_vat = 0
    lines: list[VatLine] = []

    for doc in documents:
        if not date_from <= doc.document_date <= date_to:
            continue
        if doc.vat_amount is None:
            continue

        direction = classify_document(doc.kind)
        if direction == VatDirection.IGNORED:
            audit.exclude(
                ExcludedItem(
                    source="document",
                    reason=ExclusionReason.UNKNOWN_DOCUMENT_KIND,
                    reference=doc.document_number or doc.document_id,
                    detail=f"kind {doc.kind!r} is neither issued nor received",
                )
            )
            continue

        if direction == VatDirection.OUTPUT:
            output_vat += doc.vat_amount
        else:
            input_vat += doc.vat_amount

        lines.append(
            VatLine(
                direction=direction,
                document_number=doc.document_number,
                document_date=doc.document_date,
                counterparty_name=doc.counterparty_name,
                total_amount=doc.total_amount,
                vat_amount=doc.vat_amount,
            )
        )

    vat_to_pay = clamp_non_negative(output_vat - input_vat)
    vat_to_refund = clamp_non_negative(input_vat - output_vat)

    audit.step(
        step="vat_balance",
        input_value=f"output={output_vat}, input={input_vat}",
        output_value=f"to_pay={vat_to_pay}, to_refund={vat_to_refund}",
        source="Tax Code art. 173",
        notes=f"{date_from.isoformat()}..{date_to.isoformat()}, {len(lines)} documents",
    )

    return VatResult(
        date_from=date_from,
        date_to=date_to,
        output_vat=output_vat,
        input_vat=input_vat,
        vat_to_pay=vat_to_pay,
        vat_to_refund=vat_to_refund,
        documents=lines,
        excluded=audit.excluded,
        audit_log=audit.entries,
    )


class VatCalculator:
    """Quarterly VAT liability from issued and received documents."""

    def __init__(self, constants: Optional[ConstantTable] = None):
        self.constants = constants or default_constant_table()

    def calculate(self, snapshot: LedgerSnapshot, year: int, quarter: int) -> VatResult:
        """
        Calculate VAT to pay or refund for one quarter.

        Raises:
            ConfigurationError: No constants for ``year``
            ValidationError: ``quarter`` is not 1..4
        """
        rates = self.constants.for_year(year)
        date_from, date_to = quarter_bounds(year, quarter)
        audit = CalculationAudit("vat")
        audit.step(
            step="vat_period",
            input_value=f"year={year}, quarter={quarter}",
            output_value=f"{date_from.isoformat()}..{date_to.isoformat()}",
            source=f"VAT rates {', '.join(str(r) for r in rates.vat_rates)}% ({rates.year})",
        )
        result = extract_vat(snapshot.documents, date_from, date_to, audit=audit)
        logger.info(
            "vat_calculated",
            year=year,
            quarter=quarter,
            vat_to_pay=result.vat_to_pay,
            vat_to_refund=result.vat_to_refund,
            excluded=result.excluded_count,
        )
        return result
