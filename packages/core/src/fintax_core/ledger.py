"""Quarterly aggregation of ledger entries and tax payments.

Buckets dated entries into calendar quarters of one fiscal year and exposes
running (cumulative) totals from Q1 through any quarter:

    cumulative[0] = 0
    cumulative[q] = cumulative[q-1] + period_total[q]

Tax payments are matched to quarters by their period tag ("2024-Q3" -> 3).
Payments whose tag does not name a quarter are excluded and reported.
"""

import re
from datetime import date
from typing import Iterable, Optional

import structlog
from pydantic import BaseModel, Field

from .exceptions import ValidationError
from .models.audit import ExcludedItem, ExclusionReason, ExclusionSummary
from .models.ledger import EntryKind, LedgerEntry, TaxPayment

logger = structlog.get_logger()

QUARTERS = (1, 2, 3, 4)

_PERIOD_QUARTER = re.compile(r"Q(\d)")


def quarter_of(day: date) -> int:
    """Calendar quarter (1..4) of a date."""
    return (day.month - 1) // 3 + 1


def parse_period_quarter(tag: Optional[str]) -> Optional[int]:
    """Extract the quarter number from a period tag.

    Args:
        tag: Period tag such as "Q2" or "2024-Q2"

    Returns:
        Quarter 1..4, or None when the tag does not name a valid quarter
    """
    if not tag:
        return None
    match = _PERIOD_QUARTER.search(tag)
    if match is None:
        return None
    quarter = int(match.group(1))
    return quarter if quarter in QUARTERS else None


def _check_quarter(q: int) -> None:
    if not 0 <= q <= 4:
        raise ValidationError(
            "Quarter must be between 0 and 4",
            field="quarter",
            value=q,
            constraint="0 <= quarter <= 4",
        )


class QuarterBucket(BaseModel):
    """Income and expense totals for one quarter (or a running total)."""

    quarter: int = Field(ge=0, le=4)
    income_total: int = 0
    expense_total: int = 0


class QuarterlyLedger(ExclusionSummary):
    """Ledger entries of one fiscal year grouped by quarter."""

    year: int
    buckets: list[QuarterBucket]

    def bucket(self, q: int) -> QuarterBucket:
        """Totals of quarter ``q`` alone."""
        if q not in QUARTERS:
            raise ValidationError(
                "Quarter must be between 1 and 4",
                field="quarter",
                value=q,
                constraint="1 <= quarter <= 4",
            )
        return self.buckets[q - 1]

    def cumulative_through(self, q: int) -> QuarterBucket:
        """Running totals of quarters 1..q; ``q=0`` yields zeros."""
        _check_quarter(q)
        return QuarterBucket(
            quarter=q,
            income_total=sum(b.income_total for b in self.buckets[:q]),
            expense_total=sum(b.expense_total for b in self.buckets[:q]),
        )

    def cumulative(self) -> list[QuarterBucket]:
        """Running totals for Q1..Q4."""
        return [self.cumulative_through(q) for q in QUARTERS]

    @property
    def total_income(self) -> int:
        return sum(b.income_total for b in self.buckets)

    @property
    def total_expense(self) -> int:
        return sum(b.expense_total for b in self.buckets)


def aggregate_by_quarter(entries: Iterable[LedgerEntry], year: int) -> QuarterlyLedger:
    """Bucket entries of ``year`` into quarters.

    Entries dated in other years are skipped. Entries with a negative amount
    are excluded and reported. Entries sharing a date are all counted.
    """
    income = [0, 0, 0, 0]
    expense = [0, 0, 0, 0]
    excluded: list[ExcludedItem] = []

    for entry in entries:
        if entry.entry_date.year != year:
            continue
        if entry.amount < 0:
            excluded.append(
                ExcludedItem(
                    source="entry",
                    reason=ExclusionReason.NEGATIVE_AMOUNT,
                    reference=f"{entry.entry_date.isoformat()} {entry.description}".strip(),
                    detail=f"amount={entry.amount}",
                )
            )
            logger.warning(
                "ledger_entry_rejected",
                entry_date=entry.entry_date.isoformat(),
                amount=entry.amount,
            )
            continue
        idx = quarter_of(entry.entry_date) - 1
        if entry.kind == EntryKind.INCOME:
            income[idx] += entry.amount
        else:
            expense[idx] += entry.amount

    return QuarterlyLedger(
        year=year,
        buckets=[
            QuarterBucket(quarter=q, income_total=income[q - 1], expense_total=expense[q - 1])
            for q in QUARTERS
        ],
        excluded=excluded,
    )


class QuarterlyPayments(ExclusionSummary):
    """Paid amounts of selected tax kinds, grouped by period quarter."""

    year: int
    by_quarter: list[int] = Field(default_factory=lambda: [0, 0, 0, 0])

    def cumulative_through(self, q: int) -> int:
        """Amount paid for quarters 1..q."""
        _check_quarter(q)
        return sum(self.by_quarter[:q])


def aggregate_payments_by_quarter(
    payments: Iterable[TaxPayment],
    tax_kinds: Iterable[str],
    year: int,
) -> QuarterlyPayments:
    """Sum paid payments of the given kinds per period quarter.

    Only payments with status ``paid`` and a due date in ``year`` are
    considered. A considered payment whose period tag does not parse to
    Q1..Q4 is excluded from every total and listed in ``excluded``.
    """
    kinds = frozenset(tax_kinds)
    by_quarter = [0, 0, 0, 0]
    excluded: list[ExcludedItem] = []

    for payment in payments:
        if payment.tax_kind not in kinds or not payment.is_paid:
            continue
        if payment.due_date.year != year:
            continue
        quarter = parse_period_quarter(payment.period)
        if quarter is None:
            excluded.append(
                ExcludedItem(
                    source="payment",
                    reason=ExclusionReason.UNPARSEABLE_PERIOD,
                    reference=payment.payment_id or f"{payment.tax_kind}:{payment.period}",
                    detail=f"period tag {payment.period!r} does not name Q1..Q4",
                )
            )
            logger.warning(
                "tax_payment_unclassified",
                tax_kind=payment.tax_kind,
                period=payment.period,
                paid_amount=payment.paid_amount,
            )
            continue
        by_quarter[quarter - 1] += payment.paid_amount

    return QuarterlyPayments(year=year, by_quarter=by_quarter, excluded=excluded)
