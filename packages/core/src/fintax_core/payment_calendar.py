"""Payment calendar and tax calendar.

The payment calendar lists expected cash movements in a window: unpaid
issued documents (inflows), unpaid received documents (outflows) and tax
payments still owed. Walking the items in date order from the opening
balance reveals the first day the balance would go negative (a cash gap).

Both calendars take the reference date ``as_of`` explicitly; nothing here
reads the clock.
"""

from datetime import date
from typing import Iterable

import structlog

from .exceptions import ValidationError
from .models import (
    CalendarItemStatus,
    CalendarItemType,
    LedgerSnapshot,
    PaymentCalendar,
    PaymentCalendarItem,
    PaymentStatus,
    TaxCalendarEntry,
    TaxPayment,
    VatDirection,
)
from .money import Money
from .vat import classify_document

logger = structlog.get_logger()

_SETTLED_STATUSES = (PaymentStatus.PAID, PaymentStatus.CANCELLED)


def _status(due: date, as_of: date) -> CalendarItemStatus:
    return CalendarItemStatus.OVERDUE if due < as_of else CalendarItemStatus.PLANNED


def build_payment_calendar(
    snapshot: LedgerSnapshot,
    date_from: date,
    date_to: date,
    as_of: date,
    opening_balance: Money = 0,
) -> PaymentCalendar:
    """
    Build the payment calendar for an inclusive window.

    Args:
        snapshot: Tenant documents and tax payments
        date_from: First day of the window
        date_to: Last day of the window
        as_of: Reference date; items due before it are overdue
        opening_balance: Cash available at the start of the window, kopecks

    Returns:
        PaymentCalendar with items sorted by date and the first cash gap

    Raises:
        ValidationError: ``date_to`` precedes ``date_from``
    """
    if date_to < date_from:
        raise ValidationError(
            "Window end precedes its start",
            field="date_to",
            value=date_to.isoformat(),
            constraint=f">= {date_from.isoformat()}",
        )

    items: list[PaymentCalendarItem] = []

    for doc in snapshot.documents:
        if doc.is_paid:
            continue
        direction = classify_document(doc.kind)
        if direction == VatDirection.IGNORED:
            continue
        due = doc.due_date or doc.document_date
        if not date_from <= due <= date_to:
            continue
        items.append(
            PaymentCalendarItem(
                item_date=due,
                item_type=(
                    CalendarItemType.INCOME
                    if direction == VatDirection.OUTPUT
                    else CalendarItemType.EXPENSE
                ),
                description=f"{doc.kind.upper()} №{doc.document_number}",
                counterparty=doc.counterparty_name,
                amount=doc.total_amount,
                status=_status(due, as_of),
                reference=doc.document_id,
            )
        )

    for payment in snapshot.payments:
        if payment.status in _SETTLED_STATUSES:
            continue
        if not date_from <= payment.due_date <= date_to:
            continue
        remaining = (payment.calculated_amount or 0) - payment.paid_amount
        if remaining <= 0:
            continue
        items.append(
            PaymentCalendarItem(
                item_date=payment.due_date,
                item_type=CalendarItemType.TAX,
                description=payment.tax_name or f"{payment.tax_kind} {payment.period}",
                amount=remaining,
                status=_status(payment.due_date, as_of),
                reference=payment.payment_id,
            )
        )

    items.sort(key=lambda item: item.item_date)

    total_income = sum(i.amount for i in items if i.item_type == CalendarItemType.INCOME)
    total_expense = sum(i.amount for i in items if i.item_type != CalendarItemType.INCOME)

    running = opening_balance
    cash_gap_date = None
    for item in items:
        if item.item_type == CalendarItemType.INCOME:
            running += item.amount
        else:
            running -= item.amount
        if running < 0 and cash_gap_date is None:
            cash_gap_date = item.item_date

    if cash_gap_date is not None:
        logger.warning("cash_gap_detected", cash_gap_date=cash_gap_date.isoformat())

    return PaymentCalendar(
        items=items,
        opening_balance=opening_balance,
        total_income=total_income,
        total_expense=total_expense,
        cash_gap_warning=cash_gap_date is not None,
        cash_gap_date=cash_gap_date,
    )


def build_tax_calendar(
    payments: Iterable[TaxPayment],
    year: int,
    as_of: date,
) -> list[TaxCalendarEntry]:
    """Tax payments due in ``year`` ordered by due date.

    A payment is overdue when its due date is before ``as_of`` and it is
    neither paid nor cancelled; overdue entries report status "overdue".
    """
    entries = []
    for payment in payments:
        if payment.due_date.year != year:
            continue
        days_until_due = (payment.due_date - as_of).days
        is_overdue = days_until_due < 0 and payment.status not in _SETTLED_STATUSES
        entries.append(
            TaxCalendarEntry(
                tax_kind=payment.tax_kind,
                tax_name=payment.tax_name,
                period=payment.period,
                due_date=payment.due_date,
                calculated_amount=payment.calculated_amount,
                paid_amount=payment.paid_amount,
                status=PaymentStatus.OVERDUE.value if is_overdue else payment.status.value,
                days_until_due=days_until_due,
                is_overdue=is_overdue,
            )
        )
    entries.sort(key=lambda entry: entry.due_date)
    return entries
