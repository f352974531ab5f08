"""Reporting aggregations over the ledger snapshot.

ReportAggregator builds the management reports that consume the same
ledger as the tax calculators:

- income/expense breakdown by month, counterparty and expense category
- profit and loss
- VAT report
- counterparty debt
- contract (tender) profitability
- monthly cash flow

Top-N lists are ordered by amount descending; equal amounts keep the order
in which they were first encountered.
"""

import calendar
from datetime import date
from enum import Enum
from typing import Optional, Sequence

import structlog

from .categorizer import DEFAULT_RULES, CategoryRule, ExpenseCategory, categorize_expense
from .exceptions import ValidationError
from .models import (
    CalculationAudit,
    CashFlowMonth,
    CashFlowReport,
    CategoryAmount,
    CategoryType,
    ContractLine,
    ContractReport,
    ContractSummary,
    CounterpartyLine,
    CounterpartyReport,
    ExcludedItem,
    ExclusionReason,
    IncomeExpenseReport,
    IncomeExpenseSummary,
    LedgerEntry,
    LedgerSnapshot,
    MonthlyTotals,
    OperatingExpense,
    ProfitLossReport,
    RankedAmount,
    ReportPeriod,
    VatDirection,
    VatReport,
)
from .money import percentage
from .vat import OUTPUT_DOCUMENT_KINDS, extract_vat, quarter_bounds

logger = structlog.get_logger()

UNKNOWN_COUNTERPARTY = "unknown"
DEFAULT_TOP_N = 5


class PeriodKind(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


def period_for(kind: PeriodKind, reference: date) -> ReportPeriod:
    """The month, quarter or year containing ``reference``."""
    if kind == PeriodKind.MONTH:
        last_day = calendar.monthrange(reference.year, reference.month)[1]
        return ReportPeriod(
            date_from=reference.replace(day=1),
            date_to=reference.replace(day=last_day),
        )
    if kind == PeriodKind.QUARTER:
        start, end = quarter_bounds(reference.year, (reference.month - 1) // 3 + 1)
        return ReportPeriod(date_from=start, date_to=end)
    return ReportPeriod(date_from=date(reference.year, 1, 1), date_to=date(reference.year, 12, 31))


def _top(amounts: dict[str, int], n: int) -> list[RankedAmount]:
    ranked = sorted(amounts.items(), key=lambda item: -item[1])
    return [RankedAmount(name=name, amount=amount) for name, amount in ranked[:n]]


class ReportAggregator:
    """
    Build management reports from a ledger snapshot.

    Args:
        rules: Ordered expense categorization rules
        top_n: Length of the top income source / expense category lists
    """

    def __init__(
        self,
        rules: Sequence[CategoryRule] = DEFAULT_RULES,
        top_n: int = DEFAULT_TOP_N,
    ):
        if top_n < 1:
            raise ValidationError(
                "top_n must be positive", field="top_n", value=top_n, constraint=">= 1"
            )
        self.rules = tuple(rules)
        self.top_n = top_n

    def _usable_entries(
        self,
        snapshot: LedgerSnapshot,
        period: ReportPeriod,
        audit: CalculationAudit,
    ) -> list[LedgerEntry]:
        usable = []
        for entry in snapshot.entries_between(period.date_from, period.date_to):
            if entry.amount < 0:
                audit.exclude(
                    ExcludedItem(
                        source="entry",
                        reason=ExclusionReason.NEGATIVE_AMOUNT,
                        reference=f"{entry.entry_date.isoformat()} {entry.description}".strip(),
                        detail=f"amount={entry.amount}",
                    )
                )
                continue
            usable.append(entry)
        return usable

    def categorize(self, description: str) -> ExpenseCategory:
        """Category of an expense description under this aggregator's rules."""
        return categorize_expense(description, self.rules)

    # ------------------------------------------------------------------
    # Income / expense
    # ------------------------------------------------------------------

    def income_expense(self, snapshot: LedgerSnapshot, period: ReportPeriod) -> IncomeExpenseReport:
        """Totals by month, income by counterparty, expenses by category."""
        audit = CalculationAudit("income_expense_report")
        entries = self._usable_entries(snapshot, period, audit)

        total_income = 0
        total_expense = 0
        monthly: dict[str, list[int]] = {}
        income_by_counterparty: dict[str, int] = {}
        expense_by_category: dict[str, int] = {}

        for entry in entries:
            month = entry.entry_date.strftime("%Y-%m")
            bucket = monthly.setdefault(month, [0, 0])
            if entry.is_income:
                total_income += entry.amount
                bucket[0] += entry.amount
                name = entry.counterparty or UNKNOWN_COUNTERPARTY
                income_by_counterparty[name] = income_by_counterparty.get(name, 0) + entry.amount
            else:
                total_expense += entry.amount
                bucket[1] += entry.amount
                category = self.categorize(entry.description).value
                expense_by_category[category] = expense_by_category.get(category, 0) + entry.amount

        by_month = [
            MonthlyTotals(month=month, income=values[0], expense=values[1])
            for month, values in sorted(monthly.items())
        ]

        by_category = [
            CategoryAmount(
                category_name=name,
                category_type=CategoryType.INCOME,
                amount=amount,
                percentage=percentage(amount, total_income),
            )
            for name, amount in income_by_counterparty.items()
        ]
        by_category.extend(
            CategoryAmount(
                category_name=name,
                category_type=CategoryType.EXPENSE,
                amount=amount,
                percentage=percentage(amount, total_expense),
            )
            for name, amount in expense_by_category.items()
        )

        logger.info(
            "income_expense_report_built",
            entries=len(entries),
            total_income=total_income,
            total_expense=total_expense,
        )

        return IncomeExpenseReport(
            period=period,
            summary=IncomeExpenseSummary(total_income=total_income, total_expense=total_expense),
            by_month=by_month,
            by_category=by_category,
            top_income_sources=_top(income_by_counterparty, self.top_n),
            top_expense_categories=_top(expense_by_category, self.top_n),
            excluded=audit.excluded,
        )

    # ------------------------------------------------------------------
    # Profit and loss
    # ------------------------------------------------------------------

    def profit_loss(self, snapshot: LedgerSnapshot, period: ReportPeriod) -> ProfitLossReport:
        """Revenue, cost of sales (purchases), operating expenses and taxes."""
        audit = CalculationAudit("profit_loss_report")
        entries = self._usable_entries(snapshot, period, audit)

        revenue = 0
        cost_of_sales = 0
        taxes = 0
        operating: dict[str, int] = {}

        for entry in entries:
            if entry.is_income:
                revenue += entry.amount
                continue
            category = self.categorize(entry.description)
            if category == ExpenseCategory.PURCHASES:
                cost_of_sales += entry.amount
            elif category == ExpenseCategory.TAXES:
                taxes += entry.amount
            else:
                operating[category.value] = operating.get(category.value, 0) + entry.amount

        operating_expenses = [
            OperatingExpense(category=name, amount=amount)
            for name, amount in sorted(operating.items(), key=lambda item: -item[1])
        ]
        total_operating = sum(item.amount for item in operating_expenses)
        gross_profit = revenue - cost_of_sales
        operating_profit = gross_profit - total_operating
        net_profit = operating_profit - taxes

        return ProfitLossReport(
            period=period,
            revenue=revenue,
            cost_of_sales=cost_of_sales,
            gross_profit=gross_profit,
            operating_expenses=operating_expenses,
            total_operating_expenses=total_operating,
            operating_profit=operating_profit,
            taxes=taxes,
            net_profit=net_profit,
            profit_margin=percentage(net_profit, revenue),
            excluded=audit.excluded,
        )

    # ------------------------------------------------------------------
    # VAT
    # ------------------------------------------------------------------

    def vat(self, snapshot: LedgerSnapshot, period: ReportPeriod) -> VatReport:
        """Output and input VAT documents of the period."""
        result = extract_vat(snapshot.documents, period.date_from, period.date_to)
        return VatReport(
            period=period,
            vat_received=result.output_vat,
            vat_paid=result.input_vat,
            vat_to_pay=result.vat_to_pay,
            vat_to_refund=result.vat_to_refund,
            output_lines=[d for d in result.documents if d.direction == VatDirection.OUTPUT],
            input_lines=[d for d in result.documents if d.direction == VatDirection.INPUT],
            excluded=result.excluded,
        )

    # ------------------------------------------------------------------
    # Counterparties
    # ------------------------------------------------------------------

    def counterparties(self, snapshot: LedgerSnapshot, period: ReportPeriod) -> CounterpartyReport:
        """Invoiced, paid and outstanding amounts per customer.

        Only issued documents (invoice, act, invoice_upd) are counted.
        Counterparties without documents in the period do not appear.

        Documents are grouped by counterparty id. A document carrying only a
        name joins the line of the single id seen with that name in the
        period; when the name maps to no id or to several ids it gets a
        line of its own keyed by name. Ids and names never collide.
        """
        audit = CalculationAudit("counterparty_report")
        lines: dict[tuple[str, str], CounterpartyLine] = {}
        documents = [
            doc
            for doc in snapshot.documents_between(period.date_from, period.date_to)
            if doc.kind in OUTPUT_DOCUMENT_KINDS
        ]

        ids_by_name: dict[str, set[str]] = {}
        for doc in documents:
            if doc.counterparty_id and doc.counterparty_name:
                ids_by_name.setdefault(doc.counterparty_name, set()).add(doc.counterparty_id)

        for doc in documents:
            if doc.counterparty_id:
                key = ("id", doc.counterparty_id)
            elif doc.counterparty_name:
                known_ids = ids_by_name.get(doc.counterparty_name, set())
                if len(known_ids) == 1:
                    key = ("id", next(iter(known_ids)))
                else:
                    key = ("name", doc.counterparty_name)
            else:
                audit.exclude(
                    ExcludedItem(
                        source="document",
                        reason=ExclusionReason.MISSING_COUNTERPARTY,
                        reference=doc.document_number or doc.document_id,
                    )
                )
                continue
            line = lines.get(key)
            if line is None:
                line = CounterpartyLine(
                    counterparty_id=key[1] if key[0] == "id" else None,
                    name=doc.counterparty_name or key[1],
                    inn=doc.counterparty_inn,
                    documents_count=0,
                    total_invoiced=0,
                    total_paid=0,
                )
                lines[key] = line
            line.documents_count += 1
            line.total_invoiced += doc.total_amount
            if doc.is_paid:
                line.total_paid += doc.total_amount

        ordered = sorted(lines.values(), key=lambda line: -line.total_invoiced)
        return CounterpartyReport(
            period=period,
            counterparties=ordered,
            total_invoiced=sum(line.total_invoiced for line in ordered),
            total_paid=sum(line.total_paid for line in ordered),
            excluded=audit.excluded,
        )

    # ------------------------------------------------------------------
    # Contracts
    # ------------------------------------------------------------------

    def contracts(self, snapshot: LedgerSnapshot, period: ReportPeriod) -> ContractReport:
        """Profitability of each contract and the tender win rate.

        Contracts registered outside the period are skipped; contracts
        without a registration date are always included. Documents and
        ledger entries are linked through ``tender_ref`` over the whole
        contract lifetime. Linked entries with a negative amount are
        excluded and reported.
        """
        audit = CalculationAudit("contract_report")
        contracts = [
            c for c in snapshot.contracts
            if c.created_on is None or period.contains(c.created_on)
        ]
        docs_by_contract: dict[str, list[int]] = {}
        for doc in snapshot.documents:
            if not doc.tender_ref:
                continue
            stats = docs_by_contract.setdefault(doc.tender_ref, [0, 0])
            stats[0] += 1
            if doc.is_paid:
                stats[1] += doc.total_amount

        book_by_contract: dict[str, list[int]] = {}
        for entry in snapshot.entries:
            if not entry.tender_ref:
                continue
            if entry.amount < 0:
                audit.exclude(
                    ExcludedItem(
                        source="entry",
                        reason=ExclusionReason.NEGATIVE_AMOUNT,
                        reference=f"{entry.tender_ref} {entry.entry_date.isoformat()}",
                        detail=f"amount={entry.amount}",
                    )
                )
                continue
            stats = book_by_contract.setdefault(entry.tender_ref, [0, 0])
            stats[0 if entry.is_income else 1] += entry.amount

        lines = []
        for contract in contracts:
            count, paid = docs_by_contract.get(contract.contract_id, (0, 0))
            income, expenses = book_by_contract.get(contract.contract_id, (0, 0))
            profit = income - expenses
            lines.append(
                ContractLine(
                    contract_id=contract.contract_id,
                    purchase_number=contract.purchase_number,
                    customer=contract.customer,
                    contract_price=contract.contract_price,
                    status=contract.status,
                    documents_count=count,
                    paid=paid,
                    income=income,
                    expenses=expenses,
                    profit=profit,
                    margin=percentage(profit, income),
                )
            )

        won = [c for c in contracts if c.is_won]
        summary = ContractSummary(
            total_contracts=len(contracts),
            won_contracts=len(won),
            total_contract_value=sum(c.contract_price or 0 for c in won),
            total_paid=sum(line.paid for line in lines),
            total_expenses=sum(line.expenses for line in lines),
            profit=sum(line.profit for line in lines),
            win_rate=percentage(len(won), len(contracts)),
        )
        return ContractReport(
            period=period, summary=summary, contracts=lines, excluded=audit.excluded
        )

    # ------------------------------------------------------------------
    # Cash flow
    # ------------------------------------------------------------------

    def cash_flow(
        self,
        snapshot: LedgerSnapshot,
        year: int,
        month: Optional[int] = None,
    ) -> CashFlowReport:
        """Monthly inflows and outflows for a year, or for a single month."""
        if month is not None and not 1 <= month <= 12:
            raise ValidationError(
                "Month must be between 1 and 12", field="month", value=month, constraint="1..12"
            )
        if month is None:
            period = ReportPeriod(date_from=date(year, 1, 1), date_to=date(year, 12, 31))
            months = list(range(1, 13))
        else:
            period = period_for(PeriodKind.MONTH, date(year, month, 1))
            months = [month]

        audit = CalculationAudit("cash_flow_report")
        rows = {m: CashFlowMonth(month=m) for m in months}
        for entry in self._usable_entries(snapshot, period, audit):
            row = rows[entry.entry_date.month]
            if entry.is_income:
                row.income += entry.amount
            else:
                row.expense += entry.amount

        return CashFlowReport(
            year=year,
            month=month,
            months=list(rows.values()),
            total_income=sum(r.income for r in rows.values()),
            total_expense=sum(r.expense for r in rows.values()),
            excluded=audit.excluded,
        )


_default_aggregator = ReportAggregator()


def build_income_expense_report(
    snapshot: LedgerSnapshot, period: ReportPeriod, top_n: int = DEFAULT_TOP_N
) -> IncomeExpenseReport:
    aggregator = _default_aggregator if top_n == DEFAULT_TOP_N else ReportAggregator(top_n=top_n)
    return aggregator.income_expense(snapshot, period)


def build_profit_loss_report(snapshot: LedgerSnapshot, period: ReportPeriod) -> ProfitLossReport:
    return _default_aggregator.profit_loss(snapshot, period)


def build_vat_report(snapshot: LedgerSnapshot, period: ReportPeriod) -> VatReport:
    return _default_aggregator.vat(snapshot, period)


def build_counterparty_report(snapshot: LedgerSnapshot, period: ReportPeriod) -> CounterpartyReport:
    return _default_aggregator.counterparties(snapshot, period)


def build_contract_report(snapshot: LedgerSnapshot, period: ReportPeriod) -> ContractReport:
    return _default_aggregator.contracts(snapshot, period)


def build_cash_flow_report(
    snapshot: LedgerSnapshot, year: int, month: Optional[int] = None
) -> CashFlowReport:
    return _default_aggregator.cash_flow(snapshot, year, month)
