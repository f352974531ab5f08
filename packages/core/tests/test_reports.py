"""Tests for report aggregations."""

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError as PydanticValidationError

from fintax_core import ReportAggregator, ValidationError
from fintax_core.models import (
    AccountingDocument,
    CategoryType,
    Contract,
    EntryKind,
    ExclusionReason,
    LedgerEntry,
    LedgerSnapshot,
    ReportPeriod,
)
from fintax_core.reports import (
    PeriodKind,
    build_cash_flow_report,
    build_income_expense_report,
    build_vat_report,
    period_for,
)

Q1_2024 = ReportPeriod(date_from=date(2024, 1, 1), date_to=date(2024, 3, 31))


def entry(day, kind, amount, description="", counterparty=None, tender_ref=None) -> LedgerEntry:
    return LedgerEntry(
        entry_date=day,
        kind=kind,
        amount=amount,
        description=description,
        counterparty=counterparty,
        tender_ref=tender_ref,
    )


@pytest.fixture
def book() -> LedgerSnapshot:
    """A quarter of income and categorized expenses."""
    return LedgerSnapshot(
        entries=[
            entry(date(2024, 1, 10), EntryKind.INCOME, 100_000, "Оплата", "ООО Ромашка"),
            entry(date(2024, 1, 15), EntryKind.EXPENSE, 30_000, "Закупка товара"),
            entry(date(2024, 2, 1), EntryKind.EXPENSE, 20_000, "Аренда офиса"),
            entry(date(2024, 2, 5), EntryKind.INCOME, 50_000, "Оплата"),
            entry(date(2024, 2, 10), EntryKind.EXPENSE, 5_000, "Комиссия банка"),
            entry(date(2024, 2, 20), EntryKind.EXPENSE, 10_000, "Налог УСН"),
            entry(date(2024, 3, 1), EntryKind.EXPENSE, 5_000, "Канцелярия"),
            entry(date(2024, 4, 1), EntryKind.INCOME, 999_999, "Оплата", "ООО Лютик"),
        ]
    )


class TestPeriodFor:
    """Test period helper."""

    def test_month(self):
        period = period_for(PeriodKind.MONTH, date(2024, 2, 10))
        assert (period.date_from, period.date_to) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_quarter(self):
        assert period_for(PeriodKind.QUARTER, date(2024, 2, 10)) == Q1_2024

    def test_year(self):
        period = period_for(PeriodKind.YEAR, date(2024, 7, 1))
        assert (period.date_from, period.date_to) == (date(2024, 1, 1), date(2024, 12, 31))

    def test_inverted_period_rejected(self):
        with pytest.raises(PydanticValidationError):
            ReportPeriod(date_from=date(2024, 2, 1), date_to=date(2024, 1, 1))


class TestIncomeExpenseReport:
    """Test suite for the income/expense report."""

    def test_summary(self, book: LedgerSnapshot):
        report = build_income_expense_report(book, Q1_2024)

        assert report.summary.total_income == 150_000
        assert report.summary.total_expense == 70_000
        assert report.summary.balance == 80_000

    def test_by_month(self, book: LedgerSnapshot):
        report = build_income_expense_report(book, Q1_2024)

        assert [(m.month, m.income, m.expense) for m in report.by_month] == [
            ("2024-01", 100_000, 30_000),
            ("2024-02", 50_000, 35_000),
            ("2024-03", 0, 5_000),
        ]

    def test_top_lists(self, book: LedgerSnapshot):
        report = build_income_expense_report(book, Q1_2024)

        assert [(r.name, r.amount) for r in report.top_income_sources] == [
            ("ООО Ромашка", 100_000),
            ("unknown", 50_000),
        ]
        assert [r.name for r in report.top_expense_categories] == [
            "purchases",
            "rent",
            "taxes",
            "bank_fees",
            "other",
        ]

    def test_top_n_limits_list(self, book: LedgerSnapshot):
        report = ReportAggregator(top_n=2).income_expense(book, Q1_2024)
        assert len(report.top_expense_categories) == 2

    def test_expense_percentages(self, book: LedgerSnapshot):
        report = build_income_expense_report(book, Q1_2024)
        purchases = next(c for c in report.by_category if c.category_name == "purchases")
        assert purchases.percentage == Decimal("42.86")

    def test_negative_entry_excluded(self):
        snapshot = LedgerSnapshot(
            entries=[entry(date(2024, 1, 10), EntryKind.EXPENSE, -100, "Аренда")]
        )
        report = build_income_expense_report(snapshot, Q1_2024)

        assert report.summary.total_expense == 0
        assert report.excluded[0].reason == ExclusionReason.NEGATIVE_AMOUNT

    def test_expense_categories_cover_total(self, book: LedgerSnapshot):
        """Every expense lands in exactly one category."""
        report = build_income_expense_report(book, Q1_2024)
        expense_rows = [c for c in report.by_category if c.category_type == CategoryType.EXPENSE]

        assert sum(c.amount for c in expense_rows) == report.summary.total_expense
        assert len({c.category_name for c in expense_rows}) == len(expense_rows)

    def test_ties_keep_first_seen_order(self):
        snapshot = LedgerSnapshot(
            entries=[
                entry(date(2024, 1, 1), EntryKind.INCOME, 100, counterparty="A"),
                entry(date(2024, 1, 2), EntryKind.INCOME, 200, counterparty="B"),
                entry(date(2024, 1, 3), EntryKind.INCOME, 100, counterparty="C"),
                entry(date(2024, 1, 4), EntryKind.INCOME, 100, counterparty="D"),
                entry(date(2024, 1, 5), EntryKind.EXPENSE, 500, "Реклама"),
                entry(date(2024, 1, 6), EntryKind.EXPENSE, 500, "Аренда"),
                entry(date(2024, 1, 7), EntryKind.EXPENSE, 500, "Доставка"),
            ]
        )
        report = ReportAggregator(top_n=3).income_expense(snapshot, Q1_2024)

        assert [r.name for r in report.top_income_sources] == ["B", "A", "C"]
        assert [r.name for r in report.top_expense_categories] == [
            "marketing",
            "rent",
            "transport",
        ]

    def test_invalid_top_n(self):
        with pytest.raises(ValidationError):
            ReportAggregator(top_n=0)


class TestProfitLossReport:
    """Test suite for profit and loss."""

    def test_profit_and_loss(self, book: LedgerSnapshot):
        report = ReportAggregator().profit_loss(book, Q1_2024)

        assert report.revenue == 150_000
        assert report.cost_of_sales == 30_000
        assert report.gross_profit == 120_000
        assert report.total_operating_expenses == 30_000
        assert report.operating_expenses[0].category == "rent"
        assert report.operating_profit == 90_000
        assert report.taxes == 10_000
        assert report.net_profit == 80_000
        assert report.profit_margin == Decimal("53.33")

    def test_no_revenue_margin_zero(self):
        report = ReportAggregator().profit_loss(LedgerSnapshot(), Q1_2024)
        assert report.profit_margin == Decimal("0")


class TestVatReport:
    """Test suite for the VAT report."""

    def test_lines_split_by_direction(self):
        snapshot = LedgerSnapshot(
            documents=[
                AccountingDocument(
                    kind="invoice", document_date=date(2024, 1, 5), total_amount=120, vat_amount=20
                ),
                AccountingDocument(
                    kind="expense", document_date=date(2024, 1, 6), total_amount=60, vat_amount=10
                ),
            ]
        )
        report = build_vat_report(snapshot, Q1_2024)

        assert report.vat_received == 20
        assert report.vat_paid == 10
        assert report.vat_to_pay == 10
        assert len(report.output_lines) == 1
        assert len(report.input_lines) == 1


class TestCounterpartyReport:
    """Test suite for the counterparty report."""

    @pytest.fixture
    def documents(self) -> LedgerSnapshot:
        def invoice(kind, total, cp_id, name, status=None, day=date(2024, 2, 1)):
            return AccountingDocument(
                kind=kind,
                document_date=day,
                total_amount=total,
                counterparty_id=cp_id,
                counterparty_name=name,
                payment_status=status,
                document_number=f"{kind}-{total}",
            )

        return LedgerSnapshot(
            documents=[
                invoice("invoice", 120_000, "c1", "Ромашка", "paid"),
                invoice("act", 30_000, "c1", "Ромашка"),
                invoice("invoice", 200_000, "c2", "Лютик"),
                invoice("purchase_invoice", 50_000, "c3", "Поставщик", "paid"),
                invoice("invoice", 10_000, None, None),
                invoice("invoice", 70_000, "c1", "Ромашка", day=date(2024, 5, 1)),
            ]
        )

    def test_grouped_and_sorted(self, documents: LedgerSnapshot):
        report = ReportAggregator().counterparties(documents, Q1_2024)

        assert [c.counterparty_id for c in report.counterparties] == ["c2", "c1"]
        romashka = report.counterparties[1]
        assert romashka.documents_count == 2
        assert romashka.total_invoiced == 150_000
        assert romashka.total_paid == 120_000
        assert romashka.debt == 30_000

    def test_totals(self, documents: LedgerSnapshot):
        report = ReportAggregator().counterparties(documents, Q1_2024)

        assert report.total_invoiced == 350_000
        assert report.total_paid == 120_000
        assert report.total_debt == 230_000

    def test_name_only_document_joins_known_id(self):
        snapshot = LedgerSnapshot(
            documents=[
                AccountingDocument(
                    kind="invoice",
                    document_date=date(2024, 1, 10),
                    total_amount=1_000,
                    counterparty_id="c1",
                    counterparty_name="ACME",
                ),
                AccountingDocument(
                    kind="act",
                    document_date=date(2024, 1, 20),
                    total_amount=500,
                    counterparty_name="ACME",
                ),
            ]
        )
        report = ReportAggregator().counterparties(snapshot, Q1_2024)

        assert [(c.counterparty_id, c.name, c.total_invoiced) for c in report.counterparties] == [
            ("c1", "ACME", 1_500)
        ]

    def test_id_and_name_do_not_collide(self):
        """A name equal to another counterparty's id stays a separate line."""
        snapshot = LedgerSnapshot(
            documents=[
                AccountingDocument(
                    kind="invoice",
                    document_date=date(2024, 1, 10),
                    total_amount=1_000,
                    counterparty_id="c1",
                    counterparty_name="ACME",
                ),
                AccountingDocument(
                    kind="invoice",
                    document_date=date(2024, 1, 11),
                    total_amount=300,
                    counterparty_name="c1",
                ),
            ]
        )
        report = ReportAggregator().counterparties(snapshot, Q1_2024)

        assert [(c.counterparty_id, c.name) for c in report.counterparties] == [
            ("c1", "ACME"),
            (None, "c1"),
        ]

    def test_missing_counterparty_excluded(self, documents: LedgerSnapshot):
        report = ReportAggregator().counterparties(documents, Q1_2024)

        assert report.excluded_count == 1
        assert report.excluded[0].reason == ExclusionReason.MISSING_COUNTERPARTY


class TestContractReport:
    """Test suite for contract profitability."""

    @pytest.fixture
    def tenders(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            contracts=[
                Contract(contract_id="t1", customer="ГБУ", contract_price=500_000, status="won"),
                Contract(contract_id="t2", customer="МКУ", contract_price=300_000, status="lost"),
                Contract(
                    contract_id="t3",
                    status="won",
                    contract_price=900_000,
                    created_on=date(2023, 6, 1),
                ),
            ],
            entries=[
                entry(date(2024, 2, 1), EntryKind.INCOME, 400_000, tender_ref="t1"),
                entry(date(2024, 2, 2), EntryKind.EXPENSE, 300_000, tender_ref="t1"),
            ],
            documents=[
                AccountingDocument(
                    kind="invoice",
                    document_date=date(2024, 2, 1),
                    total_amount=400_000,
                    tender_ref="t1",
                    payment_status="paid",
                ),
            ],
        )

    def test_contract_lines(self, tenders: LedgerSnapshot):
        report = ReportAggregator().contracts(tenders, Q1_2024)
        t1 = report.contracts[0]

        assert [c.contract_id for c in report.contracts] == ["t1", "t2"]
        assert t1.documents_count == 1
        assert t1.paid == 400_000
        assert t1.profit == 100_000
        assert t1.margin == Decimal("25.00")

    def test_summary(self, tenders: LedgerSnapshot):
        summary = ReportAggregator().contracts(tenders, Q1_2024).summary

        assert summary.total_contracts == 2
        assert summary.won_contracts == 1
        assert summary.total_contract_value == 500_000
        assert summary.profit == 100_000
        assert summary.win_rate == Decimal("50.00")

    def test_negative_linked_entry_excluded(self, tenders: LedgerSnapshot):
        """A negative linked entry is reported instead of silently changing profit."""
        snapshot = tenders.model_copy(
            update={
                "entries": [
                    *tenders.entries,
                    entry(date(2024, 2, 3), EntryKind.EXPENSE, -40_000, tender_ref="t1"),
                ]
            }
        )
        report = ReportAggregator().contracts(snapshot, Q1_2024)

        assert report.contracts[0].profit == 100_000
        assert report.excluded_count == 1
        assert report.excluded[0].reason == ExclusionReason.NEGATIVE_AMOUNT

    def test_no_exclusions_by_default(self, tenders: LedgerSnapshot):
        assert ReportAggregator().contracts(tenders, Q1_2024).excluded_count == 0


class TestCashFlowReport:
    """Test suite for monthly cash flow."""

    def test_full_year(self, book: LedgerSnapshot):
        report = build_cash_flow_report(book, 2024)

        assert len(report.months) == 12
        assert report.months[0].income == 100_000
        assert report.months[0].net_flow == 70_000
        assert report.total_income == 1_149_999
        assert report.net_cash_flow == 1_149_999 - 70_000

    def test_single_month(self, book: LedgerSnapshot):
        report = build_cash_flow_report(book, 2024, month=2)

        assert [m.month for m in report.months] == [2]
        assert report.total_expense == 35_000

    def test_invalid_month(self, book: LedgerSnapshot):
        with pytest.raises(ValidationError):
            build_cash_flow_report(book, 2024, month=13)
