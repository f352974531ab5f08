"""Tests for VAT extraction."""

from datetime import date

import pytest

from fintax_core import ValidationError, VatCalculator, extract_vat
from fintax_core.models import AccountingDocument, ExclusionReason, LedgerSnapshot, VatDirection
from fintax_core.vat import classify_document, quarter_bounds


def doc(kind: str, day: date, total: int, vat, number: str = "1") -> AccountingDocument:
    return AccountingDocument(
        kind=kind, document_date=day, total_amount=total, vat_amount=vat, document_number=number
    )


@pytest.fixture
def q1_documents() -> list[AccountingDocument]:
    return [
        doc("invoice", date(2024, 1, 15), 120_000, 20_000, "S-1"),
        doc("act", date(2024, 2, 15), 60_000, 10_000, "S-2"),
        doc("purchase_invoice", date(2024, 3, 1), 36_000, 6_000, "P-1"),
        doc("expense", date(2024, 3, 31), 12_000, 2_000, "P-2"),
        doc("invoice", date(2024, 4, 1), 120_000, 20_000, "S-3"),
    ]


class TestClassifyDocument:
    """Test document direction."""

    @pytest.mark.parametrize(
        "kind,expected",
        [
            ("invoice", VatDirection.OUTPUT),
            ("invoice_upd", VatDirection.OUTPUT),
            ("ACT", VatDirection.OUTPUT),
            ("purchase_invoice", VatDirection.INPUT),
            ("expense", VatDirection.INPUT),
            ("contract", VatDirection.IGNORED),
        ],
    )
    def test_classify(self, kind: str, expected: VatDirection):
        assert classify_document(kind) == expected


class TestExtractVat:
    """Test VAT totals."""

    def test_vat_to_pay(self, q1_documents):
        result = extract_vat(q1_documents, date(2024, 1, 1), date(2024, 3, 31))

        assert result.output_vat == 30_000
        assert result.input_vat == 8_000
        assert result.vat_to_pay == 22_000
        assert result.vat_to_refund == 0
        assert len(result.documents) == 4

    def test_vat_to_refund(self):
        result = extract_vat(
            [
                doc("invoice", date(2024, 1, 15), 12_000, 2_000),
                doc("purchase_invoice", date(2024, 1, 16), 60_000, 10_000),
            ],
            date(2024, 1, 1),
            date(2024, 3, 31),
        )
        assert result.vat_to_pay == 0
        assert result.vat_to_refund == 8_000

    @pytest.mark.parametrize(
        "output_vat,input_vat",
        [(0, 0), (20_000, 0), (0, 20_000), (15_000, 15_000), (20_000, 8_000), (8_000, 20_000)],
    )
    def test_pay_and_refund_exclusive(self, output_vat: int, input_vat: int):
        """At most one of pay and refund is positive; both are zero when balanced."""
        result = extract_vat(
            [
                doc("invoice", date(2024, 1, 15), output_vat * 6, output_vat),
                doc("purchase_invoice", date(2024, 1, 16), input_vat * 6, input_vat),
            ],
            date(2024, 1, 1),
            date(2024, 3, 31),
        )

        assert result.vat_to_pay >= 0
        assert result.vat_to_refund >= 0
        assert not (result.vat_to_pay > 0 and result.vat_to_refund > 0)
        assert result.vat_to_pay - result.vat_to_refund == output_vat - input_vat
        if output_vat == input_vat:
            assert result.vat_to_pay == result.vat_to_refund == 0

    def test_document_without_vat_ignored(self):
        result = extract_vat(
            [doc("invoice", date(2024, 1, 15), 12_000, None)], date(2024, 1, 1), date(2024, 1, 31)
        )
        assert result.output_vat == 0
        assert result.documents == []
        assert result.excluded_count == 0

    def test_unknown_kind_with_vat_excluded(self):
        result = extract_vat(
            [doc("waybill", date(2024, 1, 15), 12_000, 2_000, "W-7")],
            date(2024, 1, 1),
            date(2024, 1, 31),
        )
        assert result.output_vat == 0
        assert result.excluded[0].reason == ExclusionReason.UNKNOWN_DOCUMENT_KIND
        assert result.excluded[0].reference == "W-7"

    def test_window_bounds_inclusive(self, q1_documents):
        result = extract_vat(q1_documents, date(2024, 3, 31), date(2024, 4, 1))
        assert result.output_vat == 20_000
        assert result.input_vat == 2_000

    def test_inverted_window_raises(self, q1_documents):
        with pytest.raises(ValidationError):
            extract_vat(q1_documents, date(2024, 3, 31), date(2024, 1, 1))


class TestVatCalculator:
    """Test quarterly VAT."""

    def test_quarter_bounds(self):
        assert quarter_bounds(2024, 1) == (date(2024, 1, 1), date(2024, 3, 31))
        assert quarter_bounds(2024, 4) == (date(2024, 10, 1), date(2024, 12, 31))

    def test_quarterly_calculation(self, q1_documents):
        result = VatCalculator().calculate(LedgerSnapshot(documents=q1_documents), 2024, 1)
        assert result.vat_to_pay == 22_000
        assert result.audit_log[0].step == "vat_period"

    def test_invalid_quarter(self, q1_documents):
        with pytest.raises(ValidationError):
            VatCalculator().calculate(LedgerSnapshot(documents=q1_documents), 2024, 5)
