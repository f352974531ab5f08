"""Tests for input and audit models."""

from datetime import date

from fintax_core.models import (
    AccountingDocument,
    CalculationAudit,
    EntryKind,
    ExcludedItem,
    ExclusionReason,
    LedgerEntry,
    LedgerSnapshot,
    TaxPayment,
)


class TestInputModels:
    """Test normalization on input records."""

    def test_tax_kind_normalized(self):
        payment = TaxPayment(tax_kind="  USN_Advance ", period="2024-Q1", due_date=date(2024, 4, 28))
        assert payment.tax_kind == "usn_advance"
        assert payment.is_paid is False

    def test_document_kind_normalized(self):
        doc = AccountingDocument(
            kind="Invoice", document_date=date(2024, 1, 1), total_amount=100, payment_status="paid"
        )
        assert doc.kind == "invoice"
        assert doc.is_paid is True

    def test_entries_between_inclusive(self):
        snapshot = LedgerSnapshot(
            entries=[
                LedgerEntry(entry_date=date(2024, 1, d), kind=EntryKind.INCOME, amount=1)
                for d in (1, 15, 31)
            ]
        )
        assert len(snapshot.entries_between(date(2024, 1, 1), date(2024, 1, 15))) == 2


class TestCalculationAudit:
    """Test the per-call audit collector."""

    def test_steps_recorded_in_order(self):
        audit = CalculationAudit("usn6")
        audit.step(step="a", input_value="1", output_value="2", source="rule")
        audit.step(step="b", input_value="2", output_value="3", source="rule", notes="n")

        assert [e.step for e in audit.entries] == ["a", "b"]
        assert audit.entries[1].notes == "n"

    def test_exclusions_collected(self):
        audit = CalculationAudit("vat")
        item = ExcludedItem(source="document", reason=ExclusionReason.UNKNOWN_DOCUMENT_KIND)
        audit.exclude(item)
        audit.extend_excluded([item])

        assert len(audit.excluded) == 2

    def test_fresh_instance_per_call(self):
        first = CalculationAudit("usn6")
        first.step(step="a", input_value="", output_value="", source="")
        assert CalculationAudit("usn6").entries == []
