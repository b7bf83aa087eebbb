"""Tests for Database interface returning domain models."""

import pytest
from datetime import datetime
from decimal import Decimal

from buwis.domain import entities
from buwis.domain.errors import NotFoundError
from buwis.domain.session import FilingSession


def make_profile(tin="123456789000", name="Juan Dela Cruz", vat_type=entities.InvoiceVATType.NON_VAT):
    return entities.TaxpayerInfo(
        issuer=entities.LegalEntity(
            name=name,
            tin=tin,
            address="Makati City",
            business_name=f"{name} Trading",
        ),
        vat_type=vat_type,
        percentage_tax_rate=Decimal("0.01"),
    )


class TestSessionStorage:
    """Tests for filing session persistence."""

    def test_get_session_returns_domain_model(self, temp_db, q1_session, sample_invoices):
        """Test that get_session returns a FilingSession with its invoices."""
        q1_session.add_invoices(sample_invoices)
        temp_db.save_session(q1_session)

        session = temp_db.get_session(q1_session.id)

        assert isinstance(session, FilingSession)
        assert session.id == q1_session.id
        assert [inv.invoice_number for inv in session.invoices] == ["INV-001", "INV-002"]
        assert session.summary.net_receivable.to_pesos() == Decimal("18400")

    def test_get_missing_session(self, temp_db):
        """Test that an unknown id returns None."""
        assert temp_db.get_session("buwisfriend-nobody-0") is None
        assert not temp_db.session_exists("buwisfriend-nobody-0")

    def test_save_replaces_by_id(self, temp_db, q1_session, sample_invoices):
        """Test that saving again updates the stored row."""
        temp_db.save_session(q1_session)
        q1_session.add_invoices(sample_invoices)
        temp_db.save_session(q1_session)

        records = temp_db.list_sessions()
        assert len(records) == 1
        assert records[0].invoice_count == 2

    def test_list_sessions_returns_records(self, temp_db):
        """Test listing with filters and newest period first."""
        temp_db.save_session(FilingSession.initialize("ana", quarter="Q1", year=2024))
        temp_db.save_session(FilingSession.initialize("ben", quarter="Q3", year=2025))
        temp_db.save_session(FilingSession.initialize("cruz", quarter="Q1", year=2025))

        records = temp_db.list_sessions()
        assert [(r.year, r.quarter) for r in records] == [
            (2025, entities.QuarterPeriod.Q3),
            (2025, entities.QuarterPeriod.Q1),
            (2024, entities.QuarterPeriod.Q1),
        ]
        for record in records:
            assert isinstance(record, entities.SessionRecord)
            assert isinstance(record.updated_at, datetime)

        assert [r.user_id for r in temp_db.list_sessions(user_id="ben")] == ["ben"]
        assert len(temp_db.list_sessions(year=2025)) == 2
        assert len(temp_db.list_sessions(year=2025, quarter=entities.QuarterPeriod.Q1)) == 1

    def test_delete_session(self, temp_db, q1_session):
        """Test deleting a stored session."""
        temp_db.save_session(q1_session)
        temp_db.delete_session(q1_session.id)

        assert temp_db.get_session(q1_session.id) is None

    def test_delete_missing_session(self, temp_db):
        """Test that deleting an unknown session raises NotFoundError."""
        with pytest.raises(NotFoundError):
            temp_db.delete_session("buwisfriend-nobody-0")


class TestTaxpayerStorage:
    """Tests for taxpayer profile persistence."""

    def test_get_profile_returns_domain_model(self, temp_db):
        """Test that profiles round-trip through storage."""
        temp_db.save_taxpayer_profile(make_profile())

        info = temp_db.get_taxpayer_profile("123456789000")

        assert isinstance(info, entities.TaxpayerInfo)
        assert info.issuer.name == "Juan Dela Cruz"
        assert info.vat_type == entities.InvoiceVATType.NON_VAT
        assert info.percentage_tax_rate == Decimal("0.01")

    def test_save_profile_upserts_by_tin(self, temp_db):
        """Test that a second save with the same TIN replaces the profile."""
        temp_db.save_taxpayer_profile(make_profile())
        temp_db.save_taxpayer_profile(
            make_profile(name="Juan D. Cruz", vat_type=entities.InvoiceVATType.VAT)
        )

        profiles = temp_db.list_taxpayer_profiles()
        assert len(profiles) == 1
        assert profiles[0].issuer.name == "Juan D. Cruz"
        assert profiles[0].vat_type == entities.InvoiceVATType.VAT

    def test_list_profiles_sorted_by_name(self, temp_db):
        """Test that profiles are listed by name."""
        temp_db.save_taxpayer_profile(make_profile(tin="200", name="Maria"))
        temp_db.save_taxpayer_profile(make_profile(tin="100", name="Andres"))

        assert [p.issuer.name for p in temp_db.list_taxpayer_profiles()] == ["Andres", "Maria"]

    def test_get_missing_profile(self, temp_db):
        """Test that an unknown TIN returns None."""
        assert temp_db.get_taxpayer_profile("000") is None

    def test_delete_profile(self, temp_db):
        """Test deleting a profile, and deleting it twice."""
        temp_db.save_taxpayer_profile(make_profile())
        temp_db.delete_taxpayer_profile("123456789000")

        assert temp_db.get_taxpayer_profile("123456789000") is None
        with pytest.raises(NotFoundError):
            temp_db.delete_taxpayer_profile("123456789000")
