"""Shared pytest fixtures for buwis tests."""

import tempfile
import os
import pytest

from buwis.database.factories import create_sqlite_database
from buwis.domain.entities import InvoiceVATType, LegalEntity, QuarterPeriod
from buwis.domain.filing import FilingService
from buwis.domain.invoice import DigitalInvoice
from buwis.domain.session import FilingSession
from buwis.domain.taxpayer import TaxpayerService


def build_invoice(
    number: str,
    timestamp: str = "2025-02-15T09:00:00Z",
    amount: str = "10000",
    vat_type: InvoiceVATType = InvoiceVATType.NON_VAT,
    withholding: str | None = "0.05",
    osca_pwd_number: str | None = None,
) -> DigitalInvoice:
    """Build an invoice with a single order line."""
    invoice = DigitalInvoice.initialize(vat_type)
    invoice.set_invoice_number(number).set_timestamp(timestamp)
    invoice.set_withholding_rate(withholding)
    if osca_pwd_number:
        invoice.update_customer(osca_pwd_number=osca_pwd_number)
    invoice.add_order("Consulting services", 1, amount, unit="job")
    return invoice


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def make_invoice():
    """Return the single-line invoice builder."""
    return build_invoice


@pytest.fixture
def filing_service(temp_db):
    """Create a FilingService with a temporary database."""
    return FilingService(temp_db)


@pytest.fixture
def taxpayer_service(temp_db):
    """Create a TaxpayerService with a temporary database."""
    return TaxpayerService(temp_db)


@pytest.fixture
def sample_taxpayer():
    """A registered Non-VAT taxpayer identity."""
    return LegalEntity(
        name="Juan Dela Cruz",
        tin="123456789000",
        address="1 Ayala Ave, Makati City",
        business_name="JDC Consulting",
        email_address="juan@example.com",
    )


@pytest.fixture
def sample_invoices():
    """Two Q1 2025 Non-VAT invoices of PHP 10,000 each with 5% withholding."""
    return [
        build_invoice("INV-001", timestamp="2025-01-10T08:00:00Z"),
        build_invoice("INV-002", timestamp="2025-03-05T08:00:00Z"),
    ]


@pytest.fixture
def q1_session(sample_taxpayer):
    """An empty Q1 2025 filing session."""
    return FilingSession.initialize(
        "juan", taxpayer=sample_taxpayer, quarter=QuarterPeriod.Q1, year=2025
    )


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
