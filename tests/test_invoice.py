"""Tests for the DigitalInvoice entity."""

import pytest
from decimal import Decimal

from buwis.domain.entities import (
    InvoicePaymentMethod,
    InvoiceType,
    InvoiceVATType,
    VATSubType,
)
from buwis.domain.errors import ValidationError
from buwis.domain.invoice import DigitalInvoice


@pytest.fixture
def non_vat_invoice():
    invoice = DigitalInvoice.initialize(InvoiceVATType.NON_VAT)
    invoice.add_order("Consulting", 2, "5000", unit="hrs")
    return invoice


@pytest.fixture
def vat_invoice():
    invoice = DigitalInvoice.initialize(InvoiceVATType.VAT)
    invoice.disable_withholding_tax()
    invoice.add_order("Laptop", 1, "11200")
    return invoice


class TestDefaults:
    """Tests for registration defaults."""

    def test_non_vat_defaults(self):
        """Test that a Non-VAT invoice starts with 3% PT and no VAT."""
        invoice = DigitalInvoice.initialize()

        assert not invoice.is_vat
        assert invoice.settings.percentage_tax_rate == Decimal("0.03")
        assert invoice.settings.vat_rate == 0
        assert invoice.breakdown.total_sales.is_zero
        assert invoice.currency == "PHP"
        assert invoice.payment.method == InvoicePaymentMethod.CASH

    def test_vat_defaults(self):
        """Test that a VAT invoice starts with 12% VAT and no PT."""
        invoice = DigitalInvoice.initialize(InvoiceVATType.VAT)

        assert invoice.is_vat
        assert invoice.settings.vat_rate == Decimal("0.12")
        assert invoice.settings.percentage_tax_rate == 0
        assert invoice.breakdown.vat.rate == Decimal("0.12")


class TestRecompute:
    """Tests that total-affecting setters recompute the breakdown."""

    def test_add_order_recomputes(self, non_vat_invoice):
        """Test that adding an order line updates totals."""
        assert non_vat_invoice.breakdown.total_sales.to_pesos() == Decimal("10000")
        assert non_vat_invoice.lines[0].amount == Decimal("10000")

        non_vat_invoice.add_order("Travel", 1, "500", amount="450")
        assert non_vat_invoice.breakdown.total_sales.to_pesos() == Decimal("10450")

    def test_clear_orders(self, non_vat_invoice):
        """Test that clearing the order resets totals but keeps rates."""
        non_vat_invoice.clear_orders()

        assert non_vat_invoice.breakdown.total_sales.is_zero
        assert non_vat_invoice.breakdown.percentage_tax.rate == Decimal("0.03")

    def test_switch_to_vat_resets_rates(self, non_vat_invoice):
        """Test that switching to VAT applies VAT defaults and zeroes PT."""
        non_vat_invoice.set_percentage_tax_rate("0.01")
        non_vat_invoice.set_vat_type(InvoiceVATType.VAT)

        assert non_vat_invoice.settings.vat_rate == Decimal("0.12")
        assert non_vat_invoice.settings.percentage_tax_rate == 0
        assert non_vat_invoice.breakdown.percentage_tax.rate == 0
        assert non_vat_invoice.breakdown.percentage_tax.total.is_zero
        assert non_vat_invoice.breakdown.vat.total_vat.to_pesos() > 0

    def test_switch_to_non_vat_resets_vat_block(self, vat_invoice):
        """Test that switching to Non-VAT zeroes the VAT block."""
        vat_invoice.set_vat_subtype(VATSubType.EXEMPT)
        vat_invoice.set_vat_type("Non-VAT")

        assert vat_invoice.breakdown.vat.rate == 0
        assert vat_invoice.breakdown.vat.vat_exempt_sales.is_zero
        assert vat_invoice.settings.vat_subtype == VATSubType.STANDARD
        assert vat_invoice.breakdown.percentage_tax.total.to_pesos() == Decimal("336")

    def test_vat_inclusive_toggle(self, vat_invoice):
        """Test toggling and setting the VAT-inclusive flag."""
        assert vat_invoice.breakdown.vat.total_vat.to_pesos() == Decimal("1200")

        vat_invoice.set_vat_inclusive()
        assert vat_invoice.settings.vat_inclusive is False
        assert vat_invoice.breakdown.vat.total_vat.to_pesos() == Decimal("1344")

        vat_invoice.set_vat_inclusive(True)
        assert vat_invoice.breakdown.vat.total_vat.to_pesos() == Decimal("1200")

    def test_customer_osca_number_triggers_sc_pwd(self, vat_invoice):
        """Test that setting an OSCA/PWD number applies the discount."""
        vat_invoice.update_customer(osca_pwd_number="OSCA-12345")
        assert vat_invoice.breakdown.discount.sc_pwd.to_pesos() == Decimal("2000")

        vat_invoice.update_customer(osca_pwd_number="")
        assert vat_invoice.customer.osca_pwd_number is None
        assert vat_invoice.breakdown.discount.sc_pwd.is_zero

    def test_other_discount(self, non_vat_invoice):
        """Test setting the other discount."""
        non_vat_invoice.set_other_discount("1000")
        assert non_vat_invoice.breakdown.discount.other.to_pesos() == Decimal("1000")

        with pytest.raises(ValidationError):
            non_vat_invoice.set_other_discount("-1")

    def test_withholding_rate(self, non_vat_invoice):
        """Test setting and clearing the withholding rate."""
        non_vat_invoice.set_withholding_rate("0.10")
        assert non_vat_invoice.breakdown.withholding_tax.total.to_pesos() == Decimal("1000")

        non_vat_invoice.set_withholding_rate(None)
        assert non_vat_invoice.breakdown.withholding_tax.total.is_zero

    def test_currency_change_recomputes(self, non_vat_invoice):
        """Test that changing currency re-tags every amount."""
        non_vat_invoice.set_currency("usd")
        assert non_vat_invoice.currency == "USD"
        assert non_vat_invoice.breakdown.net_receivable.currency == "USD"


class TestRatePolicy:
    """Tests for rate setter policy."""

    def test_vat_rate_none_restores_default(self, vat_invoice):
        """Test that None restores 12% and 0 is stored literally."""
        vat_invoice.set_vat_rate("0")
        assert vat_invoice.settings.vat_rate == 0
        assert vat_invoice.breakdown.vat.total_vat.is_zero

        vat_invoice.set_vat_rate(None)
        assert vat_invoice.settings.vat_rate == Decimal("0.12")

    def test_percentage_tax_none_restores_default(self, non_vat_invoice):
        """Test the percentage tax rate setter policy."""
        non_vat_invoice.disable_percentage_tax()
        assert non_vat_invoice.breakdown.percentage_tax.total.is_zero

        non_vat_invoice.set_percentage_tax_rate(None)
        assert non_vat_invoice.settings.percentage_tax_rate == Decimal("0.03")

        non_vat_invoice.set_percentage_tax_rate("0.01")
        non_vat_invoice.reset_percentage_tax()
        assert non_vat_invoice.settings.percentage_tax_rate == Decimal("0.03")

    def test_rate_setters_check_registration(self, vat_invoice, non_vat_invoice):
        """Test that rate setters reject the wrong registration type."""
        with pytest.raises(ValidationError):
            non_vat_invoice.set_vat_rate("0.12")
        with pytest.raises(ValidationError):
            non_vat_invoice.set_vat_subtype(VATSubType.EXEMPT)
        with pytest.raises(ValidationError):
            non_vat_invoice.set_vat_inclusive(False)
        with pytest.raises(ValidationError):
            vat_invoice.set_percentage_tax_rate("0.03")
        with pytest.raises(ValidationError):
            vat_invoice.disable_percentage_tax()

    def test_out_of_range_rate_rejected(self, vat_invoice):
        """Test that an out-of-range rate leaves the invoice unchanged."""
        with pytest.raises(ValidationError):
            vat_invoice.set_vat_rate("-1")
        assert vat_invoice.settings.vat_rate == Decimal("0.12")


class TestDescriptiveSetters:
    """Tests for setters that do not affect totals."""

    def test_descriptive_setters_keep_breakdown(self, non_vat_invoice):
        """Test that names and metadata leave the breakdown object untouched."""
        before = non_vat_invoice.breakdown
        non_vat_invoice.update_issuer(name="New Name", website="https://example.com")
        non_vat_invoice.set_series("2025 Series").set_rdo("047").set_invoice_type(InvoiceType.SERVICE)
        non_vat_invoice.set_payment_method(InvoicePaymentMethod.BANK)

        assert non_vat_invoice.breakdown is before
        assert non_vat_invoice.issuer.name == "New Name"
        assert non_vat_invoice.metadata.category == InvoiceType.SERVICE

    def test_invoice_number_upper_cased(self, non_vat_invoice):
        """Test that invoice numbers are upper-cased."""
        non_vat_invoice.set_invoice_number(" abc-123 ")
        assert non_vat_invoice.invoice_number == "ABC-123"

    def test_required_fields_reject_empty(self, non_vat_invoice):
        """Test that required strings cannot be blanked."""
        with pytest.raises(ValidationError):
            non_vat_invoice.set_invoice_number("")
        with pytest.raises(ValidationError):
            non_vat_invoice.update_customer(name="   ")
        with pytest.raises(ValidationError):
            non_vat_invoice.update_customer(nickname="JD")

    def test_failed_update_changes_nothing(self, non_vat_invoice):
        """Test that entity updates validate every field before applying."""
        original_name = non_vat_invoice.customer.name
        with pytest.raises(ValidationError):
            non_vat_invoice.update_customer(name="Maria", tin="")
        assert non_vat_invoice.customer.name == original_name

    def test_timestamp_parsing(self, non_vat_invoice):
        """Test that timestamps are parsed from ISO strings."""
        non_vat_invoice.set_timestamp("2025-05-01T10:00:00+08:00")
        assert non_vat_invoice.timestamp.utcoffset().total_seconds() == 8 * 3600

        with pytest.raises(ValidationError):
            non_vat_invoice.set_timestamp("yesterday-ish")


class TestPayment:
    """Tests for payment details."""

    def test_cash_clears_details(self, non_vat_invoice):
        """Test that switching to cash drops bank and reference details."""
        non_vat_invoice.set_payment_method("Bank")
        non_vat_invoice.set_bank_details(name="BDO", account_number="0012")
        non_vat_invoice.set_reference_number("REF-1")
        non_vat_invoice.set_payment_method(InvoicePaymentMethod.CASH)

        assert non_vat_invoice.payment.bank is None
        assert non_vat_invoice.payment.reference_number is None

    def test_bank_details_not_allowed_for_cash(self, non_vat_invoice):
        """Test that bank details are rejected for cash payments."""
        with pytest.raises(ValidationError):
            non_vat_invoice.set_bank_details(name="BDO")

    def test_check_details(self, non_vat_invoice):
        """Test check details for check payments only."""
        with pytest.raises(ValidationError):
            non_vat_invoice.set_check_details(number="000123")

        non_vat_invoice.set_payment_method(InvoicePaymentMethod.CHECK)
        non_vat_invoice.set_check_details(number="000123", date="2025-02-01")
        assert non_vat_invoice.payment.check.number == "000123"
        assert non_vat_invoice.payment.check.date == "2025-02-01T00:00:00.000Z"

        non_vat_invoice.set_payment_method(InvoicePaymentMethod.EWALLET)
        assert non_vat_invoice.payment.check is None

    def test_reference_number_requires_bank_or_ewallet(self, non_vat_invoice):
        """Test that reference numbers need an electronic payment method."""
        with pytest.raises(ValidationError):
            non_vat_invoice.set_reference_number("REF-1")

        non_vat_invoice.set_payment_method(InvoicePaymentMethod.EWALLET)
        non_vat_invoice.set_reference_number("GCASH-998")
        assert non_vat_invoice.payment.reference_number == "GCASH-998"

    def test_invalid_payment_method(self, non_vat_invoice):
        """Test that unknown payment methods are rejected."""
        with pytest.raises(ValidationError):
            non_vat_invoice.set_payment_method("Barter")


class TestTaxpayerProfile:
    """Tests for taxpayer profile export and import."""

    def test_export_then_load(self, vat_invoice):
        """Test moving issuer settings between invoices."""
        vat_invoice.update_issuer(name="Acme Corp", business_name="Acme", tin="987654321000")
        vat_invoice.set_vat_rate("0.10")
        info = vat_invoice.export_taxpayer_info()

        other = DigitalInvoice.initialize(InvoiceVATType.NON_VAT)
        other.add_order("Widget", 1, "1100")
        other.load_taxpayer_info(info)

        assert other.is_vat
        assert other.issuer.name == "Acme Corp"
        assert other.settings.vat_rate == Decimal("0.10")
        assert other.breakdown.vat.total_vat.to_pesos() == Decimal("100")
        # The copy is independent of the source invoice
        other.update_issuer(name="Changed")
        assert vat_invoice.issuer.name == "Acme Corp"

    def test_export_rejects_incomplete_taxpayer(self, vat_invoice):
        """Test that a profile without a TIN is rejected."""
        vat_invoice.issuer.tin = ""
        with pytest.raises(ValidationError):
            vat_invoice.export_taxpayer_info()


class TestValidate:
    """Tests for required field validation."""

    def test_valid_invoice(self, non_vat_invoice):
        """Test that a default invoice validates."""
        assert non_vat_invoice.validate() is True

    def test_missing_field(self, non_vat_invoice):
        """Test that missing fields fail validation."""
        non_vat_invoice.customer.address = ""

        assert non_vat_invoice.validate() is False
        with pytest.raises(ValidationError, match="Customer's Address"):
            non_vat_invoice.validate(raise_error=True)

    def test_finalize_generates_id(self, non_vat_invoice):
        """Test that finalize returns a projection with a generated id."""
        non_vat_invoice.set_invoice_number("INV-9")
        data = non_vat_invoice.finalize()
        assert data["id"].startswith("invoice-inv-9-")
        assert data["metadata"]["invoice_number"] == "INV-9"
