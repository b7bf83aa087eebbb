"""Digital invoice entity.

A DigitalInvoice owns its order lines, tax settings and the computed
breakdown. Every setter that can change a total recomputes the breakdown
from scratch before returning; descriptive setters leave it untouched.
Setters return the invoice so calls can be chained.
"""

import dataclasses
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

from buwis.domain.breakdown import compute_breakdown, validate_rate, validate_settings
from buwis.domain.codec import (
    breakdown_from_dict,
    breakdown_to_dict,
    legal_entity_from_dict,
    legal_entity_to_dict,
    metadata_from_dict,
    metadata_to_dict,
    order_line_from_dict,
    order_line_to_dict,
    payment_from_dict,
    payment_to_dict,
    require,
    settings_from_breakdown,
    settings_from_dict,
    settings_to_dict,
)
from buwis.domain.entities import (
    DEFAULT_PERCENTAGE_TAX_RATE,
    DEFAULT_VAT_RATE,
    BankInformation,
    BIRMetadata,
    CheckInformation,
    InvoicePaymentMethod,
    InvoiceType,
    InvoiceVATType,
    LegalEntity,
    OrderLine,
    PaymentInformation,
    TaxBreakdown,
    TaxpayerInfo,
    TaxSettings,
    VATSubType,
    default_customer,
    default_taxpayer,
)
from buwis.domain.errors import MalformedInputError, ValidationError, required_string
from buwis.domain.money import HOME_CURRENCY, Money, to_decimal
from buwis.utils.date_parser import format_timestamp, parse_timestamp
from buwis.utils.identifiers import generate_id

logger = logging.getLogger(__name__)

REQUIRED_ENTITY_FIELDS = ("name", "tin", "address", "business_name")
OPTIONAL_ENTITY_FIELDS = ("contact_number", "email_address", "website", "osca_pwd_number")

_ENTITY_LABELS = {
    "name": "Name",
    "tin": "TIN",
    "address": "Address",
    "business_name": "Business Name",
}

_BANK_LABELS = {
    "name": "Bank Name",
    "account_number": "Bank Account Number",
    "branch": "Bank Branch",
    "code": "Bank Code",
    "address": "Bank Address",
}


def _require_text(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(required_string(label))
    return value


class DigitalInvoice:
    """A BIR-compliant digital invoice with an always-current tax breakdown."""

    def __init__(
        self,
        id: Optional[str] = None,
        metadata: Optional[BIRMetadata] = None,
        customer: Optional[LegalEntity] = None,
        issuer: Optional[LegalEntity] = None,
        lines: Optional[Iterable[OrderLine]] = None,
        settings: Optional[TaxSettings] = None,
        payment: Optional[PaymentInformation] = None,
        timestamp: Optional[Union[str, datetime]] = None,
        currency: str = HOME_CURRENCY,
    ):
        """Initialize an invoice.

        Args:
            id: Invoice id; generated from the invoice number when omitted
            metadata: BIR metadata (defaults to a Non-VAT sales invoice)
            customer: Buyer details
            issuer: Seller details
            lines: Order lines
            settings: Breakdown inputs (defaults follow the VAT type)
            payment: Payment details (defaults to cash)
            timestamp: Issue timestamp (defaults to now)
            currency: Currency code of the order
        """
        self.metadata = metadata or BIRMetadata()
        self.id = id or generate_id("invoice", self.metadata.invoice_number or "bir-invoice")
        self.customer = customer or default_customer()
        self.issuer = issuer or default_taxpayer()
        self.payment = payment or PaymentInformation()
        self.timestamp = parse_timestamp(timestamp) if timestamp else datetime.now(timezone.utc)
        self._currency = Money.zero(currency).currency
        self._lines: tuple[OrderLine, ...] = tuple(lines or ())
        self._settings = settings or TaxSettings.for_vat_type(self.metadata.type)
        self._breakdown: TaxBreakdown
        self._recompute()

    @classmethod
    def initialize(cls, vat_type: InvoiceVATType = InvoiceVATType.NON_VAT) -> "DigitalInvoice":
        """Create an invoice with placeholder parties and registration defaults."""
        return cls(metadata=BIRMetadata(type=InvoiceVATType(vat_type)))

    def __repr__(self) -> str:
        return f"DigitalInvoice(number={self.invoice_number!r}, timestamp={self.timestamp.isoformat()!r})"

    # Read-only views

    @property
    def invoice_number(self) -> str:
        return self.metadata.invoice_number

    @property
    def vat_type(self) -> InvoiceVATType:
        return self.metadata.type

    @property
    def is_vat(self) -> bool:
        return self.metadata.type == InvoiceVATType.VAT

    @property
    def currency(self) -> str:
        return self._currency

    @property
    def lines(self) -> tuple[OrderLine, ...]:
        return self._lines

    @property
    def settings(self) -> TaxSettings:
        return self._settings

    @property
    def breakdown(self) -> TaxBreakdown:
        return self._breakdown

    @property
    def net_receivable(self) -> Money:
        return self._breakdown.net_receivable

    # Metadata

    def set_company_logo(self, value: str) -> "DigitalInvoice":
        """Set the logo shown on the invoice (URL or base64 image)."""
        if not isinstance(value, str) or not value.strip():
            self.metadata.company_logo = None
            raise ValidationError(required_string("Company Logo image path"))
        self.metadata.company_logo = value
        return self

    def set_timestamp(self, value: Union[str, datetime]) -> "DigitalInvoice":
        """Set the date of transaction."""
        self.timestamp = parse_timestamp(value)
        return self

    def set_form_number(self, value: str) -> "DigitalInvoice":
        self.metadata.form_number = _require_text(value, "Invoice Form number")
        return self

    def set_invoice_number(self, value: str) -> "DigitalInvoice":
        self.metadata.invoice_number = _require_text(value, "Invoice number").strip().upper()
        return self

    def set_series(self, value: str) -> "DigitalInvoice":
        self.metadata.series = _require_text(value, "Invoice series")
        return self

    def set_rdo(self, value: str) -> "DigitalInvoice":
        self.metadata.rdo = _require_text(value, "Revenue District Office number")
        return self

    def set_invoice_type(self, value: Union[InvoiceType, str]) -> "DigitalInvoice":
        try:
            self.metadata.category = InvoiceType(value)
        except ValueError as e:
            raise ValidationError(f"Invalid invoice type: {value!r}") from e
        return self

    def set_vat_type(self, value: Union[InvoiceVATType, str]) -> "DigitalInvoice":
        """Switch VAT registration and reset rates to that registration's defaults.

        The VAT-inclusive flag, withholding rate and other discount carry over;
        the VAT subtype resets to standard.
        """
        try:
            vat_type = InvoiceVATType(value)
        except ValueError as e:
            raise ValidationError(f"Invalid VAT type: {value!r}") from e

        defaults = TaxSettings.for_vat_type(vat_type)
        self.metadata.type = vat_type
        self._settings = dataclasses.replace(
            self._settings,
            vat_rate=defaults.vat_rate,
            vat_subtype=VATSubType.STANDARD,
            percentage_tax_rate=defaults.percentage_tax_rate,
        )
        self._recompute()
        return self

    def set_currency(self, value: str) -> "DigitalInvoice":
        self._currency = Money.zero(_require_text(value, "Currency")).currency
        self._recompute()
        return self

    # Parties

    def update_customer(self, **fields: Optional[str]) -> "DigitalInvoice":
        """Update customer fields by name.

        Required fields (name, tin, address, business_name) reject empty
        strings; optional fields are cleared by an empty string. Changing the
        OSCA/PWD number recomputes the breakdown.

        Raises:
            ValidationError: On unknown fields or empty required fields
        """
        self._update_entity(self.customer, "Customer", fields)
        if "osca_pwd_number" in fields:
            self._recompute()
        return self

    def update_issuer(self, **fields: Optional[str]) -> "DigitalInvoice":
        """Update issuer fields by name (same rules as update_customer)."""
        self._update_entity(self.issuer, "Issuer", fields)
        return self

    @staticmethod
    def _update_entity(entity: LegalEntity, role: str, fields: dict[str, Optional[str]]) -> None:
        unknown = set(fields) - set(REQUIRED_ENTITY_FIELDS) - set(OPTIONAL_ENTITY_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown {role.lower()} field(s): {', '.join(sorted(unknown))}")

        # Validate everything before touching the entity
        updates: dict[str, Optional[str]] = {}
        for name, value in fields.items():
            if name in REQUIRED_ENTITY_FIELDS:
                updates[name] = _require_text(value, f"{role} {_ENTITY_LABELS[name]}")
            else:
                updates[name] = value if isinstance(value, str) and value.strip() else None
        for name, value in updates.items():
            setattr(entity, name, value)

    # Tax rates and options

    def set_vat_rate(self, rate: Optional[Union[Decimal, str, float]] = None) -> "DigitalInvoice":
        """Set the VAT rate; ``None`` restores the 12% default.

        Raises:
            ValidationError: If the invoice is not VAT registered or the rate
                is outside [0, 1]
        """
        if not self.is_vat:
            raise ValidationError("This invoice type does not support VAT rates.")
        value = DEFAULT_VAT_RATE if rate is None else validate_rate(rate, "VAT rate")
        return self._apply_settings(vat_rate=value)

    def set_percentage_tax_rate(
        self, rate: Optional[Union[Decimal, str, float]] = None
    ) -> "DigitalInvoice":
        """Set the percentage tax rate; ``None`` restores the 3% default."""
        if self.is_vat:
            raise ValidationError("This invoice type does not support Percentage Tax rates.")
        value = (
            DEFAULT_PERCENTAGE_TAX_RATE
            if rate is None
            else validate_rate(rate, "Percentage tax rate")
        )
        return self._apply_settings(percentage_tax_rate=value)

    def set_withholding_rate(self, rate: Optional[Union[Decimal, str, float]] = None) -> "DigitalInvoice":
        """Set the withholding tax rate; ``None`` means no withholding."""
        value = Decimal("0") if rate is None else validate_rate(rate, "Withholding tax rate")
        return self._apply_settings(withholding_tax_rate=value)

    def disable_withholding_tax(self) -> "DigitalInvoice":
        return self._apply_settings(withholding_tax_rate=Decimal("0"))

    def disable_percentage_tax(self) -> "DigitalInvoice":
        if self.is_vat:
            raise ValidationError("This invoice type does not support Percentage Tax rates.")
        return self._apply_settings(percentage_tax_rate=Decimal("0"))

    def reset_percentage_tax(self) -> "DigitalInvoice":
        if self.is_vat:
            raise ValidationError("This invoice type does not support Percentage Tax rates.")
        return self._apply_settings(percentage_tax_rate=DEFAULT_PERCENTAGE_TAX_RATE)

    def set_vat_subtype(self, subtype: Union[VATSubType, str]) -> "DigitalInvoice":
        if not self.is_vat:
            raise ValidationError("This invoice VAT type does not support VAT subtypes.")
        try:
            value = VATSubType(subtype)
        except ValueError as e:
            raise ValidationError(f"Invalid VAT subtype: {subtype!r}") from e
        return self._apply_settings(vat_subtype=value)

    def set_vat_inclusive(self, inclusive: Optional[bool] = None) -> "DigitalInvoice":
        """Set whether prices include VAT; ``None`` toggles the current flag."""
        if not self.is_vat:
            raise ValidationError("This invoice VAT type does not support this method.")
        value = not self._settings.vat_inclusive if inclusive is None else bool(inclusive)
        return self._apply_settings(vat_inclusive=value)

    def set_other_discount(self, amount: Union[Decimal, str, int, float]) -> "DigitalInvoice":
        """Set the non SC/PWD discount deducted from total sales."""
        value = to_decimal(amount)
        if value < 0:
            raise ValidationError("Other discount cannot be negative.")
        return self._apply_settings(other_discount=value)

    # Orders

    def set_orders(self, lines: Iterable[OrderLine]) -> "DigitalInvoice":
        self._lines = tuple(lines or ())
        self._recompute()
        return self

    def add_order(
        self,
        label: str,
        quantity: Union[Decimal, int, str],
        unit_price: Union[Decimal, int, str],
        unit: str = "pcs",
        amount: Optional[Union[Decimal, int, str]] = None,
        description: Optional[str] = None,
    ) -> "DigitalInvoice":
        """Append an order line; ``amount`` defaults to quantity x unit price."""
        qty = to_decimal(quantity)
        price = to_decimal(unit_price)
        line = OrderLine(
            label=_require_text(label, "Order label"),
            quantity=qty,
            unit=unit,
            unit_price=price,
            amount=qty * price if amount is None else to_decimal(amount),
            description=description,
        )
        self._lines = self._lines + (line,)
        self._recompute()
        return self

    def clear_orders(self) -> "DigitalInvoice":
        self._lines = ()
        self._recompute()
        return self

    # Payment

    def set_payment_method(self, method: Union[InvoicePaymentMethod, str]) -> "DigitalInvoice":
        """Change the payment method, dropping details the new method cannot carry."""
        try:
            method = InvoicePaymentMethod(method)
        except ValueError as e:
            raise ValidationError(f"Invalid payment method: {method!r}") from e

        payment = self.payment
        if method == InvoicePaymentMethod.CASH:
            payment.bank = None
            payment.check = None
            payment.reference_number = None
        elif method in (InvoicePaymentMethod.BANK, InvoicePaymentMethod.EWALLET):
            payment.check = None
        elif method == InvoicePaymentMethod.CHECK:
            payment.reference_number = None
        payment.method = method
        return self

    def set_bank_details(self, **fields: str) -> "DigitalInvoice":
        """Set bank fields (name, account_number, branch, code, address)."""
        if self.payment.method == InvoicePaymentMethod.CASH:
            self.payment.bank = None
            raise ValidationError("This payment method does not support bank information.")
        unknown = set(fields) - set(_BANK_LABELS)
        if unknown:
            raise ValidationError(f"Unknown bank field(s): {', '.join(sorted(unknown))}")
        values = {name: _require_text(value, _BANK_LABELS[name]) for name, value in fields.items()}
        bank = self.payment.bank or BankInformation()
        self.payment.bank = dataclasses.replace(bank, **values)
        return self

    def set_check_details(self, number: Optional[str] = None, date: Optional[str] = None) -> "DigitalInvoice":
        if self.payment.method != InvoicePaymentMethod.CHECK:
            self.payment.check = None
            raise ValidationError("This payment method does not support check information.")
        check = self.payment.check or CheckInformation(
            number="", date=format_timestamp(datetime.now(timezone.utc))
        )
        if number is not None:
            check.number = _require_text(number, "Check Number")
        if date is not None:
            check.date = format_timestamp(parse_timestamp(date))
        if not check.number:
            raise ValidationError(required_string("Check Number"))
        self.payment.check = check
        return self

    def set_reference_number(self, value: str) -> "DigitalInvoice":
        if self.payment.method not in (InvoicePaymentMethod.EWALLET, InvoicePaymentMethod.BANK):
            self.payment.reference_number = None
            raise ValidationError("This payment method does not support reference number.")
        if not isinstance(value, str) or not value.strip():
            self.payment.reference_number = None
            raise ValidationError(required_string("Reference Number"))
        self.payment.reference_number = value
        return self

    # Taxpayer profile

    def load_taxpayer_info(self, info: TaxpayerInfo) -> "DigitalInvoice":
        """Apply an exported taxpayer profile as this invoice's issuer and tax settings."""
        if info is None:
            raise ValidationError("Invalid Taxpayer Data provided. Must be a valid TaxpayerInfo object.")
        validate_taxpayer(info.issuer)

        settings = TaxSettings.for_vat_type(info.vat_type)
        if info.vat_type == InvoiceVATType.VAT:
            settings = dataclasses.replace(settings, vat_rate=validate_rate(info.vat_rate, "VAT rate"))
        else:
            settings = dataclasses.replace(
                settings,
                percentage_tax_rate=validate_rate(info.percentage_tax_rate, "Percentage tax rate"),
            )

        self.metadata.type = info.vat_type
        self.metadata.category = info.category
        self.metadata.rdo = info.rdo
        self.metadata.company_logo = info.company_logo
        self.issuer = dataclasses.replace(info.issuer)
        self._settings = dataclasses.replace(
            settings,
            vat_inclusive=self._settings.vat_inclusive,
            withholding_tax_rate=self._settings.withholding_tax_rate,
            other_discount=self._settings.other_discount,
        )
        self._recompute()
        return self

    def export_taxpayer_info(self) -> TaxpayerInfo:
        validate_taxpayer(self.issuer)
        return TaxpayerInfo(
            issuer=dataclasses.replace(self.issuer),
            vat_type=self.metadata.type,
            category=self.metadata.category,
            rdo=self.metadata.rdo,
            company_logo=self.metadata.company_logo,
            vat_rate=self._settings.vat_rate,
            percentage_tax_rate=self._settings.percentage_tax_rate,
        )

    # Validation and serialization

    def validate(self, raise_error: bool = False) -> bool:
        """Check that every required field is present.

        Args:
            raise_error: Raise instead of returning False

        Raises:
            ValidationError: On the first missing field, if raise_error is set
        """
        required = (
            (self.id, "ID"),
            (self.metadata.form_number, "Form Number"),
            (self.metadata.rdo, "Revenue District Office Number"),
            (self.metadata.invoice_number, "Invoice Number"),
            (self.customer.name, "Customer's Name"),
            (self.customer.address, "Customer's Address"),
            (self.customer.business_name, "Customer's Business Name"),
            (self.customer.tin, "Customer's Registered TIN"),
            (self.issuer.name, "Taxpayer's Name"),
            (self.issuer.address, "Taxpayer's Address"),
            (self.issuer.business_name, "Taxpayer's Business Name"),
            (self.issuer.tin, "Taxpayer's Registered TIN"),
            (self._currency, "Currency"),
        )
        for value, name in required:
            if not isinstance(value, str) or not value.strip():
                if raise_error:
                    raise ValidationError(f"Validation failed: Missing or invalid property - {name}")
                return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "metadata": metadata_to_dict(self.metadata),
            "customer": legal_entity_to_dict(self.customer),
            "issuer": legal_entity_to_dict(self.issuer),
            "order": {
                "currency": self._currency,
                "orders": [order_line_to_dict(line) for line in self._lines],
                "settings": settings_to_dict(self._settings),
                "breakdown": breakdown_to_dict(self._breakdown),
            },
            "payment": payment_to_dict(self.payment),
            "timestamp": format_timestamp(self.timestamp),
        }

    def finalize(self) -> dict[str, Any]:
        """Projection with a freshly generated id, for issuing a final copy."""
        data = self.to_dict()
        data["id"] = generate_id("invoice", self.metadata.invoice_number)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Union[str, dict[str, Any]]) -> "DigitalInvoice":
        """Rebuild an invoice from its projection (or a JSON string of it).

        The breakdown is recomputed from the stored order lines and settings.
        Stored data without settings falls back to the rates in its breakdown.

        Raises:
            MalformedInputError: If a required property is missing or invalid
        """
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise MalformedInputError(f"Invalid invoice JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedInputError("Invoice data must be an object")

        invoice_id = require(data, "id")
        metadata = metadata_from_dict(require(data, "metadata"))
        customer = legal_entity_from_dict(require(data, "customer"))
        issuer = legal_entity_from_dict(require(data, "issuer"))
        order = require(data, "order")
        payment = payment_from_dict(require(data, "payment"))

        orders = order.get("orders") or []
        if not isinstance(orders, list):
            raise MalformedInputError("Invoice orders must be a list")
        lines = [order_line_from_dict(line) for line in orders]

        if order.get("settings"):
            settings = settings_from_dict(order["settings"])
        elif order.get("breakdown"):
            settings = settings_from_breakdown(breakdown_from_dict(order["breakdown"]))
        else:
            settings = TaxSettings.for_vat_type(metadata.type)

        try:
            validate_settings(settings)
            return cls(
                id=str(invoice_id),
                metadata=metadata,
                customer=customer,
                issuer=issuer,
                lines=lines,
                settings=settings,
                payment=payment,
                timestamp=data.get("timestamp"),
                currency=order.get("currency") or HOME_CURRENCY,
            )
        except ValidationError as e:
            raise MalformedInputError(str(e)) from e

    # Internals

    def _apply_settings(self, **changes: Any) -> "DigitalInvoice":
        self._settings = dataclasses.replace(self._settings, **changes)
        self._recompute()
        return self

    def _recompute(self) -> None:
        self._breakdown = compute_breakdown(
            self._lines,
            self._settings,
            self.metadata.type,
            self.customer.is_sc_pwd_eligible,
            self._currency,
        )
        logger.debug(
            "Recomputed breakdown for invoice %s: net receivable %s",
            self.metadata.invoice_number,
            self._breakdown.net_receivable.format(),
        )


def validate_taxpayer(entity: LegalEntity) -> None:
    """Reject a taxpayer identity with missing name, TIN, business name or address."""
    _require_text(entity.name, "Taxpayer's name")
    if not isinstance(entity.tin, str) or not entity.tin.strip():
        raise ValidationError("Taxpayer's TIN must be a valid registered number.")
    _require_text(entity.business_name, "Taxpayer's business name/style")
    _require_text(entity.address, "Taxpayer's address")
