"""Domain model entities for buwis.

These are plain data classes describing invoices, parties and computed tax
figures. Computed results (breakdowns, summaries) are frozen and replaced
wholesale; descriptive records (parties, metadata, payment details) are
mutable and edited through the owning invoice or session.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from buwis.domain.money import HOME_CURRENCY, Money


class InvoiceVATType(str, Enum):
    """VAT registration of the issuer."""

    NON_VAT = "Non-VAT"
    VAT = "VAT"


class VATSubType(str, Enum):
    """VAT treatment of the sale for VAT-registered issuers."""

    STANDARD = "Standard"
    EXEMPT = "Exempt"
    ZERO_RATED = "Zero-rated"


class InvoicePaymentMethod(str, Enum):
    CASH = "Cash"
    BANK = "Bank"
    EWALLET = "E-Wallet"
    CHECK = "Check"


class InvoiceType(str, Enum):
    """Purpose of the invoice."""

    SALES = "Sales"
    SERVICE = "Service"
    COMMERCIAL = "Commercial"


class IncomeTaxType(str, Enum):
    """Income tax regime: graduated brackets or the 8% flat option."""

    GRADUATED = "GRADUATED"
    FLAT = "FLAT"


class QuarterPeriod(str, Enum):
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"

    @property
    def number(self) -> int:
        return int(self.value[1])


# Statutory defaults
DEFAULT_VAT_RATE = Decimal("0.12")
DEFAULT_PERCENTAGE_TAX_RATE = Decimal("0.03")
DEFAULT_WITHHOLDING_TAX_RATE = Decimal("0.05")
SC_PWD_DISCOUNT_RATE = Decimal("0.20")

DEFAULT_FORM_NUMBER = "2703"
DEFAULT_SERIES = "January 2020 (ENCS)"
DEFAULT_RDO = "000"
DEFAULT_INVOICE_NUMBER = "1000A0001001"


@dataclass
class LegalEntity:
    """Business or individual party to an invoice."""

    name: str
    tin: str
    address: str
    business_name: str
    contact_number: Optional[str] = None
    email_address: Optional[str] = None
    website: Optional[str] = None
    osca_pwd_number: Optional[str] = None

    @property
    def is_sc_pwd_eligible(self) -> bool:
        """True when a senior citizen / PWD identifier is on file."""
        return bool(self.osca_pwd_number and self.osca_pwd_number.strip())


@dataclass
class BIRMetadata:
    """Invoice metadata required by the Bureau of Internal Revenue."""

    form_number: str = DEFAULT_FORM_NUMBER
    invoice_number: str = DEFAULT_INVOICE_NUMBER
    series: str = DEFAULT_SERIES
    rdo: str = DEFAULT_RDO
    type: InvoiceVATType = InvoiceVATType.NON_VAT
    category: InvoiceType = InvoiceType.SALES
    company_logo: Optional[str] = None


@dataclass(frozen=True)
class OrderLine:
    """A single item or service on an invoice.

    ``amount`` is authoritative; it is not recomputed from quantity and unit
    price.
    """

    label: str
    quantity: Decimal
    unit: str
    unit_price: Decimal
    amount: Decimal
    description: Optional[str] = None


@dataclass(frozen=True)
class TaxSettings:
    """Inputs of the breakdown computation held by an invoice."""

    vat_rate: Decimal = Decimal("0")
    vat_subtype: VATSubType = VATSubType.STANDARD
    vat_inclusive: bool = True
    percentage_tax_rate: Decimal = DEFAULT_PERCENTAGE_TAX_RATE
    withholding_tax_rate: Decimal = DEFAULT_WITHHOLDING_TAX_RATE
    other_discount: Decimal = Decimal("0")

    @classmethod
    def for_vat_type(cls, vat_type: InvoiceVATType) -> "TaxSettings":
        """Registration-appropriate defaults."""
        if vat_type == InvoiceVATType.VAT:
            return cls(vat_rate=DEFAULT_VAT_RATE, percentage_tax_rate=Decimal("0"))
        return cls(vat_rate=Decimal("0"), percentage_tax_rate=DEFAULT_PERCENTAGE_TAX_RATE)


@dataclass(frozen=True)
class Discount:
    sc_pwd: Money
    other: Money
    total: Money


@dataclass(frozen=True)
class VATBlock:
    rate: Decimal
    subtype: VATSubType
    inclusive: bool
    total_vat: Money
    sales_vatable: Money
    vat_exempt_sales: Money
    vat_zero_rated_sales: Money
    total_sales_vat_inclusive: Money


@dataclass(frozen=True)
class PercentageTaxBlock:
    rate: Decimal
    total: Money


@dataclass(frozen=True)
class WithholdingTaxBlock:
    rate: Decimal
    total: Money


@dataclass(frozen=True)
class TaxBreakdown:
    """Fully reconciled tax figures for one invoice."""

    total_sales: Money
    discount: Discount
    net_receivable: Money
    total_amount_due: Money
    sales_pt: Money
    exempt_sales: Money
    vat: VATBlock
    percentage_tax: PercentageTaxBlock
    withholding_tax: WithholdingTaxBlock

    @property
    def currency(self) -> str:
        return self.total_sales.currency


@dataclass
class BankInformation:
    name: str = "Bank ABC"
    account_number: str = "10000001"
    branch: str = "Branch XYZ"
    code: str = "A0000Z"
    address: str = "123 DEF City"


@dataclass
class CheckInformation:
    number: str
    date: str


@dataclass
class PaymentInformation:
    """Chosen payment method and its supporting details."""

    method: InvoicePaymentMethod = InvoicePaymentMethod.CASH
    bank: Optional[BankInformation] = None
    check: Optional[CheckInformation] = None
    reference_number: Optional[str] = None


@dataclass(frozen=True)
class TaxpayerInfo:
    """Exportable taxpayer profile: issuer identity plus its tax settings."""

    issuer: LegalEntity
    vat_type: InvoiceVATType
    category: InvoiceType = InvoiceType.SALES
    rdo: str = DEFAULT_RDO
    company_logo: Optional[str] = None
    vat_rate: Decimal = DEFAULT_VAT_RATE
    percentage_tax_rate: Decimal = DEFAULT_PERCENTAGE_TAX_RATE


@dataclass
class SessionTaxSettings:
    """Tax configuration snapshot of a filing session."""

    vat_rate: Decimal = DEFAULT_VAT_RATE
    vat_type: InvoiceVATType = InvoiceVATType.VAT
    percentage_tax_rate: Decimal = DEFAULT_PERCENTAGE_TAX_RATE
    income_tax_type: IncomeTaxType = IncomeTaxType.GRADUATED


@dataclass
class SessionMetadata:
    taxpayer: LegalEntity
    user_id: str
    year: int
    quarter: QuarterPeriod
    tax_settings: SessionTaxSettings = field(default_factory=SessionTaxSettings)


@dataclass(frozen=True)
class SummaryMetadata:
    """Identity snapshot carried by a summary."""

    taxpayer: LegalEntity
    user_id: str
    year: int
    quarter: QuarterPeriod
    income_tax_type: IncomeTaxType
    period_start: datetime
    period_end: datetime
    currency: str = HOME_CURRENCY


@dataclass(frozen=True)
class SessionRecord:
    """Listing entry of a stored filing session."""

    id: str
    user_id: str
    year: int
    quarter: QuarterPeriod
    taxpayer_tin: str
    invoice_count: int
    updated_at: datetime


def default_customer() -> LegalEntity:
    return LegalEntity(
        name="Customer XYZ",
        tin="100000000000",
        address="123 ABC St., Brgy. DEF, Manila City, NCR, Philippines",
        business_name="The Zelijah World",
    )


def default_taxpayer() -> LegalEntity:
    return LegalEntity(
        name="Taxpayer ABC",
        tin="100000000000",
        address="123 XYZ St., Brgy. DEF, Makati City, NCR, Philippines",
        business_name="The Zelijah World",
    )
