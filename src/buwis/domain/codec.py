"""Plain-data (JSON compatible) projections of the domain entities.

Every ``*_to_dict`` function has a matching ``*_from_dict`` that rebuilds the
entity and raises MalformedInputError instead of filling in defaults for
missing required fields.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional, TypeVar

from buwis.domain.entities import (
    BankInformation,
    BIRMetadata,
    CheckInformation,
    Discount,
    InvoicePaymentMethod,
    InvoiceType,
    InvoiceVATType,
    LegalEntity,
    OrderLine,
    PaymentInformation,
    PercentageTaxBlock,
    TaxBreakdown,
    TaxpayerInfo,
    TaxSettings,
    VATBlock,
    VATSubType,
    WithholdingTaxBlock,
)
from buwis.domain.errors import MalformedInputError, ValidationError, missing_property
from buwis.domain.money import Money, to_decimal

E = TypeVar("E", bound=Enum)


def require(data: Any, key: str) -> Any:
    """Return ``data[key]``, failing on a missing or empty value."""
    if not isinstance(data, dict):
        raise MalformedInputError(f"Expected an object containing '{key}'")
    value = data.get(key)
    if value is None or value == "" or value == {}:
        raise MalformedInputError(missing_property(key))
    return value


def parse_decimal(value: Any, label: str) -> Decimal:
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise MalformedInputError(f"Invalid number for '{label}': {value!r}")
    try:
        return to_decimal(value)
    except ValidationError as e:
        raise MalformedInputError(f"Invalid number for '{label}': {value!r}") from e


def parse_enum(enum_cls: type[E], value: Any, label: str) -> E:
    try:
        return enum_cls(value)
    except ValueError as e:
        raise MalformedInputError(f"Invalid value for '{label}': {value!r}") from e


def parse_bool(value: Any, label: str) -> bool:
    if not isinstance(value, bool):
        raise MalformedInputError(f"Invalid flag for '{label}': {value!r}")
    return value


def _optional_str(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    return value if isinstance(value, str) and value.strip() else None


def legal_entity_to_dict(entity: LegalEntity) -> dict[str, Any]:
    return {
        "name": entity.name,
        "tin": entity.tin,
        "address": entity.address,
        "business_name": entity.business_name,
        "contact_number": entity.contact_number,
        "email_address": entity.email_address,
        "website": entity.website,
        "osca_pwd_number": entity.osca_pwd_number,
    }


def legal_entity_from_dict(data: Any) -> LegalEntity:
    return LegalEntity(
        name=str(require(data, "name")),
        tin=str(require(data, "tin")),
        address=str(require(data, "address")),
        business_name=str(require(data, "business_name")),
        contact_number=_optional_str(data, "contact_number"),
        email_address=_optional_str(data, "email_address"),
        website=_optional_str(data, "website"),
        osca_pwd_number=_optional_str(data, "osca_pwd_number"),
    )


def metadata_to_dict(metadata: BIRMetadata) -> dict[str, Any]:
    return {
        "form_number": metadata.form_number,
        "invoice_number": metadata.invoice_number,
        "series": metadata.series,
        "rdo": metadata.rdo,
        "type": metadata.type.value,
        "category": metadata.category.value,
        "company_logo": metadata.company_logo,
    }


def metadata_from_dict(data: Any) -> BIRMetadata:
    return BIRMetadata(
        form_number=str(require(data, "form_number")),
        invoice_number=str(require(data, "invoice_number")).upper(),
        series=str(require(data, "series")),
        rdo=str(require(data, "rdo")),
        type=parse_enum(InvoiceVATType, require(data, "type"), "type"),
        category=parse_enum(InvoiceType, require(data, "category"), "category"),
        company_logo=_optional_str(data, "company_logo"),
    )


def order_line_to_dict(line: OrderLine) -> dict[str, Any]:
    return {
        "label": line.label,
        "description": line.description,
        "quantity": str(line.quantity),
        "unit": line.unit,
        "unit_price": str(line.unit_price),
        "amount": str(line.amount),
    }


def order_line_from_dict(data: Any) -> OrderLine:
    return OrderLine(
        label=str(require(data, "label")),
        description=_optional_str(data, "description"),
        quantity=parse_decimal(require(data, "quantity"), "quantity"),
        unit=str(data.get("unit") or ""),
        unit_price=parse_decimal(require(data, "unit_price"), "unit_price"),
        amount=parse_decimal(require(data, "amount"), "amount"),
    )


def settings_to_dict(settings: TaxSettings) -> dict[str, Any]:
    return {
        "vat_rate": str(settings.vat_rate),
        "vat_subtype": settings.vat_subtype.value,
        "vat_inclusive": settings.vat_inclusive,
        "percentage_tax_rate": str(settings.percentage_tax_rate),
        "withholding_tax_rate": str(settings.withholding_tax_rate),
        "other_discount": str(settings.other_discount),
    }


def settings_from_dict(data: Any) -> TaxSettings:
    if not isinstance(data, dict):
        raise MalformedInputError("Tax settings must be an object")
    return TaxSettings(
        vat_rate=parse_decimal(data.get("vat_rate", "0"), "vat_rate"),
        vat_subtype=parse_enum(
            VATSubType, data.get("vat_subtype", VATSubType.STANDARD.value), "vat_subtype"
        ),
        vat_inclusive=parse_bool(data.get("vat_inclusive", True), "vat_inclusive"),
        percentage_tax_rate=parse_decimal(
            data.get("percentage_tax_rate", "0"), "percentage_tax_rate"
        ),
        withholding_tax_rate=parse_decimal(
            data.get("withholding_tax_rate", "0"), "withholding_tax_rate"
        ),
        other_discount=parse_decimal(data.get("other_discount", "0"), "other_discount"),
    )


def breakdown_to_dict(breakdown: TaxBreakdown) -> dict[str, Any]:
    vat = breakdown.vat
    return {
        "total_sales": breakdown.total_sales.to_dict(),
        "discount": {
            "sc_pwd": breakdown.discount.sc_pwd.to_dict(),
            "other": breakdown.discount.other.to_dict(),
            "total": breakdown.discount.total.to_dict(),
        },
        "net_receivable": breakdown.net_receivable.to_dict(),
        "total_amount_due": breakdown.total_amount_due.to_dict(),
        "sales_pt": breakdown.sales_pt.to_dict(),
        "exempt_sales": breakdown.exempt_sales.to_dict(),
        "vat": {
            "rate": str(vat.rate),
            "subtype": vat.subtype.value,
            "inclusive": vat.inclusive,
            "total_vat": vat.total_vat.to_dict(),
            "sales_vatable": vat.sales_vatable.to_dict(),
            "vat_exempt_sales": vat.vat_exempt_sales.to_dict(),
            "vat_zero_rated_sales": vat.vat_zero_rated_sales.to_dict(),
            "total_sales_vat_inclusive": vat.total_sales_vat_inclusive.to_dict(),
        },
        "percentage_tax": {
            "rate": str(breakdown.percentage_tax.rate),
            "total": breakdown.percentage_tax.total.to_dict(),
        },
        "withholding_tax": {
            "rate": str(breakdown.withholding_tax.rate),
            "total": breakdown.withholding_tax.total.to_dict(),
        },
    }


def breakdown_from_dict(data: Any) -> TaxBreakdown:
    discount = require(data, "discount")
    vat = require(data, "vat")
    percentage_tax = require(data, "percentage_tax")
    withholding_tax = require(data, "withholding_tax")
    return TaxBreakdown(
        total_sales=Money.from_dict(require(data, "total_sales")),
        discount=Discount(
            sc_pwd=Money.from_dict(require(discount, "sc_pwd")),
            other=Money.from_dict(require(discount, "other")),
            total=Money.from_dict(require(discount, "total")),
        ),
        net_receivable=Money.from_dict(require(data, "net_receivable")),
        total_amount_due=Money.from_dict(require(data, "total_amount_due")),
        sales_pt=Money.from_dict(require(data, "sales_pt")),
        exempt_sales=Money.from_dict(require(data, "exempt_sales")),
        vat=VATBlock(
            rate=parse_decimal(require(vat, "rate"), "vat.rate"),
            subtype=parse_enum(VATSubType, require(vat, "subtype"), "vat.subtype"),
            inclusive=parse_bool(vat.get("inclusive", True), "vat.inclusive"),
            total_vat=Money.from_dict(require(vat, "total_vat")),
            sales_vatable=Money.from_dict(require(vat, "sales_vatable")),
            vat_exempt_sales=Money.from_dict(require(vat, "vat_exempt_sales")),
            vat_zero_rated_sales=Money.from_dict(require(vat, "vat_zero_rated_sales")),
            total_sales_vat_inclusive=Money.from_dict(require(vat, "total_sales_vat_inclusive")),
        ),
        percentage_tax=PercentageTaxBlock(
            rate=parse_decimal(require(percentage_tax, "rate"), "percentage_tax.rate"),
            total=Money.from_dict(require(percentage_tax, "total")),
        ),
        withholding_tax=WithholdingTaxBlock(
            rate=parse_decimal(require(withholding_tax, "rate"), "withholding_tax.rate"),
            total=Money.from_dict(require(withholding_tax, "total")),
        ),
    )


def settings_from_breakdown(breakdown: TaxBreakdown) -> TaxSettings:
    """Recover breakdown inputs from a stored breakdown that carries no settings."""
    return TaxSettings(
        vat_rate=breakdown.vat.rate,
        vat_subtype=breakdown.vat.subtype,
        vat_inclusive=breakdown.vat.inclusive,
        percentage_tax_rate=breakdown.percentage_tax.rate,
        withholding_tax_rate=breakdown.withholding_tax.rate,
        other_discount=breakdown.discount.other.to_pesos(),
    )


def payment_to_dict(payment: PaymentInformation) -> dict[str, Any]:
    bank = payment.bank
    check = payment.check
    return {
        "method": payment.method.value,
        "bank": None
        if bank is None
        else {
            "name": bank.name,
            "account_number": bank.account_number,
            "branch": bank.branch,
            "code": bank.code,
            "address": bank.address,
        },
        "check": None if check is None else {"number": check.number, "date": check.date},
        "reference_number": payment.reference_number,
    }


def payment_from_dict(data: Any) -> PaymentInformation:
    method = parse_enum(InvoicePaymentMethod, require(data, "method"), "method")
    bank = data.get("bank")
    check = data.get("check")
    return PaymentInformation(
        method=method,
        bank=None
        if not bank
        else BankInformation(
            name=str(require(bank, "name")),
            account_number=str(require(bank, "account_number")),
            branch=str(require(bank, "branch")),
            code=str(require(bank, "code")),
            address=str(require(bank, "address")),
        ),
        check=None
        if not check
        else CheckInformation(number=str(require(check, "number")), date=str(require(check, "date"))),
        reference_number=_optional_str(data, "reference_number"),
    )


def taxpayer_info_to_dict(info: TaxpayerInfo) -> dict[str, Any]:
    return {
        "issuer": legal_entity_to_dict(info.issuer),
        "vat_type": info.vat_type.value,
        "category": info.category.value,
        "rdo": info.rdo,
        "company_logo": info.company_logo,
        "vat_rate": str(info.vat_rate),
        "percentage_tax_rate": str(info.percentage_tax_rate),
    }


def taxpayer_info_from_dict(data: Any) -> TaxpayerInfo:
    return TaxpayerInfo(
        issuer=legal_entity_from_dict(require(data, "issuer")),
        vat_type=parse_enum(InvoiceVATType, require(data, "vat_type"), "vat_type"),
        category=parse_enum(InvoiceType, data.get("category", InvoiceType.SALES.value), "category"),
        rdo=str(data.get("rdo") or "000"),
        company_logo=_optional_str(data, "company_logo"),
        vat_rate=parse_decimal(data.get("vat_rate", "0"), "vat_rate"),
        percentage_tax_rate=parse_decimal(
            data.get("percentage_tax_rate", "0"), "percentage_tax_rate"
        ),
    )
