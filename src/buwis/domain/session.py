"""Filing session: the invoices and summary of one taxpayer quarter."""

import copy
import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

from buwis.domain.breakdown import validate_rate
from buwis.domain.codec import (
    legal_entity_from_dict,
    legal_entity_to_dict,
    parse_decimal,
    parse_enum,
    require,
)
from buwis.domain.entities import (
    IncomeTaxType,
    InvoiceVATType,
    LegalEntity,
    QuarterPeriod,
    SessionMetadata,
    SessionTaxSettings,
    TaxpayerInfo,
    default_taxpayer,
)
from buwis.domain.errors import (
    CurrencyMismatchError,
    DuplicateKeyError,
    MalformedInputError,
    NotFoundError,
    PeriodMismatchError,
    ValidationError,
    currency_mismatch,
    duplicate_invoice,
    duplicate_invoice_in_batch,
    invoice_not_fileable,
    invoice_not_found,
    required_string,
)
from buwis.domain.invoice import DigitalInvoice, validate_taxpayer
from buwis.domain.money import HOME_CURRENCY
from buwis.domain.summary import SalesSummaryReport, build_summary, summary_metadata
from buwis.utils.date_parser import (
    current_year,
    format_timestamp,
    parse_quarter,
    parse_timestamp,
    quarter_from_date,
    quarter_range,
    validate_year,
)
from buwis.utils.identifiers import generate_id

logger = logging.getLogger(__name__)


class FilingSession:
    """Invoices of one filing period together with their derived summary.

    Invariants: every held invoice is dated inside the session's quarter and
    carries a unique invoice number. Each mutation validates first, then
    applies, then rebuilds the summary from the full invoice list.
    """

    def __init__(
        self,
        id: Optional[str] = None,
        metadata: Optional[SessionMetadata] = None,
        invoices: Optional[Iterable[DigitalInvoice]] = None,
        timestamp: Optional[Union[str, datetime]] = None,
    ):
        self.metadata = metadata or SessionMetadata(
            taxpayer=default_taxpayer(),
            user_id="system",
            year=current_year(),
            quarter=QuarterPeriod.Q1,
        )
        validate_year(self.metadata.year)
        self.id = id or generate_id("buwisfriend", self.metadata.user_id or "system")
        self.timestamp = parse_timestamp(timestamp) if timestamp else datetime.now(timezone.utc)
        self._invoices: list[DigitalInvoice] = []
        self.summary: SalesSummaryReport
        if invoices:
            batch = list(invoices)
            self._validate_batch(batch, check_existing=False)
            self._invoices = self._sorted(batch)
        self._refresh_summary()

    @classmethod
    def initialize(
        cls,
        user_id: str,
        taxpayer: Optional[LegalEntity] = None,
        quarter: Union[QuarterPeriod, str] = QuarterPeriod.Q1,
        year: Optional[int] = None,
    ) -> "FilingSession":
        """Start an empty session for ``user_id``.

        Raises:
            ValidationError: If user_id is empty or the year is out of range
        """
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("User ID must be a non-empty string.")
        metadata = SessionMetadata(
            taxpayer=taxpayer or default_taxpayer(),
            user_id=user_id,
            year=validate_year(current_year() if year is None else year),
            quarter=parse_quarter(quarter),
        )
        return cls(metadata=metadata)

    def __repr__(self) -> str:
        return (
            f"FilingSession(id={self.id!r}, period={self.metadata.year} "
            f"{self.metadata.quarter.value}, invoices={len(self._invoices)})"
        )

    @property
    def invoices(self) -> tuple[DigitalInvoice, ...]:
        """Held invoices, earliest issue date first."""
        return tuple(self._invoices)

    @property
    def period(self) -> tuple[datetime, datetime]:
        return quarter_range(self.metadata.quarter, self.metadata.year)

    # Configuration

    def load_taxpayer_info(self, info: TaxpayerInfo) -> "FilingSession":
        if info is None:
            raise ValidationError("Invalid Taxpayer Data provided. Must be a valid TaxpayerInfo object.")
        validate_taxpayer(info.issuer)
        settings = self.metadata.tax_settings
        self.metadata.taxpayer = copy.deepcopy(info.issuer)
        settings.vat_type = info.vat_type
        if info.vat_type == InvoiceVATType.VAT:
            settings.vat_rate = validate_rate(info.vat_rate, "VAT rate")
        else:
            settings.percentage_tax_rate = validate_rate(info.percentage_tax_rate, "Percentage tax rate")
        self._refresh_summary()
        return self

    def set_quarter(self, quarter: Union[QuarterPeriod, str]) -> "FilingSession":
        """Move the session to another quarter of the same year.

        Raises:
            PeriodMismatchError: If a held invoice falls outside the new quarter
        """
        quarter = parse_quarter(quarter)
        self._check_period(quarter, self.metadata.year)
        self.metadata.quarter = quarter
        self._refresh_summary()
        return self

    def set_year(self, year: int) -> "FilingSession":
        year = validate_year(year)
        self._check_period(self.metadata.quarter, year)
        self.metadata.year = year
        self._refresh_summary()
        return self

    def set_income_tax_type(self, tax_type: Union[IncomeTaxType, str]) -> "FilingSession":
        try:
            self.metadata.tax_settings.income_tax_type = IncomeTaxType(tax_type)
        except ValueError as e:
            raise ValidationError(f"Invalid income tax type: {tax_type!r}") from e
        self._refresh_summary()
        return self

    def set_tax_settings(
        self,
        vat_rate: Optional[Union[Decimal, str]] = None,
        vat_type: Optional[Union[InvoiceVATType, str]] = None,
        percentage_tax_rate: Optional[Union[Decimal, str]] = None,
    ) -> "FilingSession":
        """Update the session's tax configuration snapshot."""
        settings = self.metadata.tax_settings
        new_vat_rate = settings.vat_rate if vat_rate is None else validate_rate(vat_rate, "VAT rate")
        new_pt_rate = (
            settings.percentage_tax_rate
            if percentage_tax_rate is None
            else validate_rate(percentage_tax_rate, "Percentage tax rate")
        )
        try:
            new_vat_type = settings.vat_type if vat_type is None else InvoiceVATType(vat_type)
        except ValueError as e:
            raise ValidationError(f"Invalid VAT type: {vat_type!r}") from e
        settings.vat_rate = new_vat_rate
        settings.percentage_tax_rate = new_pt_rate
        settings.vat_type = new_vat_type
        self._refresh_summary()
        return self

    # Invoice set

    def contains_invoice(self, invoice: Union[str, DigitalInvoice]) -> bool:
        """Return True if an invoice with the same number is held.

        Raises:
            ValidationError: If no invoice number can be read from ``invoice``
        """
        if isinstance(invoice, DigitalInvoice):
            number = invoice.invoice_number
        else:
            number = invoice
        if not isinstance(number, str) or not number.strip():
            raise ValidationError(
                "Invalid input: must be a string or a DigitalInvoice with an invoice number"
            )
        return any(inv.invoice_number == number for inv in self._invoices)

    def add_invoice(self, invoice: DigitalInvoice) -> "FilingSession":
        """Add one invoice.

        Raises:
            DuplicateKeyError: If the invoice number is already held
            PeriodMismatchError: If the invoice is dated outside the period
        """
        return self.add_invoices([invoice])

    def add_invoices(self, invoices: Iterable[DigitalInvoice]) -> "FilingSession":
        """Add a batch of invoices; nothing is added if any one is rejected."""
        batch = list(invoices or ())
        if not batch:
            return self
        self._validate_batch(batch, check_existing=True)
        self._invoices = self._sorted(self._invoices + batch)
        logger.info(
            "Added %d invoice(s) to session %s (%d held)", len(batch), self.id, len(self._invoices)
        )
        self._refresh_summary()
        return self

    def replace_invoices(self, invoices: Iterable[DigitalInvoice]) -> "FilingSession":
        """Replace the whole invoice set with a validated batch.

        An empty batch leaves the session unchanged; use clear_invoices to
        empty it.
        """
        batch = list(invoices or ())
        if not batch:
            return self
        self._validate_batch(batch, check_existing=False)
        self._invoices = self._sorted(batch)
        logger.info("Replaced invoices of session %s (%d held)", self.id, len(self._invoices))
        self._refresh_summary()
        return self

    def remove_invoice(self, invoice_number: str) -> "FilingSession":
        """Remove the invoice with ``invoice_number``.

        Raises:
            ValidationError: If invoice_number is empty
            NotFoundError: If no such invoice is held
        """
        if not isinstance(invoice_number, str) or not invoice_number.strip():
            raise ValidationError(required_string("invoice_number"))
        for index, invoice in enumerate(self._invoices):
            if invoice.invoice_number == invoice_number:
                del self._invoices[index]
                logger.info("Removed invoice %s from session %s", invoice_number, self.id)
                self._refresh_summary()
                return self
        raise NotFoundError(invoice_not_found(invoice_number))

    def clear_invoices(self) -> "FilingSession":
        self._invoices = []
        self._refresh_summary()
        return self

    def invoices_in_quarter(self, quarter: Optional[Union[QuarterPeriod, str]] = None) -> list[DigitalInvoice]:
        """Held invoices dated in ``quarter`` of the session year (default: session quarter)."""
        target = self.metadata.quarter if quarter is None else parse_quarter(quarter)
        start, end = quarter_range(target, self.metadata.year)
        return [inv for inv in self._invoices if start <= inv.timestamp <= end]

    def summary_report(self) -> dict[str, Any]:
        return self.summary.to_dict()

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        meta = self.metadata
        settings = meta.tax_settings
        return {
            "id": self.id,
            "metadata": {
                "taxpayer": legal_entity_to_dict(meta.taxpayer),
                "user_id": meta.user_id,
                "year": meta.year,
                "quarter": meta.quarter.value,
                "tax_settings": {
                    "vat": {"rate": str(settings.vat_rate), "type": settings.vat_type.value},
                    "percentage_tax": str(settings.percentage_tax_rate),
                    "income_tax_type": settings.income_tax_type.value,
                },
            },
            "invoices": [invoice.to_dict() for invoice in self._invoices],
            "summary": self.summary.to_dict(),
            "timestamp": format_timestamp(self.timestamp),
        }

    def finalize(self) -> dict[str, Any]:
        """Projection with a freshly generated id."""
        data = self.to_dict()
        data["id"] = generate_id("buwisfriend", self.metadata.user_id)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Union[str, dict[str, Any]]) -> "FilingSession":
        """Rebuild a session from its projection (or a JSON string of it).

        The stored summary must be present and well formed, but the session's
        summary is rebuilt from the parsed invoices.

        Raises:
            MalformedInputError: If a required property is missing or invalid
        """
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as e:
                raise MalformedInputError(f"Invalid session JSON: {e}") from e
        if not isinstance(data, dict):
            raise MalformedInputError("Session data must be an object")

        session_id = require(data, "id")
        meta = require(data, "metadata")
        if "invoices" not in data or not isinstance(data["invoices"], list):
            raise MalformedInputError("Missing required property: 'invoices'")
        SalesSummaryReport.from_dict(require(data, "summary"))

        year = require(meta, "year")
        if isinstance(year, bool) or not isinstance(year, int):
            raise MalformedInputError(f"Invalid session year: {year!r}")
        raw_settings = meta.get("tax_settings") or {}
        vat_settings = raw_settings.get("vat") or {}
        tax_settings = SessionTaxSettings(
            vat_rate=parse_decimal(vat_settings.get("rate", "0.12"), "vat.rate"),
            vat_type=parse_enum(InvoiceVATType, vat_settings.get("type", "VAT"), "vat.type"),
            percentage_tax_rate=parse_decimal(
                raw_settings.get("percentage_tax", "0.03"), "percentage_tax"
            ),
            income_tax_type=parse_enum(
                IncomeTaxType, raw_settings.get("income_tax_type", "GRADUATED"), "income_tax_type"
            ),
        )
        metadata = SessionMetadata(
            taxpayer=legal_entity_from_dict(require(meta, "taxpayer")),
            user_id=str(require(meta, "user_id")),
            year=year,
            quarter=parse_enum(QuarterPeriod, require(meta, "quarter"), "quarter"),
            tax_settings=tax_settings,
        )
        invoices = [DigitalInvoice.from_dict(item) for item in data["invoices"]]

        try:
            return cls(
                id=str(session_id),
                metadata=metadata,
                invoices=invoices,
                timestamp=data.get("timestamp"),
            )
        except (ValidationError, DuplicateKeyError, PeriodMismatchError, CurrencyMismatchError) as e:
            raise MalformedInputError(str(e)) from e

    # Internals

    def _validate_batch(self, batch: list[DigitalInvoice], check_existing: bool) -> None:
        start, end = self.period
        seen: set[str] = set()
        for invoice in batch:
            number = invoice.invoice_number
            if not start <= invoice.timestamp <= end:
                issued = invoice.timestamp.astimezone(timezone.utc)
                raise PeriodMismatchError(
                    invoice_not_fileable(number, issued.year, quarter_from_date(issued).number)
                )
            if number in seen:
                raise DuplicateKeyError(duplicate_invoice_in_batch(number))
            if check_existing and self.contains_invoice(number):
                raise DuplicateKeyError(duplicate_invoice(number))
            if invoice.currency != HOME_CURRENCY:
                raise CurrencyMismatchError(currency_mismatch(HOME_CURRENCY, invoice.currency))
            seen.add(number)

    def _check_period(self, quarter: QuarterPeriod, year: int) -> None:
        start, end = quarter_range(quarter, year)
        for invoice in self._invoices:
            if not start <= invoice.timestamp <= end:
                raise PeriodMismatchError(
                    f"Invoice {invoice.invoice_number} is outside {year} {quarter.value}; "
                    "remove it before changing the filing period."
                )

    @staticmethod
    def _sorted(invoices: list[DigitalInvoice]) -> list[DigitalInvoice]:
        return sorted(invoices, key=lambda inv: inv.timestamp)

    def _refresh_summary(self) -> None:
        meta = self.metadata
        self.summary = build_summary(
            summary_metadata(
                meta.taxpayer,
                meta.user_id,
                meta.quarter,
                meta.year,
                meta.tax_settings.income_tax_type,
            ),
            self._invoices,
        )
