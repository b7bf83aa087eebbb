"""Taxpayer profile domain service."""

import logging
from decimal import Decimal
from typing import Any, Optional, Union

from buwis.database.base import Database
from buwis.domain.breakdown import validate_rate
from buwis.domain.codec import taxpayer_info_from_dict, taxpayer_info_to_dict
from buwis.domain.entities import (
    DEFAULT_PERCENTAGE_TAX_RATE,
    DEFAULT_RDO,
    DEFAULT_VAT_RATE,
    InvoiceType,
    InvoiceVATType,
    LegalEntity,
    TaxpayerInfo,
)
from buwis.domain.errors import NotFoundError, ValidationError, taxpayer_not_found
from buwis.domain.invoice import DigitalInvoice, validate_taxpayer

logger = logging.getLogger(__name__)


class TaxpayerService:
    """Service for managing taxpayer profiles."""

    def __init__(self, db: Database):
        """Initialize taxpayer service.

        Args:
            db: Database instance
        """
        self.db = db

    def register(
        self,
        name: str,
        tin: str,
        address: str,
        business_name: str,
        vat_type: Union[InvoiceVATType, str] = InvoiceVATType.NON_VAT,
        category: Union[InvoiceType, str] = InvoiceType.SALES,
        rdo: str = DEFAULT_RDO,
        vat_rate: Optional[Decimal] = None,
        percentage_tax_rate: Optional[Decimal] = None,
        **contact: Optional[str],
    ) -> TaxpayerInfo:
        """Create or replace a taxpayer profile.

        Args:
            name: Registered name
            tin: Taxpayer identification number (profile key)
            address: Registered address
            business_name: Business name/style
            vat_type: VAT registration
            category: Default invoice category
            rdo: Revenue District Office code
            vat_rate: VAT rate (defaults to 12%)
            percentage_tax_rate: Percentage tax rate (defaults to 3%)
            **contact: Optional contact_number, email_address, website

        Returns:
            The stored profile

        Raises:
            ValidationError: If identity fields are missing or a rate is invalid
        """
        unknown = set(contact) - {"contact_number", "email_address", "website"}
        if unknown:
            raise ValidationError(f"Unknown taxpayer field(s): {', '.join(sorted(unknown))}")
        try:
            vat_type = InvoiceVATType(vat_type)
            category = InvoiceType(category)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        issuer = LegalEntity(
            name=name,
            tin=tin,
            address=address,
            business_name=business_name,
            **{key: value or None for key, value in contact.items()},
        )
        validate_taxpayer(issuer)
        info = TaxpayerInfo(
            issuer=issuer,
            vat_type=vat_type,
            category=category,
            rdo=rdo or DEFAULT_RDO,
            vat_rate=DEFAULT_VAT_RATE if vat_rate is None else validate_rate(vat_rate, "VAT rate"),
            percentage_tax_rate=(
                DEFAULT_PERCENTAGE_TAX_RATE
                if percentage_tax_rate is None
                else validate_rate(percentage_tax_rate, "Percentage tax rate")
            ),
        )
        return self.save_profile(info)

    def save_profile(self, info: TaxpayerInfo) -> TaxpayerInfo:
        validate_taxpayer(info.issuer)
        self.db.save_taxpayer_profile(info)
        logger.info("Saved taxpayer profile %s (%s)", info.issuer.tin, info.vat_type.value)
        return info

    def save_from_invoice(self, invoice: DigitalInvoice) -> TaxpayerInfo:
        """Store the issuer and tax settings of an invoice as a profile."""
        return self.save_profile(invoice.export_taxpayer_info())

    def get_profile(self, tin: str) -> TaxpayerInfo:
        """Get taxpayer profile by TIN.

        Raises:
            NotFoundError: If no profile is stored for the TIN
        """
        info = self.db.get_taxpayer_profile(tin)
        if info is None:
            raise NotFoundError(taxpayer_not_found(tin))
        return info

    def list_profiles(self) -> list[TaxpayerInfo]:
        return self.db.list_taxpayer_profiles()

    def delete_profile(self, tin: str) -> None:
        self.get_profile(tin)
        self.db.delete_taxpayer_profile(tin)

    def export_profile(self, tin: str) -> dict[str, Any]:
        return taxpayer_info_to_dict(self.get_profile(tin))

    def import_profile(self, data: dict[str, Any]) -> TaxpayerInfo:
        """Store a profile parsed from its projection."""
        return self.save_profile(taxpayer_info_from_dict(data))
