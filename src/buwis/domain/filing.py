"""Filing session domain service."""

import logging
from typing import Any, Iterable, Optional, Union

from buwis.database.base import Database
from buwis.domain.entities import IncomeTaxType, QuarterPeriod, SessionRecord
from buwis.domain.errors import (
    ConflictError,
    NotFoundError,
    session_not_found,
    taxpayer_not_found,
)
from buwis.domain.invoice import DigitalInvoice
from buwis.domain.session import FilingSession
from buwis.domain.summary import SalesSummaryReport

logger = logging.getLogger(__name__)

InvoicePayload = Union[str, dict[str, Any], DigitalInvoice]


class FilingService:
    """Service for managing stored filing sessions."""

    def __init__(self, db: Database):
        """Initialize filing service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_session(
        self,
        user_id: str,
        quarter: Union[QuarterPeriod, str] = QuarterPeriod.Q1,
        year: Optional[int] = None,
        taxpayer_tin: Optional[str] = None,
    ) -> FilingSession:
        """Create and store an empty filing session.

        Args:
            user_id: Owner of the session
            quarter: Filing quarter
            year: Filing year (defaults to the current year)
            taxpayer_tin: TIN of a stored taxpayer profile to apply

        Returns:
            The new FilingSession

        Raises:
            ValidationError: If user_id or the period is invalid
            NotFoundError: If taxpayer_tin has no stored profile
        """
        session = FilingSession.initialize(user_id, quarter=quarter, year=year)
        if taxpayer_tin is not None:
            info = self.db.get_taxpayer_profile(taxpayer_tin)
            if info is None:
                raise NotFoundError(taxpayer_not_found(taxpayer_tin))
            session.load_taxpayer_info(info)

        # Ids carry a seconds timestamp; suffix a counter when one is taken
        base_id = session.id
        suffix = 1
        while self.db.session_exists(session.id):
            suffix += 1
            session.id = f"{base_id}-{suffix}"

        self.db.save_session(session)
        logger.info(
            "Created filing session %s for %s (%s %s)",
            session.id,
            user_id,
            session.metadata.year,
            session.metadata.quarter.value,
        )
        return session

    def get_session(self, session_id: str) -> FilingSession:
        """Get filing session by ID.

        Raises:
            NotFoundError: If the session does not exist
        """
        session = self.db.get_session(session_id)
        if session is None:
            raise NotFoundError(session_not_found(session_id))
        return session

    def list_sessions(
        self,
        user_id: Optional[str] = None,
        year: Optional[int] = None,
        quarter: Optional[Union[QuarterPeriod, str]] = None,
    ) -> list[SessionRecord]:
        """List stored sessions, newest period first."""
        return self.db.list_sessions(
            user_id=user_id,
            year=year,
            quarter=QuarterPeriod(quarter) if quarter is not None else None,
        )

    def delete_session(self, session_id: str) -> None:
        """Delete a filing session.

        Raises:
            NotFoundError: If the session does not exist
        """
        if not self.db.session_exists(session_id):
            raise NotFoundError(session_not_found(session_id))
        self.db.delete_session(session_id)
        logger.info("Deleted filing session %s", session_id)

    def import_invoices(
        self, session_id: str, payloads: Iterable[InvoicePayload], replace: bool = False
    ) -> FilingSession:
        """Parse invoices and add them to a stored session.

        Every payload is parsed before the session is touched, and the batch
        is added (or swapped in, with ``replace``) as a whole.

        Args:
            session_id: Target session
            payloads: Invoice projections, JSON strings or DigitalInvoice objects
            replace: Replace the held invoices instead of adding to them

        Returns:
            The updated session

        Raises:
            NotFoundError: If the session does not exist
            MalformedInputError: If a payload cannot be parsed
            DuplicateKeyError: If an invoice number repeats
            PeriodMismatchError: If an invoice is outside the session period
        """
        session = self.get_session(session_id)
        invoices = [
            item if isinstance(item, DigitalInvoice) else DigitalInvoice.from_dict(item)
            for item in payloads
        ]
        if replace:
            session.replace_invoices(invoices)
        else:
            session.add_invoices(invoices)
        self.db.save_session(session)
        return session

    def remove_invoice(self, session_id: str, invoice_number: str) -> FilingSession:
        """Remove one invoice from a stored session."""
        session = self.get_session(session_id)
        session.remove_invoice(invoice_number)
        self.db.save_session(session)
        return session

    def clear_invoices(self, session_id: str) -> FilingSession:
        session = self.get_session(session_id)
        session.clear_invoices()
        self.db.save_session(session)
        return session

    def set_income_tax_type(
        self, session_id: str, tax_type: Union[IncomeTaxType, str]
    ) -> FilingSession:
        """Switch the income tax regime used by the session summary."""
        session = self.get_session(session_id)
        session.set_income_tax_type(tax_type)
        self.db.save_session(session)
        return session

    def set_period(
        self,
        session_id: str,
        quarter: Optional[Union[QuarterPeriod, str]] = None,
        year: Optional[int] = None,
    ) -> FilingSession:
        """Move a session to another quarter and/or year.

        Raises:
            PeriodMismatchError: If held invoices fall outside the new period
        """
        session = self.get_session(session_id)
        if year is not None and quarter is not None:
            # Check the target period as a whole so an intermediate step cannot fail
            candidate = FilingSession.from_dict(session.to_dict())
            candidate.clear_invoices()
            candidate.set_year(year).set_quarter(quarter)
            candidate.replace_invoices(session.invoices)
            session = candidate
        elif year is not None:
            session.set_year(year)
        elif quarter is not None:
            session.set_quarter(quarter)
        self.db.save_session(session)
        return session

    def get_summary(self, session_id: str) -> SalesSummaryReport:
        return self.get_session(session_id).summary

    def import_session(
        self, data: Union[str, dict[str, Any]], overwrite: bool = False
    ) -> FilingSession:
        """Store a session parsed from its projection.

        Raises:
            MalformedInputError: If the data cannot be parsed
            ConflictError: If the session ID is taken and overwrite is not set
        """
        session = FilingSession.from_dict(data)
        if not overwrite and self.db.session_exists(session.id):
            raise ConflictError(f"Filing session '{session.id}' already exists")
        self.db.save_session(session)
        return session
