"""Shared domain error messages and error types."""


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class CurrencyMismatchError(DomainError):
    """Arithmetic attempted between amounts of different currencies."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class DuplicateKeyError(ConflictError):
    """Invoice number already present in a batch or filing session."""


class PeriodMismatchError(DomainError):
    """Invoice issue date falls outside the filing period."""


class MalformedInputError(DomainError):
    """Serialized data is malformed or incomplete."""


def currency_mismatch(left: str, right: str) -> str:
    """Return message for arithmetic across currencies."""
    return f"Currency mismatch: {left} vs {right}"


def missing_property(name: str) -> str:
    """Return message for a missing top-level property in serialized data."""
    return f"Missing required property: '{name}'"


def required_string(label: str) -> str:
    """Return message for an empty required string field."""
    return f"{label} must be a valid non-empty string."


def invalid_year(year: object) -> str:
    """Return message for a year outside the supported range."""
    return f"Invalid year: {year}. Year must be between 1800 and 3000."


def duplicate_invoice(invoice_number: str) -> str:
    """Return message for an invoice number already held by a session."""
    return f"Invoice {invoice_number} already exists in this session"


def duplicate_invoice_in_batch(invoice_number: str) -> str:
    """Return message for an invoice number repeated within a batch."""
    return f"Duplicate invoice number detected in batch: {invoice_number}"


def invoice_not_fileable(invoice_number: str, year: int, quarter: int) -> str:
    """Return message for an invoice dated outside the filing period."""
    return (
        f"Invoice {invoice_number} is not fileable for this period. "
        f"This invoice is for {year} Q{quarter}."
    )


def invoice_not_found(invoice_number: str) -> str:
    """Return message for an invoice missing from a session."""
    return f"Invoice {invoice_number} not found in this session."


def session_not_found(session_id: str) -> str:
    """Return message for a missing stored filing session."""
    return f"Filing session '{session_id}' not found"


def taxpayer_not_found(tin: str) -> str:
    """Return message for a missing taxpayer profile."""
    return f"Taxpayer with TIN '{tin}' not found"
