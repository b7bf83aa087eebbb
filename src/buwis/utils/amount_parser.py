"""Amount and rate parsing utilities."""

from decimal import Decimal, InvalidOperation
import re


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a Decimal.

    Handles various formats:
    - "123.45"
    - "₱123.45"
    - "PHP 1,234.56"
    - "-123.45"
    - "(123.45)" (negative in parentheses)

    Args:
        amount_str: Amount string

    Returns:
        Decimal amount

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if not amount_str or not amount_str.strip():
        raise ValueError("Empty amount string")

    amount_str = amount_str.strip()

    # Handle parentheses notation (negative)
    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    # Remove currency symbols and codes
    amount_str = re.sub(r"[₱$€£¥]|PHP", "", amount_str, flags=re.IGNORECASE)
    amount_str = amount_str.replace(",", "").strip()

    try:
        amount = Decimal(amount_str)
    except InvalidOperation as e:
        raise ValueError(f"Could not parse amount '{amount_str}': {e}")
    if not amount.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount


def parse_rate(rate_str: str) -> Decimal:
    """Parse a tax rate given as a fraction ("0.12") or a percentage ("12%").

    Raises:
        ValueError: If the rate cannot be parsed
    """
    if not rate_str or not rate_str.strip():
        raise ValueError("Empty rate string")

    rate_str = rate_str.strip()
    if rate_str.endswith("%"):
        return parse_amount(rate_str[:-1]) / 100
    return parse_amount(rate_str)
