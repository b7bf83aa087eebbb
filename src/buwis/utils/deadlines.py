"""BIR filing deadline calendar.

All functions return the deadline as a 'YYYY-MM-DD' string.
"""

from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from buwis.domain.entities import QuarterPeriod
from buwis.domain.errors import ValidationError
from buwis.utils.date_parser import current_year, parse_quarter, validate_year

QUARTERLY_RETURN_GRACE_DAYS = 25

_QUARTERLY_INCOME_TAX = {
    QuarterPeriod.Q1: (5, 15),
    QuarterPeriod.Q2: (8, 15),
    QuarterPeriod.Q3: (11, 15),
}


def quarter_end(quarter: QuarterPeriod, year: int) -> date:
    """Return the last calendar day of a quarter."""
    first_month = (parse_quarter(quarter).number - 1) * 3 + 1
    return date(year, first_month, 1) + relativedelta(months=3) - timedelta(days=1)


def percentage_tax_deadline(quarter: QuarterPeriod, year: Optional[int] = None) -> str:
    """Quarterly percentage tax return: 25 days after the quarter ends."""
    year = validate_year(current_year() if year is None else year)
    deadline = quarter_end(quarter, year) + timedelta(days=QUARTERLY_RETURN_GRACE_DAYS)
    return deadline.isoformat()


def vat_deadline(quarter: QuarterPeriod, year: Optional[int] = None) -> str:
    """Quarterly VAT return: 25 days after the quarter ends."""
    return percentage_tax_deadline(quarter, year)


def income_tax_deadline(quarter: QuarterPeriod, year: Optional[int] = None) -> str:
    """Quarterly income tax return, or the annual return for Q4 (April 15 next year)."""
    year = validate_year(current_year() if year is None else year)
    quarter = parse_quarter(quarter)
    if quarter == QuarterPeriod.Q4:
        return date(year + 1, 4, 15).isoformat()
    month, day = _QUARTERLY_INCOME_TAX[quarter]
    return date(year, month, day).isoformat()


def withholding_tax_monthly_deadline(month: Optional[int] = None, year: Optional[int] = None) -> str:
    """Monthly withholding remittance for ``month`` (1-12).

    Due on the 10th of the following month; December is due January 15.
    """
    year = validate_year(current_year() if year is None else year)
    if month is None:
        month = date.today().month
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError(f"Invalid month: {month}. Month must be between 1 and 12.")
    if month == 12:
        return date(year + 1, 1, 15).isoformat()
    return date(year, month + 1, 10).isoformat()


def withholding_tax_annual_deadline(year: Optional[int] = None) -> str:
    """Annual withholding information return: January 31 of the next year."""
    year = validate_year(current_year() if year is None else year)
    return date(year + 1, 1, 31).isoformat()


def quarter_deadlines(quarter: QuarterPeriod, year: Optional[int] = None) -> dict[str, str]:
    """All quarterly deadlines for a filing period, keyed by return type."""
    return {
        "vat": vat_deadline(quarter, year),
        "percentage_tax": percentage_tax_deadline(quarter, year),
        "income_tax": income_tax_deadline(quarter, year),
    }
