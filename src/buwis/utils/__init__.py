"""Utility functions for buwis."""

from buwis.utils.date_parser import parse_timestamp, quarter_range, quarter_from_date
from buwis.utils.amount_parser import parse_amount, parse_rate

__all__ = ["parse_timestamp", "quarter_range", "quarter_from_date", "parse_amount", "parse_rate"]
