"""Tests for amount and rate parsing."""

import pytest
from decimal import Decimal

from buwis.utils.amount_parser import parse_amount, parse_rate


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", "123.45"),
        ("₱123.45", "123.45"),
        ("PHP 1,234.56", "1234.56"),
        ("php 10", "10"),
        ("-123.45", "-123.45"),
        ("(50.00)", "-50.00"),
    ],
)
def test_parse_amount(text, expected):
    """Test the supported amount formats."""
    assert parse_amount(text) == Decimal(expected)


@pytest.mark.parametrize("text", ["", "  ", "abc", "NaN", "Infinity"])
def test_parse_amount_invalid(text):
    """Test that unparsable amounts raise ValueError."""
    with pytest.raises(ValueError):
        parse_amount(text)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0.12", "0.12"),
        ("12%", "0.12"),
        ("3 %", "0.03"),
        ("0", "0"),
    ],
)
def test_parse_rate(text, expected):
    """Test fractions and percentages."""
    assert parse_rate(text) == Decimal(expected)


def test_parse_rate_empty():
    """Test that an empty rate is rejected."""
    with pytest.raises(ValueError):
        parse_rate(" ")
