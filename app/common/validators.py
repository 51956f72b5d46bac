"""
Validators and normalizers for inventory and billing input
"""
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional


PART_NUMBER_PATTERN = re.compile(r'^[A-Za-z0-9][A-Za-z0-9\-\./ ]*$')


def normalize_part_number(part_number: str) -> str:
    """
    Trim a part number and collapse inner whitespace.
    Case is preserved; shops write "bg-2002" and "BG-2002" interchangeably
    and search is case-insensitive anyway.
    """
    return re.sub(r'\s+', ' ', part_number.strip())


def validate_part_number(part_number: str) -> bool:
    """
    Accepts letters, digits, dashes, dots, slashes and spaces,
    starting with a letter or a digit.
    """
    cleaned = normalize_part_number(part_number)
    if not cleaned or len(cleaned) > 64:
        return False
    return PART_NUMBER_PATTERN.match(cleaned) is not None


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Optional text fields are stored as NULL when left empty."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def quantize_money(amount: Decimal, places: int = 2) -> Decimal:
    """Round a money amount half-up to the given number of decimal places."""
    exponent = Decimal(1).scaleb(-places)
    return Decimal(amount).quantize(exponent, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, places: int = 2) -> str:
    """Format money with exactly `places` decimals, e.g. 85 -> '85.00'."""
    return f"{quantize_money(amount, places):.{places}f}"
