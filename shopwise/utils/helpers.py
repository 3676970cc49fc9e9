"""
Helper utilities
"""
import math
from datetime import date, datetime
from typing import Any, Optional


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Safely divide two numbers"""
    try:
        return numerator / denominator if denominator != 0 else default
    except (TypeError, ZeroDivisionError):
        return default


def to_number(value: Any, default: float = 0.0) -> float:
    """Coerce a row value to float; None, blanks, junk, NaN and infinities become the default."""
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number if math.isfinite(number) else default


def format_number(amount: float) -> str:
    """
    Group thousands and keep up to three decimals, trimming trailing zeros.

    1500 -> "1,500", 1234.5 -> "1,234.5", 0.1234 -> "0.123"
    """
    text = f"{round(float(amount), 3):,.3f}".rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text


def format_currency(amount: float, symbol: str = "₹") -> str:
    """Format amount as currency"""
    return f"{symbol}{format_number(amount)}"


def parse_datetime(value: Any) -> Optional[datetime]:
    """Accept datetime, date or ISO-8601 strings (trailing Z allowed)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None
