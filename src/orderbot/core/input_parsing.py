"""
Parsing of free-text input typed into chat prompts.

Returns None when the text cannot be parsed; adapters re-prompt.
"""

import math
from datetime import date, datetime

DATE_FORMAT = "%d.%m.%Y"

# Typed to clear an optional field
CLEAR_MARKERS = ("-", "—")


def parse_date(text: str) -> date | None:
    """
    Parse a date string.

    Accepts DD.MM.YYYY, DD/MM/YYYY, or YYYY-MM-DD.
    """
    text = text.strip()
    for fmt in (DATE_FORMAT, "%d/%m/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def format_date(value: date | None) -> str:
    """Format a date as DD.MM.YYYY or '—' if None."""
    if value is None:
        return "—"
    return value.strftime(DATE_FORMAT)


def parse_quantity(text: str) -> int | None:
    """Whole number, spaces ignored (e.g. '1 000')."""
    try:
        return int(text.strip().replace(" ", ""))
    except ValueError:
        return None


def parse_money(text: str) -> float | None:
    """Decimal amount; ',' is accepted as the decimal separator."""
    cleaned = text.strip().replace(" ", "").replace(",", ".")
    try:
        value = float(cleaned)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def is_clear_marker(text: str) -> bool:
    return text.strip() in CLEAR_MARKERS
