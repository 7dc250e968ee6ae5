"""Shared parsing helpers used by services and blueprints."""

import re
from datetime import date, datetime

from projecthub.core.exceptions import ValidationError


def parse_date(value):
    """Parse a date string (ISO or DD.MM.YYYY) to a date object.

    Returns None for empty or invalid input. Supports:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SS (→ .date())
    - DD.MM.YYYY
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except (ValueError, TypeError):
        pass
    try:
        return datetime.fromisoformat(str(value)).date()
    except (ValueError, TypeError):
        pass
    try:
        return datetime.strptime(str(value), "%d.%m.%Y").date()
    except (ValueError, TypeError):
        return None


_WORD_RE = re.compile(r"\S+")


def word_count(text) -> int:
    return len(_WORD_RE.findall(text or ""))


def is_under_word_count(text, limit: int) -> bool:
    """True if ``text`` has at most ``limit`` whitespace-separated words."""
    return word_count(text) <= limit


def parse_int_list(values, field):
    """Coerce a JSON list of ids to ints, or raise ValidationError naming ``field``."""
    if not isinstance(values, list):
        raise ValidationError(f"{field} must be a list")
    try:
        return [int(v) for v in values]
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must contain only integer ids") from None
