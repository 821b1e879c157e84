"""Date extraction helpers."""
from __future__ import annotations

import datetime as dt
import re
from typing import Optional, Sequence

DAY_FIRST = re.compile(r"(?<!\d)(\d{1,2})[/-](\d{1,2})[/-](\d{2,4})(?!\d)")
YEAR_FIRST = re.compile(r"(?<!\d)(\d{4})[/-](\d{1,2})[/-](\d{1,2})(?!\d)")

DATE_PATTERNS = [DAY_FIRST, YEAR_FIRST]


def _expand_year(raw: str) -> Optional[int]:
    year = int(raw)
    if len(raw) == 2:
        return year + 2000 if year < 50 else year + 1900
    if len(raw) == 4:
        return year
    return None


def _normalise(year: Optional[int], month: int, day: int) -> Optional[dt.date]:
    if year is None:
        return None
    try:
        return dt.date(year, month, day)
    except ValueError:
        return None


def _parse_match(pattern: re.Pattern, match: re.Match) -> Optional[dt.date]:
    g1, g2, g3 = match.groups()
    if pattern is DAY_FIRST:
        # Positional: the first group is always the day, no locale guessing.
        return _normalise(_expand_year(g3), int(g2), int(g1))
    return _normalise(int(g1), int(g2), int(g3))


def search_date(line: str) -> Optional[dt.date]:
    """Return the first valid calendar date found on ``line``."""

    for pattern in DATE_PATTERNS:
        match = pattern.search(line)
        if not match:
            continue
        value = _parse_match(pattern, match)
        if value is not None:
            return value
    return None


def extract_date(lines: Sequence[str], today: Optional[dt.date] = None) -> dt.date:
    for line in lines:
        value = search_date(line)
        if value is not None:
            return value
    return today or dt.date.today()


__all__ = ["DATE_PATTERNS", "extract_date", "search_date"]
