"""
Date helpers for portfolio projects.

Project dates arrive as loose strings ("07/2025", "around 05/2024", "2019").
They are reduced to a sortable ``year * 100 + month`` integer.
"""

import functools
import re
import unicodedata
from datetime import date, datetime
from typing import Any, Iterable, List, Mapping, Optional, TypeVar

T = TypeVar("T")

_STOPWORDS = re.compile(r"\b(about|around|since|after|before)\b")
_NON_DATE = re.compile(r"[^0-9/-]")
_YEAR_FIRST = re.compile(r"^(\d{4})[-/]?(\d{2})?$")
_MONTH_FIRST = re.compile(r"^(\d{2})[-/]?(\d{4})$")


def _strip_accents(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_date_input(value: str) -> str:
    text = _strip_accents(value.lower())
    text = _STOPWORDS.sub("", text)
    text = _NON_DATE.sub("", text)
    text = re.sub(r"--+", "-", text)
    text = re.sub(r"/+", "/", text)
    return text.strip("-/").strip()


def parse_year_month(value: Optional[str]) -> Optional[int]:
    """
    Parse a loose project date into ``year * 100 + month``.

    Accepts YYYY, YYYY-MM, YYYY/MM, YYYYMM, MM/YYYY and MM-YYYY after
    normalisation. A bare year maps to January. Returns None when the value
    cannot be read or the month is outside 1..12.
    """
    if not value:
        return None

    normalized = normalize_date_input(value)
    if not normalized:
        return None

    match = _YEAR_FIRST.match(normalized)
    if match:
        year = int(match.group(1))
        month = int(match.group(2)) if match.group(2) else 1
        return year * 100 + month if 1 <= month <= 12 else None

    match = _MONTH_FIRST.match(normalized)
    if match:
        month, year = int(match.group(1)), int(match.group(2))
        if 1 <= month <= 12:
            return year * 100 + month

    return None


def _date_of(item: Any) -> Optional[str]:
    if item is None:
        return None
    if isinstance(item, Mapping):
        return item.get("date")
    return getattr(item, "date", None)


def compare_projects_by_date_desc(a: Any, b: Any) -> int:
    """Comparator: newest first, undated last, two undated items are equal."""
    a_value = parse_year_month(_date_of(a))
    b_value = parse_year_month(_date_of(b))

    if a_value is None and b_value is None:
        return 0
    if a_value is None:
        return 1
    if b_value is None:
        return -1
    return b_value - a_value


def sort_projects_by_date_desc(items: Iterable[T]) -> List[T]:
    return sorted(items, key=functools.cmp_to_key(compare_projects_by_date_desc))


def parse_portfolio_date(value: Optional[str]) -> Optional[date]:
    """``MM/YYYY`` to the first of that month, otherwise an ISO date, otherwise None."""
    if not value:
        return None

    parts = value.split("/")
    if len(parts) == 2:
        try:
            month, year = int(parts[0]), int(parts[1])
        except ValueError:
            month = year = 0
        if 1 <= month <= 12 and 1000 < year < 3000:
            return date(year, month, 1)

    try:
        return datetime.fromisoformat(value.strip()).date()
    except ValueError:
        return None
