"""Billing-period date parsing for US utility bills."""
from __future__ import annotations
import calendar
from datetime import date
import re

# (pattern, format label, (year, month, day) group indexes)
DATE_PATTERNS = [
    (re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$'), 'YYYY-MM-DD', (1, 2, 3)),
    (re.compile(r'^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$'), 'MM/DD/YYYY', (3, 1, 2)),
    (re.compile(r'^(\d{1,2})[-/](\d{1,2})[-/](\d{2})$'), 'MM/DD/YY', (3, 1, 2)),
]

MONTHS = {name.lower(): i for i, name in enumerate(calendar.month_name) if name}
MONTHS.update({name.lower(): i for i, name in enumerate(calendar.month_abbr) if name})


def parse_bill_date(raw_string: str) -> date:
    """Parse an ISO, ``MM-DD-YY``, ``MM/DD/YY`` or ``MM/DD/YYYY`` date.

    Two-digit years are taken as 20YY. Raises ``ValueError`` when the text
    matches no known layout or names an impossible calendar day.
    """
    s = (raw_string or "").strip()
    for pattern, _label, (yi, mi, di) in DATE_PATTERNS:
        m = pattern.match(s)
        if not m:
            continue
        year = int(m[yi])
        if year < 100:
            year += 2000
        return date(year, int(m[mi]), int(m[di]))
    raise ValueError(f"Cannot parse date: {raw_string!r}")


def to_iso_date(raw_string: str | None) -> date | None:
    """Lenient variant of :func:`parse_bill_date` returning ``None`` on failure."""
    if not raw_string:
        return None
    try:
        return parse_bill_date(raw_string)
    except ValueError:
        return None


def is_valid_period_date(raw_string: str | None) -> bool:
    return to_iso_date(raw_string) is not None


def month_bounds(month_name: str, year: int) -> tuple[date, date]:
    """First and last day of a named month, e.g. ``("January", 2025)``."""
    month = MONTHS.get(month_name.strip().lower())
    if month is None:
        raise ValueError(f"Unknown month: {month_name!r}")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)
