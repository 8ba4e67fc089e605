"""Numeric token helpers shared by the vendor extractors."""
from __future__ import annotations
import re

# Currency amount with exactly two decimals, thousands separators allowed.
MONEY_RE = re.compile(r"\$?\s*([0-9][\d,]*\.\d{2})(?!\d)")
DOLLAR_MONEY_RE = re.compile(r"\$\s*([0-9][\d,]*\.\d{2})(?!\d)")
# Plain quantity; no thousands separators.
PLAIN_NUMBER_RE = re.compile(r"([0-9]+(?:\.[0-9]+)?)")
# Quantity that may carry thousands separators.
GROUPED_NUMBER_RE = re.compile(r"([0-9][\d,]*(?:\.\d+)?)")

# Private-use glyphs some bill fonts emit for "$" and icons.
PRIVATE_USE_RE = re.compile("[\ue000-\uf8ff]")
ODD_SPACE_RE = re.compile("[\u00a0\u2000-\u200b\ue000-\uf8ff]")


def to_float(token: str) -> float | None:
    try:
        return float(token.replace(",", ""))
    except ValueError:
        return None


def _collect(pattern: re.Pattern, text: str) -> list[float]:
    values = (to_float(m.group(1)) for m in pattern.finditer(text or ""))
    return [v for v in values if v is not None]


def money_values(text: str) -> list[float]:
    """All currency amounts in *text*, left to right."""
    return _collect(MONEY_RE, text)


def dollar_values(text: str) -> list[float]:
    """Amounts explicitly prefixed with ``$``."""
    return _collect(DOLLAR_MONEY_RE, text)


def rightmost_money(text: str) -> float | None:
    values = money_values(text)
    return values[-1] if values else None


def plain_numbers(text: str) -> list[float]:
    return _collect(PLAIN_NUMBER_RE, text)


def grouped_numbers(text: str) -> list[float]:
    return _collect(GROUPED_NUMBER_RE, text)
