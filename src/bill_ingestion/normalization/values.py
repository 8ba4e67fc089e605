"""Meter id, numeric and usage-unit normalization."""
from __future__ import annotations
import re
from dataclasses import dataclass

from ..models.items import ExtractedItem, Utility

CCF_PER_MCF = 10.0
MMBTU_PER_THERM = 0.1
DEFAULT_HEAT_CONTENT = 1.036  # MMBtu per MCF

_WS_RE = re.compile(r"\s+")


def normalize_meter(raw: str | None) -> str:
    """Strip all whitespace and uppercase: ``" ab 12 3 "`` -> ``"AB123"``."""
    if not raw:
        return ""
    return _WS_RE.sub("", raw).upper()


def parse_amount(raw: str | None) -> float | None:
    """Parse a currency or quantity token such as ``$1,234.56``.

    Parenthesised amounts and a trailing minus sign are read as negative.
    Returns ``None`` when no number is present.
    """
    if raw is None:
        return None
    s = raw.strip()
    if not s:
        return None
    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    if s.endswith("-") or s.endswith("CR"):
        negative = True
        s = s.rstrip("-").removesuffix("CR")
    if s.startswith("-"):
        negative = True
        s = s[1:]
    s = s.replace("$", "").replace(",", "").strip()
    if not re.fullmatch(r"\d+(\.\d+)?|\.\d+", s):
        return None
    value = float(s)
    return -value if negative else value


def rescale_mcf(value: float | None) -> float | None:
    """Undo the thousands-scaled MCF readings seen on some gas templates.

    An integer reading of 1000 or more ending in ``000`` is divided by 1000;
    every reading is rounded to 3 decimals.
    """
    if value is None:
        return None
    if value >= 1000 and float(value).is_integer() and int(value) % 1000 == 0:
        value = value / 1000
    return round(value, 3)


def normalize_item(item: ExtractedItem) -> ExtractedItem:
    """Return a copy with the meter id canonicalised and MCF rescaled.

    Applied exactly once, before merging. Addresses are left as extracted
    (cleaned) text; matching keys are derived at resolution time.
    """
    return item.model_copy(update={
        "meter_no": normalize_meter(item.meter_no) or None,
        "usage_mcf": rescale_mcf(item.usage_mcf),
        "usage_kwh": round(item.usage_kwh, 3) if item.usage_kwh is not None else None,
        "usage_mmbtu": round(item.usage_mmbtu, 3) if item.usage_mmbtu is not None else None,
    })


@dataclass
class UsageUnits:
    """Unit fields written to a usage reading."""

    usage_kwh: float | None = None
    usage_mcf: float | None = None
    usage_mmbtu: float | None = None
    therms: float | None = None

    def any_present(self) -> bool:
        return any(v is not None for v in (self.usage_kwh, self.usage_mcf, self.usage_mmbtu, self.therms))


def _r3(value: float | None) -> float | None:
    return round(value, 3) if value is not None else None


def derive_usage(
    utility: Utility,
    *,
    kwh: float | None = None,
    mcf: float | None = None,
    mmbtu: float | None = None,
    ccf: float | None = None,
    therms: float | None = None,
    usage: float | None = None,
    heat_content: float | None = None,
) -> UsageUnits:
    """Work out the unit fields stored for a bill.

    Electric bills keep kWh only; a generic ``usage`` value is read as kWh.
    Gas bills store MCF and MMBtu, deriving whichever is missing:
    CCF/10 gives MCF, therms x 0.1 gives MMBtu, MCF x heat content gives
    MMBtu and MMBtu / heat content gives MCF. A generic ``usage`` value is
    read as MCF.
    """
    if utility == Utility.ELECTRIC:
        value = kwh if kwh is not None else usage
        return UsageUnits(usage_kwh=_r3(value))

    hc = heat_content if heat_content and heat_content > 0 else DEFAULT_HEAT_CONTENT
    if mcf is None and ccf is not None:
        mcf = ccf / CCF_PER_MCF
    if mcf is None and usage is not None:
        mcf = usage
    if mmbtu is None and therms is not None:
        mmbtu = therms * MMBTU_PER_THERM
    if mmbtu is None and mcf is not None:
        mmbtu = mcf * hc
    if mcf is None and mmbtu is not None:
        mcf = mmbtu / hc
    return UsageUnits(usage_mcf=_r3(mcf), usage_mmbtu=_r3(mmbtu), therms=_r3(therms))
