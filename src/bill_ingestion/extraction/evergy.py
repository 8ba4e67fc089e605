"""Evergy (electric utility) bill extractor.

Evergy bills carry a page-1 banner (service location, amount to be drafted,
billing period) and a ``CURRENT CHARGES`` grid on pages 2-3 with one column
per rate code. Each column has its own meter, period, kWh and demand charge.
One item is produced per document, taken from the preferred column.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field

import structlog

from ..models.internal import DocumentText
from ..models.items import Vendor
from ..normalization.address import clean_address_raw
from .base import VendorExtraction, VendorExtractor
from .sections import SectionScanner, find_line
from .tokens import (
    ODD_SPACE_RE,
    PRIVATE_USE_RE,
    grouped_numbers,
    money_values,
    to_float,
)

logger = structlog.get_logger(__name__)

SERVICE_LOCATION_RE = re.compile(r"Service\s+location:\s*(.+)$", re.IGNORECASE | re.MULTILINE)
TOTAL_RE = re.compile(
    r"Total\s+(?:to\s+be\s+drafted|due\s+by)[\s\S]{0,120}?\$?\s*([\d][\d,]*\.\d{2})",
    re.IGNORECASE,
)
CURRENT_CHARGES_RE = re.compile(r"CURRENT\s+CHARGES\b", re.IGNORECASE)
BLOCK_END_RE = re.compile(
    r"^\s*RATE CODES|^\s*Taxes\b|Page\s+\d+\s+of\s+\d+|^\s*Summary\b",
    re.IGNORECASE,
)
RATE_CODE_LINE_RE = re.compile(r"Rate\s*code(?:\s*\([^\)]+\))?\s*:?\s*([^\n]+)", re.IGNORECASE)
RATE_CODE_TOKEN_RE = re.compile(r"\b[A-Z0-9]{3,}\b")
RATE_CODE_SPLIT_RE = re.compile(r"\bRate\s*code\b", re.IGNORECASE)
METER_WORD_RE = re.compile(r"\bMeter\b", re.IGNORECASE)
METER_TOKEN_RE = re.compile(r"^[0-9][0-9\-]{5,}$")
KWH_RE = re.compile(r"k\W*w\W*h", re.IGNORECASE)
ENERGY_USE_KWH_RE = re.compile(r"Energy\s+use\b.*\bkWh\b", re.IGNORECASE)
ENERGY_USE_NEAR_RE = re.compile(r"Energy\s+use[\s\S]{0,80}?([0-9][\d,]*(?:\.\d+)?)", re.IGNORECASE)
PRESENT_READ_RE = re.compile(r"Present\s+meter\s+read[^\n]*?([0-9][0-9,]*(?:\.\d+)?)", re.IGNORECASE)
PREVIOUS_READ_RE = re.compile(r"Previous\s+meter\s+read[^\n]*?([0-9][0-9,]*(?:\.\d+)?)", re.IGNORECASE)
MULTIPLIER_RE = re.compile(r"Billing\s+multiplier[^\n]*?([0-9][0-9,]*(?:\.\d+)?)", re.IGNORECASE)
DATE = r"\d{1,2}/\d{1,2}/\d{2,4}"
PERIOD_PAIR_RE = re.compile(rf"({DATE})\s*[–—-]\s*({DATE})")
BILLING_PERIOD_RE = re.compile(r"\bBilling\s+period\b", re.IGNORECASE)
BANNER_PERIOD_RE = re.compile(rf"\bBilling\s+period\s*:\s*({DATE})\s*[–—-]\s*({DATE})", re.IGNORECASE)
CHARGES_RE = re.compile(r"^Charges\b", re.IGNORECASE)
DEMAND_RE = re.compile(r"^Demand\b", re.IGNORECASE)
KW_RE = re.compile(r"\bk\W*w\b", re.IGNORECASE)
HEADER_METER_RES = (
    re.compile(r"\bMeter\s*#\s*[:\-]?\s*([A-Za-z0-9\-]{5,})\b", re.IGNORECASE),
    re.compile(r"\bMeter\s+Number\s*[:\-]?\s*([A-Za-z0-9\-]{5,})\b", re.IGNORECASE),
    re.compile(r"\bService\s+ID\s*[:\-]?\s*([A-Za-z0-9\-]{5,})\b", re.IGNORECASE),
    re.compile(r"\bMeter\s*#?\s*[:\-]?\s*([0-9][A-Za-z0-9\-]{4,})\b", re.IGNORECASE),
)
PREFERRED_RATE_CODE = "WSSES"


@dataclass
class ChargeColumns:
    """Column-aligned values from the CURRENT CHARGES grid."""

    rate_codes: list[str]
    meters: list[str]
    periods: list[tuple[str | None, str | None]]
    kwh: list[float | None]
    demand_cost: list[float | None]
    hints: list[str] = field(default_factory=list)

    def pick_index(self) -> int:
        """Prefer the WSSES column, else the first column with kWh, else 0."""
        for i, code in enumerate(self.rate_codes):
            if PREFERRED_RATE_CODE in code.upper():
                return i
        for i, value in enumerate(self.kwh):
            if (value or 0) > 0:
                return i
        return 0


def _normalize_glyphs(text: str) -> str:
    return re.sub(r"[ \t]+", " ", ODD_SPACE_RE.sub(" ", text))


def _banner_period(page1: str, page2: str) -> tuple[str, str] | None:
    m = BANNER_PERIOD_RE.search(page1) or BANNER_PERIOD_RE.search(page2)
    return (m.group(1), m.group(2)) if m else None


class EvergyExtractor(VendorExtractor):
    vendor = Vendor.EVERGY
    signatures = (
        re.compile(r"Evergy", re.IGNORECASE),
        re.compile(r"Service location:", re.IGNORECASE),
        re.compile(r"Total\s+to\s+be\s+drafted", re.IGNORECASE),
    )

    def extract(self, doc: DocumentText) -> VendorExtraction:
        text = doc.text
        page1 = doc.pages_text(1)
        page2 = doc.pages_text(2)
        hints: list[str] = []

        svc = SERVICE_LOCATION_RE.search(page1) or SERVICE_LOCATION_RE.search(text)
        service_address = clean_address_raw(svc.group(1)) if svc else None
        if not service_address:
            hints.append("evergy: service location not found")

        total_cost = None
        m = TOTAL_RE.search(_normalize_glyphs(PRIVATE_USE_RE.sub("$", text)))
        if m:
            total_cost = to_float(m.group(1))
        else:
            hints.append("evergy: total to be drafted not found")

        period_start = period_end = None
        meter_no = None
        usage_kwh = None
        demand_cost = None

        cols = self._parse_columns(doc)
        if cols is not None:
            hints.extend(cols.hints)
            i = cols.pick_index()
            meter_no = cols.meters[i] or None
            usage_kwh = cols.kwh[i]
            demand_cost = cols.demand_cost[i]
            period_start, period_end = cols.periods[i]
            hints.append(
                f"evergy: pick idx={i} rate={cols.rate_codes[i]} meter={meter_no or '?'} "
                f"kWh={usage_kwh if usage_kwh is not None else '?'}"
            )
        else:
            hints.append("evergy: CURRENT CHARGES block not found")

        if not period_start or not period_end:
            banner = _banner_period(page1, page2)
            if banner:
                period_start, period_end = banner

        item = self._item(
            doc,
            service_address=service_address or None,
            meter_no=meter_no,
            period_start=period_start,
            period_end=period_end,
            usage_kwh=usage_kwh,
            total_cost=total_cost,
            demand_cost=demand_cost,
            hints=hints,
        )
        logger.debug("evergy_extracted", source_file=doc.source_file, meter_no=meter_no, total_cost=total_cost)
        return VendorExtraction(vendor=self.vendor, items=[item], document_total=total_cost, hints=list(hints))

    def _parse_columns(self, doc: DocumentText) -> ChargeColumns | None:
        p23_lines = doc.page(2) + doc.page(3)
        scanner = SectionScanner(CURRENT_CHARGES_RE, BLOCK_END_RE, include_closer=False, max_sections=1)
        sections = scanner.scan(p23_lines)
        if not sections:
            return None
        lines = [ln.strip() for ln in sections[0].lines if ln.strip()]
        block = "\n".join(lines)

        rate_line = RATE_CODE_LINE_RE.search("\n".join(p23_lines))
        rate_codes = RATE_CODE_TOKEN_RE.findall(rate_line.group(1).strip()) if rate_line else []

        # Only the part of the meter row left of "Rate code", so a rate token
        # is never read as a meter number.
        meter_row = next((ln for ln in lines if METER_WORD_RE.search(ln)), "")
        meter_left = RATE_CODE_SPLIT_RE.split(meter_row)[0]
        grid_meters = [
            tok for tok in (re.sub(r"[^\w-]", "", t) for t in meter_left.split())
            if tok and METER_TOKEN_RE.match(tok)
        ]

        kwh_values = self._kwh_values(lines, block)

        n = max(len(rate_codes), len(grid_meters), len(kwh_values), 1)
        if not rate_codes:
            rate_codes.append("COL1")
        while len(rate_codes) < n:
            rate_codes.append(f"COL{len(rate_codes) + 1}")
        rate_codes = rate_codes[:n]

        if grid_meters:
            meters = grid_meters[-n:]
            meters += [""] * (n - len(meters))
        else:
            meters = [self._header_meter(doc) or ""] * n

        periods: list[tuple[str | None, str | None]] = [(None, None)] * n
        period_row = next((ln for ln in lines if BILLING_PERIOD_RE.search(ln)), "")
        pairs = PERIOD_PAIR_RE.findall(period_row)
        if pairs:
            last = pairs[-n:]
            offset = n - len(last)
            periods = [last[i - offset] if i >= offset else (None, None) for i in range(n)]
        else:
            banner = _banner_period(doc.pages_text(1), doc.pages_text(2))
            if banner:
                periods = [banner] * n

        kwh = [kwh_values[i] if i < len(kwh_values) else None for i in range(n)]

        charges_idx = find_line(lines, CHARGES_RE)
        charge_lines = lines[charges_idx:] if charges_idx >= 0 else lines
        demand_row = next((ln for ln in charge_lines if DEMAND_RE.search(ln) and not KW_RE.search(ln)), "")
        demand_amounts = money_values(demand_row)
        demand_cost: list[float | None] = [None] * n
        if demand_amounts:
            demand_cost[0] = demand_amounts[0]

        hint = (
            f"evergy: N={n} rates=[{', '.join(rate_codes)}] meters=[{'|'.join(meters)}] "
            f"kwh=[{'|'.join('null' if v is None else str(v) for v in kwh)}]"
        )
        return ChargeColumns(rate_codes, meters, periods, kwh, demand_cost, hints=[hint])

    def _kwh_values(self, lines: list[str], block: str) -> list[float]:
        normalized = [KWH_RE.sub("kWh", _normalize_glyphs(ln)).strip() for ln in lines]
        idx = find_line(normalized, ENERGY_USE_KWH_RE)
        if idx >= 0:
            nums = grouped_numbers(lines[idx])
            if nums:
                return [max(nums)]

        m = ENERGY_USE_NEAR_RE.search(ODD_SPACE_RE.sub(" ", block))
        if m:
            value = to_float(m.group(1))
            if value is not None:
                return [value]

        present = PRESENT_READ_RE.search(block)
        previous = PREVIOUS_READ_RE.search(block)
        if present and previous:
            multiplier = MULTIPLIER_RE.search(block)
            factor = to_float(multiplier.group(1)) if multiplier else 1.0
            diff = (to_float(present.group(1)) or 0.0) - (to_float(previous.group(1)) or 0.0)
            return [max(0.0, diff * (factor or 1.0))]
        return []

    def _header_meter(self, doc: DocumentText) -> str | None:
        text = _normalize_glyphs(doc.pages_text(1, 2, 3))
        for pattern in HEADER_METER_RES:
            m = pattern.search(text)
            if m:
                return re.sub(r"[^\w-]", "", m.group(1))
        return None
