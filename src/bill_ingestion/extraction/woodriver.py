"""WoodRiver Energy (gas supply) invoice extractor.

Supply invoices cover one production month and list a block per delivery
point: ``Service Address:`` opens it, ``Sub-Total:`` closes it, and the
``Fixed (FOM)`` row carries the MMBtu volume and cost.
"""
from __future__ import annotations

import re

import structlog

from ..models.internal import DocumentText
from ..models.items import Vendor
from ..normalization.address import clean_address_raw
from ..normalization.dates import month_bounds
from .base import VendorExtraction, VendorExtractor
from .sections import Section, SectionScanner, find_line
from .tokens import rightmost_money, to_float

logger = structlog.get_logger(__name__)

PRODUCTION_MONTH_RE = re.compile(r"Production\s+Month\s*:\s*([A-Za-z]+)\s+(\d{4})", re.IGNORECASE)
PRODUCTION_MONTH_WORD_RE = re.compile(r"\bProduction\s+Month\b", re.IGNORECASE)
SERVICE_ADDRESS_RE = re.compile(r"^\s*Service\s+Address\s*:", re.IGNORECASE)
SUB_TOTAL_RE = re.compile(r"^\s*Sub-Total\s*:", re.IGNORECASE)
ADDRESS_CUT_RE = re.compile(r"\b(Acct/?\s*Meter|Pipeline|Utility)\b", re.IGNORECASE)
ACCT_METER_RE = re.compile(r"Acct/?\s*Meter\s*:?\s*(.+)$", re.IGNORECASE)
METER_TAIL_RE = re.compile(r"[A-Za-z0-9]{5,}$")
FIXED_FOM_RE = re.compile(r"Fixed\s*\(FOM\)", re.IGNORECASE)
QUANTITY_RE = re.compile(r"[0-9]{1,3}(?:,[0-9]{3})+(?:\.\d+)?|[0-9]+(?:\.[0-9]+)?")


def _first_quantity(line: str) -> float | None:
    """First quantity on the row, reading ``12,345.6`` as one number."""
    m = QUANTITY_RE.search(line)
    return to_float(m.group(0)) if m else None


class WoodRiverExtractor(VendorExtractor):
    vendor = Vendor.WOODRIVER
    signatures = (
        re.compile(r"Wood\s*River", re.IGNORECASE),
    )

    def matches_signature(self, text: str) -> bool:
        if super().matches_signature(text):
            return True
        return bool(
            re.search(r"\bService\s+Address\s*:", text, re.IGNORECASE)
            and re.search(r"Acct/?\s*Meter\s*:?", text, re.IGNORECASE)
            and FIXED_FOM_RE.search(text)
        )

    def extract(self, doc: DocumentText) -> VendorExtraction:
        text = doc.text
        hints: list[str] = []

        period_start = period_end = None
        pm = PRODUCTION_MONTH_RE.search(text)
        if pm:
            try:
                first, last = month_bounds(pm.group(1), int(pm.group(2)))
                period_start, period_end = first.isoformat(), last.isoformat()
            except ValueError:
                hints.append(f"woodriver: unknown production month {pm.group(1)!r}")
        else:
            hints.append("woodriver: production month not found")

        sections = SectionScanner(SERVICE_ADDRESS_RE, SUB_TOTAL_RE).scan(doc.lines)
        items = [self._extract_section(doc, sec, period_start, period_end) for sec in sections]

        logger.info("woodriver_sections_parsed", source_file=doc.source_file, count=len(items))
        return VendorExtraction(
            vendor=self.vendor,
            items=items,
            layout_bonus=1 if PRODUCTION_MONTH_WORD_RE.search(text) else 0,
            hints=hints + [f"woodriver sections parsed: {len(items)}"],
        )

    def _extract_section(self, doc: DocumentText, sec: Section, period_start, period_end):
        head = sec.lines[0]
        after = head.split(":", 1)[1] if ":" in head else ""
        cut = ADDRESS_CUT_RE.search(after)
        service_address = clean_address_raw(after[:cut.start()] if cut else after) or None

        meter_no = None
        acct = ACCT_METER_RE.search(head)
        if acct is None:
            idx = find_line(sec.lines, ACCT_METER_RE)
            acct = ACCT_METER_RE.search(sec.lines[idx]) if idx >= 0 else None
        if acct:
            tail = acct.group(1)
            right = (tail.split("/")[-1] or tail).strip()
            m = METER_TAIL_RE.search(right)
            meter_no = m.group(0).upper() if m else None

        usage_mmbtu = None
        section_total_cost = None
        fom_idx = find_line(sec.lines, FIXED_FOM_RE)
        if fom_idx >= 0:
            usage_mmbtu = _first_quantity(sec.lines[fom_idx])
            section_total_cost = rightmost_money(sec.lines[fom_idx])
        if section_total_cost is None and SUB_TOTAL_RE.search(sec.lines[-1]):
            section_total_cost = rightmost_money(sec.lines[-1])

        hints = []
        if meter_no is None:
            hints.append("woodriver: Acct/Meter not found")
        if fom_idx < 0:
            hints.append("woodriver: Fixed (FOM) row not found")

        return self._item(
            doc,
            service_address=service_address,
            meter_no=meter_no,
            period_start=period_start,
            period_end=period_end,
            usage_mmbtu=usage_mmbtu,
            section_total_cost=section_total_cost,
            hints=hints,
        )
