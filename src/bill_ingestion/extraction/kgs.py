"""Kansas Gas Service (gas distribution) bill extractor.

Summary bills list one row per meter (``METER MM-DD-YY MM-DD-YY``) and repeat
a per-meter charge box on page 2, each box starting at a ``Per MCF`` line.
"""
from __future__ import annotations

import re

import structlog

from ..models.internal import DocumentText
from ..models.items import Vendor
from ..normalization.address import clean_address_raw
from .base import VendorExtraction, VendorExtractor
from .sections import Section, SectionScanner, find_line, find_line_upward
from .tokens import dollar_values, money_values, plain_numbers, to_float

logger = structlog.get_logger(__name__)

ANCHOR_RE = re.compile(r"([A-Z0-9]{8,14})\s+(\d{2}-\d{2}-\d{2})\s+(\d{2}-\d{2}-\d{2})", re.IGNORECASE)
PER_MCF_EXACT_RE = re.compile(r"^\s*Per\s+MCF\s*$", re.IGNORECASE)
PER_MCF_RE = re.compile(r"^\s*Per\s+MCF\b", re.IGNORECASE)
STREET_LINE_RE = re.compile(r"^\s*\d{1,6}\s+[A-Z0-9.\s]+$", re.IGNORECASE)
CURRENT_CHARGES_START_RE = re.compile(r"^\s*Current\s+Charges\b", re.IGNORECASE)
CURRENT_CHARGES_RE = re.compile(r"Current\s+Charges", re.IGNORECASE)
WRAPPED_CURRENT_CHARGES_RE = re.compile(r"Current\s+Charges[^\$]*\$\s*([0-9][\d,]*\.\d{2})", re.IGNORECASE)
CONSTANT_RE = re.compile(r"\bCONSTANT\b", re.IGNORECASE)
DOCUMENT_TOTAL_RE = re.compile(r"Total\s+Current\s+Charges\s*\$?\s*([0-9,]+\.\d{2})", re.IGNORECASE)

ADDRESS_BOX_LOOKBACK = 25
STREET_LINE_LOOKBACK = 10


def _box_around(lines: list[str], idx: int) -> list[str]:
    """Lines from the ``Per MCF`` at or above *idx* to the next one below it."""
    start = find_line_upward(lines, PER_MCF_RE, idx, idx + 1)
    if start < 0:
        start = idx
    stop = find_line(lines, PER_MCF_RE, idx + 1)
    return lines[start:stop if stop >= 0 else len(lines)]


class KgsExtractor(VendorExtractor):
    vendor = Vendor.KGS
    signatures = (
        re.compile(r"Kansas\s+Gas\s+Service", re.IGNORECASE),
        re.compile(r"A Division of ONE Gas", re.IGNORECASE),
        re.compile(r"\bMCF\b", re.IGNORECASE),
    )

    def extract(self, doc: DocumentText) -> VendorExtraction:
        lines = doc.lines
        page2 = doc.page(2)
        sections = SectionScanner(ANCHOR_RE).scan(lines)

        items = [self._extract_section(doc, lines, page2, sec) for sec in sections]

        m = DOCUMENT_TOTAL_RE.search("\n".join(page2))
        document_total = to_float(m.group(1)) if m else None

        logger.info("kgs_sections_parsed", source_file=doc.source_file, count=len(items))
        return VendorExtraction(
            vendor=self.vendor,
            items=items,
            document_total=document_total,
            hints=[f"KGS sections parsed: {len(items)}"],
        )

    def _extract_section(self, doc: DocumentText, lines: list[str], page2: list[str], sec: Section):
        meter, start, end = sec.match.group(1), sec.match.group(2), sec.match.group(3)
        hints = [f"KGS meter -> {meter}", f"KGS period {start} -> {end}"]

        service_address = self._address(lines, sec.anchor_index)
        hints.append(f'KGS addr -> "{service_address}"' if service_address else "KGS addr -> (none)")

        box = self._charge_box(page2, meter, start, end, service_address)
        if box is None:
            box = sec.lines
            hints.append("KGS section -> global window")

        section_total_cost = self._section_total(box)
        hints.append(
            f"KGS $ -> {section_total_cost:.2f}" if section_total_cost is not None else "KGS $ -> (none)"
        )

        usage_mcf = self._usage_mcf(box)
        hints.append(f"KGS MCF -> {usage_mcf}" if usage_mcf is not None else "KGS MCF -> (none)")

        return self._item(
            doc,
            service_address=service_address,
            meter_no=meter,
            period_start=start,
            period_end=end,
            usage_mcf=usage_mcf,
            section_total_cost=section_total_cost,
            hints=hints,
        )

    def _address(self, lines: list[str], anchor_idx: int) -> str | None:
        per_idx = find_line_upward(lines, PER_MCF_EXACT_RE, anchor_idx - 1, ADDRESS_BOX_LOOKBACK)
        if per_idx >= 0:
            i = per_idx + 1
            while i < anchor_idx and not lines[i].strip():
                i += 1
            if i < anchor_idx:
                address = clean_address_raw(lines[i])
                if address:
                    return address
        for up in range(anchor_idx - 1, max(anchor_idx - 1 - STREET_LINE_LOOKBACK, -1), -1):
            if STREET_LINE_RE.match(lines[up].strip()):
                return clean_address_raw(lines[up]) or None
        return None

    def _charge_box(
        self,
        page2: list[str],
        meter: str,
        start: str,
        end: str,
        service_address: str | None,
    ) -> list[str] | None:
        anchor = re.compile(
            rf"^\s*{re.escape(meter)}\s+{re.escape(start)}\s+{re.escape(end)}\b", re.IGNORECASE
        )
        idx = find_line(page2, anchor)
        if idx >= 0:
            return _box_around(page2, idx)

        # Duplicate addresses are common; take the box that mentions this meter.
        if service_address:
            addr_re = re.compile(r"\s+".join(map(re.escape, service_address.split())), re.IGNORECASE)
            meter_re = re.compile(rf"\b{re.escape(meter)}\b")
            for i, line in enumerate(page2):
                if not addr_re.search(" ".join(line.split())):
                    continue
                box = _box_around(page2, i)
                if meter_re.search("\n".join(box)):
                    return box
        return None

    def _section_total(self, box: list[str]) -> float | None:
        cc_idx = find_line(box, CURRENT_CHARGES_START_RE)
        if cc_idx < 0:
            cc_idx = find_line(box, CURRENT_CHARGES_RE)
        if cc_idx >= 0:
            amounts = money_values(box[cc_idx])
            if amounts:
                return amounts[-1]
            m = WRAPPED_CURRENT_CHARGES_RE.search(" ".join(box[cc_idx:cc_idx + 3]))
            if m:
                return to_float(m.group(1))

        per_idx = find_line(box, PER_MCF_RE)
        amounts = dollar_values(" ".join(box[max(per_idx, 0):]))
        return max(amounts) if amounts else None

    def _usage_mcf(self, box: list[str]) -> float | None:
        """Third number on the first non-blank line after the CONSTANT header."""
        const_idx = find_line(box, CONSTANT_RE)
        if const_idx < 0:
            return None
        for line in box[const_idx + 1:]:
            if not line.strip():
                continue
            nums = plain_numbers(line)
            return nums[2] if len(nums) >= 3 else None
        return None
