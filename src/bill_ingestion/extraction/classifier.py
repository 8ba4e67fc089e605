"""Vendor classification: signature match first, extraction score second."""
from __future__ import annotations

from dataclasses import dataclass

import structlog

from ..models.internal import DocumentText
from ..models.items import Vendor
from .base import VendorExtraction, VendorExtractor
from .evergy import EvergyExtractor
from .kgs import KgsExtractor
from .woodriver import WoodRiverExtractor

logger = structlog.get_logger(__name__)

# Registry order doubles as the tie-break order for scored classification.
EXTRACTORS: tuple[VendorExtractor, ...] = (
    WoodRiverExtractor(),
    KgsExtractor(),
    EvergyExtractor(),
)


def get_extractor(vendor: Vendor) -> VendorExtractor:
    for extractor in EXTRACTORS:
        if extractor.vendor == vendor:
            return extractor
    raise ValueError(f"No extractor registered for vendor {vendor!r}")


@dataclass
class ClassificationResult:
    vendor: Vendor
    method: str  # "signature" or "scored"
    extraction: VendorExtraction
    scores: dict[str, int]


def classify_and_extract(doc: DocumentText) -> ClassificationResult:
    """Pick the vendor for *doc* and return that vendor's extraction.

    When exactly one vendor's signatures appear in the text, that extractor
    alone runs. Otherwise every extractor runs and the best score wins, ties
    going to the earlier extractor in ``EXTRACTORS``.
    """
    text = doc.text
    matched = [ex for ex in EXTRACTORS if ex.matches_signature(text)]
    if len(matched) == 1:
        extraction = matched[0].extract(doc)
        logger.info("vendor_classified", vendor=extraction.vendor.value, method="signature",
                    items=len(extraction.items))
        return ClassificationResult(
            vendor=extraction.vendor,
            method="signature",
            extraction=extraction,
            scores={extraction.vendor.value: extraction.score},
        )

    results = [ex.extract(doc) for ex in EXTRACTORS]
    scores = {r.vendor.value: r.score for r in results}
    best = results[0]
    for result in results[1:]:
        if result.score > best.score:
            best = result
    logger.info("vendor_classified", vendor=best.vendor.value, method="scored", scores=scores,
                signature_matches=[ex.vendor.value for ex in matched])
    return ClassificationResult(vendor=best.vendor, method="scored", extraction=best, scores=scores)
