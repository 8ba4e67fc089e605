"""Extraction pipeline: PDF bytes -> reconstructed lines -> scored bill items."""
from __future__ import annotations

import time
from collections.abc import Collection
from dataclasses import dataclass, field

import structlog

from .config import Settings
from .extraction.classifier import classify_and_extract
from .extraction.lines import build_document_text
from .merging.dedup import dedupe_and_merge
from .models.ingest import IngestItem, IngestRequest
from .models.internal import DocumentText
from .models.items import MergedItem, Utility, Vendor
from .normalization.address import normalize_address
from .normalization.dates import to_iso_date
from .normalization.values import normalize_item, normalize_meter
from .utils.hashing import compute_file_hash
from .utils.pdf import detect_file_type, extract_page_fragments, get_page_count

logger = structlog.get_logger(__name__)


@dataclass
class DocumentResult:
    """Outcome of processing one document."""

    source_file: str
    file_hash: str
    vendor: Vendor
    method: str
    page_count: int
    items: list[MergedItem]
    document_total: float | None = None
    scores: dict[str, int] = field(default_factory=dict)
    hints: list[str] = field(default_factory=list)
    processing_time_ms: int = 0


class BillExtractionPipeline:
    """Turns utility-bill PDFs into merged, confidence-scored items.

    Extraction is pure and synchronous; nothing here touches the database.
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()

    def process(self, file_bytes: bytes, filename: str) -> DocumentResult:
        """Run one PDF through line reconstruction, extraction and merging.

        Raises ``ValueError`` for non-PDF input and for PDFs without a text
        layer (scanned images are not supported).
        """
        start = time.monotonic()

        # Step 1: Detect file type
        file_type = detect_file_type(file_bytes)
        if file_type != "pdf":
            raise ValueError(f"Unsupported file type {file_type!r}; only PDF bills are accepted")

        # Step 2: Hash
        file_hash = compute_file_hash(file_bytes)
        page_count = get_page_count(file_bytes)
        logger.info("document_received", filename=filename, file_hash=file_hash[:16], page_count=page_count)

        # Step 3: Positioned text -> reading-order lines
        fragments = extract_page_fragments(file_bytes)
        doc = build_document_text(
            fragments,
            source_file=filename,
            file_hash=file_hash,
            tolerance=self.settings.line_tolerance,
        )
        if not doc.has_text():
            raise ValueError(
                f"{filename}: PDF parsed but no text was extracted; scanned image-only PDFs are not supported"
            )

        result = self.process_text(doc)
        result.page_count = page_count
        result.processing_time_ms = int((time.monotonic() - start) * 1000)
        return result

    def process_text(self, doc: DocumentText) -> DocumentResult:
        """Classify, extract, normalize, merge and score already-reconstructed text."""
        classification = classify_and_extract(doc)
        extraction = classification.extraction
        normalized = [normalize_item(item) for item in extraction.items]
        items = dedupe_and_merge(normalized, self.settings.auto_approve_threshold)

        logger.info(
            "document_extracted",
            filename=doc.source_file,
            vendor=classification.vendor.value,
            method=classification.method,
            extracted=len(extraction.items),
            merged=len(items),
            approved=sum(1 for it in items if it.auto_approved),
        )
        return DocumentResult(
            source_file=doc.source_file,
            file_hash=doc.file_hash,
            vendor=classification.vendor,
            method=classification.method,
            page_count=doc.page_count,
            items=items,
            document_total=extraction.document_total,
            scores=classification.scores,
            hints=extraction.hints,
        )

    def process_batch(self, files: list[tuple[str, bytes]]) -> tuple[list[DocumentResult], list[MergedItem]]:
        """Process several PDFs one after another and merge items across them.

        Returns the per-document results and the cross-document merged items.
        Hints on every item are prefixed with the source file name.
        """
        if len(files) > self.settings.max_batch_files:
            raise ValueError(f"At most {self.settings.max_batch_files} files per batch (got {len(files)})")

        results: list[DocumentResult] = []
        pooled = []
        for filename, file_bytes in files:
            result = self.process(file_bytes, filename)
            results.append(result)
            for item in result.items:
                pooled.append(item.model_copy(update={"hints": [f"[{filename}] {h}" for h in item.hints]}))

        merged = dedupe_and_merge(pooled, self.settings.auto_approve_threshold)
        logger.info("batch_extracted", files=len(files), items=len(merged))
        return results, merged


def _bill_key(item: MergedItem, start, end) -> str:
    # Meterless items (manual approvals only) are told apart by address.
    meter = normalize_meter(item.meter_no)
    where = f"meter:{meter}" if meter else f"addr:{normalize_address(item.service_address)}"
    return f"{item.vendor.utility}|{where}|{start}|{end}"


def build_ingest_requests(
    org_id,
    items: list[MergedItem],
    bill_upload_id=None,
    approved: Collection[int] | None = None,
) -> list[IngestRequest]:
    """Group approved items into one ingestion request per utility.

    Without *approved*, an item is sent only when it passed auto-approval.
    *approved* is a set of indexes into *items* for manual approvals; it
    replaces the auto-approval flag entirely. Items whose vendor is unknown
    are skipped. Within a request, items with the same bill key are sent
    once; the key uses the meter id, or the normalized service address when
    the meter id is missing.
    """
    grouped: dict[Utility, list[IngestItem]] = {}
    seen: set[str] = set()
    pending = 0
    for index, item in enumerate(items):
        if item.vendor == Vendor.UNKNOWN:
            continue
        is_approved = index in approved if approved is not None else item.auto_approved
        if not is_approved:
            pending += 1
            continue
        utility = item.vendor.utility
        start = to_iso_date(item.period_start)
        end = to_iso_date(item.period_end)
        key = _bill_key(item, start, end)
        if key in seen:
            logger.debug("ingest_item_duplicate", key=key)
            continue
        seen.add(key)
        grouped.setdefault(utility, []).append(IngestItem(
            service_address=item.service_address,
            meter_no=item.meter_no,
            period_start=start.isoformat() if start else item.period_start,
            period_end=end.isoformat() if end else item.period_end,
            usage_kwh=item.usage_kwh,
            usage_mcf=item.usage_mcf,
            usage_mmbtu=item.usage_mmbtu,
            therms=item.therms,
            total_cost=item.total_cost if item.total_cost is not None else item.section_total_cost,
            demand_cost=item.demand_cost,
            utility_provider=item.vendor.provider_name,
            match_via="meter" if item.meter_no else "address",
        ))

    if pending:
        logger.info("ingest_items_pending_review", pending=pending)
    return [
        IngestRequest(org_id=org_id, utility=utility, bill_upload_id=bill_upload_id, items=group_items)
        for utility, group_items in grouped.items()
    ]
