"""Vendor extractor interface and shared result type."""
from __future__ import annotations

import re
from abc import ABC, abstractmethod

from pydantic import BaseModel, Field

from ..models.internal import DocumentText
from ..models.items import ExtractedItem, Vendor


class VendorExtraction(BaseModel):
    """Everything one extractor pulled out of a document."""

    vendor: Vendor
    items: list[ExtractedItem] = Field(default_factory=list)
    document_total: float | None = None
    layout_bonus: int = 0
    hints: list[str] = Field(default_factory=list)

    @property
    def score(self) -> int:
        """Item count, +1 for a recognised document total, plus any layout bonus."""
        return len(self.items) + (1 if self.document_total else 0) + self.layout_bonus


class VendorExtractor(ABC):
    """Stateless parser for one vendor's bill template.

    Implementations never raise on malformed input: missing fields stay
    ``None`` and a hint records what could not be found.
    """

    vendor: Vendor = Vendor.UNKNOWN
    signatures: tuple[re.Pattern, ...] = ()

    def matches_signature(self, text: str) -> bool:
        return any(sig.search(text) for sig in self.signatures)

    @abstractmethod
    def extract(self, doc: DocumentText) -> VendorExtraction:
        """Parse *doc* into candidate items."""

    def _item(self, doc: DocumentText, **fields) -> ExtractedItem:
        return ExtractedItem(vendor=self.vendor, source_file=doc.source_file or None, **fields)
