"""Internal inter-stage data models.

These models carry document text between the PDF reader, the line
reconstructor and the vendor extractors. They are not persisted.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


PAGE_MARKER = "--- PAGE {n} ---"


class TextFragment(BaseModel):
    """A positioned glyph run from a PDF text layer.

    ``y`` is the baseline distance from the top of the page, so larger
    values are further down the page.
    """

    x: float
    y: float
    text: str


class PageLines(BaseModel):
    """Reconstructed reading-order lines for one page."""

    page_number: int
    lines: list[str] = Field(default_factory=list)


class DocumentText(BaseModel):
    """All reconstructed lines of a document, page by page."""

    source_file: str = ""
    file_hash: str = ""
    pages: list[PageLines] = Field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.pages)

    @property
    def text(self) -> str:
        """Full text with a ``--- PAGE n ---`` marker before every page."""
        chunks: list[str] = []
        for page in self.pages:
            chunks.append(PAGE_MARKER.format(n=page.page_number))
            chunks.extend(page.lines)
        return "\n".join(chunks)

    @property
    def lines(self) -> list[str]:
        """Every line of the document, in page order, without markers."""
        return [line for page in self.pages for line in page.lines]

    def page(self, page_number: int) -> list[str]:
        """Lines of a 1-based page, or an empty list when it does not exist."""
        for page in self.pages:
            if page.page_number == page_number:
                return page.lines
        return []

    def pages_text(self, *page_numbers: int) -> str:
        return "\n".join(line for n in page_numbers for line in self.page(n))

    def has_text(self) -> bool:
        return any(line.strip() for page in self.pages for line in page.lines)

    @classmethod
    def from_text(cls, text: str, source_file: str = "") -> DocumentText:
        """Rebuild pages from page-marked text (or a single unmarked page)."""
        pages: list[PageLines] = []
        current: PageLines | None = None
        for raw in text.splitlines():
            stripped = raw.strip()
            if stripped.startswith("--- PAGE ") and stripped.endswith(" ---"):
                number = stripped[len("--- PAGE "):-len(" ---")].strip()
                current = PageLines(page_number=int(number) if number.isdigit() else len(pages) + 1)
                pages.append(current)
                continue
            if current is None:
                current = PageLines(page_number=1)
                pages.append(current)
            current.lines.append(raw)
        return cls(source_file=source_file, pages=pages)
