"""Rebuild reading-order lines from positioned PDF text fragments."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..models.internal import DocumentText, PageLines, TextFragment

DEFAULT_LINE_TOLERANCE = 2.0


@dataclass
class _Line:
    y: float
    fragments: list[TextFragment] = field(default_factory=list)


def reconstruct_lines(
    fragments: list[TextFragment],
    tolerance: float = DEFAULT_LINE_TOLERANCE,
) -> list[str]:
    """Cluster fragments into lines and return them top-to-bottom.

    A fragment joins the first line whose anchor Y (the Y of the fragment
    that opened it) is within *tolerance*; otherwise it opens a new line.
    Within a line fragments are ordered left-to-right and joined by a single
    space. Blank fragments are dropped.
    """
    lines: list[_Line] = []
    for frag in fragments:
        if not frag.text or not frag.text.strip():
            continue
        for line in lines:
            if abs(line.y - frag.y) <= tolerance:
                line.fragments.append(frag)
                break
        else:
            lines.append(_Line(y=frag.y, fragments=[frag]))

    lines.sort(key=lambda ln: ln.y)
    out: list[str] = []
    for line in lines:
        ordered = sorted(line.fragments, key=lambda f: f.x)
        out.append(" ".join(f.text.strip() for f in ordered))
    return out


def build_document_text(
    pages: list[list[TextFragment]],
    *,
    source_file: str = "",
    file_hash: str = "",
    tolerance: float = DEFAULT_LINE_TOLERANCE,
) -> DocumentText:
    """Reconstruct every page into a :class:`DocumentText`."""
    return DocumentText(
        source_file=source_file,
        file_hash=file_hash,
        pages=[
            PageLines(page_number=i + 1, lines=reconstruct_lines(frags, tolerance))
            for i, frags in enumerate(pages)
        ],
    )
