"""Test reading-order line reconstruction."""
from bill_ingestion.extraction.lines import build_document_text, reconstruct_lines
from bill_ingestion.models.internal import TextFragment


def frag(x, y, text):
    return TextFragment(x=x, y=y, text=text)


class TestReconstructLines:
    def test_orders_lines_top_to_bottom_and_words_left_to_right(self):
        lines = reconstruct_lines([
            frag(200, 40.0, "St"),
            frag(10, 20.0, "Service"),
            frag(10, 40.0, "1200"),
            frag(80, 21.5, "location:"),
            frag(60, 40.9, "Main"),
        ])
        assert lines == ["Service location:", "1200 Main St"]

    def test_tolerance_boundary(self):
        assert reconstruct_lines([frag(0, 10.0, "a"), frag(5, 12.0, "b")], tolerance=2.0) == ["a b"]
        assert reconstruct_lines([frag(0, 10.0, "a"), frag(5, 12.5, "b")], tolerance=2.0) == ["a", "b"]

    def test_joins_first_line_within_tolerance_of_anchor(self):
        # "c" is within tolerance of "b" but not of the anchor of the first line.
        lines = reconstruct_lines([frag(0, 10.0, "a"), frag(5, 11.5, "b"), frag(9, 13.0, "c")])
        assert lines == ["a b", "c"]

    def test_blank_fragments_dropped(self):
        assert reconstruct_lines([frag(0, 10, "  "), frag(1, 10, "x")]) == ["x"]

    def test_empty(self):
        assert reconstruct_lines([]) == []


class TestBuildDocumentText:
    def test_pages_numbered_from_one(self):
        doc = build_document_text(
            [[frag(0, 1, "first")], [], [frag(0, 1, "third")]],
            source_file="a.pdf",
            file_hash="abc",
        )
        assert doc.page_count == 3
        assert doc.page(1) == ["first"]
        assert doc.page(2) == []
        assert doc.text == "--- PAGE 1 ---\nfirst\n--- PAGE 2 ---\n--- PAGE 3 ---\nthird"
        assert doc.has_text()
