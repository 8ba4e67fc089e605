"""Test the document-text model."""
from bill_ingestion.models.internal import DocumentText
from tests.factories import KGS_TEXT, make_doc


class TestDocumentText:
    def test_from_marked_text(self):
        doc = make_doc(KGS_TEXT)
        assert doc.page_count == 2
        assert doc.page(1)[0] == "Kansas Gas Service"
        assert doc.page(2)[-1] == "Total Current Charges $245.67"
        assert doc.page(3) == []

    def test_unmarked_text_is_page_one(self):
        doc = DocumentText.from_text("a\nb")
        assert doc.page_count == 1
        assert doc.lines == ["a", "b"]

    def test_text_round_trip(self):
        doc = make_doc(KGS_TEXT)
        assert DocumentText.from_text(doc.text).pages == doc.pages

    def test_pages_text(self):
        doc = DocumentText.from_text("--- PAGE 1 ---\none\n--- PAGE 2 ---\ntwo")
        assert doc.pages_text(2, 1) == "two\none"

    def test_has_text(self):
        assert not DocumentText.from_text("--- PAGE 1 ---\n   ").has_text()
