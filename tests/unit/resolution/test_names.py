"""Test building-name similarity."""
import pytest
from bill_ingestion.resolution.names import name_similarity, name_tokens, normalize_name


class TestNameSimilarity:
    def test_equal_after_normalization(self):
        assert name_similarity("Central Kitchen", "central   kitchen") == 1.0

    def test_stop_words_ignored(self):
        assert name_tokens("Lincoln Elementary School") == {"LINCOLN"}

    def test_jaccard(self):
        assert name_similarity("Lincoln Park Elementary", "Lincoln Elementary") == pytest.approx(0.5)

    def test_disjoint(self):
        assert name_similarity("Lincoln", "Washington") == 0.0

    def test_empty(self):
        assert name_similarity(None, "Lincoln") == 0.0

    def test_folds_abbreviations(self):
        assert normalize_name("Admin. Ctr & Annex") == "admin center and annex"
