"""Unit tests for the per-session document cache."""

import pytest

from oscal_workbench.services.document_cache import DocumentCache, normalize_url
from oscal_workbench.services.parser import build_document


@pytest.fixture
def catalog_document(sample_catalog):
    return build_document(sample_catalog)


@pytest.fixture
def profile_document(sample_profile):
    return build_document(sample_profile)


class TestNormalizeUrl:
    """Test cases for normalize_url."""

    def test_strips_fragment_and_lowercases(self):
        """Test the fragment is dropped and the URL lower-cased."""
        assert normalize_url("HTTPS://Example.com/Cat.json#AC-1") == "https://example.com/cat.json"

    @pytest.mark.parametrize("url", ["https://A.b/C#d#e", "", "#only", "plain"])
    def test_idempotent(self, url):
        """Test normalizing twice changes nothing."""
        assert normalize_url(normalize_url(url)) == normalize_url(url)


class TestDocumentCache:
    """Test cases for DocumentCache."""

    def test_get_missing_returns_none(self, document_cache):
        """Test unknown URLs are misses."""
        assert document_cache.get("https://example.com/x.json") is None
        assert document_cache.has("https://example.com/x.json") is False

    def test_equivalent_urls_share_entry(self, document_cache, catalog_document):
        """Test URLs differing only in case or fragment hit the same entry."""
        document_cache.set("https://example.com/Catalog.json", catalog_document)

        assert document_cache.get("https://EXAMPLE.com/catalog.json#ac-1") is catalog_document
        assert "https://example.com/catalog.json" in document_cache
        assert document_cache.size == 1

        document_cache.set("https://example.com/catalog.json#other", catalog_document)
        assert document_cache.size == 1

    def test_last_write_wins(self, document_cache, catalog_document, profile_document):
        """Test a second set for the same key replaces the document."""
        document_cache.set("https://example.com/doc.json", catalog_document)
        document_cache.set("https://example.com/DOC.json", profile_document)

        assert document_cache.get("https://example.com/doc.json") is profile_document
        assert len(document_cache) == 1

    def test_clear(self, document_cache, catalog_document):
        """Test clear empties the cache."""
        document_cache.set("https://example.com/a.json", catalog_document)
        document_cache.set("https://example.com/b.json", catalog_document)
        assert document_cache.size == 2

        document_cache.clear()

        assert document_cache.size == 0
        assert document_cache.get("https://example.com/a.json") is None
