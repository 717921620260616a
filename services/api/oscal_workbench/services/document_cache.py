"""Per-session cache of fetched OSCAL documents."""

from typing import Dict, Optional

import structlog

from oscal_workbench.models.oscal import OscalDocument

logger = structlog.get_logger(__name__)


def normalize_url(url: str) -> str:
    """Cache key for a URL: fragment stripped, lower-cased."""
    return url.split("#", 1)[0].lower()


class DocumentCache:
    """In-memory document store keyed by normalized URL.

    One instance lives for one resolution session. Entries are never evicted
    and a later ``set`` for the same key replaces the earlier document.
    """

    def __init__(self) -> None:
        self._documents: Dict[str, OscalDocument] = {}

    def get(self, url: str) -> Optional[OscalDocument]:
        return self._documents.get(normalize_url(url))

    def set(self, url: str, document: OscalDocument) -> None:
        key = normalize_url(url)
        self._documents[key] = document
        logger.debug("Document cached", url=key, document_type=document.type.value)

    def has(self, url: str) -> bool:
        return normalize_url(url) in self._documents

    def clear(self) -> None:
        logger.debug("Document cache cleared", size=len(self._documents))
        self._documents.clear()

    @property
    def size(self) -> int:
        return len(self._documents)

    def __contains__(self, url: str) -> bool:
        return self.has(url)

    def __len__(self) -> int:
        return self.size
