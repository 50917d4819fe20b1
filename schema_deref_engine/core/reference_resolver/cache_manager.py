"""
Per-call cache of fully resolved external documents.

A DocumentCache is created by each top-level resolution call and passed through
its nested resolutions, so a document referenced from several places is loaded
and resolved only once per call. Nothing is shared between calls.

Key Features:
- Keyed by canonical document identifier (absolute path for files)
- Write-once entries: the first fully resolved document stored under a key wins
- Hit/miss counters for inspection
"""

import logging
from typing import Any, Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class DocumentCache:
    """
    Cache of fully resolved documents for one resolution call.

    Stored documents must not be mutated by callers; take a deep copy before
    post-processing a value read from the cache.
    """

    def __init__(self):
        """Initialize an empty cache."""
        self._documents: Dict[str, Any] = {}
        self.hits = 0
        self.misses = 0

    def __contains__(self, key: str) -> bool:
        return key in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[str]:
        return iter(self._documents)

    def get(self, key: str) -> Optional[Any]:
        """
        Retrieve a resolved document.

        Args:
            key: Canonical document identifier

        Returns:
            The resolved document if cached, None otherwise
        """
        if key in self._documents:
            self.hits += 1
            logger.debug(f"Document cache HIT: {key}")
            return self._documents[key]

        self.misses += 1
        logger.debug(f"Document cache MISS: {key}")
        return None

    def set(self, key: str, document: Any) -> None:
        """
        Store a fully resolved document. Existing entries are never overwritten.

        Args:
            key: Canonical document identifier
            document: The fully resolved document
        """
        if key in self._documents:
            logger.debug(f"Document cache already holds {key}, keeping first entry")
            return

        self._documents[key] = document
        logger.debug(f"Document cache SET: {key}")

    def clear(self) -> int:
        """
        Drop all cached documents.

        Returns:
            Number of entries cleared
        """
        count = len(self._documents)
        self._documents.clear()
        self.hits = 0
        self.misses = 0
        return count

    def get_stats(self) -> dict:
        """
        Get cache statistics.

        Returns:
            Dictionary with entry count, hits, misses and cached keys
        """
        return {
            "total_entries": len(self._documents),
            "hits": self.hits,
            "misses": self.misses,
            "keys": list(self._documents),
        }
