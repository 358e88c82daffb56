"""Inverted term-document index with document-frequency pruning.

The index records, for every term, how many times it occurs in each
document. Corpus-wide statistics used by the feature weighting strategies
(document frequency, largest single posting count, number of documents) are
derived from it on demand.

Pruning removes whole terms whose document frequency falls outside an
inclusive ``[min_df, max_df]`` range. Individual postings are never edited,
so the document-frequency invariant (``df(term) == len(postings(term))``)
always holds.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from collections.abc import Iterable, Mapping
from types import MappingProxyType

logger = logging.getLogger(__name__)


def validate_percentile(value: float, name: str = "percentile") -> float:
    """Reject a percentile outside ``[0, 1]``.

    Raises:
        ValueError: If ``value`` is not between 0 and 1 inclusive.
    """
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be a value between 0 and 1, got {value!r}")
    return value


class InvertedIndex:
    """Maps term -> {document -> occurrence count}.

    Example::

        index = InvertedIndex()
        for word in ["free", "offer", "free"]:
            index.add(word, "spam-001.eml")

        index.document_frequency("free")   # 1
        index.postings_of("free")          # {"spam-001.eml": 2}
        index.max_raw_count()              # 2
    """

    def __init__(self) -> None:
        self._postings: dict[str, dict[str, int]] = defaultdict(dict)
        # Reverse view: document -> terms it still holds a posting for
        self._terms_by_document: dict[str, set[str]] = defaultdict(set)
        self._documents: set[str] = set()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, term: str, document: str) -> None:
        """Increment the posting count for ``(term, document)`` by one."""
        postings = self._postings[term]
        postings[document] = postings.get(document, 0) + 1
        self._terms_by_document[document].add(term)
        self._documents.add(document)

    def add_all(self, terms: Iterable[str], document: str) -> None:
        """Add every term of a document's term sequence."""
        for term in terms:
            self.add(term, document)

    def merge(self, other: "InvertedIndex") -> "InvertedIndex":
        """Sum the postings of ``other`` into this index.

        Merging is commutative and associative, so partial indices built
        by independent workers can be combined in any order.

        Returns:
            Self (for method chaining).
        """
        for term, postings in other._postings.items():
            target = self._postings[term]
            for document, count in postings.items():
                target[document] = target.get(document, 0) + count
                self._terms_by_document[document].add(term)
        self._documents.update(other._documents)
        return self

    def prune(self, min_df: int, max_df: int) -> int:
        """Remove every term whose document frequency is outside ``[min_df, max_df]``.

        Args:
            min_df: Smallest document frequency kept (inclusive).
            max_df: Largest document frequency kept (inclusive).

        Returns:
            Number of terms removed.
        """
        doomed = [
            term
            for term, postings in self._postings.items()
            if not min_df <= len(postings) <= max_df
        ]
        for term in doomed:
            for document in self._postings.pop(term):
                terms = self._terms_by_document[document]
                terms.discard(term)
                if not terms:
                    del self._terms_by_document[document]

        logger.debug(
            "Pruned %d terms outside df range [%d, %d]; %d remain",
            len(doomed), min_df, max_df, len(self._postings),
        )
        return len(doomed)

    def prune_by_percentile(self, lower: float, upper: float) -> int:
        """Prune using percentile bounds of the document count.

        Bounds are ``floor(percentile * document_count())``.

        Raises:
            ValueError: If either percentile is outside ``[0, 1]``.
        """
        validate_percentile(lower, "lower percentile")
        validate_percentile(upper, "upper percentile")
        n_docs = self.document_count()
        return self.prune(math.floor(lower * n_docs), math.floor(upper * n_docs))

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def document_frequency(self, term: str) -> int:
        """Number of distinct documents containing ``term``."""
        postings = self._postings.get(term)
        return len(postings) if postings else 0

    def max_raw_count(self) -> int:
        """Largest single posting count in the index (0 when empty)."""
        return max(
            (count for postings in self._postings.values() for count in postings.values()),
            default=0,
        )

    def document_count(self) -> int:
        """Number of distinct documents ever added.

        Pruning does not change this value.
        """
        return len(self._documents)

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def terms(self) -> list[str]:
        """All indexed terms in sorted order."""
        return sorted(self._postings)

    def documents(self) -> list[str]:
        """Documents that still hold at least one posting, sorted."""
        return sorted(self._terms_by_document)

    def documents_of(self, term: str) -> list[str]:
        return sorted(self._postings.get(term, {}))

    def terms_of(self, document: str) -> list[str]:
        """Terms with a posting in ``document``, sorted."""
        return sorted(self._terms_by_document.get(document, ()))

    def postings_of(self, term: str) -> Mapping[str, int]:
        """Read-only ``document -> count`` view for ``term``."""
        return MappingProxyType(self._postings.get(term, {}))

    def __contains__(self, term: object) -> bool:
        return term in self._postings

    def __len__(self) -> int:
        return len(self._postings)

    def __repr__(self) -> str:
        return f"InvertedIndex(terms={len(self)}, documents={self.document_count()})"
