"""Frozen vocabulary and dense feature-vector construction."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Optional

from .index import InvertedIndex
from .weighting import FeatureWeighting


class Vocabulary:
    """Immutable bijection term -> contiguous column index.

    Also carries the training-corpus document frequency of each term so
    that inference can weight features with training-time statistics.

    Args:
        terms: Terms in column order.
        document_frequencies: Optional ``term -> df`` map from the training
            index.
    """

    __slots__ = ("_index", "_terms", "_document_frequencies")

    def __init__(
        self,
        terms: list[str],
        document_frequencies: Optional[Mapping[str, int]] = None,
    ) -> None:
        index = {term: i for i, term in enumerate(terms)}
        if len(index) != len(terms):
            raise ValueError("Vocabulary terms must be unique")
        dfs = document_frequencies or {}
        self._terms: tuple[str, ...] = tuple(terms)
        self._index = MappingProxyType(index)
        self._document_frequencies = MappingProxyType(
            {term: int(dfs.get(term, 0)) for term in terms}
        )

    @classmethod
    def from_index(cls, index: InvertedIndex) -> "Vocabulary":
        """Freeze the (possibly pruned) term set of an index, in sorted order."""
        terms = index.terms()
        return cls(terms, {term: index.document_frequency(term) for term in terms})

    @property
    def size(self) -> int:
        return len(self._terms)

    def index_of(self, term: str) -> int:
        """Column of ``term``.

        Raises:
            KeyError: If the term is not in the vocabulary.
        """
        return self._index[term]

    def term_at(self, column: int) -> str:
        return self._terms[column]

    def document_frequency(self, term: str) -> int:
        """Training document frequency of ``term`` (0 if unknown)."""
        return self._document_frequencies.get(term, 0)

    def terms(self) -> tuple[str, ...]:
        return self._terms

    def __contains__(self, term: object) -> bool:
        return term in self._index

    def __len__(self) -> int:
        return len(self._terms)

    def __iter__(self) -> Iterator[str]:
        return iter(self._terms)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Vocabulary):
            return NotImplemented
        return (
            self._terms == other._terms
            and dict(self._document_frequencies) == dict(other._document_frequencies)
        )

    def __repr__(self) -> str:
        return f"Vocabulary(size={self.size})"

    def to_dict(self) -> dict:
        return {
            "terms": list(self._terms),
            "document_frequencies": [self._document_frequencies[t] for t in self._terms],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Vocabulary":
        terms = data["terms"]
        dfs = data.get("document_frequencies") or [0] * len(terms)
        if len(dfs) != len(terms):
            raise ValueError("Vocabulary terms and document frequencies differ in length")
        return cls(terms, dict(zip(terms, dfs)))


def build_vector(
    index: InvertedIndex,
    vocabulary: Vocabulary,
    weighting: FeatureWeighting,
    document: str,
    max_raw_count: int,
    document_count: int,
) -> list[float]:
    """Build the dense feature vector of ``document``.

    Shared by training and inference. Terms of ``index`` missing from the
    vocabulary are dropped; the vector length is always ``vocabulary.size``.

    Args:
        index: Index holding the document's postings.
        vocabulary: Frozen term -> column map.
        weighting: Strategy turning postings into a weight.
        document: Document to vectorize.
        max_raw_count: Largest posting count captured at training time.
        document_count: Training corpus size captured at training time.

    Returns:
        List of ``vocabulary.size`` floats.
    """
    vector = [0.0] * vocabulary.size
    for term in index.terms_of(document):
        if term not in vocabulary:
            continue
        vector[vocabulary.index_of(term)] = weighting.weight(
            index.postings_of(term),
            document,
            max_raw_count,
            document_count,
            vocabulary.document_frequency(term),
        )
    return vector
