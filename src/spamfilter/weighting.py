"""Feature weighting strategies.

A weighting maps one term's postings plus corpus statistics to the scalar
stored in a feature vector. Strategies are stateless apart from their
configuration and can be swapped without touching the index or the
classifier.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Optional


class FeatureWeighting(ABC):
    """Base class for feature weighting strategies."""

    #: Tag stored in persisted models.
    name: str = ""

    @abstractmethod
    def weight(
        self,
        postings: Mapping[str, int],
        document: str,
        max_raw_count: int,
        document_count: int,
        corpus_document_frequency: Optional[int] = None,
    ) -> float:
        """Weight of a term in ``document``.

        Args:
            postings: ``document -> raw count`` map of the term.
            document: Document whose weight is computed.
            max_raw_count: Largest posting count in the training corpus.
            document_count: Number of documents in the training corpus.
            corpus_document_frequency: Document frequency of the term in the
                training corpus, when known.

        Returns:
            The feature weight (0.0 when the term does not occur).
        """
        ...

    def to_dict(self) -> dict:
        return {"type": self.name}

    def __eq__(self, other: object) -> bool:
        return type(other) is type(self) and other.to_dict() == self.to_dict()

    def __hash__(self) -> int:
        return hash(self.name)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def _normalized_count(postings: Mapping[str, int], document: str, max_raw_count: int) -> float:
    count = postings.get(document, 0)
    if count <= 0 or max_raw_count <= 0:
        return 0.0
    return count / max_raw_count


class FrequencyWeighting(FeatureWeighting):
    """Raw count normalized by the largest count in the corpus, in ``(0, 1]``."""

    name = "frequency"

    def weight(
        self,
        postings: Mapping[str, int],
        document: str,
        max_raw_count: int,
        document_count: int,
        corpus_document_frequency: Optional[int] = None,
    ) -> float:
        return _normalized_count(postings, document, max_raw_count)


class TfidfWeighting(FeatureWeighting):
    """Normalized term frequency times ``log(N / df)``.

    Terms present in every document get a weight of zero.

    Args:
        document_frequency: Where ``df`` comes from. ``"corpus"`` uses the
            frequency frozen from the training index, so training and
            inference vectors share the same statistics. ``"local"``
            recomputes it from the postings handed in, which at inference
            time is the single-document index.
    """

    name = "tfidf"

    CORPUS = "corpus"
    LOCAL = "local"

    def __init__(self, document_frequency: str = CORPUS) -> None:
        if document_frequency not in (self.CORPUS, self.LOCAL):
            raise ValueError(
                f"document_frequency must be '{self.CORPUS}' or '{self.LOCAL}', "
                f"got {document_frequency!r}"
            )
        self.document_frequency = document_frequency

    def weight(
        self,
        postings: Mapping[str, int],
        document: str,
        max_raw_count: int,
        document_count: int,
        corpus_document_frequency: Optional[int] = None,
    ) -> float:
        tf = _normalized_count(postings, document, max_raw_count)
        if tf == 0.0:
            return 0.0

        if self.document_frequency == self.CORPUS and corpus_document_frequency:
            df = corpus_document_frequency
        else:
            df = len(postings)
        if df <= 0 or document_count <= 0:
            return 0.0
        return tf * math.log(document_count / df)

    def to_dict(self) -> dict:
        return {"type": self.name, "document_frequency": self.document_frequency}

    def __repr__(self) -> str:
        return f"TfidfWeighting(document_frequency={self.document_frequency!r})"


class BinaryWeighting(FeatureWeighting):
    """1.0 when the term occurs in the document, else 0.0."""

    name = "binary"

    def weight(
        self,
        postings: Mapping[str, int],
        document: str,
        max_raw_count: int,
        document_count: int,
        corpus_document_frequency: Optional[int] = None,
    ) -> float:
        return 1.0 if postings.get(document, 0) > 0 else 0.0


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

WEIGHTINGS: dict[str, type[FeatureWeighting]] = {
    FrequencyWeighting.name: FrequencyWeighting,
    TfidfWeighting.name: TfidfWeighting,
    BinaryWeighting.name: BinaryWeighting,
}


def get_weighting(name: str) -> FeatureWeighting:
    """Instantiate a weighting strategy by its tag.

    Raises:
        ValueError: If ``name`` is not a known strategy.
    """
    try:
        return WEIGHTINGS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown weighting: {name!r}. Known: {sorted(WEIGHTINGS)}"
        ) from None


def weighting_from_dict(data: dict) -> FeatureWeighting:
    """Rebuild a weighting strategy from its tagged dictionary form."""
    tag = data.get("type")
    if tag == TfidfWeighting.name:
        return TfidfWeighting(document_frequency=data.get("document_frequency", TfidfWeighting.CORPUS))
    return get_weighting(tag)
