"""Tests for the frozen vocabulary and feature-vector construction."""

from __future__ import annotations

import math

import pytest

from spamfilter.index import InvertedIndex
from spamfilter.vectors import Vocabulary, build_vector
from spamfilter.weighting import FrequencyWeighting, TfidfWeighting


@pytest.fixture
def index() -> InvertedIndex:
    index = InvertedIndex()
    index.add_all(["free", "free", "cash", "click"], "spam-1")
    index.add_all(["free", "offer"], "spam-2")
    index.add_all(["meeting", "agenda", "meeting"], "ham-1")
    return index


class TestVocabulary:
    def test_from_index_is_sorted_and_contiguous(self, index):
        vocab = Vocabulary.from_index(index)
        assert vocab.terms() == ("agenda", "cash", "click", "free", "meeting", "offer")
        assert [vocab.index_of(t) for t in vocab] == list(range(vocab.size))
        assert vocab.term_at(3) == "free"

    def test_carries_document_frequency(self, index):
        vocab = Vocabulary.from_index(index)
        assert vocab.document_frequency("free") == 2
        assert vocab.document_frequency("unknown") == 0

    def test_reflects_pruning(self, index):
        index.prune(min_df=2, max_df=3)
        vocab = Vocabulary.from_index(index)
        assert vocab.terms() == ("free",)

    def test_unknown_term_raises(self, index):
        vocab = Vocabulary.from_index(index)
        with pytest.raises(KeyError):
            vocab.index_of("lottery")
        assert "lottery" not in vocab

    def test_duplicate_terms_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            Vocabulary(["free", "free"])

    def test_dict_round_trip(self, index):
        vocab = Vocabulary.from_index(index)
        assert Vocabulary.from_dict(vocab.to_dict()) == vocab

    def test_from_dict_length_mismatch_raises(self):
        with pytest.raises(ValueError):
            Vocabulary.from_dict({"terms": ["a", "b"], "document_frequencies": [1]})


class TestBuildVector:
    def test_dimension_equals_vocabulary_size(self, index):
        vocab = Vocabulary.from_index(index)
        for document in index.documents():
            vector = build_vector(index, vocab, FrequencyWeighting(), document, 2, 3)
            assert len(vector) == vocab.size

    def test_frequency_values(self, index):
        vocab = Vocabulary.from_index(index)
        vector = build_vector(index, vocab, FrequencyWeighting(), "spam-1", 2, 3)
        assert vector[vocab.index_of("free")] == pytest.approx(1.0)
        assert vector[vocab.index_of("cash")] == pytest.approx(0.5)
        assert vector[vocab.index_of("meeting")] == 0.0

    def test_worked_tfidf_example(self):
        index = InvertedIndex()
        index.add_all(["free"] * 3, "doc")
        vocab = Vocabulary(["free", "meeting"], {"free": 5, "meeting": 2})

        freq = build_vector(index, vocab, FrequencyWeighting(), "doc", 3, 10)
        tfidf = build_vector(index, vocab, TfidfWeighting(), "doc", 3, 10)

        assert freq == [pytest.approx(1.0), 0.0]
        assert tfidf[0] == pytest.approx(math.log(2))
        assert tfidf[1] == 0.0

    def test_terms_outside_vocabulary_are_dropped(self, index):
        vocab = Vocabulary(["free"], {"free": 2})
        vector = build_vector(index, vocab, FrequencyWeighting(), "spam-1", 2, 3)
        assert vector == [pytest.approx(1.0)]

    def test_unknown_document_gives_zero_vector(self, index):
        vocab = Vocabulary.from_index(index)
        assert build_vector(index, vocab, FrequencyWeighting(), "missing", 2, 3) == [0.0] * vocab.size

    def test_deterministic(self, index):
        vocab = Vocabulary.from_index(index)
        first = build_vector(index, vocab, TfidfWeighting(), "spam-2", 2, 3)
        second = build_vector(index, vocab, TfidfWeighting(), "spam-2", 2, 3)
        assert first == second
