"""Tests for the feature weighting strategies."""

from __future__ import annotations

import math

import pytest

from spamfilter.weighting import (
    BinaryWeighting,
    FrequencyWeighting,
    TfidfWeighting,
    get_weighting,
    weighting_from_dict,
)


class TestFrequencyWeighting:
    def test_max_count_gives_one(self):
        weight = FrequencyWeighting().weight({"doc": 3}, "doc", max_raw_count=3, document_count=10)
        assert weight == pytest.approx(1.0)

    def test_normalized_by_max_count(self):
        weight = FrequencyWeighting().weight({"doc": 1}, "doc", max_raw_count=4, document_count=10)
        assert weight == pytest.approx(0.25)

    def test_absent_term_is_zero(self):
        weight = FrequencyWeighting().weight({"other": 2}, "doc", max_raw_count=4, document_count=10)
        assert weight == 0.0

    def test_monotonic_in_raw_count(self):
        weighting = FrequencyWeighting()
        weights = [
            weighting.weight({"doc": count}, "doc", max_raw_count=10, document_count=5)
            for count in range(1, 11)
        ]
        assert weights == sorted(weights)
        assert all(0.0 < w <= 1.0 for w in weights)


class TestTfidfWeighting:
    def test_worked_example(self):
        weight = TfidfWeighting().weight(
            {"doc": 3}, "doc", max_raw_count=3, document_count=10, corpus_document_frequency=5
        )
        assert weight == pytest.approx(math.log(2))

    def test_local_document_frequency(self):
        postings = {"a": 2, "b": 1}
        weight = TfidfWeighting(document_frequency="local").weight(
            postings, "a", max_raw_count=2, document_count=8, corpus_document_frequency=4
        )
        # df taken from the postings handed in: 2 documents
        assert weight == pytest.approx(math.log(4))

    def test_corpus_mode_falls_back_to_postings(self):
        postings = {"a": 1, "b": 1}
        weight = TfidfWeighting().weight(postings, "a", max_raw_count=1, document_count=4)
        assert weight == pytest.approx(math.log(2))

    def test_term_in_every_document_is_zero(self):
        weight = TfidfWeighting().weight(
            {"doc": 5}, "doc", max_raw_count=5, document_count=10, corpus_document_frequency=10
        )
        assert weight == pytest.approx(0.0)

    def test_absent_term_is_zero(self):
        weight = TfidfWeighting().weight(
            {}, "doc", max_raw_count=5, document_count=10, corpus_document_frequency=3
        )
        assert weight == 0.0

    def test_rarer_terms_weigh_more(self):
        weighting = TfidfWeighting()
        common = weighting.weight({"d": 1}, "d", 1, 100, corpus_document_frequency=50)
        rare = weighting.weight({"d": 1}, "d", 1, 100, corpus_document_frequency=2)
        assert rare > common

    def test_invalid_mode_raises(self):
        with pytest.raises(ValueError, match="document_frequency"):
            TfidfWeighting(document_frequency="global")


class TestBinaryWeighting:
    def test_presence(self):
        weighting = BinaryWeighting()
        assert weighting.weight({"doc": 7}, "doc", 10, 10) == 1.0
        assert weighting.weight({"other": 7}, "doc", 10, 10) == 0.0


class TestRegistry:
    @pytest.mark.parametrize("name,cls", [
        ("frequency", FrequencyWeighting),
        ("tfidf", TfidfWeighting),
        ("binary", BinaryWeighting),
    ])
    def test_get_weighting(self, name, cls):
        weighting = get_weighting(name)
        assert isinstance(weighting, cls)
        assert weighting.to_dict()["type"] == name

    def test_unknown_weighting_raises(self):
        with pytest.raises(ValueError, match="Unknown weighting"):
            get_weighting("bm25")

    def test_from_dict_keeps_tfidf_mode(self):
        weighting = weighting_from_dict({"type": "tfidf", "document_frequency": "local"})
        assert weighting == TfidfWeighting(document_frequency="local")
        assert weighting != TfidfWeighting()

    def test_from_dict_unknown_tag_raises(self):
        with pytest.raises(ValueError):
            weighting_from_dict({"type": "mystery"})

    def test_equality_by_configuration(self):
        assert FrequencyWeighting() == FrequencyWeighting()
        assert FrequencyWeighting() != BinaryWeighting()
