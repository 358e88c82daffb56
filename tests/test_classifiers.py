"""Tests for the Naive Bayes and majority classifiers.

Uses small hand-built vectors where feature 0 signals spam and feature 1
signals ham.
"""

from __future__ import annotations

import json
import math

import pytest

from spamfilter.classifiers import (
    MajorityClassifier,
    NaiveBayesClassifier,
    NotTrainedError,
    classifier_from_dict,
    get_classifier,
)
from spamfilter.models import EmailClass, LabelledVector

HAM = EmailClass.HAM
SPAM = EmailClass.SPAM


@pytest.fixture
def examples() -> list[LabelledVector]:
    return [
        LabelledVector(SPAM, [1.0, 0.0, 0.5]),
        LabelledVector(SPAM, [0.8, 0.1, 0.5]),
        LabelledVector(SPAM, [1.0, 0.0, 0.0]),
        LabelledVector(HAM, [0.0, 1.0, 0.5]),
        LabelledVector(HAM, [0.1, 0.9, 0.5]),
    ]


# ---------------------------------------------------------------------------
# Naive Bayes
# ---------------------------------------------------------------------------

class TestNaiveBayesClassifier:
    """Tests for the multinomial Naive Bayes classifier."""

    def test_classifies_training_examples(self, examples):
        nb = NaiveBayesClassifier().train(examples)
        for example in examples:
            assert nb.classify(example.vector) == example.label

    def test_class_priors(self, examples):
        nb = NaiveBayesClassifier().train(examples)
        priors = nb.class_log_prior
        assert math.exp(priors[SPAM]) == pytest.approx(3 / 5)
        assert math.exp(priors[HAM]) == pytest.approx(2 / 5)

    def test_feature_probabilities_sum_to_one(self, examples):
        nb = NaiveBayesClassifier().train(examples)
        for cls in (HAM, SPAM):
            assert sum(math.exp(lp) for lp in nb.feature_log_prob(cls)) == pytest.approx(1.0)

    def test_laplace_smoothing(self, examples):
        nb = NaiveBayesClassifier(alpha=1.0).train(examples)
        # Ham totals: [0.1, 1.9, 1.0] -> sum 3.0, denominator 3.0 + 3 * 1.0
        assert math.exp(nb.feature_log_prob(HAM)[0]) == pytest.approx(1.1 / 6.0)

    def test_unseen_feature_has_nonzero_probability(self):
        examples = [
            LabelledVector(SPAM, [1.0, 0.0]),
            LabelledVector(HAM, [1.0, 0.0]),
        ]
        nb = NaiveBayesClassifier().train(examples)
        assert nb.feature_log_prob(SPAM)[1] > -math.inf

    def test_predict_proba_sums_to_one(self, examples):
        nb = NaiveBayesClassifier().train(examples)
        proba = nb.predict_proba([0.5, 0.5, 0.0])
        assert sum(proba.values()) == pytest.approx(1.0)
        assert all(p >= 0 for p in proba.values())

    def test_spam_probability(self, examples):
        nb = NaiveBayesClassifier().train(examples)
        assert nb.spam_probability([1.0, 0.0, 0.0]) > 0.5
        assert nb.spam_probability([0.0, 1.0, 0.0]) < 0.5

    def test_tie_resolves_to_ham(self):
        examples = [
            LabelledVector(SPAM, [1.0, 1.0]),
            LabelledVector(HAM, [1.0, 1.0]),
        ]
        nb = NaiveBayesClassifier().train(examples)
        assert nb.classify([1.0, 1.0]) == HAM
        assert nb.classify([0.0, 0.0]) == HAM

    def test_retrain_replaces_parameters(self, examples):
        nb = NaiveBayesClassifier().train(examples)
        flipped = [LabelledVector(HAM if e.label == SPAM else SPAM, e.vector) for e in examples]
        nb.train(flipped)
        assert nb.classify([1.0, 0.0, 0.0]) == HAM

    def test_ranked_features(self, examples):
        nb = NaiveBayesClassifier().train(examples)
        assert nb.ranked_positive_features() == [0, 2, 1]
        assert nb.ranked_negative_features() == [1, 2, 0]
        assert nb.ranked_positive_features(top_n=1) == [0]

    def test_supports_feature_ranking(self):
        assert NaiveBayesClassifier.supports_feature_ranking is True

    def test_clone_is_untrained_with_same_alpha(self, examples):
        nb = NaiveBayesClassifier(alpha=0.5).train(examples)
        clone = nb.clone()
        assert isinstance(clone, NaiveBayesClassifier)
        assert clone.alpha == 0.5
        assert not clone.is_trained

    def test_invalid_alpha_raises(self):
        with pytest.raises(ValueError, match="alpha"):
            NaiveBayesClassifier(alpha=0.0)

    def test_empty_training_set_raises(self):
        with pytest.raises(ValueError, match="empty"):
            NaiveBayesClassifier().train([])

    def test_missing_class_raises(self):
        only_spam = [LabelledVector(SPAM, [1.0]), LabelledVector(SPAM, [0.5])]
        with pytest.raises(ValueError, match="ham"):
            NaiveBayesClassifier().train(only_spam)

    def test_inconsistent_dimensions_raise(self):
        examples = [LabelledVector(SPAM, [1.0, 0.0]), LabelledVector(HAM, [1.0])]
        with pytest.raises(ValueError, match="same length"):
            NaiveBayesClassifier().train(examples)

    def test_wrong_vector_length_raises(self, examples):
        nb = NaiveBayesClassifier().train(examples)
        with pytest.raises(ValueError, match="features"):
            nb.classify([1.0])

    def test_classify_without_training_raises(self):
        with pytest.raises(NotTrainedError, match="not trained"):
            NaiveBayesClassifier().classify([1.0])

    def test_ranking_without_training_raises(self):
        with pytest.raises(NotTrainedError):
            NaiveBayesClassifier().ranked_positive_features()

    def test_serialization_roundtrip(self, examples):
        nb = NaiveBayesClassifier(alpha=0.5).train(examples)
        data = json.loads(json.dumps(nb.to_dict()))
        restored = classifier_from_dict(data)

        assert isinstance(restored, NaiveBayesClassifier)
        assert restored.alpha == 0.5
        assert restored.dimension == 3
        for vector in ([1.0, 0.0, 0.0], [0.0, 1.0, 0.5], [0.3, 0.3, 0.3]):
            assert restored.classify(vector) == nb.classify(vector)
            assert restored.spam_probability(vector) == pytest.approx(nb.spam_probability(vector))


# ---------------------------------------------------------------------------
# Majority baseline
# ---------------------------------------------------------------------------

class TestMajorityClassifier:
    def test_predicts_majority(self, examples):
        clf = MajorityClassifier().train(examples)
        assert clf.classify([0.0, 1.0, 0.0]) == SPAM

    def test_tie_resolves_to_ham(self):
        clf = MajorityClassifier().train([LabelledVector(SPAM, [1.0]), LabelledVector(HAM, [1.0])])
        assert clf.classify([1.0]) == HAM

    def test_ranking_unsupported(self, examples):
        clf = MajorityClassifier().train(examples)
        assert clf.supports_feature_ranking is False
        assert clf.ranked_positive_features(5) is None
        assert clf.ranked_negative_features(5) is None
        assert clf.spam_probability([1.0, 0.0, 0.0]) is None

    def test_classify_without_training_raises(self):
        with pytest.raises(NotTrainedError):
            MajorityClassifier().classify([1.0])

    def test_serialization_roundtrip(self, examples):
        clf = MajorityClassifier().train(examples)
        restored = classifier_from_dict(clf.to_dict())
        assert isinstance(restored, MajorityClassifier)
        assert restored.classify([0.0]) == SPAM


class TestRegistry:
    def test_get_classifier_with_kwargs(self):
        clf = get_classifier("naive_bayes", alpha=2.0)
        assert isinstance(clf, NaiveBayesClassifier)
        assert clf.alpha == 2.0

    def test_unknown_classifier_raises(self):
        with pytest.raises(ValueError, match="Unknown classifier"):
            get_classifier("svm")

    def test_unknown_tag_raises(self):
        with pytest.raises(ValueError, match="Unknown classifier"):
            classifier_from_dict({"type": "svm"})
