"""Probabilistic classifiers over dense e-mail feature vectors.

Every classifier implements ``train`` and ``classify``. Feature ranking is
an optional capability: variants that cannot rank features report
``supports_feature_ranking = False`` and return ``None`` from the ranking
methods instead of raising.

Features:
- Multinomial Naive Bayes with Laplace smoothing
- Majority-class baseline
- Tagged dictionary serialization for model persistence
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Sequence
from typing import Optional

from .models import EmailClass, LabelledVector

#: Fixed order in which classes are scored; ties resolve to the first entry.
CLASS_ORDER: tuple[EmailClass, ...] = (EmailClass.HAM, EmailClass.SPAM)


class NotTrainedError(RuntimeError):
    """Raised when a model is used before a successful ``train``."""


def _validate_examples(examples: Sequence[LabelledVector]) -> int:
    """Check a training set and return its vector dimension."""
    if not examples:
        raise ValueError("Cannot train on an empty set of examples")

    dimension = len(examples[0].vector)
    for example in examples:
        if len(example.vector) != dimension:
            raise ValueError(
                f"All vectors must have the same length: expected {dimension}, "
                f"got {len(example.vector)}"
            )

    counts = Counter(example.label for example in examples)
    missing = [cls.value for cls in CLASS_ORDER if counts[cls] == 0]
    if missing:
        raise ValueError(
            f"Training set has zero examples of class(es): {', '.join(missing)}"
        )
    return dimension


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class Classifier(ABC):
    """Common interface of all e-mail classifiers."""

    #: Tag stored in persisted models.
    name: str = ""
    supports_feature_ranking: bool = False

    @property
    @abstractmethod
    def is_trained(self) -> bool:
        ...

    @abstractmethod
    def train(self, examples: Sequence[LabelledVector]) -> "Classifier":
        """Learn model parameters, replacing any previous ones.

        Raises:
            ValueError: On an empty training set, a class without examples,
                or vectors of inconsistent length.
        """
        ...

    @abstractmethod
    def classify(self, vector: Sequence[float]) -> EmailClass:
        """Predict the class of one feature vector.

        Raises:
            NotTrainedError: If the classifier has not been trained.
        """
        ...

    def ranked_positive_features(self, top_n: Optional[int] = None) -> Optional[list[int]]:
        """Feature indices most indicative of spam first, or ``None`` if unsupported."""
        return None

    def ranked_negative_features(self, top_n: Optional[int] = None) -> Optional[list[int]]:
        """Feature indices most indicative of ham first, or ``None`` if unsupported."""
        return None

    def spam_probability(self, vector: Sequence[float]) -> Optional[float]:
        """Posterior probability of spam, or ``None`` if the model has no notion of it."""
        return None

    def get_params(self) -> dict:
        """Constructor arguments of this classifier."""
        return {}

    def clone(self) -> "Classifier":
        """Untrained classifier of the same variant and configuration."""
        return type(self)(**self.get_params())

    @abstractmethod
    def to_dict(self) -> dict:
        ...

    def _require_trained(self) -> None:
        if not self.is_trained:
            raise NotTrainedError("Classifier not trained. Call train() first.")


# ---------------------------------------------------------------------------
# Multinomial Naive Bayes
# ---------------------------------------------------------------------------

class NaiveBayesClassifier(Classifier):
    """Multinomial Naive Bayes classifier with Laplace smoothing.

    Weighted feature values are treated as frequency-like evidence:

    ``P(f|c) = (sum of weights of f in class c + alpha) / (total weight in c + alpha * |V|)``

    A vector is scored per class as ``log P(c) + sum_f x_f * log P(f|c)``.
    Equal scores resolve to ham.

    Args:
        alpha: Laplace smoothing parameter (1.0 = standard smoothing).
    """

    name = "naive_bayes"
    supports_feature_ranking = True

    def __init__(self, alpha: float = 1.0) -> None:
        if alpha <= 0:
            raise ValueError(f"alpha must be positive, got {alpha!r}")
        self.alpha = alpha
        self._class_log_prior: dict[EmailClass, float] = {}
        self._feature_log_prob: dict[EmailClass, list[float]] = {}
        self._dimension = 0

    @property
    def is_trained(self) -> bool:
        return bool(self._class_log_prior)

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def class_log_prior(self) -> dict[EmailClass, float]:
        return dict(self._class_log_prior)

    def feature_log_prob(self, cls: EmailClass) -> list[float]:
        self._require_trained()
        return list(self._feature_log_prob[cls])

    def get_params(self) -> dict:
        return {"alpha": self.alpha}

    def train(self, examples: Sequence[LabelledVector]) -> "NaiveBayesClassifier":
        dimension = _validate_examples(examples)
        n_total = len(examples)

        class_counts: Counter[EmailClass] = Counter()
        feature_sums: dict[EmailClass, list[float]] = {
            cls: [0.0] * dimension for cls in CLASS_ORDER
        }
        for example in examples:
            class_counts[example.label] += 1
            sums = feature_sums[example.label]
            for i, value in enumerate(example.vector):
                if value:
                    sums[i] += value

        class_log_prior: dict[EmailClass, float] = {}
        feature_log_prob: dict[EmailClass, list[float]] = {}
        for cls in CLASS_ORDER:
            class_log_prior[cls] = math.log(class_counts[cls] / n_total)

            sums = feature_sums[cls]
            denominator = sum(sums) + self.alpha * dimension
            feature_log_prob[cls] = [
                math.log((s + self.alpha) / denominator) for s in sums
            ]

        # Publish all parameters together
        self._dimension = dimension
        self._feature_log_prob = feature_log_prob
        self._class_log_prior = class_log_prior
        return self

    def log_scores(self, vector: Sequence[float]) -> dict[EmailClass, float]:
        """Unnormalized log posterior of each class."""
        self._require_trained()
        if len(vector) != self._dimension:
            raise ValueError(
                f"Vector has {len(vector)} features, model expects {self._dimension}"
            )

        scores: dict[EmailClass, float] = {}
        for cls in CLASS_ORDER:
            score = self._class_log_prior[cls]
            log_probs = self._feature_log_prob[cls]
            for i, value in enumerate(vector):
                if value:
                    score += value * log_probs[i]
            scores[cls] = score
        return scores

    def classify(self, vector: Sequence[float]) -> EmailClass:
        scores = self.log_scores(vector)
        best = CLASS_ORDER[0]
        for cls in CLASS_ORDER[1:]:
            if scores[cls] > scores[best]:
                best = cls
        return best

    def predict_proba(self, vector: Sequence[float]) -> dict[EmailClass, float]:
        """Posterior class probabilities (log-sum-exp for numerical stability)."""
        log_scores = self.log_scores(vector)
        max_score = max(log_scores.values())
        exp_scores = {cls: math.exp(s - max_score) for cls, s in log_scores.items()}
        total = sum(exp_scores.values())
        return {cls: score / total for cls, score in exp_scores.items()}

    def spam_probability(self, vector: Sequence[float]) -> Optional[float]:
        return self.predict_proba(vector)[EmailClass.SPAM]

    def log_likelihood_ratios(self) -> list[float]:
        """``log P(f|spam) - log P(f|ham)`` for every feature."""
        self._require_trained()
        spam = self._feature_log_prob[EmailClass.SPAM]
        ham = self._feature_log_prob[EmailClass.HAM]
        return [s - h for s, h in zip(spam, ham)]

    def ranked_positive_features(self, top_n: Optional[int] = None) -> Optional[list[int]]:
        ratios = self.log_likelihood_ratios()
        ranked = sorted(range(len(ratios)), key=lambda i: (-ratios[i], i))
        return ranked[:top_n] if top_n is not None else ranked

    def ranked_negative_features(self, top_n: Optional[int] = None) -> Optional[list[int]]:
        ratios = self.log_likelihood_ratios()
        ranked = sorted(range(len(ratios)), key=lambda i: (ratios[i], i))
        return ranked[:top_n] if top_n is not None else ranked

    def to_dict(self) -> dict:
        """Serialize classifier state."""
        return {
            "type": self.name,
            "alpha": self.alpha,
            "dimension": self._dimension,
            "class_log_prior": {
                cls.value: lp for cls, lp in self._class_log_prior.items()
            },
            "feature_log_prob": {
                cls.value: lps for cls, lps in self._feature_log_prob.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NaiveBayesClassifier":
        """Deserialize classifier from a dictionary."""
        nb = cls(alpha=data["alpha"])
        nb._dimension = data["dimension"]
        nb._feature_log_prob = {
            EmailClass(k): list(v) for k, v in data["feature_log_prob"].items()
        }
        nb._class_log_prior = {
            EmailClass(k): v for k, v in data["class_log_prior"].items()
        }
        return nb


# ---------------------------------------------------------------------------
# Majority-class baseline
# ---------------------------------------------------------------------------

class MajorityClassifier(Classifier):
    """Always predicts the most frequent training class (ham on ties).

    Useful as a cross-validation baseline. Does not rank features.
    """

    name = "majority"

    def __init__(self) -> None:
        self._majority: Optional[EmailClass] = None

    @property
    def is_trained(self) -> bool:
        return self._majority is not None

    def train(self, examples: Sequence[LabelledVector]) -> "MajorityClassifier":
        _validate_examples(examples)
        counts = Counter(example.label for example in examples)
        self._majority = max(CLASS_ORDER, key=lambda c: (counts[c], c is EmailClass.HAM))
        return self

    def classify(self, vector: Sequence[float]) -> EmailClass:
        self._require_trained()
        return self._majority  # type: ignore[return-value]

    def to_dict(self) -> dict:
        return {
            "type": self.name,
            "majority": self._majority.value if self._majority else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "MajorityClassifier":
        clf = cls()
        if data.get("majority"):
            clf._majority = EmailClass(data["majority"])
        return clf


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

CLASSIFIERS: dict[str, type[Classifier]] = {
    NaiveBayesClassifier.name: NaiveBayesClassifier,
    MajorityClassifier.name: MajorityClassifier,
}


def get_classifier(name: str, **kwargs) -> Classifier:
    """Instantiate an untrained classifier by its tag.

    Raises:
        ValueError: If ``name`` is not a known classifier.
    """
    if name not in CLASSIFIERS:
        raise ValueError(f"Unknown classifier: {name!r}. Known: {sorted(CLASSIFIERS)}")
    return CLASSIFIERS[name](**kwargs)


def classifier_from_dict(data: dict) -> Classifier:
    """Rebuild a classifier from its tagged dictionary form."""
    tag = data.get("type")
    if tag not in CLASSIFIERS:
        raise ValueError(f"Unknown classifier: {tag!r}. Known: {sorted(CLASSIFIERS)}")
    return CLASSIFIERS[tag].from_dict(data)  # type: ignore[attr-defined]
