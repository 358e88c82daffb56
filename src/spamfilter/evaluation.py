"""Cross-validation and confusion-matrix accounting.

Each fold retrains a fresh pipeline on the other folds only, so nothing
from the held-out documents leaks into the vocabulary, the weighting
statistics, or the model.

Fold allocation rule: documents are dealt round-robin into ``k`` folds, so
with ``n = q * k + r`` documents the first ``r`` folds hold ``q + 1``
documents and the rest hold ``q``.
"""

from __future__ import annotations

import logging
import random
import statistics
from collections import defaultdict
from collections.abc import Hashable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from .models import EmailClass
from .pipeline import (
    DEFAULT_LOWER_PERCENTILE,
    DEFAULT_UPPER_PERCENTILE,
    Document,
    EmailClassifier,
)

logger = logging.getLogger(__name__)

CLASSES: tuple[EmailClass, ...] = (EmailClass.HAM, EmailClass.SPAM)


# ---------------------------------------------------------------------------
# Confusion Matrix
# ---------------------------------------------------------------------------

@dataclass
class ConfusionMatrix:
    """2x2 table of true vs predicted class counts."""

    counts: dict[tuple[EmailClass, EmailClass], int] = field(
        default_factory=lambda: {(t, p): 0 for t in CLASSES for p in CLASSES}
    )

    @classmethod
    def from_predictions(
        cls,
        y_true: Sequence[EmailClass],
        y_pred: Sequence[EmailClass],
    ) -> "ConfusionMatrix":
        if len(y_true) != len(y_pred):
            raise ValueError("y_true and y_pred must have the same length")
        matrix = cls()
        for true, pred in zip(y_true, y_pred):
            matrix.add(true, pred)
        return matrix

    def add(self, true: EmailClass, predicted: EmailClass) -> None:
        self.counts[(EmailClass(true), EmailClass(predicted))] += 1

    def count(self, true: EmailClass, predicted: EmailClass) -> int:
        return self.counts[(true, predicted)]

    def __add__(self, other: "ConfusionMatrix") -> "ConfusionMatrix":
        if not isinstance(other, ConfusionMatrix):
            return NotImplemented
        return ConfusionMatrix({key: self.counts[key] + other.counts[key] for key in self.counts})

    @classmethod
    def combine(cls, matrices: Iterable["ConfusionMatrix"]) -> "ConfusionMatrix":
        """Sum of several matrices."""
        total = cls()
        for matrix in matrices:
            total = total + matrix
        return total

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def correct(self) -> int:
        return sum(self.counts[(c, c)] for c in CLASSES)

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    def precision(self, cls: EmailClass) -> float:
        tp = self.counts[(cls, cls)]
        predicted = sum(self.counts[(t, cls)] for t in CLASSES)
        return tp / predicted if predicted else 0.0

    def recall(self, cls: EmailClass) -> float:
        tp = self.counts[(cls, cls)]
        actual = sum(self.counts[(cls, p)] for p in CLASSES)
        return tp / actual if actual else 0.0

    def f1(self, cls: EmailClass) -> float:
        p, r = self.precision(cls), self.recall(cls)
        return 2 * p * r / (p + r) if (p + r) > 0 else 0.0

    def to_dict(self) -> dict:
        return {
            "matrix": {
                t.value: {p.value: self.counts[(t, p)] for p in CLASSES} for t in CLASSES
            },
            "total": self.total,
            "accuracy": round(self.accuracy, 4),
            "per_class": {
                c.value: {
                    "precision": round(self.precision(c), 4),
                    "recall": round(self.recall(c), 4),
                    "f1": round(self.f1(c), 4),
                }
                for c in CLASSES
            },
        }

    def summary(self) -> str:
        """Human-readable matrix and per-class metrics."""
        lines = [
            f"{'':<12} {'pred ham':>10} {'pred spam':>10}",
        ]
        for t in CLASSES:
            lines.append(
                f"{'true ' + t.value:<12} {self.counts[(t, EmailClass.HAM)]:>10} "
                f"{self.counts[(t, EmailClass.SPAM)]:>10}"
            )
        lines += [
            "",
            f"Accuracy: {self.accuracy:.2%} ({self.correct}/{self.total})",
            f"{'Class':<8} {'Precision':>10} {'Recall':>10} {'F1':>10}",
        ]
        for c in CLASSES:
            lines.append(
                f"{c.value:<8} {self.precision(c):>10.4f} {self.recall(c):>10.4f} {self.f1(c):>10.4f}"
            )
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Fold partitioning
# ---------------------------------------------------------------------------

def k_fold(
    labels: Sequence[Hashable],
    k: int,
    seed: Optional[int] = None,
    stratify: bool = False,
) -> list[list[int]]:
    """Partition item indices into ``k`` disjoint folds.

    Items are dealt round-robin, so the first ``len(labels) % k`` folds get
    one extra item. The union of all folds is every index exactly once.

    Args:
        labels: One label per item (only used when stratifying).
        k: Number of folds.
        seed: Shuffle the items with this seed first; keep input order
            when ``None``.
        stratify: Group items by label before dealing so every fold gets
            roughly the same class distribution.

    Returns:
        ``k`` sorted lists of item indices.

    Raises:
        ValueError: If ``k <= 1`` or ``k`` exceeds the number of items.
    """
    n = len(labels)
    if k <= 1:
        raise ValueError(f"Number of folds must be at least 2, got {k}")
    if k > n:
        raise ValueError(f"Number of folds ({k}) exceeds number of documents ({n})")

    order = list(range(n))
    rng = random.Random(seed) if seed is not None else None
    if rng is not None:
        rng.shuffle(order)

    if stratify:
        by_label: dict[Hashable, list[int]] = defaultdict(list)
        for idx in order:
            by_label[labels[idx]].append(idx)
        order = [idx for label in sorted(by_label, key=str) for idx in by_label[label]]

    folds: list[list[int]] = [[] for _ in range(k)]
    for position, idx in enumerate(order):
        folds[position % k].append(idx)
    return [sorted(fold) for fold in folds]


# ---------------------------------------------------------------------------
# Cross-Validation
# ---------------------------------------------------------------------------

@dataclass
class FoldResult:
    """Outcome of training on k-1 folds and testing on the held-out one."""

    fold: int
    train_size: int
    test_size: int
    confusion: ConfusionMatrix

    @property
    def accuracy(self) -> float:
        return self.confusion.accuracy


@dataclass
class CrossValidationResult:
    """Per-fold results plus aggregate statistics."""

    folds: list[FoldResult] = field(default_factory=list)

    @property
    def k(self) -> int:
        return len(self.folds)

    @property
    def combined(self) -> ConfusionMatrix:
        return ConfusionMatrix.combine(f.confusion for f in self.folds)

    @property
    def accuracies(self) -> list[float]:
        return [f.accuracy for f in self.folds]

    @property
    def mean_accuracy(self) -> float:
        return statistics.fmean(self.accuracies) if self.folds else 0.0

    @property
    def std_dev(self) -> float:
        """Population standard deviation of per-fold accuracy."""
        return statistics.pstdev(self.accuracies) if self.folds else 0.0

    def to_dict(self) -> dict:
        return {
            "k": self.k,
            "combined": self.combined.to_dict(),
            "accuracies": [round(a, 4) for a in self.accuracies],
            "mean_accuracy": round(self.mean_accuracy, 4),
            "std_dev": round(self.std_dev, 4),
        }


class CrossValidator:
    """k-fold cross-validation of an ``EmailClassifier`` configuration.

    Example::

        cv = CrossValidator(EmailClassifier(), k=10)
        result = cv.evaluate(list_corpus("traindata/"))
        print(result.combined.summary())
        print(f"StdDev: {result.std_dev:f}")

    Args:
        template: Pipeline whose configuration is reused; each fold trains
            ``template.fresh()``, never the template itself.
        k: Number of folds.
        seed: Shuffle seed for fold assignment (``None`` keeps input order).
        stratify: Balance the class distribution across folds.
        workers: Folds evaluated concurrently.
    """

    def __init__(
        self,
        template: EmailClassifier,
        k: int = 10,
        seed: Optional[int] = None,
        stratify: bool = False,
        workers: int = 1,
    ) -> None:
        self.template = template
        self.k = k
        self.seed = seed
        self.stratify = stratify
        self.workers = workers

    def evaluate(
        self,
        documents: Iterable[Document],
        lower_percentile: Optional[float] = None,
        upper_percentile: Optional[float] = None,
    ) -> CrossValidationResult:
        """Train and test once per fold.

        Raises:
            ValueError: If ``k <= 1`` or ``k`` exceeds the number of
                documents, or if a training split lacks one of the classes.
        """
        lower = DEFAULT_LOWER_PERCENTILE if lower_percentile is None else lower_percentile
        upper = DEFAULT_UPPER_PERCENTILE if upper_percentile is None else upper_percentile

        documents = list(documents)
        if self.k <= 1:
            raise ValueError(f"Number of folds must be at least 2, got {self.k}")
        if self.k > len(documents):
            raise ValueError(
                f"Number of folds ({self.k}) exceeds number of documents ({len(documents)})"
            )

        # Parsing is per-document and label-free, so it is safe to share
        emails = self.template.load_emails(documents, workers=self.workers)
        labels = [self.template.label_for(email) for email in emails]
        folds = k_fold(labels, self.k, seed=self.seed, stratify=self.stratify)

        def run(fold_number: int) -> FoldResult:
            held_out = set(folds[fold_number])
            train_set = [e for i, e in enumerate(emails) if i not in held_out]
            test_idx = folds[fold_number]

            pipeline = self.template.fresh()
            pipeline.train(train_set, lower, upper)

            matrix = ConfusionMatrix()
            for i in test_idx:
                matrix.add(labels[i], pipeline.classify(emails[i]))

            logger.info(
                "Fold %d/%d: trained on %d, tested on %d, accuracy %.4f",
                fold_number + 1, self.k, len(train_set), len(test_idx), matrix.accuracy,
            )
            return FoldResult(
                fold=fold_number,
                train_size=len(train_set),
                test_size=len(test_idx),
                confusion=matrix,
            )

        if self.workers > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                results = list(pool.map(run, range(self.k)))
        else:
            results = [run(f) for f in range(self.k)]

        return CrossValidationResult(folds=results)
