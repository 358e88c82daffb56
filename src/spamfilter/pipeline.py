"""End-to-end e-mail classification pipeline.

``EmailClassifier`` wires the pieces together:

1. documents are parsed into words and normalized into terms
2. terms are collected in an ``InvertedIndex``
3. rare and ubiquitous terms are pruned by document-frequency percentile
4. the surviving terms are frozen into a ``Vocabulary``
5. every document becomes a dense vector through a ``FeatureWeighting``
6. a ``Classifier`` is trained on the labelled vectors

The classifier is Untrained until ``train`` completes, and every ``train``
call rebuilds all state from scratch. A failed ``train`` leaves it
Untrained. Once trained, the vocabulary and model are never mutated, so
concurrent ``classify`` calls are safe.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .classifiers import (
    Classifier,
    NaiveBayesClassifier,
    NotTrainedError,
    classifier_from_dict,
)
from .corpus import label_of
from .index import InvertedIndex, validate_percentile
from .models import Email, EmailClass, LabelledVector
from .parsers import EmailParser
from .preprocessing import TermNormalizer
from .vectors import Vocabulary, build_vector
from .weighting import FeatureWeighting, FrequencyWeighting, weighting_from_dict

logger = logging.getLogger(__name__)

#: A document is either already parsed or a path to a message file.
Document = Union[Email, str, Path]

MODEL_FORMAT_VERSION = "1.0"

DEFAULT_LOWER_PERCENTILE = 0.001
DEFAULT_UPPER_PERCENTILE = 0.50


@dataclass(frozen=True)
class TrainedModel:
    """Everything captured by a successful ``train``.

    Published as a single object so readers never observe a mix of old
    and new state.
    """

    vocabulary: Vocabulary
    max_raw_count: int
    document_count: int
    classifier: Classifier


@dataclass(frozen=True)
class TrainingSummary:
    """Statistics of one training pass."""

    documents: int
    vectors: int
    features: int
    pruned_terms: int
    max_raw_count: int
    lower_percentile: float
    upper_percentile: float

    def to_dict(self) -> dict:
        return {
            "documents": self.documents,
            "vectors": self.vectors,
            "features": self.features,
            "pruned_terms": self.pruned_terms,
            "max_raw_count": self.max_raw_count,
            "lower_percentile": self.lower_percentile,
            "upper_percentile": self.upper_percentile,
        }


def _chunks(items: Sequence, n: int) -> list[Sequence]:
    size = max(1, -(-len(items) // n))
    return [items[i : i + size] for i in range(0, len(items), size)]


class EmailClassifier:
    """Ham/spam classification pipeline with model persistence.

    Example::

        clf = EmailClassifier(NaiveBayesClassifier(), FrequencyWeighting())
        clf.train(list_corpus("traindata/"))

        clf.classify(Path("inbox/message.eml"))   # EmailClass.SPAM
        clf.save("model.json")

        loaded = EmailClassifier.load("model.json")

    Args:
        classifier: Classifier variant to train (its configuration is
            cloned on every ``train``). Defaults to Naive Bayes.
        weighting: Feature weighting strategy. Defaults to frequency.
        use_text_preprocessing: Normalize raw words with ``normalizer``.
        use_feature_selection: Prune terms by document-frequency percentile.
        parser: Parser used for documents given as paths.
        normalizer: Term normalizer.
        label_for: Label inference for training documents.
    """

    def __init__(
        self,
        classifier: Optional[Classifier] = None,
        weighting: Optional[FeatureWeighting] = None,
        use_text_preprocessing: bool = True,
        use_feature_selection: bool = True,
        parser: Optional[EmailParser] = None,
        normalizer: Optional[TermNormalizer] = None,
        label_for: Callable[[Email], EmailClass] = label_of,
    ) -> None:
        self._prototype = classifier or NaiveBayesClassifier()
        self.weighting = weighting or FrequencyWeighting()
        self.use_text_preprocessing = use_text_preprocessing
        self.use_feature_selection = use_feature_selection
        self.parser = parser or EmailParser()
        self.normalizer = normalizer or TermNormalizer()
        self.label_for = label_for
        self._model: Optional[TrainedModel] = None
        self._training: Optional[TrainingSummary] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def is_trained(self) -> bool:
        return self._model is not None

    @property
    def classifier(self) -> Classifier:
        """The trained classifier, or the untrained prototype."""
        model = self._model
        return model.classifier if model else self._prototype

    @property
    def vocabulary(self) -> Vocabulary:
        return self._require_model().vocabulary

    @property
    def term_count(self) -> int:
        """Feature-vector dimension (0 while untrained)."""
        model = self._model
        return model.vocabulary.size if model else 0

    @property
    def max_raw_count(self) -> int:
        return self._require_model().max_raw_count

    @property
    def document_count(self) -> int:
        return self._require_model().document_count

    @property
    def training_summary(self) -> Optional[TrainingSummary]:
        return self._training

    def fresh(self) -> "EmailClassifier":
        """Untrained pipeline with the same configuration."""
        return EmailClassifier(
            classifier=self._prototype.clone(),
            weighting=self.weighting,
            use_text_preprocessing=self.use_text_preprocessing,
            use_feature_selection=self.use_feature_selection,
            parser=self.parser,
            normalizer=self.normalizer,
            label_for=self.label_for,
        )

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def train(
        self,
        documents: Iterable[Document],
        lower_percentile: float = DEFAULT_LOWER_PERCENTILE,
        upper_percentile: float = DEFAULT_UPPER_PERCENTILE,
        workers: int = 1,
    ) -> TrainingSummary:
        """Build vocabulary and model from a labelled document set.

        Args:
            documents: Emails or paths to message files.
            lower_percentile: Terms in fewer than
                ``floor(lower * n_docs)`` documents are pruned.
            upper_percentile: Terms in more than ``floor(upper * n_docs)``
                documents are pruned.
            workers: Threads used to parse and index documents.

        Returns:
            TrainingSummary of the pass.

        Raises:
            ValueError: On invalid percentiles (before any document is
                read), duplicate document names, or a training set lacking
                one of the classes.
            OSError: If a document cannot be read. Training is aborted.
        """
        self._model = None
        self._training = None

        validate_percentile(lower_percentile, "lower percentile")
        validate_percentile(upper_percentile, "upper percentile")
        if lower_percentile > upper_percentile:
            raise ValueError(
                f"lower percentile ({lower_percentile}) must not exceed "
                f"upper percentile ({upper_percentile})"
            )

        emails = self.load_emails(documents, workers=workers)
        labels: dict[str, EmailClass] = {}
        for email in emails:
            if email.name in labels:
                raise ValueError(f"Duplicate document name: {email.name}")
            labels[email.name] = self.label_for(email)

        index = self._build_index(emails, workers)
        pruned = 0
        if self.use_feature_selection:
            pruned = index.prune_by_percentile(lower_percentile, upper_percentile)

        vocabulary = Vocabulary.from_index(index)
        max_raw_count = index.max_raw_count()
        document_count = index.document_count()

        examples = [
            LabelledVector(
                label=labels[document],
                vector=build_vector(
                    index, vocabulary, self.weighting, document, max_raw_count, document_count
                ),
            )
            for document in index.documents()
        ]
        if len(examples) < len(emails):
            logger.debug("%d documents have no terms left and are skipped", len(emails) - len(examples))

        classifier = self._prototype.clone()
        classifier.train(examples)

        self._model = TrainedModel(
            vocabulary=vocabulary,
            max_raw_count=max_raw_count,
            document_count=document_count,
            classifier=classifier,
        )
        self._training = TrainingSummary(
            documents=len(emails),
            vectors=len(examples),
            features=vocabulary.size,
            pruned_terms=pruned,
            max_raw_count=max_raw_count,
            lower_percentile=lower_percentile,
            upper_percentile=upper_percentile,
        )
        logger.info(
            "Trained %s on %d documents with %d features (%d terms pruned)",
            classifier.name, len(examples), vocabulary.size, pruned,
        )
        return self._training

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def vectorize(self, document: Document) -> list[float]:
        """Feature vector of a document under the trained vocabulary."""
        return self._vectorize(self._require_model(), self.load_email(document))

    def classify(self, document: Document) -> EmailClass:
        """Predict whether a document is ham or spam.

        Raises:
            NotTrainedError: If no ``train`` has completed.
        """
        model = self._require_model()
        vector = self._vectorize(model, self.load_email(document))
        return model.classifier.classify(vector)

    def spam_probability(self, document: Document) -> Optional[float]:
        """Posterior spam probability, when the classifier provides one."""
        model = self._require_model()
        vector = self._vectorize(model, self.load_email(document))
        return model.classifier.spam_probability(vector)

    def classify_batch(self, documents: Iterable[Document], workers: int = 1) -> list[EmailClass]:
        """Classify several documents, preserving input order."""
        self._require_model()
        documents = list(documents)
        if workers <= 1:
            return [self.classify(d) for d in documents]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self.classify, documents))

    def top_features(self, top_n: int = 20) -> Optional[tuple[list[str], list[str]]]:
        """Most spam-indicative and most ham-indicative terms.

        Returns:
            ``(spam_terms, ham_terms)``, or ``None`` when the classifier
            does not rank features.
        """
        model = self._require_model()
        positive = model.classifier.ranked_positive_features(top_n)
        negative = model.classifier.ranked_negative_features(top_n)
        if positive is None or negative is None:
            return None
        vocab = model.vocabulary
        return [vocab.term_at(i) for i in positive], [vocab.term_at(i) for i in negative]

    # ------------------------------------------------------------------
    # Documents and terms
    # ------------------------------------------------------------------

    def load_email(self, document: Document) -> Email:
        """Parse a path, or pass an already-parsed Email through."""
        if isinstance(document, Email):
            return document
        return self.parser.parse(Path(document))

    def load_emails(self, documents: Iterable[Document], workers: int = 1) -> list[Email]:
        documents = list(documents)
        if workers <= 1 or len(documents) < 2:
            return [self.load_email(d) for d in documents]
        with ThreadPoolExecutor(max_workers=workers) as pool:
            return list(pool.map(self.load_email, documents))

    def terms(self, email: Email) -> list[str]:
        """Index terms of an email, after optional normalization."""
        if not self.use_text_preprocessing:
            return list(email.words)
        normalized = (self.normalizer(word) for word in email.words)
        return [term for term in normalized if term is not None]

    def _index_partial(self, emails: Sequence[Email]) -> InvertedIndex:
        index = InvertedIndex()
        for email in emails:
            index.add_all(self.terms(email), email.name)
        return index

    def _build_index(self, emails: Sequence[Email], workers: int) -> InvertedIndex:
        if workers <= 1 or len(emails) < 2:
            return self._index_partial(emails)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            partials = list(pool.map(self._index_partial, _chunks(emails, workers)))
        index = InvertedIndex()
        for partial in partials:
            index.merge(partial)
        return index

    def _vectorize(self, model: TrainedModel, email: Email) -> list[float]:
        # Document-local index: keeps corpus statistics untouched
        local = InvertedIndex()
        for term in self.terms(email):
            if term in model.vocabulary:
                local.add(term, email.name)
        return build_vector(
            local,
            model.vocabulary,
            self.weighting,
            email.name,
            model.max_raw_count,
            model.document_count,
        )

    def _require_model(self) -> TrainedModel:
        model = self._model
        if model is None:
            raise NotTrainedError("Classifier not trained. Call train() first.")
        return model

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Serialize the trained pipeline."""
        model = self._model
        if model is None:
            raise NotTrainedError("Cannot save untrained classifier.")
        return {
            "version": MODEL_FORMAT_VERSION,
            "use_text_preprocessing": self.use_text_preprocessing,
            "use_feature_selection": self.use_feature_selection,
            "parser": self.parser.to_dict(),
            "normalizer": self.normalizer.to_dict(),
            "weighting": self.weighting.to_dict(),
            "max_raw_count": model.max_raw_count,
            "document_count": model.document_count,
            "vocabulary": model.vocabulary.to_dict(),
            "classifier": model.classifier.to_dict(),
            "training": self._training.to_dict() if self._training else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EmailClassifier":
        """Rebuild a trained pipeline.

        Raises:
            ValueError: On an unsupported format version, unknown variant
                tags, or a vocabulary that does not match the classifier.
        """
        version = data.get("version")
        if version != MODEL_FORMAT_VERSION:
            raise ValueError(f"Unsupported model format version: {version!r}")

        classifier = classifier_from_dict(data["classifier"])
        vocabulary = Vocabulary.from_dict(data["vocabulary"])
        dimension = getattr(classifier, "dimension", None)
        if dimension is not None and dimension != vocabulary.size:
            raise ValueError(
                f"Vocabulary size {vocabulary.size} does not match classifier "
                f"dimension {dimension}"
            )

        pipeline = cls(
            classifier=classifier.clone(),
            weighting=weighting_from_dict(data["weighting"]),
            use_text_preprocessing=data["use_text_preprocessing"],
            use_feature_selection=data["use_feature_selection"],
            parser=EmailParser.from_dict(data.get("parser", {})),
            normalizer=TermNormalizer.from_dict(data.get("normalizer", {})),
        )
        pipeline._model = TrainedModel(
            vocabulary=vocabulary,
            max_raw_count=data["max_raw_count"],
            document_count=data["document_count"],
            classifier=classifier,
        )
        training = data.get("training")
        if training:
            pipeline._training = TrainingSummary(**training)
        return pipeline

    def save(self, path: str | Path) -> None:
        """Save the trained model to an indented JSON file.

        Raises:
            NotTrainedError: If the classifier has not been trained.
        """
        model_data = self.to_dict()

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(model_data, f, indent=2)
        logger.info("Saved model to %s", path)

    @classmethod
    def load(cls, path: str | Path) -> "EmailClassifier":
        """Load a trained model from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return cls.from_dict(data)
