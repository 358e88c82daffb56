"""Spam Filter -- statistical ham/spam e-mail classification."""

__version__ = "0.1.0"

from .classifiers import (
    Classifier,
    MajorityClassifier,
    NaiveBayesClassifier,
    NotTrainedError,
    get_classifier,
)
from .config import Settings
from .corpus import infer_label, list_corpus
from .evaluation import (
    ConfusionMatrix,
    CrossValidationResult,
    CrossValidator,
    FoldResult,
    k_fold,
)
from .index import InvertedIndex
from .models import Email, EmailClass, LabelledVector
from .parsers import EmailParser
from .pipeline import EmailClassifier, TrainingSummary
from .preprocessing import TermNormalizer
from .vectors import Vocabulary, build_vector
from .weighting import (
    BinaryWeighting,
    FeatureWeighting,
    FrequencyWeighting,
    TfidfWeighting,
    get_weighting,
)

__all__ = [
    # Core
    "EmailClassifier",
    "TrainingSummary",
    "Email",
    "EmailClass",
    "LabelledVector",
    "Settings",
    # Documents
    "EmailParser",
    "TermNormalizer",
    "infer_label",
    "list_corpus",
    # Features
    "InvertedIndex",
    "Vocabulary",
    "build_vector",
    "FeatureWeighting",
    "FrequencyWeighting",
    "TfidfWeighting",
    "BinaryWeighting",
    "get_weighting",
    # Classification
    "Classifier",
    "NaiveBayesClassifier",
    "MajorityClassifier",
    "NotTrainedError",
    "get_classifier",
    # Evaluation
    "ConfusionMatrix",
    "CrossValidator",
    "CrossValidationResult",
    "FoldResult",
    "k_fold",
]
