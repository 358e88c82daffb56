"""Data models for e-mail spam classification."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class EmailClass(str, Enum):
    """Ground-truth and predicted e-mail classes."""

    HAM = "ham"
    SPAM = "spam"


@dataclass(frozen=True)
class Email:
    """A parsed e-mail document.

    Attributes:
        name: Stable document identity (the file name for on-disk corpora).
        words: Ordered raw terms produced by the tokenizer.
        label: Explicit ground-truth label. When ``None`` the label is
            inferred from ``name``.
    """

    name: str
    words: tuple[str, ...] = ()
    label: Optional[EmailClass] = None

    def __post_init__(self) -> None:
        # Accept any iterable of words but store an immutable tuple
        object.__setattr__(self, "words", tuple(self.words))

    @property
    def word_count(self) -> int:
        return len(self.words)


@dataclass
class LabelledVector:
    """A dense feature vector paired with its class label."""

    label: EmailClass
    vector: list[float] = field(default_factory=list)

    @property
    def dimension(self) -> int:
        return len(self.vector)

    def to_dict(self) -> dict:
        return {"label": self.label.value, "vector": list(self.vector)}
