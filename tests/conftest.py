"""Shared test fixtures for spamfilter tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from spamfilter.models import Email

# Each class has distinctive vocabulary to make classification feasible
SPAM_TEXTS = [
    "free cash prize winner click now",
    "claim your free prize money today",
    "winner winner free cash offer",
    "click here for free money offer",
    "cheap offer cash prize click",
    "money back guarantee free offer winner",
]

HAM_TEXTS = [
    "meeting agenda for the project review",
    "project report attached for review",
    "team lunch after the meeting",
    "schedule the project meeting with the team",
    "quarterly report review with the team",
    "agenda and schedule for lunch meeting",
]


def _emails(prefix: str, texts: list[str]) -> list[Email]:
    return [
        Email(name=f"{prefix}-{i:02d}", words=text.split())
        for i, text in enumerate(texts, start=1)
    ]


@pytest.fixture
def spam_emails() -> list[Email]:
    return _emails("spam", SPAM_TEXTS)


@pytest.fixture
def ham_emails() -> list[Email]:
    return _emails("ham", HAM_TEXTS)


@pytest.fixture
def corpus(spam_emails: list[Email], ham_emails: list[Email]) -> list[Email]:
    """Twelve labelled in-memory emails, ham and spam interleaved."""
    mixed = []
    for spam, ham in zip(spam_emails, ham_emails):
        mixed.extend([ham, spam])
    return mixed


@pytest.fixture
def corpus_dir(tmp_path: Path) -> Path:
    """The same corpus written as RFC 822 message files."""
    root = tmp_path / "traindata"
    root.mkdir()
    for prefix, texts in (("spam", SPAM_TEXTS), ("ham", HAM_TEXTS)):
        for i, text in enumerate(texts, start=1):
            message = (
                "From: sender@example.com\n"
                "To: user@example.org\n"
                f"Subject: message {i}\n"
                "\n"
                f"{text}\n"
            )
            (root / f"{prefix}-{i:02d}.eml").write_text(message, encoding="utf-8")
    return root


@pytest.fixture
def spam_message() -> str:
    return (
        "From: promo@cheap.biz\n"
        "Subject: free prize\n"
        "\n"
        "free cash prize winner click offer\n"
    )


@pytest.fixture
def ham_message() -> str:
    return (
        "From: boss@company.com\n"
        "Subject: project meeting\n"
        "\n"
        "project meeting agenda review with the team\n"
    )
