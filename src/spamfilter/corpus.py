"""Training corpus helpers: directory listing and label inference.

A training corpus is a flat directory of message files whose names encode
the ground truth: any name containing ``"ham"`` is ham, everything else is
spam (``ham-0001.eml``, ``spam-0042.eml``).
"""

from __future__ import annotations

from pathlib import Path

from .models import Email, EmailClass

HAM_MARKER = "ham"


def infer_label(name: str) -> EmailClass:
    """Ground-truth label encoded in a document name."""
    return EmailClass.HAM if HAM_MARKER in name else EmailClass.SPAM


def label_of(email: Email) -> EmailClass:
    """Explicit label of ``email`` if it has one, else the inferred label."""
    return email.label if email.label is not None else infer_label(email.name)


def list_corpus(directory: str | Path) -> list[Path]:
    """Sorted regular files of a corpus directory, hidden files excluded.

    Raises:
        FileNotFoundError: If the directory does not exist.
        NotADirectoryError: If the path is not a directory.
    """
    root = Path(directory)
    if not root.exists():
        raise FileNotFoundError(f"Corpus directory not found: {root}")
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")
    return sorted(
        p for p in root.iterdir() if p.is_file() and not p.name.startswith(".")
    )
