"""Tests for corpus listing, label inference, and the data models."""

from __future__ import annotations

from pathlib import Path

import pytest

from spamfilter.corpus import infer_label, label_of, list_corpus
from spamfilter.models import Email, EmailClass, LabelledVector


class TestLabels:
    @pytest.mark.parametrize("name,expected", [
        ("ham-0001.eml", EmailClass.HAM),
        ("easy_ham_42", EmailClass.HAM),
        ("spam-0001.eml", EmailClass.SPAM),
        ("message.txt", EmailClass.SPAM),
        ("HAM-upper.eml", EmailClass.SPAM),
    ])
    def test_infer_label(self, name, expected):
        assert infer_label(name) == expected

    def test_explicit_label_wins(self):
        assert label_of(Email("ham-1", label=EmailClass.SPAM)) == EmailClass.SPAM
        assert label_of(Email("ham-1")) == EmailClass.HAM


class TestListCorpus:
    def test_sorted_files_only(self, tmp_path: Path):
        for name in ["spam-2.eml", "ham-1.eml", ".DS_Store"]:
            (tmp_path / name).write_text("x", encoding="utf-8")
        (tmp_path / "nested").mkdir()

        files = list_corpus(tmp_path)

        assert [f.name for f in files] == ["ham-1.eml", "spam-2.eml"]

    def test_missing_directory_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            list_corpus(tmp_path / "nope")

    def test_file_instead_of_directory_raises(self, tmp_path: Path):
        path = tmp_path / "file.eml"
        path.write_text("x", encoding="utf-8")
        with pytest.raises(NotADirectoryError):
            list_corpus(path)

    def test_fixture_corpus(self, corpus_dir: Path):
        files = list_corpus(corpus_dir)
        assert len(files) == 12
        labels = [infer_label(f.name) for f in files]
        assert labels.count(EmailClass.HAM) == 6


class TestModels:
    def test_email_words_become_tuple(self):
        email = Email("a", ["free", "cash"])
        assert email.words == ("free", "cash")
        assert email.word_count == 2

    def test_email_is_immutable(self):
        email = Email("a", ["free"])
        with pytest.raises(AttributeError):
            email.name = "b"  # type: ignore[misc]

    def test_email_class_values(self):
        assert EmailClass("ham") is EmailClass.HAM
        assert EmailClass.SPAM.value == "spam"

    def test_labelled_vector(self):
        example = LabelledVector(EmailClass.SPAM, [0.5, 0.0])
        assert example.dimension == 2
        assert example.to_dict() == {"label": "spam", "vector": [0.5, 0.0]}
