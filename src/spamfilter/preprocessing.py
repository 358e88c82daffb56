"""Term normalization for e-mail tokens.

Turns raw whitespace-delimited tokens into index terms, or discards them.
Rules, applied in order:

- lower-case the token
- discard tokens made only of symbols, and tokens of two characters or fewer
- URLs become their host name (``http://www.Example.com/x`` -> ``example.com``)
- e-mail addresses become their mail domain
- numbers (prices, percentages, phone numbers) become ``"9999"``
- anything else is stripped of surrounding punctuation and markup
  attribute residue, then Porter-stemmed
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Optional

from nltk.stem.porter import PorterStemmer

#: Placeholder term for every numeric token.
NUMBER_REP = "9999"

#: Tokens of this length or shorter are discarded.
MIN_TERM_LENGTH = 3

_SYMBOL_RE = re.compile(r"^[\W_]+$")
_URL_RE = re.compile(r"^(?:[a-z][a-z0-9+.-]*://|www\.)([^/\s?#:]+)", re.IGNORECASE)
_EMAIL_RE = re.compile(r"^[\w.+'-]+@((?:[\w-]+\.)+[a-z]{2,})\W*$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^[(\[]?[-+$£€#]?\d[\d,.:/%()\-]*$")
_EDGE_PUNCT_RE = re.compile(r"^[\W_]+|[\W_]+$")
_ATTRIBUTE_RE = re.compile(r"[=\"'<>].*$")

_stemmer = PorterStemmer()


@lru_cache(maxsize=65536)
def porter_stem(word: str) -> str:
    """Porter stem of ``word`` (cached)."""
    return _stemmer.stem(word)


def is_symbol(token: str) -> bool:
    return bool(_SYMBOL_RE.match(token))


def is_url(token: str) -> bool:
    return bool(_URL_RE.match(token))


def extract_url_domain(token: str) -> str:
    """Host name of a URL, without a leading ``www.``."""
    match = _URL_RE.match(token)
    host = match.group(1) if match else token
    host = host.lower().rstrip(".")
    return host[4:] if host.startswith("www.") else host


def is_email_address(token: str) -> bool:
    return bool(_EMAIL_RE.match(token))


def extract_mail_domain(token: str) -> str:
    match = _EMAIL_RE.match(token)
    return match.group(1).lower() if match else token


def is_number(token: str) -> bool:
    return bool(_NUMBER_RE.match(token))


def full_strip(token: str) -> str:
    """Remove leading and trailing punctuation."""
    return _EDGE_PUNCT_RE.sub("", token)


def strip_attributes(token: str) -> str:
    """Cut markup attribute residue such as ``color="red"`` down to ``color``."""
    return _ATTRIBUTE_RE.sub("", token)


class TermNormalizer:
    """Normalize raw tokens into index terms.

    Example::

        normalize = TermNormalizer()
        normalize("Offers!")                 # "offer"
        normalize("http://www.cheap.biz/x")  # "cheap.biz"
        normalize("$1,000")                  # "9999"
        normalize("--")                      # None (discarded)

    Args:
        stem: Apply Porter stemming to plain words.
        min_length: Minimum token length kept.
    """

    def __init__(self, stem: bool = True, min_length: int = MIN_TERM_LENGTH) -> None:
        self.stem = stem
        self.min_length = min_length

    def __call__(self, token: str) -> Optional[str]:
        return self.normalize(token)

    def normalize(self, token: str) -> Optional[str]:
        """Normalized term for ``token``, or ``None`` to discard it."""
        result = token.lower()

        if is_symbol(result) or len(result) < self.min_length:
            return None
        if is_url(result):
            return extract_url_domain(result)
        if is_email_address(result):
            return extract_mail_domain(result)
        if is_number(result):
            return NUMBER_REP

        result = strip_attributes(full_strip(result))
        result = full_strip(result)
        if len(result) < self.min_length:
            return None
        return porter_stem(result) if self.stem else result

    def to_dict(self) -> dict:
        return {"stem": self.stem, "min_length": self.min_length}

    @classmethod
    def from_dict(cls, data: dict) -> "TermNormalizer":
        return cls(
            stem=data.get("stem", True),
            min_length=data.get("min_length", MIN_TERM_LENGTH),
        )
