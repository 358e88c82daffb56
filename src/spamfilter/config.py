"""Runtime configuration.

Settings are read from ``SPAMFILTER_*`` environment variables, with a
``.env`` file in the working directory loaded first. Command-line options
override them.

Example ``.env``::

    SPAMFILTER_LOWER_PERCENTILE=0.002
    SPAMFILTER_UPPER_PERCENTILE=0.19
    SPAMFILTER_FOLDS=10
    SPAMFILTER_WEIGHTING=tfidf
    SPAMFILTER_LOG_LEVEL=INFO
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .classifiers import CLASSIFIERS
from .index import validate_percentile
from .weighting import WEIGHTINGS

ENV_PREFIX = "SPAMFILTER_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse(env: Mapping[str, str], key: str, convert, default):
    raw = env.get(ENV_PREFIX + key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return convert(raw.strip())
    except ValueError as exc:
        raise ValueError(f"Invalid value for {ENV_PREFIX}{key}: {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Training and evaluation defaults."""

    lower_percentile: float = 0.001
    upper_percentile: float = 0.50
    folds: int = 10
    weighting: str = "frequency"
    classifier: str = "naive_bayes"
    alpha: float = 1.0
    workers: int = 1
    seed: Optional[int] = None
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        validate_percentile(self.lower_percentile, f"{ENV_PREFIX}LOWER_PERCENTILE")
        validate_percentile(self.upper_percentile, f"{ENV_PREFIX}UPPER_PERCENTILE")
        if self.folds < 2:
            raise ValueError(f"{ENV_PREFIX}FOLDS must be at least 2, got {self.folds}")
        if self.weighting not in WEIGHTINGS:
            raise ValueError(
                f"{ENV_PREFIX}WEIGHTING must be one of {sorted(WEIGHTINGS)}, got {self.weighting!r}"
            )
        if self.classifier not in CLASSIFIERS:
            raise ValueError(
                f"{ENV_PREFIX}CLASSIFIER must be one of {sorted(CLASSIFIERS)}, "
                f"got {self.classifier!r}"
            )
        if self.alpha <= 0:
            raise ValueError(f"{ENV_PREFIX}ALPHA must be positive, got {self.alpha}")
        if self.workers < 1:
            raise ValueError(f"{ENV_PREFIX}WORKERS must be at least 1, got {self.workers}")
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(
                f"{ENV_PREFIX}LOG_LEVEL must be one of {_LOG_LEVELS}, got {self.log_level!r}"
            )

    @property
    def logging_level(self) -> int:
        return getattr(logging, self.log_level.upper())

    @classmethod
    def from_env(
        cls,
        env: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
    ) -> "Settings":
        """Build settings from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ``.
            dotenv: Load a ``.env`` file into ``os.environ`` first (ignored
                when ``env`` is given).

        Raises:
            ValueError: If a variable holds an invalid value.
        """
        if env is None:
            if dotenv:
                load_dotenv(find_dotenv(usecwd=True))
            env = os.environ

        defaults = cls()
        return cls(
            lower_percentile=_parse(env, "LOWER_PERCENTILE", float, defaults.lower_percentile),
            upper_percentile=_parse(env, "UPPER_PERCENTILE", float, defaults.upper_percentile),
            folds=_parse(env, "FOLDS", int, defaults.folds),
            weighting=_parse(env, "WEIGHTING", str.lower, defaults.weighting),
            classifier=_parse(env, "CLASSIFIER", str.lower, defaults.classifier),
            alpha=_parse(env, "ALPHA", float, defaults.alpha),
            workers=_parse(env, "WORKERS", int, defaults.workers),
            seed=_parse(env, "SEED", int, defaults.seed),
            log_level=_parse(env, "LOG_LEVEL", str.upper, defaults.log_level),
        )

    def to_dict(self) -> dict:
        return asdict(self)
