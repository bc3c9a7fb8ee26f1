"""Topic label normalization used as the topic deduplication key."""

from __future__ import annotations

import re
from typing import FrozenSet, Iterable, Optional

from src.utils.config import NormalizationConfig

# Words ending in "s" that are not plurals.
SINGULARIZATION_EXCEPTIONS: FrozenSet[str] = frozenset(
    {
        "less",
        "class",
        "process",
        "bias",
        "loss",
        "axis",
        "analysis",
        "basis",
        "crisis",
        "diagnosis",
        "hypothesis",
        "thesis",
        "synthesis",
        "consensus",
        "focus",
        "status",
        "virus",
        "plus",
        "gas",
        "bus",
        "stress",
        "success",
        "access",
        "progress",
        "address",
        "express",
        "congress",
        "mass",
        "glass",
        "grass",
        "cross",
        "boss",
        "moss",
    }
)

NON_PLURAL_SUFFIXES = ("ss", "us", "is", "sis", "ous")

_WHITESPACE_RE = re.compile(r"\s+")


class LabelNormalizer:
    """Canonicalize free-text topic labels.

    Lowercases, trims and collapses whitespace, then strips one trailing ``s``
    unless the label is three characters or shorter or is a known non-plural.
    """

    def __init__(
        self,
        config: Optional[NormalizationConfig] = None,
        extra_exceptions: Optional[Iterable[str]] = None,
    ) -> None:
        self.config = config or NormalizationConfig()
        extras = set(self.config.extra_singularization_exceptions)
        extras.update(extra_exceptions or ())
        self.exceptions: FrozenSet[str] = SINGULARIZATION_EXCEPTIONS | {
            e.strip().lower() for e in extras if e.strip()
        }

    def is_exception(self, word: str) -> bool:
        return word in self.exceptions or word.endswith(NON_PLURAL_SUFFIXES)

    def normalize(self, label: str) -> str:
        normalized = _WHITESPACE_RE.sub(" ", label.lower().strip())
        if len(normalized) > 3 and normalized.endswith("s") and not self.is_exception(normalized):
            normalized = normalized[:-1]
        return normalized


_default_normalizer = LabelNormalizer()


def normalize_label(label: str) -> str:
    """Normalize ``label`` with the built-in exception list."""
    return _default_normalizer.normalize(label)
