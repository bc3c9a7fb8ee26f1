"""Normalization package."""

from src.normalization.label_normalizer import (
    SINGULARIZATION_EXCEPTIONS,
    LabelNormalizer,
    normalize_label,
)

__all__ = [
    "SINGULARIZATION_EXCEPTIONS",
    "LabelNormalizer",
    "normalize_label",
]
