from __future__ import annotations

import pytest

from src.normalization.label_normalizer import LabelNormalizer, normalize_label
from src.utils.config import NormalizationConfig


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Neural Networks", "neural network"),
        ("Cells", "cell"),
        ("cells", "cell"),
        (" CELLS ", "cell"),
        ("  Deep   Learning ", "deep learning"),
        ("Methods", "method"),
        ("cats", "cat"),
        ("analysis", "analysis"),
        ("Bias", "bias"),
        ("hypothesis", "hypothesis"),
        ("consensus", "consensus"),
        ("process", "process"),
        ("gas", "gas"),
        ("bus", "bus"),
        ("its", "its"),
        ("nervous", "nervous"),
        ("business", "business"),
        ("", ""),
        ("   ", ""),
    ],
)
def test_normalize_label(label: str, expected: str) -> None:
    assert normalize_label(label) == expected


def test_plural_and_singular_collapse_to_same_key() -> None:
    assert normalize_label("Neural Networks") == normalize_label("neural network")
    assert normalize_label("Gene\tExpressions") == normalize_label("gene expression")


def test_normalization_is_idempotent() -> None:
    for label in ["Neural Networks", "Sample Sizes", "analysis", "stress tests"]:
        once = normalize_label(label)
        assert normalize_label(once) == once


def test_extra_exceptions_from_config() -> None:
    default = LabelNormalizer()
    custom = LabelNormalizer(NormalizationConfig(extra_singularization_exceptions=["Physics"]))

    assert default.normalize("physics") == "physic"
    assert custom.normalize("Physics") == "physics"


def test_extra_exceptions_argument() -> None:
    normalizer = LabelNormalizer(extra_exceptions=["genomics", " "])

    assert normalizer.normalize("Genomics") == "genomics"
    assert normalizer.is_exception("genomics")
    assert not normalizer.is_exception("networks")


def test_case_and_padding_variants_share_one_key() -> None:
    assert normalize_label("Cells") == normalize_label("cells") == normalize_label(" CELLS ") == "cell"
