"""Extraction package exports."""

from src.extraction.claim_extractor import ClaimExtractor
from src.extraction.models import (
    ClaimExtractionResult,
    ContradictionCheckResult,
    ExtractedClaim,
    ExtractedGap,
    GeneratedQuestion,
)
from src.extraction.prompts import PromptLibrary

__all__ = [
    "ClaimExtractionResult",
    "ClaimExtractor",
    "ContradictionCheckResult",
    "ExtractedClaim",
    "ExtractedGap",
    "GeneratedQuestion",
    "PromptLibrary",
]
