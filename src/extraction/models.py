"""Shared data models for oracle-backed extraction and analysis."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from src.storage.schemas import ClaimType, GapType, Severity


class ExtractedClaim(BaseModel):
    """A validated claim item from an extraction reply."""

    model_config = ConfigDict(extra="forbid")

    text: str
    type: ClaimType
    confidence: float = Field(..., ge=0.0, le=1.0)
    topics: List[str] = Field(default_factory=list)


class ClaimExtractionResult(BaseModel):
    """Claims extracted from one chunk; ``error`` is set on a non-fatal failure."""

    claims: List[ExtractedClaim] = Field(default_factory=list)
    error: Optional[str] = None


class ContradictionCheckResult(BaseModel):
    """Adjudication of one candidate claim pair."""

    is_contradiction: bool = False
    description: str = ""
    severity: Severity = Severity.LOW
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class ExtractedGap(BaseModel):
    """A gap proposed by the oracle, before topic resolution."""

    description: str
    topic_labels: List[str] = Field(default_factory=list)
    gap_type: GapType = GapType.STRUCTURAL
    significance: float = Field(..., ge=0.0, le=1.0)


class GeneratedQuestion(BaseModel):
    question: str
    rationale: str
    impact: float = Field(..., ge=1.0, le=10.0)
    feasibility: float = Field(..., ge=1.0, le=10.0)
