"""Pydantic models for the analysis engine's stored records."""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from src.utils.ids import (
    ChunkId,
    ClaimId,
    ContradictionId,
    DocumentId,
    GapId,
    QuestionId,
    RelationshipId,
    TopicId,
    new_claim_id,
    new_contradiction_id,
    new_gap_id,
    new_question_id,
    new_relationship_id,
    new_topic_id,
)


class DocumentStatus(str, Enum):
    """Document lifecycle status."""

    UPLOADING = "uploading"
    EXTRACTING = "extracting"
    CHUNKING = "chunking"
    ANALYZING = "analyzing"
    COMPLETE = "complete"
    ERROR = "error"


class DocumentKind(str, Enum):
    PDF = "pdf"
    TEXT = "text"


class ClaimType(str, Enum):
    """Closed set of claim types."""

    FINDING = "finding"
    METHODOLOGY = "methodology"
    CLAIM = "claim"
    HYPOTHESIS = "hypothesis"
    LIMITATION = "limitation"


class RelationshipType(str, Enum):
    RELATED = "related"
    SUBTOPIC = "subtopic"
    PREREQUISITE = "prerequisite"
    CONTRADICTS = "contradicts"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ContradictionStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"


class GapType(str, Enum):
    STRUCTURAL = "structural"
    DENSITY = "density"
    METHODOLOGICAL = "methodological"
    TEMPORAL = "temporal"


class Document(BaseModel):
    """An ingested source document."""

    id: DocumentId
    name: str
    content_hash: str = Field(..., description="SHA-256 of the content (dedup key)")
    size: int = Field(default=0, ge=0)
    kind: DocumentKind = DocumentKind.TEXT
    status: DocumentStatus = DocumentStatus.UPLOADING
    progress: int = Field(default=0, ge=0, le=100)
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)


class TextChunk(BaseModel):
    """A contiguous slice of a document's text."""

    id: ChunkId
    document_id: DocumentId
    content: str
    start_offset: int = Field(..., ge=0)
    end_offset: int = Field(..., ge=0)
    chunk_index: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _validate_offsets(self) -> "TextChunk":
        if self.end_offset < self.start_offset:
            raise ValueError("end_offset must be >= start_offset")
        return self


class Claim(BaseModel):
    """An atomic statement extracted from a chunk."""

    id: ClaimId = Field(default_factory=new_claim_id)
    document_id: DocumentId
    chunk_id: ChunkId
    text: str
    type: ClaimType
    confidence: float = Field(..., ge=0.0, le=1.0)
    topic_ids: List[TopicId] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)


class Topic(BaseModel):
    """A canonical subject shared by one or more claims."""

    id: TopicId = Field(default_factory=new_topic_id)
    label: str
    normalized_label: str
    claim_count: int = Field(default=0, ge=0)
    document_count: int = Field(default=0, ge=0)


class TopicRelationship(BaseModel):
    """Undirected weighted edge between two topics, stored in canonical order."""

    id: RelationshipId = Field(default_factory=new_relationship_id)
    source_id: TopicId
    target_id: TopicId
    type: RelationshipType = RelationshipType.RELATED
    weight: float = Field(default=1.0, ge=0.0)

    @model_validator(mode="after")
    def _validate_canonical_order(self) -> "TopicRelationship":
        if not self.source_id < self.target_id:
            raise ValueError("source_id must sort before target_id")
        return self


class Contradiction(BaseModel):
    id: ContradictionId = Field(default_factory=new_contradiction_id)
    claim_a_id: ClaimId
    claim_b_id: ClaimId
    description: str = ""
    severity: Severity = Severity.LOW
    confidence: float = Field(..., ge=0.0, le=1.0)
    status: ContradictionStatus = ContradictionStatus.PENDING
    created_at: datetime = Field(default_factory=datetime.now)


class KnowledgeGap(BaseModel):
    id: GapId = Field(default_factory=new_gap_id)
    description: str
    topic_ids: List[TopicId] = Field(default_factory=list)
    gap_type: GapType
    significance: float = Field(..., ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=datetime.now)


class ResearchQuestion(BaseModel):
    id: QuestionId = Field(default_factory=new_question_id)
    gap_id: GapId
    question: str
    rationale: str = ""
    impact: float = Field(..., ge=1.0, le=10.0)
    feasibility: float = Field(..., ge=1.0, le=10.0)
    overall_score: float
    created_at: datetime = Field(default_factory=datetime.now)


class AppSettings(BaseModel):
    """Singleton run-time settings record (fixed id ``"settings"``)."""

    id: Literal["settings"] = "settings"
    api_key: Optional[str] = None
    model: str = "claude-sonnet-4-20250514"
    chunk_size: int = 1500
    chunk_overlap: int = 200

    @field_validator("chunk_size")
    @classmethod
    def _validate_chunk_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError("chunk_size must be at least 1")
        return v
