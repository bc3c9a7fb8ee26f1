"""Nominal identifier types, one per entity kind.

Each kind is a ``NewType`` over ``str`` so type checkers reject passing a
``ClaimId`` where a ``TopicId`` is expected. Identifiers are only minted by the
factory functions below.
"""

from __future__ import annotations

import uuid
from typing import NewType

DocumentId = NewType("DocumentId", str)
ChunkId = NewType("ChunkId", str)
ClaimId = NewType("ClaimId", str)
TopicId = NewType("TopicId", str)
RelationshipId = NewType("RelationshipId", str)
ContradictionId = NewType("ContradictionId", str)
GapId = NewType("GapId", str)
QuestionId = NewType("QuestionId", str)


def _make(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4()}"


def new_document_id() -> DocumentId:
    return DocumentId(_make("doc"))


def new_chunk_id() -> ChunkId:
    return ChunkId(_make("chunk"))


def new_claim_id() -> ClaimId:
    return ClaimId(_make("claim"))


def new_topic_id() -> TopicId:
    return TopicId(_make("topic"))


def new_relationship_id() -> RelationshipId:
    return RelationshipId(_make("rel"))


def new_contradiction_id() -> ContradictionId:
    return ContradictionId(_make("contra"))


def new_gap_id() -> GapId:
    return GapId(_make("gap"))


def new_question_id() -> QuestionId:
    return QuestionId(_make("question"))
