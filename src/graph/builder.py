"""Topic co-occurrence graph construction.

Nodes are topics and edges are ``related`` relationships whose weight
accumulates each time two topics co-occur in a document's claims.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from loguru import logger
from pydantic import BaseModel, Field

from src.storage.memory_store import MemoryStore
from src.storage.schemas import Claim, KnowledgeGap, RelationshipType, Topic, TopicRelationship
from src.utils.ids import DocumentId, TopicId

TopicPair = Tuple[TopicId, TopicId]


def canonical_pair(a: TopicId, b: TopicId) -> TopicPair:
    return (a, b) if a < b else (b, a)


def calculate_density(topics: Sequence[Topic]) -> Dict[TopicId, float]:
    """Min-max normalize claim counts to [0, 1].

    The most cited topic maps to 1.0 and the least to 0.0. When all counts are
    equal every topic maps to 1.0.
    """
    if not topics:
        return {}

    counts = [t.claim_count for t in topics]
    low = min(counts)
    span = max(counts) - low

    if span == 0:
        return {t.id: 1.0 for t in topics}
    return {t.id: (t.claim_count - low) / span for t in topics}


def compute_cooccurrence_weights(claims: Sequence[Claim]) -> Dict[TopicPair, int]:
    """Count topic co-occurrences across one document's claims.

    Each unordered pair of distinct topics within a claim adds 1. Each pair of
    distinct topics drawn from two different claims also adds 1 per
    (claim, claim, topic, topic) combination, so topics that recur across many
    claims accumulate weight quickly.
    """
    weights: Dict[TopicPair, int] = {}

    for claim in claims:
        topic_ids = claim.topic_ids
        for i in range(len(topic_ids)):
            for j in range(i + 1, len(topic_ids)):
                if topic_ids[i] == topic_ids[j]:
                    continue
                key = canonical_pair(topic_ids[i], topic_ids[j])
                weights[key] = weights.get(key, 0) + 1

    for i in range(len(claims)):
        for j in range(i + 1, len(claims)):
            for topic_a in claims[i].topic_ids:
                for topic_b in claims[j].topic_ids:
                    if topic_a == topic_b:
                        continue
                    key = canonical_pair(topic_a, topic_b)
                    weights[key] = weights.get(key, 0) + 1

    return weights


def topic_degrees(
    topics: Iterable[Topic], relationships: Iterable[TopicRelationship]
) -> Dict[TopicId, int]:
    """Count relationships touching each topic (both endpoints)."""
    degrees: Dict[TopicId, int] = {t.id: 0 for t in topics}
    for rel in relationships:
        degrees[rel.source_id] = degrees.get(rel.source_id, 0) + 1
        degrees[rel.target_id] = degrees.get(rel.target_id, 0) + 1
    return degrees


class TopicGraphBuilder:
    """Derive and persist topic relationships from stored claims."""

    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    def build_relationships(self, document_id: DocumentId) -> int:
        """Upsert ``related`` relationships for one document's claims.

        Returns:
            Number of distinct topic pairs written
        """
        claims = self.store.claims.where("document_id", document_id)
        weights = compute_cooccurrence_weights(claims)
        if not weights:
            logger.debug(f"No topic co-occurrences for document {document_id}")
            return 0

        with self.store.transaction():
            for (source_id, target_id), weight in weights.items():
                existing = self._find_relationship(source_id, target_id)
                if existing is not None:
                    self.store.relationships.update(existing.id, weight=existing.weight + weight)
                else:
                    self.store.relationships.put(
                        TopicRelationship(
                            source_id=source_id,
                            target_id=target_id,
                            type=RelationshipType.RELATED,
                            weight=float(weight),
                        )
                    )

        logger.info(
            "Built topic relationships",
            document_id=document_id,
            pairs=len(weights),
            total_weight=sum(weights.values()),
        )
        return len(weights)

    def _find_relationship(
        self, source_id: TopicId, target_id: TopicId
    ) -> Optional[TopicRelationship]:
        for rel in self.store.relationships.where("source_id", source_id):
            if rel.target_id == target_id and rel.type == RelationshipType.RELATED:
                return rel
        return None


class GraphNode(BaseModel):
    id: TopicId
    label: str
    claim_count: int
    document_count: int
    density: float = Field(..., ge=0.0, le=1.0)
    is_gap_adjacent: bool = False


class GraphEdge(BaseModel):
    id: str
    source: TopicId
    target: TopicId
    type: RelationshipType
    weight: float


class GraphData(BaseModel):
    """Plain node/edge lists for a presentation layer."""

    nodes: List[GraphNode] = Field(default_factory=list)
    edges: List[GraphEdge] = Field(default_factory=list)


def build_graph_elements(
    topics: Sequence[Topic],
    relationships: Sequence[TopicRelationship],
    gaps: Sequence[KnowledgeGap] = (),
) -> GraphData:
    """Turn stored topics and relationships into graph nodes and edges.

    Nodes carry claim/document counts, normalized density and whether any gap
    references the topic.
    """
    density = calculate_density(topics)
    gap_topic_ids: Set[TopicId] = {tid for gap in gaps for tid in gap.topic_ids}

    nodes = [
        GraphNode(
            id=topic.id,
            label=topic.label,
            claim_count=topic.claim_count,
            document_count=topic.document_count,
            density=density.get(topic.id, 0.0),
            is_gap_adjacent=topic.id in gap_topic_ids,
        )
        for topic in topics
    ]
    edges = [
        GraphEdge(
            id=rel.id,
            source=rel.source_id,
            target=rel.target_id,
            type=rel.type,
            weight=rel.weight,
        )
        for rel in relationships
    ]
    return GraphData(nodes=nodes, edges=edges)
