from __future__ import annotations

from typing import List

import pytest

from src.graph.builder import (
    TopicGraphBuilder,
    build_graph_elements,
    calculate_density,
    canonical_pair,
    compute_cooccurrence_weights,
    topic_degrees,
)
from src.storage.memory_store import MemoryStore
from src.storage.schemas import Claim, ClaimType, GapType, KnowledgeGap, Topic, TopicRelationship
from src.utils.ids import ChunkId, DocumentId, TopicId


def _claim(topic_ids: List[str], document_id: str = "doc_1") -> Claim:
    return Claim(
        document_id=DocumentId(document_id),
        chunk_id=ChunkId("chunk_1"),
        text="A claim.",
        type=ClaimType.FINDING,
        confidence=0.8,
        topic_ids=[TopicId(t) for t in topic_ids],
    )


def _topic(topic_id: str, claims: int) -> Topic:
    return Topic(
        id=TopicId(topic_id),
        label=topic_id.removeprefix("topic_"),
        normalized_label=topic_id.removeprefix("topic_"),
        claim_count=claims,
        document_count=1,
    )


def test_canonical_pair_orders_ids() -> None:
    assert canonical_pair(TopicId("topic_b"), TopicId("topic_a")) == ("topic_a", "topic_b")
    assert canonical_pair(TopicId("topic_a"), TopicId("topic_b")) == ("topic_a", "topic_b")


def test_density_min_max_normalized() -> None:
    density = calculate_density([_topic("topic_a", 2), _topic("topic_b", 4), _topic("topic_c", 6)])

    assert density == {"topic_a": 0.0, "topic_b": 0.5, "topic_c": 1.0}


def test_density_equal_counts_map_to_one() -> None:
    density = calculate_density([_topic("topic_a", 3), _topic("topic_b", 3)])

    assert density == {"topic_a": 1.0, "topic_b": 1.0}
    assert calculate_density([]) == {}


def test_weights_within_and_across_claims() -> None:
    weights = compute_cooccurrence_weights(
        [_claim(["topic_a", "topic_b"]), _claim(["topic_b", "topic_c"])]
    )

    assert weights == {
        ("topic_a", "topic_b"): 2,
        ("topic_b", "topic_c"): 2,
        ("topic_a", "topic_c"): 1,
    }


@pytest.mark.parametrize(
    "claims",
    [
        [],
        [_claim(["topic_a"])],
        [_claim(["topic_a"]), _claim(["topic_a"])],
        [_claim([])],
    ],
)
def test_no_pairs_without_distinct_cooccurring_topics(claims: List[Claim]) -> None:
    assert compute_cooccurrence_weights(claims) == {}


def test_build_relationships_creates_single_weighted_edge() -> None:
    store = MemoryStore()
    store.claims.put(_claim(["topic_nn", "topic_dl"]))

    built = TopicGraphBuilder(store).build_relationships(DocumentId("doc_1"))

    relationships = store.relationships.all()
    assert built == 1
    assert len(relationships) == 1
    assert relationships[0].source_id == "topic_dl"
    assert relationships[0].target_id == "topic_nn"
    assert relationships[0].weight == pytest.approx(1.0)


def test_build_relationships_accumulates_across_documents() -> None:
    store = MemoryStore()
    store.claims.put(_claim(["topic_a", "topic_b"], document_id="doc_1"))
    store.claims.put(_claim(["topic_b", "topic_a"], document_id="doc_2"))
    builder = TopicGraphBuilder(store)

    builder.build_relationships(DocumentId("doc_1"))
    builder.build_relationships(DocumentId("doc_2"))

    relationships = store.relationships.all()
    assert len(relationships) == 1
    assert relationships[0].weight == pytest.approx(2.0)


def test_build_relationships_without_claims_is_noop() -> None:
    store = MemoryStore()

    assert TopicGraphBuilder(store).build_relationships(DocumentId("doc_empty")) == 0
    assert store.relationships.count() == 0


def test_relationship_requires_canonical_order() -> None:
    with pytest.raises(ValueError):
        TopicRelationship(source_id=TopicId("topic_b"), target_id=TopicId("topic_a"))


def test_topic_degrees_counts_both_endpoints() -> None:
    topics = [_topic("topic_a", 1), _topic("topic_b", 1), _topic("topic_c", 1)]
    relationships = [
        TopicRelationship(source_id=TopicId("topic_a"), target_id=TopicId("topic_b")),
        TopicRelationship(source_id=TopicId("topic_a"), target_id=TopicId("topic_c")),
    ]

    assert topic_degrees(topics, relationships) == {"topic_a": 2, "topic_b": 1, "topic_c": 1}


def test_graph_elements_mark_gap_adjacent_topics() -> None:
    topics = [_topic("topic_a", 4), _topic("topic_b", 2)]
    relationships = [TopicRelationship(source_id=TopicId("topic_a"), target_id=TopicId("topic_b"))]
    gaps = [
        KnowledgeGap(
            description="thin coverage",
            topic_ids=[TopicId("topic_b")],
            gap_type=GapType.DENSITY,
            significance=0.5,
        )
    ]

    graph = build_graph_elements(topics, relationships, gaps)

    nodes = {node.id: node for node in graph.nodes}
    assert nodes["topic_a"].density == 1.0
    assert nodes["topic_b"].density == 0.0
    assert nodes["topic_b"].is_gap_adjacent
    assert not nodes["topic_a"].is_gap_adjacent
    assert [(e.source, e.target) for e in graph.edges] == [("topic_a", "topic_b")]


def test_density_of_single_topic_is_one() -> None:
    assert calculate_density([_topic("topic_a", 7)]) == {"topic_a": 1.0}
