from __future__ import annotations

import json
from typing import Any, List, Optional

import pytest

from src.analysis.gap_analyzer import GapAnalyzer, format_topic_summary, validate_gaps_payload
from src.storage.schemas import Claim, ClaimType, GapType, Topic, TopicRelationship
from src.utils.config import GapDetectionConfig
from src.utils.ids import ChunkId, DocumentId, TopicId


class _FakeLLMClient:
    def __init__(self, replies: List[Any]) -> None:
        self.replies = list(replies)
        self.calls: List[List[dict]] = []

    def complete(self, messages, *, model: Optional[str] = None, max_tokens: Optional[int] = None) -> str:
        self.calls.append(list(messages))
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def _topic(topic_id: str, label: str, normalized: str, claims: int = 1) -> Topic:
    return Topic(
        id=TopicId(topic_id),
        label=label,
        normalized_label=normalized,
        claim_count=claims,
        document_count=1,
    )


def _claim(text: str, topics: List[str]) -> Claim:
    return Claim(
        document_id=DocumentId("doc_1"),
        chunk_id=ChunkId("chunk_1"),
        text=text,
        type=ClaimType.FINDING,
        confidence=0.9,
        topic_ids=[TopicId(t) for t in topics],
    )


TOPICS = [
    _topic("topic_nn", "Neural Networks", "neural network", claims=4),
    _topic("topic_ss", "Sample Size", "sample size", claims=4),
    _topic("topic_gx", "Gene Expression", "gene expression", claims=1),
]
CLAIMS = [
    _claim("Deep nets generalize.", ["topic_nn"]),
    _claim("Small samples bias results.", ["topic_ss", "topic_nn"]),
]


def _gaps_reply(*gaps: dict) -> str:
    return json.dumps({"gaps": list(gaps)})


def test_topic_summary_lists_claims_per_topic() -> None:
    summary = format_topic_summary(TOPICS[:2], CLAIMS)

    assert summary == (
        "Topic: Neural Networks\nClaims:\n  - Deep nets generalize.\n  - Small samples bias results."
        "\n\nTopic: Sample Size\nClaims:\n  - Small samples bias results."
    )


def test_validate_gaps_payload() -> None:
    gaps = validate_gaps_payload(
        {
            "gaps": [
                {"description": "a", "topicLabels": ["x", 1], "gapType": "temporal", "significance": 2},
                {"description": "b", "topicLabels": [], "gapType": "novel", "significance": 0.4},
                {"description": "c", "topicLabels": "x", "gapType": "density", "significance": 0.4},
                {"description": "d", "topicLabels": [], "gapType": "density", "significance": "hi"},
            ]
        }
    )

    assert [g.description for g in gaps] == ["a", "b"]
    assert gaps[0].topic_labels == ["x"]
    assert gaps[0].significance == 1.0
    assert gaps[0].gap_type == GapType.TEMPORAL
    assert gaps[1].gap_type == GapType.STRUCTURAL
    assert validate_gaps_payload({"nope": []}) == []


def test_llm_gap_labels_resolve_by_label_or_normalized_label() -> None:
    client = _FakeLLMClient(
        [
            _gaps_reply(
                {
                    "description": "No work links networks to sample size.",
                    "topicLabels": ["NEURAL NETWORKS", "sample size", "quantum biology"],
                    "gapType": "methodological",
                    "significance": 0.7,
                }
            )
        ]
    )

    gaps = GapAnalyzer(client).find_llm_gaps(TOPICS, CLAIMS)

    assert len(gaps) == 1
    assert gaps[0].topic_ids == ["topic_nn", "topic_ss"]
    assert gaps[0].gap_type == GapType.METHODOLOGICAL
    assert "Topic: Gene Expression" in client.calls[0][0]["content"]


@pytest.mark.parametrize("reply", [RuntimeError("overloaded"), "not json at all"])
def test_llm_gap_failures_yield_no_gaps(reply: Any) -> None:
    assert GapAnalyzer(_FakeLLMClient([reply])).find_llm_gaps(TOPICS, CLAIMS) == []


def test_analyze_concatenates_passes() -> None:
    relationships = [TopicRelationship(source_id=TopicId("topic_nn"), target_id=TopicId("topic_ss"))]
    client = _FakeLLMClient(
        [_gaps_reply({"description": "x", "topicLabels": [], "gapType": "temporal", "significance": 0.3})]
    )

    gaps = GapAnalyzer(client).analyze(TOPICS, relationships, CLAIMS)

    assert [g.gap_type for g in gaps] == [GapType.DENSITY, GapType.TEMPORAL]
    assert gaps[0].topic_ids == ["topic_gx"]


def test_analyze_without_oracle_pass() -> None:
    client = _FakeLLMClient([])
    analyzer = GapAnalyzer(client, GapDetectionConfig(enable_llm_gaps=False))

    gaps = analyzer.analyze(TOPICS, [], CLAIMS)

    assert client.calls == []
    assert [g.gap_type for g in gaps] == [GapType.DENSITY]
