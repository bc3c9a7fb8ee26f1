from __future__ import annotations

import json
from typing import Any, List, Optional

import pytest

from src.analysis.question_generator import (
    QuestionGenerator,
    score_question,
    surrounding_claims,
    validate_questions_payload,
)
from src.storage.schemas import Claim, ClaimType, GapType, KnowledgeGap
from src.utils.config import QuestionConfig
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


GAP = KnowledgeGap(
    description="Nobody has studied sample size effects on transformers.",
    topic_ids=[TopicId("topic_a")],
    gap_type=GapType.STRUCTURAL,
    significance=0.8,
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


def test_score_weights() -> None:
    assert score_question(8, 5) == pytest.approx(6.8)
    assert score_question(10, 10) == pytest.approx(10.0)
    assert score_question(4, 6, impact_weight=0.5, feasibility_weight=0.5) == pytest.approx(5.0)


def test_validate_questions_clamps_and_filters() -> None:
    questions = validate_questions_payload(
        {
            "questions": [
                {"question": "Q1?", "rationale": "R1", "impact": 15, "feasibility": 0},
                {"question": "Q2?", "rationale": "R2", "impact": "high", "feasibility": 5},
                {"question": "Q3?", "impact": 5, "feasibility": 5},
                {"question": "Q4?", "rationale": "R4", "impact": 7.5, "feasibility": 3},
            ]
        }
    )

    assert [q.question for q in questions] == ["Q1?", "Q4?"]
    assert questions[0].impact == 10.0
    assert questions[0].feasibility == 1.0
    assert validate_questions_payload({"questions": "none"}) == []


def test_surrounding_claims_share_a_gap_topic() -> None:
    claims = [_claim("in", ["topic_a", "topic_b"]), _claim("out", ["topic_c"])]

    assert [c.text for c in surrounding_claims(GAP, claims)] == ["in"]


def test_generate_scores_questions() -> None:
    reply = json.dumps(
        {
            "questions": [
                {"question": "Does size matter?", "rationale": "Gap.", "impact": 8, "feasibility": 5},
                {"question": "Out of range?", "rationale": "Clamp.", "impact": 12, "feasibility": -1},
            ]
        }
    )
    client = _FakeLLMClient([reply])

    questions = QuestionGenerator(client, QuestionConfig()).generate(
        GAP, [_claim("Transformers need data.", ["topic_a"])]
    )

    assert len(questions) == 2
    assert all(q.gap_id == GAP.id for q in questions)
    assert questions[0].overall_score == pytest.approx(6.8)
    assert questions[1].impact == 10.0
    assert questions[1].feasibility == 1.0
    assert questions[1].overall_score == pytest.approx(6.4)
    prompt = client.calls[0][0]["content"]
    assert GAP.description in prompt
    assert "- Transformers need data." in prompt


@pytest.mark.parametrize("reply", [RuntimeError("rate limited"), "not json", '{"questions": []}'])
def test_generate_failures_yield_no_questions(reply: Any) -> None:
    assert QuestionGenerator(_FakeLLMClient([reply])).generate(GAP, []) == []
