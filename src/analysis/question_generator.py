"""Research question generation and scoring per knowledge gap."""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

from loguru import logger

from src.extraction.models import GeneratedQuestion
from src.extraction.prompts import PromptLibrary
from src.storage.schemas import Claim, KnowledgeGap, ResearchQuestion
from src.utils.config import QuestionConfig
from src.utils.json_response import clamp, is_number, parse_json_response
from src.utils.llm_client import LLMClient


def score_question(
    impact: float,
    feasibility: float,
    impact_weight: float = 0.6,
    feasibility_weight: float = 0.4,
) -> float:
    return impact * impact_weight + feasibility * feasibility_weight


def validate_questions_payload(data: Any) -> List[GeneratedQuestion]:
    if not isinstance(data, dict) or not isinstance(data.get("questions"), list):
        return []

    questions: List[GeneratedQuestion] = []
    for item in data["questions"]:
        if not isinstance(item, dict):
            continue
        question = item.get("question")
        rationale = item.get("rationale")
        impact = item.get("impact")
        feasibility = item.get("feasibility")
        if not isinstance(question, str) or not isinstance(rationale, str):
            continue
        if not is_number(impact) or not is_number(feasibility):
            continue
        questions.append(
            GeneratedQuestion(
                question=question,
                rationale=rationale,
                impact=clamp(float(impact), 1.0, 10.0),
                feasibility=clamp(float(feasibility), 1.0, 10.0),
            )
        )
    return questions


def surrounding_claims(gap: KnowledgeGap, claims: Sequence[Claim]) -> List[Claim]:
    """Claims sharing at least one topic with ``gap``."""
    gap_topics = set(gap.topic_ids)
    return [c for c in claims if gap_topics.intersection(c.topic_ids)]


class QuestionGenerator:
    """Ask the oracle for candidate research questions that address a gap."""

    def __init__(
        self,
        llm_client: LLMClient,
        config: Optional[QuestionConfig] = None,
        prompts: Optional[PromptLibrary] = None,
    ) -> None:
        self.llm_client = llm_client
        self.config = config or QuestionConfig()
        self.prompts = prompts or PromptLibrary()

    def generate(self, gap: KnowledgeGap, claims: Sequence[Claim]) -> List[ResearchQuestion]:
        """Generate scored questions for ``gap``; failures yield an empty list."""
        claims_list = "\n".join(f"- {c.text}" for c in claims)
        prompt = self.prompts.render(
            "question_generation", gap_description=gap.description, claims_list=claims_list
        )
        try:
            reply = self.llm_client.complete(
                [{"role": "user", "content": prompt}], max_tokens=self.config.max_tokens
            )
            generated = validate_questions_payload(parse_json_response(reply))
        except Exception as exc:
            logger.warning("Question generation failed", gap_id=gap.id, error=str(exc))
            return []

        return [
            ResearchQuestion(
                gap_id=gap.id,
                question=q.question,
                rationale=q.rationale,
                impact=q.impact,
                feasibility=q.feasibility,
                overall_score=score_question(
                    q.impact,
                    q.feasibility,
                    self.config.impact_weight,
                    self.config.feasibility_weight,
                ),
            )
            for q in generated
        ]
