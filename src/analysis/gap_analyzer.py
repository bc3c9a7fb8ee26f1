"""Knowledge gap analysis combining graph signals with an oracle pass."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from loguru import logger

from src.extraction.models import ExtractedGap
from src.extraction.prompts import PromptLibrary
from src.graph.gap_detection import find_density_gaps, find_structural_gaps
from src.storage.schemas import Claim, GapType, KnowledgeGap, Topic, TopicRelationship
from src.utils.config import GapDetectionConfig
from src.utils.ids import TopicId
from src.utils.json_response import clamp, is_number, parse_json_response
from src.utils.llm_client import LLMClient

_GAP_TYPES = {t.value for t in GapType}


def validate_gaps_payload(data: Any) -> List[ExtractedGap]:
    """Keep well-formed ``{"gaps": [...]}`` items.

    Unknown gap types fall back to ``structural``; significance is clamped.
    """
    if not isinstance(data, dict) or not isinstance(data.get("gaps"), list):
        return []

    gaps: List[ExtractedGap] = []
    for item in data["gaps"]:
        if not isinstance(item, dict):
            continue
        description = item.get("description")
        labels = item.get("topicLabels")
        gap_type = item.get("gapType")
        significance = item.get("significance")
        if not isinstance(description, str) or not isinstance(labels, list):
            continue
        if not isinstance(gap_type, str) or not is_number(significance):
            continue
        gaps.append(
            ExtractedGap(
                description=description,
                topic_labels=[label for label in labels if isinstance(label, str)],
                gap_type=GapType(gap_type) if gap_type in _GAP_TYPES else GapType.STRUCTURAL,
                significance=clamp(float(significance), 0.0, 1.0),
            )
        )
    return gaps


def format_topic_summary(topics: Sequence[Topic], claims: Sequence[Claim]) -> str:
    """Render each topic with the texts of the claims that reference it."""
    texts: Dict[TopicId, List[str]] = {t.id: [] for t in topics}
    for claim in claims:
        for topic_id in claim.topic_ids:
            if topic_id in texts:
                texts[topic_id].append(claim.text)

    blocks = []
    for topic in topics:
        lines = "\n".join(f"  - {text}" for text in texts[topic.id])
        blocks.append(f"Topic: {topic.label}\nClaims:\n{lines}")
    return "\n\n".join(blocks)


class GapAnalyzer:
    """Structural, density and oracle-proposed knowledge gaps."""

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        config: Optional[GapDetectionConfig] = None,
        prompts: Optional[PromptLibrary] = None,
    ) -> None:
        self.llm_client = llm_client
        self.config = config or GapDetectionConfig()
        self.prompts = prompts or PromptLibrary()

    def find_llm_gaps(self, topics: Sequence[Topic], claims: Sequence[Claim]) -> List[KnowledgeGap]:
        """Ask the oracle for domain-aware gaps.

        Labels are resolved case-insensitively against topic labels and
        normalized labels; unresolved labels are dropped. Any failure yields no
        gaps.
        """
        if not topics or self.llm_client is None:
            return []

        prompt = self.prompts.render(
            "gap_analysis", topic_summary=format_topic_summary(topics, claims)
        )
        try:
            reply = self.llm_client.complete(
                [{"role": "user", "content": prompt}], max_tokens=self.config.max_tokens
            )
            proposed = validate_gaps_payload(parse_json_response(reply))
        except Exception as exc:
            logger.warning("Oracle gap analysis failed", error=str(exc))
            return []

        by_label: Dict[str, Topic] = {}
        for topic in topics:
            by_label[topic.label.lower()] = topic
            by_label[topic.normalized_label] = topic

        gaps: List[KnowledgeGap] = []
        for item in proposed:
            topic_ids: List[TopicId] = []
            for label in item.topic_labels:
                matched = by_label.get(label.lower())
                if matched is not None:
                    topic_ids.append(matched.id)
            gaps.append(
                KnowledgeGap(
                    description=item.description,
                    topic_ids=topic_ids,
                    gap_type=item.gap_type,
                    significance=item.significance,
                )
            )
        return gaps

    def analyze(
        self,
        topics: Sequence[Topic],
        relationships: Sequence[TopicRelationship],
        claims: Sequence[Claim],
    ) -> List[KnowledgeGap]:
        """Concatenate structural, density and oracle gaps (no cross-pass dedup)."""
        structural = find_structural_gaps(
            topics, relationships, limit=self.config.max_structural_gaps
        )
        density = find_density_gaps(
            topics,
            limit=self.config.max_density_gaps,
            threshold_ratio=self.config.density_threshold_ratio,
        )
        oracle: List[KnowledgeGap] = []
        if self.config.enable_llm_gaps:
            oracle = self.find_llm_gaps(topics, claims)

        logger.info(
            "Gap analysis passes complete",
            structural=len(structural),
            density=len(density),
            oracle=len(oracle),
        )
        return structural + density + oracle
