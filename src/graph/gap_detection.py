"""Graph-derived knowledge gap detection.

Two deterministic passes over the topic graph:

- structural: pairs of above-median-degree topics with no edge between them
- density: topics whose claim count falls well below the corpus average
"""

from __future__ import annotations

from typing import Dict, List, Sequence

from src.graph.builder import canonical_pair, topic_degrees
from src.storage.schemas import GapType, KnowledgeGap, Topic, TopicRelationship
from src.utils.json_response import clamp
from src.utils.ids import TopicId

DEFAULT_GAP_LIMIT = 20


def _top(gaps: List[KnowledgeGap], limit: int) -> List[KnowledgeGap]:
    return sorted(gaps, key=lambda g: g.significance, reverse=True)[:limit]


def find_structural_gaps(
    topics: Sequence[Topic],
    relationships: Sequence[TopicRelationship],
    limit: int = DEFAULT_GAP_LIMIT,
) -> List[KnowledgeGap]:
    """Find unconnected pairs of high-degree topics.

    High-degree means strictly above the median degree (``sorted[n // 2]``).
    Significance is ``0.5 + 0.5 * min(1, (deg_a + deg_b) / (2 * n))``.
    """
    if len(topics) < 2:
        return []

    degrees = topic_degrees(topics, relationships)
    ordered = sorted(degrees.get(t.id, 0) for t in topics)
    median = ordered[len(ordered) // 2]
    high_degree = [t for t in topics if degrees.get(t.id, 0) > median]

    adjacent = {canonical_pair(r.source_id, r.target_id) for r in relationships}

    gaps: List[KnowledgeGap] = []
    for i in range(len(high_degree)):
        for j in range(i + 1, len(high_degree)):
            topic_a = high_degree[i]
            topic_b = high_degree[j]
            if canonical_pair(topic_a.id, topic_b.id) in adjacent:
                continue
            combined = degrees.get(topic_a.id, 0) + degrees.get(topic_b.id, 0)
            gaps.append(
                KnowledgeGap(
                    description=(
                        f'Structural gap: "{topic_a.label}" and "{topic_b.label}" are both '
                        "well-studied topics but lack a direct relationship in the literature."
                    ),
                    topic_ids=[topic_a.id, topic_b.id],
                    gap_type=GapType.STRUCTURAL,
                    significance=0.5 + 0.5 * min(1.0, combined / (len(topics) * 2)),
                )
            )

    return _top(gaps, limit)


def find_density_gaps(
    topics: Sequence[Topic],
    limit: int = DEFAULT_GAP_LIMIT,
    threshold_ratio: float = 0.5,
) -> List[KnowledgeGap]:
    """Find topics with claim counts below ``threshold_ratio`` of the average.

    Skipped entirely when the average claim count is below 1.
    """
    if not topics:
        return []

    average = sum(t.claim_count for t in topics) / len(topics)
    if average < 1:
        return []

    threshold = average * threshold_ratio
    gaps: List[KnowledgeGap] = []
    for topic in topics:
        if topic.claim_count >= threshold:
            continue
        gaps.append(
            KnowledgeGap(
                description=(
                    f'Density gap: "{topic.label}" has only {topic.claim_count} claim(s), '
                    f"significantly below the average of {average:.1f} claims per topic."
                ),
                topic_ids=[topic.id],
                gap_type=GapType.DENSITY,
                significance=clamp(1 - topic.claim_count / average, 0.0, 1.0),
            )
        )

    return _top(gaps, limit)


def find_sparse_regions(
    topics: Sequence[Topic],
    relationships: Sequence[TopicRelationship],
    density: Dict[TopicId, float],
) -> List[TopicId]:
    """Topics in the bottom density quartile with below-average connectivity."""
    if not topics:
        return []

    connectivity = topic_degrees(topics, relationships)
    densities = sorted(density.get(t.id, 0.0) for t in topics)
    density_threshold = densities[len(densities) // 4]
    average_connectivity = sum(connectivity.get(t.id, 0) for t in topics) / len(topics)

    return [
        topic.id
        for topic in topics
        if density.get(topic.id, 0.0) <= density_threshold
        and connectivity.get(topic.id, 0) < average_connectivity
    ]
