"""Contradiction candidate generation and oracle verification."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from loguru import logger

from src.extraction.models import ContradictionCheckResult
from src.extraction.prompts import PromptLibrary
from src.storage.schemas import Claim, Contradiction, ContradictionStatus, Severity
from src.utils.config import ContradictionConfig
from src.utils.ids import ClaimId
from src.utils.json_response import clamp, is_number, parse_json_response
from src.utils.llm_client import LLMClient

ClaimPair = Tuple[ClaimId, ClaimId]

_REQUIRED_KEYS = ("isContradiction", "description", "severity", "confidence")
_SEVERITIES = {s.value for s in Severity}


def generate_candidates(claims: Sequence[Claim]) -> List[ClaimPair]:
    """Pair claims of the same type that share at least one topic.

    Each unordered pair is emitted once, in input order.
    """
    candidates: List[ClaimPair] = []
    seen: Set[ClaimPair] = set()

    for i in range(len(claims)):
        for j in range(i + 1, len(claims)):
            claim_a = claims[i]
            claim_b = claims[j]
            if claim_a.id == claim_b.id or claim_a.type != claim_b.type:
                continue
            if not set(claim_a.topic_ids) & set(claim_b.topic_ids):
                continue
            key = (claim_a.id, claim_b.id) if claim_a.id < claim_b.id else (claim_b.id, claim_a.id)
            if key in seen:
                continue
            seen.add(key)
            candidates.append((claim_a.id, claim_b.id))

    return candidates


def validate_contradiction_payload(data: Any) -> ContradictionCheckResult:
    if not isinstance(data, dict) or any(key not in data for key in _REQUIRED_KEYS):
        return ContradictionCheckResult(
            is_contradiction=False,
            description="Invalid response structure",
            severity=Severity.LOW,
            confidence=0.0,
        )

    severity = data["severity"]
    if not isinstance(severity, str) or severity not in _SEVERITIES:
        severity = Severity.LOW.value
    confidence = data["confidence"]
    description = data["description"]
    return ContradictionCheckResult(
        is_contradiction=bool(data["isContradiction"]),
        description=description if isinstance(description, str) else "",
        severity=Severity(severity),
        confidence=clamp(float(confidence), 0.0, 1.0) if is_number(confidence) else 0.0,
    )


class ContradictionDetector:
    """Verify candidate claim pairs with the oracle, one call at a time."""

    def __init__(
        self,
        llm_client: LLMClient,
        config: Optional[ContradictionConfig] = None,
        prompts: Optional[PromptLibrary] = None,
    ) -> None:
        self.llm_client = llm_client
        self.config = config or ContradictionConfig()
        self.prompts = prompts or PromptLibrary()

    def verify(self, claim_a: Claim, claim_b: Claim) -> ContradictionCheckResult:
        """Adjudicate one pair; failures return a non-contradiction with confidence 0."""
        prompt = self.prompts.render(
            "contradiction_check", claim_a=claim_a.text, claim_b=claim_b.text
        )
        try:
            reply = self.llm_client.complete(
                [{"role": "user", "content": prompt}], max_tokens=self.config.max_tokens
            )
            return validate_contradiction_payload(parse_json_response(reply))
        except Exception as exc:
            logger.warning(
                "Contradiction verification failed",
                claim_a=claim_a.id,
                claim_b=claim_b.id,
                error=str(exc),
            )
            return ContradictionCheckResult(
                is_contradiction=False,
                description=str(exc) or "Verification failed",
                severity=Severity.LOW,
                confidence=0.0,
            )

    def detect(self, claims: Sequence[Claim]) -> List[Contradiction]:
        """Verify every candidate pair and keep confident contradictions."""
        candidates = generate_candidates(claims)
        if not candidates:
            return []

        by_id: Dict[ClaimId, Claim] = {c.id: c for c in claims}
        threshold = self.config.confidence_threshold
        logger.info(f"Verifying {len(candidates)} contradiction candidate(s)")

        found: List[Contradiction] = []
        for id_a, id_b in candidates:
            claim_a = by_id.get(id_a)
            claim_b = by_id.get(id_b)
            if claim_a is None or claim_b is None:
                continue
            result = self.verify(claim_a, claim_b)
            if result.is_contradiction and result.confidence > threshold:
                found.append(
                    Contradiction(
                        claim_a_id=id_a,
                        claim_b_id=id_b,
                        description=result.description,
                        severity=result.severity,
                        confidence=result.confidence,
                        status=ContradictionStatus.PENDING,
                    )
                )
        return found
