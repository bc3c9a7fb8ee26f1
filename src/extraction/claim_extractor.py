"""Oracle-backed claim extraction for a single text chunk.

One completion call per chunk. A reply that is not JSON gets exactly one retry
in the same conversation (original prompt, the prior reply, a corrective
follow-up). Parse and validation failures degrade to zero claims with an error
string; transport errors from the client propagate to the caller.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from loguru import logger

from src.extraction.models import ClaimExtractionResult, ExtractedClaim
from src.extraction.prompts import PromptLibrary
from src.storage.schemas import ClaimType
from src.utils.config import ExtractionConfig
from src.utils.errors import ResponseParseError
from src.utils.json_response import clamp, is_number, parse_json_response
from src.utils.llm_client import ChatMessage, LLMClient

INVALID_STRUCTURE = "Invalid response structure"
RETRY_FAILED = "Failed to parse AI response after retry"

_CLAIM_TYPES = {t.value for t in ClaimType}


def validate_claims_payload(data: Any) -> ClaimExtractionResult:
    """Keep the well-formed items of a ``{"claims": [...]}`` payload.

    Items need a string ``text``, a known ``type``, a numeric ``confidence`` and
    a ``topics`` list. Confidence is clamped to [0, 1] and non-string topics are
    dropped.
    """
    if not isinstance(data, dict) or not isinstance(data.get("claims"), list):
        return ClaimExtractionResult(claims=[], error=INVALID_STRUCTURE)

    claims: List[ExtractedClaim] = []
    for item in data["claims"]:
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        claim_type = item.get("type")
        confidence = item.get("confidence")
        topics = item.get("topics")
        if not isinstance(text, str) or not isinstance(claim_type, str):
            continue
        if claim_type not in _CLAIM_TYPES:
            continue
        if not is_number(confidence) or not isinstance(topics, list):
            continue
        claims.append(
            ExtractedClaim(
                text=text,
                type=ClaimType(claim_type),
                confidence=clamp(float(confidence), 0.0, 1.0),
                topics=[t for t in topics if isinstance(t, str)],
            )
        )
    return ClaimExtractionResult(claims=claims)


class ClaimExtractor:
    """Extract typed claims and topic labels from chunk text."""

    def __init__(
        self,
        llm_client: LLMClient,
        config: Optional[ExtractionConfig] = None,
        prompts: Optional[PromptLibrary] = None,
    ) -> None:
        self.llm_client = llm_client
        self.config = config or ExtractionConfig()
        self.prompts = prompts or PromptLibrary(self.config.prompts_path)

    def extract_claims(self, chunk_text: str) -> ClaimExtractionResult:
        prompt = self.prompts.render("claim_extraction", chunk_text=chunk_text)
        messages: List[ChatMessage] = [{"role": "user", "content": prompt}]

        reply = self._complete(messages)
        try:
            return validate_claims_payload(parse_json_response(reply))
        except ResponseParseError as exc:
            logger.debug("Claim extraction reply was not JSON; retrying once", error=str(exc))

        messages = messages + [
            {"role": "assistant", "content": reply},
            {"role": "user", "content": self.prompts.render("claim_extraction_retry")},
        ]
        retry_reply = self._complete(messages)
        try:
            return validate_claims_payload(parse_json_response(retry_reply))
        except ResponseParseError:
            return ClaimExtractionResult(claims=[], error=RETRY_FAILED)

    def _complete(self, messages: List[ChatMessage]) -> str:
        return self.llm_client.complete(messages, max_tokens=self.config.max_tokens)


def summarize_claims(claims: List[ExtractedClaim]) -> Dict[str, int]:
    """Count extracted claims per type."""
    counts: Dict[str, int] = {}
    for claim in claims:
        counts[claim.type.value] = counts.get(claim.type.value, 0) + 1
    return counts
