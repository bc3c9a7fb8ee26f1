"""Corpus-wide analysis runs over the stored claim/topic graph.

Two user-initiated runs, each fully replacing the output of the previous one:

- contradiction detection: candidate pairs verified sequentially, then the
  contradiction table is cleared and refilled in one batch
- gap analysis: gaps and questions are cleared once up front, gaps are detected
  and stored, then questions are generated per gap on a small worker pool and
  stored as each gap finishes
"""

from __future__ import annotations

import threading
import time
from typing import List, Optional

from loguru import logger
from pydantic import BaseModel

from src.analysis.contradiction_detector import ContradictionDetector
from src.analysis.gap_analyzer import GapAnalyzer
from src.analysis.question_generator import QuestionGenerator, surrounding_claims
from src.extraction.prompts import PromptLibrary
from src.pipeline.runtime import build_llm_client
from src.storage.memory_store import MemoryStore
from src.storage.schemas import KnowledgeGap, ResearchQuestion
from src.utils.config import Config
from src.utils.errors import MissingAPIKeyError
from src.utils.llm_client import ClientCache, LLMClient
from src.utils.worker_pool import run_bounded

NOT_ENOUGH_CLAIMS = "Need at least 2 claims to detect contradictions."
NO_TOPICS = "No topics found. Ingest some documents first."


class AnalysisRunResult(BaseModel):
    """Outcome of one analysis run."""

    success: bool
    skipped: bool = False
    message: Optional[str] = None
    error: Optional[str] = None
    contradictions_found: int = 0
    gaps_found: int = 0
    questions_generated: int = 0
    processing_time: float = 0.0


class AnalysisPipeline:
    """Contradiction and gap analysis over everything ingested so far.

    Example:
        >>> pipeline = AnalysisPipeline(config, store)
        >>> pipeline.run_contradiction_detection().contradictions_found
        >>> pipeline.run_gap_analysis().questions_generated
    """

    def __init__(
        self,
        config: Config,
        store: MemoryStore,
        llm_client: Optional[LLMClient] = None,
        *,
        client_cache: Optional[ClientCache] = None,
    ) -> None:
        self.config = config
        self.store = store
        self.llm_client = llm_client
        self.client_cache = client_cache or ClientCache()
        self.prompts = PromptLibrary(config.extraction.prompts_path)

        self._contradiction_lock = threading.Lock()
        self._gap_lock = threading.Lock()

    def _resolve_client(self) -> LLMClient:
        if self.llm_client is not None:
            return self.llm_client
        client = build_llm_client(self.config, self.store, self.client_cache)
        if not client.api_key:
            raise MissingAPIKeyError(
                f"No API key configured for provider '{client.config.provider}'."
            )
        return client

    # -----------------------
    # Contradictions
    # -----------------------
    def run_contradiction_detection(self) -> Optional[AnalysisRunResult]:
        """Detect contradictions and replace all stored ones.

        Returns None when a detection run is already in progress.
        """
        if not self._contradiction_lock.acquire(blocking=False):
            logger.warning("Contradiction detection already in progress; ignoring request")
            return None

        start_time = time.time()
        try:
            claims = self.store.claims.all()
            if len(claims) < 2:
                logger.info(NOT_ENOUGH_CLAIMS)
                return AnalysisRunResult(success=True, skipped=True, message=NOT_ENOUGH_CLAIMS)

            detector = ContradictionDetector(
                self._resolve_client(), self.config.contradictions, self.prompts
            )
            found = detector.detect(claims)

            with self.store.transaction():
                self.store.contradictions.clear()
                self.store.contradictions.bulk_put(found)

            processing_time = time.time() - start_time
            logger.success(
                f"Contradiction detection complete: {len(found)} found, {processing_time:.2f}s"
            )
            return AnalysisRunResult(
                success=True,
                contradictions_found=len(found),
                processing_time=processing_time,
            )
        except Exception as e:
            logger.error(f"Contradiction detection failed: {e}")
            return AnalysisRunResult(
                success=False,
                error=str(e) or "Failed to detect contradictions",
                processing_time=time.time() - start_time,
            )
        finally:
            self._contradiction_lock.release()

    # -----------------------
    # Gaps and questions
    # -----------------------
    def run_gap_analysis(self) -> Optional[AnalysisRunResult]:
        """Detect gaps, generate questions for each, and replace stored results.

        Returns None when a gap analysis run is already in progress.
        """
        if not self._gap_lock.acquire(blocking=False):
            logger.warning("Gap analysis already in progress; ignoring request")
            return None

        start_time = time.time()
        try:
            topics = self.store.topics.all()
            if not topics:
                logger.info(NO_TOPICS)
                return AnalysisRunResult(success=True, skipped=True, message=NO_TOPICS)

            llm_client = self._resolve_client()
            relationships = self.store.relationships.all()
            claims = self.store.claims.all()

            with self.store.transaction():
                self.store.gaps.clear()
                self.store.questions.clear()

            analyzer = GapAnalyzer(llm_client, self.config.gaps, self.prompts)
            gaps = analyzer.analyze(topics, relationships, claims)
            self.store.gaps.bulk_put(gaps)

            generator = QuestionGenerator(llm_client, self.config.questions, self.prompts)

            def work(gap: KnowledgeGap) -> List[ResearchQuestion]:
                return generator.generate(gap, surrounding_claims(gap, claims))

            def on_complete(index: int, questions: List[ResearchQuestion]) -> None:
                if questions:
                    self.store.questions.bulk_put(questions)

            per_gap = run_bounded(
                gaps,
                work,
                concurrency=self.config.questions.max_concurrency,
                on_complete=on_complete,
            )
            question_count = sum(len(q) for q in per_gap)

            processing_time = time.time() - start_time
            logger.success(
                f"Gap analysis complete: {len(gaps)} gaps, {question_count} questions, "
                f"{processing_time:.2f}s"
            )
            return AnalysisRunResult(
                success=True,
                gaps_found=len(gaps),
                questions_generated=question_count,
                processing_time=processing_time,
            )
        except Exception as e:
            logger.error(f"Gap analysis failed: {e}")
            return AnalysisRunResult(
                success=False,
                error=str(e) or "Failed to analyze gaps",
                processing_time=time.time() - start_time,
            )
        finally:
            self._gap_lock.release()

    def ranked_questions(self) -> List[ResearchQuestion]:
        """Stored questions, highest overall score first."""
        return sorted(self.store.questions.all(), key=lambda q: q.overall_score, reverse=True)
