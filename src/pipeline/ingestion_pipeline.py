"""End-to-end document ingestion pipeline.

This module orchestrates the per-document workflow:
1. Content hashing and duplicate rejection
2. Text extraction (plain text or PDF)
3. Sliding-window chunking
4. Claim extraction per chunk on a bounded worker pool, with topic upsert
5. Topic co-occurrence relationships for the document

Documents in a batch are processed one at a time; only chunk extraction within a
document runs concurrently.
"""

import math
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from loguru import logger
from pydantic import BaseModel, ConfigDict

from src.extraction.claim_extractor import ClaimExtractor, summarize_claims
from src.graph.builder import TopicGraphBuilder
from src.ingestion.chunker import TextChunker
from src.ingestion.text_extractor import TextExtractor
from src.normalization.label_normalizer import LabelNormalizer
from src.pipeline.runtime import build_llm_client, effective_chunking
from src.storage.memory_store import MemoryStore
from src.storage.schemas import Claim, Document, DocumentStatus, TextChunk, Topic
from src.utils.config import Config
from src.utils.errors import DuplicateDocumentError, EmptyDocumentError
from src.utils.ids import DocumentId, TopicId, new_document_id
from src.utils.llm_client import ClientCache
from src.utils.worker_pool import run_bounded

EMPTY_TEXT_MESSAGE = "No text content could be extracted from the file."


class IngestionProgress(BaseModel):
    """Progress event published to listeners at every stage change."""

    document_id: Optional[DocumentId] = None
    file_name: str
    status: DocumentStatus
    progress: int = 0
    error: Optional[str] = None


ProgressListener = Callable[[IngestionProgress], None]


class IngestionResult(BaseModel):
    """Result of document ingestion."""

    model_config = ConfigDict(extra="allow")

    document_id: Optional[DocumentId] = None
    file_name: str
    success: bool
    duplicate: bool = False
    chunks_created: int = 0
    claims_created: int = 0
    relationships_built: int = 0
    extraction_warnings: int = 0
    processing_time: float = 0.0
    error: Optional[str] = None


class _SeenTopics:
    """Topics already counted toward a document within one ingestion run."""

    def __init__(self) -> None:
        self._seen: Dict[TopicId, Set[DocumentId]] = {}
        self.lock = threading.Lock()

    def mark(self, topic_id: TopicId, document_id: DocumentId) -> bool:
        """Record a touch; True the first time this pair is seen. Call under ``lock``."""
        documents = self._seen.setdefault(topic_id, set())
        if document_id in documents:
            return False
        documents.add(document_id)
        return True


class IngestionPipeline:
    """Document ingestion orchestrator.

    Example:
        >>> pipeline = IngestionPipeline(config, store)
        >>> results = pipeline.ingest(["paper.pdf", "notes.txt"])
        >>> print([r.claims_created for r in results])
    """

    def __init__(
        self,
        config: Config,
        store: MemoryStore,
        extractor: Optional[ClaimExtractor] = None,
        *,
        text_extractor: Optional[TextExtractor] = None,
        client_cache: Optional[ClientCache] = None,
    ) -> None:
        """Initialize the ingestion pipeline.

        Args:
            config: Application configuration
            store: Record store receiving documents, chunks, claims and topics
            extractor: Claim extractor; built from config and stored settings when None
            text_extractor: File reader; defaults to :class:`TextExtractor`
            client_cache: Shared SDK client cache for the default extractor
        """
        self.config = config
        self.store = store
        self.extractor = extractor
        self.text_extractor = text_extractor or TextExtractor()
        self.client_cache = client_cache or ClientCache()
        self.normalizer = LabelNormalizer(config.normalization)
        self.graph_builder = TopicGraphBuilder(store)

        self._listeners: List[ProgressListener] = []
        self._batch_lock = threading.Lock()
        self._status_lock = threading.Lock()

        self.stats: Dict[str, Any] = {
            "documents_processed": 0,
            "documents_failed": 0,
            "duplicates_rejected": 0,
            "chunks_created": 0,
            "claims_created": 0,
            "relationships_built": 0,
            "total_processing_time": 0.0,
        }

        logger.info("IngestionPipeline initialized")

    # -----------------------
    # Public API
    # -----------------------
    @property
    def is_processing(self) -> bool:
        return self._batch_lock.locked()

    def add_progress_listener(self, listener: ProgressListener) -> None:
        self._listeners.append(listener)

    def ingest(self, paths: Sequence[Path | str]) -> Optional[List[IngestionResult]]:
        """Process a batch of files sequentially.

        Returns None without doing anything when a batch is already running.
        A failing file is reported in its result and does not stop the batch.
        """
        if not self._batch_lock.acquire(blocking=False):
            logger.warning("Ingestion already in progress; ignoring new batch")
            return None

        try:
            logger.info(f"Processing batch of {len(paths)} documents")
            results: List[IngestionResult] = []
            for path in paths:
                results.append(self.process_document(path))
                successful = sum(1 for r in results if r.success)
                logger.info(
                    f"Progress: {len(results)}/{len(paths)} processed, {successful} successful"
                )

            successful_count = sum(1 for r in results if r.success)
            total_claims = sum(r.claims_created for r in results)
            logger.info(
                f"Batch processing complete: {successful_count}/{len(paths)} successful, "
                f"{total_claims} claims extracted"
            )
            return results
        finally:
            self._batch_lock.release()

    def process_document(self, path: Path | str) -> IngestionResult:
        """Process a single document end-to-end.

        Failures after the document record exists mark it ``error`` with
        progress 0; data committed before the failure is kept.

        Args:
            path: Path to the document file (.pdf, .txt, .md)

        Returns:
            IngestionResult with processing details
        """
        start_time = time.time()
        path = Path(path)
        file_name = path.name
        document_id = new_document_id()
        created = False

        logger.info(f"Processing document: {file_name}")
        self._publish(None, file_name, DocumentStatus.UPLOADING, 0)

        try:
            source = self.text_extractor.identify(path)

            existing = self.store.documents.first("content_hash", source.content_hash)
            if existing is not None:
                raise DuplicateDocumentError(existing.name)

            self.store.documents.put(
                Document(
                    id=document_id,
                    name=file_name,
                    content_hash=source.content_hash,
                    size=source.size,
                    kind=source.kind,
                )
            )
            created = True
            self._set_status(document_id, file_name, DocumentStatus.UPLOADING, 10)

            self._set_status(document_id, file_name, DocumentStatus.EXTRACTING, 15)
            text = self.text_extractor.extract_text(source)
            if not text.strip():
                raise EmptyDocumentError(EMPTY_TEXT_MESSAGE)
            self._set_status(document_id, file_name, DocumentStatus.EXTRACTING, 30)

            self._set_status(document_id, file_name, DocumentStatus.CHUNKING, 35)
            chunker = TextChunker(effective_chunking(self.config, self.store))
            chunks = chunker.chunk_text(text, document_id)
            self.store.chunks.bulk_put(chunks)
            self._set_status(document_id, file_name, DocumentStatus.CHUNKING, 40)

            self._set_status(document_id, file_name, DocumentStatus.ANALYZING, 45)
            claims_created, warnings = self._extract_claims(document_id, file_name, chunks)

            relationships_built = self.graph_builder.build_relationships(document_id)
            self._set_status(document_id, file_name, DocumentStatus.COMPLETE, 100)

            processing_time = time.time() - start_time
            self.stats["documents_processed"] += 1
            self.stats["chunks_created"] += len(chunks)
            self.stats["claims_created"] += claims_created
            self.stats["relationships_built"] += relationships_built
            self.stats["total_processing_time"] += processing_time

            logger.success(
                f"Document processed successfully: {len(chunks)} chunks, "
                f"{claims_created} claims, {processing_time:.2f}s"
            )
            return IngestionResult(
                document_id=document_id,
                file_name=file_name,
                success=True,
                chunks_created=len(chunks),
                claims_created=claims_created,
                relationships_built=relationships_built,
                extraction_warnings=warnings,
                processing_time=processing_time,
            )

        except DuplicateDocumentError as e:
            logger.warning(str(e))
            self.stats["duplicates_rejected"] += 1
            self._publish(None, file_name, DocumentStatus.ERROR, 0, str(e))
            return IngestionResult(
                file_name=file_name,
                success=False,
                duplicate=True,
                processing_time=time.time() - start_time,
                error=str(e),
            )

        except Exception as e:
            processing_time = time.time() - start_time
            message = str(e) or "Unknown error during ingestion"
            logger.error(f"Document processing failed: {message}")
            self.stats["documents_failed"] += 1

            if created:
                try:
                    self._set_status(document_id, file_name, DocumentStatus.ERROR, 0, message)
                except Exception as status_err:
                    logger.warning(f"Failed to update document status to error: {status_err}")
            else:
                self._publish(None, file_name, DocumentStatus.ERROR, 0, message)

            return IngestionResult(
                document_id=document_id if created else None,
                file_name=file_name,
                success=False,
                processing_time=processing_time,
                error=message,
            )

    def delete_document(self, document_id: DocumentId) -> bool:
        """Delete a document and everything derived from it in one atomic batch.

        Topic counts are decremented (claim_count per referencing claim,
        document_count once per touched topic). Topics left without claims are
        removed together with every relationship touching them. Contradictions
        citing a deleted claim are removed and gaps drop references to removed topics.

        Returns:
            False if the document does not exist
        """
        with self.store.transaction():
            if self.store.documents.get(document_id) is None:
                return False

            claims = self.store.claims.where("document_id", document_id)
            references: Dict[TopicId, int] = {}
            for claim in claims:
                for topic_id in set(claim.topic_ids):
                    references[topic_id] = references.get(topic_id, 0) + 1

            orphaned: List[TopicId] = []
            for topic_id, count in references.items():
                topic = self.store.topics.get(topic_id)
                if topic is None:
                    continue
                claim_count = max(0, topic.claim_count - count)
                if claim_count == 0:
                    self.store.topics.delete(topic_id)
                    orphaned.append(topic_id)
                else:
                    self.store.topics.update(
                        topic_id,
                        claim_count=claim_count,
                        document_count=max(0, topic.document_count - 1),
                    )

            stale_relationships: Set[str] = set()
            for topic_id in orphaned:
                stale_relationships.update(
                    r.id for r in self.store.relationships.where("source_id", topic_id)
                )
                stale_relationships.update(
                    r.id for r in self.store.relationships.where("target_id", topic_id)
                )
            self.store.relationships.bulk_delete(stale_relationships)

            claim_ids = {c.id for c in claims}
            stale_contradictions = [
                c.id
                for c in self.store.contradictions.all()
                if c.claim_a_id in claim_ids or c.claim_b_id in claim_ids
            ]
            self.store.contradictions.bulk_delete(stale_contradictions)

            # Gaps keep only surviving topics; a gap left with none goes, with its questions.
            orphaned_set = set(orphaned)
            dropped_gaps: List[str] = []
            for gap in self.store.gaps.all():
                if not orphaned_set.intersection(gap.topic_ids):
                    continue
                remaining = [t for t in gap.topic_ids if t not in orphaned_set]
                if remaining:
                    self.store.gaps.update(gap.id, topic_ids=remaining)
                else:
                    dropped_gaps.append(gap.id)
            if dropped_gaps:
                self.store.gaps.bulk_delete(dropped_gaps)
                self.store.questions.bulk_delete(
                    q.id for q in self.store.questions.all() if q.gap_id in dropped_gaps
                )

            self.store.claims.bulk_delete(claim_ids)
            self.store.chunks.bulk_delete(
                c.id for c in self.store.chunks.where("document_id", document_id)
            )
            self.store.documents.delete(document_id)

        logger.info(
            "Deleted document",
            document_id=document_id,
            claims=len(claims),
            orphaned_topics=len(orphaned),
            relationships=len(stale_relationships),
            contradictions=len(stale_contradictions),
            gaps=len(dropped_gaps),
        )
        return True

    def get_statistics(self) -> Dict[str, Any]:
        """Get pipeline processing statistics."""
        return self.stats.copy()

    # -----------------------
    # Claim extraction
    # -----------------------
    def _get_extractor(self) -> ClaimExtractor:
        if self.extractor is not None:
            return self.extractor
        llm_client = build_llm_client(self.config, self.store, self.client_cache)
        return ClaimExtractor(llm_client, self.config.extraction)

    def _extract_claims(
        self, document_id: DocumentId, file_name: str, chunks: List[TextChunk]
    ) -> tuple[int, int]:
        """Run extraction for every chunk; returns (claims created, warnings)."""
        if not chunks:
            return 0, 0

        extractor = self._get_extractor()
        seen = _SeenTopics()
        total = len(chunks)
        completed = 0
        warnings = 0
        counter_lock = threading.Lock()

        def work(chunk: TextChunk) -> int:
            nonlocal warnings
            result = extractor.extract_claims(chunk.content)
            if result.error:
                logger.warning(
                    "Claim extraction warning",
                    chunk_index=chunk.chunk_index,
                    error=result.error,
                )
                with counter_lock:
                    warnings += 1

            for extracted in result.claims:
                # One count per topic per claim, however many labels map to it.
                labels: Dict[str, str] = {}
                for raw_label in extracted.topics:
                    normalized = self.normalizer.normalize(raw_label)
                    if normalized and normalized not in labels:
                        labels[normalized] = raw_label

                topic_ids: List[TopicId] = []
                for raw_label in labels.values():
                    topic_id = self._upsert_topic(raw_label, document_id, seen)
                    if topic_id is not None:
                        topic_ids.append(topic_id)

                self.store.claims.put(
                    Claim(
                        document_id=document_id,
                        chunk_id=chunk.id,
                        text=extracted.text,
                        type=extracted.type,
                        confidence=extracted.confidence,
                        topic_ids=topic_ids,
                    )
                )

            if result.claims:
                logger.debug(
                    f"Chunk {chunk.chunk_index}: {summarize_claims(result.claims)}"
                )
            return len(result.claims)

        def on_complete(index: int, count: int) -> None:
            nonlocal completed
            with counter_lock:
                completed += 1
                progress = 45 + math.floor(50 * completed / total + 0.5)
            self._set_status(document_id, file_name, DocumentStatus.ANALYZING, progress)

        counts = run_bounded(
            chunks,
            work,
            concurrency=self.config.extraction.max_concurrency,
            on_complete=on_complete,
        )
        return sum(counts), warnings

    def _upsert_topic(
        self, raw_label: str, document_id: DocumentId, seen: _SeenTopics
    ) -> Optional[TopicId]:
        """Find or create the topic for ``raw_label`` and count this claim toward it."""
        normalized = self.normalizer.normalize(raw_label)
        if not normalized:
            return None

        with seen.lock, self.store.locked():
            existing = self.store.topics.first("normalized_label", normalized)
            if existing is not None:
                changes: Dict[str, int] = {"claim_count": existing.claim_count + 1}
                if seen.mark(existing.id, document_id):
                    changes["document_count"] = existing.document_count + 1
                self.store.topics.update(existing.id, **changes)
                return existing.id

            topic = Topic(
                label=raw_label.strip(),
                normalized_label=normalized,
                claim_count=1,
                document_count=1,
            )
            self.store.topics.put(topic)
            seen.mark(topic.id, document_id)
            return topic.id

    # -----------------------
    # Status and progress
    # -----------------------
    def _set_status(
        self,
        document_id: DocumentId,
        file_name: str,
        status: DocumentStatus,
        progress: int,
        error: Optional[str] = None,
    ) -> None:
        with self._status_lock:
            current = self.store.documents.get(document_id)
            # Chunk completions can arrive out of order; progress within a stage never drops.
            if (
                current is not None
                and status == DocumentStatus.ANALYZING
                and current.status == DocumentStatus.ANALYZING
            ):
                progress = max(progress, current.progress)
            self.store.documents.update(
                document_id,
                status=status,
                progress=progress,
                error=error,
                updated_at=datetime.now(),
            )
            self._publish(document_id, file_name, status, progress, error)

    def _publish(
        self,
        document_id: Optional[DocumentId],
        file_name: str,
        status: DocumentStatus,
        progress: int,
        error: Optional[str] = None,
    ) -> None:
        event = IngestionProgress(
            document_id=document_id,
            file_name=file_name,
            status=status,
            progress=progress,
            error=error,
        )
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as exc:  # noqa: BLE001
                logger.warning(f"Progress listener failed: {exc}")
