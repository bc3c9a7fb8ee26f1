#!/usr/bin/env python3
"""Knowledge-gap analysis CLI script.

Ingests documents into an in-process store, then runs contradiction detection
and gap analysis over everything ingested and prints a summary.

Supported inputs: `.pdf`, `.txt`, `.md`, `.markdown`

Usage:
    python scripts/analyze_documents.py paper1.pdf paper2.pdf
    python scripts/analyze_documents.py --directory data/papers/
    python scripts/analyze_documents.py --config config/custom.yaml --skip-contradictions notes.md

Options:
    --directory, -d: Process documents in directory
    --config, -c: Path to config file (default: config/config.yaml)
    --skip-contradictions: Do not run contradiction detection
    --skip-gaps: Do not run gap analysis
    --top: Number of ranked research questions to print (default: 10)
    --verbose, -v: Enable verbose logging
    --dry-run: Show what would be processed without actually doing it
"""

import argparse
import sys
from pathlib import Path

# Add repo root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger

from src.graph.builder import calculate_density
from src.graph.gap_detection import find_sparse_regions
from src.ingestion.text_extractor import TextExtractor
from src.pipeline.analysis_pipeline import AnalysisPipeline
from src.pipeline.ingestion_pipeline import IngestionPipeline, IngestionProgress
from src.storage.memory_store import MemoryStore
from src.utils.config import load_config
from src.utils.llm_client import ClientCache
from src.utils.log_setup import setup_logging


def find_document_files(paths: list[Path]) -> list[Path]:
    """Find all supported document files from the given paths.

    Args:
        paths: List of file or directory paths

    Returns:
        Sorted, de-duplicated list of document file paths
    """
    extractor = TextExtractor()
    document_files: list[Path] = []

    for path in paths:
        if path.is_file():
            if extractor.supports(path):
                document_files.append(path)
            else:
                logger.warning(f"Skipping unsupported file: {path}")
        elif path.is_dir():
            for file_path in path.rglob("*"):
                if file_path.is_file() and extractor.supports(file_path):
                    document_files.append(file_path)
        else:
            logger.warning(f"Path does not exist: {path}")

    return sorted({p.resolve() for p in document_files})


def _log_progress(event: IngestionProgress) -> None:
    if event.error:
        logger.warning(f"{event.file_name}: {event.status.value} ({event.error})")
    else:
        logger.debug(f"{event.file_name}: {event.status.value} {event.progress}%")


def main() -> int:
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description="Extract claims from documents and analyze knowledge gaps",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("paths", nargs="*", type=Path, help="Files or directories to process")
    parser.add_argument(
        "--directory", "-d", type=Path, help="Directory containing files to process"
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )
    parser.add_argument(
        "--skip-contradictions", action="store_true", help="Do not run contradiction detection"
    )
    parser.add_argument("--skip-gaps", action="store_true", help="Do not run gap analysis")
    parser.add_argument(
        "--top", type=int, default=10, help="Number of research questions to print (default: 10)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show what would be processed without actually doing it",
    )

    args = parser.parse_args()

    paths_to_process = args.paths or []
    if args.directory:
        paths_to_process.append(args.directory)

    if not paths_to_process:
        parser.error("No files or directories specified. Use --help for usage.")

    try:
        config = load_config(args.config)
        setup_logging(config.logging, verbose=args.verbose)
        logger.info(f"Loaded configuration from {args.config}")

        document_files = find_document_files(paths_to_process)
        if not document_files:
            logger.error("No supported documents found to process")
            return 1

        logger.info(f"Found {len(document_files)} documents to process")

        if args.dry_run:
            logger.info("Dry run mode - would process:")
            for path in document_files:
                logger.info(f"  {path}")
            return 0

        store = MemoryStore()
        cache = ClientCache()

        ingestion = IngestionPipeline(config, store, client_cache=cache)
        ingestion.add_progress_listener(_log_progress)
        results = ingestion.ingest(document_files) or []

        failed = [r for r in results if not r.success]
        for result in failed:
            logger.error(f"  {result.file_name}: {result.error}")

        analysis = AnalysisPipeline(config, store, client_cache=cache)

        if not args.skip_contradictions:
            run = analysis.run_contradiction_detection()
            if run is not None and not run.success:
                logger.error(f"Contradiction detection failed: {run.error}")

        if not args.skip_gaps:
            run = analysis.run_gap_analysis()
            if run is not None and not run.success:
                logger.error(f"Gap analysis failed: {run.error}")

        print("\n" + "=" * 60)
        print("ANALYSIS SUMMARY")
        print("=" * 60)
        print(f"Documents:      {store.documents.count()} ({len(failed)} failed)")
        print(f"Claims:         {store.claims.count()}")
        print(f"Topics:         {store.topics.count()}")
        print(f"Relationships:  {store.relationships.count()}")
        print(f"Contradictions: {store.contradictions.count()}")
        print(f"Gaps:           {store.gaps.count()}")
        print(f"Questions:      {store.questions.count()}")

        topics = store.topics.all()
        sparse = find_sparse_regions(topics, store.relationships.all(), calculate_density(topics))
        if sparse:
            labels = {t.id: t.label for t in topics}
            print(f"\nSparse topics ({len(sparse)}): " + ", ".join(labels[tid] for tid in sparse[:10]))

        questions = analysis.ranked_questions()[: max(args.top, 0)]
        if questions:
            print("\nTop research questions:")
            for i, question in enumerate(questions, 1):
                print(f"  {i}. [{question.overall_score:.1f}] {question.question}")

        return 1 if failed and len(failed) == len(results) else 0

    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.exception(f"Analysis failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
