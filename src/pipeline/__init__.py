"""Pipeline orchestrators for end-to-end workflows."""

from src.pipeline.analysis_pipeline import AnalysisPipeline, AnalysisRunResult
from src.pipeline.ingestion_pipeline import IngestionPipeline, IngestionProgress, IngestionResult

__all__ = [
    "AnalysisPipeline",
    "AnalysisRunResult",
    "IngestionPipeline",
    "IngestionProgress",
    "IngestionResult",
]
