"""Oracle-assisted analysis: contradictions, gaps and research questions."""

from src.analysis.contradiction_detector import ContradictionDetector, generate_candidates
from src.analysis.gap_analyzer import GapAnalyzer
from src.analysis.question_generator import QuestionGenerator, score_question

__all__ = [
    "ContradictionDetector",
    "GapAnalyzer",
    "QuestionGenerator",
    "generate_candidates",
    "score_question",
]
