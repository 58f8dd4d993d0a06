"""
Grading Module.

Heuristic scoring, the optional LLM-assisted code grader, and the
orchestration that grades and regrades whole submissions.
"""

from exam_grader.grading.code_grader import CodeQualityGrader
from exam_grader.grading.engine import GradingOrchestrator
from exam_grader.grading.heuristic import HeuristicScorer
from exam_grader.grading.llm_client import LLMClient, LLMError
from exam_grader.grading.parser import ResponseParser
from exam_grader.grading.prompt_builder import PromptBuilder
from exam_grader.grading.strategy import CodeQualityScorer, ScoringStrategy, build_strategy
from exam_grader.grading.sweeper import RegradeSweeper

__all__ = [
    "CodeQualityGrader",
    "CodeQualityScorer",
    "GradingOrchestrator",
    "HeuristicScorer",
    "LLMClient",
    "LLMError",
    "PromptBuilder",
    "RegradeSweeper",
    "ResponseParser",
    "ScoringStrategy",
    "build_strategy",
]
