"""Grading rubric model and score aggregation."""

from .aggregator import (
    letter_grade,
    score_breakdown,
    student_report,
    summarize_course,
    total_score,
    weighted_score,
)
from .errors import GradingError, InvalidPath, KeyNotFound, ValidationError
from .tree import GradingComponent, GradingTree, full_key, total_weight

__all__ = [
    "GradingComponent",
    "GradingError",
    "GradingTree",
    "InvalidPath",
    "KeyNotFound",
    "ValidationError",
    "full_key",
    "letter_grade",
    "score_breakdown",
    "student_report",
    "summarize_course",
    "total_score",
    "total_weight",
    "weighted_score",
]
