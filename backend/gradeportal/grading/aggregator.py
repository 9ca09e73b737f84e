"""Weighted score aggregation over a grading rubric.

Scores are stored only for leaves, keyed by their dotted full key. A
component with children is scored by summing the raw leaf scores across its
whole subtree, dividing by the summed leaf maxima and scaling the ratio onto
the component's own weight. Levels between the component and its leaves are
not rescaled on their own.

Every function here is total: missing or malformed scores count as zero and
nothing raises.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Tuple

from .tree import GradingComponent, GradingTree, full_key

ScoreRecord = Mapping[str, Any]

PASSING_TOTAL = 50.0

GRADE_SCALE: List[Tuple[float, float]] = [
    (80.0, 4.0),
    (75.0, 3.5),
    (70.0, 3.0),
    (65.0, 2.5),
    (60.0, 2.0),
    (55.0, 1.5),
    (50.0, 1.0),
]

GRADE_STEPS: Tuple[float, ...] = tuple(grade for _, grade in GRADE_SCALE) + (0.0,)


def coerce_score(value: Any) -> float:
    """Return ``value`` as a finite float, or 0.0 when it is not numeric."""

    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def raw_totals(node: GradingComponent, scores: ScoreRecord, key: str) -> Tuple[float, float]:
    """Sum raw scores and raw maxima over every leaf beneath ``node``."""

    if node.is_leaf:
        return coerce_score(scores.get(key)), node.weight

    raw_sum = 0.0
    raw_max = 0.0
    for child_key, child in node.ordered_children():
        child_sum, child_max = raw_totals(child, scores, f"{key}.{child_key}")
        raw_sum += child_sum
        raw_max += child_max
    return raw_sum, raw_max


def weighted_score(node: GradingComponent, scores: ScoreRecord, key: str) -> float:
    """Contribution of ``node`` towards its parent's total."""

    if node.is_leaf:
        return coerce_score(scores.get(key))

    raw_sum, raw_max = raw_totals(node, scores, key)
    if raw_max == 0:
        return 0.0
    return (raw_sum / raw_max) * node.weight


def total_score(tree: GradingTree, scores: ScoreRecord | None) -> float:
    """Weighted course total for one student."""

    scores = scores or {}
    return sum(
        weighted_score(component, scores, key)
        for key, component in tree.ordered_components()
    )


def letter_grade(total: float) -> float:
    for threshold, grade in GRADE_SCALE:
        if total >= threshold:
            return grade
    return 0.0


def grade_label(grade: float) -> str:
    return f"{grade:.1f}"


@dataclass
class ScoreLine:
    key: str
    label: str
    score: float
    max: float
    level: int
    is_leaf: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "label": self.label,
            "score": self.score,
            "max": self.max,
            "level": self.level,
            "is_leaf": self.is_leaf,
        }


def score_breakdown(tree: GradingTree, scores: ScoreRecord | None) -> List[ScoreLine]:
    """One line per component in display order, scored against its weight."""

    scores = scores or {}
    lines: List[ScoreLine] = []
    for path, component in tree.walk():
        key = full_key(path)
        lines.append(
            ScoreLine(
                key=key,
                label=component.label,
                score=weighted_score(component, scores, key),
                max=component.weight,
                level=len(path) - 1,
                is_leaf=component.is_leaf,
            )
        )
    return lines


@dataclass
class StudentReport:
    total: float
    max: float
    percentage: float
    grade: float
    breakdown: List[ScoreLine] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "max": self.max,
            "percentage": self.percentage,
            "grade": self.grade,
            "breakdown": [line.to_dict() for line in self.breakdown],
        }


def student_report(tree: GradingTree, scores: ScoreRecord | None) -> StudentReport:
    total = total_score(tree, scores)
    maximum = tree.total_weight()
    percentage = (total / maximum) * 100 if maximum > 0 else 0.0
    return StudentReport(
        total=total,
        max=maximum,
        percentage=percentage,
        grade=letter_grade(total),
        breakdown=score_breakdown(tree, scores),
    )


@dataclass
class StudentResult:
    student_id: str
    total: float
    grade: float

    def to_dict(self) -> Dict[str, Any]:
        return {"student_id": self.student_id, "total": self.total, "grade": self.grade}


@dataclass
class CourseSummary:
    results: List[StudentResult]
    average: float
    distribution: Dict[str, int]
    at_risk: List[StudentResult]
    passing_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "count": len(self.results),
            "average": self.average,
            "distribution": dict(self.distribution),
            "passing_count": self.passing_count,
            "at_risk": [result.to_dict() for result in self.at_risk],
            "results": [result.to_dict() for result in self.results],
        }


def compute_results(
    tree: GradingTree, records: Mapping[str, ScoreRecord | None]
) -> List[StudentResult]:
    """Totals and grades for every student, in the order of ``records``."""

    results = []
    for student_id, scores in records.items():
        total = total_score(tree, scores)
        results.append(StudentResult(student_id, total, letter_grade(total)))
    return results


def summarize_course(
    tree: GradingTree, records: Mapping[str, ScoreRecord | None]
) -> CourseSummary:
    """Class-wide statistics: ranking, average, grade distribution, at-risk list."""

    results = compute_results(tree, records)
    ranked = sorted(results, key=lambda result: (-result.total, result.student_id))

    distribution = {grade_label(grade): 0 for grade in GRADE_STEPS}
    for result in ranked:
        distribution[grade_label(result.grade)] += 1

    at_risk = sorted(
        (result for result in ranked if result.total < PASSING_TOTAL),
        key=lambda result: (result.total, result.student_id),
    )
    average = sum(result.total for result in ranked) / len(ranked) if ranked else 0.0

    return CourseSummary(
        results=ranked,
        average=average,
        distribution=distribution,
        at_risk=at_risk,
        passing_count=len(ranked) - len(at_risk),
    )


__all__ = [
    "GRADE_SCALE",
    "GRADE_STEPS",
    "PASSING_TOTAL",
    "CourseSummary",
    "ScoreLine",
    "StudentReport",
    "StudentResult",
    "coerce_score",
    "compute_results",
    "grade_label",
    "letter_grade",
    "raw_totals",
    "score_breakdown",
    "student_report",
    "summarize_course",
    "total_score",
    "weighted_score",
]
