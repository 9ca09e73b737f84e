"""Course-level grading reports."""

from __future__ import annotations

import csv
import io
import logging
from typing import Any, Dict, List, Tuple

from flask import Blueprint, Response, jsonify
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import get_scores_collection, serialize_score_record
from ..grading.aggregator import grade_label, summarize_course
from ..grading.tree import GradingTree
from ..utils.responses import clean_string, config_error_response, db_error_response, json_error
from .grading import load_course_config

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")

logger = logging.getLogger(__name__)


def _format_numeric(value: float | int | None) -> float | int | None:
    if value is None:
        return None
    number = float(value)
    if abs(number - round(number)) < 1e-9:
        return int(round(number))
    return round(number, 2)


def _load_course(course: str) -> Tuple[GradingTree, Dict[str, Dict[str, Any]]]:
    tree = load_course_config(course).tree
    records: Dict[str, Dict[str, Any]] = {}
    for document in get_scores_collection().find({"course": course}):
        record = serialize_score_record(document)
        if record["studentId"]:
            records[record["studentId"]] = record["scores"]
    return tree, records


@reports_bp.get("/course-summary/<course>")
def course_summary(course: str):
    course_clean = clean_string(course)
    if not course_clean:
        return json_error("Course is required.", 400)

    try:
        tree, records = _load_course(course_clean)
        summary = summarize_course(tree, records)

        payload = summary.to_dict()
        payload["course"] = course_clean
        payload["total_weight"] = tree.total_weight()
        payload["average"] = round(summary.average, 2)
        return jsonify(payload)
    except ConfigError as exc:
        return config_error_response(logger, exc)
    except PyMongoError:
        return db_error_response(logger, "Failed to build course summary")


@reports_bp.get("/<course>/results.csv")
def export_results_csv(course: str):
    course_clean = clean_string(course)
    if not course_clean:
        return json_error("Course is required.", 400)

    try:
        tree, records = _load_course(course_clean)
        summary = summarize_course(tree, records)

        leaf_keys: List[str] = [key for key, _, _ in tree.leaves()]
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=["student_id", *leaf_keys, "total", "grade"])
        writer.writeheader()

        for result in summary.results:
            scores = records.get(result.student_id, {})
            row: Dict[str, Any] = {key: scores.get(key, "") for key in leaf_keys}
            row["student_id"] = result.student_id
            row["total"] = _format_numeric(result.total)
            row["grade"] = grade_label(result.grade)
            writer.writerow(row)

        response = Response(output.getvalue(), mimetype="text/csv")
        response.headers["Content-Disposition"] = (
            f"attachment; filename=results_{course_clean}.csv"
        )
        return response
    except ConfigError as exc:
        return config_error_response(logger, exc)
    except PyMongoError:
        return db_error_response(logger, "Failed to export results")


__all__ = ["reports_bp"]
