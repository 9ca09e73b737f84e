"""Student score record endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from flask import Blueprint, jsonify, request
from pymongo import ReplaceOne
from pymongo.errors import PyMongoError

from ..config import ConfigError
from ..db import get_scores_collection, serialize_score_record
from ..grading.aggregator import letter_grade, student_report, total_score
from ..grading.records import apply_score_changes, clean_scores, score_document_id
from ..grading.tree import GradingTree
from ..utils.paging import PagingParamError, paginate, parse_paging_params
from ..utils.responses import clean_string, config_error_response, db_error_response, json_error
from .auth_simple import require_admin
from .grading import load_course_config

scores_bp = Blueprint("scores", __name__, url_prefix="/api/courses")

logger = logging.getLogger(__name__)

_SORT_FIELDS = {"total": "total", "student_id": "student_id"}


def _leaf_keys(tree: GradingTree) -> List[str]:
    return [key for key, _, _ in tree.leaves()]


def _score_document(student_id: str, course: str, scores: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "_id": score_document_id(student_id, course),
        "studentId": student_id,
        "course": course,
        "scores": scores,
    }


@scores_bp.get("/<course>/scores")
def list_course_scores(course: str):
    course_clean = clean_string(course)

    try:
        paging = parse_paging_params(
            request.args,
            allowed_sort_fields=_SORT_FIELDS,
            default_sort="-total",
        )
    except PagingParamError as exc:
        return json_error(str(exc), 400)

    try:
        tree = load_course_config(course_clean).tree
        cursor = get_scores_collection().find({"course": course_clean})

        items = []
        for document in cursor:
            record = serialize_score_record(document)
            total = total_score(tree, record["scores"])
            items.append(
                {
                    "student_id": record["studentId"],
                    "scores": record["scores"],
                    "total": total,
                    "grade": letter_grade(total),
                }
            )

        field = paging.sort_field
        page_items, meta = paginate(
            items,
            paging,
            sort_key=lambda item: (item[field], item["student_id"] or ""),
        )
        return jsonify({"items": page_items, "course": course_clean, **meta})
    except ConfigError as exc:
        return config_error_response(logger, exc)
    except PyMongoError:
        return db_error_response(logger, "Failed to list scores")


@scores_bp.get("/<course>/scores/<student_id>")
def get_student_scores(course: str, student_id: str):
    course_clean = clean_string(course)
    student_clean = clean_string(student_id)

    try:
        tree = load_course_config(course_clean).tree
        document = get_scores_collection().find_one(
            {"_id": score_document_id(student_clean, course_clean)}
        )
        scores = serialize_score_record(document)["scores"] if document else {}

        payload = {
            "studentId": student_clean,
            "course": course_clean,
            "scores": scores,
        }
        payload.update(student_report(tree, scores).to_dict())
        return jsonify(payload)
    except ConfigError as exc:
        return config_error_response(logger, exc)
    except PyMongoError:
        return db_error_response(logger, "Failed to load student scores")


@scores_bp.put("/<course>/scores/<student_id>")
@require_admin
def replace_student_scores(course: str, student_id: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return json_error("Request body must be JSON.", 400)

    cleaned, errors = clean_scores(data.get("scores"))
    if errors:
        return json_error("Validation failed.", 400, errors)

    course_clean = clean_string(course)
    student_clean = clean_string(student_id)
    if not student_clean:
        return json_error("Student ID is required.", 400)

    scores = apply_score_changes({}, cleaned)

    try:
        leaf_keys = set(_leaf_keys(load_course_config(course_clean).tree))
        get_scores_collection().replace_one(
            {"_id": score_document_id(student_clean, course_clean)},
            _score_document(student_clean, course_clean, scores),
            upsert=True,
        )
        ignored = sorted(key for key in scores if key not in leaf_keys)
        return jsonify({"ok": True, "scores": scores, "ignored": ignored})
    except ConfigError as exc:
        return config_error_response(logger, exc)
    except PyMongoError:
        return db_error_response(logger, "Failed to save student scores")


@scores_bp.post("/<course>/scores/bulk")
@require_admin
def bulk_update_scores(course: str):
    """Set one component's score for many students at once.

    Body: ``{"key": "final.project", "scores": {"<student id>": 18, ...}}``.
    A ``null`` score removes the entry; unchanged students are not written.
    """

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return json_error("Request body must be JSON.", 400)

    key = clean_string(data.get("key"))
    by_student, errors = clean_scores(data.get("scores"))
    if not key:
        errors["key"] = "Component key is required."
    if errors:
        return json_error("Validation failed.", 400, errors)

    course_clean = clean_string(course)

    try:
        tree = load_course_config(course_clean).tree
        if key not in _leaf_keys(tree):
            return json_error(
                "Validation failed.",
                400,
                {"key": "Scores can only be entered for components without sub-components."},
            )

        collection = get_scores_collection()
        existing = {
            document.get("studentId"): serialize_score_record(document)["scores"]
            for document in collection.find(
                {"course": course_clean, "studentId": {"$in": list(by_student)}}
            )
        }

        operations = []
        for student_id, value in by_student.items():
            current = existing.get(student_id, {})
            if current.get(key) == value:
                continue
            updated = apply_score_changes(current, {key: value})
            operations.append(
                ReplaceOne(
                    {"_id": score_document_id(student_id, course_clean)},
                    _score_document(student_id, course_clean, updated),
                    upsert=True,
                )
            )

        if operations:
            collection.bulk_write(operations, ordered=False)
        logger.info(
            "Bulk score entry for %s on %s updated %d record(s)",
            key,
            course_clean,
            len(operations),
        )
        return jsonify({"ok": True, "updated": len(operations)})
    except ConfigError as exc:
        return config_error_response(logger, exc)
    except PyMongoError:
        return db_error_response(logger, "Failed to save scores")


__all__ = ["scores_bp"]
