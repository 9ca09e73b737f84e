"""Course grading configuration endpoints."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from flask import Blueprint, jsonify, request
from pymongo.errors import PyMongoError

from .. import config
from ..config import ConfigError
from ..db import get_courses_collection
from ..grading.errors import InvalidPath, KeyNotFound, ValidationError
from ..grading.records import (
    DEFAULT_KEYS,
    CourseConfig,
    course_config_from_document,
    course_config_to_document,
    record_problems,
    seed_defaults,
    tree_from_record,
)
from ..grading.tree import DIRECTIONS, split_key
from ..utils.responses import clean_string, config_error_response, db_error_response, json_error
from .auth_simple import require_admin

grading_bp = Blueprint("grading", __name__, url_prefix="/api/courses")

logger = logging.getLogger(__name__)


def _parse_path(value: Any) -> List[str]:
    """Accept a list of keys or a dotted full key; ``None`` means the root."""

    if value in (None, ""):
        return []
    if isinstance(value, str):
        return split_key(value)
    if isinstance(value, list) and all(isinstance(part, str) and part for part in value):
        return list(value)
    raise ValueError("path must be a list of keys or a dotted key.")


def _parse_weight(payload: Dict[str, Any], errors: Dict[str, str]) -> float | None:
    if "weight" not in payload or payload.get("weight") in (None, ""):
        return None
    value = payload.get("weight")
    if isinstance(value, bool):
        errors["weight"] = "Weight must be a number."
        return None
    try:
        weight = float(value)
    except (TypeError, ValueError):
        errors["weight"] = "Weight must be a number."
        return None
    if weight < 0:
        errors["weight"] = "Weight must not be negative."
        return None
    return weight


def load_course_config(course: str) -> CourseConfig:
    document = get_courses_collection().find_one({"_id": course})
    return course_config_from_document(document)


def save_course_config(course: str, course_config: CourseConfig) -> None:
    document = course_config_to_document(course_config)
    get_courses_collection().replace_one({"_id": course}, document, upsert=True)
    logger.info("Saved grading configuration for course %s", course)


def _config_payload(course: str, course_config: CourseConfig) -> Dict[str, Any]:
    tree = course_config.tree
    payload = course_config_to_document(course_config)
    payload["course"] = course
    payload["total_weight"] = tree.total_weight()
    payload["raw_max_points"] = tree.raw_max_points()
    return payload


@grading_bp.get("/<course>/grading")
def get_grading_config(course: str):
    course_clean = clean_string(course)
    try:
        course_config = load_course_config(course_clean)
        return jsonify(_config_payload(course_clean, course_config))
    except ConfigError as exc:
        return config_error_response(logger, exc)
    except PyMongoError:
        return db_error_response(logger, "Failed to load grading configuration")


@grading_bp.put("/<course>/grading")
@require_admin
def replace_grading_config(course: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return json_error("Request body must be JSON.", 400)
    if not isinstance(data.get("gradingConfig"), dict) or not isinstance(
        data.get("gradingConfigOrder"), list
    ):
        return json_error(
            "Validation failed.",
            400,
            {"gradingConfig": "gradingConfig and gradingConfigOrder are required."},
        )

    details = record_problems(data)
    tree = seed_defaults(tree_from_record(data))
    try:
        tree.validate(require_full_weight=config.GRADING_REQUIRE_FULL_WEIGHT)
    except ValidationError as exc:
        details = {**exc.details, **details}
    if details:
        return json_error("Validation failed.", 400, details)

    course_clean = clean_string(course)
    try:
        # Activities are managed elsewhere; keep whatever is stored.
        course_config = load_course_config(course_clean)
        course_config.tree = tree
        save_course_config(course_clean, course_config)
        return jsonify(_config_payload(course_clean, course_config))
    except ConfigError as exc:
        return config_error_response(logger, exc)
    except PyMongoError:
        return db_error_response(logger, "Failed to save grading configuration")


def _apply_edit(course: str, edit: Callable[[CourseConfig], Any]):
    """Load the course rubric, apply ``edit`` and store the result."""

    course_clean = clean_string(course)
    try:
        course_config = load_course_config(course_clean)
        try:
            result = edit(course_config)
        except (InvalidPath, KeyNotFound) as exc:
            return None, json_error(str(exc), 404)
        save_course_config(course_clean, course_config)
        return result, None
    except ConfigError as exc:
        return None, config_error_response(logger, exc)
    except PyMongoError:
        return None, db_error_response(logger, "Failed to update grading configuration")


@grading_bp.post("/<course>/grading/nodes")
@require_admin
def add_grading_node(course: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return json_error("Request body must be JSON.", 400)

    errors: Dict[str, str] = {}
    try:
        path = _parse_path(data.get("path"))
    except ValueError as exc:
        errors["path"] = str(exc)
    weight = _parse_weight(data, errors)
    if errors:
        return json_error("Validation failed.", 400, errors)

    label = clean_string(data.get("label"))

    def edit(course_config: CourseConfig) -> str:
        if weight is None:
            return course_config.tree.add_child(path, label=label)
        return course_config.tree.add_child(path, weight=weight, label=label)

    key, error = _apply_edit(course, edit)
    if error:
        return error
    return jsonify({"ok": True, "key": key, "path": [*path, key]}), 201


@grading_bp.patch("/<course>/grading/nodes")
@require_admin
def update_grading_node(course: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return json_error("Request body must be JSON.", 400)

    errors: Dict[str, str] = {}
    path: List[str] = []
    try:
        path = _parse_path(data.get("path"))
    except ValueError as exc:
        errors["path"] = str(exc)
    else:
        if not path:
            errors["path"] = "path must identify a component."
    weight = _parse_weight(data, errors)
    label = clean_string(data.get("label")) if "label" in data else None
    if label == "":
        errors["label"] = "Label is required."
    if errors:
        return json_error("Validation failed.", 400, errors)
    if label is None and weight is None:
        return json_error("No changes supplied.", 400)

    def edit(course_config: CourseConfig) -> None:
        course_config.tree.update_node(path, label=label, weight=weight)

    _, error = _apply_edit(course, edit)
    if error:
        return error
    return jsonify({"ok": True})


@grading_bp.delete("/<course>/grading/nodes")
@require_admin
def remove_grading_node(course: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return json_error("Request body must be JSON.", 400)

    errors: Dict[str, str] = {}
    path: List[str] = []
    try:
        path = _parse_path(data.get("path"))
    except ValueError as exc:
        errors["path"] = str(exc)
    key = clean_string(data.get("key"))
    if not key:
        errors["key"] = "Component key is required."
    elif not path and key in DEFAULT_KEYS:
        errors["key"] = f"'{key}' is a standard component and cannot be removed."
    if errors:
        return json_error("Validation failed.", 400, errors)

    def edit(course_config: CourseConfig) -> None:
        course_config.tree.remove_child(path, key)

    _, error = _apply_edit(course, edit)
    if error:
        return error
    return jsonify({"ok": True})


@grading_bp.post("/<course>/grading/move")
@require_admin
def move_grading_node(course: str):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return json_error("Request body must be JSON.", 400)

    errors: Dict[str, str] = {}
    path: List[str] = []
    try:
        path = _parse_path(data.get("path"))
    except ValueError as exc:
        errors["path"] = str(exc)

    index = data.get("index")
    if isinstance(index, bool) or not isinstance(index, int):
        errors["index"] = "index must be an integer."

    direction = clean_string(data.get("direction")).lower()
    if direction not in DIRECTIONS:
        errors["direction"] = f"direction must be one of: {', '.join(DIRECTIONS)}."
    if errors:
        return json_error("Validation failed.", 400, errors)

    def edit(course_config: CourseConfig) -> List[str]:
        course_config.tree.move_sibling(path, index, direction)
        if not path:
            return list(course_config.tree.order)
        return list(course_config.tree.resolve(path).child_order)

    order, error = _apply_edit(course, edit)
    if error:
        return error
    return jsonify({"ok": True, "order": order})


__all__ = ["grading_bp", "load_course_config", "save_course_config"]
