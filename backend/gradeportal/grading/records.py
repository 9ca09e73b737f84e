"""Conversion between grading trees and their stored document shape.

Course documents keep the rubric as nested objects::

    {
        "gradingConfig": {
            "final": {
                "label": "Final",
                "max": 40,
                "subComponents": {"project": {"label": "Project", "max": 30}},
                "subComponentsOrder": ["project"],
            }
        },
        "gradingConfigOrder": ["final"],
        "activities": {},
    }

Older documents hold a flat mapping of top-level components with no order
list; those are read as leaf-only rubrics.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .tree import KEY_SEPARATOR, GradingComponent, GradingTree

logger = logging.getLogger(__name__)

CONFIG_FIELD = "gradingConfig"
ORDER_FIELD = "gradingConfigOrder"
ACTIVITIES_FIELD = "activities"

_RESERVED_DOCUMENT_FIELDS = {"_id", CONFIG_FIELD, ORDER_FIELD, ACTIVITIES_FIELD}

DEFAULT_COMPONENTS: Tuple[Tuple[str, str, float], ...] = (
    ("psychomotor", "Psychomotor", 20.0),
    ("midterm", "Midterm", 40.0),
    ("final", "Final", 40.0),
)
DEFAULT_KEYS = tuple(key for key, _, _ in DEFAULT_COMPONENTS)


def _is_valid_key(key: Any) -> bool:
    return isinstance(key, str) and bool(key) and KEY_SEPARATOR not in key


def _repair_order(keys: Sequence[str], stored_order: Any) -> List[str]:
    """Drop unknown or repeated order entries and append missing keys."""

    order: List[str] = []
    if isinstance(stored_order, list):
        for key in stored_order:
            if key in keys and key not in order:
                order.append(key)
    for key in keys:
        if key not in order:
            order.append(key)
    return order


def _component_from_record(data: Mapping[str, Any], *, nested: bool) -> GradingComponent:
    label = data.get("label")
    children: Dict[str, GradingComponent] = {}
    child_order: List[str] = []

    sub_components = data.get("subComponents") if nested else None
    if isinstance(sub_components, Mapping):
        children = _components_from_record(sub_components, nested=True)
        child_order = _repair_order(list(children), data.get("subComponentsOrder"))

    return GradingComponent(
        label=str(label).strip() if label is not None else "",
        weight=data.get("max"),
        children=children,
        child_order=child_order,
    )


def _components_from_record(
    data: Mapping[str, Any], *, nested: bool
) -> Dict[str, GradingComponent]:
    components: Dict[str, GradingComponent] = {}
    for key, value in data.items():
        if not _is_valid_key(key) or not isinstance(value, Mapping):
            logger.warning("Skipping malformed grading component %r", key)
            continue
        components[key] = _component_from_record(value, nested=nested)
    return components


def is_legacy_record(document: Mapping[str, Any]) -> bool:
    return not (
        isinstance(document.get(CONFIG_FIELD), Mapping)
        and isinstance(document.get(ORDER_FIELD), list)
    )


def tree_from_record(document: Mapping[str, Any] | None) -> GradingTree:
    """Build a :class:`GradingTree` from a stored course document."""

    if not document:
        return GradingTree()

    if not is_legacy_record(document):
        components = _components_from_record(document[CONFIG_FIELD], nested=True)
        order = _repair_order(list(components), document[ORDER_FIELD])
        return GradingTree(components, order)

    # Flat format: every top-level entry is a leaf component.
    legacy = document.get(CONFIG_FIELD)
    if not isinstance(legacy, Mapping):
        legacy = {
            key: value
            for key, value in document.items()
            if key not in _RESERVED_DOCUMENT_FIELDS
        }
    components = _components_from_record(legacy, nested=False)
    return GradingTree(components, list(components))


def record_problems(document: Mapping[str, Any]) -> Dict[str, str]:
    """Report entries of a nested-format document that cannot be loaded as-is.

    :func:`tree_from_record` skips these entries; callers accepting a
    document from a client use this to reject it instead.
    """

    problems: Dict[str, str] = {}

    def _check(components: Mapping[str, Any], prefix: List[str]) -> None:
        for key, value in components.items():
            name = KEY_SEPARATOR.join([*prefix, str(key)])
            if not _is_valid_key(key):
                problems[name] = "Component keys must be non-empty and cannot contain '.'."
            elif not isinstance(value, Mapping):
                problems[name] = "Component must be an object."
            elif isinstance(value.get("subComponents"), Mapping):
                _check(value["subComponents"], [*prefix, key])

    config = document.get(CONFIG_FIELD)
    if isinstance(config, Mapping):
        _check(config, [])
    return problems


def _component_to_record(component: GradingComponent) -> Dict[str, Any]:
    record: Dict[str, Any] = {"label": component.label, "max": _format_weight(component.weight)}
    if not component.is_leaf:
        record["subComponents"] = {
            key: _component_to_record(child) for key, child in component.ordered_children()
        }
        record["subComponentsOrder"] = list(component.child_order)
    return record


def _format_weight(weight: float) -> float | int:
    if math.isfinite(weight) and weight == int(weight):
        return int(weight)
    return weight


def tree_to_record(tree: GradingTree) -> Dict[str, Any]:
    return {
        CONFIG_FIELD: {
            key: _component_to_record(component)
            for key, component in tree.ordered_components()
        },
        ORDER_FIELD: list(tree.order),
    }


def seed_defaults(tree: GradingTree) -> GradingTree:
    """Append any missing default component.

    The stored order is kept as is, so a new course lists the defaults in
    their standard order while an existing one keeps its own arrangement.
    """

    for key, label, weight in DEFAULT_COMPONENTS:
        if key not in tree.components:
            tree.components[key] = GradingComponent(label=label, weight=weight)
            tree.order.append(key)
    return tree


@dataclass
class CourseConfig:
    """A course's rubric together with its activities, stored as one document."""

    tree: GradingTree
    activities: Dict[str, Any] = field(default_factory=dict)


def course_config_from_document(
    document: Mapping[str, Any] | None, *, seed: bool = True
) -> CourseConfig:
    tree = tree_from_record(document)
    if seed:
        seed_defaults(tree)

    activities = (document or {}).get(ACTIVITIES_FIELD)
    return CourseConfig(
        tree=tree,
        activities=dict(activities) if isinstance(activities, Mapping) else {},
    )


def course_config_to_document(config: CourseConfig) -> Dict[str, Any]:
    document = tree_to_record(config.tree)
    document[ACTIVITIES_FIELD] = dict(config.activities)
    return document


def score_document_id(student_id: str, course: str) -> str:
    return f"{student_id}_{course}"


def clean_scores(payload: Any) -> Tuple[Dict[str, float | None], Dict[str, str]]:
    """Validate an incoming ``{full_key: score}`` mapping.

    ``None`` (or an empty string) marks a score for removal. Returns the
    cleaned mapping and a mapping of per-key errors.
    """

    if not isinstance(payload, Mapping):
        return {}, {"scores": "Scores must be an object of key to number."}

    cleaned: Dict[str, float | None] = {}
    errors: Dict[str, str] = {}

    for raw_key, value in payload.items():
        key = str(raw_key).strip()
        if not key:
            errors["scores"] = "Score keys must be non-empty."
            continue

        if value is None or value == "":
            cleaned[key] = None
            continue

        if isinstance(value, bool):
            errors[key] = "Scores must be numeric."
            continue
        try:
            number = float(value)
        except (TypeError, ValueError):
            errors[key] = "Scores must be numeric."
            continue
        if not math.isfinite(number):
            errors[key] = "Scores must be finite."
            continue

        cleaned[key] = number

    return cleaned, errors


def apply_score_changes(
    existing: Mapping[str, Any] | None, changes: Mapping[str, float | None]
) -> Dict[str, Any]:
    """Overlay ``changes`` on ``existing``; ``None`` removes the key."""

    updated = dict(existing or {})
    for key, value in changes.items():
        if value is None:
            updated.pop(key, None)
        else:
            updated[key] = value
    return updated


__all__ = [
    "ACTIVITIES_FIELD",
    "CONFIG_FIELD",
    "DEFAULT_COMPONENTS",
    "DEFAULT_KEYS",
    "ORDER_FIELD",
    "CourseConfig",
    "apply_score_changes",
    "clean_scores",
    "course_config_from_document",
    "course_config_to_document",
    "is_legacy_record",
    "record_problems",
    "score_document_id",
    "seed_defaults",
    "tree_from_record",
    "tree_to_record",
]
