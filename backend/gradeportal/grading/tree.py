"""Recursive grading rubric and its structural editing operations.

A rubric is an ordered tree of :class:`GradingComponent` nodes. Top-level
nodes carry the points they contribute to the 100-point course total; nested
nodes carry the points they contribute to their parent. Every level keeps an
explicit order list that is always a permutation of its children's keys.

Operations address nodes by *path*, a sequence of keys descending from the
root. The empty path denotes the root level itself. Mutating operations
check their arguments before touching the tree, so a failed call leaves it
unchanged.
"""

from __future__ import annotations

import copy
import logging
import math
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Sequence, Tuple

from .errors import InvalidPath, KeyNotFound, ValidationError

logger = logging.getLogger(__name__)

Path = Sequence[str]

KEY_SEPARATOR = "."
DEFAULT_CHILD_WEIGHT = 10.0
FULL_WEIGHT_TOTAL = 100.0

DIRECTIONS = ("up", "down")


def full_key(path: Path) -> str:
    """Join a path into the dotted key used to address stored scores."""

    return KEY_SEPARATOR.join(path)


def split_key(key: str) -> List[str]:
    return [part for part in key.split(KEY_SEPARATOR) if part]


def _coerce_weight(value: Any) -> float:
    if isinstance(value, bool):
        return 0.0
    try:
        weight = float(value)
    except (TypeError, ValueError):
        return 0.0
    return weight if math.isfinite(weight) else 0.0


def _clean_label(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def _check_order(children: Mapping[str, Any], order: Sequence[str], where: str) -> None:
    if len(order) != len(set(order)):
        raise ValueError(f"Order for {where} contains duplicate keys.")
    if set(order) != set(children):
        raise ValueError(f"Order for {where} does not match its component keys.")
    for key in children:
        if not key or KEY_SEPARATOR in key:
            raise ValueError(f"Invalid component key {key!r} in {where}.")


@dataclass
class GradingComponent:
    """A node of the grading rubric.

    A node with no children is a leaf: its score is read from the score
    record and ``weight`` is its maximum. A node with children never has a
    score of its own; it is derived from the leaves beneath it.
    """

    label: str = ""
    weight: float = 0.0
    children: Dict[str, "GradingComponent"] = field(default_factory=dict)
    child_order: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.weight = _coerce_weight(self.weight)
        _check_order(self.children, self.child_order, f"component {self.label!r}")

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def ordered_children(self) -> Iterator[Tuple[str, "GradingComponent"]]:
        for key in self.child_order:
            yield key, self.children[key]

    def raw_max_points(self) -> float:
        """Sum the weights of every leaf beneath this node."""

        if self.is_leaf:
            return self.weight
        return sum(child.raw_max_points() for _, child in self.ordered_children())


class GradingTree:
    """Ordered mapping of top-level grading components."""

    def __init__(
        self,
        components: Mapping[str, GradingComponent] | None = None,
        order: Sequence[str] | None = None,
    ):
        components = dict(components or {})
        order = list(order) if order is not None else list(components)
        _check_order(components, order, "the root level")
        self.components: Dict[str, GradingComponent] = components
        self.order: List[str] = order

    # === lookup ===

    def resolve(self, path: Path) -> GradingComponent:
        """Return the node at ``path``; raise :class:`InvalidPath` otherwise."""

        if not path:
            raise InvalidPath(path, "The empty path does not denote a single component.")

        level = self.components
        node: GradingComponent | None = None
        for segment in path:
            node = level.get(segment)
            if node is None:
                raise InvalidPath(path)
            level = node.children
        return node

    def _level(self, path: Path) -> Tuple[Dict[str, GradingComponent], List[str]]:
        if not path:
            return self.components, self.order
        node = self.resolve(path)
        return node.children, node.child_order

    def ordered_components(self) -> Iterator[Tuple[str, GradingComponent]]:
        for key in self.order:
            yield key, self.components[key]

    def walk(self) -> Iterator[Tuple[Tuple[str, ...], GradingComponent]]:
        """Yield ``(path, component)`` for every node, depth-first in order."""

        def _walk(prefix, items):
            for key, component in items:
                path = prefix + (key,)
                yield path, component
                yield from _walk(path, component.ordered_children())

        yield from _walk((), self.ordered_components())

    def leaves(self) -> Iterator[Tuple[str, str, GradingComponent]]:
        """Yield ``(full_key, label_trail, component)`` for every leaf.

        ``label_trail`` joins the labels from the top-level ancestor down to
        the leaf, e.g. ``"Final - Project - Slides"``.
        """

        labels: Dict[Tuple[str, ...], str] = {}
        for path, component in self.walk():
            parent_label = labels.get(path[:-1])
            label = f"{parent_label} - {component.label}" if parent_label else component.label
            labels[path] = label
            if component.is_leaf:
                yield full_key(path), label, component

    # === structural edits ===

    def add_child(
        self,
        path: Path,
        weight: float = DEFAULT_CHILD_WEIGHT,
        label: str = "",
    ) -> str:
        """Append a new component beneath ``path`` and return its key."""

        children, order = self._level(path)
        key = self._new_key(children)
        children[key] = GradingComponent(label=_clean_label(label), weight=weight)
        order.append(key)
        logger.debug("Added grading component %s", full_key([*path, key]))
        return key

    def remove_child(self, path: Path, key: str) -> GradingComponent:
        """Remove ``key`` and its whole subtree from the level at ``path``."""

        children, order = self._level(path)
        if key not in children:
            raise KeyNotFound(path, key)

        removed = children.pop(key)
        order.remove(key)
        logger.debug("Removed grading component %s", full_key([*path, key]))
        return removed

    def update_node(
        self,
        path: Path,
        label: str | None = None,
        weight: float | None = None,
    ) -> GradingComponent:
        """Update the label and/or weight of the node at ``path``."""

        node = self.resolve(path)
        if label is not None:
            node.label = _clean_label(label)
        if weight is not None:
            node.weight = _coerce_weight(weight)
        return node

    def move_sibling(self, path: Path, index: int, direction: str) -> None:
        """Swap the entry at ``index`` with its neighbour in ``direction``.

        Moves that would leave the list are ignored.
        """

        if direction not in DIRECTIONS:
            raise ValueError(f"direction must be one of: {', '.join(DIRECTIONS)}.")

        _, order = self._level(path)
        target = index - 1 if direction == "up" else index + 1
        if not 0 <= index < len(order) or not 0 <= target < len(order):
            return

        order[index], order[target] = order[target], order[index]

    # === totals ===

    def raw_max_points(self, path: Path = ()) -> float:
        """Raw maximum achievable points beneath ``path`` (whole tree for ``[]``)."""

        if not path:
            return sum(component.raw_max_points() for _, component in self.ordered_components())
        return self.resolve(path).raw_max_points()

    def total_weight(self) -> float:
        return sum(component.weight for _, component in self.ordered_components())

    # === validation ===

    def validate(self, *, require_full_weight: bool = False) -> None:
        """Check the tree can be saved; raise :class:`ValidationError` if not."""

        details: Dict[str, str] = {}
        for path, component in self.walk():
            if not component.label.strip():
                details[full_key(path)] = "Label is required."
            elif component.weight < 0:
                details[full_key(path)] = "Weight must not be negative."

        if require_full_weight:
            total = self.total_weight()
            if not math.isclose(total, FULL_WEIGHT_TOTAL):
                details["_total"] = (
                    f"Top-level weights must add up to {FULL_WEIGHT_TOTAL:g} (currently {total:g})."
                )

        if details:
            raise ValidationError("Validation failed.", details)

    # === helpers ===

    @staticmethod
    def _new_key(existing: Mapping[str, Any]) -> str:
        while True:
            key = f"custom_{uuid.uuid4().hex[:12]}"
            if key not in existing:
                return key

    def copy(self) -> GradingTree:
        return copy.deepcopy(self)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, GradingTree):
            return NotImplemented
        return self.order == other.order and self.components == other.components

    def __repr__(self) -> str:
        return f"GradingTree(order={self.order!r})"


def total_weight(tree: GradingTree) -> float:
    """Sum of the top-level weights; 100 for a complete rubric."""

    return tree.total_weight()


__all__ = [
    "DEFAULT_CHILD_WEIGHT",
    "DIRECTIONS",
    "FULL_WEIGHT_TOTAL",
    "GradingComponent",
    "GradingTree",
    "full_key",
    "split_key",
    "total_weight",
]
