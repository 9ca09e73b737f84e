"""Structural editing of grading rubrics."""

from __future__ import annotations

import random
import sys
import unittest
from pathlib import Path

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from gradeportal.grading.errors import InvalidPath, KeyNotFound, ValidationError
from gradeportal.grading.tree import GradingComponent, GradingTree, total_weight


def make_tree() -> GradingTree:
    final = GradingComponent(
        label="Final",
        weight=40,
        children={
            "project": GradingComponent(label="Project", weight=30),
            "exam": GradingComponent(label="Exam", weight=10),
        },
        child_order=["project", "exam"],
    )
    return GradingTree(
        {
            "psychomotor": GradingComponent(label="Psychomotor", weight=20),
            "midterm": GradingComponent(label="Midterm", weight=40),
            "final": final,
        },
        ["psychomotor", "midterm", "final"],
    )


def assert_order_invariant(test: unittest.TestCase, tree: GradingTree) -> None:
    levels = [(tree.components, tree.order)]
    levels.extend((node.children, node.child_order) for _, node in tree.walk())
    for children, order in levels:
        test.assertEqual(len(order), len(set(order)))
        test.assertEqual(set(children), set(order))


class ConstructionTestCase(unittest.TestCase):
    def test_mismatched_order_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            GradingTree({"a": GradingComponent("A", 10)}, ["a", "b"])
        with self.assertRaises(ValueError):
            GradingComponent("A", 10, children={"x": GradingComponent("X", 1)}, child_order=[])

    def test_dotted_keys_are_rejected(self) -> None:
        with self.assertRaises(ValueError):
            GradingTree({"a.b": GradingComponent("A", 10)})

    def test_non_numeric_weight_becomes_zero(self) -> None:
        self.assertEqual(0.0, GradingComponent("A", "lots").weight)


class ResolveTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = make_tree()

    def test_resolves_nested_node(self) -> None:
        self.assertEqual("Project", self.tree.resolve(["final", "project"]).label)

    def test_missing_segment_raises(self) -> None:
        for path in (["ghost"], ["final", "ghost"], ["midterm", "anything"]):
            with self.subTest(path=path):
                with self.assertRaises(InvalidPath):
                    self.tree.resolve(path)

    def test_empty_path_is_not_a_node(self) -> None:
        with self.assertRaises(InvalidPath):
            self.tree.resolve([])


class AddChildTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = make_tree()

    def test_adds_top_level_component_with_defaults(self) -> None:
        key = self.tree.add_child([])

        self.assertEqual(key, self.tree.order[-1])
        component = self.tree.resolve([key])
        self.assertEqual("", component.label)
        self.assertEqual(10.0, component.weight)
        self.assertTrue(component.is_leaf)

    def test_adding_under_leaf_makes_it_internal(self) -> None:
        key = self.tree.add_child(["midterm"], weight=25, label="  Essay ")

        midterm = self.tree.resolve(["midterm"])
        self.assertFalse(midterm.is_leaf)
        self.assertEqual([key], midterm.child_order)
        self.assertEqual("Essay", midterm.children[key].label)
        self.assertEqual(25.0, midterm.children[key].weight)

    def test_missing_label_is_blank(self) -> None:
        key = self.tree.add_child(["final"], label=None)
        self.assertEqual("", self.tree.resolve(["final", key]).label)

    def test_generated_keys_are_unique(self) -> None:
        keys = {self.tree.add_child(["final"]) for _ in range(50)}
        self.assertEqual(50, len(keys))

    def test_invalid_parent_leaves_tree_unchanged(self) -> None:
        before = self.tree.copy()
        with self.assertRaises(InvalidPath):
            self.tree.add_child(["final", "ghost"])
        self.assertEqual(before, self.tree)


class RemoveChildTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = make_tree()

    def test_removes_whole_subtree(self) -> None:
        removed = self.tree.remove_child([], "final")

        self.assertEqual(["project", "exam"], removed.child_order)
        self.assertEqual(["psychomotor", "midterm"], self.tree.order)
        self.assertNotIn("final", self.tree.components)

    def test_removes_nested_child(self) -> None:
        self.tree.remove_child(["final"], "exam")
        self.assertEqual(["project"], self.tree.resolve(["final"]).child_order)

    def test_missing_key_and_parent(self) -> None:
        before = self.tree.copy()
        with self.assertRaises(KeyNotFound):
            self.tree.remove_child(["final"], "ghost")
        with self.assertRaises(InvalidPath):
            self.tree.remove_child(["ghost"], "exam")
        self.assertEqual(before, self.tree)


class UpdateNodeTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = make_tree()

    def test_partial_update(self) -> None:
        self.tree.update_node(["final"], weight=50)
        final = self.tree.resolve(["final"])

        self.assertEqual("Final", final.label)
        self.assertEqual(50.0, final.weight)
        self.assertEqual(["project", "exam"], final.child_order)

        self.tree.update_node(["final", "exam"], label=" Written exam ")
        self.assertEqual("Written exam", self.tree.resolve(["final", "exam"]).label)

    def test_unresolved_path_raises(self) -> None:
        with self.assertRaises(InvalidPath):
            self.tree.update_node(["final", "ghost"], label="X")
        with self.assertRaises(InvalidPath):
            self.tree.update_node([], weight=1)


class MoveSiblingTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = make_tree()

    def test_swaps_with_neighbour(self) -> None:
        self.tree.move_sibling([], 1, "up")
        self.assertEqual(["midterm", "psychomotor", "final"], self.tree.order)

        self.tree.move_sibling(["final"], 0, "down")
        self.assertEqual(["exam", "project"], self.tree.resolve(["final"]).child_order)

    def test_out_of_bounds_moves_are_ignored(self) -> None:
        self.tree.move_sibling([], 0, "up")
        self.tree.move_sibling([], 2, "down")
        self.tree.move_sibling([], 7, "up")
        self.assertEqual(["psychomotor", "midterm", "final"], self.tree.order)

    def test_bad_direction_and_path(self) -> None:
        with self.assertRaises(ValueError):
            self.tree.move_sibling([], 1, "sideways")
        with self.assertRaises(InvalidPath):
            self.tree.move_sibling(["ghost"], 0, "down")


class TotalsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.tree = make_tree()

    def test_raw_max_points(self) -> None:
        self.assertEqual(40.0, self.tree.raw_max_points(["final"]))
        self.assertEqual(30.0, self.tree.raw_max_points(["final", "project"]))
        self.assertEqual(100.0, self.tree.raw_max_points([]))

        self.tree.update_node(["final", "exam"], weight=20)
        self.assertEqual(50.0, self.tree.raw_max_points(["final"]))
        self.assertEqual(40.0, self.tree.resolve(["final"]).weight)

    def test_total_weight_uses_top_level_only(self) -> None:
        self.assertEqual(100.0, total_weight(self.tree))
        self.tree.add_child(["final"], weight=99)
        self.assertEqual(100.0, self.tree.total_weight())

    def test_leaves_list_full_keys_and_label_trail(self) -> None:
        leaves = [(key, label) for key, label, _ in self.tree.leaves()]
        self.assertEqual(
            [
                ("psychomotor", "Psychomotor"),
                ("midterm", "Midterm"),
                ("final.project", "Final - Project"),
                ("final.exam", "Final - Exam"),
            ],
            leaves,
        )


class ValidateTestCase(unittest.TestCase):
    def test_blank_labels_are_reported_by_full_key(self) -> None:
        tree = make_tree()
        key = tree.add_child(["final"], label="   ")

        with self.assertRaises(ValidationError) as ctx:
            tree.validate()
        self.assertEqual({f"final.{key}"}, set(ctx.exception.details))

    def test_negative_weights_are_reported(self) -> None:
        tree = make_tree()
        tree.update_node(["final", "exam"], weight=-5)

        with self.assertRaises(ValidationError) as ctx:
            tree.validate()
        self.assertEqual({"final.exam": "Weight must not be negative."}, ctx.exception.details)

    def test_full_weight_is_only_checked_on_request(self) -> None:
        tree = make_tree()
        tree.update_node(["midterm"], weight=30)

        tree.validate()
        with self.assertRaises(ValidationError) as ctx:
            tree.validate(require_full_weight=True)
        self.assertIn("_total", ctx.exception.details)

        tree.update_node(["midterm"], weight=40)
        tree.validate(require_full_weight=True)


class OrderInvariantTestCase(unittest.TestCase):
    def test_random_edit_sequences_keep_order_consistent(self) -> None:
        rng = random.Random(7)
        tree = make_tree()

        for _ in range(300):
            parents = [()] + [path for path, _ in tree.walk()]
            path = list(rng.choice(parents))
            _, order = tree._level(path)
            operation = rng.choice(["add", "add", "remove", "move"])

            if operation == "add":
                tree.add_child(path, weight=rng.randint(0, 20), label="x")
            elif operation == "remove" and order:
                tree.remove_child(path, rng.choice(order))
            elif operation == "move" and order:
                tree.move_sibling(path, rng.randrange(len(order)), rng.choice(["up", "down"]))

            assert_order_invariant(self, tree)

    def test_copy_is_independent(self) -> None:
        tree = make_tree()
        snapshot = tree.copy()
        tree.add_child(["final"], label="Quiz")

        self.assertEqual(["project", "exam"], snapshot.resolve(["final"]).child_order)
        self.assertNotEqual(snapshot, tree)


if __name__ == "__main__":
    unittest.main()
