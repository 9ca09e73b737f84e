"""HTTP endpoints for score records and course reports."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path
from unittest.mock import patch

BACKEND_DIR = Path(__file__).resolve().parents[1]
TESTS_DIR = Path(__file__).resolve().parent
for directory in (BACKEND_DIR, TESTS_DIR):
    if str(directory) not in sys.path:
        sys.path.insert(0, str(directory))

from app import app
from route_fixtures import COURSE_DOCUMENT, MemoryCollection


def score_document(student_id: str, course: str, scores: dict) -> dict:
    return {
        "_id": f"{student_id}_{course}",
        "studentId": student_id,
        "course": course,
        "scores": scores,
    }


class ScoreRoutesTestCase(unittest.TestCase):
    def setUp(self) -> None:
        app.config["TESTING"] = True
        self.client = app.test_client()
        self.courses = MemoryCollection([COURSE_DOCUMENT])
        self.scores = MemoryCollection(
            [
                # 15 + 30 + (25 / 40) * 40 = 70
                score_document(
                    "s1",
                    "Leadership",
                    {"psychomotor": 15, "midterm": 30, "final.project": 20, "final.exam": 5},
                ),
                # 18 + 22 + (12 / 40) * 40 = 52
                score_document(
                    "s2",
                    "Leadership",
                    {"psychomotor": 18, "midterm": 22, "final.project": 12},
                ),
                score_document("s1", "Recreation", {"midterm": 40}),
            ]
        )

        for target, collection in [
            ("gradeportal.routes.grading.get_courses_collection", self.courses),
            ("gradeportal.routes.scores.get_scores_collection", self.scores),
            ("gradeportal.routes.reports.get_scores_collection", self.scores),
        ]:
            patcher = patch(target, return_value=collection)
            patcher.start()
            self.addCleanup(patcher.stop)

    def _login(self) -> None:
        with self.client.session_transaction() as session:
            session["is_admin"] = True

    # === listing ===

    def test_list_ranks_by_total(self) -> None:
        response = self.client.get("/api/courses/Leadership/scores")

        self.assertEqual(200, response.status_code)
        body = response.get_json()
        self.assertEqual(2, body["count"])
        self.assertEqual(["s1", "s2"], [item["student_id"] for item in body["items"]])
        self.assertAlmostEqual(70.0, body["items"][0]["total"])
        self.assertEqual(3.0, body["items"][0]["grade"])
        self.assertEqual(1.0, body["items"][1]["grade"])

    def test_list_sorting_and_paging(self) -> None:
        body = self.client.get("/api/courses/Leadership/scores?sort=total").get_json()
        self.assertEqual(["s2", "s1"], [item["student_id"] for item in body["items"]])

        body = self.client.get(
            "/api/courses/Leadership/scores?page=2&page_size=1"
        ).get_json()
        self.assertEqual(["s2"], [item["student_id"] for item in body["items"]])
        self.assertTrue(body["has_prev"])
        self.assertFalse(body["has_next"])

        response = self.client.get("/api/courses/Leadership/scores?sort=name")
        self.assertEqual(400, response.status_code)

    # === single student ===

    def test_student_report(self) -> None:
        body = self.client.get("/api/courses/Leadership/scores/s1").get_json()

        self.assertAlmostEqual(70.0, body["total"])
        self.assertEqual(100, body["max"])
        self.assertEqual(3.0, body["grade"])
        self.assertEqual(
            ["psychomotor", "midterm", "final", "final.project", "final.exam"],
            [line["key"] for line in body["breakdown"]],
        )

    def test_student_without_scores(self) -> None:
        body = self.client.get("/api/courses/Leadership/scores/s9").get_json()

        self.assertEqual({}, body["scores"])
        self.assertEqual(0, body["total"])
        self.assertEqual(0, body["grade"])

    def test_replace_student_scores(self) -> None:
        self._login()
        response = self.client.put(
            "/api/courses/Leadership/scores/s3",
            json={"scores": {"midterm": 35, "final": 10, "psychomotor": None}},
        )

        self.assertEqual(200, response.status_code)
        self.assertEqual(["final"], response.get_json()["ignored"])
        stored = self.scores.documents["s3_Leadership"]
        self.assertEqual({"midterm": 35.0, "final": 10.0}, stored["scores"])
        self.assertEqual("s3", stored["studentId"])

    def test_replace_student_scores_validates(self) -> None:
        self._login()
        response = self.client.put(
            "/api/courses/Leadership/scores/s1",
            json={"scores": {"midterm": "thirty"}},
        )

        self.assertEqual(400, response.status_code)
        self.assertEqual({"midterm": "Scores must be numeric."}, response.get_json()["details"])

    # === bulk entry ===

    def test_bulk_update_writes_only_changes(self) -> None:
        self._login()
        response = self.client.post(
            "/api/courses/Leadership/scores/bulk",
            json={"key": "final.exam", "scores": {"s1": 5, "s2": 8, "s9": None}},
        )

        self.assertEqual(200, response.status_code)
        self.assertEqual(1, response.get_json()["updated"])
        self.assertEqual(1, self.scores.bulk_calls)
        self.assertEqual(8.0, self.scores.documents["s2_Leadership"]["scores"]["final.exam"])
        self.assertNotIn("s9_Leadership", self.scores.documents)

    def test_bulk_update_removes_scores(self) -> None:
        self._login()
        response = self.client.post(
            "/api/courses/Leadership/scores/bulk",
            json={"key": "final.exam", "scores": {"s1": None}},
        )

        self.assertEqual(1, response.get_json()["updated"])
        self.assertNotIn("final.exam", self.scores.documents["s1_Leadership"]["scores"])

    def test_bulk_update_rejects_internal_component(self) -> None:
        self._login()
        response = self.client.post(
            "/api/courses/Leadership/scores/bulk",
            json={"key": "final", "scores": {"s1": 30}},
        )

        self.assertEqual(400, response.status_code)
        self.assertIn("key", response.get_json()["details"])
        self.assertEqual(0, self.scores.bulk_calls)

    # === reports ===

    def test_course_summary(self) -> None:
        body = self.client.get("/api/reports/course-summary/Leadership").get_json()

        self.assertEqual(2, body["count"])
        self.assertEqual(61.0, body["average"])
        self.assertEqual(2, body["passing_count"])
        self.assertEqual([], body["at_risk"])
        self.assertEqual(1, body["distribution"]["3.0"])
        self.assertEqual(1, body["distribution"]["1.0"])

    def test_results_csv(self) -> None:
        response = self.client.get("/api/reports/Leadership/results.csv")

        self.assertEqual(200, response.status_code)
        self.assertEqual("text/csv", response.mimetype)
        lines = response.get_data(as_text=True).splitlines()
        self.assertEqual(
            [
                "student_id,psychomotor,midterm,final.project,final.exam,total,grade",
                "s1,15,30,20,5,70,3.0",
                "s2,18,22,12,,52,1.0",
            ],
            lines,
        )


if __name__ == "__main__":
    unittest.main()
