"""MongoDB helpers for the application."""

from pymongo import ASCENDING, IndexModel, MongoClient
from pymongo.collection import Collection

from .config import get_db_name, get_mongo_uri

_MONGO_CLIENT = None
_MONGO_DB = None


def _get_client():
    """Create (or reuse) a MongoDB client using the configured URI."""

    global _MONGO_CLIENT

    if _MONGO_CLIENT is None:
        _MONGO_CLIENT = MongoClient(get_mongo_uri(), serverSelectionTimeoutMS=5000)
    return _MONGO_CLIENT


def get_db():
    """Return the application's MongoDB database instance."""

    global _MONGO_DB

    if _MONGO_DB is None:
        _MONGO_DB = _get_client()[get_db_name()]
    return _MONGO_DB


_scores_indexes_created = False


def get_courses_collection() -> Collection:
    """Return the collection holding one grading configuration per course.

    Documents are keyed by course name and always rewritten whole.
    """

    return get_db()["courses"]


def _ensure_scores_indexes(collection: Collection) -> None:
    global _scores_indexes_created
    if _scores_indexes_created:
        return

    collection.create_indexes(
        [
            IndexModel(
                [("course", ASCENDING), ("studentId", ASCENDING)],
                name="unique_course_student",
                unique=True,
                background=True,
            ),
            IndexModel(
                [("studentId", ASCENDING)],
                name="student_id_idx",
                background=True,
            ),
        ]
    )
    _scores_indexes_created = True


def get_scores_collection() -> Collection:
    """Return the scores collection, one document per student and course."""

    collection = get_db()["scores"]
    _ensure_scores_indexes(collection)
    return collection


def serialize_score_record(document):
    """Convert a MongoDB score document into a JSON-serialisable dict."""

    scores = document.get("scores")
    if not isinstance(scores, dict):
        scores = {}

    return {
        "studentId": document.get("studentId"),
        "course": document.get("course"),
        "scores": dict(scores),
    }


__all__ = [
    "get_db",
    "get_courses_collection",
    "get_scores_collection",
    "serialize_score_record",
]
