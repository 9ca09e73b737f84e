"""Seed helper that loads sample course rubrics and scores into MongoDB.

Course documents in the seed file may use either the nested rubric format or
the older flat one; both are normalised to the nested format before writing.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from dotenv import load_dotenv
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from gradeportal.config import ConfigError, get_db_name, get_mongo_uri
from gradeportal.grading.errors import ValidationError
from gradeportal.grading.records import (
    course_config_from_document,
    course_config_to_document,
    score_document_id,
)

ROOT_DIR = Path(__file__).resolve().parent.parent
BACKEND_DIR = ROOT_DIR / "backend"
ENV_PATH = BACKEND_DIR / ".env"
SEED_PATH = Path(__file__).resolve().parent / "seed.json"


def load_env() -> None:
    if ENV_PATH.exists():
        load_dotenv(ENV_PATH)


def read_seed_file(path: Path = SEED_PATH) -> Dict[str, List[Dict[str, Any]]]:
    with path.open("r", encoding="utf-8") as seed_file:
        data = json.load(seed_file)
    if not isinstance(data, dict):
        raise ValueError("Seed file must contain an object of collections")
    for name in ("courses", "scores"):
        if not isinstance(data.get(name, []), list):
            raise ValueError(f"Seed data for '{name}' must be a list")
    return data


def prepare_course(document: Dict[str, Any]) -> Dict[str, Any]:
    course = str(document.get("_id", "")).strip()
    if not course:
        raise ValueError("Every seeded course needs an '_id'")

    config = course_config_from_document(document)
    config.tree.validate()

    prepared = course_config_to_document(config)
    prepared["_id"] = course
    return prepared


def prepare_score(document: Dict[str, Any]) -> Dict[str, Any]:
    student_id = str(document.get("studentId", "")).strip()
    course = str(document.get("course", "")).strip()
    if not student_id or not course:
        raise ValueError("Every seeded score record needs 'studentId' and 'course'")

    scores = document.get("scores") or {}
    return {
        "_id": score_document_id(student_id, course),
        "studentId": student_id,
        "course": course,
        "scores": dict(scores),
    }


def main() -> None:
    load_env()
    try:
        uri = get_mongo_uri()
        db_name = get_db_name()
    except ConfigError as exc:  # pragma: no cover - simple CLI utility
        print(f"Configuration error: {exc}")
        raise SystemExit(1)

    try:
        seed_data = read_seed_file()
        courses = [prepare_course(doc) for doc in seed_data.get("courses", [])]
        scores = [prepare_score(doc) for doc in seed_data.get("scores", [])]
    except (ValueError, ValidationError) as exc:
        print(f"Invalid seed data: {exc}")
        raise SystemExit(1)

    client = MongoClient(uri, serverSelectionTimeoutMS=5000)
    database = client[db_name]

    try:
        for collection_name, documents in (("courses", courses), ("scores", scores)):
            collection = database[collection_name]
            collection.delete_many({})
            if documents:
                collection.insert_many(documents)

            print(
                f"Loaded {len(documents)} document(s) into '{collection_name}' collection"
            )

        print(f"Seeding complete for database '{db_name}'.")
    except PyMongoError as exc:  # pragma: no cover - requires Mongo connection
        print(f"MongoDB error: {exc}")
        raise SystemExit(1)
    finally:
        client.close()


if __name__ == "__main__":
    main()
