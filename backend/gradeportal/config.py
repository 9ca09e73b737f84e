"""Application configuration helpers."""

import os

from dotenv import load_dotenv

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DOTENV_PATH = os.path.join(_BASE_DIR, ".env")

if os.path.exists(_DOTENV_PATH):
    load_dotenv(_DOTENV_PATH)


class ConfigError(RuntimeError):
    """Raised when configuration values are missing or invalid."""


def _env_flag(name, default=False):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"{name} must be a boolean (true/false).")


SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "gradeportal_session")
ADMIN_USER = os.getenv("ADMIN_USER", "admin")
ADMIN_PASS = os.getenv("ADMIN_PASS", "admin")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# When enabled, saving a rubric whose top-level weights do not add up to 100
# is rejected instead of only being reported.
GRADING_REQUIRE_FULL_WEIGHT = _env_flag("GRADING_REQUIRE_FULL_WEIGHT")

_MONGO_URI_CACHE = None
_DB_NAME_CACHE = None


def get_mongo_uri():
    """Return the MongoDB connection string from the environment."""

    global _MONGO_URI_CACHE

    if _MONGO_URI_CACHE:
        return _MONGO_URI_CACHE

    uri = os.getenv("MONGODB_URI")
    if not uri:
        raise ConfigError("MONGODB_URI is not set. Define it in backend/.env.")

    _MONGO_URI_CACHE = uri
    return uri


def get_db_name():
    """Return the database name from MONGODB_DB or the path of the URI."""

    global _DB_NAME_CACHE

    if _DB_NAME_CACHE:
        return _DB_NAME_CACHE

    db_name = os.getenv("MONGODB_DB")
    if db_name:
        _DB_NAME_CACHE = db_name
        return db_name

    main = get_mongo_uri().split("?", 1)[0].rstrip("/")
    after_scheme = main.split("://", 1)[1] if "://" in main else main

    candidate = after_scheme.split("/", 1)[1] if "/" in after_scheme else ""
    if not candidate:
        raise ConfigError(
            "Database name not found. Provide it via MONGODB_URI or MONGODB_DB."
        )

    _DB_NAME_CACHE = candidate
    return candidate


__all__ = [
    "ADMIN_PASS",
    "ADMIN_USER",
    "ConfigError",
    "GRADING_REQUIRE_FULL_WEIGHT",
    "LOG_LEVEL",
    "SECRET_KEY",
    "SESSION_COOKIE_NAME",
    "get_db_name",
    "get_mongo_uri",
]
