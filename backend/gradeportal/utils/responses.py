"""JSON error responses shared by the route blueprints."""

from __future__ import annotations

import logging
from typing import Any, Dict

from flask import jsonify

from ..config import ConfigError


def json_error(message: str, status: int, details: Dict[str, Any] | None = None):
    payload: Dict[str, Any] = {"error": message}
    if details:
        payload["details"] = details
    return jsonify(payload), status


def clean_string(value: Any) -> str:
    return str(value).strip() if value is not None else ""


def config_error_response(logger: logging.Logger, exc: ConfigError):
    logger.exception("Missing configuration for MongoDB")
    return json_error(str(exc), 500)


def db_error_response(logger: logging.Logger, action: str):
    """Log the active MongoDB exception and answer 503."""

    logger.exception("%s due to MongoDB error", action)
    return json_error("Database unavailable. Please try again later.", 503)


__all__ = ["clean_string", "config_error_response", "db_error_response", "json_error"]
