"""Admin session endpoints guarding rubric and score changes."""

from __future__ import annotations

import hmac
import logging
from functools import wraps
from typing import Any, Callable, TypeVar, cast

from flask import Blueprint, jsonify, request, session

from .. import config

auth_simple_bp = Blueprint("auth_simple", __name__)

logger = logging.getLogger(__name__)

_F = TypeVar("_F", bound=Callable[..., Any])


def require_admin(func: _F) -> _F:
    """Reject the request with 403 unless an administrator is logged in."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        if not session.get("is_admin"):
            return jsonify({"error": "forbidden"}), 403
        return func(*args, **kwargs)

    return cast(_F, wrapper)


def _credentials_match(username: str, password: str) -> bool:
    user_ok = hmac.compare_digest(username.encode(), config.ADMIN_USER.encode())
    pass_ok = hmac.compare_digest(password.encode(), config.ADMIN_PASS.encode())
    return user_ok and pass_ok


@auth_simple_bp.post("/api/login")
def login():
    payload = request.get_json(silent=True) or {}
    username = str(payload.get("username", "")).strip()
    password = str(payload.get("password", ""))

    if _credentials_match(username, password):
        session.clear()
        session["is_admin"] = True
        session.permanent = False
        return jsonify({"ok": True, "user": {"username": username, "role": "admin"}})

    logger.warning("Rejected admin login for user %r", username)
    session.pop("is_admin", None)
    return jsonify({"error": "invalid_credentials"}), 401


@auth_simple_bp.post("/api/logout")
def logout():
    session.clear()
    return jsonify({"ok": True})


@auth_simple_bp.get("/api/me")
def me():
    return jsonify({"is_admin": bool(session.get("is_admin", False))})


__all__ = ["auth_simple_bp", "require_admin"]
