"""Application route blueprints and helpers."""

from .auth_simple import auth_simple_bp, require_admin
from .grading import grading_bp
from .reports import reports_bp
from .scores import scores_bp

__all__ = ["auth_simple_bp", "grading_bp", "reports_bp", "scores_bp", "require_admin"]
